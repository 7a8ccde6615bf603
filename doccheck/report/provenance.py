from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple

MAX_PROVENANCE = 10


@dataclass(frozen=True, order=True)
class Location:
    """A line in a document. Ordered by path, then line."""
    path: Path
    line: int

    def __str__(self) -> str:
        return f"{self.path}:{self.line}"


@dataclass
class Provenance:
    """The set of locations that referenced one target."""
    locations: Set[Location] = field(default_factory=set)

    def add(self, location: Location):
        self.locations.add(location)

    def __len__(self) -> int:
        return len(self.locations)

    def __bool__(self) -> bool:
        return bool(self.locations)

    def sorted_locations(self) -> List[Location]:
        return sorted(self.locations)

    def files(self) -> List[Path]:
        """Distinct referencing files, sorted."""
        return sorted({loc.path for loc in self.locations})

    def first(self) -> Optional[Location]:
        return min(self.locations) if self.locations else None

    def others(self) -> Tuple[Path, ...]:
        """Referencing files other than the file of `first()`."""
        first = self.first()
        return tuple(p for p in self.files() if first is None or p != first.path)


def capped(items: Iterable, cap: int = MAX_PROVENANCE) -> Tuple[list, int]:
    """Split items into the first `cap` entries and the count of the rest."""
    items = list(items)
    return items[:cap], max(0, len(items) - cap)


def provenance_lines(paths: Iterable[Path], prefix: str, cap: int = MAX_PROVENANCE, render=str) -> List[str]:
    """
    Render an "also found in" style list: one line per path, at most `cap`,
    followed by "... and N more" when the list was truncated.
    """
    shown, rest = capped(paths, cap)
    lines = [f"    {prefix} {render(p)}" for p in shown]
    if rest:
        lines.append(f"    ... and {rest} more")
    return lines

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Set, Union

from ..errors import ContractViolation, FindingKind
from ..report.provenance import Location


class TableState(Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass
class AnchorRecord:
    declared: bool = False
    references: Set[Location] = field(default_factory=set)


@dataclass(frozen=True)
class AnchorProblem:
    """A finding produced by a table, for its owner to log and count."""
    kind: FindingKind
    location: Location
    message: str


class AnchorTable:
    """
    The anchors declared in, and the references made to, one document or
    external resource.

    While OPEN, references are buffered since the anchor may still be
    declared later in the document. `check()` closes the table, reports the
    buffered references to undeclared anchors, and from then on references
    are resolved as they arrive.
    """

    def __init__(self, identity: Union[Path, str], label: Optional[str] = None):
        self.identity = identity
        self.label = label if label is not None else str(identity)
        self.state = TableState.OPEN
        self.anchors: Dict[Optional[str], AnchorRecord] = {}

    @property
    def checked(self) -> bool:
        return self.state is TableState.CLOSED

    def declare(self, name: str, location: Location, inward_only: bool = False) -> Optional[AnchorProblem]:
        if self.checked:
            raise ContractViolation(f"Adding anchor {name!r} to {self.identity} after it has been checked")
        if name is None:
            raise ValueError("anchor name must not be None")
        record = self.anchors.setdefault(name, AnchorRecord())
        if not record.declared:
            record.declared = True
            return None
        # in inward-only mode a duplicate matters only if something links to it
        if record.references or not inward_only:
            return AnchorProblem(FindingKind.DUPLICATE_ANCHOR, location, f"name already declared: {name}")
        return None

    def reference(self, name: Optional[str], location: Location) -> Optional[AnchorProblem]:
        if not self.checked:
            self.anchors.setdefault(name, AnchorRecord()).references.add(location)
            return None
        if name is None:
            return None
        record = self.anchors.get(name)
        if record is None or not record.declared:
            return self._missing(name, location)
        return None

    def check(self) -> List[AnchorProblem]:
        problems = []
        for name in sorted(n for n in self.anchors if n is not None):
            record = self.anchors[name]
            if not record.declared:
                problems.extend(self._missing(name, ref) for ref in sorted(record.references))
        self.state = TableState.CLOSED
        return problems

    def referenced_anchor_count(self) -> int:
        return sum(1 for n, r in self.anchors.items() if n is not None and r.references)

    def referencing_files(self) -> List[Path]:
        return sorted({loc.path for r in self.anchors.values() for loc in r.references})

    def _missing(self, name: str, location: Location) -> AnchorProblem:
        return AnchorProblem(FindingKind.MISSING_ANCHOR, location, f"id not found: {self.label}#{name}")

from __future__ import annotations
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional


class HtmlChecker(ABC):
    """
    Listener for the structural events of HTML files.

    The event source calls `start_file`, then the element events in document
    order, then `end_file`, once per file. After all files have been visited
    the checker reports through a `Reporter`.
    """

    name = "base"

    @abstractmethod
    def start_file(self, path: Path):
        pass

    @abstractmethod
    def end_file(self):
        pass

    def xml(self, line: int, attrs: Dict[str, str]):
        pass

    def doctype(self, line: int, declaration: str):
        pass

    @abstractmethod
    def start_element(self, line: int, name: str, attrs: Dict[str, Optional[str]], self_closing: bool):
        pass

    def end_element(self, line: int, name: str):
        """`line` is the line of the matching start tag."""
        pass

    @abstractmethod
    def report(self, reporter):
        """Write this checker's section(s) to the reporter."""
        pass

    @abstractmethod
    def is_ok(self) -> bool:
        pass

    def close(self):
        log = getattr(self, "log", None)
        if log is not None:
            log.close()

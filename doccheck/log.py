from __future__ import annotations
import itertools
from pathlib import Path
from typing import Iterable, List, Optional

from .errors import Finding, FindingKind
from .report.provenance import MAX_PROVENANCE, provenance_lines
from .utils.logger import logger

_log_ids = itertools.count(1)


class FindingLog:
    """
    Per-check log of notable conditions found while checking files.

    Every line goes through loguru, bound to the check name. When `file` is
    given, the lines of this log (and only this log) are also written there
    verbatim. Findings are kept in the order they were logged.
    """

    def __init__(self, name: str, file: Optional[Path] = None, base_dir: Optional[Path] = None):
        self.name = name
        self.file = Path(file) if file else None
        self.base_dir = Path(base_dir).absolute() if base_dir else None
        self.findings: List[Finding] = []
        self.errors = 0
        self.warnings = 0
        self.reports = 0
        self._id = next(_log_ids)
        self._logger = logger.bind(check=name, log_id=self._id)
        self._sink_id = None
        if self.file is not None:
            log_id = self._id
            self._sink_id = logger.add(
                str(self.file),
                format="{message}",
                level="DEBUG",
                mode="w",
                encoding="utf-8",
                filter=lambda record: record["extra"].get("log_id") == log_id,
            )

    def set_base_directory(self, base_dir: Path):
        self.base_dir = Path(base_dir).absolute()

    def against_base_dir(self, path: Path) -> Path:
        path = Path(path)
        if self.base_dir is not None:
            try:
                return path.relative_to(self.base_dir)
            except ValueError:
                pass
        return path

    def _where(self, path: Path, line: Optional[int]) -> str:
        rel = self.against_base_dir(path)
        return f"{rel}:{line}" if line is not None else f"{rel}"

    def error(self, kind: FindingKind, path: Path, line: Optional[int], message: str,
              provenance: Iterable[Path] = (), prefix: str = "Also found in") -> Finding:
        return self._finding("ERROR", kind, path, line, message, provenance, prefix)

    def warn(self, kind: FindingKind, path: Path, line: Optional[int], message: str,
             provenance: Iterable[Path] = (), prefix: str = "Also found in") -> Finding:
        return self._finding("WARNING", kind, path, line, message, provenance, prefix)

    def _finding(self, level, kind, path, line, message, provenance, prefix) -> Finding:
        finding = Finding(kind=kind, path=Path(path), line=line, message=message,
                          provenance=tuple(provenance))
        self.findings.append(finding)
        marker = "" if level == "ERROR" else "Warning: "
        self._logger.log(level, f"{self._where(path, line)}: {marker}{message}")
        if level == "ERROR":
            self.errors += 1
        else:
            self.warnings += 1
        for text in provenance_lines(finding.provenance, prefix, MAX_PROVENANCE, self.against_base_dir):
            self._logger.info(text)
        return finding

    def report(self, message: str, *args):
        self._logger.info(message % args if args else message)
        self.reports += 1

    def is_empty(self) -> bool:
        return self.errors == 0 and self.warnings == 0 and self.reports == 0

    def findings_of(self, kind: FindingKind) -> List[Finding]:
        return [f for f in self.findings if f.kind == kind]

    def close(self):
        if self._sink_id is not None:
            logger.remove(self._sink_id)
            self._sink_id = None

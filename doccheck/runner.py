from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .config import CHECKS, DocCheckConfig
from .errors import BadArgs
from .html.checker import HtmlChecker
from .html.extlinks import ExtLinkChecker
from .html.file_checker import HtmlFileChecker
from .html.links import LinkChecker
from .log import FindingLog
from .report.reporters import Reporter, open_reporter
from .utils.io import iter_html_files, normalize_path
from .utils.logger import logger
from .utils.telemetry import get_tracer, init_telemetry

tracer = get_tracer(__name__)


def decode_checks(keys: List[str]) -> List[str]:
    """
    Expand check keys in order: `all` selects every check, `none` clears the
    selection and `-name` removes one check.
    """
    selected: List[str] = []
    for key in keys:
        for k in key.replace(",", " ").split():
            if k == "all":
                selected = list(CHECKS)
            elif k == "none":
                selected = []
            elif k.startswith("-"):
                name = k[1:]
                if name not in CHECKS:
                    raise BadArgs(f"unknown check: {name}")
                selected = [c for c in selected if c != name]
            elif k in CHECKS:
                if k not in selected:
                    selected.append(k)
            else:
                raise BadArgs(f"unknown check: {k}")
    return [c for c in CHECKS if c in selected]


@dataclass
class RunResult:
    checkers: List[HtmlChecker] = field(default_factory=list)
    files: int = 0
    errors: int = 0
    warnings: int = 0
    ok: bool = True


class DocChecker:
    """Runs the selected checks over a documentation tree and reports on them."""

    def __init__(self, cfg: Optional[DocCheckConfig] = None, session=None):
        self.cfg = cfg or DocCheckConfig()
        self.session = session
        self.base_dir = normalize_path(self.cfg.base_dir) if self.cfg.base_dir else None

    def log_file(self, check: str) -> Optional[Path]:
        report = self.cfg.report
        if report is None:
            return None
        path = Path(report)
        if path.is_dir():
            return path / f"{check}.log"
        return path.with_name(f"{path.stem}-{check}.log")

    def make_checkers(self) -> List[HtmlChecker]:
        checkers: List[HtmlChecker] = []
        for check in decode_checks(self.cfg.checks):
            log = FindingLog(check, self.log_file(check), self.base_dir)
            if check == "links":
                checkers.append(LinkChecker(log))
            elif check == "extlinks":
                checkers.append(ExtLinkChecker(log, self.cfg.extlinks, session=self.session))
        return checkers

    def run(self, reporter: Optional[Reporter] = None) -> RunResult:
        if self.base_dir is not None:
            if not self.base_dir.exists():
                raise BadArgs(f"base directory not found: {self.cfg.base_dir}")
            if not self.base_dir.is_dir():
                raise BadArgs(f"base directory is not a directory: {self.cfg.base_dir}")
        if not self.cfg.files:
            raise BadArgs("no files or directories to check")
        missing = [f for f in self.cfg.files if not normalize_path(f, self.base_dir).exists()]
        if missing:
            raise BadArgs(f"no such file or directory: {', '.join(missing)}")

        init_telemetry(self.cfg.telemetry_endpoint, self.cfg.telemetry_enabled)
        checkers = self.make_checkers()
        if reporter is None:
            reporter = open_reporter(self.cfg.report, self.cfg.title)

        result = RunResult(checkers=checkers)
        try:
            with tracer.start_as_current_span("doccheck.run") as span:
                span.set_attribute("checks", ",".join(c.name for c in checkers))
                result.files = self.scan(checkers)
                span.set_attribute("files", result.files)

                link_checker = next((c for c in checkers if isinstance(c, LinkChecker)), None)
                if link_checker is not None:
                    self.deferred_pass(link_checker)

                for checker in checkers:
                    checker.report(reporter)
                result.ok = all(c.is_ok() for c in checkers)
        finally:
            for checker in checkers:
                checker.close()
            reporter.close()

        result.errors = sum(c.log.errors for c in checkers)
        result.warnings = sum(c.log.warnings for c in checkers)
        logger.info(f"Checked {result.files} files: {result.errors} errors, {result.warnings} warnings")
        return result

    def scan(self, checkers: List[HtmlChecker]) -> int:
        if not checkers:
            return 0
        roots = [normalize_path(f, self.base_dir) for f in self.cfg.files]
        exclude = {normalize_path(e, self.base_dir) for e in self.cfg.exclude}
        file_checker = HtmlFileChecker(checkers[0].log, checkers)
        seen = set()
        with tracer.start_as_current_span("doccheck.scan"):
            for path in iter_html_files(roots, exclude, self.cfg.skip_subdirs):
                # overlapping roots must not visit a file twice
                if path in seen:
                    continue
                seen.add(path)
                file_checker.check_file(path)
        return len(seen)

    def deferred_pass(self, link_checker: LinkChecker):
        """Read files that were linked to but not visited, to check inward references."""
        unchecked = link_checker.unchecked_files()
        if not unchecked:
            return
        logger.bind(check=link_checker.name).info(f"Checking {len(unchecked)} linked files outside the tree")
        link_checker.set_check_inward_references_only(True)
        file_checker = HtmlFileChecker(link_checker.log, [link_checker])
        with tracer.start_as_current_span("doccheck.deferred_pass"):
            for path in unchecked:
                file_checker.check_file(path)

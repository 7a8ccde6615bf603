from __future__ import annotations
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urlsplit

from .anchors import AnchorProblem, AnchorTable
from .checker import HtmlChecker
from .references import host_sort_key, is_scheme_ok, resolve_reference, uri_sort_key
from ..errors import FindingKind, InvalidReference
from ..log import FindingLog
from ..report.provenance import Location
from ..utils.io import normalize_path


class LinkChecker(HtmlChecker):
    """
    Checks the anchors declared by, and the links between, HTML files.

    Files are visited in traversal order, so a link may point into a file
    that has not been read yet. Each file's table stays open until the end of
    that file; references into open tables are buffered and checked when the
    target file is closed.
    """

    name = "links"

    def __init__(self, log: FindingLog):
        self.log = log
        self.all_files: Dict[Path, AnchorTable] = {}
        self.all_uris: Dict[str, AnchorTable] = {}
        self.check_inward_references_only = False

        self.files = 0
        self.links = 0
        self.duplicate_ids = 0
        self.missing_ids = 0
        self.bad_schemes = 0
        self.invalid_refs = 0

        self.curr_file: Optional[Path] = None
        self.curr_table: Optional[AnchorTable] = None

    def set_check_inward_references_only(self, value: bool):
        self.check_inward_references_only = value

    def start_file(self, path: Path):
        self.curr_file = normalize_path(path)
        self.curr_table = self._file_table(self.curr_file)
        self.files += 1

    def end_file(self):
        for problem in self.curr_table.check():
            self._record(problem)

    def start_element(self, line, name, attrs, self_closing):
        name_attr = None
        if name == "a":
            name_attr = attrs.get("name")
            if name_attr is not None:
                self._found_anchor(line, name_attr)
        if name in ("a", "link"):
            href = attrs.get("href")
            if href is not None and not self.check_inward_references_only:
                self._found_reference(line, href)

        id_attr = attrs.get("id")
        # <a id="x" name="x"> declares x once
        if id_attr is not None and id_attr != name_attr:
            self._found_anchor(line, id_attr)

    def unchecked_files(self) -> List[Path]:
        """Files that were linked to but never read, and that exist on disk."""
        return sorted(p for p, t in self.all_files.items()
                      if not t.checked and p.name.endswith(".html") and p.exists())

    def missing_files(self) -> List[Path]:
        return sorted(p for p in self.all_files if not p.exists())

    def _file_table(self, path: Path) -> AnchorTable:
        table = self.all_files.get(path)
        if table is None:
            table = self.all_files[path] = AnchorTable(path, str(self.log.against_base_dir(path)))
        return table

    def _found_anchor(self, line: int, name: str):
        problem = self.curr_table.declare(name, Location(self.curr_file, line),
                                          inward_only=self.check_inward_references_only)
        self._record(problem)

    def _found_reference(self, line: int, href: str):
        self.links += 1
        try:
            ref = resolve_reference(self.curr_file, href)
        except InvalidReference as e:
            self.log.error(FindingKind.INVALID_REFERENCE, self.curr_file, line, f"invalid URI: {e}")
            self.invalid_refs += 1
            return

        where = Location(self.curr_file, line)
        if ref.external:
            if ref.scheme and not is_scheme_ok(ref.scheme):
                self.log.error(FindingKind.BAD_SCHEME, self.curr_file, line, f"bad scheme in URI: {ref.scheme}")
                self.bad_schemes += 1
            table = self.all_uris.get(ref.target)
            if table is None:
                table = self.all_uris[ref.target] = AnchorTable(ref.target)
        else:
            table = self._file_table(ref.target)
        self._record(table.reference(ref.fragment, where))

    def _record(self, problem: Optional[AnchorProblem]):
        if problem is None:
            return
        if problem.kind is FindingKind.DUPLICATE_ANCHOR:
            self.duplicate_ids += 1
        elif problem.kind is FindingKind.MISSING_ANCHOR:
            self.missing_ids += 1
        self.log.error(problem.kind, problem.location.path, problem.location.line, problem.message)

    def report(self, reporter):
        missing_files = self.missing_files()
        if missing_files:
            self.log.report("")
            self.log.report(f"Missing files: ({len(missing_files)})")
            for path in missing_files:
                self.log.error(FindingKind.MISSING_FILE, path, None, "missing file",
                               provenance=self.all_files[path].referencing_files(), prefix="in")

        if self.all_uris:
            self.log.report("")
            self.log.report("External URLs:")
            for uri in sorted(self.all_uris, key=uri_sort_key):
                self.log.report(uri)

        anchors = sum(t.referenced_anchor_count() for t in self.all_files.values())
        anchors += sum(t.referenced_anchor_count() for t in self.all_uris.values())

        reporter.start_section("Link Report", self.log)
        reporter.report(False, f"Checked {self.files} files.")
        reporter.report(False, f"Found {self.links} references to {anchors} anchors "
                               f"in {len(self.all_files)} files and {len(self.all_uris)} other URIs.")
        reporter.report(bool(missing_files), "%6d missing files", len(missing_files))
        reporter.report(self.duplicate_ids > 0, "%6d duplicate ids", self.duplicate_ids)
        reporter.report(self.missing_ids > 0, "%6d missing ids", self.missing_ids)
        reporter.report(self.invalid_refs > 0, "%6d invalid references", self.invalid_refs)
        reporter.report(self.bad_schemes > 0, "%6d bad schemes", self.bad_schemes)

        scheme_counts: Dict[str, int] = {}
        host_counts: Dict[str, int] = {}
        for uri in self.all_uris:
            parts = urlsplit(uri)
            if parts.scheme:
                scheme_counts[parts.scheme] = scheme_counts.get(parts.scheme, 0) + 1
            try:
                host = parts.hostname
            except ValueError:
                host = None
            if host:
                host_counts[host] = host_counts.get(host, 0) + 1

        if scheme_counts:
            reporter.report(False, "")
            reporter.report(False, "Schemes")
            for scheme in sorted(scheme_counts):
                reporter.report(not is_scheme_ok(scheme), "%6d %s", scheme_counts[scheme], scheme)

        if host_counts:
            reporter.report(False, "")
            reporter.report(False, "Hosts")
            for host in sorted(host_counts, key=host_sort_key):
                reporter.report(False, "%6d %s", host_counts[host], host)

        reporter.report(False, "")
        reporter.end_section()

    def is_ok(self) -> bool:
        return (self.duplicate_ids == 0
                and self.missing_ids == 0
                and not self.missing_files()
                and self.bad_schemes == 0
                and self.invalid_refs == 0)

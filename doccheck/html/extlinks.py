from __future__ import annotations
import concurrent.futures
import re
import threading
import time
import urllib.request
from dataclasses import dataclass, field
from http import HTTPStatus
from pathlib import Path
from typing import Dict, List, Optional, Pattern
from urllib.parse import urljoin, urlsplit

import requests
from requests.adapters import HTTPAdapter

from .checker import HtmlChecker
from .references import is_scheme_ok, parse_reference, strip_fragment
from ..config import ExtLinkConfig
from ..errors import FindingKind, InvalidReference
from ..log import FindingLog
from ..report.provenance import Location, Provenance
from ..utils.io import normalize_path
from ..utils.logger import logger
from ..utils.telemetry import get_tracer

tracer = get_tracer(__name__)

# Module level so tests can replace it
urlopen = urllib.request.urlopen

# Outcomes of checking one resource
ACCEPTED = "accepted"
BAD_STATUS = "bad-status"
BAD_SCHEME = "bad-scheme"
EXCEPTION = "exception"
NOT_CHECKED = "not-checked"


def status_string(code: int) -> str:
    try:
        name = HTTPStatus(code).phrase
    except ValueError:
        name = "Unknown"
    return f"{code} {name}"


def is_redirect(code: int) -> bool:
    return code // 100 == 3


@dataclass(frozen=True)
class Hop:
    """One response seen while fetching a URL."""
    url: str
    status: int
    location: Optional[str] = None


@dataclass
class UriResult:
    """What a worker found out about one resource. Never shared between threads."""
    uri: str
    outcome: str
    hops: List[Hop] = field(default_factory=list)
    final_url: Optional[str] = None
    content_type: Optional[str] = None
    content_length: Optional[int] = None
    exception: Optional[BaseException] = None


class ExtLinkChecker(HtmlChecker):
    """
    Checks the external links referenced in HTML files.

    References are only indexed while files are visited; every distinct URL
    (fragment removed) is fetched exactly once, in `check_all()`, no matter
    how many files link to it.
    """

    name = "extlinks"

    def __init__(self, log: FindingLog, config: Optional[ExtLinkConfig] = None, session=None):
        self.log = log
        self.cfg = config or ExtLinkConfig()
        self.ignore_urls: List[Pattern] = [re.compile(p) for p in self.cfg.ignore_urls]
        self.ignore_url_redirects = self.cfg.ignore_url_redirects
        self.session = session if session is not None else self._make_session()

        self.all_uris: Dict[str, Provenance] = {}
        self.redirects: Dict[str, str] = {}
        self.files = 0
        self.bad_uris = 0
        self.bad_schemes = 0
        self.invalid_refs = 0
        self.not_checked = 0
        self.host_counts: Dict[str, int] = {}
        self.ignore_url_counts: Dict[str, int] = {}
        self.scheme_counts: Dict[str, int] = {}
        self.exception_counts: Dict[str, int] = {}
        self.exception_instance_counts: Dict[str, int] = {}
        self.status_counts: Dict[str, int] = {}
        self.status_instance_counts: Dict[str, int] = {}

        self.curr_file: Optional[Path] = None
        self._cancelled = threading.Event()
        self._checked = False

    def _make_session(self) -> requests.Session:
        session = requests.Session()
        adapter = HTTPAdapter(pool_connections=self.cfg.workers, pool_maxsize=self.cfg.workers)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers["User-Agent"] = self.cfg.user_agent
        return session

    def start_file(self, path: Path):
        self.curr_file = normalize_path(path)
        self.files += 1

    def end_file(self):
        pass

    def start_element(self, line, name, attrs, self_closing):
        if name in ("a", "link"):
            href = attrs.get("href")
            if href is not None:
                self.record(href, Location(self.curr_file, line))

    def record(self, raw: str, where: Location):
        """Index one reference; only absolute, non-JavaScript URLs are kept."""
        try:
            parts = parse_reference(raw)
        except InvalidReference as e:
            self.log.error(FindingKind.INVALID_REFERENCE, where.path, where.line, f"invalid URI: {e}")
            self.invalid_refs += 1
            return
        if not parts.scheme or parts.scheme == "javascript":
            return
        self.all_uris.setdefault(strip_fragment(raw), Provenance()).add(where)

    def cancel(self):
        """Stop dispatching checks. Checks already running are allowed to finish."""
        self._cancelled.set()

    def check_all(self):
        if self._checked:
            return
        self._checked = True

        to_check = []
        for uri in sorted(self.all_uris):
            refs = self.all_uris[uri]
            if any(p.fullmatch(uri) for p in self.ignore_urls):
                self.ignore_url_counts[uri] = len(refs.files())
            else:
                to_check.append(uri)

        deadline = time.monotonic() + self.cfg.run_timeout if self.cfg.run_timeout is not None else None
        results: Dict[str, UriResult] = {}
        with tracer.start_as_current_span("extlinks.check_all") as span:
            span.set_attribute("uris", len(to_check))
            logger.bind(check=self.name).info(
                f"Checking {len(to_check)} external URLs with {self.cfg.workers} workers...")
            with concurrent.futures.ThreadPoolExecutor(max_workers=self.cfg.workers) as executor:
                futures = {executor.submit(self.check_uri, uri, deadline): uri for uri in to_check}
                try:
                    for future in concurrent.futures.as_completed(futures):
                        results[futures[future]] = future.result()
                except KeyboardInterrupt:
                    logger.bind(check=self.name).warning("Interrupted: waiting for running URL checks to finish")
                    self.cancel()
                    for future in futures:
                        future.cancel()
                    concurrent.futures.wait(futures)
                    for future, uri in futures.items():
                        if not future.cancelled() and future.exception() is None:
                            results[uri] = future.result()

        # Applied on this thread, in URL order, so counts and logs are deterministic
        for uri in to_check:
            self._apply(results.get(uri) or UriResult(uri, NOT_CHECKED))

    def check_uri(self, uri: str, deadline: Optional[float] = None) -> UriResult:
        if self._cancelled.is_set() or (deadline is not None and time.monotonic() >= deadline):
            return UriResult(uri, NOT_CHECKED)
        try:
            scheme = urlsplit(uri).scheme
            if scheme == "ftp":
                return self._check_ftp(uri)
            elif scheme in ("http", "https"):
                return self._check_http(uri)
            return UriResult(uri, BAD_SCHEME)
        except Exception as e:
            return UriResult(uri, EXCEPTION, exception=e)

    def _check_ftp(self, uri: str) -> UriResult:
        with urlopen(uri, timeout=self.cfg.ftp_timeout) as c:
            content_type = c.headers.get("Content-Type")
            length = c.headers.get("Content-Length")
        return UriResult(uri, ACCEPTED, content_type=content_type,
                         content_length=int(length) if length and length.isdigit() else None)

    def _check_http(self, uri: str) -> UriResult:
        response = self.session.get(uri, allow_redirects=True, timeout=self.cfg.timeout, stream=True)
        try:
            hops = [Hop(r.url, r.status_code, r.headers.get("Location")) for r in list(response.history) + [response]]
        finally:
            response.close()
        final = hops[-1]
        ok = final.status == 200 or (is_redirect(final.status) and self.ignore_url_redirects)
        return UriResult(uri, ACCEPTED if ok else BAD_STATUS, hops=hops, final_url=response.url)

    def _apply(self, result: UriResult):
        uri = result.uri
        refs = self.all_uris[uri]
        files = refs.files()
        scheme = urlsplit(uri).scheme
        host = urlsplit(uri).hostname

        if result.outcome == NOT_CHECKED:
            self.not_checked += 1
            return

        if result.outcome == EXCEPTION:
            e = result.exception
            name = type(e).__name__
            self.bad_uris += 1
            self._count(self.exception_counts, name)
            self._count(self.exception_instance_counts, name, len(files))
            self._error(FindingKind.NETWORK_EXCEPTION, refs, f"Exception accessing uri: {uri}\n    [{name}: {e}]")
            return

        if result.outcome == BAD_SCHEME:
            self.bad_schemes += 1
            self._count(self.scheme_counts, scheme)
            self._warn(FindingKind.BAD_SCHEME, refs, f"URI not supported: {uri}")
            return

        if scheme == "ftp":
            logger.bind(check=self.name).debug(f"{uri}: {result.content_type} {result.content_length}")
            if result.content_type == "text/html":
                self._warn(FindingKind.SUSPICIOUS_CONTENT, refs,
                           f"Suspicious content type for {uri}: {result.content_type}")
        else:
            if len(result.hops) > 1:
                if not self.ignore_url_redirects:
                    details = "".join(self._hop_details(h) for h in result.hops[:-1])
                    self._warn(FindingKind.REDIRECT, refs, f"URI redirected: {uri}{details}")
                self.redirects[uri] = result.final_url
            for i, hop in enumerate(result.hops):
                self._count(self.status_counts, status_string(hop.status))
                self._count(self.status_instance_counts, status_string(hop.status), len(files))
                if i > 0 and is_redirect(hop.status) and hop.location:
                    self.redirects[hop.url] = urljoin(hop.url, hop.location)
            final = result.hops[-1]
            if is_redirect(final.status) and final.location:
                self.redirects[uri] = urljoin(final.url, final.location)
            if result.outcome == BAD_STATUS:
                self.bad_uris += 1
                self._error(FindingKind.BAD_HTTP_STATUS, refs, f"HTTP status {status_string(final.status)}: {uri}")

        self._count(self.scheme_counts, scheme)
        if host:
            self._count(self.host_counts, host)

    @staticmethod
    def _hop_details(hop: Hop) -> str:
        text = f"\n    [{status_string(hop.status)}"
        if hop.location:
            text += f", {hop.location}"
        return text + "]"

    def _error(self, kind: FindingKind, refs: Provenance, message: str):
        first = refs.first()
        self.log.error(kind, first.path, first.line, message, provenance=refs.others())

    def _warn(self, kind: FindingKind, refs: Provenance, message: str):
        first = refs.first()
        self.log.warn(kind, first.path, first.line, message, provenance=refs.others())

    @staticmethod
    def _count(counts: Dict[str, int], key: str, incr: int = 1):
        counts[key] = counts.get(key, 0) + incr

    def is_status_ok(self, status: str) -> bool:
        m = re.match(r"([0-9]+)", status)
        if not m:
            return False
        code = int(m.group(1))
        if code in (200, 302, 307):
            return True
        return self.ignore_url_redirects and is_redirect(code)

    def report(self, reporter):
        self.check_all()

        reporter.start_section("External Link Report", self.log)
        reporter.report(False, f"Checked {self.files} files.")
        reporter.report(False, f"Found references to {len(self.all_uris)} external URIs.")
        if self.not_checked:
            reporter.report(True, "%6d URIs not checked (cancelled)", self.not_checked)
        if self.invalid_refs:
            reporter.report(True, "%6d invalid references", self.invalid_refs)

        if self.redirects:
            reporter.start_table("Redirects", ["URL", "Redirected to"])
            for url in sorted(self.redirects):
                reporter.add_table_row([url, self.redirects[url]])
            reporter.end_table()

        self._report_counts(reporter, "Ignored URLs", self.ignore_url_counts, lambda k: False)
        self._report_counts(reporter, "Schemes", self.scheme_counts, lambda k: not is_scheme_ok(k))
        self._report_counts(reporter, "Hosts", self.host_counts, lambda k: False)
        self._report_counts(reporter, "Exceptions", self.exception_counts, lambda k: True)
        self._report_counts(reporter, "Exception Instances", self.exception_instance_counts, lambda k: True)
        self._report_counts(reporter, "Http Status", self.status_counts, lambda k: not self.is_status_ok(k))
        self._report_counts(reporter, "Http Status Instances", self.status_instance_counts,
                            lambda k: not self.is_status_ok(k))

        reporter.report(False, "")
        reporter.end_section()

    @staticmethod
    def _report_counts(reporter, title: str, counts: Dict[str, int], highlight):
        if not counts:
            return
        reporter.report(False, "")
        reporter.report(False, title)
        for key in sorted(counts):
            reporter.report(highlight(key), "%6d %s", counts[key], key)

    def is_ok(self) -> bool:
        self.check_all()
        return self.bad_uris == 0 and self.invalid_refs == 0 and self.not_checked == 0

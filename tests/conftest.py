from __future__ import annotations

import socket
import threading
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from doccheck.html.file_checker import HtmlFileChecker
from doccheck.html.links import LinkChecker
from doccheck.log import FindingLog


@pytest.fixture(autouse=True)
def no_network(monkeypatch: pytest.MonkeyPatch) -> None:
    def _blocked(*_args: object, **_kwargs: object) -> socket.socket:
        raise RuntimeError("network disabled in tests")

    def _blocked_connect(*_args: object, **_kwargs: object) -> None:
        raise RuntimeError("network disabled in tests")

    monkeypatch.setattr(socket, "create_connection", _blocked)
    monkeypatch.setattr(socket.socket, "connect", _blocked_connect)


def page(body: str) -> str:
    """A small HTML document; the body starts on line 2."""
    return f"<!DOCTYPE html>\n{body}\n"


@pytest.fixture
def write_html(tmp_path: Path):
    def _write(name: str, body: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(page(body), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def links_log(tmp_path: Path):
    log = FindingLog("links", base_dir=tmp_path)
    yield log
    log.close()


def visit(checker: LinkChecker, *paths: Path) -> None:
    file_checker = HtmlFileChecker(checker.log, [checker])
    for p in paths:
        file_checker.check_file(p)


class FakeResponse:
    def __init__(self, url: str, status_code: int, location: Optional[str] = None,
                 history: Optional[List["FakeResponse"]] = None):
        self.url = url
        self.status_code = status_code
        self.headers: Dict[str, str] = {"Location": location} if location else {}
        self.history = history or []
        self.closed = False

    def close(self) -> None:
        self.closed = True


class FakeSession:
    """Answers `get` from a table of url -> response, or raises the mapped exception."""

    def __init__(self, responses: Dict[str, object]):
        self.responses = responses
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def get(self, url, allow_redirects=True, timeout=None, stream=False):
        with self._lock:
            self.calls.append(url)
        answer = self.responses.get(url)
        if answer is None:
            return FakeResponse(url, 200)
        if isinstance(answer, BaseException):
            raise answer
        return answer

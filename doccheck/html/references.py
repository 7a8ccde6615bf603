"""
Reference resolution: turn the raw value of an `href` into a target identity.

Relative references resolve to a normalized absolute file path; references
with a scheme are external and keep their text, minus the fragment, as their
identity.
"""
from __future__ import annotations
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
from urllib.parse import SplitResult, unquote, urlsplit

from ..errors import InvalidReference

# Characters that may never appear unescaped in a URI reference
_ILLEGAL_CHARS = re.compile(r'[\s\x00-\x1f\x7f<>"{}|\\^`]')
_BAD_ESCAPE = re.compile(r'%(?![0-9A-Fa-f]{2})')

ALLOWED_SCHEMES = {"ftp", "http", "https", "javascript"}


@dataclass(frozen=True)
class Reference:
    target: Union[Path, str]
    fragment: Optional[str]
    # "" for network-path references (//host/path), which inherit the page's scheme
    scheme: Optional[str] = None

    @property
    def external(self) -> bool:
        return self.scheme is not None


def is_scheme_ok(scheme: Optional[str]) -> bool:
    return scheme is None or scheme in ALLOWED_SCHEMES


def parse_reference(raw: str) -> SplitResult:
    """Parse a URI reference, raising InvalidReference for malformed input."""
    ref = raw.strip()
    m = _ILLEGAL_CHARS.search(ref)
    if m:
        raise InvalidReference(f"Illegal character {m.group()!r} at index {m.start()}: {ref}")
    m = _BAD_ESCAPE.search(ref)
    if m:
        raise InvalidReference(f"Malformed escape pair at index {m.start()}: {ref}")
    if ref.count("#") > 1:
        raise InvalidReference(f"Illegal character '#' in fragment at index {ref.rindex('#')}: {ref}")
    try:
        return urlsplit(ref)
    except ValueError as e:
        raise InvalidReference(f"{e}: {ref}") from e


def strip_fragment(raw: str) -> str:
    return raw.strip().partition("#")[0]


def resolve_reference(current: Path, raw: str) -> Reference:
    """
    Resolve `raw` as found in document `current`.

    References with a scheme or a host are external. An empty path targets
    `current` itself; otherwise the path is resolved against the directory of
    `current` and normalized. A non-empty fragment names the anchor, else the
    whole document is targeted.
    """
    parts = parse_reference(raw)
    fragment = unquote(parts.fragment) if parts.fragment else None
    if parts.scheme:
        return Reference(target=strip_fragment(raw), fragment=fragment, scheme=parts.scheme.lower())
    if parts.netloc:
        return Reference(target=strip_fragment(raw), fragment=fragment, scheme="")
    if not parts.path:
        target = current
    else:
        target = Path(os.path.normpath(current.parent / unquote(parts.path)))
    return Reference(target=target, fragment=fragment)


def host_sort_key(host: str) -> str:
    """Order hosts by their labels read right to left (com.example.docs)."""
    return ".".join(reversed(host.split(".")))


def uri_sort_key(uri: str):
    """Group URIs by reversed host, then scheme; opaque URIs sort last."""
    try:
        parts = urlsplit(uri)
        host = parts.hostname
    except ValueError:
        return (1, "", "", uri)
    if host and parts.scheme:
        return (0, host_sort_key(host), parts.scheme, uri)
    return (1, "", "", uri)

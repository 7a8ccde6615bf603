from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple


class FindingKind(str, Enum):
    INVALID_REFERENCE = "invalid-reference"
    DUPLICATE_ANCHOR = "duplicate-anchor"
    MISSING_ANCHOR = "missing-anchor"
    MISSING_FILE = "missing-file"
    BAD_SCHEME = "bad-scheme"
    BAD_HTTP_STATUS = "bad-http-status"
    NETWORK_EXCEPTION = "network-exception"
    REDIRECT = "redirect"
    SUSPICIOUS_CONTENT = "suspicious-content"
    UNREADABLE_FILE = "unreadable-file"


@dataclass(frozen=True)
class Finding:
    """A single defect found while checking, with the files that led to it."""
    kind: FindingKind
    path: Path
    line: Optional[int]
    message: str
    provenance: Tuple[Path, ...] = field(default_factory=tuple)


class ContractViolation(RuntimeError):
    """The declare/check protocol of an anchor table was broken by its driver."""


class InvalidReference(ValueError):
    """A reference string could not be parsed as a URI reference."""


class BadArgs(Exception):
    pass

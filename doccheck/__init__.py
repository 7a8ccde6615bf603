from .config import DocCheckConfig, ExtLinkConfig
from .errors import Finding, FindingKind, ContractViolation, InvalidReference, BadArgs
from .html import LinkChecker, ExtLinkChecker, HtmlFileChecker, AnchorTable, TableState
from .runner import DocChecker, RunResult

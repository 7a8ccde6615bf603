from .checker import HtmlChecker
from .anchors import AnchorRecord, AnchorTable, TableState
from .references import Reference, resolve_reference
from .links import LinkChecker
from .extlinks import ExtLinkChecker
from .file_checker import HtmlFileChecker

__all__ = [
    'HtmlChecker',
    'AnchorRecord',
    'AnchorTable',
    'TableState',
    'Reference',
    'resolve_reference',
    'LinkChecker',
    'ExtLinkChecker',
    'HtmlFileChecker',
]

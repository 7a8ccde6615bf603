from __future__ import annotations
import re
from pathlib import Path
from typing import Dict, Iterator, List, Sequence, Tuple

from bs4 import BeautifulSoup
from bs4.element import Doctype, ProcessingInstruction, Tag

from .checker import HtmlChecker
from ..errors import FindingKind
from ..log import FindingLog
from ..utils.io import normalize_path, read_text_file
from ..utils.logger import logger

_XML_ATTR = re.compile(r'([\w:.-]+)\s*=\s*(?:"([^"]*)"|\'([^\']*)\')')


def parse_html(text: str) -> BeautifulSoup:
    # html.parser is the builder that records source line numbers
    return BeautifulSoup(text, "html.parser", multi_valued_attributes=None)


def html_events(soup: BeautifulSoup) -> Iterator[Tuple[str, tuple]]:
    """
    Yield (event, args) pairs for a parsed document, in document order.

    Walks the tree with an explicit stack so deeply nested markup cannot hit
    the recursion limit. The parsed tree keeps no position for closing tags
    (and implied ones have none), so an `end_element` event carries the line
    of its start tag.
    """
    line = 1
    open_tags: List[Tag] = []
    pending = [iter(soup.contents)]
    while pending:
        node = next(pending[-1], None)
        if node is None:
            pending.pop()
            if open_tags:
                tag = open_tags.pop()
                yield "end_element", (tag.sourceline or line, tag.name)
            continue

        if isinstance(node, Doctype):
            yield "doctype", (line, str(node))
        elif isinstance(node, ProcessingInstruction):
            text = str(node)
            if text.lower().startswith("xml"):
                attrs = {m.group(1): m.group(2) if m.group(2) is not None else m.group(3)
                         for m in _XML_ATTR.finditer(text)}
                yield "xml", (line, attrs)
        elif isinstance(node, Tag):
            line = node.sourceline or line
            attrs: Dict[str, str] = {k: v for k, v in node.attrs.items()}
            yield "start_element", (line, node.name, attrs, node.is_empty_element)
            if not node.is_empty_element:
                open_tags.append(node)
                pending.append(iter(node.contents))


class HtmlFileChecker:
    """Reads HTML files and feeds their structural events to a set of checkers."""

    def __init__(self, log: FindingLog, checkers: Sequence[HtmlChecker]):
        self.log = log
        self.checkers = list(checkers)

    def check_file(self, path: Path):
        path = normalize_path(path)
        soup = None
        try:
            soup = parse_html(read_text_file(path))
        except Exception as e:
            self.log.error(FindingKind.UNREADABLE_FILE, path, None, f"cannot read file: {e}")

        for checker in self.checkers:
            checker.start_file(path)
        if soup is not None:
            for event, args in html_events(soup):
                for checker in self.checkers:
                    getattr(checker, event)(*args)
        for checker in self.checkers:
            checker.end_file()
        logger.bind(check="html").debug(f"Checked {path}")

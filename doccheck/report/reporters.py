from __future__ import annotations
import html
import json
import os
import re
import sys
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO

_URL = re.compile(r"https?:\S+")


class Reporter(ABC):
    """
    Sink for the summary sections written by checkers.

    Every line carries a `highlight` flag marking it as a failure; it only
    affects presentation.
    """

    def __init__(self, out: TextIO, owns_stream: bool = False):
        self.out = out
        self._owns_stream = owns_stream

    @abstractmethod
    def start_section(self, name: str, log=None):
        pass

    @abstractmethod
    def end_section(self):
        pass

    @abstractmethod
    def start_table(self, caption: str, headers: List[str]):
        pass

    @abstractmethod
    def add_table_row(self, values: List[str]):
        pass

    def end_table(self):
        pass

    @abstractmethod
    def report(self, highlight: bool, fmt: str, *args):
        pass

    def close(self):
        if self._owns_stream:
            self.out.close()
        else:
            self.out.flush()

    @staticmethod
    def format(fmt: str, args) -> str:
        return fmt % args if args else fmt


class TextReporter(Reporter):
    def __init__(self, out: TextIO, owns_stream: bool = False):
        super().__init__(out, owns_stream)
        self._headers: List[str] = []
        self._head_width = 0

    def start_section(self, name, log=None):
        self.out.write(f"*** {name} ***\n\n")

    def end_section(self):
        self.out.write("\n")

    def start_table(self, caption, headers):
        self.out.write(f"{caption}\n")
        self._headers = list(headers)
        self._head_width = max((len(h) for h in headers), default=0)

    def add_table_row(self, values):
        for i, value in enumerate(values):
            if i < len(self._headers):
                self.out.write(f"{self._headers[i]:<{self._head_width}}:  ")
            self.out.write(f"{value}\n")
        for header in self._headers[len(values):]:
            self.out.write(f"{header:<{self._head_width}}: \n")
        self.out.write("\n")

    def report(self, highlight, fmt, *args):
        self.out.write(self.format(fmt, args) + "\n")


class HtmlReporter(Reporter):
    STYLE = (
        "table { margin: 10px 0 }\n"
        "table { font-family: \"sans\"; font-size: 10pt }\n"
        "table, thead { border: 1px solid black; border-collapse: collapse }\n"
        "th { text-align:left; font-weight: normal; }\n"
        "th, td { border-left: 1px solid black; padding: 1px 5px }\n"
        "thead tr { background-color: #ddd }\n"
        "tbody tr:nth-child(even) { background-color: #eee }\n"
        "tbody tr:nth-child(odd) { background-color: #fff }"
    )

    def __init__(self, out: TextIO, title: str, owns_stream: bool = False):
        super().__init__(out, owns_stream)
        w = self.out.write
        w("<!doctype html>\n")
        w("<html lang=\"en\">\n<head>\n")
        w(f"<title>{self.encode(title)}</title>\n")
        w(f"<style>\n{self.STYLE}\n</style>\n")
        w("</head>\n<body>\n")
        w(f"<h1>{self.encode(title)}</h1>\n")

    @staticmethod
    def encode(s: str) -> str:
        return html.escape(s, quote=False)

    def start_section(self, name, log=None):
        self.out.write(f"<h2>{self.encode(name)}</h2>\n")
        if log is not None and log.file is not None and not log.is_empty():
            self.out.write(f"<p><a href=\"{html.escape(log.file.name)}\" "
                           f"type=\"text/plain; charset=utf-8\">Details</a></p>\n")
        self.out.write("<pre>\n")

    def end_section(self):
        self.out.write("</pre>\n")

    def start_table(self, caption, headers):
        self.out.write("<table>\n")
        self.out.write(f"<caption>{self.encode(caption)}</caption>\n")
        self.out.write("<thead>\n<tr>")
        self.out.write("".join(f"<th>{self.encode(h)}" for h in headers))
        self.out.write("\n</thead><tbody>\n")

    def add_table_row(self, values):
        self.out.write("<tr>")
        for value in values:
            self.out.write("<td style=\"white-space:pre-line\">")
            self.out.write(_URL.sub(lambda m: f"<a href=\"{m.group()}\">{m.group()}</a>", self.encode(value)))
        self.out.write("\n")

    def end_table(self):
        self.out.write("</tbody>\n</table>\n")

    def report(self, highlight, fmt, *args):
        text = self.encode(self.format(fmt, args))
        if highlight:
            text = f"<span style=\"background-color: yellow\">{text}</span>"
        self.out.write(text + "\n")

    def close(self):
        self.out.write("<hr>\n")
        self.out.write(f"<small>Generated at {time.strftime('%Y-%m-%d %H:%M:%S')}</small>\n")
        self.out.write("</body>\n</html>\n")
        super().close()


class JsonReporter(Reporter):
    """Collects sections in memory and writes them as one JSON document on close."""

    def __init__(self, out: Optional[TextIO], title: str, owns_stream: bool = False):
        super().__init__(out, owns_stream)
        self.title = title
        self.sections: List[Dict[str, Any]] = []
        self._table: Optional[Dict[str, Any]] = None

    def start_section(self, name, log=None):
        self.sections.append({
            "name": name,
            "log": str(log.file) if log is not None and log.file is not None else None,
            "lines": [],
            "tables": [],
        })

    def end_section(self):
        pass

    def start_table(self, caption, headers):
        self._table = {"caption": caption, "headers": list(headers), "rows": []}
        self.sections[-1]["tables"].append(self._table)

    def add_table_row(self, values):
        self._table["rows"].append(list(values))

    def end_table(self):
        self._table = None

    def report(self, highlight, fmt, *args):
        self.sections[-1]["lines"].append({"text": self.format(fmt, args), "highlight": bool(highlight)})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "generated_at": time.strftime("%Y-%m-%d %H:%M:%S"),
            "sections": self.sections,
        }

    def close(self):
        if self.out is None:
            return
        json.dump(self.to_dict(), self.out, ensure_ascii=False, indent=2)
        self.out.write("\n")
        super().close()


def open_reporter(report: Optional[str], title: str) -> Reporter:
    """
    Pick a reporter for the destination: stdout text when none is given,
    `report.html` inside an existing directory, else by file extension.
    """
    if report is None:
        return TextReporter(sys.stdout)
    path = Path(report)
    if path.is_dir():
        path = path / "report.html"
    elif path.parent and not path.parent.exists():
        os.makedirs(path.parent, exist_ok=True)
    out = open(path, "w", encoding="utf-8")
    suffix = path.suffix.lower()
    if suffix == ".html":
        return HtmlReporter(out, title, owns_stream=True)
    if suffix == ".json":
        return JsonReporter(out, title, owns_stream=True)
    return TextReporter(out, owns_stream=True)

import io
import json

from doccheck.log import FindingLog
from doccheck.report.reporters import (
    HtmlReporter,
    JsonReporter,
    TextReporter,
    open_reporter,
)


def write_sample(reporter):
    reporter.start_section("Link Report")
    reporter.report(False, "Checked %d files.", 3)
    reporter.report(True, "%6d missing ids", 2)
    reporter.start_table("Redirects", ["URL", "Redirected to"])
    reporter.add_table_row(["http://a.example/old", "http://a.example/new"])
    reporter.end_table()
    reporter.end_section()


def test_text_reporter():
    out = io.StringIO()
    write_sample(TextReporter(out))
    text = out.getvalue()
    assert text.startswith("*** Link Report ***\n\n")
    assert "Checked 3 files.\n" in text
    assert "     2 missing ids\n" in text
    assert "Redirects\n" in text
    assert "URL          :  http://a.example/old\n" in text
    assert "Redirected to:  http://a.example/new\n" in text


def test_html_reporter_escapes_highlights_and_links():
    out = io.StringIO()
    reporter = HtmlReporter(out, "Docs <beta>")
    write_sample(reporter)
    reporter.report(False, "a < b & c")
    reporter.close()
    page = out.getvalue()
    assert "<title>Docs &lt;beta&gt;</title>" in page
    assert "<h2>Link Report</h2>" in page
    assert '<span style="background-color: yellow">     2 missing ids</span>' in page
    assert '<a href="http://a.example/old">http://a.example/old</a>' in page
    assert "a &lt; b &amp; c" in page
    assert page.rstrip().endswith("</html>")


def test_html_reporter_links_non_empty_log(tmp_path):
    log = FindingLog("links", file=tmp_path / "links.log")
    log.report("something")
    out = io.StringIO()
    HtmlReporter(out, "t").start_section("Link Report", log)
    log.close()
    assert '<a href="links.log"' in out.getvalue()


def test_json_reporter_structure():
    out = io.StringIO()
    reporter = JsonReporter(out, "Docs")
    write_sample(reporter)
    reporter.close()
    doc = json.loads(out.getvalue())
    assert doc["title"] == "Docs"
    section = doc["sections"][0]
    assert section["name"] == "Link Report"
    assert section["lines"] == [
        {"text": "Checked 3 files.", "highlight": False},
        {"text": "     2 missing ids", "highlight": True},
    ]
    assert section["tables"] == [{
        "caption": "Redirects",
        "headers": ["URL", "Redirected to"],
        "rows": [["http://a.example/old", "http://a.example/new"]],
    }]


def test_open_reporter_picks_by_destination(tmp_path):
    assert isinstance(open_reporter(None, "t"), TextReporter)

    html = open_reporter(str(tmp_path / "out.html"), "t")
    json_ = open_reporter(str(tmp_path / "nested" / "out.json"), "t")
    text = open_reporter(str(tmp_path / "out.txt"), "t")
    in_dir = open_reporter(str(tmp_path), "t")
    for reporter in (html, json_, text, in_dir):
        reporter.start_section("S")
        reporter.report(False, "line")
        reporter.end_section()
        reporter.close()

    assert isinstance(html, HtmlReporter)
    assert isinstance(json_, JsonReporter)
    assert isinstance(text, TextReporter)
    assert isinstance(in_dir, HtmlReporter)
    assert (tmp_path / "report.html").exists()
    assert json.loads((tmp_path / "nested" / "out.json").read_text(encoding="utf-8"))["sections"][0]["name"] == "S"
    assert (tmp_path / "out.txt").read_text(encoding="utf-8") == "*** S ***\n\nline\n\n"

import json

import pytest

from conftest import FakeResponse, FakeSession

from doccheck.config import DocCheckConfig
from doccheck.errors import BadArgs, FindingKind
from doccheck.html.extlinks import ExtLinkChecker
from doccheck.html.links import LinkChecker
from doccheck.runner import DocChecker, decode_checks


@pytest.mark.parametrize("keys, expected", [
    (["links"], ["links"]),
    (["all"], ["links", "extlinks"]),
    (["all", "-extlinks"], ["links"]),
    (["extlinks,links"], ["links", "extlinks"]),
    (["all", "none"], []),
    (["none", "extlinks"], ["extlinks"]),
])
def test_decode_checks(keys, expected):
    assert decode_checks(keys) == expected


def test_unknown_check_is_bad_args():
    with pytest.raises(BadArgs):
        decode_checks(["spelling"])


@pytest.fixture
def site(write_html, tmp_path):
    write_html("docs/index.html", '<a href="guide.html#install">install</a>\n<a href="https://h.example/old">ext</a>')
    write_html("docs/guide.html", '<h2 id="install">Install</h2>\n<a href="../api/ref.html#f">f</a>')
    write_html("docs/drafts/wip.html", '<a href="missing.html">todo</a>')
    write_html("api/ref.html", '<p id="f">f</p>\n<p id="g">g</p>\n<p id="g">g</p>')
    return tmp_path


def test_clean_run(site):
    cfg = DocCheckConfig(files=["docs"], base_dir=str(site), exclude=["docs/drafts"],
                         report=str(site / "out" / "report.json"))
    result = DocChecker(cfg).run()

    assert result.ok
    assert result.files == 2
    assert result.errors == 0
    [links] = result.checkers
    assert isinstance(links, LinkChecker)
    # the deferred pass read api/ref.html without reporting its unreferenced duplicate
    assert links.unchecked_files() == []

    report = json.loads((site / "out" / "report.json").read_text(encoding="utf-8"))
    assert [s["name"] for s in report["sections"]] == ["Link Report"]
    assert (site / "out" / "report-links.log").exists()


def test_excluded_tree_is_checked_when_included(site):
    cfg = DocCheckConfig(files=["docs"], base_dir=str(site), report=str(site / "report.json"))
    result = DocChecker(cfg).run()

    assert not result.ok
    [links] = result.checkers
    missing = links.log.findings_of(FindingKind.MISSING_FILE)
    assert [f.path for f in missing] == [site / "docs" / "drafts" / "missing.html"]
    log_text = (site / "report-links.log").read_text(encoding="utf-8")
    assert "Missing files: (1)" in log_text


def test_overlapping_roots_visit_each_file_once(site):
    cfg = DocCheckConfig(files=["docs", "docs/guide.html", "docs"], base_dir=str(site),
                         exclude=["docs/drafts"], report=str(site / "r.json"))
    result = DocChecker(cfg).run()
    assert result.files == 2
    assert result.ok


def test_skip_subdirs(site):
    cfg = DocCheckConfig(files=["docs"], base_dir=str(site), skip_subdirs=True, report=str(site / "r.json"))
    result = DocChecker(cfg).run()
    assert result.files == 2
    assert result.ok


def test_all_checks_with_redirect_warning(site):
    old, new = "https://h.example/old", "https://h.example/new"
    session = FakeSession({old: FakeResponse(new, 200, history=[FakeResponse(old, 301, location=new)])})
    cfg = DocCheckConfig(checks=["all"], files=["docs"], base_dir=str(site), exclude=["docs/drafts"],
                         report=str(site / "out"))
    (site / "out").mkdir()

    result = DocChecker(cfg, session=session).run()

    assert result.ok
    assert result.warnings == 1
    assert session.calls == [old]
    ext = next(c for c in result.checkers if isinstance(c, ExtLinkChecker))
    assert ext.redirects == {old: new}
    assert (site / "out" / "report.html").exists()
    assert (site / "out" / "extlinks.log").exists()
    assert "URI redirected" in (site / "out" / "extlinks.log").read_text(encoding="utf-8")


def test_missing_input_is_bad_args(tmp_path):
    with pytest.raises(BadArgs):
        DocChecker(DocCheckConfig(files=[str(tmp_path / "nowhere")])).run()
    with pytest.raises(BadArgs):
        DocChecker(DocCheckConfig(files=[])).run()

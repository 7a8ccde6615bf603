from pathlib import Path

import pytest

from doccheck.errors import InvalidReference
from doccheck.html.references import (
    host_sort_key,
    is_scheme_ok,
    resolve_reference,
    strip_fragment,
    uri_sort_key,
)

CURRENT = Path("/docs/a/b.html")


def test_relative_reference_resolves_against_current_directory():
    ref = resolve_reference(CURRENT, "../x.html#frag")
    assert ref.target == Path("/docs/x.html")
    assert ref.fragment == "frag"
    assert not ref.external


def test_sibling_reference_without_fragment_targets_whole_document():
    ref = resolve_reference(CURRENT, "c.html")
    assert ref.target == Path("/docs/a/c.html")
    assert ref.fragment is None


def test_fragment_only_reference_targets_current_document():
    ref = resolve_reference(CURRENT, "#top")
    assert ref.target == CURRENT
    assert ref.fragment == "top"


def test_empty_reference_targets_current_document():
    ref = resolve_reference(CURRENT, "")
    assert ref.target == CURRENT
    assert ref.fragment is None


def test_percent_escapes_are_decoded():
    ref = resolve_reference(CURRENT, "sp%20ace.html#a%20b")
    assert ref.target == Path("/docs/a/sp ace.html")
    assert ref.fragment == "a b"


def test_surrounding_whitespace_is_ignored():
    ref = resolve_reference(CURRENT, "  c.html#x\n")
    assert ref.target == Path("/docs/a/c.html")
    assert ref.fragment == "x"


def test_absolute_reference_is_external_without_fragment():
    ref = resolve_reference(CURRENT, "HTTP://example.com/page#sec")
    assert ref.external
    assert ref.scheme == "http"
    assert ref.target == "HTTP://example.com/page"
    assert ref.fragment == "sec"


@pytest.mark.parametrize("raw", [
    "a b.html",
    "x.html#a#b",
    "bad%zzescape.html",
    "http://[::1/page",
    "<x>.html",
])
def test_malformed_references_raise(raw):
    with pytest.raises(InvalidReference):
        resolve_reference(CURRENT, raw)


def test_strip_fragment():
    assert strip_fragment("http://h/p?q=1#f") == "http://h/p?q=1"
    assert strip_fragment("http://h/p") == "http://h/p"


def test_scheme_allow_list():
    assert is_scheme_ok("https")
    assert is_scheme_ok("javascript")
    assert is_scheme_ok(None)
    assert not is_scheme_ok("mailto")


def test_hosts_sort_by_reversed_labels():
    hosts = ["docs.example.org", "a.example.com", "b.example.com"]
    assert sorted(hosts, key=host_sort_key) == ["a.example.com", "b.example.com", "docs.example.org"]
    assert host_sort_key("docs.example.org") == "org.example.docs"


def test_uris_group_by_host_then_scheme_with_opaque_last():
    uris = ["mailto:someone@example.com", "https://b.example.org/x", "https://a.example.com/", "http://a.example.com/"]
    assert sorted(uris, key=uri_sort_key) == [
        "http://a.example.com/",
        "https://a.example.com/",
        "https://b.example.org/x",
        "mailto:someone@example.com",
    ]


def test_relative_resolution_round_trips():
    ref = resolve_reference(CURRENT, "../x.html#frag")
    back = resolve_reference(ref.target, "a/b.html")
    assert back.target == CURRENT


def test_network_path_reference_is_external():
    ref = resolve_reference(CURRENT, "//cdn.example.com/lib.js#v2")
    assert ref.external
    assert ref.scheme == ""
    assert ref.target == "//cdn.example.com/lib.js"
    assert ref.fragment == "v2"

"""Unit tests for core/utils/links.py"""

import pytest

from atlasdoc.core.utils.links import build_issue_url, resolve_url


BASE = "https://acme.example/wiki"


def test_build_issue_url():
    """Issue keys are appended under /browse with no doubled slash."""
    assert build_issue_url("https://acme.example/", "ABC-1") == "https://acme.example/browse/ABC-1"


@pytest.mark.parametrize("path, expected", [
    ("https://other.example/x", "https://other.example/x"),
    ("HTTP://other.example/x", "HTTP://other.example/x"),
    ("", BASE),
    ("spaces/ENG", f"{BASE}/spaces/ENG"),
    ("/spaces/ENG", f"{BASE}/spaces/ENG"),
    ("/wiki/spaces/ENG", f"{BASE}/spaces/ENG"),
])
def test_resolve_url(path, expected):
    """Absolute URLs pass through and relative paths join the base once."""
    assert resolve_url(BASE, path) == expected


def test_resolve_url_trailing_slash_base():
    """A trailing slash on the base is not doubled."""
    assert resolve_url("https://acme.example/", "/x") == "https://acme.example/x"

"""Unit tests for core/inline.py"""

from atlasdoc.core.inline import BOLD, INLINE_PATTERNS, LINE_PATTERNS, iter_matches


def _names(text, patterns=INLINE_PATTERNS):
    return [(p.name if p else None, m.group(0) if p else m) for p, m in iter_matches(text, patterns)]


def test_iter_matches_splits_plain_runs():
    """Plain text around a match is yielded as (None, run) pairs."""
    assert _names("a **b** c") == [(None, "a "), ("bold", "**b**"), (None, " c")]


def test_iter_matches_no_match_yields_whole_text():
    """Text with no inline syntax comes back as one plain run."""
    assert _names("just words") == [(None, "just words")]


def test_iter_matches_earliest_offset_wins():
    """The match starting first wins regardless of pattern order."""
    assert _names("x *a* **b**")[1] == ("italic", "*a*")


def test_iter_matches_tie_goes_to_earlier_pattern():
    """At the same offset the higher-precedence pattern wins."""
    assert _names("***x***") == [("bold_italic", "***x***")]


def test_iter_matches_code_beats_emphasis():
    """Emphasis markers inside a code span are not parsed."""
    assert _names("`**x**`") == [("code", "`**x**`")]


def test_iter_matches_ignores_intraword_underscores():
    """Underscores inside a word never open emphasis."""
    assert _names("snake_case_name") == [(None, "snake_case_name")]


def test_iter_matches_underscore_emphasis():
    """Underscore emphasis works at word boundaries."""
    assert _names("an _em_ word")[1] == ("italic", "_em_")


def test_iter_matches_image_before_link():
    """An image starts one character before the link it contains."""
    assert _names("![alt](p.png)") == [("image", "![alt](p.png)")]


def test_iter_matches_restricted_pattern_list():
    """Only the supplied patterns are considered."""
    assert _names("*a* **b**", [BOLD]) == [(None, "*a* "), ("bold", "**b**")]


def test_line_patterns_leave_bare_urls_alone():
    """Line highlighting does not turn bare URLs into links."""
    assert _names("go to https://example.com now", LINE_PATTERNS) == [(None, "go to https://example.com now")]


def test_iter_matches_link_around_image():
    """A link whose text is an image matches as one link."""
    assert _names("[![badge](http://img/b.svg)](http://ci)") == [
        ("link", "[![badge](http://img/b.svg)](http://ci)"),
    ]

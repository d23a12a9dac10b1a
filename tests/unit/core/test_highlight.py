"""Unit tests for core/highlight.py"""

import pytest

from atlasdoc.config import Settings
from atlasdoc.core.highlight import (
    detect_code_block,
    highlight_code_line,
    highlight_line,
    highlight_lines,
    segments_to_ansi,
)
from atlasdoc.core.models import StyledSegment as S
from atlasdoc.core.styles import HIGHLIGHT_COLORS as C


def test_highlight_empty_line():
    """An empty line is a single space so the row keeps its height."""
    assert highlight_line("") == [S(" ")]


@pytest.mark.parametrize("level", range(1, 7))
def test_highlight_heading_levels(level):
    """Each heading level gets its own color."""
    line = "#" * level + " Title"
    assert highlight_line(line) == [S(line, C[f"h{level}"])]


def test_highlight_rule():
    """Thematic breaks are dimmed."""
    assert highlight_line("***") == [S("***", C["rule"])]


def test_highlight_quote_colors():
    """Quotes use a bar and italic text colored by admonition."""
    assert highlight_line("> [!tip] nice") == [S("│ ", "bold green"), S("[!tip] nice", "italic green")]
    assert highlight_line("> plain") == [S("│ ", "bold bright_black"), S("plain", "italic bright_black")]
    assert highlight_line("> [!Caution] hot")[0] == S("│ ", "bold magenta")


def test_highlight_list_item():
    """List markers are colored and the rest is scanned inline."""
    assert highlight_line("- item **b**") == [S("- ", C["list_marker"]), S("item "), S("**b**", C["bold"])]


def test_highlight_task_items():
    """Task boxes show a check mark when done and a blank box when pending."""
    assert highlight_line("- [x] done") == [
        S("- ", C["list_marker"]), S("[✓]", C["task_done"]), S(" "), S("done"),
    ]
    assert highlight_line("  1. [ ] todo") == [
        S("  "), S("1. ", C["list_marker"]), S("[ ]", C["task_pending"]), S(" "), S("todo"),
    ]


def test_highlight_fence_marker():
    """Fence markers are grey with a cyan language."""
    assert highlight_line("```python") == [S("```", C["code_fence"]), S("python", C["code_lang"])]
    assert highlight_line("~~~") == [S("~~~", C["code_fence"])]


def test_highlight_inline_elements():
    """Whole inline elements get their element style."""
    assert highlight_line("a **b** `c` ~~d~~ <br>") == [
        S("a "), S("**b**", C["bold"]), S(" "), S("`c`", C["code"]), S(" "),
        S("~~d~~", C["strike"]), S(" "), S("<br>", C["html"]),
    ]


def test_highlight_link_parts():
    """Links split into brackets, text and target."""
    assert highlight_line("see [x](http://e)") == [
        S("see "),
        S("[", C["link_brackets"]), S("x", C["link"]), S("](", C["link_brackets"]),
        S("http://e", C["link_url"]), S(")", C["link_brackets"]),
    ]


def test_highlight_image_and_reference_parts():
    """Images and reference links split the same way as links."""
    assert [s.text for s in highlight_line("![a](p.png)")] == ["![", "a", "](", "p.png", ")"]
    assert [s.text for s in highlight_line("[x][ref]")] == ["[", "x", "][", "ref", "]"]


def test_detect_code_block():
    """Fences toggle code state and report the opening language."""
    lines = ["intro", "```py", "x = 1", "```", "after", "```", "raw"]
    assert detect_code_block(lines, 0) is None
    assert detect_code_block(lines, 2) == "py"
    assert detect_code_block(lines, 4) is None
    assert detect_code_block(lines, 6) == "text"


def test_highlight_code_line_python():
    """Keywords, calls, numbers and plain text are styled separately."""
    assert highlight_code_line("def f(x): return 1", "python") == [
        S("def", "bold red"), S(" ", "white"), S("f(", "green"), S("x): ", "white"),
        S("return", "bold red"), S(" ", "white"), S("1", "yellow"),
    ]


def test_highlight_code_line_strings_and_comments():
    """Strings and trailing comments are matched whole."""
    assert highlight_code_line("x = 'a' # note", "python") == [
        S("x = ", "white"), S("'a'", "magenta"), S(" ", "white"), S("# note", "bright_black"),
    ]


def test_highlight_code_line_unknown_language_uses_javascript():
    """Unrecognised languages fall back to the javascript keywords."""
    assert highlight_code_line("const x", "cobol") == [S("const", "bold red"), S(" x", "white")]


def test_highlight_code_line_plain_languages():
    """Languages with no keywords are not highlighted."""
    assert highlight_code_line('{"a": 1}', "json") == [S('{"a": 1}', "white")]


def test_highlight_code_line_custom_keywords():
    """A caller-supplied keyword table replaces the defaults."""
    assert highlight_code_line("SELECT 1", "sql", {"sql": ["SELECT"]}) == [
        S("SELECT", "bold red"), S(" ", "white"), S("1", "yellow"),
    ]


def test_highlight_lines_switches_inside_fences():
    """Lines inside a fence use code highlighting, others use Markdown rules."""
    lines = ["# T", "```python", "def f(): pass", "```", "after"]
    result = highlight_lines(lines)
    assert result[0] == [S("# T", C["h1"])]
    assert result[1][0] == S("```", C["code_fence"])
    assert result[2][0] == S("def", "bold red")
    assert result[4] == [S("after")]


def test_highlight_lines_uses_settings_keywords():
    """Keyword tables from settings apply to fenced code."""
    settings = Settings(code_keywords={"sql": ["SELECT"]})
    result = highlight_lines(["```sql", "SELECT 1"], settings)
    assert result[1][0] == S("SELECT", "bold red")


def test_segments_to_ansi():
    """Segments join to their text, with SGR codes only when color is on."""
    segments = [S("plain "), S("bold", "bold")]
    assert segments_to_ansi(segments, color=False) == "plain bold"
    colored = segments_to_ansi(segments)
    assert colored.startswith("plain \x1b[")
    assert "bold" in colored


@pytest.mark.parametrize("lines,expected", [
    (["```", "~~~", "x"], "text"),
    (["````py", "```", "x"], "py"),
    (["```py", "````", "x"], None),
    (["~~~sh", "```", "~~~", "x"], None),
])
def test_detect_code_block_matches_closing_fence(lines, expected):
    """Only a bare fence of the opening character and at least its length closes the block."""
    assert detect_code_block(lines, len(lines) - 1) == expected


def test_highlight_lines_other_fence_inside_code():
    """A fence line that does not close the block is highlighted as code."""
    result = highlight_lines(["```python", "~~~", "x = 1", "```"])
    assert result[1] == [S("~~~", "white")]
    assert result[2] == [S("x = ", "white"), S("1", "yellow")]
    assert result[3] == [S("```", C["code_fence"])]

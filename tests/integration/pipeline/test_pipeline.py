"""Integration tests across all representations and the never-raise guarantee"""

import random

import pytest

from atlasdoc.config import Settings
from atlasdoc.core.highlight import highlight_line, highlight_lines
from atlasdoc.core.models import RichDocNode
from atlasdoc.core.pipeline import convert, render_content
from atlasdoc.core.render import render_markdown
from atlasdoc.core.richdoc import extract_plain_text, from_rich_doc, to_rich_doc
from atlasdoc.core.storage import from_storage_markup, to_storage_markup
from atlasdoc.core.tokenize import tokenize


DOCUMENT = """\
# Release notes

Version **2.0** ships *today*. See [the guide](https://acme.example/guide).

> [!warning] Back up your data first

1. Stop the service
2. Run `migrate`

```bash
./migrate --all
```
"""

FRAGMENTS = ["**", "*", "_", "__", "~~", "`", "```", "~~~", "[", "](", ")", "![", "<", ">", "&", "\x00",
             "\n", "\n\n", "# ", "- ", "1. ", "> ", "> [!tip]", "|", "---", "\\", "http://e", " ", "word"]


def _malformed(rng):
    return "".join(rng.choice(FRAGMENTS) for _ in range(rng.randint(0, 12)))


def test_document_through_every_representation():
    """A document keeps its text through rich-document and storage forms."""
    doc = convert(DOCUMENT, "markdown", "richdoc-json")
    assert [n.type for n in doc.content] == ["heading", "paragraph", "panel", "orderedList", "codeBlock"]

    storage = convert(DOCUMENT, "markdown", "storage-markup")
    back = from_storage_markup(storage)
    for text in ("Release notes", "**2.0**", "Stop the service", "./migrate --all"):
        assert text in back


def test_rich_doc_round_trip_renders_same_text():
    """Rendering the original and the rich-document round trip gives the same text."""
    plain = Settings(color=False, hyperlinks=False)
    round_trip = from_rich_doc(to_rich_doc(DOCUMENT))
    assert render_markdown(round_trip, plain) == render_markdown(DOCUMENT, plain)


def test_render_content_from_storage():
    """Storage markup renders through Markdown."""
    out = render_content(to_storage_markup(DOCUMENT), "storage-markup", Settings(color=False, hyperlinks=False))
    assert "# Release notes" in out
    assert "1. Stop the service" in out


@pytest.mark.parametrize("seed", range(5))
def test_malformed_input_never_raises(seed):
    """No converter, renderer or highlighter raises on malformed input."""
    rng = random.Random(seed)
    for _ in range(200):
        s = _malformed(rng)
        assert isinstance(tokenize(s), list)
        assert isinstance(render_markdown(s), str)
        doc = to_rich_doc(s)
        assert isinstance(doc, RichDocNode)
        assert isinstance(from_rich_doc(doc), str)
        assert isinstance(from_rich_doc(s), str)
        assert isinstance(extract_plain_text(s), str)
        assert isinstance(to_storage_markup(s), str)
        assert isinstance(from_storage_markup(s), str)
        assert isinstance(highlight_line(s.split("\n")[0]), list)
        assert isinstance(highlight_lines(s.split("\n")), list)

"""Unit tests for core/pipeline.py"""

import json

import pytest

from atlasdoc.config import Settings
from atlasdoc.core.models import Representation, RichDocNode
from atlasdoc.core.pipeline import convert, render_content, to_markdown


DOC = {
    "type": "doc",
    "version": 1,
    "content": [{"type": "heading", "attrs": {"level": 1}, "content": [{"type": "text", "text": "T"}]}],
}


def test_convert_markdown_to_rich_doc():
    """Rich-document targets return a node tree."""
    doc = convert("# T", "markdown", "richdoc-json")
    assert isinstance(doc, RichDocNode)
    assert doc.to_json() == DOC


def test_convert_rich_doc_to_markdown():
    """Rich-document sources accept JSON text."""
    assert convert(json.dumps(DOC), Representation.richdoc, Representation.markdown) == "# T"


def test_convert_markdown_to_storage():
    """Storage targets return XHTML."""
    assert convert("# T", "markdown", "storage-markup") == "<h1>T</h1>"


def test_convert_storage_to_rich_doc():
    """Conversions between non-Markdown forms go through Markdown."""
    doc = convert("<h1>T</h1>", "storage-markup", "richdoc-json")
    assert doc.to_json() == DOC


def test_convert_rejects_unknown_representation():
    """Unknown representation names raise ValueError."""
    with pytest.raises(ValueError):
        convert("x", "markdown", "wikitext")


def test_to_markdown_none():
    """None content is treated as empty."""
    assert to_markdown(None, "markdown") == ""


def test_render_content_from_rich_doc():
    """Rendering accepts any source representation."""
    assert render_content(DOC, "richdoc-json", Settings(color=False)) == "# T"

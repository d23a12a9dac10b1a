"""Representation dispatch: normalise any source to Markdown, then produce the target"""

import logging
from typing import Any

from atlasdoc.config import Settings
from atlasdoc.core.models import Representation, RichDocNode
from atlasdoc.core.render import render_markdown
from atlasdoc.core.richdoc import from_rich_doc, to_rich_doc
from atlasdoc.core.storage import from_storage_markup, to_storage_markup


logger = logging.getLogger(__name__)


def to_markdown(content: Any, source: Representation | str) -> str:
    """Convert content in any representation to Markdown."""
    source = Representation(source)
    if source is Representation.richdoc:
        return from_rich_doc(content)
    if source is Representation.storage:
        return from_storage_markup(content)
    return '' if content is None else str(content)


def convert(
    content: Any,
    source: Representation | str,
    target: Representation | str,
    ) -> str | RichDocNode:
    """Convert content between representations; rich-document targets return a RichDocNode."""
    source, target = Representation(source), Representation(target)
    logger.debug(f'Converting {source.value} -> {target.value}')
    markdown = to_markdown(content, source)
    if target is Representation.richdoc:
        return to_rich_doc(markdown)
    if target is Representation.storage:
        return to_storage_markup(markdown)
    return markdown


def render_content(content: Any, source: Representation | str, settings: Settings = None) -> str:
    """Render content in any representation as ANSI terminal text."""
    return render_markdown(to_markdown(content, source), settings)

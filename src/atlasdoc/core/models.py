"""Transient data models shared by the tokenizer, renderer and converters"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, model_validator


class Representation(str, Enum):
    """Content representations exchanged with the issue tracker and the wiki"""
    markdown = "markdown"
    richdoc = "richdoc-json"
    storage = "storage-markup"


@dataclass
class Token:
    """One parse event in a flat token stream; nesting is 1 (open), 0 (self) or -1 (close)."""
    type:    str
    tag:     str = ''
    nesting: int = 0
    content: str = ''
    attrs:   dict[str, Any] = field(default_factory=dict)

    @property
    def level(self) -> int | None:
        """Heading level (1-6) for heading tokens, else None."""
        return self.attrs.get('level')


@dataclass
class StyledSegment:
    """A run of text and the rich style string it should be shown with ("" = unstyled)."""
    text:  str
    style: str = ''


class Mark(BaseModel):
    """Inline decoration attached to a text node (strong, em, strike, code, link...)."""
    model_config = ConfigDict(extra='ignore')

    type:  str
    attrs: Optional[dict[str, Any]] = None


class RichDocNode(BaseModel):
    """A node of the issue tracker's rich-document tree."""
    model_config = ConfigDict(extra='ignore')

    type:    str
    version: Optional[int] = None                  # only set on the doc root
    attrs:   Optional[dict[str, Any]] = None
    content: Optional[list['RichDocNode']] = None
    text:    Optional[str] = None
    marks:   Optional[list[Mark]] = None

    @model_validator(mode='after')
    def _check_shape(self) -> 'RichDocNode':
        if self.type == 'text':
            if self.content is not None:
                raise ValueError("text nodes cannot carry content")
            if self.text is None:
                raise ValueError("text nodes require a text field")
        elif self.text is not None or self.marks is not None:
            raise ValueError(f"{self.type} nodes cannot carry text or marks")
        return self

    def to_json(self) -> dict[str, Any]:
        """Return the JSON-ready dict for the issue tracker's write API."""
        return self.model_dump(exclude_none=True)


RichDocNode.model_rebuild()

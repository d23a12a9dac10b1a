"""Greedy leftmost inline pattern scan shared by the tokenizer and the line highlighter"""

import re
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence


@dataclass(frozen=True)
class InlinePattern:
    """A named inline matcher; its position in a pattern list is its precedence."""
    name:  str
    regex: re.Pattern


def _p(name: str, pattern: str, flags: int = 0) -> InlinePattern:
    return InlinePattern(name, re.compile(pattern, flags))


CODE        = _p('code',        r'(`+)(?P<body>.+?)(?<!`)\1(?!`)', re.S)
BOLD_ITALIC = _p('bold_italic', r'\*{3}(?![\s*])(?P<body>.+?)(?<!\s)\*{3}', re.S)
BOLD_ITALIC_U = _p('bold_italic', r'(?<!\w)_{3}(?![\s_])(?P<body>.+?)(?<!\s)_{3}(?!\w)', re.S)
BOLD        = _p('bold',        r'\*\*(?![\s*])(?P<body>.+?)(?<!\s)\*\*', re.S)
BOLD_U      = _p('bold',        r'(?<!\w)__(?![\s_])(?P<body>.+?)(?<!\s)__(?!\w)', re.S)
ITALIC      = _p('italic',      r'\*(?![\s*])(?P<body>.+?)(?<![\s*])\*(?!\*)', re.S)
ITALIC_U    = _p('italic',      r'(?<!\w)_(?![\s_])(?P<body>.+?)(?<![\s_])_(?!\w)', re.S)
STRIKE      = _p('strike',      r'~~(?![\s~])(?P<body>.+?)(?<![\s~])~~', re.S)
IMAGE       = _p('image',       r'!\[(?P<alt>[^\]]*)\]\(\s*(?P<src>[^)\s]+)(?:\s+["\'](?P<title>[^"\']*)["\'])?\s*\)')
LINK        = _p('link',        r'\[(?P<body>(?:[^\[\]]|\[[^\[\]]*\])+)\]\(\s*(?P<href>[^)\s]*)(?:\s+["\'](?P<title>[^"\']*)["\'])?\s*\)')
REF_LINK    = _p('ref_link',    r'\[(?P<body>[^\]]+)\]\[(?P<ref>[^\]]*)\]')
HARD_BREAK  = _p('hardbreak',   r'(?: {2,}|\\)\n')
SOFT_BREAK  = _p('softbreak',   r'\n')
AUTOLINK    = _p('autolink',    r'<(?P<href>(?:https?|ftp|mailto):[^\s<>]+)>')
HTML        = _p('html',        r'<!--.*?-->|</?[A-Za-z][\w:-]*(?:\s[^<>]*)?/?>', re.S)
ESCAPE      = _p('escape',      r'\\(?P<char>[!-/:-@\[-`{-~])')
URL         = _p('url',         r'(?P<href>https?://[^\s<>\[\]()]*[^\s<>\[\]().,;:!?\'"*_~])')

# Precedence order for document tokenizing; ties at the same offset go to the earlier entry.
INLINE_PATTERNS: tuple[InlinePattern, ...] = (
    CODE,
    BOLD_ITALIC, BOLD_ITALIC_U,
    BOLD, BOLD_U,
    ITALIC, ITALIC_U,
    STRIKE,
    IMAGE,
    LINK,
    REF_LINK,
    HARD_BREAK, SOFT_BREAK,
    AUTOLINK,
    HTML,
    ESCAPE,
    URL,
)

# Single-line highlighting has no breaks and leaves bare text alone.
LINE_PATTERNS: tuple[InlinePattern, ...] = (
    CODE,
    BOLD_ITALIC, BOLD_ITALIC_U,
    BOLD, BOLD_U,
    ITALIC, ITALIC_U,
    STRIKE,
    IMAGE,
    LINK,
    REF_LINK,
    HTML,
)


def iter_matches(
    text: str,
    patterns: Sequence[InlinePattern] = INLINE_PATTERNS,
    ) -> Iterator[tuple[Optional[InlinePattern], re.Match | str]]:
    """Yield (pattern, match) for each earliest match and (None, run) for plain text between them."""
    pos = 0
    upcoming: list[Optional[re.Match]] = [p.regex.search(text) for p in patterns]

    while pos < len(text):
        best = None
        for i, pattern in enumerate(patterns):
            m = upcoming[i]
            if m is not None and m.start() < pos:
                m = upcoming[i] = pattern.regex.search(text, pos)
            if m is not None and (best is None or m.start() < best[1].start()):
                best = (pattern, m)

        if best is None:
            yield None, text[pos:]
            return

        pattern, m = best
        if m.start() > pos:
            yield None, text[pos:m.start()]
        yield pattern, m
        pos = m.end()

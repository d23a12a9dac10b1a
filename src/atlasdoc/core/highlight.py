"""Line-at-a-time Markdown highlighting for live editing views"""

import re
from typing import Iterable, Optional

from rich.color import ColorSystem
from rich.style import Style

from atlasdoc.config import DEFAULT_CODE_KEYWORDS, Settings
from atlasdoc.core.inline import LINE_PATTERNS, InlinePattern, iter_matches
from atlasdoc.core.models import StyledSegment
from atlasdoc.core.styles import ADMONITIONS, HIGHLIGHT_COLORS as C


HEADING_RE = re.compile(r'^(#{1,6})\s+(.*)$')
RULE_RE    = re.compile(r'^(\*{3,}|-{3,}|_{3,})\s*$')
QUOTE_RE   = re.compile(r'^(\s*>\s*)(.*)$')
LIST_RE    = re.compile(r'^(\s*)([-*+]|\d+\.)\s+(.*)$')
TASK_RE    = re.compile(r'^\[([ xX])\]\s*(.*)$')
FENCE_RE   = re.compile(r'^(`{3,}|~{3,})(\w*)\s*$')

ELEMENT_STYLES = {
    'code':        C['code'],
    'bold_italic': C['bold_italic'],
    'bold':        C['bold'],
    'italic':      C['italic'],
    'strike':      C['strike'],
    'html':        C['html'],
}

# (label group, opening bracket, separator, closing bracket)
LINK_SHAPES = {
    'link':     ('body', '[',  '](', ')'),
    'image':    ('alt',  '![', '](', ')'),
    'ref_link': ('body', '[',  '][', ']'),
}

CODE_STRING  = ('magenta', r'"(?:[^"\\]|\\.)*"' + r"|'(?:[^'\\]|\\.)*'" + r'|`(?:[^`\\]|\\.)*`')
CODE_COMMENT = ('bright_black', r'//.*$|#.*$')
CODE_NUMBER  = ('yellow', r'\b\d+(?:\.\d+)?\b')
CODE_CALL    = ('green', r'\b[a-zA-Z_]\w*\s*\(')
CODE_PLAIN   = 'white'


def _link_segments(name: str, m: re.Match) -> list[StyledSegment]:
    label_group, opening, separator, closing = LINK_SHAPES[name]
    whole = m.group(0)
    label = m.group(label_group) or ''
    target = whole[len(opening) + len(label) + len(separator):len(whole) - len(closing)]
    return [
        StyledSegment(opening, C['link_brackets']),
        StyledSegment(label, C['link']),
        StyledSegment(separator, C['link_brackets']),
        StyledSegment(target, C['link_url']),
        StyledSegment(closing, C['link_brackets']),
    ]


def highlight_inline(text: str, patterns: Iterable[InlinePattern] = LINE_PATTERNS) -> list[StyledSegment]:
    """Split text into styled segments using the earliest-match inline scan."""
    if not text:
        return [StyledSegment(' ')]

    segments: list[StyledSegment] = []
    for pattern, m in iter_matches(text, tuple(patterns)):
        if pattern is None:
            segments.append(StyledSegment(m))
        elif pattern.name in LINK_SHAPES:
            segments.extend(_link_segments(pattern.name, m))
        else:
            segments.append(StyledSegment(m.group(0), ELEMENT_STYLES.get(pattern.name, '')))
    return segments


def _quote_style(content: str) -> str:
    lowered = content.lower()
    for kind in ADMONITIONS:
        if lowered.startswith(f'[!{kind}]'):
            return C[f'quote_{kind}']
    return C['quote']


def highlight_line(line: str) -> list[StyledSegment]:
    """Classify one Markdown line and return its styled segments."""
    if not line:
        return [StyledSegment(' ')]

    if m := HEADING_RE.match(line):
        return [StyledSegment(line, C[f'h{len(m.group(1))}'])]

    if RULE_RE.match(line):
        return [StyledSegment(line, C['rule'])]

    if m := QUOTE_RE.match(line):
        content = m.group(2)
        color = _quote_style(content)
        return [StyledSegment('│ ', f'bold {color}'), StyledSegment(content, f'italic {color}')]

    if m := LIST_RE.match(line):
        indent, marker, content = m.groups()
        segments = [StyledSegment(indent)] if indent else []
        segments.append(StyledSegment(f'{marker} ', C['list_marker']))
        if task := TASK_RE.match(content):
            done = task.group(1).lower() == 'x'
            segments.append(StyledSegment('[✓]' if done else '[ ]', C['task_done' if done else 'task_pending']))
            segments.append(StyledSegment(' '))
            content = task.group(2)
        return segments + highlight_inline(content)

    if m := FENCE_RE.match(line):
        fence, language = m.groups()
        segments = [StyledSegment(fence, C['code_fence'])]
        if language:
            segments.append(StyledSegment(language, C['code_lang']))
        return segments

    return highlight_inline(line)


def _fence_state(state: Optional[tuple[str, str]], m: re.Match) -> Optional[tuple[str, str]]:
    """Advance the (opening fence, language) state past a fence line."""
    fence, language = m.groups()
    if state is None:
        return fence, language or 'text'
    # only a bare fence of the same character, at least as long, closes the block
    opening = state[0]
    if fence[0] == opening[0] and len(fence) >= len(opening) and not language:
        return None
    return state


def detect_code_block(lines: list[str], current: int) -> Optional[str]:
    """Return the fence language ('text' if unnamed) when lines[current] sits inside a code fence, else None."""
    state = None
    for line in lines[:current + 1]:
        if m := FENCE_RE.match(line):
            state = _fence_state(state, m)
    return state[1] if state else None


def _code_patterns(keywords: list[str]) -> tuple[InlinePattern, ...]:
    keyword_re = r'\b(?:' + '|'.join(re.escape(k) for k in keywords) + r')\b'
    return tuple(
        InlinePattern(style, re.compile(regex))
        for style, regex in (CODE_STRING, CODE_COMMENT, CODE_NUMBER, ('bold red', keyword_re), CODE_CALL)
    )


def highlight_code_line(
    line: str,
    language: str,
    keywords: Optional[dict[str, list[str]]] = None,
    ) -> list[StyledSegment]:
    """Highlight one line of fenced code with the keyword table for its language."""
    table = DEFAULT_CODE_KEYWORDS if keywords is None else keywords
    language = (language or '').lower()
    words = table[language] if language in table else table.get('javascript', [])

    if not line:
        return [StyledSegment(' ')]
    if not words:
        return [StyledSegment(line, CODE_PLAIN)]

    segments = []
    for pattern, m in iter_matches(line, _code_patterns(words)):
        if pattern is None:
            segments.append(StyledSegment(m, CODE_PLAIN))
        else:
            # Pattern names carry the style for code tokens.
            segments.append(StyledSegment(m.group(0), pattern.name))
    return segments


def highlight_lines(lines: list[str], settings: Settings = None) -> list[list[StyledSegment]]:
    """Highlight a whole buffer, switching to code highlighting inside fences."""
    keywords = (settings or Settings()).code_keywords
    result = []
    state = None
    for line in lines:
        m = FENCE_RE.match(line)
        after = _fence_state(state, m) if m else state
        if m and (state is None or after is None):
            result.append(highlight_line(line))
        elif state is not None:
            result.append(highlight_code_line(line, state[1], keywords))
        else:
            result.append(highlight_line(line))
        state = after
    return result


def segments_to_ansi(segments: Iterable[StyledSegment], color: bool = True) -> str:
    """Join segments into one string, applying each style's SGR codes when color is on."""
    color_system = ColorSystem.TRUECOLOR if color else None
    return ''.join(
        Style.parse(s.style).render(s.text, color_system=color_system) if s.style else s.text
        for s in segments
    )

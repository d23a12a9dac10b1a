"""Markdown tokenization: markdown-it block structure plus the inline precedence scan"""

import logging
import re
from typing import Any

from markdown_it import MarkdownIt
from markdown_it.common.utils import normalizeReference

from atlasdoc.core.inline import INLINE_PATTERNS, iter_matches
from atlasdoc.core.models import Token


logger = logging.getLogger(__name__)

ADMONITION_RE = re.compile(r'^\[!(tip|warning|caution|important|note)\][ \t]*\n?', re.IGNORECASE)

# Block tokens copied as-is from the markdown-it stream.
PASSTHROUGH_TYPES = {
    'paragraph_open', 'paragraph_close',
    'bullet_list_open', 'bullet_list_close',
    'ordered_list_open', 'ordered_list_close',
    'list_item_open', 'list_item_close',
    'blockquote_close',
    'table_open', 'table_close',
    'thead_open', 'thead_close',
    'tbody_open', 'tbody_close',
    'tr_open', 'tr_close',
    'th_open', 'th_close',
    'td_open', 'td_close',
}

# Inline pattern name -> (token prefix, tag) pairs, outermost first.
MARK_TOKENS: dict[str, list[tuple[str, str]]] = {
    'bold_italic': [('strong', 'strong'), ('em', 'em')],
    'bold':        [('strong', 'strong')],
    'italic':      [('em', 'em')],
    'strike':      [('s', 's')],
}


def _make_parser() -> MarkdownIt:
    """Build the MarkdownIt instance used for block structure."""
    return MarkdownIt('gfm-like', options_update={"linkify": False})


def plain_tokens(text: str) -> list[Token]:
    """Fallback token stream: the whole input as one paragraph of text."""
    return [
        Token('paragraph_open', tag='p', nesting=1),
        Token('text', content=text),
        Token('paragraph_close', tag='p', nesting=-1),
    ]


def _append_text(tokens: list[Token], text: str) -> None:
    """Append text, merging with a preceding text token."""
    if not text:
        return
    if tokens and tokens[-1].type == 'text':
        tokens[-1].content += text
    else:
        tokens.append(Token('text', content=text))


def _code_body(body: str) -> str:
    """Normalize an inline code span: newlines to spaces, one padding space stripped."""
    body = body.replace('\n', ' ')
    if len(body) > 2 and body[0] == ' ' and body[-1] == ' ' and body.strip():
        return body[1:-1]
    return body


def _link(tokens: list[Token], attrs: dict[str, Any], inner: list[Token]) -> None:
    tokens.append(Token('link_open', tag='a', nesting=1, attrs=attrs))
    tokens.extend(inner)
    tokens.append(Token('link_close', tag='a', nesting=-1))


def scan_inline(text: str, references: dict | None = None) -> list[Token]:
    """Tokenize inline Markdown into a flat list of inline tokens."""
    references = references or {}
    tokens: list[Token] = []

    for pattern, m in iter_matches(text, INLINE_PATTERNS):
        if pattern is None:
            _append_text(tokens, m)
            continue

        name = pattern.name
        if name == 'code':
            tokens.append(Token('code_inline', tag='code', content=_code_body(m.group('body'))))
        elif name in MARK_TOKENS:
            marks = MARK_TOKENS[name]
            tokens.extend(Token(f'{kind}_open', tag=tag, nesting=1) for kind, tag in marks)
            tokens.extend(scan_inline(m.group('body'), references))
            tokens.extend(Token(f'{kind}_close', tag=tag, nesting=-1) for kind, tag in reversed(marks))
        elif name == 'image':
            attrs = {'src': m.group('src'), 'alt': m.group('alt')}
            if m.group('title'):
                attrs['title'] = m.group('title')
            tokens.append(Token('image', tag='img', content=m.group('alt'), attrs=attrs))
        elif name == 'link':
            attrs = {'href': m.group('href')}
            if m.group('title'):
                attrs['title'] = m.group('title')
            _link(tokens, attrs, scan_inline(m.group('body'), references))
        elif name == 'ref_link':
            label = m.group('ref') or m.group('body')
            ref = references.get(normalizeReference(label))
            attrs = {'href': ref['href'] if ref else '', 'ref': label}
            if ref and ref.get('title'):
                attrs['title'] = ref['title']
            _link(tokens, attrs, scan_inline(m.group('body'), references))
        elif name in ('autolink', 'url'):
            href = m.group('href')
            _link(tokens, {'href': href}, [Token('text', content=href)])
        elif name in ('hardbreak', 'softbreak'):
            tokens.append(Token(name, tag='br'))
        elif name == 'html':
            tokens.append(Token('html_inline', content=m.group(0)))
        elif name == 'escape':
            _append_text(tokens, m.group('char'))
        else:
            _append_text(tokens, m.group(0))

    return tokens


def _admonition(md_tokens: list, i: int) -> tuple[str, str] | None:
    """Return (kind, remaining first-line content) when the blockquote at i opens with [!kind]."""
    if i + 2 >= len(md_tokens):
        return None
    para, inline = md_tokens[i + 1], md_tokens[i + 2]
    if para.type != 'paragraph_open' or inline.type != 'inline':
        return None
    m = ADMONITION_RE.match(inline.content)
    if not m:
        return None
    return m.group(1).lower(), inline.content[m.end():]


def _tokenize(markdown: str) -> list[Token]:
    env: dict = {}
    md_tokens = _make_parser().parse(markdown, env)
    references = env.get('references', {})
    overrides: dict[int, str] = {}
    tokens: list[Token] = []

    for i, tok in enumerate(md_tokens):
        if tok.hidden:
            continue
        if tok.type in PASSTHROUGH_TYPES:
            tokens.append(Token(tok.type, tag=tok.tag, nesting=tok.nesting))
        elif tok.type in ('heading_open', 'heading_close'):
            tokens.append(Token(tok.type, tag=tok.tag, nesting=tok.nesting, attrs={'level': int(tok.tag[1:])}))
        elif tok.type == 'blockquote_open':
            attrs = {}
            found = _admonition(md_tokens, i)
            if found:
                attrs['admonition'], overrides[i + 2] = found
            tokens.append(Token(tok.type, tag=tok.tag, nesting=tok.nesting, attrs=attrs))
        elif tok.type in ('fence', 'code_block'):
            info = tok.info.strip()
            tokens.append(Token('fence', tag='code', content=tok.content,
                                attrs={'language': info.split()[0] if info else ''}))
        elif tok.type == 'hr':
            tokens.append(Token('hr', tag='hr'))
        elif tok.type == 'html_block':
            tokens.append(Token('html_block', content=tok.content))
        elif tok.type == 'inline':
            tokens.extend(scan_inline(overrides.get(i, tok.content), references))

    return tokens


def tokenize(markdown: str | None) -> list[Token]:
    """Parse Markdown into a flat, ordered token stream; never raises."""
    if not markdown:
        return []
    try:
        return _tokenize(markdown)
    except Exception as e:
        logger.debug(f'Tokenizing failed, falling back to plain text: {e}')
        return plain_tokens(markdown)

"""Conversion between Markdown and the issue tracker's rich-document tree"""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from atlasdoc.core.errors import ConversionError
from atlasdoc.core.models import Mark, RichDocNode, Token
from atlasdoc.core.tokenize import tokenize


logger = logging.getLogger(__name__)

BLOCK_NODE_TYPES: dict[str, str] = {
    'paragraph_open':    'paragraph',
    'heading_open':      'heading',
    'bullet_list_open':  'bulletList',
    'ordered_list_open': 'orderedList',
    'list_item_open':    'listItem',
    'blockquote_open':   'blockquote',
    'table_open':        'table',
    'tr_open':           'tableRow',
    'th_open':           'tableHeader',
    'td_open':           'tableCell',
}

CLOSE_NODE_TYPES: dict[str, set[str]] = {
    'paragraph_close':    {'paragraph'},
    'heading_close':      {'heading'},
    'bullet_list_close':  {'bulletList'},
    'ordered_list_close': {'orderedList'},
    'list_item_close':    {'listItem'},
    'blockquote_close':   {'blockquote', 'panel'},
    'table_close':        {'table'},
    'tr_close':           {'tableRow'},
    'th_close':           {'tableHeader'},
    'td_close':           {'tableCell'},
}

INLINE_CONTAINERS = {'paragraph', 'heading'}
MARK_TYPES = {'strong': 'strong', 'em': 'em', 's': 'strike'}
PANEL_TYPES = {'tip': 'success', 'warning': 'warning', 'caution': 'error', 'important': 'info', 'note': 'note'}
PANEL_ADMONITIONS = {'success': 'tip', 'warning': 'warning', 'error': 'caution', 'info': 'important', 'note': 'note'}
MARK_SYNTAX = {'strong': '**', 'em': '*', 'strike': '~~'}
MARKDOWN_SPECIAL_RE = re.compile(r'([\\*_~])')
BACKTICK_RUN_RE = re.compile(r'`+')


def empty_doc() -> RichDocNode:
    return RichDocNode(type='doc', version=1, content=[])


def plain_text_doc(text: Any) -> RichDocNode:
    """Fallback document: one paragraph holding the raw input verbatim."""
    text = '' if text is None else str(text)
    return RichDocNode(type='doc', version=1, content=[
        RichDocNode(type='paragraph', content=[RichDocNode(type='text', text=text)]),
    ])


# --- Markdown -> tree ---

class _TreeBuilder:
    """Builds a rich-document tree from a flat token stream with an explicit node stack."""

    def __init__(self) -> None:
        self.root = empty_doc()
        self.stack: list[tuple[RichDocNode, bool]] = [(self.root, False)]   # (node, implicit)
        self.marks: list[tuple[str, Optional[Mark]]] = []

    @property
    def top(self) -> RichDocNode:
        return self.stack[-1][0]

    def close_implicit(self) -> None:
        while len(self.stack) > 1 and self.stack[-1][1]:
            self.stack.pop()

    def append(self, node: RichDocNode) -> None:
        self.top.content.append(node)

    def open_block(self, node_type: str, attrs: dict | None = None) -> None:
        self.close_implicit()
        node = RichDocNode(type=node_type, attrs=attrs or None, content=[])
        self.append(node)
        self.stack.append((node, False))

    def close_block(self, tok: Token) -> None:
        self.close_implicit()
        if len(self.stack) == 1 or self.top.type not in CLOSE_NODE_TYPES[tok.type]:
            raise ConversionError(f'Unbalanced {tok.type} inside {self.top.type}')
        self.stack.pop()

    def inline_parent(self) -> RichDocNode:
        if self.top.type not in INLINE_CONTAINERS:
            node = RichDocNode(type='paragraph', content=[])
            self.append(node)
            self.stack.append((node, True))
        return self.top

    def add_text(self, text: str, extra: list[Mark] | None = None) -> None:
        if not text:
            return
        marks = [m for _, m in self.marks if m is not None]
        extra = list(extra or [])
        if any(m.type == 'code' for m in extra):
            marks = [m for m in marks if m.type == 'link']
        if any(m.type == 'link' for m in marks):
            # an enclosing link wins over an image's own link
            extra = [m for m in extra if m.type != 'link']
        marks += extra
        self.inline_parent().content.append(
            RichDocNode(type='text', text=text, marks=[m.model_copy() for m in marks] or None)
        )

    def pop_mark(self, kind: str) -> None:
        for idx in range(len(self.marks) - 1, -1, -1):
            if self.marks[idx][0] == kind:
                del self.marks[idx]
                return

    def feed(self, tok: Token) -> None:
        t = tok.type
        if t in BLOCK_NODE_TYPES:
            node_type, attrs = BLOCK_NODE_TYPES[t], None
            if t == 'heading_open':
                attrs = {'level': tok.level or 1}
            elif t == 'ordered_list_open':
                attrs = {'order': 1}
            elif t == 'blockquote_open' and tok.attrs.get('admonition'):
                node_type, attrs = 'panel', {'panelType': PANEL_TYPES[tok.attrs['admonition']]}
            self.open_block(node_type, attrs)
        elif t in CLOSE_NODE_TYPES:
            self.close_block(tok)
        elif t == 'fence':
            self.close_implicit()
            language = tok.attrs.get('language')
            code = tok.content.rstrip('\n')
            self.append(RichDocNode(
                type='codeBlock',
                attrs={'language': language} if language else None,
                content=[RichDocNode(type='text', text=code)] if code else [],
            ))
        elif t == 'hr':
            self.close_implicit()
            self.append(RichDocNode(type='rule'))
        elif t == 'html_block':
            self.close_implicit()
            self.add_text(tok.content.strip())
            self.close_implicit()
        elif t in ('text', 'html_inline'):
            self.add_text(tok.content)
        elif t == 'softbreak':
            self.add_text(' ')
        elif t == 'hardbreak':
            self.inline_parent().content.append(RichDocNode(type='hardBreak'))
        elif t == 'code_inline':
            self.add_text(tok.content, [Mark(type='code')])
        elif t == 'image':
            src = tok.attrs.get('src', '')
            self.add_text(tok.attrs.get('alt') or tok.content or src, [Mark(type='link', attrs={'href': src})])
        elif t.endswith('_open') and t[:-5] in MARK_TYPES:
            self.marks.append((t[:-5], Mark(type=MARK_TYPES[t[:-5]])))
        elif t.endswith('_close') and t[:-6] in MARK_TYPES:
            self.pop_mark(t[:-6])
        elif t == 'link_open':
            href = tok.attrs.get('href')
            self.marks.append(('link', Mark(type='link', attrs={'href': href}) if href else None))
        elif t == 'link_close':
            self.pop_mark('link')

    def build(self, tokens: list[Token]) -> RichDocNode:
        for tok in tokens:
            self.feed(tok)
        self.close_implicit()
        if len(self.stack) != 1:
            raise ConversionError(f'Unclosed {self.top.type} at end of document')
        return self.root


def to_rich_doc(markdown: str | None) -> RichDocNode:
    """Convert Markdown to a rich-document tree; never raises."""
    if not markdown:
        return empty_doc()
    try:
        doc = _TreeBuilder().build(tokenize(markdown))
        logger.debug(f'Converted {len(markdown)} characters of markdown to {len(doc.content)} block node(s)')
        return doc
    except Exception as e:
        logger.debug(f'Rich document conversion failed, using plain text: {e}')
        return plain_text_doc(markdown)


# --- tree -> Markdown ---

def _children(node: RichDocNode) -> list[RichDocNode]:
    return node.content or []


def _attr(node: RichDocNode, name: str, default: Any = None) -> Any:
    return (node.attrs or {}).get(name, default)


def _marked(text: str, marks: list[Mark]) -> str:
    """Wrap text in Markdown syntax for its marks; whitespace stays outside emphasis."""
    types = [m.type for m in marks]
    if 'code' in types:
        fence = '`' * (max((len(run) for run in BACKTICK_RUN_RE.findall(text)), default=0) + 1)
        if text.startswith('`') or text.endswith('`'):
            text = f' {text} '
        out = f'{fence}{text}{fence}'
    else:
        core = MARKDOWN_SPECIAL_RE.sub(r'\\\1', text.strip())
        if core:
            lead = text[:len(text) - len(text.lstrip())]
            trail = text[len(text.rstrip()):]
            for mark_type in types:
                if mark_type in MARK_SYNTAX:
                    core = f'{MARK_SYNTAX[mark_type]}{core}{MARK_SYNTAX[mark_type]}'
            out = f'{lead}{core}{trail}'
        else:
            out = text
    link = next((m for m in marks if m.type == 'link'), None)
    if link is not None:
        out = f"[{out}]({(link.attrs or {}).get('href', '')})"
    return out


def _date(node: RichDocNode) -> str:
    stamp = _attr(node, 'timestamp', '')
    try:
        return datetime.fromtimestamp(int(stamp) / 1000, tz=timezone.utc).date().isoformat()
    except (TypeError, ValueError, OverflowError):
        return str(stamp)


def _media(node: RichDocNode) -> str:
    target = _attr(node, 'url') or _attr(node, 'id') or ''
    return f"![{_attr(node, 'alt') or ''}]({target})"


def _card(node: RichDocNode) -> str:
    url = _attr(node, 'url', '')
    return f'[{url}]({url})' if url else ''


INLINE_WRITERS: dict[str, Callable[[RichDocNode], str]] = {
    'hardBreak':   lambda n: '\\\n',
    'mention':     lambda n: _attr(n, 'text') or f"@{_attr(n, 'id', '')}",
    'emoji':       lambda n: _attr(n, 'text') or _attr(n, 'shortName', ''),
    'status':      lambda n: f"[{_attr(n, 'text', '')}]",
    'date':        _date,
    'inlineCard':  _card,
    'media':       _media,
    'mediaInline': _media,
}


def _is_inline(node: RichDocNode) -> bool:
    return node.type == 'text' or node.type in INLINE_WRITERS


def _inline(nodes: list[RichDocNode]) -> str:
    parts = []
    for node in nodes:
        if node.type == 'text':
            parts.append(_marked(node.text or '', node.marks or []))
        elif node.type in INLINE_WRITERS:
            parts.append(INLINE_WRITERS[node.type](node))
        else:
            parts.append(_inline(_children(node)))
    return ''.join(parts)


def _blocks(nodes: list[RichDocNode], sep: str = '\n\n') -> str:
    return sep.join(out for out in (_block(n) for n in nodes) if out)


def _indent_tail(text: str, pad: str) -> str:
    lines = text.split('\n')
    return '\n'.join([lines[0]] + [pad + line if line else line for line in lines[1:]])


def _list(node: RichDocNode) -> str:
    ordered = node.type == 'orderedList'
    start = _attr(node, 'order', 1) or 1
    items = []
    for idx, item in enumerate(_children(node)):
        marker = f'{start + idx}.' if ordered else '-'
        body = _blocks(_children(item), '\n') if item.type == 'listItem' else _block(item)
        items.append(f'{marker} ' + _indent_tail(body, ' ' * (len(marker) + 1)))
    return '\n'.join(items)


def _quote(text: str) -> str:
    return '\n'.join(f'> {line}' if line else '>' for line in text.split('\n'))


def _panel(node: RichDocNode) -> str:
    kind = PANEL_ADMONITIONS.get(_attr(node, 'panelType', ''), 'note')
    body = _blocks(_children(node))
    return _quote(f'[!{kind}]\n{body}' if body else f'[!{kind}]')


def _code_block(node: RichDocNode) -> str:
    code = ''.join(c.text or '' for c in _children(node) if c.type == 'text')
    return f"```{_attr(node, 'language') or ''}\n{code}\n```"


def _table(node: RichDocNode) -> str:
    rows = [
        [_blocks(_children(cell), ' ').replace('\n', ' ').replace('|', '\\|') for cell in _children(row)]
        for row in _children(node)
    ]
    rows = [r for r in rows if r]
    if not rows:
        return ''
    width = max(len(r) for r in rows)
    rows = [r + [''] * (width - len(r)) for r in rows]
    lines = ['| ' + ' | '.join(rows[0]) + ' |', '| ' + ' | '.join(['---'] * width) + ' |']
    lines += ['| ' + ' | '.join(r) + ' |' for r in rows[1:]]
    return '\n'.join(lines)


BLOCK_WRITERS: dict[str, Callable[[RichDocNode], str]] = {
    'doc':         lambda n: _blocks(_children(n)),
    'paragraph':   lambda n: _inline(_children(n)),
    'heading':     lambda n: f"{'#' * min(max(int(_attr(n, 'level', 1)), 1), 6)} {_inline(_children(n))}",
    'bulletList':  _list,
    'orderedList': _list,
    'listItem':    lambda n: _blocks(_children(n), '\n'),
    'blockquote':  lambda n: _quote(_blocks(_children(n))),
    'panel':       _panel,
    'codeBlock':   _code_block,
    'rule':        lambda n: '---',
    'table':       _table,
    'mediaSingle': lambda n: _inline(_children(n)),
    'mediaGroup':  lambda n: ' '.join(_inline([c]) for c in _children(n)),
    'blockCard':   _card,
}


def _block(node: RichDocNode) -> str:
    writer = BLOCK_WRITERS.get(node.type)
    if writer is not None:
        return writer(node)
    if _is_inline(node):
        return _inline([node])
    # Unknown node types are skipped; their children are still visited.
    children = _children(node)
    if children and all(_is_inline(c) for c in children):
        return _inline(children)
    return _blocks(children)


def _coerce(doc: Any) -> RichDocNode:
    if isinstance(doc, RichDocNode):
        return doc
    if isinstance(doc, str):
        doc = json.loads(doc)
    if isinstance(doc, dict):
        return RichDocNode.model_validate(doc)
    raise ConversionError(f'Cannot read a rich document from {type(doc).__name__}')


def from_rich_doc(doc: RichDocNode | dict | str | None) -> str:
    """Convert a rich-document tree (model, dict or JSON) to Markdown; never raises."""
    if doc is None or doc == '':
        return ''
    try:
        return _block(_coerce(doc)).strip()
    except Exception as e:
        logger.debug(f'Rich document to markdown failed, extracting plain text: {e}')
        return extract_plain_text(doc)


def extract_plain_text(doc: RichDocNode | dict | str | None) -> str:
    """Concatenate every text field of the tree in document order."""
    if doc is None:
        return ''
    if isinstance(doc, RichDocNode):
        doc = doc.model_dump(exclude_none=True)
    elif isinstance(doc, str):
        try:
            parsed = json.loads(doc)
        except (ValueError, RecursionError):
            return doc
        if parsed is None:
            return ''
        if not isinstance(parsed, (dict, list)):
            return doc
        doc = parsed

    parts: list[str] = []
    stack = list(reversed(doc)) if isinstance(doc, list) else [doc]
    while stack:
        node = stack.pop()
        if not isinstance(node, dict):
            continue
        if node.get('type') == 'text' and isinstance(node.get('text'), str):
            parts.append(node['text'])
        content = node.get('content')
        if isinstance(content, list):
            stack.extend(reversed(content))
    return ''.join(parts)

"""ANSI terminal rendering of Markdown token streams"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from rich.style import Style

from atlasdoc.config import Settings
from atlasdoc.core.models import Token
from atlasdoc.core.styles import Theme, hyperlink, paint, strip_controls
from atlasdoc.core.tokenize import tokenize
from atlasdoc.core.utils.links import resolve_url


logger = logging.getLogger(__name__)

SCHEME_RE = re.compile(r'^[a-z][a-z0-9+.-]*:', re.IGNORECASE)
IMG_RE = re.compile(r'<img\b[^>]*>', re.IGNORECASE)
BR_RE = re.compile(r'<br\s*/?>', re.IGNORECASE)
TAG_RE = re.compile(r'<[^>]+>')

MARK_STYLES = {'strong': 'strong', 'em': 'em', 's': 'strike'}
LINE_END_TYPES = ('paragraph_close', 'heading_close', 'list_item_close', 'tr_close', 'softbreak', 'hardbreak')


def _html_attr(tag: str, name: str) -> str | None:
    m = re.search(rf'\b{name}\s*=\s*(?:"([^"]*)"|\'([^\']*)\')', tag, re.IGNORECASE)
    if not m:
        return None
    return m.group(1) if m.group(1) is not None else m.group(2)


def plain_text(tokens: list[Token] | None) -> str:
    """Fallback rendering: token text content with line breaks, no styling."""
    parts: list[str] = []
    for tok in tokens or []:
        content = getattr(tok, 'content', '')
        if content:
            parts.append(str(content))
        if getattr(tok, 'type', '') in LINE_END_TYPES:
            parts.append('\n')
    return strip_controls(''.join(parts)).strip()


@dataclass
class _Frame:
    """An output buffer opened by a heading, link or blockquote."""
    kind:  str
    parts: list[str] = field(default_factory=list)
    attrs: dict[str, Any] = field(default_factory=dict)


class _RenderState:
    """Per-call rendering state: output frames, active styles and list counters."""

    def __init__(self, settings: Settings, theme: Theme):
        self.settings = settings
        self.theme = theme
        self.frames: list[_Frame] = [_Frame('root')]
        self.styles: list[tuple[str, Style]] = []
        self.lists: list[Optional[int]] = []     # None for bullet lists, next number for ordered
        self.row_cells = 0

    # --- output helpers ---

    def paint(self, style: Style, text: str) -> str:
        return paint(style, strip_controls(text), self.settings.color)

    def write(self, text: str) -> None:
        if text:
            self.frames[-1].parts.append(text)

    def write_text(self, text: str, extra: Style | None = None) -> None:
        styles = [Style.null(), *(s for _, s in self.styles)]
        if extra is not None:
            styles.append(extra)
        self.write(self.paint(Style.combine(styles), text))

    def ensure_newline(self) -> None:
        parts = self.frames[-1].parts
        if parts and not parts[-1].endswith('\n'):
            parts.append('\n')

    def link(self, url: str, label: str) -> str:
        if not (self.settings.hyperlinks and url):
            return label
        return hyperlink(strip_controls(url), label)

    def resolve(self, href: str) -> str:
        if href and self.settings.base_url and not SCHEME_RE.match(href) and not href.startswith('#'):
            return resolve_url(self.settings.base_url, href)
        return href

    # --- stacks ---

    def push_frame(self, kind: str, **attrs: Any) -> None:
        self.frames.append(_Frame(kind, attrs=attrs))

    def pop_frame(self, kind: str) -> _Frame | None:
        """Pop the innermost frame of kind, folding any unclosed frames above it into their parents."""
        for idx in range(len(self.frames) - 1, 0, -1):
            if self.frames[idx].kind == kind:
                while len(self.frames) - 1 > idx:
                    top = self.frames.pop()
                    self.frames[-1].parts.extend(top.parts)
                return self.frames.pop()
        return None

    def push_style(self, kind: str, style: Style) -> None:
        self.styles.append((kind, style))

    def pop_style(self, kind: str) -> None:
        for idx in range(len(self.styles) - 1, -1, -1):
            if self.styles[idx][0] == kind:
                del self.styles[idx]
                return

    # --- token handlers ---

    def heading_open(self, tok: Token) -> None:
        self.push_frame('heading', level=tok.level or 1)
        self.push_style('heading', self.theme.heading(tok.level or 1))

    def heading_close(self, tok: Token) -> None:
        self.pop_style('heading')
        frame = self.pop_frame('heading')
        if frame is None:
            return
        level = frame.attrs['level']
        prefix = self.paint(self.theme.heading_marker, '#' * level)
        self.write(f"\n{prefix} {''.join(frame.parts)}\n\n")

    def paragraph_close(self, tok: Token) -> None:
        self.write('\n\n')

    def list_open(self, tok: Token) -> None:
        if self.lists:
            self.ensure_newline()
        self.lists.append(1 if tok.type == 'ordered_list_open' else None)

    def list_close(self, tok: Token) -> None:
        if self.lists:
            self.lists.pop()
        self.ensure_newline()
        if not self.lists:
            self.write('\n')

    def list_item_open(self, tok: Token) -> None:
        depth = max(len(self.lists), 1)
        indent = ' ' * (self.settings.list_indent * (depth - 1))
        counter = self.lists[-1] if self.lists else None
        if counter is None:
            marker = '•'
        else:
            marker = f'{counter}.'
            self.lists[-1] = counter + 1
        self.write(f'{indent}{self.paint(self.theme.list_marker, marker)} ')

    def list_item_close(self, tok: Token) -> None:
        self.ensure_newline()

    def blockquote_open(self, tok: Token) -> None:
        self.push_frame('blockquote', admonition=tok.attrs.get('admonition', ''))
        self.push_style('blockquote', self.theme.quote_text)

    def blockquote_close(self, tok: Token) -> None:
        self.pop_style('blockquote')
        frame = self.pop_frame('blockquote')
        if frame is None:
            return
        kind = frame.attrs['admonition']
        style = self.theme.quote(kind)
        bar = self.paint(style, '│ ')
        lines = ''.join(frame.parts).strip('\n').split('\n')
        if kind:
            lines[0] = self.paint(style, f'{kind.capitalize()}: ') + lines[0]
        self.ensure_newline()
        self.write('\n'.join(bar + line if line else self.paint(style, '│') for line in lines) + '\n\n')

    def fence(self, tok: Token) -> None:
        width = self.settings.code_width
        border = self.theme.code_border
        language = tok.attrs.get('language') or 'code'
        header = self.paint(self.theme.code_header, f' {language} ')
        top = self.paint(border, '┌' + '─' * (width + 2) + '┐')
        bottom = self.paint(border, '└' + '─' * (width + 2) + '┘')
        lines = [
            self.paint(border, '│ ') + self.paint(self.theme.code_text, line.ljust(width)[:width]) + self.paint(border, ' │')
            for line in strip_controls(tok.content.strip('\n').expandtabs(4)).split('\n')
        ]
        self.ensure_newline()
        self.write(f'\n{header}\n{top}\n' + '\n'.join(lines) + f'\n{bottom}\n\n')

    def hr(self, tok: Token) -> None:
        self.ensure_newline()
        self.write(self.paint(self.theme.rule, '─' * self.settings.rule_width) + '\n\n')

    def table_open(self, tok: Token) -> None:
        self.ensure_newline()
        self.write('\n')

    def tr_open(self, tok: Token) -> None:
        self.row_cells = 0

    def cell_open(self, tok: Token) -> None:
        if self.row_cells:
            self.write(' │ ')
        self.row_cells += 1
        if tok.type == 'th_open':
            self.push_style('th', self.theme.table_header)

    def th_close(self, tok: Token) -> None:
        self.pop_style('th')

    def line_break(self, tok: Token) -> None:
        self.write('\n')

    def text(self, tok: Token) -> None:
        if tok.content:
            self.write_text(tok.content)

    def code_inline(self, tok: Token) -> None:
        self.write_text(f' {tok.content} ', self.theme.inline_code)

    def mark_open(self, tok: Token) -> None:
        kind = tok.type[:-len('_open')]
        self.push_style(kind, getattr(self.theme, MARK_STYLES[kind]))

    def mark_close(self, tok: Token) -> None:
        self.pop_style(tok.type[:-len('_close')])

    def link_open(self, tok: Token) -> None:
        self.push_frame('link', href=self.resolve(tok.attrs.get('href', '')))
        self.push_style('link', self.theme.link)

    def link_close(self, tok: Token) -> None:
        self.pop_style('link')
        frame = self.pop_frame('link')
        if frame is not None:
            self.write(self.link(frame.attrs['href'], ''.join(frame.parts)))

    def image(self, tok: Token) -> None:
        self.write(self.image_label(tok.attrs.get('src', ''), tok.attrs.get('alt') or tok.content))

    def image_label(self, src: str, alt: str) -> str:
        label = self.paint(self.theme.image, f'[📷 {alt or "image"}]')
        # OSC-8 links do not nest; an image inside a link takes the outer target.
        if any(frame.kind == 'link' for frame in self.frames):
            return label
        return self.link(self.resolve(src), label)

    def html(self, tok: Token) -> None:
        block = tok.type == 'html_block'
        content = tok.content
        img = IMG_RE.search(content)
        if img and _html_attr(img.group(0), 'src'):
            out = self.image_label(_html_attr(img.group(0), 'src'), _html_attr(img.group(0), 'alt') or '')
        elif BR_RE.search(content):
            self.write('\n')
            return
        else:
            stripped = TAG_RE.sub('', content).strip()
            if not stripped:
                return
            out = self.paint(self.theme.html, stripped)
        self.write(out + '\n' if block else out)

    def finish(self) -> str:
        while len(self.frames) > 1:
            top = self.frames.pop()
            self.frames[-1].parts.extend(top.parts)
        return ''.join(self.frames[0].parts).strip()


HANDLERS = {
    'heading_open':       _RenderState.heading_open,
    'heading_close':      _RenderState.heading_close,
    'paragraph_close':    _RenderState.paragraph_close,
    'bullet_list_open':   _RenderState.list_open,
    'ordered_list_open':  _RenderState.list_open,
    'bullet_list_close':  _RenderState.list_close,
    'ordered_list_close': _RenderState.list_close,
    'list_item_open':     _RenderState.list_item_open,
    'list_item_close':    _RenderState.list_item_close,
    'blockquote_open':    _RenderState.blockquote_open,
    'blockquote_close':   _RenderState.blockquote_close,
    'fence':              _RenderState.fence,
    'hr':                 _RenderState.hr,
    'table_open':         _RenderState.table_open,
    'table_close':        _RenderState.line_break,
    'tr_open':            _RenderState.tr_open,
    'tr_close':           _RenderState.line_break,
    'th_open':            _RenderState.cell_open,
    'td_open':            _RenderState.cell_open,
    'th_close':           _RenderState.th_close,
    'text':               _RenderState.text,
    'code_inline':        _RenderState.code_inline,
    'strong_open':        _RenderState.mark_open,
    'em_open':            _RenderState.mark_open,
    's_open':             _RenderState.mark_open,
    'strong_close':       _RenderState.mark_close,
    'em_close':           _RenderState.mark_close,
    's_close':            _RenderState.mark_close,
    'link_open':          _RenderState.link_open,
    'link_close':         _RenderState.link_close,
    'image':              _RenderState.image,
    'softbreak':          _RenderState.line_break,
    'hardbreak':          _RenderState.line_break,
    'html_block':         _RenderState.html,
    'html_inline':        _RenderState.html,
}


class AnsiRenderer:
    """Renders Markdown tokens to ANSI-styled text with OSC-8 hyperlinks."""

    def __init__(self, settings: Settings | None = None, theme: Theme | None = None):
        self.settings = settings or Settings()
        self.theme = theme or Theme()

    def render(self, tokens: list[Token] | None) -> str:
        """Render a token stream; never raises."""
        if not tokens:
            return ''
        try:
            state = _RenderState(self.settings, self.theme)
            for tok in tokens:
                handler = HANDLERS.get(tok.type)
                if handler is not None:
                    handler(state, tok)
            return state.finish()
        except Exception as e:
            logger.debug(f'Rendering failed, falling back to plain text: {e}')
            return plain_text(tokens)

    def render_markdown(self, markdown: str | None) -> str:
        return self.render(tokenize(markdown))


def render(tokens: list[Token] | None, settings: Settings | None = None) -> str:
    """Render a token stream to terminal text."""
    return AnsiRenderer(settings).render(tokens)


def render_markdown(markdown: str | None, settings: Settings | None = None) -> str:
    """Tokenize and render Markdown to terminal text."""
    return AnsiRenderer(settings).render_markdown(markdown)

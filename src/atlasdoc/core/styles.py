"""Terminal style table and OSC-8 hyperlink helper"""

import re
from dataclasses import dataclass, field

from rich.color import ColorSystem
from rich.style import Style


ADMONITIONS = ('tip', 'warning', 'caution', 'important', 'note')

# CSI, OSC and two-byte escape sequences, removed whole so no parameter bytes leak.
ESCAPE_SEQUENCE_RE = re.compile(r"\x1b(?:\[[0-?]*[ -/]*[@-~]|\][^\x07\x1b]*(?:\x07|\x1b\\)?|[@-Z\\-_])")
CONTROL_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f-\x9f]")

# Rich style strings for the line highlighter, keyed by element.
HIGHLIGHT_COLORS: dict[str, str] = {
    'h1': 'bold bright_cyan',
    'h2': 'bold cyan',
    'h3': 'bold blue',
    'h4': 'bold green',
    'h5': 'bold yellow',
    'h6': 'bold magenta',
    'bold': 'bold white',
    'italic': 'italic cyan',
    'bold_italic': 'bold italic cyan',
    'code': 'yellow on bright_black',
    'strike': 'strike bright_black',
    'link': 'underline bright_blue',
    'link_url': 'dim bright_blue',
    'link_brackets': 'bright_black',
    'html': 'dim',
    'list_marker': 'cyan',
    'task_done': 'green',
    'task_pending': 'yellow',
    'quote': 'bright_black',
    'quote_tip': 'green',
    'quote_warning': 'yellow',
    'quote_caution': 'magenta',
    'quote_important': 'red',
    'quote_note': 'blue',
    'code_fence': 'bright_black',
    'code_lang': 'cyan',
    'rule': 'bright_black',
}


def _s(definition: str) -> Style:
    return Style.parse(definition)


@dataclass
class Theme:
    """Styles used by the ANSI renderer."""
    heading_marker: Style = field(default_factory=lambda: _s('yellow'))
    headings: dict[int, Style] = field(default_factory=lambda: {
        1: _s('bold underline white'),
        2: _s('bold white'),
        3: _s('bold dim'),
    })
    list_marker: Style = field(default_factory=lambda: _s('yellow'))
    quote_text: Style = field(default_factory=lambda: _s('italic'))
    quotes: dict[str, Style] = field(default_factory=lambda: {
        '': _s('bold bright_black'),
        'tip': _s('bold green'),
        'warning': _s('bold yellow'),
        'caution': _s('bold magenta'),
        'important': _s('bold red'),
        'note': _s('bold blue'),
    })
    rule: Style = field(default_factory=lambda: _s('bright_black'))
    code_header: Style = field(default_factory=lambda: _s('white on bright_black'))
    code_border: Style = field(default_factory=lambda: _s('bright_black'))
    code_text: Style = field(default_factory=lambda: _s('green'))
    inline_code: Style = field(default_factory=lambda: _s('white on bright_black'))
    strong: Style = field(default_factory=lambda: _s('bold'))
    em: Style = field(default_factory=lambda: _s('italic'))
    strike: Style = field(default_factory=lambda: _s('strike'))
    link: Style = field(default_factory=lambda: _s('blue underline'))
    image: Style = field(default_factory=lambda: _s('cyan'))
    html: Style = field(default_factory=lambda: _s('dim'))
    table_header: Style = field(default_factory=lambda: _s('bold underline'))

    def heading(self, level: int) -> Style:
        """Style for a heading level; levels past the table use the last entry."""
        return self.headings.get(level) or self.headings[max(self.headings)]

    def quote(self, admonition: str = '') -> Style:
        return self.quotes.get(admonition, self.quotes[''])


def paint(style: Style, text: str, color: bool = True) -> str:
    """Render text with a style's SGR codes, or unchanged when color is off."""
    return style.render(text, color_system=ColorSystem.TRUECOLOR if color else None)


def hyperlink(url: str, text: str) -> str:
    """Wrap text in an OSC-8 hyperlink (BEL terminated)."""
    return f'\x1b]8;;{url}\x07{text}\x1b]8;;\x07'


def strip_controls(text: str) -> str:
    """Remove escape sequences and control bytes (except newline and tab) from untrusted text."""
    return CONTROL_RE.sub('', ESCAPE_SEQUENCE_RE.sub('', text))

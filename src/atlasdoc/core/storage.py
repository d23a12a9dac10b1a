"""Conversion between Markdown and the wiki's XHTML storage markup"""

import logging
import re
from html import escape as html_escape
from xml.etree import ElementTree as ET

from bs4 import BeautifulSoup
from markdown_it import MarkdownIt
from markdownify import markdownify

from atlasdoc.core.errors import ConversionError


logger = logging.getLogger(__name__)

NAMESPACES = {
    "ac": "http://www.atlassian.com/schema/confluence/4/ac/",
    "ri": "http://www.atlassian.com/schema/confluence/4/ri/",
}

XML_ESCAPES = (('&', '&amp;'), ('<', '&lt;'), ('>', '&gt;'), ('"', '&quot;'), ("'", '&apos;'))
XML_UNESCAPES = (('&lt;', '<'), ('&gt;', '>'), ('&amp;', '&'), ('&quot;', '"'), ('&apos;', "'"))

TAG_RE = re.compile(r'<[^>]*>')
CDATA_RE = re.compile(r'<!\[CDATA\[(.*?)\]\]>', re.DOTALL)

# Wiki admonition macros -> Markdown admonition kinds.
MACRO_ADMONITIONS = {'info': 'important', 'note': 'note', 'tip': 'tip', 'warning': 'warning'}


# --- fallbacks ---

def escape_to_storage(text: str) -> str:
    """Fallback storage markup: the raw text XML-escaped inside a single <p>."""
    escaped = '' if text is None else str(text)
    for char, entity in XML_ESCAPES:
        escaped = escaped.replace(char, entity)
    return f'<p>{escaped}</p>'


def strip_storage_markup(storage: str) -> str:
    """Fallback Markdown: tags removed, the five XML entities decoded, trimmed."""
    text = TAG_RE.sub('', '' if storage is None else str(storage))
    for entity, char in XML_UNESCAPES:
        text = text.replace(entity, char)
    return text.strip()


# --- Markdown -> storage ---

def _cdata(text: str) -> str:
    return '<![CDATA[' + text.replace(']]>', ']]]]><![CDATA[>') + ']]>'


def _render_code_macro(self, tokens, idx, options, env) -> str:
    token = tokens[idx]
    info = token.info.strip() if token.info else ''
    language = info.split()[0] if info else ''
    parameter = (
        f'<ac:parameter ac:name="language">{html_escape(language)}</ac:parameter>' if language else ''
    )
    body = _cdata(token.content.rstrip("\n"))
    return (
        f'<ac:structured-macro ac:name="code">{parameter}'
        f'<ac:plain-text-body>{body}</ac:plain-text-body>'
        '</ac:structured-macro>\n'
    )


def _render_image(self, tokens, idx, options, env) -> str:
    token = tokens[idx]
    src = html_escape(str(token.attrGet('src') or ''))
    alt = html_escape(self.renderInlineAsText(token.children or [], options, env))
    return f'<ac:image ac:alt="{alt}"><ri:url ri:value="{src}" /></ac:image>'


def _make_storage_parser() -> MarkdownIt:
    """Build the MarkdownIt instance used to emit storage markup (source HTML is escaped)."""
    md = MarkdownIt('commonmark', {"html": False}).enable(['table', 'strikethrough'])
    md.add_render_rule('fence', _render_code_macro)
    md.add_render_rule('code_block', _render_code_macro)
    md.add_render_rule('image', _render_image)
    return md


def check_well_formed(markup: str) -> None:
    """Raise ConversionError unless markup parses as XML inside a namespaced root."""
    decls = ' '.join(f'xmlns:{prefix}="{uri}"' for prefix, uri in NAMESPACES.items())
    try:
        # Input is markup this module just rendered.
        ET.fromstring(f'<root {decls}>{markup}</root>')  # noqa: S314
    except ET.ParseError as e:
        raise ConversionError(f'Storage markup is not well-formed: {e}') from e


def _render_storage(markdown: str) -> str:
    markup = _make_storage_parser().render(markdown).strip()
    check_well_formed(markup)
    return markup


def to_storage_markup(markdown: str | None) -> str:
    """Convert Markdown to wiki storage markup; never raises."""
    if not markdown:
        return ''
    try:
        markup = _render_storage(markdown)
        logger.debug(f'Converted {len(markdown)} characters of markdown to {len(markup)} characters of XHTML')
        return markup
    except Exception as e:
        logger.debug(f'Storage conversion failed, escaping plain text: {e}')
        return escape_to_storage(markdown)


# --- storage -> Markdown ---

def _attr(tag, name: str) -> str:
    return tag.get(name) or ''


def _expand_macros(storage: str) -> str:
    """Rewrite wiki-specific elements into plain HTML that markdownify understands."""
    storage = CDATA_RE.sub(lambda m: html_escape(m.group(1), quote=False), storage)
    soup = BeautifulSoup(storage, 'html.parser')

    for macro in soup.find_all('ac:structured-macro'):
        name = _attr(macro, 'ac:name')
        if name == 'code':
            lang = macro.find('ac:parameter', attrs={'ac:name': 'language'})
            body = macro.find('ac:plain-text-body')
            pre = soup.new_tag('pre')
            code = soup.new_tag('code')
            if lang is not None and lang.get_text(strip=True):
                code['class'] = [f'language-{lang.get_text(strip=True)}']
            code.string = body.get_text() if body is not None else ''
            pre.append(code)
            macro.replace_with(pre)
        elif name in MACRO_ADMONITIONS:
            quote = soup.new_tag('blockquote')
            marker = soup.new_tag('p')
            marker.string = f'[!{MACRO_ADMONITIONS[name]}]'
            quote.append(marker)
            body = macro.find('ac:rich-text-body')
            for child in list(body.contents if body is not None else []):
                quote.append(child.extract())
            macro.replace_with(quote)

    for image in soup.find_all('ac:image'):
        target = image.find(['ri:url', 'ri:attachment'])
        src = ''
        if target is not None:
            src = _attr(target, 'ri:value') or _attr(target, 'ri:filename')
        img = soup.new_tag('img', src=src, alt=_attr(image, 'ac:alt'))
        image.replace_with(img)

    for link in soup.find_all('ac:link'):
        body = link.find(['ac:link-body', 'ac:plain-text-link-body'])
        page = link.find('ri:page')
        text = body.get_text() if body is not None else (_attr(page, 'ri:content-title') if page is not None else '')
        link.replace_with(text)

    for parameter in soup.find_all('ac:parameter'):
        parameter.decompose()

    return str(soup)


def _code_language(el) -> str:
    code = el.find('code')
    classes = (code.get('class') or []) if code is not None else []
    if isinstance(classes, str):
        classes = classes.split()
    for cls in classes:
        if cls.startswith('language-'):
            return cls[len('language-'):]
    return ''


def _render_markdown(storage: str) -> str:
    html = _expand_macros(storage)
    return markdownify(
        html,
        heading_style='ATX',
        bullets='-',
        escape_misc=False,
        code_language_callback=_code_language,
    ).strip()


def from_storage_markup(storage: str | None) -> str:
    """Convert wiki storage markup to Markdown; never raises."""
    if not storage:
        return ''
    try:
        return _render_markdown(storage)
    except Exception as e:
        logger.debug(f'Storage to markdown failed, stripping tags: {e}')
        return strip_storage_markup(storage)

"""URL helpers for issue and wiki links"""

import re


ABSOLUTE_URL_RE = re.compile(r'^https?://', re.IGNORECASE)


def build_issue_url(base_url: str, issue_key: str) -> str:
    """Return the browse URL for an issue key (e.g. https://x.example/browse/ABC-1)."""
    return f"{base_url.rstrip('/')}/browse/{issue_key}"


def resolve_url(base_url: str, path_or_url: str) -> str:
    """Resolve a relative path against base_url; absolute http(s) URLs pass through."""
    if not path_or_url:
        return base_url
    if ABSOLUTE_URL_RE.match(path_or_url):
        return path_or_url
    base = base_url.rstrip('/')
    path = path_or_url if path_or_url.startswith('/') else f'/{path_or_url}'
    if base.endswith('/wiki') and path.startswith('/wiki/'):
        path = path[len('/wiki'):]
    return f'{base}{path}'

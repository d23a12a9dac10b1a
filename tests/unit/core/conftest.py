"""Shared fixtures for core unit tests"""

import pytest

from atlasdoc.config import Settings
from atlasdoc.core.styles import Theme


SAMPLE_MD = """\
# Heading 1

A paragraph with **bold** text and a [link](https://example.com).

## Heading 2

- item one
- item two

> [!tip] Use the CLI

```python
print("hello")
```

---

Footer paragraph.
"""


@pytest.fixture(name="plain")
def plain_fixture():
    """Settings without colors or hyperlinks, so output is comparable text."""
    return Settings(color=False, hyperlinks=False)


@pytest.fixture(name="theme")
def theme_fixture():
    return Theme()


@pytest.fixture(name="sample_md")
def sample_md_fixture():
    return SAMPLE_MD

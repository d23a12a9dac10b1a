"""Application configuration: settings schema and config.yaml loader"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field


CONFIG_FILE = "config.yaml"
ENV_PREFIX = "ATLASDOC_"

DEFAULT_CODE_KEYWORDS: dict[str, list[str]] = {
    "javascript": ["const", "let", "var", "function", "return", "if", "else", "for", "while", "class",
                   "import", "export", "from", "async", "await", "try", "catch", "throw", "new", "this",
                   "null", "undefined", "true", "false"],
    "typescript": ["const", "let", "var", "function", "return", "if", "else", "for", "while", "class",
                   "import", "export", "from", "async", "await", "try", "catch", "throw", "new", "this",
                   "null", "undefined", "true", "false", "interface", "type", "enum", "implements",
                   "extends", "public", "private", "protected"],
    "python": ["def", "class", "import", "from", "return", "if", "elif", "else", "for", "while", "try",
               "except", "raise", "with", "as", "lambda", "True", "False", "None", "and", "or", "not",
               "in", "is", "async", "await"],
    "rust": ["fn", "let", "mut", "const", "struct", "enum", "impl", "trait", "pub", "use", "mod", "if",
             "else", "match", "for", "while", "loop", "return", "self", "Self", "true", "false",
             "async", "await", "move", "ref", "where"],
    "go": ["func", "var", "const", "type", "struct", "interface", "package", "import", "if", "else",
           "for", "range", "switch", "case", "return", "defer", "go", "chan", "select", "true",
           "false", "nil"],
    "bash": ["if", "then", "else", "fi", "for", "do", "done", "while", "case", "esac", "function",
             "return", "exit", "echo", "export", "source", "local", "readonly"],
    "json": [],
    "yaml": [],
    "html": [],
    "css": [],
}


class Settings(BaseModel):
    app_name:    str  = "atlasdoc"
    color:       bool = Field(default=True,  description="Emit ANSI SGR style codes")
    hyperlinks:  bool = Field(default=True,  description="Wrap links in OSC-8 hyperlink sequences")
    rule_width:  int  = Field(default=60, ge=3, description="Width of horizontal rules")
    code_width:  int  = Field(default=56, ge=8, description="Interior width of code block boxes")
    list_indent: int  = Field(default=2,  ge=0, description="Spaces per list nesting level")
    base_url:    Optional[str] = Field(default=None, description="Base URL for resolving relative links")
    code_keywords: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_CODE_KEYWORDS.items()},
        description="Keyword table used by code line highlighting",
    )


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from config.yaml, then ATLASDOC_<FIELD> env vars, then non-None CLI overrides."""
    data: dict[str, Any] = {}
    if Path(CONFIG_FILE).exists():
        try:
            data = yaml.safe_load(Path(CONFIG_FILE).read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid {CONFIG_FILE}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Invalid {CONFIG_FILE}: expected a mapping, got {type(data).__name__}")

    for name in Settings.model_fields:
        if val := os.getenv(f"{ENV_PREFIX}{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**data)

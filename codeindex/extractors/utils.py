"""Shared text helpers for extractor implementations."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

_DEF_ANYWHERE = re.compile(r"def\s+((?:self\.)?\w+[?!=]?)")
_CLASS_METHOD_DEF = re.compile(r"def\s+self\.(\w+[?!=]?)")
_INITIALIZE_DEF = re.compile(r"def\s+initialize\b")
_KEYWORD_PARAM = re.compile(r"^(\w+):(.*)$", re.S)
_OPTIONAL_PARAM = re.compile(r"^(\w+)\s*=\s*(.+)$", re.S)
_REQUIRED_PARAM = re.compile(r"^(\w+)$")

_OPENERS = {"(": ")", "[": "]", "{": "}"}


@dataclass(frozen=True)
class Parameter:
    """One entry of a method parameter list."""

    name: str
    kind: str

    @property
    def has_default(self) -> bool:
        return self.kind in {"optional", "keyword_optional"}

    @property
    def keyword(self) -> bool:
        return self.kind in {"keyword_required", "keyword_optional"}


def read_source(path: Optional[str | Path]) -> str:
    """Return file text, or an empty string when the file is missing or unreadable."""
    if not path:
        return ""
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return ""


def count_loc(source: str) -> int:
    """Count lines that are non-blank and not comment-prefixed."""
    count = 0
    for line in source.splitlines():
        stripped = line.strip()
        if stripped and not stripped.startswith("#"):
            count += 1
    return count


def extract_public_methods(source: str) -> List[str]:
    """Method names defined outside ``private``/``protected`` sections."""
    methods: List[str] = []
    in_private = False
    in_protected = False
    for line in source.splitlines():
        stripped = line.strip()
        if stripped == "private":
            in_private = True
        elif stripped == "protected":
            in_protected = True
        elif stripped == "public":
            in_private = False
            in_protected = False

        if in_private or in_protected:
            continue
        match = _DEF_ANYWHERE.search(stripped)
        if match and not match.group(1).startswith("_"):
            methods.append(match.group(1))
    return methods


def extract_class_methods(source: str) -> List[str]:
    return _CLASS_METHOD_DEF.findall(source)


def initializer_signature(source: str) -> Optional[str]:
    """Raw parameter list text of the first ``initialize`` definition."""
    match = _INITIALIZE_DEF.search(source)
    if not match:
        return None
    rest = source[match.end():]
    stripped = rest.lstrip(" \t")
    if stripped.startswith("("):
        closing = _matching_paren(stripped)
        if closing is None:
            return None
        return stripped[1:closing]
    first_line = stripped.split("\n", 1)[0].strip()
    return first_line


def parse_parameters(signature: Optional[str]) -> List[Parameter]:
    """Classify each entry of a parameter list by its calling convention."""
    if not signature:
        return []
    params: List[Parameter] = []
    for part in _split_top_level(signature):
        text = part.strip()
        if not text:
            continue
        if text.startswith("&"):
            params.append(Parameter(text[1:].strip() or "&", "block"))
        elif text.startswith("**"):
            params.append(Parameter(text[2:].strip() or "**", "double_splat"))
        elif text.startswith("*"):
            params.append(Parameter(text[1:].strip() or "*", "splat"))
        else:
            param = _classify_named(text)
            if param is not None:
                params.append(param)
    return params


def parameter_summary(params: List[Parameter]) -> List[Dict[str, object]]:
    return [
        {"name": param.name, "has_default": param.has_default, "keyword": param.keyword}
        for param in params
    ]


def _classify_named(text: str) -> Optional[Parameter]:
    keyword = _KEYWORD_PARAM.match(text)
    if keyword:
        kind = "keyword_optional" if keyword.group(2).strip() else "keyword_required"
        return Parameter(keyword.group(1), kind)
    optional = _OPTIONAL_PARAM.match(text)
    if optional:
        return Parameter(optional.group(1), "optional")
    required = _REQUIRED_PARAM.match(text)
    if required:
        return Parameter(required.group(1), "required")
    return None


def _matching_paren(text: str) -> Optional[int]:
    depth = 0
    quote: Optional[str] = None
    for index, char in enumerate(text):
        if quote:
            if char == quote:
                quote = None
            continue
        if char in {'"', "'"}:
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return index
    return None


def _split_top_level(text: str) -> List[str]:
    parts: List[str] = []
    current: List[str] = []
    closers: List[str] = []
    quote: Optional[str] = None
    for char in text:
        if quote:
            current.append(char)
            if char == quote:
                quote = None
            continue
        if char in {'"', "'"}:
            quote = char
        elif char in _OPENERS:
            closers.append(_OPENERS[char])
        elif closers and char == closers[-1]:
            closers.pop()
        elif char == "," and not closers:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    if current:
        parts.append("".join(current))
    return parts


__all__ = [
    "Parameter",
    "count_loc",
    "extract_class_methods",
    "extract_public_methods",
    "initializer_signature",
    "parameter_summary",
    "parse_parameters",
    "read_source",
]

"""Naming conventions that map component names to files and back.

All helpers here are pure string functions so they can be tested without a
filesystem. Extractors combine them with an application root to locate files.
"""

from __future__ import annotations

import re
from typing import Callable, Optional

_ACRONYM_BOUNDARY = re.compile(r"([A-Z\d]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z\d])([A-Z])")

NamingConvention = Callable[[str], str]


def underscore(name: str) -> str:
    """``Payments::StripeService`` -> ``payments/stripe_service``."""
    word = name.replace("::", "/")
    word = _ACRONYM_BOUNDARY.sub(r"\1_\2", word)
    word = _WORD_BOUNDARY.sub(r"\1_\2", word)
    return word.replace("-", "_").lower()


def camelize(path: str) -> str:
    """``payments/stripe_service`` -> ``Payments::StripeService``."""
    segments = [segment for segment in path.split("/") if segment]
    return "::".join(
        "".join(part[:1].upper() + part[1:] for part in segment.split("_") if part)
        for segment in segments
    )


def demodulize(name: str) -> str:
    return name.rsplit("::", 1)[-1]


def namespace_of(name: Optional[str]) -> Optional[str]:
    """Everything before the last ``::`` segment, or None for unqualified names."""
    if not name or "::" not in name:
        return None
    return name.rsplit("::", 1)[0]


def pluralize(word: str) -> str:
    if not word:
        return word
    if word.endswith("y") and word[-2:-1] not in set("aeiou"):
        return word[:-1] + "ies"
    if word.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    return word + "s"


def convention_path(category: str, name: str, *, base: str = "app", extension: str = ".rb") -> str:
    """Relative path a component of ``category`` conventionally lives at.

    ``convention_path("channel", "ChatChannel")`` -> ``app/channels/chat_channel.rb``
    """
    return f"{base}/{pluralize(category)}/{underscore(name)}{extension}"


def convention_for(category: str, *, base: str = "app", extension: str = ".rb") -> NamingConvention:
    """Return a single-argument naming convention bound to ``category``."""

    def _convention(name: str) -> str:
        return convention_path(category, name, base=base, extension=extension)

    return _convention


__all__ = [
    "NamingConvention",
    "camelize",
    "convention_for",
    "convention_path",
    "demodulize",
    "namespace_of",
    "pluralize",
    "underscore",
]

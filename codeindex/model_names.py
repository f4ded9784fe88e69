"""Directory of known data-model names used for whole-word source matching."""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Pattern

from .registry import ComponentRegistry

MODEL_BASE_TYPE = "ActiveRecord::Base"

# Matches nothing; used when no models are known.
_NEVER_MATCHES = re.compile(r"(?!)")


class ModelNameDirectory:
    """Known model names plus a precompiled alternation pattern over them."""

    def __init__(self, names: Iterable[str] = ()) -> None:
        unique: List[str] = []
        for name in names:
            if name and name not in unique:
                unique.append(name)
        self._names = unique
        self._regex: Optional[Pattern[str]] = None

    @classmethod
    def from_registry(
        cls, registry: ComponentRegistry | None, base_type: str = MODEL_BASE_TYPE
    ) -> "ModelNameDirectory":
        if registry is None:
            return cls()
        return cls(
            descriptor.name
            for descriptor in registry.enumerate_subtypes(base_type)
            if descriptor.name
        )

    @property
    def names(self) -> List[str]:
        return list(self._names)

    @property
    def regex(self) -> Pattern[str]:
        if self._regex is None:
            self._regex = self._build_regex()
        return self._regex

    def __bool__(self) -> bool:
        return bool(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def find(self, source: str) -> List[str]:
        """Model names referenced in ``source``, first-seen order, no repeats."""
        found: List[str] = []
        for match in self.regex.findall(source):
            if match not in found:
                found.append(match)
        return found

    def _build_regex(self) -> Pattern[str]:
        if not self._names:
            return _NEVER_MATCHES
        # Longest first so ``UserProfile`` wins over ``User`` at the same position.
        ordered = sorted(self._names, key=len, reverse=True)
        alternation = "|".join(re.escape(name) for name in ordered)
        return re.compile(rf"\b(?:{alternation})\b")


__all__ = ["MODEL_BASE_TYPE", "ModelNameDirectory"]

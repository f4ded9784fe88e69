"""Named text-matching rules for common dependency shapes.

Every rule is a small, independently testable object. Extractors compose them
through :class:`DependencyScanner` instead of embedding regexes in their
control flow.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Pattern, Sequence

from ..model_names import ModelNameDirectory
from ..models import DependencyEdge, dedupe_edges

CODE_REFERENCE = "code_reference"


@dataclass(frozen=True)
class PatternRule:
    """A regex that yields one dependency edge per distinct capture.

    When ``target`` is set the rule is a presence check: any match yields a
    single edge pointing at that fixed target.
    """

    name: str
    pattern: Pattern[str]
    dependency_type: str
    target: Optional[str] = None
    via: str = CODE_REFERENCE

    def matches(self, source: str) -> List[str]:
        if self.target is not None:
            return [self.target] if self.pattern.search(source) else []
        found: List[str] = []
        for match in self.pattern.finditer(source):
            value = match.group(1)
            if value and value not in found:
                found.append(value)
        return found

    def edges(self, source: str, *, via: Optional[str] = None) -> List[DependencyEdge]:
        label = via or self.via
        return [DependencyEdge(self.dependency_type, target, label) for target in self.matches(source)]


SERVICE_REFERENCE = PatternRule(
    "service_reference", re.compile(r"(\w+Service)(?:\.|::)"), "service"
)
INTERACTOR_REFERENCE = PatternRule(
    "interactor_reference", re.compile(r"(\w+Interactor)(?:\.|::)"), "interactor"
)
JOB_INVOCATION = PatternRule("job_invocation", re.compile(r"(\w+Job)\.perform"), "job")
MAILER_INVOCATION = PatternRule("mailer_invocation", re.compile(r"(\w+Mailer)\."), "mailer")
API_CLIENT_CONSTRUCTION = PatternRule(
    "api_client_construction", re.compile(r"(\w+Client)(?:\.|::new)"), "api_client"
)
HTTP_LIBRARY = PatternRule(
    "http_library",
    re.compile(r"HTTParty|Faraday|RestClient|Net::HTTP"),
    "external",
    target="http_api",
)
CACHE_INFRASTRUCTURE = PatternRule(
    "cache_infrastructure",
    re.compile(r"Redis\.current|REDIS|Sidekiq\.redis"),
    "infrastructure",
    target="redis",
)

PATTERN_LIBRARY: Dict[str, PatternRule] = {
    rule.name: rule
    for rule in (
        SERVICE_REFERENCE,
        INTERACTOR_REFERENCE,
        JOB_INVOCATION,
        MAILER_INVOCATION,
        API_CLIENT_CONSTRUCTION,
        HTTP_LIBRARY,
        CACHE_INFRASTRUCTURE,
    )
}

DEFAULT_RULES: Sequence[PatternRule] = tuple(PATTERN_LIBRARY.values())


class DependencyScanner:
    """Applies model matching plus a rule set to source text."""

    def __init__(
        self,
        models: ModelNameDirectory | None = None,
        rules: Sequence[PatternRule] = DEFAULT_RULES,
    ) -> None:
        self.models = models or ModelNameDirectory()
        self.rules = tuple(rules)

    def model_edges(self, source: str, *, via: str = CODE_REFERENCE) -> List[DependencyEdge]:
        return [DependencyEdge("model", name, via) for name in self.models.find(source)]

    def scan(self, source: str, *, model_via: str = CODE_REFERENCE) -> List[DependencyEdge]:
        """All shared dependency edges found in ``source``, deduplicated."""
        if not source:
            return []
        edges: List[DependencyEdge] = self.model_edges(source, via=model_via)
        for rule in self.rules:
            edges.extend(rule.edges(source))
        return dedupe_edges(edges)


def first_seen(values: Iterable[str]) -> List[str]:
    """Drop repeats while preserving first-occurrence order."""
    result: List[str] = []
    for value in values:
        if value not in result:
            result.append(value)
    return result


__all__ = [
    "API_CLIENT_CONSTRUCTION",
    "CACHE_INFRASTRUCTURE",
    "CODE_REFERENCE",
    "DEFAULT_RULES",
    "DependencyScanner",
    "HTTP_LIBRARY",
    "INTERACTOR_REFERENCE",
    "JOB_INVOCATION",
    "MAILER_INVOCATION",
    "PATTERN_LIBRARY",
    "PatternRule",
    "SERVICE_REFERENCE",
    "first_seen",
]

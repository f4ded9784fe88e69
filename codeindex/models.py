"""Core data models shared across codeindex components."""

from __future__ import annotations

import hashlib
import json
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple


class UnitKind(str, Enum):
    """Kinds of units emitted by the builtin extractors."""

    CHANNEL = "channel"
    SCHEDULED_JOB = "scheduled_job"
    SERVICE = "service"
    VIEW_COMPONENT = "view_component"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class DependencyEdge:
    """A directed reference from a unit to another component."""

    type: str
    target: str
    via: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str]:
        return (self.type, self.target)

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"type": self.type, "target": self.target, "via": self.via}


def dedupe_edges(edges: Iterable[DependencyEdge]) -> List[DependencyEdge]:
    """Keep the first edge for each ``(type, target)`` pair, preserving order."""
    seen: set[Tuple[str, str]] = set()
    result: List[DependencyEdge] = []
    for edge in edges:
        if edge.key in seen:
            continue
        seen.add(edge.key)
        result.append(edge)
    return result


@dataclass(frozen=True)
class Unit:
    """Normalized record for one discovered component."""

    kind: str
    identifier: str
    namespace: Optional[str] = None
    file_path: Optional[str] = None
    source_text: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict)
    dependencies: Tuple[DependencyEdge, ...] = ()

    def __post_init__(self) -> None:
        if not self.identifier:
            raise ValueError("Unit identifier must be a non-empty string")
        object.__setattr__(self, "kind", str(self.kind))
        object.__setattr__(self, "metadata", _freeze(dict(self.metadata)))
        object.__setattr__(self, "dependencies", tuple(self.dependencies))

    @property
    def source_hash(self) -> str:
        return hashlib.sha256(self.source_text.encode("utf-8")).hexdigest()

    @property
    def estimated_tokens(self) -> int:
        """Rough token estimate (4 characters per token) over source and metadata."""
        source_tokens = math.ceil(len(self.source_text) / 4)
        metadata_tokens = 0
        if self.metadata:
            metadata_tokens = math.ceil(len(_json_dumps(dict(self.metadata))) / 4)
        return source_tokens + metadata_tokens

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "identifier": self.identifier,
            "namespace": self.namespace,
            "file_path": self.file_path,
            "source_text": self.source_text,
            "metadata": _plain(self.metadata),
            "dependencies": [edge.to_dict() for edge in self.dependencies],
            "source_hash": self.source_hash,
            "estimated_tokens": self.estimated_tokens,
        }


class ExtractionError(RuntimeError):
    """Raised (and recorded) when a single unit or file cannot be extracted."""

    def __init__(self, kind: str, subject: str, cause: BaseException) -> None:
        super().__init__(f"{kind} {subject}: {cause}")
        self.kind = kind
        self.subject = subject
        self.cause = cause


@dataclass(frozen=True)
class ExtractionOutcome:
    """Result of extracting one candidate: units on success, an error otherwise."""

    kind: str
    subject: str
    units: Tuple[Unit, ...] = ()
    error: Optional[ExtractionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, kind: str, subject: str, units: Iterable[Unit]) -> "ExtractionOutcome":
        return cls(kind=str(kind), subject=subject, units=tuple(units))

    @classmethod
    def failure(cls, kind: str, subject: str, exc: BaseException) -> "ExtractionOutcome":
        return cls(kind=str(kind), subject=subject, error=ExtractionError(str(kind), subject, exc))


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


def _plain(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(key): _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, Enum):
        return value.value
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    # YAML can yield dates, timestamps and other non-JSON scalars.
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def _json_dumps(value: Any) -> str:
    return json.dumps(_plain(value), sort_keys=True, default=str)


__all__ = [
    "DependencyEdge",
    "ExtractionError",
    "ExtractionOutcome",
    "Unit",
    "UnitKind",
    "dedupe_edges",
]

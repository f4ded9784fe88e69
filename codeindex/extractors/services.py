"""Extractor for service objects found by directory convention.

Service objects carry most of an application's business logic but share no
common base type, so they are discovered by scanning conventional directories
rather than through the registry.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from ..models import ExtractionOutcome, Unit, UnitKind
from ..naming import camelize, namespace_of
from .base import ExtractionContext, Extractor
from .patterns import first_seen
from .utils import (
    count_loc,
    extract_class_methods,
    extract_public_methods,
    initializer_signature,
    parameter_summary,
    parse_parameters,
)

SERVICE_DIRECTORIES: Tuple[str, ...] = (
    "app/services",
    "app/interactors",
    "app/operations",
    "app/commands",
    "app/use_cases",
)

ENTRY_POINT_METHODS = ("call", "perform", "execute", "run", "process")

# Directory segment -> service_type; anything else is a plain "service".
_SERVICE_TYPES = (
    ("interactors", "interactor"),
    ("operations", "operation"),
    ("commands", "command"),
    ("use_cases", "use_case"),
)

CLASS_DECLARATION = re.compile(r"^\s*class\s+([\w:]+)", re.M)
_MODULE_ONLY = re.compile(r"^\s*module\s+\w+\s*$", re.M)
_ANY_CLASS = re.compile(r"^\s*class\s+", re.M)
_INTERACTOR_MIXIN = re.compile(r"include\s+Interactor")
_MONADS_MIXIN = re.compile(r"include\s+Dry::Monads")
_ATTR_DECLARATION = re.compile(r"attr_(?:reader|accessor)\s+(.+)")
_SYMBOL = re.compile(r":(\w+)")
_DEPENDENCY_ROLE = re.compile(r"service|repository|client|adapter|gateway|notifier|mailer")
_IVAR_INJECTION = re.compile(
    r"@(\w+)\s*=\s*[A-Z][\w:]*?(?:Service|Client|Repository|Adapter|Gateway)\b(?:\.|::|\()"
)
_CUSTOM_ERROR = re.compile(r"class\s+(\w+(?:Error|Exception))\s*<")
_RESCUE = re.compile(r"rescue\s+([\w:]+)")
_MONAD_RETURN = re.compile(r"Success\(|Failure\(")
_RESULT_RETURN = re.compile(r"Result\.new|OpenStruct\.new")
_BOOLEAN_CALL = re.compile(r"def call.*?(?:true|false)\s*$", re.S | re.M)
_METHOD_DEFINITION = re.compile(r"def\s+(?:self\.)?\w+")
_BRANCH_KEYWORD = re.compile(r"\b(?:if|unless|elsif|when|while|until|for|rescue)\b")
_LOGICAL_OPERATOR = re.compile(r"&&|\|\|")
_BANNER_RULE = "# " + "=" * 72


class ServiceExtractor(Extractor):
    """Builds units for every class under the conventional service directories."""

    name = "services"
    kind = UnitKind.SERVICE.value
    label = "service"

    def __init__(self, context: ExtractionContext) -> None:
        super().__init__(context)
        configured = context.service_directories
        self.directories: Sequence[str] = tuple(configured) if configured else SERVICE_DIRECTORIES

    def scan_roots(self) -> List[Path]:
        return [self.root / directory for directory in self.directories if (self.root / directory).is_dir()]

    def iter_outcomes(self) -> Iterator[ExtractionOutcome]:
        for directory in self.scan_roots():
            for path in sorted(directory.rglob("*.rb")):
                yield self.attempt(str(path), lambda p=path: _optional(self.extract_service_file(p)))

    def extract_service_file(self, path: Path) -> Optional[Unit]:
        """Unit for one file, or None when the file declares only a module."""
        source = path.read_text(encoding="utf-8")
        if skip_file(source):
            return None
        class_name = self.class_name_for(path, source)
        if not class_name:
            return None

        return Unit(
            kind=self.kind,
            identifier=class_name,
            namespace=namespace_of(class_name),
            file_path=str(path),
            source_text=annotate_source(source, class_name),
            metadata=self.build_metadata(source, path),
            dependencies=self.scanner.scan(source),
        )

    def class_name_for(self, path: Path, source: str) -> Optional[str]:
        """Declared class name, else one derived from the path below its scan root."""
        match = CLASS_DECLARATION.search(source)
        if match:
            return match.group(1)
        relative = self.relative(path)
        for directory in self.directories:
            prefix = directory.rstrip("/") + "/"
            if relative.startswith(prefix):
                relative = relative[len(prefix):]
                break
        if relative.endswith(".rb"):
            relative = relative[: -len(".rb")]
        return camelize(relative) or None

    def build_metadata(self, source: str, path: Path) -> Dict[str, object]:
        return {
            "public_methods": extract_public_methods(source),
            "entry_points": detect_entry_points(source),
            "class_methods": extract_class_methods(source),
            "is_callable": _defines(source, "call"),
            "is_interactor": bool(_INTERACTOR_MIXIN.search(source)),
            "uses_dry_monads": bool(_MONADS_MIXIN.search(source)),
            "initialize_params": parameter_summary(parse_parameters(initializer_signature(source))),
            "injected_dependencies": extract_injected_dependencies(source),
            "custom_errors": _CUSTOM_ERROR.findall(source),
            "rescues": first_seen(_RESCUE.findall(source)),
            "return_type": infer_return_type(source),
            "loc": count_loc(source),
            "method_count": len(_METHOD_DEFINITION.findall(source)),
            "complexity": estimate_complexity(source),
            "service_type": infer_service_type(self.relative(path)),
        }


def skip_file(source: str) -> bool:
    """Module-only files are shared concerns, not services."""
    return bool(_MODULE_ONLY.search(source)) and not _ANY_CLASS.search(source)


def detect_entry_points(source: str) -> List[str]:
    points = [method for method in ENTRY_POINT_METHODS if _defines(source, method)]
    return points or ["unknown"]


def annotate_source(source: str, class_name: str) -> str:
    """Prepend a retrieval banner; scanning always uses the raw ``source``."""
    entry_points = ", ".join(detect_entry_points(source))
    banner = "\n".join(
        [
            _BANNER_RULE,
            f"# Service: {class_name}",
            f"# Entry Points: {entry_points}",
            _BANNER_RULE,
            "",
            "",
        ]
    )
    return banner + source


def extract_injected_dependencies(source: str) -> List[str]:
    deps: List[str] = []
    for declaration in _ATTR_DECLARATION.findall(source):
        for attribute in _SYMBOL.findall(declaration):
            if _DEPENDENCY_ROLE.search(attribute):
                deps.append(attribute)
    deps.extend(_IVAR_INJECTION.findall(source))
    return first_seen(deps)


def infer_return_type(source: str) -> str:
    if _MONAD_RETURN.search(source):
        return "dry_monad"
    if _RESULT_RETURN.search(source):
        return "result_object"
    if _BOOLEAN_CALL.search(source):
        return "boolean"
    return "unknown"


def estimate_complexity(source: str) -> int:
    """McCabe-style estimate: branch keywords plus logical operators, plus one."""
    return len(_BRANCH_KEYWORD.findall(source)) + len(_LOGICAL_OPERATOR.findall(source)) + 1


def infer_service_type(relative_path: str) -> str:
    segments = relative_path.split("/")
    for segment, service_type in _SERVICE_TYPES:
        if segment in segments:
            return service_type
    return "service"


def _defines(source: str, method: str) -> bool:
    return re.search(rf"def (?:self\.)?{re.escape(method)}\b", source) is not None


def _optional(unit: Optional[Unit]) -> List[Unit]:
    return [unit] if unit is not None else []


__all__ = [
    "CLASS_DECLARATION",
    "ENTRY_POINT_METHODS",
    "SERVICE_DIRECTORIES",
    "ServiceExtractor",
    "annotate_source",
    "detect_entry_points",
    "estimate_complexity",
    "extract_injected_dependencies",
    "infer_return_type",
    "infer_service_type",
    "skip_file",
]

"""Component registry: enumerates component types and where their methods live.

The extractors never introspect a running application. Instead they consume a
registry populated either from an explicit manifest file or from a static
pre-scan of ``class``/``def`` declarations in the source tree.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Set, Tuple

import yaml

from .logging import get_logger
from .naming import namespace_of

_CLASS_DECL = re.compile(r"^class\s+(?:::)?([A-Z][\w:]*)(?:\s*<\s*(?:::)?([A-Z][\w:]*))?")
_SINGLETON_DECL = re.compile(r"^class\s*<<\s*self\b")
_MODULE_DECL = re.compile(r"^module\s+(?:::)?([A-Z][\w:]*)")
_DEF_DECL = re.compile(r"^(?:(private|protected|public)\s+)?def\s+(self\.)?(\w+[?!=]?)")
_ONE_LINE_END = re.compile(r"(?:;|\s)end\s*$")
_VISIBILITY = {"private", "protected", "public"}
# Ruby keeps these private regardless of the surrounding visibility section.
_IMPLICITLY_PRIVATE = {"initialize", "initialize_copy", "respond_to_missing?"}

DEFAULT_SCAN_DIRECTORIES = ("app", "test/components/previews", "spec/components/previews")


class RegistryError(RuntimeError):
    """Raised when a registry manifest cannot be parsed."""


@dataclass(frozen=True)
class MethodLocation:
    """Where a method is defined."""

    file_path: str
    line: Optional[int] = None


@dataclass(frozen=True)
class ComponentDescriptor:
    """Handle to one component type known to the registry."""

    name: Optional[str]
    superclass: Optional[str] = None
    instance_methods: Tuple[str, ...] = ()
    method_locations: Mapping[str, Optional[MethodLocation]] = field(default_factory=dict)
    initialize_parameters: Optional[Tuple[Tuple[str, str], ...]] = None

    def source_location(self, method: str) -> Optional[MethodLocation]:
        """Location of a directly defined method; raises KeyError when unknown."""
        return self.method_locations[method]

    def defines(self, method: str) -> bool:
        return method in self.method_locations


class ComponentRegistry(Protocol):
    """Contract consumed by registry-driven extractors."""

    def has_type(self, tag: str) -> bool:
        ...

    def enumerate_subtypes(self, tag: str) -> List[ComponentDescriptor]:
        ...

    def is_subtype_of(self, descriptor: ComponentDescriptor, tag: str) -> bool:
        ...

    def lookup(self, name: str) -> Optional[ComponentDescriptor]:
        ...


class StaticComponentRegistry:
    """Registry backed by a fixed list of descriptors."""

    def __init__(
        self,
        descriptors: Iterable[ComponentDescriptor],
        known_types: Iterable[str] = (),
    ) -> None:
        self._descriptors: List[ComponentDescriptor] = list(descriptors)
        self._by_name: Dict[str, ComponentDescriptor] = {}
        for descriptor in self._descriptors:
            if descriptor.name and descriptor.name not in self._by_name:
                self._by_name[descriptor.name] = descriptor
        self._known: Set[str] = set(known_types)
        self._known.update(self._by_name)
        self._known.update(d.superclass for d in self._descriptors if d.superclass)

    def __len__(self) -> int:
        return len(self._descriptors)

    @property
    def descriptors(self) -> List[ComponentDescriptor]:
        return list(self._descriptors)

    def has_type(self, tag: str) -> bool:
        return tag in self._known

    def lookup(self, name: str) -> Optional[ComponentDescriptor]:
        return self._by_name.get(name)

    def enumerate_subtypes(self, tag: str) -> List[ComponentDescriptor]:
        if not self.has_type(tag):
            return []
        return [descriptor for descriptor in self._descriptors if self.is_subtype_of(descriptor, tag)]

    def is_subtype_of(self, descriptor: ComponentDescriptor, tag: str) -> bool:
        return tag in self.ancestors(descriptor)

    def ancestors(self, descriptor: ComponentDescriptor) -> List[str]:
        """Resolved superclass chain, nearest first."""
        chain: List[str] = []
        current: Optional[ComponentDescriptor] = descriptor
        while current is not None:
            parent = self._resolve_superclass(current)
            if parent is None or parent in chain or parent == descriptor.name:
                break
            chain.append(parent)
            current = self._by_name.get(parent)
        return chain

    def _resolve_superclass(self, descriptor: ComponentDescriptor) -> Optional[str]:
        parent = descriptor.superclass
        if not parent:
            return None
        namespace = namespace_of(descriptor.name)
        while namespace:
            candidate = f"{namespace}::{parent}"
            if candidate in self._known:
                return candidate
            namespace = namespace_of(namespace)
        return parent

    # ------------------------------------------------------------------
    # Construction helpers

    @classmethod
    def from_manifest(cls, path: Path, *, root: Path | None = None) -> "StaticComponentRegistry":
        """Load descriptors from a YAML (or JSON) manifest file."""
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise RegistryError(f"Failed to read registry manifest {path}: {exc}") from exc
        if data is None:
            return cls([])
        if not isinstance(data, dict):
            raise RegistryError("Registry manifest must contain a mapping at the root")

        base = root if root is not None else path.parent
        types = data.get("types") or []
        components = data.get("components") or []
        if not isinstance(types, list) or not isinstance(components, list):
            raise RegistryError("Registry manifest 'types' and 'components' must be lists")

        descriptors = [_descriptor_from_manifest(entry, base) for entry in components]
        return cls(descriptors, known_types=[str(tag) for tag in types])

    @classmethod
    def from_source_tree(
        cls,
        root: Path,
        directories: Sequence[str] = DEFAULT_SCAN_DIRECTORIES,
        known_types: Iterable[str] = (),
    ) -> "StaticComponentRegistry":
        """Pre-scan ``*.rb`` files below ``directories`` for class declarations."""
        logger = get_logger("registry")
        scanner = _DeclarationScanner()
        for directory in directories:
            base = root / directory
            if not base.is_dir():
                continue
            for path in sorted(base.rglob("*.rb")):
                try:
                    text = path.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError) as exc:
                    logger.debug("Skipping unreadable source %s: %s", path, exc)
                    continue
                scanner.scan(text, str(path))
        descriptors = scanner.descriptors()
        logger.debug("Pre-scan registered %d component declarations", len(descriptors))
        return cls(descriptors, known_types=known_types)


def _descriptor_from_manifest(entry: Any, base: Path) -> ComponentDescriptor:
    if not isinstance(entry, dict):
        raise RegistryError("Each registry component must be a mapping")
    name = entry.get("name")
    superclass = entry.get("superclass")
    public: List[str] = []
    locations: Dict[str, Optional[MethodLocation]] = {}
    for method in entry.get("methods") or []:
        if isinstance(method, str):
            public.append(method)
            locations[method] = None
            continue
        if not isinstance(method, dict) or not method.get("name"):
            raise RegistryError(f"Invalid method entry for component {name!r}")
        method_name = str(method["name"])
        if method.get("visibility", "public") == "public":
            public.append(method_name)
        file_value = method.get("file")
        if file_value:
            file_path = Path(str(file_value))
            if not file_path.is_absolute():
                file_path = base / file_path
            line = method.get("line")
            locations[method_name] = MethodLocation(str(file_path), int(line) if line else None)
        else:
            locations[method_name] = None

    parameters = entry.get("initialize_parameters")
    parsed_parameters: Optional[Tuple[Tuple[str, str], ...]] = None
    if parameters is not None:
        parsed_parameters = tuple(
            (str(kind), str(param_name)) for kind, param_name in parameters
        )

    return ComponentDescriptor(
        name=str(name) if name else None,
        superclass=str(superclass) if superclass else None,
        instance_methods=tuple(public),
        method_locations=locations,
        initialize_parameters=parsed_parameters,
    )


@dataclass
class _Scope:
    kind: str
    name: Optional[str]
    indent: int
    visibility: str = "public"


@dataclass
class _PendingComponent:
    name: str
    superclass: Optional[str]
    public: List[str] = field(default_factory=list)
    locations: Dict[str, MethodLocation] = field(default_factory=dict)


class _DeclarationScanner:
    """Line-based scanner tracking ``module``/``class`` nesting by indentation."""

    def __init__(self) -> None:
        self._pending: Dict[str, _PendingComponent] = {}

    def descriptors(self) -> List[ComponentDescriptor]:
        return [
            ComponentDescriptor(
                name=pending.name,
                superclass=pending.superclass,
                instance_methods=tuple(pending.public),
                method_locations=dict(pending.locations),
            )
            for pending in self._pending.values()
        ]

    def scan(self, text: str, file_path: str) -> None:
        stack: List[_Scope] = []
        for lineno, raw in enumerate(text.splitlines(), start=1):
            stripped = raw.strip()
            if not stripped or stripped.startswith("#"):
                continue
            indent = len(raw) - len(raw.lstrip())

            if _SINGLETON_DECL.match(stripped):
                stack.append(_Scope("singleton", None, indent))
                continue

            class_match = _CLASS_DECL.match(stripped)
            if class_match:
                full_name = self._qualify(stack, class_match.group(1))
                self._register(full_name, class_match.group(2))
                if not _ONE_LINE_END.search(stripped):
                    stack.append(_Scope("class", full_name, indent))
                continue

            module_match = _MODULE_DECL.match(stripped)
            if module_match:
                full_name = self._qualify(stack, module_match.group(1))
                if not _ONE_LINE_END.search(stripped):
                    stack.append(_Scope("module", full_name, indent))
                continue

            if stripped == "end" or stripped.startswith(("end ", "end;", "end#")):
                if stack and stack[-1].indent == indent:
                    stack.pop()
                continue

            if stripped in _VISIBILITY:
                if stack:
                    stack[-1].visibility = stripped
                continue

            def_match = _DEF_DECL.match(stripped)
            if def_match and stack and stack[-1].kind == "class" and not def_match.group(2):
                scope = stack[-1]
                visibility = def_match.group(1) or scope.visibility
                self._record_method(scope.name, def_match.group(3), visibility, file_path, lineno)

    def _qualify(self, stack: Sequence[_Scope], name: str) -> str:
        enclosing = next((scope.name for scope in reversed(stack) if scope.name), None)
        return f"{enclosing}::{name}" if enclosing else name

    def _register(self, name: str, superclass: Optional[str]) -> None:
        pending = self._pending.get(name)
        if pending is None:
            self._pending[name] = _PendingComponent(name=name, superclass=superclass)
        elif superclass and not pending.superclass:
            pending.superclass = superclass

    def _record_method(
        self, owner: Optional[str], method: str, visibility: str, file_path: str, line: int
    ) -> None:
        if owner is None:
            return
        pending = self._pending[owner]
        if method not in pending.locations:
            pending.locations[method] = MethodLocation(file_path, line)
        if method in _IMPLICITLY_PRIVATE:
            return
        if visibility == "public" and method not in pending.public:
            pending.public.append(method)


__all__ = [
    "DEFAULT_SCAN_DIRECTORIES",
    "ComponentDescriptor",
    "ComponentRegistry",
    "MethodLocation",
    "RegistryError",
    "StaticComponentRegistry",
]

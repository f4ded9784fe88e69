"""Extractor for ViewComponent UI components."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from ..models import DependencyEdge, ExtractionOutcome, Unit, UnitKind, dedupe_edges
from ..naming import demodulize, namespace_of, underscore
from ..registry import ComponentDescriptor, ComponentRegistry
from .base import Extractor
from .patterns import first_seen
from .utils import Parameter, count_loc, initializer_signature, parse_parameters, read_source

COMPONENT_BASE_TYPE = "ViewComponent::Base"
PREVIEW_BASE_TYPE = "ViewComponent::Preview"

COMPONENT_DIRECTORIES = ("app/components", "app/views/components")
SIDECAR_EXTENSIONS = (".html.erb", ".html.haml", ".html.slim")

RENDERS_ONE = re.compile(r"renders_one\s+:(\w+)(?:,\s*(\w+(?:::\w+)*))?")
RENDERS_MANY = re.compile(r"renders_many\s+:(\w+)(?:,\s*(\w+(?:::\w+)*))?")
_COLLECTION_PARAMETER = re.compile(r"with_collection_parameter|def\s+self\.collection_parameter")
_CALLBACK = re.compile(r"(before_render|after_render)\s+:(\w+)")
_INLINE_BEFORE_RENDER = re.compile(r"def\s+before_render\b")
_CONTENT_AREAS = re.compile(r"with_content_areas\s+(.+)$", re.M)
_SYMBOL = re.compile(r":(\w+)")
RENDER_CALL = re.compile(r"render\s*\(?\s*(\w+(?:::\w+)*)\.new")
HELPER_INCLUDE = re.compile(r"include\s+(\w+Helper)")
STIMULUS_CONTROLLER = re.compile(r"""data[_-]controller[=:]\s*["']([^"']+)["']""")
ROUTE_HELPER = re.compile(r"(\w+)_(?:path|url)")


class ViewComponentExtractor(Extractor):
    """Builds units for every ViewComponent subclass that is not a preview."""

    name = "view_components"
    kind = UnitKind.VIEW_COMPONENT.value
    label = "view component"

    def supports(self) -> bool:
        registry = self.context.registry
        return registry is not None and registry.has_type(COMPONENT_BASE_TYPE)

    def iter_outcomes(self) -> Iterator[ExtractionOutcome]:
        registry = self.context.registry
        if registry is None or not self.supports():
            return
        for descriptor in registry.enumerate_subtypes(COMPONENT_BASE_TYPE):
            if not descriptor.name or self._is_preview(registry, descriptor):
                continue
            yield self.attempt(descriptor.name, lambda d=descriptor: [self.extract_component(d)])

    def extract_component(self, descriptor: ComponentDescriptor) -> Unit:
        name = descriptor.name
        if not name:
            raise ValueError("component descriptor has no name")
        file_path = self.source_file_for(descriptor)
        source = read_source(file_path)

        return Unit(
            kind=self.kind,
            identifier=name,
            namespace=namespace_of(name),
            file_path=file_path,
            source_text=source,
            metadata=self.build_metadata(descriptor, source),
            dependencies=self.extract_dependencies(name, source),
        )

    def source_file_for(self, descriptor: ComponentDescriptor) -> Optional[str]:
        """Conventional component paths first, then the first method's location."""
        stem = underscore(descriptor.name or "")
        for directory in COMPONENT_DIRECTORIES:
            candidate = self.root / directory / f"{stem}.rb"
            if candidate.is_file():
                return str(candidate)
        for method in descriptor.instance_methods[:1]:
            location = descriptor.method_locations.get(method)
            if location is not None and location.file_path:
                return location.file_path
        return None

    # ------------------------------------------------------------------
    # Metadata

    def build_metadata(self, descriptor: ComponentDescriptor, source: str) -> Dict[str, object]:
        name = descriptor.name or ""
        return {
            "slots": extract_slots(source),
            "renders_one": slot_names_one(source),
            "renders_many": slot_names_many(source),
            "initialize_params": [
                {"name": param.name, "type": param.kind}
                for param in self._initialize_parameters(descriptor, source)
            ],
            "public_methods": list(descriptor.instance_methods),
            "parent_component": descriptor.superclass,
            "sidecar_template": self.detect_sidecar_template(name),
            "preview_class": self.detect_preview_class(name),
            "collection_support": bool(_COLLECTION_PARAMETER.search(source)),
            "callbacks": extract_callbacks(source),
            "content_areas": extract_content_areas(source),
            "loc": count_loc(source),
        }

    def detect_sidecar_template(self, name: str) -> Optional[str]:
        base = self.root / "app" / "components" / underscore(name)
        candidates: List[Path] = [base.parent / f"{base.name}{ext}" for ext in SIDECAR_EXTENSIONS]
        candidates.append(base / f"{underscore(demodulize(name))}.html.erb")
        for candidate in candidates:
            if candidate.is_file():
                return str(candidate)
        return None

    def detect_preview_class(self, name: str) -> Optional[str]:
        registry = self.context.registry
        if registry is None or not registry.has_type(PREVIEW_BASE_TYPE):
            return None
        preview = registry.lookup(f"{name}Preview")
        if preview is not None and registry.is_subtype_of(preview, PREVIEW_BASE_TYPE):
            return preview.name
        return None

    def _initialize_parameters(self, descriptor: ComponentDescriptor, source: str) -> List[Parameter]:
        if descriptor.initialize_parameters is not None:
            return [Parameter(name, kind) for kind, name in descriptor.initialize_parameters]
        return parse_parameters(initializer_signature(source))

    def _is_preview(self, registry: ComponentRegistry, descriptor: ComponentDescriptor) -> bool:
        return registry.has_type(PREVIEW_BASE_TYPE) and registry.is_subtype_of(
            descriptor, PREVIEW_BASE_TYPE
        )

    # ------------------------------------------------------------------
    # Dependencies

    def extract_dependencies(self, name: str, source: str) -> List[DependencyEdge]:
        if not source:
            return []
        edges: List[DependencyEdge] = []
        for component in first_seen(RENDER_CALL.findall(source)):
            if component != name:
                edges.append(DependencyEdge("component", component, "render"))
        for slot in extract_slots(source):
            if slot["class"]:
                edges.append(DependencyEdge("component", str(slot["class"]), "slot"))
        edges.extend(self.scanner.model_edges(source, via="data_dependency"))
        for helper in first_seen(HELPER_INCLUDE.findall(source)):
            edges.append(DependencyEdge("helper", helper, "include"))
        for controller in first_seen(STIMULUS_CONTROLLER.findall(source)):
            edges.append(DependencyEdge("stimulus_controller", controller, "html_attribute"))
        for route in first_seen(ROUTE_HELPER.findall(source)):
            edges.append(DependencyEdge("route", route, "url_helper"))
        edges.extend(self.scanner.scan(source, model_via="data_dependency"))
        return dedupe_edges(edges)


def extract_slots(source: str) -> List[Dict[str, Optional[str]]]:
    slots: List[Dict[str, Optional[str]]] = []
    for slot_name, slot_class in RENDERS_ONE.findall(source):
        slots.append({"name": slot_name, "type": "one", "class": slot_class or None})
    for slot_name, slot_class in RENDERS_MANY.findall(source):
        slots.append({"name": slot_name, "type": "many", "class": slot_class or None})
    return slots


def slot_names_one(source: str) -> List[str]:
    return [slot_name for slot_name, _ in RENDERS_ONE.findall(source)]


def slot_names_many(source: str) -> List[str]:
    return [slot_name for slot_name, _ in RENDERS_MANY.findall(source)]


def extract_callbacks(source: str) -> List[Dict[str, str]]:
    callbacks = [
        {"kind": kind, "method": method}
        for kind in ("before_render", "after_render")
        for found_kind, method in _CALLBACK.findall(source)
        if found_kind == kind
    ]
    if _INLINE_BEFORE_RENDER.search(source):
        callbacks.append({"kind": "before_render", "method": "inline"})
    return callbacks


def extract_content_areas(source: str) -> List[str]:
    areas: List[str] = []
    for declaration in _CONTENT_AREAS.findall(source):
        areas.extend(_SYMBOL.findall(declaration))
    return areas


__all__ = [
    "COMPONENT_BASE_TYPE",
    "PREVIEW_BASE_TYPE",
    "ViewComponentExtractor",
    "extract_callbacks",
    "extract_content_areas",
    "extract_slots",
]

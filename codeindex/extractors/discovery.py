"""Locate the file that defines a registry component."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional

from ..naming import NamingConvention, convention_for
from ..registry import ComponentDescriptor


class DiscoveryResolver:
    """Finds a component's source file through a prioritized strategy chain.

    1. The source location of ``lifecycle_method`` if defined, else of any
       other directly defined method.
    2. The naming convention path under ``root``, if that file exists.

    Introspection errors only move on to the next candidate.
    """

    def __init__(
        self,
        root: Path,
        convention: NamingConvention,
        lifecycle_method: Optional[str] = None,
    ) -> None:
        self.root = root
        self.convention = convention
        self.lifecycle_method = lifecycle_method

    @classmethod
    def for_category(
        cls, root: Path, category: str, lifecycle_method: Optional[str] = None
    ) -> "DiscoveryResolver":
        return cls(root, convention_for(category), lifecycle_method)

    def resolve(self, descriptor: ComponentDescriptor, name: str) -> Optional[str]:
        path = self.from_method_locations(descriptor)
        if path:
            return path
        return self.from_convention(name)

    def from_method_locations(self, descriptor: ComponentDescriptor) -> Optional[str]:
        for method in self._candidate_methods(descriptor):
            try:
                location = descriptor.source_location(method)
            except Exception:  # noqa: BLE001
                continue
            if location is not None and location.file_path:
                return location.file_path
        return None

    def from_convention(self, name: str) -> Optional[str]:
        try:
            candidate = self.root / self.convention(name)
        except (TypeError, ValueError):
            return None
        return str(candidate) if candidate.is_file() else None

    def _candidate_methods(self, descriptor: ComponentDescriptor) -> List[str]:
        methods: List[str] = []
        if self.lifecycle_method:
            methods.append(self.lifecycle_method)
        others: Iterable[str] = list(descriptor.instance_methods) + list(descriptor.method_locations)
        for method in others:
            if method not in methods:
                methods.append(method)
        return methods


__all__ = ["DiscoveryResolver"]

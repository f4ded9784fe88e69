"""Extractor for real-time messaging channels (ActionCable)."""

from __future__ import annotations

import re
from typing import Dict, Iterable, Iterator, List, Sequence

from ..models import ExtractionOutcome, Unit, UnitKind
from ..naming import namespace_of
from ..registry import ComponentDescriptor
from .base import ExtractionContext, Extractor
from .discovery import DiscoveryResolver
from .patterns import first_seen
from .utils import count_loc, read_source

CHANNEL_BASE_TYPE = "ActionCable::Channel::Base"
APPLICATION_CHANNEL = "ApplicationCable::Channel"
LIFECYCLE_METHODS = ("subscribed", "unsubscribed")

STREAM_FROM = re.compile(r"""stream_from\s+["']([^"']+)["']""")
STREAM_FOR = re.compile(r"stream_for\s+(\w+)")
SERVER_BROADCAST = re.compile(r"""ActionCable\.server\.broadcast\(\s*["']([^"']+)["']""")
BROADCAST_TO = re.compile(r"\w+\.broadcast_to\(\s*(\w+)")


class ChannelExtractor(Extractor):
    """Turns channel descriptors into units describing streams and actions."""

    name = "channels"
    kind = UnitKind.CHANNEL.value
    label = "channel"

    def __init__(self, context: ExtractionContext) -> None:
        super().__init__(context)
        self.resolver = DiscoveryResolver.for_category(
            context.root, "channel", lifecycle_method="subscribed"
        )

    def supports(self) -> bool:
        registry = self.context.registry
        return registry is not None and registry.has_type(CHANNEL_BASE_TYPE)

    def iter_outcomes(self) -> Iterator[ExtractionOutcome]:
        if not self.supports():
            return
        for descriptor in self._channel_descriptors():
            name = descriptor.name or ""
            yield self.attempt(name, lambda d=descriptor: [self.extract_channel(d)])

    def extract_channel(self, descriptor: ComponentDescriptor) -> Unit:
        name = descriptor.name
        if not name:
            raise ValueError("channel descriptor has no name")
        file_path = self.resolver.resolve(descriptor, name)
        source = read_source(file_path)
        own_methods = list(descriptor.instance_methods)

        return Unit(
            kind=self.kind,
            identifier=name,
            namespace=namespace_of(name),
            file_path=file_path,
            source_text=source,
            metadata=build_channel_metadata(source, own_methods),
            dependencies=self.scanner.scan(source) if source else [],
        )

    def _channel_descriptors(self) -> List[ComponentDescriptor]:
        registry = self.context.registry
        if registry is None:
            return []
        return [
            descriptor
            for descriptor in registry.enumerate_subtypes(CHANNEL_BASE_TYPE)
            if descriptor.name and descriptor.name != APPLICATION_CHANNEL
        ]


def build_channel_metadata(source: str, own_methods: Sequence[str]) -> Dict[str, object]:
    return {
        "stream_names": detect_stream_names(source),
        "actions": detect_actions(own_methods),
        "has_subscribed": "subscribed" in own_methods,
        "has_unsubscribed": "unsubscribed" in own_methods,
        "broadcasts_to": detect_broadcasts(source),
        "loc": count_loc(source),
    }


def detect_stream_names(source: str) -> List[str]:
    streams: List[str] = list(STREAM_FROM.findall(source))
    streams.extend(f"stream_for:{target}" for target in STREAM_FOR.findall(source))
    return first_seen(streams)


def detect_actions(own_methods: Iterable[str]) -> List[str]:
    """Directly defined methods minus the subscription lifecycle hooks."""
    return [str(method) for method in own_methods if method not in LIFECYCLE_METHODS]


def detect_broadcasts(source: str) -> List[str]:
    broadcasts: List[str] = list(SERVER_BROADCAST.findall(source))
    broadcasts.extend(f"broadcast_to:{target}" for target in BROADCAST_TO.findall(source))
    return first_seen(broadcasts)


__all__ = [
    "APPLICATION_CHANNEL",
    "CHANNEL_BASE_TYPE",
    "ChannelExtractor",
    "LIFECYCLE_METHODS",
    "build_channel_metadata",
    "detect_actions",
    "detect_broadcasts",
    "detect_stream_names",
]

"""Tests for the static component registry."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from codeindex.registry import (
    ComponentDescriptor,
    MethodLocation,
    RegistryError,
    StaticComponentRegistry,
)
from tests._fixtures.rails_app import RailsAppBuilder


def _registry() -> StaticComponentRegistry:
    return StaticComponentRegistry(
        [
            ComponentDescriptor(name="ApplicationCable::Channel", superclass="ActionCable::Channel::Base"),
            ComponentDescriptor(name="ChatChannel", superclass="ApplicationCable::Channel"),
            ComponentDescriptor(name="Admin::BaseChannel", superclass="ApplicationCable::Channel"),
            ComponentDescriptor(name="Admin::NotesChannel", superclass="BaseChannel"),
        ]
    )


def test_has_type_includes_superclasses_and_known_types() -> None:
    registry = StaticComponentRegistry([], known_types=["ViewComponent::Base"])

    assert registry.has_type("ViewComponent::Base")
    assert not registry.has_type("ActionCable::Channel::Base")
    assert _registry().has_type("ActionCable::Channel::Base")


def test_enumerate_subtypes_is_transitive_and_ordered() -> None:
    registry = _registry()

    names = [d.name for d in registry.enumerate_subtypes("ActionCable::Channel::Base")]

    assert names == [
        "ApplicationCable::Channel",
        "ChatChannel",
        "Admin::BaseChannel",
        "Admin::NotesChannel",
    ]


def test_relative_superclass_resolves_against_namespace() -> None:
    registry = _registry()
    notes = registry.lookup("Admin::NotesChannel")

    assert notes is not None
    assert registry.ancestors(notes) == [
        "Admin::BaseChannel",
        "ApplicationCable::Channel",
        "ActionCable::Channel::Base",
    ]
    assert registry.is_subtype_of(notes, "ApplicationCable::Channel")


def test_enumerate_subtypes_for_unknown_type_is_empty() -> None:
    assert _registry().enumerate_subtypes("ViewComponent::Base") == []


def test_source_location_raises_for_unknown_method() -> None:
    descriptor = ComponentDescriptor(
        name="ChatChannel",
        instance_methods=("speak",),
        method_locations={"speak": MethodLocation("/app/channels/chat_channel.rb", 4)},
    )

    assert descriptor.source_location("speak") == MethodLocation("/app/channels/chat_channel.rb", 4)
    assert descriptor.defines("speak")
    with pytest.raises(KeyError):
        descriptor.source_location("receive")


def test_from_manifest_reads_yaml(tmp_path: Path) -> None:
    manifest = tmp_path / "registry.yml"
    manifest.write_text(
        """
types:
  - ViewComponent::Base
components:
  - name: CardComponent
    superclass: ViewComponent::Base
    methods:
      - title
      - name: call
        file: app/components/card_component.rb
        line: 7
      - name: helper_method
        visibility: private
    initialize_parameters:
      - [keyword_required, title]
      - [keyword_optional, size]
""",
        encoding="utf-8",
    )

    registry = StaticComponentRegistry.from_manifest(manifest)
    card = registry.lookup("CardComponent")

    assert card is not None
    assert card.instance_methods == ("title", "call")
    assert card.source_location("title") is None
    location = card.source_location("call")
    assert location is not None
    assert location.file_path == str(tmp_path / "app/components/card_component.rb")
    assert location.line == 7
    assert card.initialize_parameters == (("keyword_required", "title"), ("keyword_optional", "size"))
    assert registry.has_type("ViewComponent::Base")


def test_from_manifest_accepts_json(tmp_path: Path) -> None:
    manifest = tmp_path / "registry.json"
    manifest.write_text(
        json.dumps({"components": [{"name": "ChatChannel", "superclass": "ApplicationCable::Channel"}]}),
        encoding="utf-8",
    )

    registry = StaticComponentRegistry.from_manifest(manifest)

    assert len(registry) == 1
    assert registry.has_type("ApplicationCable::Channel")


@pytest.mark.parametrize(
    "content",
    ["- just\n- a list\n", "components: {name: Foo}\n", "components:\n  - 42\n"],
)
def test_from_manifest_rejects_malformed_content(tmp_path: Path, content: str) -> None:
    manifest = tmp_path / "registry.yml"
    manifest.write_text(content, encoding="utf-8")

    with pytest.raises(RegistryError):
        StaticComponentRegistry.from_manifest(manifest)


def test_from_manifest_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(RegistryError):
        StaticComponentRegistry.from_manifest(tmp_path / "missing.yml")


def test_from_source_tree_records_nesting_and_visibility(rails_app: RailsAppBuilder) -> None:
    rails_app.write(
        {
            "app/channels/application_cable/channel.rb": """
            module ApplicationCable
              class Channel < ActionCable::Channel::Base
              end
            end
            """,
            "app/channels/admin/notes_channel.rb": """
            module Admin
              class NotesChannel < ApplicationCable::Channel
                def subscribed
                  stream_from "notes"
                end

                def self.build
                end

                class << self
                  def helper
                  end
                end

                def receive(data)
                end

                private

                def secret
                end
              end
            end
            """,
        }
    )

    registry = rails_app.registry()
    notes = registry.lookup("Admin::NotesChannel")

    assert notes is not None
    assert notes.superclass == "ApplicationCable::Channel"
    assert notes.instance_methods == ("subscribed", "receive")
    assert notes.defines("secret")
    assert not notes.defines("build")
    assert not notes.defines("helper")
    location = notes.source_location("subscribed")
    assert location is not None
    assert location.file_path == str(rails_app.path() / "app/channels/admin/notes_channel.rb")
    assert location.line == 3
    assert [d.name for d in registry.enumerate_subtypes("ActionCable::Channel::Base")] == [
        "Admin::NotesChannel",
        "ApplicationCable::Channel",
    ]


def test_from_source_tree_treats_initialize_as_private(rails_app: RailsAppBuilder) -> None:
    rails_app.write(
        {
            "app/components/card_component.rb": """
            class CardComponent < ViewComponent::Base
              def initialize(title:)
                @title = title
              end

              def respond_to_missing?(name, include_private = false)
                super
              end

              def call
              end
            end
            """,
        }
    )

    card = rails_app.registry().lookup("CardComponent")

    assert card is not None
    assert card.instance_methods == ("call",)
    location = card.source_location("initialize")
    assert location is not None
    assert location.line == 2

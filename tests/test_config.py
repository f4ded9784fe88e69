"""Tests for codeindex.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from codeindex.config import CodeIndexConfig, ConfigError, load_config


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, CodeIndexConfig)
    assert config.root == tmp_path.resolve()
    assert config.extractors.enabled == []
    assert config.services.directories == []
    assert config.registry.manifest is None
    assert config.registry.scan_directories == ["app", "test/components/previews", "spec/components/previews"]
    assert config.output_directory == tmp_path.resolve() / "tmp" / "codeindex"
    assert config.concurrent is False


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".codeindex.yml"
    config_file.write_text(
        """
extractors:
  enabled: [channels, services]
services:
  directories:
    - app/services
    - lib/workflows
registry:
  manifest: config/components.yml
  scan_directories: [app, lib]
output:
  directory: build/index
concurrent: "yes"
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    root = tmp_path.resolve()
    assert config.extractors.enabled == ["channels", "services"]
    assert config.services.directories == ["app/services", "lib/workflows"]
    assert config.registry.manifest == root / "config" / "components.yml"
    assert config.registry.scan_directories == ["app", "lib"]
    assert config.output_directory == root / "build" / "index"
    assert config.concurrent is True


def test_load_config_accepts_empty_file(tmp_path: Path) -> None:
    (tmp_path / ".codeindex.yml").write_text("\n", encoding="utf-8")

    assert load_config(tmp_path).extractors.enabled == []


def test_load_config_rejects_non_mapping_root(tmp_path: Path) -> None:
    (tmp_path / ".codeindex.yml").write_text("- channels\n- services\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_load_config_reports_yaml_errors(tmp_path: Path) -> None:
    (tmp_path / ".codeindex.yml").write_text("extractors: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_load_config_reads_logging_section(tmp_path: Path) -> None:
    (tmp_path / ".codeindex.yml").write_text(
        "logging:\n  file: log/codeindex.log\n  levels:\n    extractors.services: Warning\n",
        encoding="utf-8",
    )

    config = load_config(tmp_path)

    assert config.logging.levels == {"extractors.services": "warning"}
    assert config.logging.file == tmp_path.resolve() / "log" / "codeindex.log"


def test_load_config_rejects_unknown_log_level(tmp_path: Path) -> None:
    (tmp_path / ".codeindex.yml").write_text("logging:\n  levels:\n    pipeline: loud\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)

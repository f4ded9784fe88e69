"""Configuration loading for codeindex (.codeindex.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .logging import LEVELS
from .registry import DEFAULT_SCAN_DIRECTORIES

CONFIG_FILENAME = ".codeindex.yml"
DEFAULT_OUTPUT_DIRECTORY = "tmp/codeindex"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class ExtractorConfig:
    """Extractor enablement."""

    enabled: List[str] = field(default_factory=list)


@dataclass
class ServiceScanConfig:
    """Directories scanned for service objects."""

    directories: List[str] = field(default_factory=list)


@dataclass
class RegistryConfig:
    """Where the component registry is populated from."""

    manifest: Optional[Path] = None
    scan_directories: List[str] = field(default_factory=lambda: list(DEFAULT_SCAN_DIRECTORIES))


@dataclass
class LoggingConfig:
    """Per-logger levels and an optional log file."""

    levels: Dict[str, str] = field(default_factory=dict)
    file: Optional[Path] = None


@dataclass
class CodeIndexConfig:
    """Represents the high-level settings defined in .codeindex.yml."""

    root: Path
    extractors: ExtractorConfig = field(default_factory=ExtractorConfig)
    services: ServiceScanConfig = field(default_factory=ServiceScanConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    output_dir: Optional[Path] = None
    concurrent: bool = False

    @property
    def output_directory(self) -> Path:
        return self.output_dir if self.output_dir is not None else self.root / DEFAULT_OUTPUT_DIRECTORY


def load_config(config_path: Path) -> CodeIndexConfig:
    """Load configuration from disk."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return CodeIndexConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    extractors = ExtractorConfig()
    extractor_data = _as_dict(data.get("extractors"))
    if extractor_data:
        extractors.enabled = _as_str_list(extractor_data.get("enabled"))

    services = ServiceScanConfig()
    service_data = _as_dict(data.get("services"))
    if service_data:
        services.directories = _as_str_list(service_data.get("directories"))

    registry = RegistryConfig()
    registry_data = _as_dict(data.get("registry"))
    if registry_data:
        manifest = _as_str(registry_data.get("manifest"))
        registry.manifest = root / manifest if manifest else None
        scan_directories = _as_str_list(registry_data.get("scan_directories"))
        if scan_directories:
            registry.scan_directories = scan_directories

    logging_config = LoggingConfig()
    logging_data = _as_dict(data.get("logging"))
    if logging_data:
        logging_config.levels = _as_levels(logging_data.get("levels"))
        log_file = _as_str(logging_data.get("file"))
        logging_config.file = root / log_file if log_file else None

    output_data = _as_dict(data.get("output"))
    output_dir_str = _as_str(output_data.get("directory")) if output_data else None
    output_dir = root / output_dir_str if output_dir_str else None

    return CodeIndexConfig(
        root=root,
        extractors=extractors,
        services=services,
        registry=registry,
        logging=logging_config,
        output_dir=output_dir,
        concurrent=_as_bool(data.get("concurrent")) or False,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return {} if loaded is None else loaded


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_levels(value: Any) -> Dict[str, str]:
    levels: Dict[str, str] = {}
    for name, level in _as_dict(value).items():
        level_name = str(level).strip().lower()
        if level_name not in LEVELS:
            raise ConfigError(f"Unknown log level {level!r} for logger {name!r}")
        levels[str(name)] = level_name
    return levels


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "CodeIndexConfig",
    "ConfigError",
    "ExtractorConfig",
    "LoggingConfig",
    "RegistryConfig",
    "ServiceScanConfig",
    "load_config",
]

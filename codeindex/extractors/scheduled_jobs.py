"""Extractor for recurring job schedules.

Three configuration files are understood, each at its conventional path:

- ``config/recurring.yml``: Solid Queue recurring tasks (``schedule:`` field)
- ``config/sidekiq_cron.yml``: Sidekiq-Cron jobs (``cron:`` field)
- ``config/schedule.rb``: the Whenever DSL (``every ... do ... end`` blocks)

Every entry becomes its own unit. Identifiers carry a ``scheduled:`` prefix so
they never collide with job units of the same name.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

import yaml

from ..models import DependencyEdge, ExtractionOutcome, Unit, UnitKind
from ..naming import namespace_of, underscore
from .base import Extractor

SOLID_QUEUE = "solid_queue"
SIDEKIQ_CRON = "sidekiq_cron"
WHENEVER = "whenever"

SCHEDULE_FILES: Tuple[Tuple[str, str], ...] = (
    ("config/recurring.yml", SOLID_QUEUE),
    ("config/sidekiq_cron.yml", SIDEKIQ_CRON),
    ("config/schedule.rb", WHENEVER),
)

# Field holding the schedule expression in each structured format.
_CRON_FIELDS = {SOLID_QUEUE: "schedule", SIDEKIQ_CRON: "cron"}

CRON_HUMANIZE: Dict[str, str] = {
    "* * * * *": "every minute",
    "0 * * * *": "every hour",
    "0 0 * * *": "daily at midnight",
    "0 0 * * 0": "weekly on Sunday",
    "0 0 * * 1": "weekly on Monday",
    "0 0 1 * *": "monthly on the 1st",
    "0 0 1 1 *": "yearly on January 1st",
}

ENVIRONMENT_KEYS = frozenset({"production", "development", "test", "staging"})

_MINUTE_STEP = re.compile(r"\A\*/(\d+) \* \* \* \*\Z")
WHENEVER_BLOCK = re.compile(r"every\s+(.+?)\s+do\s*\n(.*?)end", re.S)
_AT_OPTION = re.compile(r",\s*at:.*\Z")
_RUNNER_CALL = re.compile(r'runner\s+"([^"]+)"')
_RAKE_CALL = re.compile(r'rake\s+"([^"]+)"')
_COMMAND_CALL = re.compile(r'command\s+"([^"]+)"')
_PERFORM_CALL = re.compile(r"([A-Z]\w*(?:::\w+)*)\.perform_(?:later|now)")

# Checked in order; the first matching call shape wins.
_COMMAND_SHAPES = (("runner", _RUNNER_CALL), ("rake", _RAKE_CALL), ("command", _COMMAND_CALL))


@dataclass(frozen=True)
class WheneverBlock:
    """One ``every ... do ... end`` block."""

    frequency: str
    command_type: str
    command: str
    job_class: Optional[str]


class ScheduledJobExtractor(Extractor):
    """Normalizes the three schedule formats into ``scheduled_job`` units."""

    name = "scheduled_jobs"
    kind = UnitKind.SCHEDULED_JOB.value
    label = "scheduled jobs from"

    def schedule_files(self) -> List[Tuple[Path, str]]:
        """Known schedule files present under the application root."""
        found: List[Tuple[Path, str]] = []
        for relative, schedule_format in SCHEDULE_FILES:
            path = self.root / relative
            if path.is_file():
                found.append((path, schedule_format))
        return found

    def iter_outcomes(self) -> Iterator[ExtractionOutcome]:
        for path, schedule_format in self.schedule_files():
            yield self.attempt(
                str(path), lambda p=path, f=schedule_format: self.extract_file(p, f)
            )

    def extract_file(self, path: Path, schedule_format: Optional[str] = None) -> List[Unit]:
        """Units for every entry of one schedule file; raises on malformed input."""
        schedule_format = schedule_format or infer_format(path)
        if schedule_format in _CRON_FIELDS:
            return self._extract_structured(path, schedule_format)
        if schedule_format == WHENEVER:
            return self._extract_whenever(path)
        return []

    # ------------------------------------------------------------------
    # Structured formats (Solid Queue, Sidekiq-Cron)

    def _extract_structured(self, path: Path, schedule_format: str) -> List[Unit]:
        source = path.read_text(encoding="utf-8")
        data = yaml.safe_load(source)
        if not isinstance(data, dict) or not data:
            return []

        entries = unwrap_environment_nesting(data)
        if not isinstance(entries, dict):
            return []

        units: List[Unit] = []
        for task_name, config in entries.items():
            if not isinstance(config, dict):
                continue
            units.append(self._structured_unit(str(task_name), config, path, source, schedule_format))
        return units

    def _structured_unit(
        self,
        task_name: str,
        config: Mapping[str, Any],
        path: Path,
        source: str,
        schedule_format: str,
    ) -> Unit:
        job_class = _as_optional_str(config.get("class"))
        cron = _as_optional_str(config.get(_CRON_FIELDS[schedule_format]))
        return Unit(
            kind=self.kind,
            identifier=f"scheduled:{task_name}",
            namespace=namespace_of(job_class),
            file_path=str(path),
            source_text=source,
            metadata={
                "schedule_format": schedule_format,
                "job_class": job_class,
                "cron_expression": cron,
                "queue": config.get("queue"),
                "args": config.get("args"),
                "frequency_human_readable": humanize_frequency(cron, schedule_format),
            },
            dependencies=job_dependencies(job_class),
        )

    # ------------------------------------------------------------------
    # Whenever DSL

    def _extract_whenever(self, path: Path) -> List[Unit]:
        source = path.read_text(encoding="utf-8")
        return [
            self._whenever_unit(block, index, path, source)
            for index, block in enumerate(parse_whenever_blocks(source))
        ]

    def _whenever_unit(self, block: WheneverBlock, index: int, path: Path, source: str) -> Unit:
        if block.job_class:
            identifier = f"scheduled:whenever_{underscore(block.job_class)}_{index}"
        else:
            identifier = f"scheduled:whenever_task_{index}"
        return Unit(
            kind=self.kind,
            identifier=identifier,
            namespace=namespace_of(block.job_class),
            file_path=str(path),
            source_text=source,
            metadata={
                "schedule_format": WHENEVER,
                "job_class": block.job_class,
                "cron_expression": block.frequency,
                "queue": None,
                "args": None,
                "command_type": block.command_type,
                "command": block.command,
                "frequency_human_readable": block.frequency,
            },
            dependencies=job_dependencies(block.job_class),
        )


def infer_format(path: Path) -> Optional[str]:
    for relative, schedule_format in SCHEDULE_FILES:
        if path.name == Path(relative).name:
            return schedule_format
    return None


def unwrap_environment_nesting(data: Mapping[Any, Any]) -> Any:
    """Use the first environment's entries when every top-level key is an environment."""
    if data and all(str(key) in ENVIRONMENT_KEYS for key in data):
        first = next(iter(data.values()))
        return first or {}
    return data


def humanize_frequency(expression: Optional[str], schedule_format: str) -> Optional[str]:
    if expression is None:
        return None
    # Solid Queue schedules are already written in prose.
    if schedule_format == SOLID_QUEUE:
        return expression
    if expression in CRON_HUMANIZE:
        return CRON_HUMANIZE[expression]
    step = _MINUTE_STEP.match(expression)
    if step:
        return f"every {step.group(1)} minutes"
    return expression


def parse_whenever_blocks(source: str) -> List[WheneverBlock]:
    blocks: List[WheneverBlock] = []
    for match in WHENEVER_BLOCK.finditer(source):
        frequency = _AT_OPTION.sub("", match.group(1).strip()).strip()
        command_type, command = detect_command(match.group(2))
        job_class = job_class_from_runner(command) if command_type == "runner" else None
        blocks.append(WheneverBlock(frequency, command_type, command, job_class))
    return blocks


def detect_command(body: str) -> Tuple[str, str]:
    for command_type, pattern in _COMMAND_SHAPES:
        match = pattern.search(body)
        if match:
            return command_type, match.group(1)
    return "unknown", body.strip()


def job_class_from_runner(command: Optional[str]) -> Optional[str]:
    if not command:
        return None
    match = _PERFORM_CALL.search(command)
    return match.group(1) if match else None


def job_dependencies(job_class: Optional[str]) -> List[DependencyEdge]:
    if not job_class:
        return []
    return [DependencyEdge("job", job_class, "scheduled")]


def _as_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


__all__ = [
    "CRON_HUMANIZE",
    "ENVIRONMENT_KEYS",
    "SCHEDULE_FILES",
    "ScheduledJobExtractor",
    "WheneverBlock",
    "detect_command",
    "humanize_frequency",
    "infer_format",
    "job_class_from_runner",
    "parse_whenever_blocks",
    "unwrap_environment_nesting",
]

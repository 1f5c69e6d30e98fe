"""Exporter configuration: defaults, loading from mappings, validation."""

from __future__ import annotations

import copy
import dataclasses
import re
from dataclasses import dataclass, field
from itertools import combinations
from typing import Any, Mapping
from urllib.parse import ParseResult

import yaml

from gcpe.project import Project, ProjectParameters, merge_mapping, to_mapping
from gcpe.wildcard import Wildcard

_MASK = "*" * 7
_LOG_LEVELS = ("trace", "debug", "info", "warning", "error", "fatal", "panic")
_LOG_FORMATS = ("text", "json")
_URL_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")


class ConfigValidationError(ValueError):
    """Raised when the configuration is incomplete or incorrect."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


@dataclass
class Global:
    """Settings shared across the exporter, not read from the config file."""

    internal_monitoring_listener_address: ParseResult | None = None


@dataclass
class Log:
    level: str = "info"
    format: str = "text"


@dataclass
class OpenTelemetry:
    grpc_endpoint: str = ""


@dataclass
class ServerMetrics:
    enabled: bool = True
    enable_openmetrics_encoding: bool = False


@dataclass
class ServerWebhook:
    enabled: bool = False
    secret_token: str = ""


@dataclass
class Server:
    enable_pprof: bool = False
    listen_address: str = ":8080"
    metrics: ServerMetrics = field(default_factory=ServerMetrics)
    webhook: ServerWebhook = field(default_factory=ServerWebhook)


@dataclass
class Gitlab:
    url: str = "https://gitlab.com"
    token: str = ""
    health_url: str = "https://gitlab.com/explore"
    enable_health_check: bool = True
    enable_tls_verify: bool = True
    maximum_requests_per_second: int = 1


@dataclass
class Redis:
    url: str = ""


@dataclass
class SchedulerConfig:
    """When and how often a task is run."""

    on_init: bool = False
    scheduled: bool = False
    interval_seconds: int = 0

    def log_fields(self) -> dict[str, str]:
        """Return human readable fields describing this schedule."""
        return {
            "on-init": "yes" if self.on_init else "no",
            "scheduled": f"every {self.interval_seconds}s" if self.scheduled else "no",
        }


def _schedule(on_init: bool, scheduled: bool, interval_seconds: int) -> Any:
    return field(
        default_factory=lambda: SchedulerConfig(on_init, scheduled, interval_seconds)
    )


@dataclass
class Pull:
    projects_from_wildcards: SchedulerConfig = _schedule(True, True, 1800)
    environments_from_projects: SchedulerConfig = _schedule(True, True, 1800)
    refs_from_projects: SchedulerConfig = _schedule(True, True, 300)
    metrics: SchedulerConfig = _schedule(True, True, 30)


@dataclass
class GarbageCollect:
    projects: SchedulerConfig = _schedule(False, True, 14400)
    environments: SchedulerConfig = _schedule(False, True, 14400)
    refs: SchedulerConfig = _schedule(False, True, 1800)
    metrics: SchedulerConfig = _schedule(False, True, 600)


def _is_url(value: str) -> bool:
    value = value.split("#", 1)[0]
    return bool(value) and _URL_SCHEME.match(value) is not None


def _list_nodes(value: Any, key: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"cannot unmarshal {type(value).__name__} into {key}")
    return value


@dataclass
class Config:
    """All the parameters the exporter needs."""

    global_: Global = field(default_factory=Global, metadata={"skip": True})
    log: Log = field(default_factory=Log)
    opentelemetry: OpenTelemetry = field(default_factory=OpenTelemetry)
    server: Server = field(default_factory=Server)
    gitlab: Gitlab = field(default_factory=Gitlab)
    redis: Redis = field(default_factory=Redis)
    pull: Pull = field(default_factory=Pull)
    garbage_collect: GarbageCollect = field(default_factory=GarbageCollect)
    project_defaults: ProjectParameters = field(default_factory=ProjectParameters)
    projects: list[Project] = field(default_factory=list)
    wildcards: list[Wildcard] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "Config":
        """Build a config from a decoded YAML document.

        Projects and wildcards start from the configured project defaults.
        """
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ValueError(f"cannot unmarshal {type(data).__name__} into Config")
        cfg = cls()
        merge_mapping(
            cfg, {k: v for k, v in data.items() if k not in ("projects", "wildcards")}
        )
        cfg.projects = [
            merge_mapping(cfg.new_project(), node)
            for node in _list_nodes(data.get("projects"), "projects")
        ]
        cfg.wildcards = [
            merge_mapping(cfg.new_wildcard(), node)
            for node in _list_nodes(data.get("wildcards"), "wildcards")
        ]
        return cfg

    def to_yaml(self) -> str:
        """Render the configuration as YAML with secrets masked."""
        c = copy.deepcopy(self)
        c.global_ = Global()
        c.server.webhook.secret_token = _MASK
        c.gitlab.token = _MASK
        return yaml.safe_dump(to_mapping(c), sort_keys=False)

    def validate(self) -> None:
        """Raise ConfigValidationError if the configuration is not usable."""
        errors: list[str] = []

        def check(ok: bool, path: str, tag: str) -> bool:
            if not ok:
                errors.append(f"field '{path}' failed on the '{tag}' tag")
            return ok

        if check(bool(self.log.level), "log.level", "required"):
            check(self.log.level in _LOG_LEVELS, "log.level", "oneof")
        check(self.log.format in _LOG_FORMATS, "log.format", "oneof")

        check(
            not self.server.webhook.enabled or bool(self.server.webhook.secret_token),
            "server.webhook.secret_token",
            "required_if",
        )

        for name in ("url", "health_url"):
            value = getattr(self.gitlab, name)
            if check(bool(value), f"gitlab.{name}", "required"):
                check(_is_url(value), f"gitlab.{name}", "url")
        check(bool(self.gitlab.token), "gitlab.token", "required")
        check(
            self.gitlab.maximum_requests_per_second >= 1,
            "gitlab.maximum_requests_per_second",
            "gte",
        )

        for section_name in ("pull", "garbage_collect"):
            section = getattr(self, section_name)
            for f in dataclasses.fields(section):
                check(
                    getattr(section, f.name).interval_seconds >= 1,
                    f"{section_name}.{f.name}.interval_seconds",
                    "gte",
                )

        for name in ("projects", "wildcards"):
            items = getattr(self, name)
            if check(
                not any(a == b for a, b in combinations(items, 2)), name, "unique"
            ):
                check(
                    validate_at_least_one_project_or_wildcard(self),
                    name,
                    "at-least-1-project-or-wildcard",
                )

        if errors:
            raise ConfigValidationError(errors)

    def _parameters(self) -> dict[str, Any]:
        return {
            f.name: copy.deepcopy(getattr(self.project_defaults, f.name))
            for f in dataclasses.fields(ProjectParameters)
        }

    def new_project(self) -> Project:
        """Return a project carrying the configured project defaults."""
        return Project(**self._parameters())

    def new_wildcard(self) -> Wildcard:
        """Return a wildcard carrying the configured project defaults."""
        return Wildcard(**self._parameters())


def validate_at_least_one_project_or_wildcard(config: Config) -> bool:
    """Tell whether at least one project or wildcard is configured."""
    return len(config.projects) > 0 or len(config.wildcards) > 0


def new() -> Config:
    """Return a config with the default parameters."""
    return Config()
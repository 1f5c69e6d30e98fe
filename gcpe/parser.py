"""Reading configuration files into Config objects."""

from __future__ import annotations

import posixpath
from enum import IntEnum
from pathlib import Path
from typing import Union

import yaml

from gcpe.config import Config

_GITLAB_COM_URL = "https://gitlab.com"
_GITLAB_COM_HEALTH_URL = "https://gitlab.com/explore"


class Format(IntEnum):
    """Format of a configuration file."""

    YAML = 0


class ConfigParseError(ValueError):
    """Raised when a configuration cannot be read or decoded."""


def get_type_from_file_extension(filename: str) -> Format:
    """Return the configuration format matching the extension of a file name."""
    base = posixpath.basename(filename)
    dot = base.rfind(".")
    ext = base[dot:] if dot >= 0 else ""
    if ext in (".yml", ".yaml"):
        return Format.YAML
    raise ConfigParseError(f"unsupported config type '{ext}', expected .y(a)ml")


def parse(fmt: Format, data: Union[bytes, str]) -> Config:
    """Decode configuration content written in the given format."""
    if fmt != Format.YAML:
        raise ConfigParseError(f"unsupported config type '{fmt}'")

    try:
        document = yaml.safe_load(data)
        cfg = Config.from_mapping(document)
    except yaml.YAMLError as exc:
        raise ConfigParseError(str(exc)) from exc
    except ValueError as exc:
        raise ConfigParseError(str(exc)) from exc

    # Self-hosted instances get their own health endpoint unless one was given.
    if cfg.gitlab.url != _GITLAB_COM_URL and cfg.gitlab.health_url == _GITLAB_COM_HEALTH_URL:
        cfg.gitlab.health_url = f"{cfg.gitlab.url}/-/health"

    return cfg


def parse_file(filename: str) -> Config:
    """Read a configuration file and decode it according to its extension."""
    fmt = get_type_from_file_extension(filename)
    content = Path(filename).read_bytes()
    return parse(fmt, content)
"""Wildcards used to discover projects dynamically."""

from __future__ import annotations

from dataclasses import dataclass, field

from gcpe.project import ProjectParameters


@dataclass
class WildcardOwner:
    """Owner filter of a wildcard search."""

    name: str = ""
    kind: str = ""
    include_subgroups: bool = False


@dataclass
class Wildcard(ProjectParameters):
    """A search for projects; found projects get these parameters."""

    search: str = ""
    owner: WildcardOwner = field(default_factory=WildcardOwner)
    archived: bool = False


def new_wildcard() -> Wildcard:
    """Return a wildcard with the default parameters."""
    return Wildcard()
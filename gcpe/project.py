"""Pull parameters shared by projects and wildcards, plus mapping helpers."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Mapping


def _yaml_key(f: dataclasses.Field) -> str:
    return f.metadata.get("yaml", f.name)


def _serialized_fields(instance: Any) -> list[dataclasses.Field]:
    return [f for f in dataclasses.fields(instance) if not f.metadata.get("skip")]


def _decode(current: Any, value: Any, f: dataclasses.Field, owner: str) -> Any:
    where = f"{owner}.{f.name}"
    if dataclasses.is_dataclass(current) and not isinstance(current, type):
        return merge_mapping(current, value)
    if isinstance(current, bool):
        if not isinstance(value, bool):
            raise ValueError(f"cannot unmarshal {value!r} into bool field {where}")
        return value
    if isinstance(current, int):
        if isinstance(value, bool):
            raise ValueError(f"cannot unmarshal {value!r} into int field {where}")
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if not isinstance(value, int):
            raise ValueError(f"cannot unmarshal {value!r} into int field {where}")
        if f.metadata.get("unsigned") and value < 0:
            raise ValueError(f"cannot unmarshal {value!r} into unsigned field {where}")
        return value
    if isinstance(current, str):
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float, str)):
            return str(value)
        raise ValueError(f"cannot unmarshal {value!r} into string field {where}")
    if isinstance(current, list):
        if not isinstance(value, list):
            raise ValueError(f"cannot unmarshal {value!r} into list field {where}")
        return list(value)
    return value


def merge_mapping(instance: Any, data: Mapping[str, Any] | None) -> Any:
    """Update a dataclass instance in place from a decoded YAML mapping.

    Keys that are absent or null keep their current value; unknown keys are
    ignored. Values of the wrong type raise ValueError.
    """
    if data is None:
        return instance
    if not isinstance(data, Mapping):
        raise ValueError(
            f"cannot unmarshal {type(data).__name__} into {type(instance).__name__}"
        )
    by_key = {_yaml_key(f): f for f in _serialized_fields(instance)}
    owner = type(instance).__name__
    for key, value in data.items():
        f = by_key.get(key)
        if f is None or value is None:
            continue
        setattr(instance, f.name, _decode(getattr(instance, f.name), value, f, owner))
    return instance


def to_mapping(instance: Any) -> Any:
    """Turn a dataclass tree into plain dicts and lists keyed by YAML names."""
    if dataclasses.is_dataclass(instance) and not isinstance(instance, type):
        return {
            _yaml_key(f): to_mapping(getattr(instance, f.name))
            for f in _serialized_fields(instance)
        }
    if isinstance(instance, (list, tuple)):
        return [to_mapping(item) for item in instance]
    return instance


@dataclass
class ProjectPullEnvironments:
    """Environments/deployments pulling settings."""

    enabled: bool = False
    regexp: str = ".*"
    exclude_stopped: bool = True


@dataclass
class ProjectPullRefsBranches:
    """Branch pulling settings."""

    enabled: bool = True
    regexp: str = "^main|master$"
    most_recent: int = field(default=0, metadata={"unsigned": True})
    max_age_seconds: int = field(default=0, metadata={"unsigned": True})
    exclude_deleted: bool = True


@dataclass
class ProjectPullRefsTags:
    """Tag pulling settings."""

    enabled: bool = True
    regexp: str = ".*"
    most_recent: int = field(default=0, metadata={"unsigned": True})
    max_age_seconds: int = field(default=0, metadata={"unsigned": True})
    exclude_deleted: bool = True


@dataclass
class ProjectPullRefsMergeRequests:
    """Merge request pulling settings."""

    enabled: bool = False
    most_recent: int = field(default=0, metadata={"unsigned": True})
    max_age_seconds: int = field(default=0, metadata={"unsigned": True})


@dataclass
class ProjectPullRefs:
    """Which refs of a project to monitor."""

    branches: ProjectPullRefsBranches = field(default_factory=ProjectPullRefsBranches)
    tags: ProjectPullRefsTags = field(default_factory=ProjectPullRefsTags)
    merge_requests: ProjectPullRefsMergeRequests = field(
        default_factory=ProjectPullRefsMergeRequests
    )


@dataclass
class ProjectPullPipelineJobsFromChildPipelines:
    """Whether to pull jobs of child/downstream pipelines."""

    enabled: bool = True


@dataclass
class ProjectPullPipelineJobsRunnerDescription:
    """Export of the description of the runner that ran a job."""

    enabled: bool = True
    aggregation_regexp: str = r"shared-runners-manager-(\d*)\.gitlab\.com"


@dataclass
class ProjectPullPipelineJobs:
    """Pipeline job metrics settings."""

    enabled: bool = False
    from_child_pipelines: ProjectPullPipelineJobsFromChildPipelines = field(
        default_factory=ProjectPullPipelineJobsFromChildPipelines
    )
    runner_description: ProjectPullPipelineJobsRunnerDescription = field(
        default_factory=ProjectPullPipelineJobsRunnerDescription
    )


@dataclass
class ProjectPullPipelineVariables:
    """Pipeline variables retrieval settings."""

    enabled: bool = False
    regexp: str = ".*"


@dataclass
class ProjectPullPipeline:
    """Pipeline related pulling settings."""

    jobs: ProjectPullPipelineJobs = field(default_factory=ProjectPullPipelineJobs)
    variables: ProjectPullPipelineVariables = field(
        default_factory=ProjectPullPipelineVariables
    )


@dataclass
class ProjectPull:
    """Everything that can be pulled for a project."""

    environments: ProjectPullEnvironments = field(default_factory=ProjectPullEnvironments)
    refs: ProjectPullRefs = field(default_factory=ProjectPullRefs)
    pipeline: ProjectPullPipeline = field(default_factory=ProjectPullPipeline)


@dataclass
class ProjectParameters:
    """Fetching configuration shared by projects and wildcards."""

    pull: ProjectPull = field(default_factory=ProjectPull)
    output_sparse_status_metrics: bool = True


@dataclass
class Project(ProjectParameters):
    """A GitLab project, named by its path with namespace."""

    name: str = ""


def new_project(name: str) -> Project:
    """Return a project with the default parameters."""
    return Project(name=name)
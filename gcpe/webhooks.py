"""GitLab webhook parsing, authentication, and ref/environment matching rules."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from http import HTTPStatus
from typing import Any, Callable, Mapping, Union

from gcpe.project import ProjectPullEnvironments, ProjectPullRefs
from gcpe.wildcard import Wildcard

logger = logging.getLogger(__name__)

_MERGE_REQUEST_REGEXP = r"^((\d+)|refs/merge-requests/(\d+)/head)$"

_PIPELINE_HOOK = "Pipeline Hook"
_DEPLOYMENT_HOOK = "Deployment Hook"
_OTHER_HOOKS = frozenset(
    {
        "Build Hook",
        "Job Hook",
        "Feature Flag Hook",
        "Issue Hook",
        "Confidential Issue Hook",
        "Member Hook",
        "Merge Request Hook",
        "Note Hook",
        "Confidential Note Hook",
        "Push Hook",
        "Release Hook",
        "Subgroup Hook",
        "System Hook",
        "Tag Push Hook",
        "Wiki Page Hook",
    }
)


class RefKind(str, Enum):
    """Kinds of git references the exporter can monitor."""

    BRANCH = "branch"
    TAG = "tag"
    MERGE_REQUEST = "merge-request"


class WebhookError(ValueError):
    """Raised when a webhook payload cannot be decoded."""


@dataclass
class PipelineEvent:
    """The parts of a pipeline hook the exporter relies on."""

    project_path_with_namespace: str = ""
    ref: str = ""
    tag: bool = False
    merge_request_iid: int = 0

    @property
    def ref_kind(self) -> RefKind:
        """Kind of the ref the pipeline ran for."""
        if self.merge_request_iid != 0:
            return RefKind.MERGE_REQUEST
        if self.tag:
            return RefKind.TAG
        return RefKind.BRANCH

    @property
    def ref_name(self) -> str:
        """Name of the ref; merge requests are named by their IID."""
        if self.merge_request_iid != 0:
            return str(self.merge_request_iid)
        return self.ref


@dataclass
class DeploymentEvent:
    """The parts of a deployment hook the exporter relies on."""

    project_path_with_namespace: str = ""
    environment: str = ""


@dataclass
class _OtherEvent:
    event_type: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class WebhookResponse:
    """Status and body to send back to GitLab."""

    status: HTTPStatus
    body: str = ""


Event = Union[PipelineEvent, DeploymentEvent, _OtherEvent]


def get_ref_regexp(pull_refs: ProjectPullRefs, kind: Union[RefKind, str]) -> re.Pattern[str]:
    """Return the compiled filter applying to refs of the given kind."""
    kind = _ref_kind(kind)
    if kind is RefKind.BRANCH:
        return re.compile(pull_refs.branches.regexp)
    if kind is RefKind.TAG:
        return re.compile(pull_refs.tags.regexp)
    return re.compile(_MERGE_REQUEST_REGEXP)


def _ref_kind(kind: Union[RefKind, str]) -> RefKind:
    try:
        return RefKind(kind)
    except ValueError:
        raise ValueError(f"invalid ref kind {kind}") from None


def is_ref_matching_project_pull_refs(
    pull_refs: ProjectPullRefs, kind: Union[RefKind, str], name: str
) -> bool:
    """Tell whether a ref is enabled and matches the project's ref filters."""
    kind = _ref_kind(kind)
    enabled = {
        RefKind.BRANCH: pull_refs.branches.enabled,
        RefKind.TAG: pull_refs.tags.enabled,
        RefKind.MERGE_REQUEST: pull_refs.merge_requests.enabled,
    }[kind]
    if not enabled:
        return False
    return get_ref_regexp(pull_refs, kind).search(name) is not None


def is_env_matching_project_pull_environments(
    pull_environments: ProjectPullEnvironments, env_name: str
) -> bool:
    """Tell whether environments are pulled and the name matches the filter."""
    if not pull_environments.enabled:
        return False
    return re.compile(pull_environments.regexp).search(env_name) is not None


def _owner_matches(wildcard: Wildcard, project_name: str) -> bool:
    return wildcard.owner.kind == "" or wildcard.owner.name in project_name


def is_ref_matching_wildcard(
    wildcard: Wildcard, project_name: str, kind: Union[RefKind, str], name: str
) -> bool:
    """Tell whether a wildcard could discover a project exporting this ref."""
    if not _owner_matches(wildcard, project_name):
        return False
    return is_ref_matching_project_pull_refs(wildcard.pull.refs, kind, name)


def is_env_matching_wildcard(wildcard: Wildcard, project_name: str, env_name: str) -> bool:
    """Tell whether a wildcard could discover a project exporting this environment."""
    if not _owner_matches(wildcard, project_name):
        return False
    return is_env_matching_project_pull_environments(wildcard.pull.environments, env_name)


def _object(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise WebhookError(f"cannot unmarshal {type(value).__name__} into field {key}")
    return value


def _string(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise WebhookError(f"cannot unmarshal {value!r} into string field {key}")
    return value


def _boolean(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise WebhookError(f"cannot unmarshal {value!r} into bool field {key}")
    return value


def _integer(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise WebhookError(f"cannot unmarshal {value!r} into int field {key}")
    return value


def parse_hook(event_type: str, payload: Union[bytes, str]) -> Event:
    """Decode a webhook payload according to its X-Gitlab-Event type."""
    if event_type not in _OTHER_HOOKS and event_type not in (_PIPELINE_HOOK, _DEPLOYMENT_HOOK):
        raise WebhookError(f"unexpected event type: {event_type}")

    try:
        data = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise WebhookError(str(exc)) from exc
    if not isinstance(data, dict):
        raise WebhookError(f"cannot unmarshal {type(data).__name__} into an event")

    if event_type == _PIPELINE_HOOK:
        attributes = _object(data, "object_attributes")
        return PipelineEvent(
            project_path_with_namespace=_string(_object(data, "project"), "path_with_namespace"),
            ref=_string(attributes, "ref"),
            tag=_boolean(attributes, "tag"),
            merge_request_iid=_integer(_object(data, "merge_request"), "iid"),
        )
    if event_type == _DEPLOYMENT_HOOK:
        return DeploymentEvent(
            project_path_with_namespace=_string(_object(data, "project"), "path_with_namespace"),
            environment=_string(data, "environment"),
        )
    return _OtherEvent(event_type=event_type, payload=data)


def _header(headers: Mapping[str, str], name: str) -> str:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return ""


def handle_webhook(
    headers: Mapping[str, str],
    body: Union[bytes, str, None],
    secret_token: str,
    on_event: Callable[[Union[PipelineEvent, DeploymentEvent]], Any],
) -> WebhookResponse:
    """Authenticate and decode a webhook request, handing supported events on."""
    if _header(headers, "X-Gitlab-Token") != secret_token:
        logger.debug("invalid token provided for a webhook request")
        return WebhookResponse(HTTPStatus.FORBIDDEN, '{"error": "invalid token"}')

    if not body:
        logger.warning("unable to read body of a received webhook: nil body")
        return WebhookResponse(HTTPStatus.BAD_REQUEST)

    try:
        event = parse_hook(_header(headers, "X-Gitlab-Event"), body)
    except WebhookError as exc:
        logger.warning("unable to parse body of a received webhook: %s", exc)
        return WebhookResponse(HTTPStatus.BAD_REQUEST)

    if isinstance(event, (PipelineEvent, DeploymentEvent)):
        try:
            on_event(event)
        except Exception as exc:  # noqa: BLE001 - processing errors do not fail the hook
            logger.warning("processing webhook event: %s", exc)
        return WebhookResponse(HTTPStatus.OK)

    logger.warning(
        "received a non supported event type as a webhook: %s",
        getattr(event, "event_type", type(event).__name__),
    )
    return WebhookResponse(HTTPStatus.UNPROCESSABLE_ENTITY)
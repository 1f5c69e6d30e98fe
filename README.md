# gcpe

Configuration handling and GitLab webhook processing for an exporter of
GitLab CI pipeline metrics.

## Installation

```
pip install .
```

## Configuration files

`gcpe.parser.parse_file(filename)` reads a `.yml` or `.yaml` file and returns
a `gcpe.config.Config`. Any other extension raises `ConfigParseError`. So does
content that cannot be decoded. `parse(Format.YAML, data)` does the same with
bytes or a string you already hold.

```yaml
gitlab:
  url: https://gitlab.com
  token: token

projects:
  - name: group/project

wildcards:
  - owner:
      name: group
      kind: group
      include_subgroups: true
```

Every option you leave out keeps its default. Each project and each wildcard
starts from the values under `project_defaults`. By default:

- branches matching `^main|master$` are pulled
- all tags are pulled
- merge requests, environments, pipeline jobs and pipeline variables are not
  pulled
- sparse status metrics are output

If `gitlab.url` is not `https://gitlab.com` and `gitlab.health_url` still has
its default, `parse` sets the health URL to `<url>/-/health`.

```python
from gcpe.parser import parse_file

config = parse_file("gitlab-ci-pipelines-exporter.yml")
config.validate()
print(config.to_yaml())
```

`Config.validate()` raises `ConfigValidationError` when the configuration is
not usable. The `errors` attribute lists every problem found. It checks for:

- the log level and log format
- a GitLab token, and GitLab URLs that are valid
- a request rate of at least 1
- positive scheduling intervals
- a webhook secret token when webhooks are enabled
- projects and wildcards that are unique, with at least one of them present

`Config.to_yaml()` renders the configuration with the GitLab token and the
webhook secret token masked.

Other ways to build configuration objects:

- `Config.from_mapping(data)` builds a config from an already decoded mapping.
- `gcpe.config.new()` returns a config holding only defaults.
- `gcpe.project.new_project(name)` returns a project with default parameters.
- `gcpe.wildcard.new_wildcard()` returns a wildcard with default parameters.

## Webhooks

`gcpe.webhooks.handle_webhook(headers, body, secret_token, on_event)` checks
an incoming GitLab webhook request and returns a `WebhookResponse` with a
`status` and a `body`:

- `403` if the `X-Gitlab-Token` header does not equal `secret_token`
- `400` if the body is empty or cannot be decoded
- `422` for event types other than pipeline and deployment hooks
- `200` after `on_event` was called with a `PipelineEvent` or
  `DeploymentEvent`; an exception raised by `on_event` is logged and does not
  change the status

```python
from gcpe.webhooks import handle_webhook

response = handle_webhook(
    {"X-Gitlab-Token": "secret", "X-Gitlab-Event": "Pipeline Hook"},
    b'{"object_kind": "pipeline"}',
    "secret",
    print,
)
```

`parse_hook(event_type, payload)` decodes a payload on its own.

Other functions tell whether a configuration covers a ref or an environment:

- `is_ref_matching_project_pull_refs`
- `is_env_matching_project_pull_environments`
- `is_ref_matching_wildcard`
- `is_env_matching_wildcard`
- `get_ref_regexp`

## What this package does not do

This package has no command to run and no HTTP server. It does not query the
GitLab API, and it does not collect, store or render Prometheus metrics. It
supplies the configuration model and the webhook handling logic. A program
that serves `/metrics` and `/webhook` has to be built on top of it.
"""Configuration loading and GitLab webhook handling for a CI pipelines metrics exporter."""

__version__ = "0.1.0"
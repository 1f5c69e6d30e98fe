[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gcpe"
version = "0.1.0"
description = "Configuration and webhook handling for a GitLab CI pipelines metrics exporter"
requires-python = ">=3.10"
keywords = ["gitlab", "ci", "pipelines", "prometheus", "exporter", "webhook", "configuration"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["gcpe"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

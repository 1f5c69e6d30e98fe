import pytest

from gcpe.project import (
    Project,
    ProjectPullRefsBranches,
    merge_mapping,
    new_project,
    to_mapping,
)


def test_new_project_defaults():
    p = new_project("foo/bar")

    assert p.name == "foo/bar"
    assert p.output_sparse_status_metrics is True

    assert p.pull.environments.enabled is False
    assert p.pull.environments.regexp == ".*"
    assert p.pull.environments.exclude_stopped is True

    assert p.pull.refs.branches.enabled is True
    assert p.pull.refs.branches.regexp == "^main|master$"
    assert p.pull.refs.branches.most_recent == 0
    assert p.pull.refs.branches.max_age_seconds == 0
    assert p.pull.refs.branches.exclude_deleted is True

    assert p.pull.refs.tags.enabled is True
    assert p.pull.refs.tags.regexp == ".*"
    assert p.pull.refs.tags.exclude_deleted is True

    assert p.pull.refs.merge_requests.enabled is False

    assert p.pull.pipeline.jobs.enabled is False
    assert p.pull.pipeline.jobs.from_child_pipelines.enabled is True
    assert p.pull.pipeline.jobs.runner_description.enabled is True
    assert (
        p.pull.pipeline.jobs.runner_description.aggregation_regexp
        == r"shared-runners-manager-(\d*)\.gitlab\.com"
    )
    assert p.pull.pipeline.variables.enabled is False
    assert p.pull.pipeline.variables.regexp == ".*"


def test_new_project_instances_are_independent():
    a = new_project("a")
    b = new_project("b")
    a.pull.refs.branches.regexp = "^dev$"
    assert b.pull.refs.branches.regexp == "^main|master$"


def test_merge_mapping_keeps_unset_values():
    p = new_project("foo")
    merge_mapping(p, {"pull": {"refs": {"branches": {"most_recent": 3}}}})
    assert p.pull.refs.branches.most_recent == 3
    assert p.pull.refs.branches.regexp == "^main|master$"
    assert p.pull.refs.tags.enabled is True


def test_merge_mapping_ignores_unknown_and_null_keys():
    p = new_project("foo")
    merge_mapping(p, {"unknown": 1, "name": None, "output_sparse_status_metrics": False})
    assert p.name == "foo"
    assert p.output_sparse_status_metrics is False


def test_merge_mapping_scalar_to_string():
    p = Project()
    merge_mapping(p, {"name": 123})
    assert p.name == "123"


@pytest.mark.parametrize(
    "data",
    [
        {"output_sparse_status_metrics": "yes"},
        {"pull": {"refs": {"branches": {"most_recent": "many"}}}},
        {"pull": {"refs": {"branches": {"most_recent": -1}}}},
        {"pull": "nope"},
        {"name": ["a", "b"]},
    ],
)
def test_merge_mapping_rejects_wrong_types(data):
    with pytest.raises(ValueError):
        merge_mapping(new_project("foo"), data)


def test_to_mapping_round_trip():
    p = new_project("foo")
    p.pull.environments.enabled = True
    data = to_mapping(p)
    assert data["name"] == "foo"
    assert data["pull"]["environments"]["enabled"] is True
    assert list(data) == ["pull", "output_sparse_status_metrics", "name"]

    restored = merge_mapping(Project(), data)
    assert restored == p


def test_to_mapping_nested_keys():
    data = to_mapping(ProjectPullRefsBranches())
    assert data == {
        "enabled": True,
        "regexp": "^main|master$",
        "most_recent": 0,
        "max_age_seconds": 0,
        "exclude_deleted": True,
    }
import pytest

from gcpe.project import merge_mapping, to_mapping
from gcpe.wildcard import Wildcard, WildcardOwner, new_wildcard


def test_new_wildcard_defaults():
    w = new_wildcard()

    assert w.output_sparse_status_metrics is True
    assert w.pull.environments.regexp == ".*"
    assert w.pull.environments.exclude_stopped is True
    assert w.pull.refs.branches.enabled is True
    assert w.pull.refs.branches.regexp == "^main|master$"
    assert w.pull.refs.branches.exclude_deleted is True
    assert w.pull.refs.tags.enabled is True
    assert w.pull.refs.tags.regexp == ".*"
    assert w.pull.refs.tags.exclude_deleted is True
    assert w.pull.pipeline.jobs.from_child_pipelines.enabled is True
    assert w.pull.pipeline.jobs.runner_description.enabled is True
    assert (
        w.pull.pipeline.jobs.runner_description.aggregation_regexp
        == r"shared-runners-manager-(\d*)\.gitlab\.com"
    )
    assert w.pull.pipeline.variables.regexp == ".*"

    assert w.search == ""
    assert w.owner == WildcardOwner(name="", kind="", include_subgroups=False)
    assert w.archived is False


def test_wildcard_merge_owner_and_inline_parameters():
    w = merge_mapping(
        new_wildcard(),
        {
            "search": "foo",
            "owner": {"name": "wc", "kind": "group", "include_subgroups": True},
            "archived": True,
            "pull": {"environments": {"enabled": True}},
        },
    )
    assert w.search == "foo"
    assert w.owner == WildcardOwner(name="wc", kind="group", include_subgroups=True)
    assert w.archived is True
    assert w.pull.environments.enabled is True
    assert w.pull.environments.regexp == ".*"


def test_wildcard_mapping_round_trip():
    w = Wildcard(search="bar", owner=WildcardOwner(name="grp", kind="group"))
    data = to_mapping(w)
    assert data["owner"] == {"name": "grp", "kind": "group", "include_subgroups": False}
    assert merge_mapping(Wildcard(), data) == w


def test_wildcard_rejects_bad_archived():
    with pytest.raises(ValueError):
        merge_mapping(new_wildcard(), {"archived": "maybe"})
from __future__ import annotations

from branchflow.branch import ALL_BRANCHES, resolve_branch
from branchflow.feature_branches import (
    DEFAULT_DEPLOY_COMMAND,
    FEATURE_BRANCH_PERMISSIONS,
    fan_out,
    feature_branch_buildspec,
)
from branchflow.models import ConnectionRef, HostedRepoRef
from branchflow.source import bind_source


def _hosted_source():
    return bind_source(HostedRepoRef("Demo"), resolve_branch(None))


def test_one_trigger_per_prefix_in_order() -> None:
    triggers = fan_out(["feature", "fix", "feature"], _hosted_source(), "mainline", cdk_src_dir="")
    assert [trigger.prefix for trigger in triggers] == ["feature", "fix", "feature"]
    assert [trigger.project.logical_id for trigger in triggers] == [
        "FeaturePipelineFeature",
        "FeaturePipelineFix",
        "FeaturePipelineFeature2",
    ]


def test_logical_ids_are_alphanumeric_and_keep_raw_prefix() -> None:
    triggers = fan_out(["feature/", "feat_ure", ""], _hosted_source(), "mainline", cdk_src_dir="")
    assert [trigger.prefix for trigger in triggers] == ["feature/", "feat_ure", ""]
    assert [trigger.project.logical_id for trigger in triggers] == [
        "FeaturePipelineFeature",
        "FeaturePipelineFeature2",
        "FeaturePipelineAllBranches",
    ]
    assert all(trigger.project.logical_id.isalnum() for trigger in triggers)


def test_all_branches_trigger_matches_every_branch() -> None:
    (trigger,) = fan_out(ALL_BRANCHES, _hosted_source(), "mainline", cdk_src_dir="")
    assert trigger.project.logical_id == "FeaturePipelineAllBranches"
    assert trigger.matches("feature/x")
    assert trigger.matches("anything")


def test_prefix_matching() -> None:
    (trigger,) = fan_out(["feature"], _hosted_source(), "mainline", cdk_src_dir="")
    assert trigger.matches("feature/x")
    assert not trigger.matches("fix/y")


def test_trigger_permissions() -> None:
    (trigger,) = fan_out([""], _hosted_source(), "mainline", cdk_src_dir="")
    assert "sts:AssumeRole" in trigger.permissions
    assert "cloudformation:*" in trigger.permissions
    policy = trigger.project.properties["Policy"]
    assert policy["Resource"] == ["*"]
    assert policy["Action"] == list(FEATURE_BRANCH_PERMISSIONS)


def test_buildspec_checks_out_branch_and_deploys() -> None:
    commands = feature_branch_buildspec()["phases"]["build"]["commands"]
    assert commands[1] == 'export BRANCH="$(git rev-parse --abbrev-ref HEAD)"'
    assert commands[-1] == DEFAULT_DEPLOY_COMMAND
    assert feature_branch_buildspec("make deploy")["phases"]["build"]["commands"][-1] == "make deploy"


def test_connection_source_and_privileged_mode() -> None:
    source = bind_source(ConnectionRef("arn:conn", "owner/repo"), resolve_branch(None))
    (trigger,) = fan_out(["feature"], source, "main", cdk_src_dir="infra", docker_enabled_for_synth=True)
    properties = trigger.project.properties
    assert properties["Source"]["Type"] == "CODESTAR_CONNECTION"
    assert properties["Source"]["Location"] == "owner/repo"
    assert properties["Environment"]["PrivilegedMode"] is True
    assert properties["WorkingDirectory"] == "infra"
    assert properties["SourceVersion"] == "main"

from __future__ import annotations

from branchflow.branch import (
    ALL_BRANCHES,
    DEFAULT_BRANCH_NAME,
    branch_prefix,
    normalize_branch_name,
    resolve_branch,
)


def test_normalize_branch_name_replaces_unsafe_characters() -> None:
    assert normalize_branch_name("feature/foo_1") == "feature-foo-1"
    assert normalize_branch_name("release-2024") == "release-2024"


def test_normalize_branch_name_preserves_length() -> None:
    raw = "fix/äbc.d@e"
    normalized = normalize_branch_name(raw)
    assert len(normalized) == len(raw)
    assert normalized == "fix--bc-d-e"


def test_absent_branch_is_default_regardless_of_configured_name() -> None:
    for configured in (None, "main", "mainline", "develop"):
        branch = resolve_branch(None, configured)
        assert branch.is_default
        assert branch.normalized_name == (configured or DEFAULT_BRANCH_NAME)


def test_empty_branch_is_treated_as_absent() -> None:
    assert resolve_branch("", "main").is_default


def test_branch_matching_configured_default() -> None:
    branch = resolve_branch("main", "main")
    assert branch.is_default
    assert branch.raw_name == "main"


def test_branch_matching_fallback_default() -> None:
    assert resolve_branch("mainline", None).is_default
    assert not resolve_branch("main", None).is_default


def test_feature_branch() -> None:
    branch = resolve_branch("feature/x", "mainline")
    assert not branch.is_default
    assert branch.raw_name == "feature/x"
    assert branch.normalized_name == "feature-x"


def test_branch_prefix() -> None:
    assert branch_prefix(resolve_branch(None)) == ""
    assert branch_prefix(resolve_branch("feature/x")) == "feature-x-"


def test_all_branches_sentinel() -> None:
    assert ALL_BRANCHES == [""]

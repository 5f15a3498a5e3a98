from __future__ import annotations

from pathlib import Path

import pytest

from branchflow.codegen import PlantumlDocsTask, build_codegen_args
from branchflow.utils import CommandError


def test_build_codegen_args() -> None:
    assert build_codegen_args("spec.yaml", ["a", "b"]) == [
        "--spec-path",
        "spec.yaml",
        "--template-dirs",
        "a",
        "--template-dirs",
        "b",
    ]


def test_command_uses_plantuml_templates() -> None:
    task = PlantumlDocsTask(spec_path="../model/main.yaml")
    assert task.command == [
        "type-safe-api",
        "generate-next",
        "--spec-path",
        "../model/main.yaml",
        "--template-dirs",
        "docs/templates/plantuml",
    ]


def test_gitignore_patterns_depend_on_committing_generated_code() -> None:
    assert PlantumlDocsTask("spec.yaml").gitignore_patterns == [
        "schemas.plantuml",
        ".openapi-generator",
        ".tsapi-manifest",
    ]
    assert "schemas.plantuml" not in PlantumlDocsTask("spec.yaml", commit_generated_code=True).gitignore_patterns


def test_write_gitignore_appends_missing_patterns(tmp_path: Path) -> None:
    (tmp_path / ".gitignore").write_text("node_modules\n.tsapi-manifest\n")
    added = PlantumlDocsTask("spec.yaml").write_gitignore(tmp_path)
    assert added == ["schemas.plantuml", ".openapi-generator"]
    assert (tmp_path / ".gitignore").read_text().splitlines() == [
        "node_modules",
        ".tsapi-manifest",
        "schemas.plantuml",
        ".openapi-generator",
    ]
    assert PlantumlDocsTask("spec.yaml").write_gitignore(tmp_path) == []


def test_run_executes_generator(tmp_path: Path) -> None:
    task = PlantumlDocsTask("spec.yaml", generator=["true"])
    task.run(tmp_path)


def test_run_raises_on_generator_failure(tmp_path: Path) -> None:
    task = PlantumlDocsTask("spec.yaml", generator=["false"])
    with pytest.raises(CommandError):
        task.run(tmp_path)

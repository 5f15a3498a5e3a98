from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from branchflow.run import main


def _write_config(tmp_path: Path) -> Path:
    config_path = tmp_path / "pipeline.yaml"
    config_path.write_text(
        """
repository_name: Demo
default_branch_name: mainline
branch_name_prefixes:
  - feature
stages:
  - name: Dev
    stacks: [AppStack]
  - name: Prod
    stacks: [AppStack]
"""
    )
    return config_path


def test_synth_on_default_branch(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("BRANCH", raising=False)
    out = tmp_path / "out" / "pipeline.json"
    assert main(["synth", "--config", str(_write_config(tmp_path)), "--out", str(out)]) == 0

    template = json.loads(out.read_text())
    assert "FeaturePipelineFeature" in template["Resources"]
    assert "CodeRepository" in template["Resources"]
    assert [stage["tags"] for stage in template["Metadata"]["Stages"]] == [{}, {}]


def test_synth_on_feature_branch(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BRANCH", "feature/x")
    out = tmp_path / "pipeline.yaml"
    assert main(["synth", "--config", str(_write_config(tmp_path)), "--out", str(out), "--format", "yaml"]) == 0

    template = yaml.safe_load(out.read_text())
    assert "FeaturePipelineFeature" not in template["Resources"]
    assert "CodeRepository" not in template["Resources"]
    for stage in template["Metadata"]["Stages"]:
        assert stage["tags"] == {"FeatureBranch": "feature/x", "RepoName": "Demo"}


def test_synth_reports_configuration_errors(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config_path = tmp_path / "pipeline.yaml"
    config_path.write_text("default_branch_name: main\n")
    assert main(["synth", "--config", str(config_path), "--out", str(tmp_path / "t.json")]) == 2
    assert "Either repositoryName or codestarConnectionArn must be provided" in capsys.readouterr().err
    assert not (tmp_path / "t.json").exists()


def test_branch_command(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setenv("BRANCH", "feature/foo_1")
    assert main(["branch", "--default-branch", "main"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload == {"raw_name": "feature/foo_1", "normalized_name": "feature-foo-1", "is_default": False}


def test_openapi_sample_command(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    spec_path = tmp_path / "main.yaml"
    argv = ["openapi-sample", "--path", str(spec_path), "--title", "Demo", "--handler-language", "python"]
    assert main(argv) == 0
    assert main(argv) == 0
    output = capsys.readouterr().out.splitlines()
    assert output[0].startswith("wrote")
    assert output[1].startswith("kept")


def test_docs_codegen_dry_run(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["docs-codegen", "--spec-path", "model/main.yaml", "--dry-run"]) == 0
    assert "--template-dirs docs/templates/plantuml" in capsys.readouterr().out

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .models import (
    ConnectionRef,
    HostedRepoRef,
    RemovalPolicy,
    RepositoryReference,
    SonarScanConfig,
    Stage,
)

logger = logging.getLogger(__name__)

MISSING_REPOSITORY_MESSAGE = "Either repositoryName or codestarConnectionArn must be provided"
MISSING_OWNER_AND_NAME_MESSAGE = "repositoryOwnerAndName is required when using codestarConnectionArn"


class ConfigurationError(RuntimeError):
    """Raised when the pipeline configuration cannot be satisfied."""


def parse_removal_policy(value: Any) -> RemovalPolicy:
    if isinstance(value, RemovalPolicy):
        return value
    normalized = str(value).strip().lower()
    if normalized == "retain":
        return RemovalPolicy.RETAIN
    if normalized in {"destroy", "delete"}:
        return RemovalPolicy.DESTROY
    raise ConfigurationError(f"Unknown removal policy: {value}")


@dataclass
class SynthConfig:
    """Overrides for the synth shell step."""

    commands: List[str] = field(default_factory=list)
    install_commands: List[str] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SynthConfig":
        return cls(
            commands=list(data.get("commands", [])),
            install_commands=list(data.get("install_commands", [])),
            env={str(k): str(v) for k, v in data.get("env", {}).items()},
        )


@dataclass
class PipelineConfig:
    """Construction-time parameters of a branch-aware pipeline."""

    primary_synth_directory: str = "cdk.out"
    repository_name: Optional[str] = None
    codestar_connection_arn: Optional[str] = None
    repository_owner_and_name: Optional[str] = None
    default_branch_name: Optional[str] = None
    branch_name_prefixes: Optional[List[str]] = None
    code_commit_removal_policy: RemovalPolicy = RemovalPolicy.RETAIN
    cross_account_keys: bool = False
    synth: SynthConfig = field(default_factory=SynthConfig)
    cdk_src_dir: Optional[str] = None
    cdk_command: Optional[str] = None
    docker_enabled_for_synth: bool = False
    sonar: Optional[SonarScanConfig] = None
    handler_languages: List[str] = field(default_factory=list)
    policy_checks: List[str] = field(default_factory=list)
    stages: List[Stage] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PipelineConfig":
        prefixes = data.get("branch_name_prefixes")
        sonar = data.get("sonar")
        return cls(
            primary_synth_directory=data.get("primary_synth_directory", "cdk.out"),
            repository_name=data.get("repository_name"),
            codestar_connection_arn=data.get("codestar_connection_arn"),
            repository_owner_and_name=data.get("repository_owner_and_name"),
            default_branch_name=data.get("default_branch_name"),
            branch_name_prefixes=[str(p) for p in prefixes] if prefixes is not None else None,
            code_commit_removal_policy=parse_removal_policy(
                data.get("code_commit_removal_policy", RemovalPolicy.RETAIN)
            ),
            cross_account_keys=bool(data.get("cross_account_keys", False)),
            synth=SynthConfig.from_dict(data.get("synth", {})),
            cdk_src_dir=data.get("cdk_src_dir"),
            cdk_command=data.get("cdk_command"),
            docker_enabled_for_synth=bool(data.get("docker_enabled_for_synth", False)),
            sonar=SonarScanConfig.from_dict(sonar) if sonar else None,
            handler_languages=list(data.get("handler_languages", [])),
            policy_checks=list(data.get("policy_checks", [])),
            stages=[Stage.from_dict(entry) for entry in data.get("stages", [])],
        )

    @property
    def fan_out_enabled(self) -> bool:
        return bool(self.branch_name_prefixes)

    def repository_reference(self) -> RepositoryReference:
        """Return the single repository variant this configuration selects."""

        if not self.repository_name and not self.codestar_connection_arn:
            raise ConfigurationError(MISSING_REPOSITORY_MESSAGE)
        if self.codestar_connection_arn and not self.repository_owner_and_name:
            raise ConfigurationError(MISSING_OWNER_AND_NAME_MESSAGE)
        if self.repository_name:
            return HostedRepoRef(repository_name=self.repository_name)
        return ConnectionRef(
            connection_arn=self.codestar_connection_arn,
            owner_and_name=self.repository_owner_and_name,
        )


def load_config(path: str | Path) -> PipelineConfig:
    """Load a pipeline configuration from a JSON or YAML file."""

    path = Path(path)
    raw_text = path.read_text()
    try:
        raw_data = json.loads(raw_text)
    except json.JSONDecodeError:
        try:
            raw_data = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Cannot parse pipeline configuration {path}: {exc}") from exc

    if not isinstance(raw_data, dict):
        raise ConfigurationError("Pipeline configuration must be a mapping")
    logger.debug("Loaded pipeline configuration from %s", path)
    return PipelineConfig.from_dict(raw_data)

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class RemovalPolicy(Enum):
    RETAIN = "Retain"
    DESTROY = "Delete"


@dataclass(frozen=True)
class BranchDescriptor:
    """The branch this invocation builds for, resolved once per process."""

    raw_name: str
    normalized_name: str
    is_default: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "raw_name": self.raw_name,
            "normalized_name": self.normalized_name,
            "is_default": self.is_default,
        }


@dataclass(frozen=True)
class HostedRepoRef:
    """A CodeCommit repository owned by the pipeline account."""

    repository_name: str


@dataclass(frozen=True)
class ConnectionRef:
    """A third-party repository reached through a CodeStar connection."""

    connection_arn: str
    owner_and_name: Optional[str] = None


RepositoryReference = Union[HostedRepoRef, ConnectionRef]


@dataclass
class ResourceSpec:
    """Description of a single resource in the rendered template."""

    logical_id: str
    type: str
    properties: Dict[str, Any] = field(default_factory=dict)
    removal_policy: Optional[RemovalPolicy] = None
    depends_on: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def ref(self) -> Dict[str, str]:
        return {"Ref": self.logical_id}

    def attr(self, name: str) -> Dict[str, List[str]]:
        return {"Fn::GetAtt": [self.logical_id, name]}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"Type": self.type}
        if self.properties:
            payload["Properties"] = self.properties
        if self.removal_policy is not None:
            payload["DeletionPolicy"] = self.removal_policy.value
            payload["UpdateReplacePolicy"] = self.removal_policy.value
        if self.depends_on:
            payload["DependsOn"] = list(self.depends_on)
        if self.metadata:
            payload["Metadata"] = self.metadata
        return payload


@dataclass(frozen=True)
class SourceHandle:
    """Fetchable source for the pipeline: where the code lives and which branch."""

    provider: str
    branch: str
    repository_name: Optional[str] = None
    owner_and_name: Optional[str] = None
    connection_arn: Optional[str] = None
    repository: Optional[ResourceSpec] = None
    created: bool = False

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"provider": self.provider, "branch": self.branch}
        if self.repository_name:
            payload["repository_name"] = self.repository_name
        if self.connection_arn:
            payload["connection_arn"] = self.connection_arn
            payload["owner_and_name"] = self.owner_and_name
        payload["created"] = self.created
        return payload


@dataclass
class ShellStep:
    name: str
    commands: List[str]
    install_commands: List[str] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)
    primary_output_directory: Optional[str] = None
    output_directories: List[str] = field(default_factory=list)

    def add_output_directory(self, directory: str) -> None:
        if directory not in self.output_directories:
            self.output_directories.append(directory)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "install_commands": list(self.install_commands),
            "commands": list(self.commands),
            "env": dict(self.env),
            "primary_output_directory": self.primary_output_directory,
            "output_directories": list(self.output_directories),
        }


@dataclass
class Stage:
    """A named deployment target made of one or more stacks."""

    name: str
    stacks: List[str] = field(default_factory=list)
    tags: Dict[str, str] = field(default_factory=dict)
    policy_checks: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Stage":
        return cls(
            name=data["name"],
            stacks=list(data.get("stacks", [])),
            tags={str(k): str(v) for k, v in data.get("tags", {}).items()},
        )


@dataclass(frozen=True)
class AddStageOptions:
    pre: Tuple[str, ...] = ()
    post: Tuple[str, ...] = ()


@dataclass(frozen=True)
class StageDeployment:
    """Record of one stage attached to the pipeline and what was done to it."""

    stage: Stage
    index: int
    tags_applied: Dict[str, str]
    checks_added: Tuple[str, ...]
    options: AddStageOptions = AddStageOptions()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.stage.name,
            "index": self.index,
            "stacks": list(self.stage.stacks),
            "tags": dict(self.stage.tags),
            "policy_checks": list(self.stage.policy_checks),
            "pre": list(self.options.pre),
            "post": list(self.options.post),
        }


@dataclass(frozen=True)
class FeatureTrigger:
    """Build project that deploys every branch starting with ``prefix``."""

    prefix: str
    permissions: Tuple[str, ...]
    project: ResourceSpec

    def matches(self, branch_name: str) -> bool:
        return branch_name.startswith(self.prefix)


@dataclass
class SonarScanConfig:
    """Settings for the SonarQube scan triggered after the synth step."""

    sonarqube_endpoint: str
    sonarqube_authorized_group: str
    sonarqube_default_profile_or_gate_name: str
    sonarqube_project_name: str
    sonarqube_specific_profile_or_gate_name: Optional[str] = None
    sonarqube_tags: List[str] = field(default_factory=list)
    cdk_out_dir: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SonarScanConfig":
        return cls(
            sonarqube_endpoint=data["sonarqube_endpoint"],
            sonarqube_authorized_group=data["sonarqube_authorized_group"],
            sonarqube_default_profile_or_gate_name=data["sonarqube_default_profile_or_gate_name"],
            sonarqube_project_name=data["sonarqube_project_name"],
            sonarqube_specific_profile_or_gate_name=data.get("sonarqube_specific_profile_or_gate_name"),
            sonarqube_tags=list(data.get("sonarqube_tags", [])),
            cdk_out_dir=data.get("cdk_out_dir"),
        )

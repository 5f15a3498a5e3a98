from __future__ import annotations

import logging
import posixpath
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .branch import DEFAULT_BRANCH_NAME, branch_prefix
from .compliance import PIPELINE_SUPPRESSIONS, Suppression, suppression_metadata
from .config import PipelineConfig
from .feature_branches import INSTALL_COMMANDS, fan_out
from .models import (
    AddStageOptions,
    BranchDescriptor,
    FeatureTrigger,
    RemovalPolicy,
    ResourceSpec,
    ShellStep,
    SourceHandle,
    Stage,
    StageDeployment,
)
from .source import bind_source

logger = logging.getLogger(__name__)

DEFAULT_SYNTH_COMMANDS = ["npx projen build"]
ACCESS_LOGS_PREFIX = "access-logs"

_BLOCK_ALL_PUBLIC_ACCESS = {
    "BlockPublicAcls": True,
    "BlockPublicPolicy": True,
    "IgnorePublicAcls": True,
    "RestrictPublicBuckets": True,
}


def stage_branch_tags(
    branch: BranchDescriptor,
    *,
    fan_out_enabled: bool,
    repository_name: Optional[str] = None,
) -> Dict[str, str]:
    """Tags identifying a feature-branch deployment; empty on the default branch."""

    if not fan_out_enabled or branch.is_default:
        return {}
    tags = {"FeatureBranch": branch.raw_name}
    if repository_name:
        tags["RepoName"] = repository_name
    return tags


def _bucket_encryption(algorithm: str, key: Optional[ResourceSpec] = None) -> Dict[str, Any]:
    default: Dict[str, Any] = {"SSEAlgorithm": algorithm}
    if key is not None:
        default["KMSMasterKeyID"] = key.attr("Arn")
    return {"ServerSideEncryptionConfiguration": [{"ServerSideEncryptionByDefault": default}]}


def _access_logs_bucket() -> ResourceSpec:
    return ResourceSpec(
        logical_id="AccessLogsBucket",
        type="AWS::S3::Bucket",
        properties={
            "BucketEncryption": _bucket_encryption("AES256"),
            "OwnershipControls": {"Rules": [{"ObjectOwnership": "ObjectWriter"}]},
            "PublicAccessBlockConfiguration": dict(_BLOCK_ALL_PUBLIC_ACCESS),
            "Tags": [{"Key": "aws-cdk:auto-delete-objects", "Value": "true"}],
        },
        removal_policy=RemovalPolicy.DESTROY,
        metadata={"enforce_ssl": True},
    )


def _artifact_key() -> ResourceSpec:
    return ResourceSpec(
        logical_id="ArtifactKey",
        type="AWS::KMS::Key",
        properties={"EnableKeyRotation": True},
        removal_policy=RemovalPolicy.DESTROY,
    )


def _artifacts_bucket(access_logs: ResourceSpec, key: Optional[ResourceSpec]) -> ResourceSpec:
    encryption = _bucket_encryption("aws:kms", key) if key is not None else _bucket_encryption("AES256")
    return ResourceSpec(
        logical_id="ArtifactsBucket",
        type="AWS::S3::Bucket",
        properties={
            "BucketEncryption": encryption,
            "LoggingConfiguration": {
                "DestinationBucketName": access_logs.ref(),
                "LogFilePrefix": ACCESS_LOGS_PREFIX,
            },
            "OwnershipControls": {"Rules": [{"ObjectOwnership": "BucketOwnerEnforced"}]},
            "PublicAccessBlockConfiguration": dict(_BLOCK_ALL_PUBLIC_ACCESS),
            "Tags": [{"Key": "aws-cdk:auto-delete-objects", "Value": "true"}],
        },
        removal_policy=RemovalPolicy.DESTROY,
        depends_on=[access_logs.logical_id],
        metadata={"enforce_ssl": True},
    )


class BranchPipeline:
    """Deployment pipeline whose shape depends on the branch being built.

    On the default branch the pipeline owns the shared resources (the hosted
    repository and the feature-branch build projects). On any other branch it
    only looks those up and tags what it deploys with the branch it came from.
    """

    def __init__(
        self,
        config: PipelineConfig,
        branch: BranchDescriptor,
        *,
        pipeline_id: str = "Pipeline",
        policy_checks: Optional[Sequence[str]] = None,
    ) -> None:
        reference = config.repository_reference()

        self.config = config
        self.branch = branch
        self.pipeline_id = pipeline_id
        self.policy_checks: List[str] = list(config.policy_checks if policy_checks is None else policy_checks)
        self.resources: Dict[str, ResourceSpec] = {}
        self.outputs: Dict[str, Any] = {}
        self.tags: Dict[str, str] = {}
        self.deployments: List[StageDeployment] = []
        self.feature_triggers: List[FeatureTrigger] = []
        self.suppressions: Tuple[Suppression, ...] = ()
        self.code_scanner: Optional[ResourceSpec] = None
        self.built = False

        self.source: SourceHandle = bind_source(reference, branch, config.code_commit_removal_policy)
        if self.source.repository is not None:
            self._add_resource(self.source.repository)

        self.access_logs_bucket = self._add_resource(_access_logs_bucket())
        self.artifact_key = self._add_resource(_artifact_key()) if config.cross_account_keys else None
        self.artifacts_bucket = self._add_resource(_artifacts_bucket(self.access_logs_bucket, self.artifact_key))
        self.code_pipeline = self._add_resource(
            ResourceSpec(
                logical_id="CodePipeline",
                type="AWS::CodePipeline::Pipeline",
                properties={
                    "ArtifactStore": self._artifact_store(),
                    "RestartExecutionOnUpdate": True,
                    "PipelineType": "V1",
                },
                depends_on=[self.artifacts_bucket.logical_id],
            )
        )
        self.synth_step = self._synth_step()

        if config.fan_out_enabled and branch.is_default:
            self.feature_triggers = fan_out(
                config.branch_name_prefixes or [],
                self.source,
                config.default_branch_name or DEFAULT_BRANCH_NAME,
                cdk_src_dir=self.cdk_src_dir,
                cdk_command=config.cdk_command,
                docker_enabled_for_synth=config.docker_enabled_for_synth,
            )
            for trigger in self.feature_triggers:
                self._add_resource(trigger.project)
        elif config.fan_out_enabled:
            self.tags.update(
                stage_branch_tags(branch, fan_out_enabled=True, repository_name=config.repository_name)
            )

        if self.source.repository is not None:
            self.outputs["CodeRepositoryGRCUrl"] = {
                "Value": {
                    "Fn::Join": [
                        "",
                        ["codecommit::", {"Ref": "AWS::Region"}, "://", self.source.repository.attr("Name")],
                    ]
                }
            }

    @property
    def stack_name(self) -> str:
        return branch_prefix(self.branch) + self.pipeline_id

    @property
    def cdk_src_dir(self) -> str:
        if self.config.cdk_src_dir:
            return self.config.cdk_src_dir
        return posixpath.dirname(self.config.primary_synth_directory)

    def _add_resource(self, resource: ResourceSpec) -> ResourceSpec:
        if resource.logical_id in self.resources:
            raise RuntimeError(f"Duplicate resource logical id: {resource.logical_id}")
        self.resources[resource.logical_id] = resource
        return resource

    def _artifact_store(self) -> Dict[str, Any]:
        store: Dict[str, Any] = {"Type": "S3", "Location": self.artifacts_bucket.ref()}
        if self.artifact_key is not None:
            store["EncryptionKey"] = {"Id": self.artifact_key.attr("Arn"), "Type": "KMS"}
        return store

    def _synth_step(self) -> ShellStep:
        synth = self.config.synth
        env: Dict[str, str] = {}
        if self.config.fan_out_enabled:
            env["BRANCH"] = self.branch.raw_name
        env.update(synth.env)
        step = ShellStep(
            name="Synth",
            install_commands=list(synth.install_commands or INSTALL_COMMANDS),
            commands=list(synth.commands or DEFAULT_SYNTH_COMMANDS),
            env=env,
            primary_output_directory=self.config.primary_synth_directory,
        )
        step.add_output_directory(".")
        return step

    def add_stage(self, stage: Stage, options: Optional[AddStageOptions] = None) -> StageDeployment:
        """Attach ``stage`` after the stages already added."""

        if self.built:
            raise RuntimeError("Stages cannot be added after the pipeline has been built.")

        tags = stage_branch_tags(
            self.branch,
            fan_out_enabled=self.config.fan_out_enabled,
            repository_name=self.config.repository_name,
        )
        stage.tags.update(tags)
        checks_added = tuple(check for check in self.policy_checks if check not in stage.policy_checks)
        stage.policy_checks.extend(checks_added)

        deployment = StageDeployment(
            stage=stage,
            index=len(self.deployments),
            tags_applied=tags,
            checks_added=checks_added,
            options=options or AddStageOptions(),
        )
        self.deployments.append(deployment)
        logger.debug("Added stage %s with tags %s", stage.name, tags)
        return deployment

    def _synth_project(self) -> ResourceSpec:
        step = self.synth_step
        return ResourceSpec(
            logical_id="SynthProject",
            type="AWS::CodeBuild::Project",
            properties={
                "Environment": {"Image": "aws/codebuild/standard:7.0", "ComputeType": "BUILD_GENERAL1_SMALL"},
                "EnvironmentVariables": [{"Name": k, "Value": v} for k, v in sorted(step.env.items())],
                "BuildSpec": {
                    "version": "0.2",
                    "phases": {
                        "install": {"commands": list(step.install_commands)},
                        "build": {"commands": list(step.commands)},
                    },
                    "artifacts": {"base-directory": step.primary_output_directory, "files": "**/*"},
                },
            },
        )

    def _source_action(self) -> Dict[str, Any]:
        if self.source.provider == "codecommit":
            return {
                "Name": self.source.repository_name,
                "ActionTypeId": {"Category": "Source", "Owner": "AWS", "Provider": "CodeCommit"},
                "Configuration": {
                    "RepositoryName": self.source.repository_name,
                    "BranchName": self.source.branch,
                    "PollForSourceChanges": False,
                },
            }
        return {
            "Name": self.source.owner_and_name.replace("/", "_"),
            "ActionTypeId": {"Category": "Source", "Owner": "AWS", "Provider": "CodeStarSourceConnection"},
            "Configuration": {
                "ConnectionArn": self.source.connection_arn,
                "FullRepositoryId": self.source.owner_and_name,
                "BranchName": self.source.branch,
            },
        }

    def _pipeline_stages(self, synth_project: ResourceSpec) -> List[Dict[str, Any]]:
        stages: List[Dict[str, Any]] = [
            {"Name": "Source", "Actions": [self._source_action()]},
            {
                "Name": "Build",
                "Actions": [
                    {
                        "Name": self.synth_step.name,
                        "ActionTypeId": {"Category": "Build", "Owner": "AWS", "Provider": "CodeBuild"},
                        "Configuration": {"ProjectName": synth_project.ref()},
                    }
                ],
            },
        ]
        for deployment in self.deployments:
            stage = deployment.stage
            actions = [{"Name": f"{step}.Pre", "RunOrder": 1} for step in deployment.options.pre]
            actions += [
                {
                    "Name": f"{stack}.Deploy",
                    "ActionTypeId": {"Category": "Deploy", "Owner": "AWS", "Provider": "CloudFormation"},
                    "Configuration": {"StackName": f"{stage.name}-{stack}"},
                    "RunOrder": 2,
                }
                for stack in stage.stacks
            ]
            actions += [{"Name": f"{step}.Post", "RunOrder": 3} for step in deployment.options.post]
            stages.append({"Name": stage.name, "Actions": actions})
        return stages

    def _code_scanner(self, synth_project: ResourceSpec) -> ResourceSpec:
        sonar = self.config.sonar
        assert sonar is not None
        environment = {
            "SONARQUBE_ENDPOINT": sonar.sonarqube_endpoint,
            "SONARQUBE_AUTHORIZED_GROUP": sonar.sonarqube_authorized_group,
            "SONARQUBE_DEFAULT_PROFILE_OR_GATE_NAME": sonar.sonarqube_default_profile_or_gate_name,
            "SONARQUBE_PROJECT_NAME": sonar.sonarqube_project_name,
            "CDK_OUT_DIR": sonar.cdk_out_dir or self.config.primary_synth_directory,
        }
        if sonar.sonarqube_specific_profile_or_gate_name:
            environment["SONARQUBE_SPECIFIC_PROFILE_OR_GATE_NAME"] = sonar.sonarqube_specific_profile_or_gate_name
        if sonar.sonarqube_tags:
            environment["SONARQUBE_TAGS"] = ",".join(sonar.sonarqube_tags)

        target: Dict[str, Any] = {
            "ArtifactBucketArn": self.artifacts_bucket.attr("Arn"),
            "SynthBuildArn": synth_project.attr("Arn"),
            "Environment": environment,
        }
        if self.artifact_key is not None:
            target["ArtifactBucketKeyArn"] = self.artifact_key.attr("Arn")
        return ResourceSpec(
            logical_id="SonarCodeScanner",
            type="AWS::Events::Rule",
            properties={
                "EventPattern": {
                    "source": ["aws.codebuild"],
                    "detail-type": ["CodeBuild Build State Change"],
                    "detail": {
                        "project-name": [synth_project.ref()],
                        "build-status": ["SUCCEEDED"],
                    },
                },
                "Targets": [target],
            },
        )

    def build(self) -> None:
        """Finalize the pipeline, hook up the code scanner and apply suppressions."""

        if self.built:
            return
        synth_project = self._add_resource(self._synth_project())
        self.code_pipeline.properties["Stages"] = self._pipeline_stages(synth_project)
        self.built = True

        if self.config.sonar is not None:
            self.code_scanner = self._add_resource(self._code_scanner(synth_project))

        self.suppressions = PIPELINE_SUPPRESSIONS
        for resource in self.resources.values():
            resource.metadata.update(suppression_metadata(self.suppressions))
        logger.info(
            "Built pipeline %s with %d stage(s) and %d resource(s)",
            self.stack_name,
            len(self.deployments),
            len(self.resources),
        )

    def to_template(self) -> Dict[str, Any]:
        template: Dict[str, Any] = {
            "Description": f"Deployment pipeline {self.stack_name}",
            "Metadata": {
                "Branch": self.branch.to_dict(),
                "Source": self.source.to_dict(),
                "Synth": self.synth_step.to_dict(),
                "Stages": [deployment.to_dict() for deployment in self.deployments],
                "FeatureBranchPrefixes": [trigger.prefix for trigger in self.feature_triggers],
                "StackTags": dict(self.tags),
            },
            "Resources": {logical_id: resource.to_dict() for logical_id, resource in self.resources.items()},
        }
        if self.outputs:
            template["Outputs"] = dict(self.outputs)
        return template

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Set

from .models import FeatureTrigger, ResourceSpec, SourceHandle

logger = logging.getLogger(__name__)

DEFAULT_DEPLOY_COMMAND = "npx projen deploy"
INSTALL_COMMANDS = ["npm install -g aws-cdk pnpm", "npx projen install"]
BUILD_IMAGE = "aws/codebuild/standard:7.0"
COMPUTE_TYPE = "BUILD_GENERAL1_SMALL"

# Feature branches create stacks whose names are only known at build time,
# so the projects get account-wide access to these namespaces.
FEATURE_BRANCH_PERMISSIONS = (
    "sts:AssumeRole",
    "cloudformation:*",
    "iam:*",
    "s3:*",
    "ecr:*",
    "ec2:*",
    "ssm:*",
    "codebuild:*",
    "codecommit:*",
    "codestar-connections:*",
)


def feature_branch_buildspec(cdk_command: Optional[str] = None) -> Dict[str, Any]:
    return {
        "version": "0.2",
        "phases": {
            "install": {"commands": list(INSTALL_COMMANDS)},
            "build": {
                "commands": [
                    "git branch -a",
                    'export BRANCH="$(git rev-parse --abbrev-ref HEAD)"',
                    cdk_command or DEFAULT_DEPLOY_COMMAND,
                ]
            },
        },
    }


_NON_ALPHANUMERIC = re.compile(r"[^A-Za-z0-9]")


def project_logical_id(prefix: str, used_ids: Set[str]) -> str:
    """Alphanumeric logical id for the project of ``prefix``, unique within ``used_ids``.

    Repeated prefixes get a numeric suffix; ``used_ids`` is updated in place.
    """

    stripped = _NON_ALPHANUMERIC.sub("", prefix)
    base = "FeaturePipeline" + (stripped[:1].upper() + stripped[1:] if stripped else "AllBranches")
    logical_id = base
    counter = 1
    while logical_id in used_ids:
        counter += 1
        logical_id = f"{base}{counter}"
    used_ids.add(logical_id)
    return logical_id


def _project_source(source: SourceHandle) -> Dict[str, Any]:
    if source.provider == "codecommit":
        return {"Type": "CODECOMMIT", "Location": source.repository_name}
    return {
        "Type": "CODESTAR_CONNECTION",
        "Location": source.owner_and_name,
        "ConnectionArn": source.connection_arn,
    }


def fan_out(
    prefixes: Iterable[str],
    source: SourceHandle,
    default_branch_name: str,
    *,
    cdk_src_dir: str,
    cdk_command: Optional[str] = None,
    docker_enabled_for_synth: bool = False,
) -> List[FeatureTrigger]:
    """Provision one feature-branch build project per prefix, in the given order."""

    triggers: List[FeatureTrigger] = []
    used_ids: Set[str] = set()
    for prefix in prefixes:
        project = ResourceSpec(
            logical_id=project_logical_id(prefix, used_ids),
            type="AWS::CodeBuild::Project",
            properties={
                "Source": _project_source(source),
                "SourceVersion": default_branch_name,
                "Environment": {
                    "Image": BUILD_IMAGE,
                    "ComputeType": COMPUTE_TYPE,
                    "PrivilegedMode": docker_enabled_for_synth,
                },
                "BuildSpec": feature_branch_buildspec(cdk_command),
                "WorkingDirectory": cdk_src_dir,
                "Policy": {
                    "Effect": "Allow",
                    "Action": list(FEATURE_BRANCH_PERMISSIONS),
                    "Resource": ["*"],
                },
            },
        )
        triggers.append(FeatureTrigger(prefix=prefix, permissions=FEATURE_BRANCH_PERMISSIONS, project=project))

    logger.info("Provisioned %d feature branch project(s)", len(triggers))
    return triggers

from __future__ import annotations

import logging
from typing import Optional

from .config import MISSING_OWNER_AND_NAME_MESSAGE, MISSING_REPOSITORY_MESSAGE, ConfigurationError
from .models import (
    BranchDescriptor,
    ConnectionRef,
    HostedRepoRef,
    RemovalPolicy,
    RepositoryReference,
    ResourceSpec,
    SourceHandle,
)

logger = logging.getLogger(__name__)

CODE_REPOSITORY_ID = "CodeRepository"


def _repository_resource(repository_name: str, removal_policy: RemovalPolicy) -> ResourceSpec:
    return ResourceSpec(
        logical_id=CODE_REPOSITORY_ID,
        type="AWS::CodeCommit::Repository",
        properties={"RepositoryName": repository_name},
        removal_policy=removal_policy,
    )


def bind_source(
    ref: Optional[RepositoryReference],
    branch: BranchDescriptor,
    removal_policy: RemovalPolicy = RemovalPolicy.RETAIN,
) -> SourceHandle:
    """Turn a repository reference into the pipeline's source for ``branch``.

    A hosted repository is created on the default branch and looked up by name
    everywhere else, so feature-branch pipelines never own it.
    """

    if isinstance(ref, HostedRepoRef):
        if branch.is_default:
            logger.info("Provisioning repository %s", ref.repository_name)
            return SourceHandle(
                provider="codecommit",
                branch=branch.raw_name,
                repository_name=ref.repository_name,
                repository=_repository_resource(ref.repository_name, removal_policy),
                created=True,
            )
        logger.info("Looking up existing repository %s", ref.repository_name)
        return SourceHandle(
            provider="codecommit",
            branch=branch.raw_name,
            repository_name=ref.repository_name,
        )

    if isinstance(ref, ConnectionRef):
        if not ref.owner_and_name:
            raise ConfigurationError(MISSING_OWNER_AND_NAME_MESSAGE)
        return SourceHandle(
            provider="codestar",
            branch=branch.raw_name,
            owner_and_name=ref.owner_and_name,
            connection_arn=ref.connection_arn,
        )

    raise ConfigurationError(MISSING_REPOSITORY_MESSAGE)

"""Known false positives reported against the pipeline by the compliance rule packs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple


@dataclass(frozen=True)
class Suppression:
    rule_ids: Tuple[str, ...]
    reason: str

    def entries(self) -> List[Dict[str, str]]:
        return [{"id": rule_id, "reason": self.reason} for rule_id in self.rule_ids]


PIPELINE_SUPPRESSIONS: Tuple[Suppression, ...] = (
    Suppression(
        ("AwsSolutions-IAM5", "AwsPrototyping-IAMNoWildcardPermissions"),
        "Wildcards are needed for dynamically created resources.",
    ),
    Suppression(
        ("AwsSolutions-CB4", "AwsPrototyping-CodeBuildProjectKMSEncryptedArtifacts"),
        "Encryption of Codebuild is not required.",
    ),
    Suppression(
        ("AwsSolutions-S1", "AwsPrototyping-S3BucketLoggingEnabled"),
        "Access Log buckets should not have s3 bucket logging",
    ),
)


def suppression_metadata(suppressions: Tuple[Suppression, ...] = PIPELINE_SUPPRESSIONS) -> Dict[str, Any]:
    """Metadata block listing every suppressed rule with its justification."""

    rules: List[Dict[str, str]] = []
    for suppression in suppressions:
        rules.extend(suppression.entries())
    return {"cdk_nag": {"rules_to_suppress": rules}}

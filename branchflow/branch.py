from __future__ import annotations

import logging
import re
from typing import List, Optional

from .models import BranchDescriptor

logger = logging.getLogger(__name__)

DEFAULT_BRANCH_NAME = "mainline"

# A single empty prefix matches every branch name.
ALL_BRANCHES: List[str] = [""]

_UNSAFE_CHARACTERS = re.compile(r"[^a-zA-Z0-9-]")


def normalize_branch_name(branch_name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9-]`` with ``-``."""

    return _UNSAFE_CHARACTERS.sub("-", branch_name)


def resolve_branch(env_branch: Optional[str], configured_default: Optional[str] = None) -> BranchDescriptor:
    """Classify the active branch as default or feature.

    ``env_branch`` is the value of the ``BRANCH`` environment variable, read once
    by the caller. An absent or empty value means the default branch.
    """

    default_name = configured_default or DEFAULT_BRANCH_NAME
    if not env_branch:
        descriptor = BranchDescriptor(raw_name=default_name, normalized_name=default_name, is_default=True)
    else:
        descriptor = BranchDescriptor(
            raw_name=env_branch,
            normalized_name=normalize_branch_name(env_branch),
            is_default=env_branch == default_name,
        )
    logger.debug("Resolved branch %s (default=%s)", descriptor.raw_name, descriptor.is_default)
    return descriptor


def branch_prefix(branch: BranchDescriptor) -> str:
    """Resource-name prefix that keeps feature-branch deployments apart."""

    if branch.is_default:
        return ""
    return branch.normalized_name + "-"

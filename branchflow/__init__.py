"""Branch-aware deployment pipelines described as data."""

from .branch import ALL_BRANCHES, DEFAULT_BRANCH_NAME, normalize_branch_name, resolve_branch
from .config import ConfigurationError, PipelineConfig, load_config
from .pipeline import BranchPipeline, stage_branch_tags

__all__ = [
    "ALL_BRANCHES",
    "DEFAULT_BRANCH_NAME",
    "BranchPipeline",
    "ConfigurationError",
    "PipelineConfig",
    "load_config",
    "normalize_branch_name",
    "resolve_branch",
    "stage_branch_tags",
]

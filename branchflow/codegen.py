from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence

from .utils import run_command

logger = logging.getLogger(__name__)

GENERATOR_COMMAND = ["type-safe-api", "generate-next"]
PLANTUML_TEMPLATE_DIR = "docs/templates/plantuml"
PLANTUML_OUTPUT = "schemas.plantuml"


def build_codegen_args(spec_path: str, template_dirs: Sequence[str]) -> List[str]:
    args = ["--spec-path", spec_path]
    for template_dir in template_dirs:
        args.extend(["--template-dirs", template_dir])
    return args


@dataclass
class PlantumlDocsTask:
    """Generates PlantUML diagrams for the schemas of an OpenAPI model."""

    spec_path: str
    commit_generated_code: bool = False
    generator: List[str] = field(default_factory=lambda: list(GENERATOR_COMMAND))

    @property
    def command(self) -> List[str]:
        return [*self.generator, *build_codegen_args(self.spec_path, [PLANTUML_TEMPLATE_DIR])]

    @property
    def gitignore_patterns(self) -> List[str]:
        patterns = [] if self.commit_generated_code else [PLANTUML_OUTPUT]
        patterns.extend([".openapi-generator", ".tsapi-manifest"])
        return patterns

    def write_gitignore(self, project_dir: str | Path) -> List[str]:
        """Append missing ignore patterns to the project's .gitignore and return them."""

        gitignore = Path(project_dir) / ".gitignore"
        existing = gitignore.read_text().splitlines() if gitignore.exists() else []
        missing = [pattern for pattern in self.gitignore_patterns if pattern not in existing]
        if missing:
            gitignore.write_text("\n".join([*existing, *missing]) + "\n")
        return missing

    def run(self, project_dir: str | Path) -> None:
        logger.info("Generating PlantUML documentation for %s", self.spec_path)
        run_command(self.command, cwd=project_dir)

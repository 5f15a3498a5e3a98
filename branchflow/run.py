from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Optional

from .branch import resolve_branch
from .codegen import PlantumlDocsTask
from .config import ConfigurationError, load_config
from .openapi import write_sample_openapi
from .pipeline import BranchPipeline
from .utils import dump_json, dump_yaml


def cmd_branch(args: argparse.Namespace, env_branch: Optional[str]) -> None:
    branch = resolve_branch(env_branch, args.default_branch)
    print(json.dumps(branch.to_dict(), indent=2))


def cmd_synth(args: argparse.Namespace, env_branch: Optional[str]) -> None:
    config = load_config(args.config)
    branch = resolve_branch(env_branch, config.default_branch_name)
    pipeline = BranchPipeline(config, branch, pipeline_id=args.pipeline_id)
    for stage in config.stages:
        pipeline.add_stage(stage)
    pipeline.build()

    template = pipeline.to_template()
    if args.format == "yaml":
        dump_yaml(args.out, template)
    else:
        dump_json(args.out, template)
    print(f"{pipeline.stack_name}\t{args.out}")


def cmd_openapi_sample(args: argparse.Namespace, env_branch: Optional[str]) -> None:
    written = write_sample_openapi(args.path, args.title, args.handler_language or [])
    print(f"{'wrote' if written else 'kept'}\t{args.path}")


def cmd_docs_codegen(args: argparse.Namespace, env_branch: Optional[str]) -> None:
    task = PlantumlDocsTask(spec_path=args.spec_path, commit_generated_code=args.commit_generated_code)
    if args.dry_run:
        print(" ".join(task.command))
        return
    task.write_gitignore(args.project_dir)
    task.run(args.project_dir)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Branch-aware deployment pipeline tooling")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    branch_parser = subparsers.add_parser("branch", help="Show how the BRANCH variable is classified")
    branch_parser.add_argument("--default-branch", default=None)
    branch_parser.set_defaults(func=cmd_branch)

    synth_parser = subparsers.add_parser("synth", help="Render the pipeline template for the current branch")
    synth_parser.add_argument("--config", required=True, help="Pipeline configuration (JSON or YAML).")
    synth_parser.add_argument("--out", default="pipeline.template.json")
    synth_parser.add_argument("--format", choices=["json", "yaml"], default="json")
    synth_parser.add_argument("--pipeline-id", default="Pipeline")
    synth_parser.set_defaults(func=cmd_synth)

    openapi_parser = subparsers.add_parser("openapi-sample", help="Write a sample OpenAPI spec if absent")
    openapi_parser.add_argument("--path", required=True)
    openapi_parser.add_argument("--title", required=True)
    openapi_parser.add_argument("--handler-language", action="append")
    openapi_parser.set_defaults(func=cmd_openapi_sample)

    docs_parser = subparsers.add_parser("docs-codegen", help="Generate PlantUML docs for an OpenAPI spec")
    docs_parser.add_argument("--spec-path", required=True)
    docs_parser.add_argument("--project-dir", default=".")
    docs_parser.add_argument("--commit-generated-code", action="store_true")
    docs_parser.add_argument("--dry-run", action="store_true")
    docs_parser.set_defaults(func=cmd_docs_codegen)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    env_branch = os.environ.get("BRANCH")
    try:
        args.func(args, env_branch)
    except ConfigurationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())

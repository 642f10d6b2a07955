from dataclasses import asdict
from pathlib import Path
import json
import logging
import sys

from pydantic import BaseModel
from pydantic_settings import get_subcommand

from fuzzcatch.capture.cache import LocalCacheStore, restore_fuzz_cache, save_fuzz_cache
from fuzzcatch.capture.git import GitRepo
from fuzzcatch.capture.go_tool import GoTool
from fuzzcatch.capture.orchestrator import FuzzOrchestrator
from fuzzcatch.common.command import ToolingError
from fuzzcatch.common.logger import setup_package_logger
from fuzzcatch.common.types import RunContext
from fuzzcatch.config import ListCommand, RestoreCacheCommand, RunCommand, SaveCacheCommand, Settings
from fuzzcatch.reporting.advisory import AdvisoryPublisher
from fuzzcatch.reporting.dispatcher import Publisher, ReportChannel, ReportDispatcher
from fuzzcatch.reporting.graphql import GraphQLClient, RemoteMutationError
from fuzzcatch.reporting.models import PublishResult
from fuzzcatch.reporting.pull_request import PullRequestPublisher
from fuzzcatch.reporting.webhook import WebhookPublisher

logger = logging.getLogger(__name__)


def build_publisher(command: RunCommand, ctx: RunContext) -> Publisher:
    match command.report_method:
        case ReportChannel.PULL_REQUEST:
            ctx.require_repository_access("report with a pull request")
            return PullRequestPublisher(
                client=GraphQLClient(ctx.graphql_url, ctx.token),
                ctx=ctx,
                base_branch=command.base_branch,
                head_branch_prefix=command.head_branch_prefix,
            )
        case ReportChannel.WEBHOOK:
            if not command.webhook_url:
                raise ValueError("a webhook url is required to report with a webhook")
            return WebhookPublisher(command.webhook_url, ctx)
        case ReportChannel.SECURITY_ADVISORY:
            ctx.require_repository_access("report a security vulnerability")
            return AdvisoryPublisher(ctx)


def write_outputs(path: Path, result: PublishResult) -> None:
    with path.open("a") as f:
        for key, value in result.outputs().items():
            f.write(f"{key}={value}\n")


def handle_run(command: RunCommand, ctx: RunContext, go_path: str = "go", git_path: str = "git") -> PublishResult:
    go = GoTool(command.working_directory, go_path)
    git = GitRepo(command.working_directory, git_path)
    dispatcher = ReportDispatcher(command.report_method, {command.report_method: build_publisher(command, ctx)})
    request = command.request()

    store = LocalCacheStore(command.cache_dir) if command.cache_dir else None
    if store:
        restore_fuzz_cache(go, store, request, ctx)

    try:
        result = FuzzOrchestrator(go, git, dispatcher).run(request).result()
    finally:
        if store:
            save_fuzz_cache(go, git, store, request, ctx)

    if command.output_file:
        write_outputs(command.output_file, result)
    return result


def handle_restore_cache(command: RestoreCacheCommand, ctx: RunContext, go_path: str = "go") -> str | None:
    go = GoTool(command.working_directory, go_path)
    return restore_fuzz_cache(go, LocalCacheStore(command.cache_dir), command.request(), ctx)


def handle_save_cache(
    command: SaveCacheCommand, ctx: RunContext, go_path: str = "go", git_path: str = "git"
) -> str | None:
    go = GoTool(command.working_directory, go_path)
    git = GitRepo(command.working_directory, git_path)
    return save_fuzz_cache(go, git, LocalCacheStore(command.cache_dir), command.request(), ctx)


def handle_list(command: ListCommand, go_path: str = "go") -> list[dict[str, str]]:
    go = GoTool(command.working_directory, go_path)
    return [asdict(test) for test in go.list_fuzz_tests(command.packages, command.tags)]


def handle_subcommand(settings: Settings, subcommand: BaseModel) -> None:
    ctx = settings.run_context()
    if isinstance(subcommand, RunCommand):
        result = handle_run(subcommand, ctx, settings.go_path, settings.git_path)
        print(result.model_dump_json())
    elif isinstance(subcommand, RestoreCacheCommand):
        handle_restore_cache(subcommand, ctx, settings.go_path)
    elif isinstance(subcommand, SaveCacheCommand):
        handle_save_cache(subcommand, ctx, settings.go_path, settings.git_path)
    elif isinstance(subcommand, ListCommand):
        print(json.dumps({"fuzz-tests": handle_list(subcommand, settings.go_path)}))
    else:
        raise ValueError(f"Unknown subcommand: {subcommand}")


def main() -> None:
    settings = Settings()
    setup_package_logger("fuzzcatch", __name__, settings.log_level, settings.log_max_line_length, settings.run_id)

    try:
        handle_subcommand(settings, get_subcommand(settings))
    except (ToolingError, RemoteMutationError, ValueError) as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()

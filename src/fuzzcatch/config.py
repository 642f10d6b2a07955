from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, CliSubCommand, SettingsConfigDict

from fuzzcatch.common.types import FuzzRunRequest, RunContext
from fuzzcatch.reporting.dispatcher import ReportChannel


class RunCommand(BaseModel):
    fuzz_regexp: Annotated[str, Field(description="Regexp selecting the fuzz test to run")]
    packages: Annotated[str, Field(default=".", description="Package to fuzz")]
    working_directory: Annotated[Path, Field(default=Path("."), description="Directory to run go and git in")]
    fuzz_time: Annotated[str, Field(default="30s", description="Total fuzzing time (go duration)")]
    fuzz_minimize_time: Annotated[str, Field(default="60s", description="Minimization time (go duration)")]
    report_method: Annotated[ReportChannel, Field(default=ReportChannel.PULL_REQUEST, description="Report channel")]
    base_branch: Annotated[str, Field(default="main", description="Base branch of the pull request")]
    head_branch_prefix: Annotated[str, Field(default="fuzzcatch", description="Prefix of the pull request branch")]
    webhook_url: Annotated[str | None, Field(default=None, description="Webhook URL for the webhook channel")]
    cache_dir: Annotated[
        Path | None, Field(default=None, description="Restore and save the fuzz cache in this directory")
    ]
    output_file: Annotated[Path | None, Field(default=None, description="Append key=value results to this file")]

    def request(self) -> FuzzRunRequest:
        return FuzzRunRequest(
            package=self.packages,
            fuzz_regexp=self.fuzz_regexp,
            fuzz_time=self.fuzz_time,
            fuzz_minimize_time=self.fuzz_minimize_time,
            working_directory=str(self.working_directory),
        )


class CacheCommand(BaseModel):
    fuzz_regexp: Annotated[str, Field(description="Regexp selecting the fuzz test")]
    cache_dir: Annotated[Path, Field(description="Cache store directory")]
    packages: Annotated[str, Field(default=".", description="Fuzzed package")]
    working_directory: Annotated[Path, Field(default=Path("."), description="Directory to run go and git in")]

    def request(self) -> FuzzRunRequest:
        return FuzzRunRequest(
            package=self.packages,
            fuzz_regexp=self.fuzz_regexp,
            fuzz_time="",
            fuzz_minimize_time="",
            working_directory=str(self.working_directory),
        )


class RestoreCacheCommand(CacheCommand):
    pass


class SaveCacheCommand(CacheCommand):
    pass


class ListCommand(BaseModel):
    packages: Annotated[list[str], Field(default=["./..."], description="Packages to search for fuzz tests")]
    working_directory: Annotated[Path, Field(default=Path("."), description="Directory to run go in")]
    tags: Annotated[str | None, Field(default=None, description="Build tags")]


class Settings(BaseSettings):
    log_level: Annotated[str, Field(default="info", description="Log level")]
    log_max_line_length: Annotated[int | None, Field(default=None, description="Log max line length")]

    repository: Annotated[str, Field(default="", description="Repository as owner/name")]
    token: Annotated[SecretStr, Field(default=SecretStr(""), description="GitHub token")]
    graphql_url: Annotated[str, Field(default="https://api.github.com/graphql", description="GraphQL endpoint")]
    api_url: Annotated[str, Field(default="https://api.github.com", description="REST API URL")]
    server_url: Annotated[str, Field(default="https://github.com", description="Server URL for log links")]
    run_id: Annotated[str | None, Field(default=None, description="CI run id")]
    run_attempt: Annotated[str | None, Field(default=None, description="CI run attempt")]
    runner_os: Annotated[str, Field(default="Unknown", description="OS tag used in cache keys")]

    go_path: Annotated[str, Field(default="go", description="go executable")]
    git_path: Annotated[str, Field(default="git", description="git executable")]

    run: CliSubCommand[RunCommand]
    restore_cache: CliSubCommand[RestoreCacheCommand]
    save_cache: CliSubCommand[SaveCacheCommand]
    list_tests: CliSubCommand[ListCommand]

    model_config = SettingsConfigDict(
        env_prefix="FUZZCATCH_",
        env_file=".env",
        cli_parse_args=True,
        nested_model_default_partial_update=True,
        env_nested_delimiter="__",
        extra="allow",
    )

    def run_context(self) -> RunContext:
        return RunContext(
            repository=self.repository,
            token=self.token.get_secret_value(),
            graphql_url=self.graphql_url,
            api_url=self.api_url,
            server_url=self.server_url,
            run_id=self.run_id,
            run_attempt=self.run_attempt,
            runner_os=self.runner_os,
        )

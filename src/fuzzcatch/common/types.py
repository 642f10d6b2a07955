from dataclasses import dataclass, field


def split_repository(repository: str) -> tuple[str, str]:
    owner, sep, name = repository.partition("/")
    if not sep or not owner or not name or "/" in name:
        raise ValueError(f"repository must be in the form owner/name, got {repository!r}")
    return owner, name


@dataclass(frozen=True)
class RunContext:
    """CI context threaded through the pipeline instead of read from the environment."""

    repository: str = ""
    token: str = field(default="", repr=False)
    graphql_url: str = "https://api.github.com/graphql"
    api_url: str = "https://api.github.com"
    server_url: str = "https://github.com"
    run_id: str | None = None
    run_attempt: str | None = None
    runner_os: str = "Unknown"

    @property
    def owner_and_name(self) -> tuple[str, str]:
        return split_repository(self.repository)

    def require_repository_access(self, action: str) -> None:
        if not self.token:
            raise ValueError(f"a token is required to {action}")
        split_repository(self.repository)

    def log_url(self) -> str | None:
        if self.run_id is None or self.run_attempt is None:
            return None
        return f"{self.server_url}/{self.repository}/actions/runs/{self.run_id}/attempts/{self.run_attempt}"


@dataclass(frozen=True)
class FuzzRunRequest:
    package: str
    fuzz_regexp: str
    fuzz_time: str
    fuzz_minimize_time: str
    working_directory: str = "."

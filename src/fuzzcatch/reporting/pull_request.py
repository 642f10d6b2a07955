"""Report a fuzz failure as a pull request adding the failing corpus file.

GitHub has no atomic "branch + commit + pull request" call, so publishing
walks through separate mutations. The branch name is derived from the
failing case, which makes branch creation the idempotency point: if the
branch already exists the failure was reported by an earlier run and
publishing stops there without error.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Type, TypeVar
import base64
import logging
import uuid

from pydantic import BaseModel, ValidationError

from fuzzcatch.capture.report import Report
from fuzzcatch.common.types import RunContext
from fuzzcatch.reporting.graphql import (
    GraphQLClient,
    GraphQLResponse,
    MutationOutcome,
    RemoteErrorKind,
    RemoteMutationError,
)
from fuzzcatch.reporting.models import (
    CommitMessage,
    CommittableBranch,
    CreateCommitOnBranchData,
    CreateCommitOnBranchInput,
    CreatePullRequestData,
    CreatePullRequestInput,
    CreateRefInput,
    FileAddition,
    FileChanges,
    PublishResult,
    PullRequestNode,
    RepositoryData,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

# https://docs.github.com/en/graphql/reference/queries#repository
REPOSITORY_QUERY = """query ($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    id
  }
}"""

# https://docs.github.com/en/graphql/reference/mutations#createref
CREATE_REF_MUTATION = """mutation ($input: CreateRefInput!) {
  createRef(input: $input) {
    clientMutationId
  }
}"""

# https://docs.github.com/en/graphql/reference/mutations#createcommitonbranch
CREATE_COMMIT_MUTATION = """mutation ($input: CreateCommitOnBranchInput!) {
  createCommitOnBranch(input: $input) {
    commit {
      oid
      url
    }
  }
}"""

# https://docs.github.com/en/graphql/reference/mutations#createpullrequest
CREATE_PULL_REQUEST_MUTATION = """mutation ($input: CreatePullRequestInput!) {
  createPullRequest(input: $input) {
    pullRequest {
      number
      url
    }
  }
}"""

WRITE_ACCESS_HINT = (
    "Check that the token is allowed to write to the repository "
    "(contents: write and pull-requests: write permissions)."
)


class PublishState(str, Enum):
    RESOLVE_REPOSITORY = "resolve-repository"
    CREATE_BRANCH = "create-branch"
    CREATE_COMMIT = "create-commit"
    CREATE_PULL_REQUEST = "create-pull-request"
    DONE = "done"
    SUPPRESSED = "suppressed"


def new_client_mutation_id() -> str:
    return str(uuid.uuid4())


def _error_kind(outcome: MutationOutcome) -> RemoteErrorKind:
    match outcome:
        case MutationOutcome.PERMISSION:
            return RemoteErrorKind.PERMISSION
        case MutationOutcome.CONFLICT:
            return RemoteErrorKind.CONFLICT
        case _:
            return RemoteErrorKind.OTHER


@dataclass
class PullRequestPublisher:
    client: GraphQLClient
    ctx: RunContext
    base_branch: str
    head_branch_prefix: str = "fuzzcatch"

    def publish(self, report: Report) -> PublishResult:
        branch = report.branch_name(self.head_branch_prefix)
        repository_id: Optional[str] = None
        pull_request: Optional[PullRequestNode] = None

        state = PublishState.RESOLVE_REPOSITORY
        while True:
            logger.debug("Pull request publisher state: %s", state.value)
            match state:
                case PublishState.RESOLVE_REPOSITORY:
                    repository_id = self.resolve_repository_id()
                    state = PublishState.CREATE_BRANCH
                case PublishState.CREATE_BRANCH:
                    assert repository_id is not None
                    state = self.create_branch(repository_id, branch, report.base_commit)
                case PublishState.CREATE_COMMIT:
                    self.create_commit(branch, report)
                    state = PublishState.CREATE_PULL_REQUEST
                case PublishState.CREATE_PULL_REQUEST:
                    assert repository_id is not None
                    pull_request = self.create_pull_request(repository_id, branch, report)
                    state = PublishState.DONE
                case PublishState.DONE:
                    assert pull_request is not None
                    logger.info("Created pull request #%d: %s", pull_request.number, pull_request.url)
                    return PublishResult(
                        found=True,
                        head_branch=branch,
                        pull_request_number=pull_request.number,
                        pull_request_url=pull_request.url,
                    )
                case PublishState.SUPPRESSED:
                    return PublishResult(found=False)

    def _mutate(self, mutation: str, mutation_input: BaseModel, operation: str) -> GraphQLResponse:
        variables: dict[str, Any] = {"input": mutation_input.model_dump(by_alias=True)}
        return self.client.execute(mutation, variables, operation=operation)

    def _payload(self, response: GraphQLResponse, model: Type[T], message: str) -> T:
        outcome = response.outcome()
        if outcome != MutationOutcome.SUCCESS:
            raise RemoteMutationError(message, _error_kind(outcome), response.errors)
        try:
            return model.model_validate(response.data)
        except ValidationError as e:
            logger.error("Unexpected response payload: %s", e)
            raise RemoteMutationError(message) from e

    def resolve_repository_id(self) -> str:
        owner, name = self.ctx.owner_and_name
        response = self.client.execute(
            REPOSITORY_QUERY, {"owner": owner, "name": name}, operation="get repository id"
        )
        data = self._payload(response, RepositoryData, "failed to get repository id")
        logger.debug("repositoryId: %s", data.repository.id)
        return data.repository.id

    def create_branch(self, repository_id: str, branch: str, oid: str) -> PublishState:
        response = self._mutate(
            CREATE_REF_MUTATION,
            CreateRefInput(
                client_mutation_id=new_client_mutation_id(),
                repository_id=repository_id,
                name=f"refs/heads/{branch}",
                oid=oid,
            ),
            "create a branch",
        )
        match response.outcome():
            case MutationOutcome.SUCCESS:
                logger.info("Created branch %s at %s", branch, oid)
                return PublishState.CREATE_COMMIT
            case MutationOutcome.CONFLICT:
                logger.info("Branch %s already exists, this failure has already been reported", branch)
                return PublishState.SUPPRESSED
            case MutationOutcome.PERMISSION:
                logger.error(WRITE_ACCESS_HINT)
                raise RemoteMutationError("failed to create a branch", RemoteErrorKind.PERMISSION, response.errors)
            case MutationOutcome.OTHER:
                logger.error(WRITE_ACCESS_HINT)
                raise RemoteMutationError("failed to create a branch", RemoteErrorKind.OTHER, response.errors)

    def create_commit(self, branch: str, report: Report) -> str:
        response = self._mutate(
            CREATE_COMMIT_MUTATION,
            CreateCommitOnBranchInput(
                client_mutation_id=new_client_mutation_id(),
                branch=CommittableBranch(repository_name_with_owner=self.ctx.repository, branch_name=branch),
                file_changes=FileChanges(
                    additions=[
                        FileAddition(
                            path=report.artifact.path,
                            contents=base64.b64encode(report.artifact.contents).decode("ascii"),
                        )
                    ],
                    deletions=[],
                ),
                expected_head_oid=report.base_commit,
                message=CommitMessage(headline=report.commit_headline, body=report.commit_body),
            ),
            "create a commit",
        )
        data = self._payload(response, CreateCommitOnBranchData, "failed to create a commit")
        commit = data.create_commit_on_branch.commit
        logger.info("Created commit %s: %s", commit.oid, commit.url)
        return commit.oid

    def create_pull_request(self, repository_id: str, branch: str, report: Report) -> PullRequestNode:
        response = self._mutate(
            CREATE_PULL_REQUEST_MUTATION,
            CreatePullRequestInput(
                client_mutation_id=new_client_mutation_id(),
                repository_id=repository_id,
                head_repository_id=repository_id,
                base_ref_name=self.base_branch,
                head_ref_name=branch,
                title=report.title,
                body=report.pull_request_body(self.ctx.log_url()),
                maintainer_can_modify=True,
                draft=False,
            ),
            "create a pull request",
        )
        data = self._payload(response, CreatePullRequestData, "failed to create a pull request")
        return data.create_pull_request.pull_request

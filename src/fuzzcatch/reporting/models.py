from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PublishResult(BaseModel):
    """found=False means nothing new to report, never an error."""

    found: bool
    head_branch: Optional[str] = None
    pull_request_number: Optional[int] = None
    pull_request_url: Optional[str] = None

    def outputs(self) -> dict[str, str]:
        values = {
            "found": "true" if self.found else "false",
            "head-branch": self.head_branch,
            "pull-request-number": None if self.pull_request_number is None else str(self.pull_request_number),
            "pull-request-url": self.pull_request_url,
        }
        return {key: value for key, value in values.items() if value is not None}


class _GraphQLModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# https://docs.github.com/en/graphql/reference/input-objects#createrefinput
class CreateRefInput(_GraphQLModel):
    client_mutation_id: str
    repository_id: str
    # Fully qualified, e.g. refs/heads/my_branch
    name: str
    oid: str


class CommittableBranch(_GraphQLModel):
    repository_name_with_owner: str
    branch_name: str


class FileAddition(_GraphQLModel):
    path: str
    # base64
    contents: str


class FileDeletion(_GraphQLModel):
    path: str


class FileChanges(_GraphQLModel):
    additions: list[FileAddition]
    deletions: list[FileDeletion] = []


class CommitMessage(_GraphQLModel):
    headline: str
    body: str


# https://docs.github.com/en/graphql/reference/input-objects#createcommitonbranchinput
class CreateCommitOnBranchInput(_GraphQLModel):
    client_mutation_id: str
    branch: CommittableBranch
    file_changes: FileChanges
    expected_head_oid: str
    message: CommitMessage


# https://docs.github.com/en/graphql/reference/input-objects#createpullrequestinput
class CreatePullRequestInput(_GraphQLModel):
    client_mutation_id: str
    repository_id: str
    head_repository_id: str
    base_ref_name: str
    head_ref_name: str
    title: str
    body: str
    maintainer_can_modify: bool = True
    draft: bool = False


class RepositoryNode(_GraphQLModel):
    id: str


class RepositoryData(_GraphQLModel):
    repository: RepositoryNode


class CommitNode(_GraphQLModel):
    oid: str
    url: str


class CreateCommitOnBranchPayload(_GraphQLModel):
    commit: CommitNode


class CreateCommitOnBranchData(_GraphQLModel):
    create_commit_on_branch: CreateCommitOnBranchPayload


class PullRequestNode(_GraphQLModel):
    number: int
    url: str


class CreatePullRequestPayload(_GraphQLModel):
    pull_request: PullRequestNode


class CreatePullRequestData(_GraphQLModel):
    create_pull_request: CreatePullRequestPayload

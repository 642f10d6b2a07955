"""HTTP client for the GitHub GraphQL API."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional
import json
import logging
import re

import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

USER_AGENT = "fuzzcatch"

PERMISSION_ERROR_TYPES = frozenset({"FORBIDDEN", "INSUFFICIENT_SCOPES", "UNAUTHORIZED", "HTTP_401", "HTTP_403"})
UNPROCESSABLE_ERROR_TYPE = "UNPROCESSABLE"
ALREADY_EXISTS_RE = re.compile(r"already exists", re.IGNORECASE)


class RemoteErrorKind(str, Enum):
    PERMISSION = "permission"
    CONFLICT = "conflict"
    OTHER = "other"


class MutationOutcome(str, Enum):
    SUCCESS = "success"
    PERMISSION = "permission"
    CONFLICT = "conflict"
    OTHER = "other"


class GraphQLErrorLocation(BaseModel):
    line: int
    column: int


class GraphQLError(BaseModel):
    type: Optional[str] = None
    message: str = ""
    path: Optional[list[str | int]] = None
    locations: Optional[list[GraphQLErrorLocation]] = None

    @property
    def kind(self) -> RemoteErrorKind:
        return classify_error(self)


def classify_error(error: GraphQLError) -> RemoteErrorKind:
    if error.type in PERMISSION_ERROR_TYPES:
        return RemoteErrorKind.PERMISSION
    if error.type == UNPROCESSABLE_ERROR_TYPE and ALREADY_EXISTS_RE.search(error.message):
        return RemoteErrorKind.CONFLICT
    return RemoteErrorKind.OTHER


class GraphQLResponse(BaseModel):
    data: Optional[dict[str, Any]] = None
    errors: list[GraphQLError] = Field(default_factory=list)

    @field_validator("errors", mode="before")
    @classmethod
    def _null_errors(cls, value: Any) -> Any:
        return value or []

    def outcome(self) -> MutationOutcome:
        kinds = {error.kind for error in self.errors}
        if RemoteErrorKind.PERMISSION in kinds:
            return MutationOutcome.PERMISSION
        if kinds == {RemoteErrorKind.CONFLICT}:
            return MutationOutcome.CONFLICT
        if kinds or not self.data:
            return MutationOutcome.OTHER
        return MutationOutcome.SUCCESS


class RemoteMutationError(Exception):
    """Exception raised when a remote call fails for a reason that is not recovered locally."""

    def __init__(
        self,
        message: str,
        kind: RemoteErrorKind = RemoteErrorKind.OTHER,
        errors: Optional[list[GraphQLError]] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.errors = errors or []


class GraphQLClient:
    """Posts query documents to a single GraphQL endpoint."""

    def __init__(self, url: str, token: str, timeout: float = 30.0):
        self.url = url
        self.timeout = timeout
        self._client = httpx.Client(
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {token}",
                "X-Github-Next-Global-ID": "1",
                "User-Agent": USER_AGENT,
            },
        )

    def execute(self, query: str, variables: dict[str, Any], operation: str = "graphql request") -> GraphQLResponse:
        """Run a query or mutation. Errors are returned in the response, never raised."""
        payload = {"query": query, "variables": variables}
        logger.debug("%s request: %s", operation, json.dumps(payload))
        try:
            response = self._client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            result = GraphQLResponse(errors=[GraphQLError(message=f"{operation} failed: {e}")])
            _log_errors(result.errors)
            return result

        logger.debug("%s response (HTTP %s): %s", operation, response.status_code, response.text)
        result = _parse_response(response)
        _log_errors(result.errors)
        return result

    def close(self) -> None:
        self._client.close()


def _parse_response(response: httpx.Response) -> GraphQLResponse:
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict) and ("data" in body or "errors" in body):
        try:
            return GraphQLResponse.model_validate(body)
        except ValidationError as e:
            return GraphQLResponse(errors=[GraphQLError(message=f"malformed GraphQL response: {e}")])

    message = response.text
    if isinstance(body, dict) and body.get("message"):
        message = str(body["message"])

    if response.is_success:
        return GraphQLResponse(errors=[GraphQLError(message=f"unexpected response: {message}")])
    return GraphQLResponse(errors=[GraphQLError(type=f"HTTP_{response.status_code}", message=message)])


def _log_errors(errors: list[GraphQLError]) -> None:
    for error in errors:
        if error.kind == RemoteErrorKind.CONFLICT:
            logger.warning(error.message)
        else:
            logger.error(error.message)

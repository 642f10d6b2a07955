from __future__ import annotations

from typing import Literal, Optional
import logging

import httpx
from pydantic import BaseModel

from fuzzcatch.capture.report import Report
from fuzzcatch.common.types import RunContext
from fuzzcatch.reporting.graphql import USER_AGENT, RemoteErrorKind, RemoteMutationError
from fuzzcatch.reporting.models import PublishResult

logger = logging.getLogger(__name__)


class VulnerabilityPackage(BaseModel):
    ecosystem: str
    name: str


class Vulnerability(BaseModel):
    package: VulnerabilityPackage


# https://docs.github.com/en/rest/security-advisories/repository-advisories#privately-report-a-security-vulnerability
class SecurityVulnerabilityReport(BaseModel):
    summary: str
    description: str
    vulnerabilities: Optional[list[Vulnerability]] = None
    cwe_ids: Optional[list[str]] = None
    severity: Optional[Literal["critical", "high", "medium", "low"]] = None


class AdvisoryPublisher:
    """Privately reports a fuzz failure as a security vulnerability."""

    def __init__(self, ctx: RunContext, timeout: float = 30.0):
        self.ctx = ctx
        self._client = httpx.Client(
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {ctx.token}",
                "Accept": "application/vnd.github+json",
                "User-Agent": USER_AGENT,
            },
        )

    def publish(self, report: Report) -> PublishResult:
        owner, name = self.ctx.owner_and_name
        url = f"{self.ctx.api_url.rstrip('/')}/repos/{owner}/{name}/security-advisories/reports"
        payload = SecurityVulnerabilityReport(
            summary=report.title,
            description=report.advisory_description(self.ctx.log_url()),
        )
        try:
            response = self._client.post(url, json=payload.model_dump())
        except httpx.HTTPError as e:
            logger.error("Error reporting security vulnerability: %s", e)
            raise RemoteMutationError("failed to report a security vulnerability") from e

        logger.debug("report security vulnerability response (HTTP %s): %s", response.status_code, response.text)
        if response.status_code in (401, 403):
            logger.error(response.text)
            logger.error("Check that private vulnerability reporting is enabled and the token can use it.")
            raise RemoteMutationError("failed to report a security vulnerability", RemoteErrorKind.PERMISSION)
        if not response.is_success:
            logger.error(response.text)
            raise RemoteMutationError("failed to report a security vulnerability", RemoteErrorKind.OTHER)

        logger.info("Reported security vulnerability: %s", report.title)
        return PublishResult(found=True)

    def close(self) -> None:
        self._client.close()

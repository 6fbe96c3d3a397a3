"""Client for the commit message generation service.

The service receives a unified diff and answers with an ordered list of
proposed commits, each bound to the files it covers.
"""

import logging
from typing import Any, List, Optional

import requests

from gitdiffy.errors import GenerationError, TransportError
from gitdiffy.models import CommitProposal

__all__ = ["GenerationClient", "parse_generation_response"]

logger = logging.getLogger(__name__)


def parse_generation_response(payload: Any) -> List[CommitProposal]:
    """Turn a decoded response body into commit proposals.

    Both ``{"commits": [...]}`` and the nested ``{"commits": {"commits": [...]}}``
    shapes are accepted. A non-empty ``error`` field always wins.

    Args:
        payload: The decoded JSON body.

    Returns:
        List[CommitProposal]: Proposals in the order the service returned them.

    Raises:
        GenerationError: If the service reported an error or the body is malformed.
    """
    if not isinstance(payload, dict):
        raise GenerationError("API error: unexpected response body")

    error = payload.get("error")
    if error:
        raise GenerationError(f"API error: {error}")

    commits = payload.get("commits")
    if isinstance(commits, dict):
        commits = commits.get("commits")
    if commits is None:
        return []
    if not isinstance(commits, list):
        raise GenerationError("API error: 'commits' must be a list")

    proposals = []
    for index, item in enumerate(commits):
        if not isinstance(item, dict):
            raise GenerationError(f"API error: commit #{index + 1} is not an object")
        files = item.get("files") or []
        if isinstance(files, str):
            files = [files]
        if not isinstance(files, (list, tuple)):
            raise GenerationError(f"API error: commit #{index + 1}: 'files' must be a list")
        try:
            proposals.append(CommitProposal(message=item.get("message") or "",
                                            files=tuple(files)))
        except ValueError as exc:
            raise GenerationError(f"API error: commit #{index + 1}: {exc}") from exc
    return proposals


class GenerationClient:
    """Talks to the message generation endpoint over HTTP."""

    def __init__(self, api_url: str, license_key: str, timeout: float = 30.0,
                 session: Optional[requests.Session] = None) -> None:
        self.api_url = api_url
        self.license_key = license_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def generate(self, diff: str) -> List[CommitProposal]:
        """Ask the service for commit proposals covering ``diff``.

        Raises:
            TransportError: If the service cannot be reached in time.
            GenerationError: If the service answers with an error.
        """
        body = {"licenseKey": self.license_key, "diff": diff}
        logger.debug("POST %s (%d bytes of diff)", self.api_url, len(diff))
        try:
            response = self.session.post(self.api_url, json=body, timeout=self.timeout)
        except requests.Timeout as exc:
            raise TransportError(f"network error: request timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise TransportError(f"network error: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise GenerationError(
                f"API error: invalid response (HTTP {response.status_code})"
            ) from exc

        if isinstance(payload, dict) and payload.get("error"):
            raise GenerationError(f"API error: {payload['error']}")
        if not response.ok:
            raise GenerationError(f"API error: HTTP {response.status_code}")

        proposals = parse_generation_response(payload)
        logger.info("Received %d commit proposal(s)", len(proposals))
        return proposals

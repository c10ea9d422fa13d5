"""Proposal list download.

The published document looks like {"contents": {"proposals": [...]}};
entries without a proposalId (drafts) are skipped.
"""

from __future__ import annotations

from typing import Any

import bittensor as bt
import httpx
from pydantic import ValidationError

from ballotscan.tally.errors import SourceUnavailableError
from ballotscan.tally.models import Proposal


def parse_proposal_document(document: Any) -> list[Proposal]:
    """Proposals from a feed document or a bare list of proposal objects."""
    if isinstance(document, dict):
        try:
            entries = document["contents"]["proposals"]
        except (KeyError, TypeError) as e:
            raise SourceUnavailableError(f"proposal document has no contents.proposals: {e}") from e
    else:
        entries = document

    if not isinstance(entries, list):
        raise SourceUnavailableError("proposal list is not a JSON array")

    proposals: list[Proposal] = []
    skipped = 0
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("proposalId"):
            skipped += 1
            continue
        try:
            proposals.append(Proposal.model_validate(entry))
        except ValidationError as e:
            raise SourceUnavailableError(
                f"malformed proposal {entry.get('proposalId')}: {e}"
            ) from e

    if skipped:
        bt.logging.debug({"proposal_feed": {"skipped_without_id": skipped}})
    return proposals


class HTTPProposalFeed:
    """ProposalFeed that downloads the published proposal document."""

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_proposals(self) -> list[Proposal]:
        try:
            resp = await self._client.get(self.url)
        except httpx.HTTPError as e:
            raise SourceUnavailableError(f"proposal feed {self.url} unreachable: {e}") from e
        if resp.status_code != 200:
            raise SourceUnavailableError(
                f"proposal feed returned HTTP {resp.status_code}: {resp.text[:200]}"
            )
        try:
            document = resp.json()
        except ValueError as e:
            raise SourceUnavailableError(f"proposal feed returned invalid JSON: {e}") from e

        proposals = parse_proposal_document(document)
        bt.logging.info({"proposal_feed": {"url": self.url, "proposals": len(proposals)}})
        return proposals


__all__ = ["HTTPProposalFeed", "parse_proposal_document"]

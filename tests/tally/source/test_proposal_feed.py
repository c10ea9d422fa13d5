"""Tests for proposal document parsing and the HTTP proposal feed."""

from __future__ import annotations

import httpx
import pytest

from ballotscan.tally.errors import SourceUnavailableError
from ballotscan.tally.source.interface import ProposalFeed
from ballotscan.tally.source.proposal_feed import HTTPProposalFeed, parse_proposal_document

FEED_URL = "https://proposals.test/documents/abc"


def _document() -> dict:
    return {
        "contents": {
            "proposals": [
                {
                    "title": "Raise the epoch length",
                    "proposalId": "LEAP-1",
                    "boothAddress": "0x" + "B0" * 20,
                    "yesBoxAddress": "0x" + "A1" * 20,
                    "noBoxAddress": "0x" + "A2" * 20,
                    "description": "ignored",
                },
                {"title": "Draft without id", "yesBoxAddress": "0x01", "noBoxAddress": "0x02"},
                {
                    "title": "Lower fees",
                    "proposalId": "LEAP-2",
                    "yesBoxAddress": "b1" * 20,
                    "noBoxAddress": "b2" * 20,
                },
            ]
        }
    }


class TestParseProposalDocument:

    def test_feed_document(self):
        proposals = parse_proposal_document(_document())

        assert [p.proposal_id for p in proposals] == ["LEAP-1", "LEAP-2"]
        first = proposals[0]
        assert first.title == "Raise the epoch length"
        assert first.booth_address == "0x" + "b0" * 20
        assert first.yes_box_address == "0x" + "a1" * 20
        assert proposals[1].no_box_address == "0x" + "b2" * 20
        assert proposals[1].booth_address is None

    def test_bare_list(self):
        entries = _document()["contents"]["proposals"]
        assert len(parse_proposal_document(entries)) == 2

    def test_missing_contents(self):
        with pytest.raises(SourceUnavailableError, match="contents.proposals"):
            parse_proposal_document({"proposals": []})

    def test_not_a_list(self):
        with pytest.raises(SourceUnavailableError):
            parse_proposal_document({"contents": {"proposals": "nope"}})

    def test_malformed_proposal(self):
        with pytest.raises(SourceUnavailableError, match="LEAP-9"):
            parse_proposal_document([{"proposalId": "LEAP-9", "yesBoxAddress": "0x01"}])


class TestHTTPProposalFeed:

    def _feed(self, handler) -> HTTPProposalFeed:
        return HTTPProposalFeed(
            FEED_URL, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )

    def test_satisfies_protocol(self):
        assert isinstance(self._feed(lambda r: httpx.Response(200, json=[])), ProposalFeed)

    @pytest.mark.asyncio
    async def test_downloads_and_filters(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, json=_document())

        feed = self._feed(handler)
        try:
            proposals = await feed.fetch_proposals()
        finally:
            await feed.close()

        assert seen == [FEED_URL]
        assert [p.proposal_id for p in proposals] == ["LEAP-1", "LEAP-2"]

    @pytest.mark.asyncio
    async def test_http_status_is_fatal(self):
        feed = self._feed(lambda r: httpx.Response(404, text="not found"))
        with pytest.raises(SourceUnavailableError, match="404"):
            await feed.fetch_proposals()

    @pytest.mark.asyncio
    async def test_invalid_json_is_fatal(self):
        feed = self._feed(lambda r: httpx.Response(200, text="<html>"))
        with pytest.raises(SourceUnavailableError, match="invalid JSON"):
            await feed.fetch_proposals()

    @pytest.mark.asyncio
    async def test_unreachable_is_fatal(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out")

        with pytest.raises(SourceUnavailableError, match="unreachable"):
            await self._feed(handler).fetch_proposals()

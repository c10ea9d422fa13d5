"""Leap node client: pulls every transaction of a block range over JSON-RPC.

Blocks are requested in windows of `concurrency` parallel calls; each
window is awaited in full before its transactions are appended, so the
returned list keeps (block_number, intra-block index) order.
"""

from __future__ import annotations

import asyncio
import itertools
from typing import Any

import bittensor as bt
import httpx
from pydantic import ValidationError

from ballotscan.tally.errors import SourceUnavailableError
from ballotscan.tally.models import BlockRange, TransactionRecord


class NodeTransactionSource:
    """TransactionSource backed by a Leap node's eth_getBlockByNumber."""

    def __init__(
        self,
        endpoint: str,
        timeout: float = 30.0,
        concurrency: int = 8,
        client: httpx.AsyncClient | None = None,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.endpoint = endpoint
        self.concurrency = concurrency
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._ids = itertools.count(1)

    async def close(self) -> None:
        await self._client.aclose()

    async def _rpc(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            resp = await self._client.post(self.endpoint, json=payload)
        except httpx.HTTPError as e:
            raise SourceUnavailableError(f"{method} request to {self.endpoint} failed: {e}") from e
        if resp.status_code != 200:
            raise SourceUnavailableError(
                f"{method} returned HTTP {resp.status_code}: {resp.text[:200]}"
            )
        try:
            body = resp.json()
        except ValueError as e:
            raise SourceUnavailableError(f"{method} returned invalid JSON: {e}") from e
        if not isinstance(body, dict):
            raise SourceUnavailableError(f"{method} returned a non-object response")
        if body.get("error"):
            raise SourceUnavailableError(f"{method} error: {body['error']}")
        return body.get("result")

    async def get_block_transactions(self, block_number: int) -> list[TransactionRecord]:
        """Transactions of one block, in block order."""
        block = await self._rpc("eth_getBlockByNumber", [hex(block_number), True])
        if block is None:
            raise SourceUnavailableError(f"block {block_number} not found")
        txs = block.get("transactions") or []
        try:
            return [TransactionRecord.model_validate(tx) for tx in txs]
        except ValidationError as e:
            raise SourceUnavailableError(
                f"block {block_number} has malformed transactions: {e}"
            ) from e

    async def fetch_transactions(self, block_range: BlockRange) -> list[TransactionRecord]:
        records: list[TransactionRecord] = []
        blocks = block_range.blocks()

        for offset in range(0, len(blocks), self.concurrency):
            window = blocks[offset:offset + self.concurrency]
            per_block = await asyncio.gather(
                *(self.get_block_transactions(n) for n in window)
            )
            for block_txs in per_block:
                records.extend(block_txs)
            bt.logging.debug({
                "block_download": {
                    "through": window[-1],
                    "end": block_range.end,
                    "txs": len(records),
                }
            })

        bt.logging.info({
            "block_download": {
                "start": block_range.start,
                "end": block_range.end,
                "blocks": len(blocks),
                "txs": len(records),
            }
        })
        return records


__all__ = ["NodeTransactionSource"]

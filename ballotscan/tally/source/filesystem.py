"""Local JSON sources.

Read previously exported transaction lists (the node's slim record shape:
hash, blockHash, blockNumber, from, to, raw) and proposal documents, so a
scan can be replayed offline. Nothing is written back.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import bittensor as bt
from pydantic import ValidationError

from ballotscan.tally.errors import SourceUnavailableError
from ballotscan.tally.models import BlockRange, Proposal, TransactionRecord

from .proposal_feed import parse_proposal_document


def _read_json(path: Path) -> Any:
    try:
        with open(path) as f:
            return json.load(f)
    except OSError as e:
        raise SourceUnavailableError(f"cannot read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise SourceUnavailableError(f"{path} is not valid JSON: {e}") from e


class FileTransactionSource:
    """TransactionSource over a JSON array of transaction records."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def fetch_transactions(self, block_range: BlockRange) -> list[TransactionRecord]:
        data = _read_json(self.path)
        if not isinstance(data, list):
            raise SourceUnavailableError(f"{self.path} does not hold a JSON array")
        try:
            records = [TransactionRecord.model_validate(tx) for tx in data]
        except ValidationError as e:
            raise SourceUnavailableError(f"{self.path} has malformed transactions: {e}") from e

        # sorted() is stable, so intra-block order survives.
        in_range = sorted(
            (r for r in records if r.block_number in block_range),
            key=lambda r: r.block_number,
        )
        bt.logging.info({
            "transaction_file": {
                "path": str(self.path),
                "records": len(records),
                "in_range": len(in_range),
            }
        })
        return in_range


class FileProposalFeed:
    """ProposalFeed over a local proposal list or feed document."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def fetch_proposals(self) -> list[Proposal]:
        proposals = parse_proposal_document(_read_json(self.path))
        bt.logging.info({"proposal_file": {"path": str(self.path), "proposals": len(proposals)}})
        return proposals


__all__ = ["FileProposalFeed", "FileTransactionSource"]

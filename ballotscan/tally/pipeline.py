"""Scan pipeline: records -> ballot events -> ledger -> distribution -> CSV.

tally_transactions() is the pure, synchronous core. run_scan() wraps it
with the collaborators: fetch proposals and transactions, tally, export.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import bittensor as bt

from .aggregator import VoteAggregator, VoteLedger
from .codec import decode_transaction
from .decoder import BallotDecoder
from .errors import DecodeError
from .exporter import write_distribution_csv
from .models import Diagnostic, DistributionEntry, TransactionRecord
from .registry import ProposalRegistry
from .source.interface import ProposalFeed, TransactionSource
from .summarize import DistributionSummarizer

if TYPE_CHECKING:
    from ballotscan.base.config import ScanConfig


@dataclass
class TallyResult:
    """Everything a scan produced."""

    ledger: VoteLedger
    voters: set[str]
    entries: list[DistributionEntry]
    diagnostics: list[Diagnostic] = field(default_factory=list)

    total_transactions: int = 0
    relevant: int = 0
    applied: int = 0
    undecodable: int = 0

    output_path: Path | None = None

    @property
    def irrelevant(self) -> int:
        return self.total_transactions - self.relevant - self.undecodable


def tally_transactions(
    records: Iterable[TransactionRecord],
    registry: ProposalRegistry,
    decoder: BallotDecoder | None = None,
) -> TallyResult:
    """Aggregate records in the order given and summarize.

    Records must already be in ledger order. Undecodable ballot
    transactions and votes for unknown boxes are skipped with a diagnostic.
    """
    decoder = decoder or BallotDecoder()
    aggregator = VoteAggregator(registry)
    total = relevant = applied = undecodable = 0

    for record in records:
        total += 1
        try:
            event = decoder.decode(decode_transaction(record.raw), tx_hash=record.hash)
        except DecodeError as e:
            undecodable += 1
            aggregator.record_decode_failure(record.hash, str(e))
            continue
        if event is None:
            continue
        relevant += 1
        if aggregator.apply(event):
            applied += 1

    entries = DistributionSummarizer().summarize(aggregator.ledger, aggregator.voters)
    return TallyResult(
        ledger=aggregator.ledger,
        voters=aggregator.voters,
        entries=entries,
        diagnostics=aggregator.diagnostics,
        total_transactions=total,
        relevant=relevant,
        applied=applied,
        undecodable=undecodable,
    )


async def run_scan(
    config: ScanConfig,
    source: TransactionSource,
    feed: ProposalFeed,
) -> TallyResult:
    """Fetch, tally and export one block range.

    Raises:
        SourceUnavailableError: a collaborator failed; nothing is written.
        RegistryError: the proposal list is inconsistent.
    """
    proposals = await feed.fetch_proposals()
    registry = ProposalRegistry(proposals)
    records = await source.fetch_transactions(config.block_range)

    result = tally_transactions(
        records, registry, decoder=BallotDecoder(ballot_color=config.ballot_color),
    )
    result.output_path = write_distribution_csv(result.entries, config.output_path)

    bt.logging.info({
        "scan_summary": {
            "blocks": f"{config.block_range.start}-{config.block_range.end}",
            "total_txs": result.total_transactions,
            "ballot_txs": result.relevant,
            "applied": result.applied,
            "undecodable": result.undecodable,
            "voters": len(result.voters),
            "proposals": len(result.entries),
            "diagnostics": len(result.diagnostics),
            "output": str(result.output_path),
        }
    })
    return result


__all__ = ["TallyResult", "run_scan", "tally_transactions"]

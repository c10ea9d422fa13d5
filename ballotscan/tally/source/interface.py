"""Collaborator protocols: where transactions and proposals come from.

Implementations: NodeTransactionSource / HTTPProposalFeed (network),
FileTransactionSource / FileProposalFeed (local JSON exports).
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ballotscan.tally.models import BlockRange, Proposal, TransactionRecord


@runtime_checkable
class TransactionSource(Protocol):
    """Produces the transactions of a closed block range in ledger order."""

    async def fetch_transactions(self, block_range: BlockRange) -> list[TransactionRecord]:
        """Ordered by (block_number, intra-block index).

        Raises SourceUnavailableError if any part of the range cannot be read.
        """
        ...


@runtime_checkable
class ProposalFeed(Protocol):
    """Produces the proposal list backing a ProposalRegistry."""

    async def fetch_proposals(self) -> list[Proposal]:
        """Raises SourceUnavailableError on I/O or format failure."""
        ...


__all__ = ["ProposalFeed", "TransactionSource"]

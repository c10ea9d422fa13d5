"""Per-proposal histograms of net votes."""

from __future__ import annotations

from collections import Counter
from collections.abc import Set

from .aggregator import VoteLedger
from .models import DistributionEntry


class DistributionSummarizer:
    """Turns the final ledger into vote-value -> voter-count buckets.

    Voters who took part in some proposal but not this one land in the
    zero bucket, so every entry's counts sum to the voter set size.
    """

    def summarize(self, ledger: VoteLedger, voters: Set[str]) -> list[DistributionEntry]:
        return [
            self.summarize_proposal(proposal_id, ledger.votes_for(proposal_id), len(voters))
            for proposal_id in sorted(ledger.proposals())
        ]

    @staticmethod
    def summarize_proposal(
        proposal_id: str, votes: dict[str, int], n_voters: int,
    ) -> DistributionEntry:
        counts = Counter(votes.values())
        participants = sum(counts.values())
        counts[0] += n_voters - participants
        return DistributionEntry(
            proposal_id=proposal_id,
            buckets=tuple(sorted(counts.items())),
        )


__all__ = ["DistributionSummarizer"]

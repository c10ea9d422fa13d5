"""Forward-only net vote accumulation.

Each voter/proposal pair holds one signed running total: Yes-box votes
arrive positive, No-box votes arrive negative. Withdrawals report a
positive amount, so a withdrawal is subtracted unless the voter's current
total is negative, in which case it is added. That rule reads the running
total at the moment a withdrawal is applied, which is why events must be
applied in ledger order.
"""

from __future__ import annotations

from collections.abc import Iterator

import bittensor as bt

from .decoder import BallotEvent
from .models import Diagnostic, DiagnosticKind
from .registry import ProposalRegistry


class VoteLedger:
    """Ordered proposal_id -> voter -> net votes mapping."""

    def __init__(self) -> None:
        self._entries: dict[str, dict[str, int]] = {}

    def get(self, proposal_id: str, voter: str) -> int:
        return self._entries.get(proposal_id, {}).get(voter, 0)

    def set(self, proposal_id: str, voter: str, votes: int) -> None:
        self._entries.setdefault(proposal_id, {})[voter] = votes

    def proposals(self) -> list[str]:
        return list(self._entries)

    def votes_for(self, proposal_id: str) -> dict[str, int]:
        """Copy of the voter -> net votes map for one proposal."""
        return dict(self._entries.get(proposal_id, {}))

    def __contains__(self, proposal_id: object) -> bool:
        return proposal_id in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {pid: dict(votes) for pid, votes in self._entries.items()}


class VoteAggregator:
    """Applies ballot events to a VoteLedger in ledger order.

    There is no undo: every applied event is final.
    """

    def __init__(self, registry: ProposalRegistry):
        self.registry = registry
        self.ledger = VoteLedger()
        self.voters: set[str] = set()
        self.diagnostics: list[Diagnostic] = []

    def apply(self, event: BallotEvent) -> bool:
        """Apply one event. Returns False if its box matched no proposal."""
        self.voters.add(event.voter)

        resolved = self.registry.resolve(event.box_address)
        if resolved is None:
            self.diagnostics.append(Diagnostic(
                kind=DiagnosticKind.UNRESOLVED_PROPOSAL,
                tx_hash=event.tx_hash,
                box_address=event.box_address,
                detail="Unknown proposal vote",
            ))
            bt.logging.warning({
                "unknown_proposal_vote": {
                    "box_address": event.box_address,
                    "tx_hash": event.tx_hash,
                }
            })
            return False

        proposal_id, _side = resolved
        prev = self.ledger.get(proposal_id, event.voter)

        if event.is_withdraw:
            # No-side totals are negative: withdrawing moves them back up to zero.
            # TODO: confirm with governance owners how split Yes/No positions should withdraw.
            delta = event.magnitude if prev < 0 else -event.magnitude
        else:
            delta = event.magnitude

        self.ledger.set(proposal_id, event.voter, prev + delta)
        return True

    def record_decode_failure(self, tx_hash: str | None, reason: str) -> None:
        self.diagnostics.append(Diagnostic(
            kind=DiagnosticKind.DECODE_FAILURE,
            tx_hash=tx_hash,
            detail=reason,
        ))
        bt.logging.warning({"ballot_decode_failure": {"tx_hash": tx_hash, "error": reason}})


__all__ = ["VoteAggregator", "VoteLedger"]

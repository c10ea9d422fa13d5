"""Tests for net vote accumulation and the withdrawal sign rule."""

import pytest

from ballotscan.tally.aggregator import VoteAggregator, VoteLedger
from ballotscan.tally.decoder import BallotEvent, BallotKind
from ballotscan.tally.models import DiagnosticKind
from ballotscan.tally.registry import ProposalRegistry

from .factories import ALICE, BOB, NO_BOX_A, UNKNOWN_BOX, YES_BOX_A, YES_BOX_B, proposals


def _vote(voter: str, magnitude: int, box: str = YES_BOX_A) -> BallotEvent:
    return BallotEvent(kind=BallotKind.VOTE, voter=voter, box_address=box, magnitude=magnitude)


def _withdraw(voter: str, magnitude: int, box: str = YES_BOX_A) -> BallotEvent:
    return BallotEvent(kind=BallotKind.WITHDRAW, voter=voter, box_address=box, magnitude=magnitude)


@pytest.fixture
def aggregator():
    return VoteAggregator(ProposalRegistry(proposals()))


def _replay(events) -> VoteAggregator:
    agg = VoteAggregator(ProposalRegistry(proposals()))
    for event in events:
        agg.apply(event)
    return agg


class TestVoteAggregator:

    def test_single_yes_vote(self, aggregator):
        assert aggregator.apply(_vote(ALICE, 5))
        assert aggregator.ledger.get("LEAP-1", ALICE) == 5

    def test_vote_then_withdraw_nets_zero(self, aggregator):
        aggregator.apply(_vote(ALICE, 5))
        aggregator.apply(_withdraw(ALICE, 5))
        assert aggregator.ledger.get("LEAP-1", ALICE) == 0

    def test_withdraw_from_negative_position_returns_to_zero(self, aggregator):
        aggregator.apply(_vote(ALICE, -3, box=NO_BOX_A))
        assert aggregator.ledger.get("LEAP-1", ALICE) == -3
        aggregator.apply(_withdraw(ALICE, 3, box=NO_BOX_A))
        assert aggregator.ledger.get("LEAP-1", ALICE) == 0

    def test_partial_withdraw_from_negative_position(self, aggregator):
        aggregator.apply(_vote(ALICE, -5, box=NO_BOX_A))
        aggregator.apply(_withdraw(ALICE, 2, box=NO_BOX_A))
        assert aggregator.ledger.get("LEAP-1", ALICE) == -3

    def test_withdraw_with_no_prior_position_goes_negative(self, aggregator):
        aggregator.apply(_withdraw(ALICE, 2))
        assert aggregator.ledger.get("LEAP-1", ALICE) == -2

    def test_votes_accumulate_per_proposal(self, aggregator):
        aggregator.apply(_vote(ALICE, 2))
        aggregator.apply(_vote(ALICE, 3))
        aggregator.apply(_vote(ALICE, 7, box=YES_BOX_B))
        aggregator.apply(_vote(BOB, 1))
        assert aggregator.ledger.to_dict() == {
            "LEAP-1": {ALICE: 5, BOB: 1},
            "LEAP-2": {ALICE: 7},
        }

    def test_unknown_box_records_voter_and_one_diagnostic(self, aggregator):
        aggregator.apply(_vote(ALICE, 5))
        before = aggregator.ledger.to_dict()

        assert aggregator.apply(_vote(BOB, 9, box=UNKNOWN_BOX)) is False

        assert aggregator.ledger.to_dict() == before
        assert aggregator.voters == {ALICE, BOB}
        assert len(aggregator.diagnostics) == 1
        diag = aggregator.diagnostics[0]
        assert diag.kind is DiagnosticKind.UNRESOLVED_PROPOSAL
        assert diag.box_address == UNKNOWN_BOX

    def test_decode_failure_is_recorded(self, aggregator):
        aggregator.record_decode_failure("0xfeed", "truncated transaction")
        assert aggregator.diagnostics[0].kind is DiagnosticKind.DECODE_FAILURE
        assert aggregator.diagnostics[0].tx_hash == "0xfeed"
        assert aggregator.voters == set()

    def test_order_is_load_bearing(self):
        events = [_vote(ALICE, -3, box=NO_BOX_A), _withdraw(ALICE, 3, box=NO_BOX_A)]

        in_order = _replay(events)
        reordered = _replay(list(reversed(events)))

        assert in_order.ledger.get("LEAP-1", ALICE) == 0
        # Withdrawal first sees a zero total, so it is subtracted instead of added.
        assert reordered.ledger.get("LEAP-1", ALICE) == -6
        assert in_order.ledger.to_dict() != reordered.ledger.to_dict()


class TestVoteLedger:

    def test_defaults_to_zero(self):
        ledger = VoteLedger()
        assert ledger.get("P", ALICE) == 0
        assert "P" not in ledger
        assert len(ledger) == 0

    def test_insertion_order_and_copies(self):
        ledger = VoteLedger()
        ledger.set("B", ALICE, 1)
        ledger.set("A", BOB, 2)
        assert ledger.proposals() == ["B", "A"]
        assert list(ledger) == ["B", "A"]

        votes = ledger.votes_for("A")
        votes[BOB] = 99
        assert ledger.get("A", BOB) == 2

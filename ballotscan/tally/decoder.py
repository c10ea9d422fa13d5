"""Ballot decoding: which call a transaction makes, who made it, for which box.

A transaction is relevant only when it is a spending-condition transaction
whose condition input calls either the voting booth's castBallot or a
ballot box's withdraw. Both calls share the parameter layout

    (uint256 balanceCardId, bytes32[] proof, uint256 placeHolder, int256 amount)

with amount scaled by 10**18 (one token unit = one vote).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from Crypto.Hash import RIPEMD160
from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector

from .codec import TYPE_SPEND_COND, recover_signer
from .errors import DecodeError
from .models import Transaction

CAST_BALLOT_SIGNATURE = "castBallot(uint256,bytes32[],uint256,int256)"
WITHDRAW_SIGNATURE = "withdraw(uint256,bytes32[],uint256,int256)"
BALLOT_PARAM_TYPES = ("uint256", "bytes32[]", "uint256", "int256")

CAST_BALLOT_SELECTOR = function_signature_to_4byte_selector(CAST_BALLOT_SIGNATURE)
WITHDRAW_SELECTOR = function_signature_to_4byte_selector(WITHDRAW_SIGNATURE)

VOTE_SCALE = 10**18
DEFAULT_BALLOT_COLOR = 4

# Input 0 is the contract condition, input 1 the voter's balance card.
_CONDITION_INPUT = 0
_BALANCE_CARD_INPUT = 1


class BallotKind(str, Enum):
    VOTE = "vote"
    WITHDRAW = "withdraw"
    IRRELEVANT = "irrelevant"


@dataclass(frozen=True)
class BallotEvent:
    """A decoded vote or withdrawal, ready for aggregation."""

    kind: BallotKind
    voter: str
    box_address: str
    magnitude: int
    tx_hash: str | None = None

    @property
    def is_vote(self) -> bool:
        return self.kind is BallotKind.VOTE

    @property
    def is_withdraw(self) -> bool:
        return self.kind is BallotKind.WITHDRAW


def descale_votes(amount: int) -> int:
    """Divide out the token scale, truncating toward zero."""
    votes = abs(amount) // VOTE_SCALE
    return votes if amount >= 0 else -votes


def decode_vote_amount(msg_data: bytes) -> int:
    """Decode the amount argument of a castBallot/withdraw call, in votes."""
    if len(msg_data) < 4:
        raise DecodeError("call payload shorter than a selector")
    try:
        params = decode(list(BALLOT_PARAM_TYPES), msg_data[4:])
    except DecodingError as e:
        raise DecodeError(f"cannot decode ballot call parameters: {e}") from e
    return descale_votes(params[3])


def script_address(script: bytes) -> str:
    """Contract address a spending condition script is deployed under."""
    return "0x" + RIPEMD160.new(script).hexdigest()


class BallotDecoder:
    """Classifies Leap transactions and extracts ballot events."""

    def __init__(self, ballot_color: int = DEFAULT_BALLOT_COLOR):
        self.ballot_color = ballot_color

    def classify(self, tx: Transaction) -> BallotKind:
        if tx.kind != TYPE_SPEND_COND or not tx.inputs:
            return BallotKind.IRRELEVANT
        selector = tx.inputs[_CONDITION_INPUT].msg_data[:4]
        if selector == CAST_BALLOT_SELECTOR:
            return BallotKind.VOTE
        if selector == WITHDRAW_SELECTOR:
            return BallotKind.WITHDRAW
        return BallotKind.IRRELEVANT

    def decode(self, tx: Transaction, tx_hash: str | None = None) -> BallotEvent | None:
        """Decode a relevant transaction; None for irrelevant ones.

        Raises:
            DecodeError: the transaction calls a ballot function but its
                payload, signer or box output cannot be extracted.
        """
        kind = self.classify(tx)
        if kind is BallotKind.IRRELEVANT:
            return None

        if len(tx.inputs) <= _BALANCE_CARD_INPUT:
            raise DecodeError(f"{kind.value} transaction has no balance card input")
        card = tx.inputs[_BALANCE_CARD_INPUT]
        if card.signature is None or not any(card.signature):
            raise DecodeError(f"{kind.value} transaction balance card is unsigned")
        voter = recover_signer(tx, _BALANCE_CARD_INPUT)

        condition = tx.inputs[_CONDITION_INPUT]
        magnitude = decode_vote_amount(condition.msg_data)

        if kind is BallotKind.WITHDRAW:
            # An empty script still hashes; the registry decides whether the box is known.
            box_address = script_address(condition.script)
        else:
            box_address = self._find_box_output(tx, voter)

        return BallotEvent(
            kind=kind,
            voter=voter,
            box_address=box_address,
            magnitude=magnitude,
            tx_hash=tx_hash,
        )

    def _find_box_output(self, tx: Transaction, voter: str) -> str:
        for out in tx.outputs:
            if out.color == self.ballot_color and out.address != voter:
                return out.address
        raise DecodeError(
            f"vote transaction has no color {self.ballot_color} output besides the voter's"
        )


__all__ = [
    "BALLOT_PARAM_TYPES",
    "CAST_BALLOT_SELECTOR",
    "DEFAULT_BALLOT_COLOR",
    "VOTE_SCALE",
    "WITHDRAW_SELECTOR",
    "BallotDecoder",
    "BallotEvent",
    "BallotKind",
    "decode_vote_amount",
    "descale_votes",
    "script_address",
]

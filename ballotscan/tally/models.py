"""Pydantic models for the ballot tally pipeline.

Three groups:
- Wire shapes: TxInput, TxOutput, Transaction (decoded Leap transactions)
- Collaborator records: BlockRange, TransactionRecord, Proposal
- Results: Diagnostic, DistributionEntry
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def normalize_address(value: str) -> str:
    """Lowercase 0x-prefixed hex, the form every address is compared in."""
    value = value.strip().lower()
    if not value.startswith("0x"):
        value = "0x" + value
    return value


# ---------------------------------------------------------------------------
# Decoded transaction shape
# ---------------------------------------------------------------------------


class TxInput(BaseModel):
    """One transaction input.

    Spending-condition inputs carry msg_data + script, signed inputs carry
    a (v, r, s) signature. signer is filled in only by sign_transaction();
    decoded inputs leave it None (see codec.recover_signer).
    """

    model_config = ConfigDict(frozen=True)

    prev_hash: bytes
    prev_index: int = 0
    msg_data: bytes = b""
    script: bytes = b""
    signature: tuple[int, int, int] | None = None
    signer: str | None = None


class TxOutput(BaseModel):
    """One transaction output."""

    model_config = ConfigDict(frozen=True)

    value: int = Field(ge=0)
    color: int = Field(ge=0, le=0xFFFF)
    address: str
    data: bytes | None = None

    @field_validator("address")
    @classmethod
    def _normalize(cls, v: str) -> str:
        return normalize_address(v)


class Transaction(BaseModel):
    """Leap transaction, immutable once decoded."""

    model_config = ConfigDict(frozen=True)

    kind: int
    inputs: tuple[TxInput, ...] = ()
    outputs: tuple[TxOutput, ...] = ()


# ---------------------------------------------------------------------------
# Collaborator records
# ---------------------------------------------------------------------------


class BlockRange(BaseModel):
    """Closed block interval [start, end]."""

    model_config = ConfigDict(frozen=True)

    start: int = Field(ge=0)
    end: int = Field(ge=0)

    @model_validator(mode="after")
    def _ordered(self) -> BlockRange:
        if self.start > self.end:
            raise ValueError(f"start block {self.start} is after end block {self.end}")
        return self

    def __contains__(self, block_number: object) -> bool:
        return isinstance(block_number, int) and self.start <= block_number <= self.end

    def __len__(self) -> int:
        return self.end - self.start + 1

    def blocks(self) -> range:
        return range(self.start, self.end + 1)


class TransactionRecord(BaseModel):
    """Slim transaction record as handed over by a TransactionSource."""

    model_config = ConfigDict(populate_by_name=True)

    hash: str
    block_hash: str | None = Field(default=None, alias="blockHash")
    block_number: int = Field(alias="blockNumber")
    from_address: str | None = Field(default=None, alias="from")
    to_address: str | None = Field(default=None, alias="to")
    raw: str

    @field_validator("block_number", mode="before")
    @classmethod
    def _parse_block_number(cls, v: Any) -> Any:
        if isinstance(v, str):
            return int(v, 16) if v.lower().startswith("0x") else int(v)
        return v

    def to_export(self) -> dict[str, Any]:
        """Serialize using the node's field names."""
        return self.model_dump(mode="json", by_alias=True)


class Side(str, Enum):
    """Which ballot box of a proposal an address belongs to."""

    YES = "yes"
    NO = "no"


class Proposal(BaseModel):
    """Governance proposal with its two ballot boxes."""

    model_config = ConfigDict(populate_by_name=True)

    proposal_id: str = Field(alias="proposalId", min_length=1)
    title: str | None = None
    booth_address: str | None = Field(default=None, alias="boothAddress")
    yes_box_address: str = Field(alias="yesBoxAddress")
    no_box_address: str = Field(alias="noBoxAddress")

    @field_validator("booth_address", "yes_box_address", "no_box_address")
    @classmethod
    def _normalize(cls, v: str | None) -> str | None:
        return normalize_address(v) if v is not None else None


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class DiagnosticKind(str, Enum):
    UNRESOLVED_PROPOSAL = "unresolved_proposal"
    DECODE_FAILURE = "decode_failure"


class Diagnostic(BaseModel):
    """A transaction that was skipped, and why."""

    kind: DiagnosticKind
    tx_hash: str | None = None
    box_address: str | None = None
    detail: str = ""


class DistributionEntry(BaseModel):
    """Histogram of net votes for one proposal.

    buckets holds (vote_value, voter_count) pairs ascending by vote_value.
    """

    model_config = ConfigDict(frozen=True)

    proposal_id: str
    buckets: tuple[tuple[int, int], ...] = ()

    @property
    def total(self) -> int:
        return sum(count for _, count in self.buckets)

    def as_dict(self) -> dict[int, int]:
        return dict(self.buckets)


__all__ = [
    "BlockRange",
    "Diagnostic",
    "DiagnosticKind",
    "DistributionEntry",
    "Proposal",
    "Side",
    "Transaction",
    "TransactionRecord",
    "TxInput",
    "TxOutput",
    "normalize_address",
]

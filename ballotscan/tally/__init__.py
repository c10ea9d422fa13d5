"""Ballot tally: decode Leap ballot transactions and summarize net votes.

The pipeline runs in ledger order:
- codec: raw Leap transaction -> Transaction
- decoder: Transaction -> BallotEvent (vote / withdraw) or nothing
- aggregator: BallotEvents -> VoteLedger + voter set
- summarize: VoteLedger -> per-proposal DistributionEntry histograms
"""

from .aggregator import VoteAggregator, VoteLedger
from .decoder import BallotDecoder, BallotEvent, BallotKind
from .errors import (
    BallotScanError,
    ConfigError,
    DecodeError,
    RegistryError,
    SourceUnavailableError,
)
from .models import (
    BlockRange,
    Diagnostic,
    DiagnosticKind,
    DistributionEntry,
    Proposal,
    Side,
    Transaction,
    TransactionRecord,
    TxInput,
    TxOutput,
)
from .registry import ProposalRegistry
from .summarize import DistributionSummarizer

__all__ = [
    "BallotDecoder",
    "BallotEvent",
    "BallotKind",
    "BallotScanError",
    "BlockRange",
    "ConfigError",
    "DecodeError",
    "Diagnostic",
    "DiagnosticKind",
    "DistributionEntry",
    "DistributionSummarizer",
    "Proposal",
    "ProposalRegistry",
    "RegistryError",
    "Side",
    "SourceUnavailableError",
    "Transaction",
    "TransactionRecord",
    "TxInput",
    "TxOutput",
    "VoteAggregator",
    "VoteLedger",
]

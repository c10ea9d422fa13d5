"""Scan configuration.

Priority, lowest to highest: defaults, CLI flags, environment
(BALLOTSCAN_SCAN__* variables, optionally loaded from a .env file).
"""

from __future__ import annotations

import argparse
import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from ballotscan.tally.decoder import DEFAULT_BALLOT_COLOR
from ballotscan.tally.errors import ConfigError
from ballotscan.tally.models import BlockRange

DEFAULT_SOURCE_ENDPOINT = "https://testnet-node.leapdao.org"
DEFAULT_PROPOSAL_FEED_URL = "https://www.npoint.io/documents/217ecb17f01746799a3b"
DEFAULT_START_BLOCK = 87632
DEFAULT_END_BLOCK = 91470
DEFAULT_OUTPUT_PATH = "build/distributionByVote.csv"

ENV_PREFIX = "BALLOTSCAN_SCAN__"


class ScanConfig(BaseModel):
    """Everything a scan needs, validated up front."""

    block_range: BlockRange = Field(
        default_factory=lambda: BlockRange(start=DEFAULT_START_BLOCK, end=DEFAULT_END_BLOCK)
    )
    source_endpoint: str = DEFAULT_SOURCE_ENDPOINT
    proposal_feed_url: str = DEFAULT_PROPOSAL_FEED_URL
    output_path: Path = Path(DEFAULT_OUTPUT_PATH)

    # Offline replay: read these instead of the node / feed when set.
    transactions_file: Path | None = None
    proposals_file: Path | None = None

    ballot_color: int = Field(default=DEFAULT_BALLOT_COLOR, ge=0, le=0xFFFF)
    concurrency: int = Field(default=8, ge=1)
    timeout: float = Field(default=30.0, gt=0)


def add_args(parser: argparse.ArgumentParser) -> None:
    """Adds scan arguments to the parser."""
    parser.add_argument("--scan.start_block", type=int, default=DEFAULT_START_BLOCK,
                        help="First block of the scanned range (inclusive).")
    parser.add_argument("--scan.end_block", type=int, default=DEFAULT_END_BLOCK,
                        help="Last block of the scanned range (inclusive).")
    parser.add_argument("--scan.source_endpoint", type=str, default=DEFAULT_SOURCE_ENDPOINT,
                        help="Leap node JSON-RPC endpoint.")
    parser.add_argument("--scan.proposal_feed_url", type=str, default=DEFAULT_PROPOSAL_FEED_URL,
                        help="URL of the published proposal document.")
    parser.add_argument("--scan.output_path", type=str, default=DEFAULT_OUTPUT_PATH,
                        help="Where the distribution CSV is written.")
    parser.add_argument("--scan.transactions_file", type=str, default=None,
                        help="Read transactions from this JSON export instead of the node.")
    parser.add_argument("--scan.proposals_file", type=str, default=None,
                        help="Read proposals from this JSON file instead of the feed.")
    parser.add_argument("--scan.ballot_color", type=int, default=DEFAULT_BALLOT_COLOR,
                        help="Token color of ballot box outputs.")
    parser.add_argument("--scan.concurrency", type=int, default=8,
                        help="Blocks requested from the node in parallel.")
    parser.add_argument("--scan.timeout", type=float, default=30.0,
                        help="HTTP timeout in seconds.")


_FIELDS = (
    "start_block",
    "end_block",
    "source_endpoint",
    "proposal_feed_url",
    "output_path",
    "transactions_file",
    "proposals_file",
    "ballot_color",
    "concurrency",
    "timeout",
)


def config_from_args(
    args: argparse.Namespace,
    environ: Mapping[str, str] | None = None,
) -> ScanConfig:
    """Build a ScanConfig from parsed args, letting environment variables win.

    Raises:
        ConfigError: a value is missing, malformed or out of range.
    """
    environ = os.environ if environ is None else environ

    values: dict[str, object] = {}
    for name in _FIELDS:
        env_value = environ.get(f"{ENV_PREFIX}{name.upper()}")
        values[name] = env_value if env_value not in (None, "") else getattr(args, f"scan.{name}", None)

    try:
        block_range = BlockRange(start=values.pop("start_block"), end=values.pop("end_block"))
        return ScanConfig(
            block_range=block_range,
            **{k: v for k, v in values.items() if v is not None},
        )
    except ValidationError as e:
        raise ConfigError(f"invalid scan configuration: {e}") from e


__all__ = ["ENV_PREFIX", "ScanConfig", "add_args", "config_from_args"]

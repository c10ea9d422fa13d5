"""Ballot scan entrypoint.

Downloads the transactions of a block range from a Leap node (or a local
export), tallies every castBallot / withdraw against the published
proposal list and writes the per-proposal vote distribution as CSV.

Exit status: 0 on success, 1 when a source or the proposal list fails,
2 on invalid configuration.
"""

import argparse
import asyncio
import os
import sys

import bittensor as bt
from dotenv import load_dotenv

from ballotscan.base.config import ScanConfig, add_args, config_from_args
from ballotscan.tally.errors import ConfigError, RegistryError, SourceUnavailableError
from ballotscan.tally.pipeline import TallyResult, run_scan
from ballotscan.tally.source.filesystem import FileProposalFeed, FileTransactionSource
from ballotscan.tally.source.node_client import NodeTransactionSource
from ballotscan.tally.source.proposal_feed import HTTPProposalFeed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Leap ballot distribution scan")
    bt.logging.add_args(parser)
    add_args(parser)
    return parser


async def scan(config: ScanConfig) -> TallyResult:
    """Run one scan with collaborators chosen from the config."""
    if config.transactions_file is not None:
        source = FileTransactionSource(config.transactions_file)
    else:
        source = NodeTransactionSource(
            config.source_endpoint,
            timeout=config.timeout,
            concurrency=config.concurrency,
        )
    if config.proposals_file is not None:
        feed = FileProposalFeed(config.proposals_file)
    else:
        feed = HTTPProposalFeed(config.proposal_feed_url, timeout=config.timeout)

    try:
        return await run_scan(config, source, feed)
    finally:
        for collaborator in (source, feed):
            close = getattr(collaborator, "close", None)
            if close is not None:
                await close()


def main(argv: list[str] | None = None) -> None:
    # Load .env if not in test mode
    if os.environ.get("BALLOTSCAN_TEST_MODE") != "true":
        load_dotenv()

    args = build_parser().parse_args(argv)
    if getattr(args, "logging.trace", False):
        bt.logging.set_trace(True)
    elif getattr(args, "logging.debug", False):
        bt.logging.set_debug(True)

    try:
        config = config_from_args(args)
    except ConfigError as e:
        bt.logging.error({"ballot_scan": "invalid_config", "error": str(e)})
        sys.exit(2)

    bt.logging.info({
        "ballot_scan_config": {
            "start_block": config.block_range.start,
            "end_block": config.block_range.end,
            "source": str(config.transactions_file or config.source_endpoint),
            "proposals": str(config.proposals_file or config.proposal_feed_url),
            "output": str(config.output_path),
        }
    })

    try:
        result = asyncio.run(scan(config))
    except (SourceUnavailableError, RegistryError) as e:
        bt.logging.error({"ballot_scan": "aborted", "error": str(e)})
        sys.exit(1)
    except KeyboardInterrupt:
        bt.logging.info({"ballot_scan": "keyboard_interrupt"})
        sys.exit(130)

    bt.logging.info({"ballot_scan": "done", "output": str(result.output_path)})


if __name__ == "__main__":
    main()

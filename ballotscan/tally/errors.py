"""Error taxonomy for the ballot scan.

Recoverable errors (DecodeError) cost a single transaction; the rest abort
the run because a partial transaction range produces meaningless totals.
"""

from __future__ import annotations


class BallotScanError(Exception):
    """Base class for all ballot scan errors."""


class DecodeError(BallotScanError):
    """A raw transaction or call payload does not match the expected layout."""


class SourceUnavailableError(BallotScanError):
    """A transaction source or proposal feed could not be read."""


class RegistryError(BallotScanError):
    """Proposal list violates the one-box-one-proposal invariant."""


class ConfigError(BallotScanError):
    """Scan configuration is invalid."""


__all__ = [
    "BallotScanError",
    "ConfigError",
    "DecodeError",
    "RegistryError",
    "SourceUnavailableError",
]

"""CSV export of vote distributions."""

from __future__ import annotations

import csv
from collections.abc import Iterable, Iterator
from pathlib import Path

from .models import DistributionEntry

CSV_HEADER = ("Proposal", "Votes", "Count")


def distribution_rows(entries: Iterable[DistributionEntry]) -> Iterator[tuple[str, int, int]]:
    """Flatten entries into (proposal, votes, count) rows, ascending votes per proposal."""
    for entry in entries:
        for votes, count in sorted(entry.buckets):
            yield entry.proposal_id, votes, count


def write_distribution_csv(entries: Iterable[DistributionEntry], path: str | Path) -> Path:
    """Write the distribution CSV, creating parent directories. Returns the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="") as f:
        writer = csv.writer(f, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        writer.writerows(distribution_rows(entries))
    return path


__all__ = ["CSV_HEADER", "distribution_rows", "write_distribution_csv"]

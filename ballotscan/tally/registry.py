"""Immutable ballot-box -> proposal lookup."""

from __future__ import annotations

from collections.abc import Iterable
from types import MappingProxyType

from .errors import RegistryError
from .models import Proposal, Side, normalize_address


class ProposalRegistry:
    """Maps each ballot-box address to exactly one (proposal_id, side).

    Construction fails on duplicate proposal ids or on a box address shared
    between proposals or sides.
    """

    def __init__(self, proposals: Iterable[Proposal]):
        by_id: dict[str, Proposal] = {}
        boxes: dict[str, tuple[str, Side]] = {}

        for proposal in proposals:
            if proposal.proposal_id in by_id:
                raise RegistryError(f"duplicate proposal id: {proposal.proposal_id}")
            by_id[proposal.proposal_id] = proposal

            for address, side in (
                (proposal.yes_box_address, Side.YES),
                (proposal.no_box_address, Side.NO),
            ):
                if address in boxes:
                    other_id, other_side = boxes[address]
                    raise RegistryError(
                        f"box {address} claimed by {proposal.proposal_id}/{side.value} "
                        f"and {other_id}/{other_side.value}"
                    )
                boxes[address] = (proposal.proposal_id, side)

        self._proposals = MappingProxyType(by_id)
        self._boxes = MappingProxyType(boxes)

    def __len__(self) -> int:
        return len(self._proposals)

    def __contains__(self, proposal_id: object) -> bool:
        return proposal_id in self._proposals

    @property
    def proposals(self) -> list[Proposal]:
        return list(self._proposals.values())

    def get(self, proposal_id: str) -> Proposal | None:
        return self._proposals.get(proposal_id)

    def resolve(self, box_address: str) -> tuple[str, Side] | None:
        """(proposal_id, side) for a ballot box, or None if unknown."""
        return self._boxes.get(normalize_address(box_address))


__all__ = ["ProposalRegistry"]

"""Set difference between source and mirror membership."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .types import MembershipDiff

if TYPE_CHECKING:
    from .types import MembershipSet


def diff(source: MembershipSet, mirror: MembershipSet) -> MembershipDiff:
    """Return who must be added to and removed from ``mirror`` so it equals ``source``."""

    return MembershipDiff(
        to_add=frozenset(source - mirror),
        to_remove=frozenset(mirror - source),
    )

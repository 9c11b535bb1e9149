"""
Side placement rules for propagating a participant group into a downstream match.

Pure functions only: given the downstream sides, decide what they become.
Persistence, locking and compare-and-swap live in advancement_service.

Placement precedence (first rule that applies wins):
    0. downstream already decided            -> LOCKED, no change
    1. a side holds entrants of the origin   -> that side becomes the group,
       (winner + loser of the upstream match)   other origin-holding sides are cleared
    2. a side exactly equals the group       -> no change
    3. a side partially overlaps the group   -> upgrade that side to the full group
       and holds fewer entrants
    4. a side is empty                       -> fill it (A before B)
    5. both sides hold unrelated entrants    -> no change
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence


class SideState(str, Enum):
    EMPTY = "EMPTY"
    EXACT = "EXACT"  # holds exactly the incoming group
    PARTIAL = "PARTIAL"  # holds part of the incoming group, fewer entrants
    OCCUPIED = "OCCUPIED"  # holds something else
    LOCKED = "LOCKED"  # match decided


def groups_equal(x: Sequence[int], y: Sequence[int]) -> bool:
    return len(x) == len(y) and all(a == b for a, b in zip(x, y))


def overlaps(x: Iterable[int], y: Iterable[int]) -> bool:
    ys = set(y)
    return any(v in ys for v in x)


def classify_side(side: Sequence[int], group: Sequence[int], decided: bool = False) -> SideState:
    if decided:
        return SideState.LOCKED
    if not side:
        return SideState.EMPTY
    if groups_equal(side, group):
        return SideState.EXACT
    if overlaps(side, group) and len(side) < len(group):
        return SideState.PARTIAL
    return SideState.OCCUPIED


@dataclass(frozen=True)
class PlacementPlan:
    side_a: List[int]
    side_b: List[int]
    changed: bool
    reason: str


def _unchanged(side_a: Sequence[int], side_b: Sequence[int], reason: str) -> PlacementPlan:
    return PlacementPlan(list(side_a), list(side_b), False, reason)


def plan_placement(
    side_a: Sequence[int],
    side_b: Sequence[int],
    group: Sequence[int],
    origin: Optional[Iterable[int]] = None,
    decided: bool = False,
) -> PlacementPlan:
    """Decide the downstream sides after placing ``group``.

    ``origin`` is every entrant of the upstream match (both sides). With no
    origin the origin rule is skipped and only rules 2-5 apply.
    """
    group = list(group)
    if decided:
        return _unchanged(side_a, side_b, "locked")
    if not group:
        return _unchanged(side_a, side_b, "empty group")

    origin_set = set(origin or ())
    if origin_set:
        origin_set.update(group)
    a_origin = overlaps(side_a, origin_set)
    b_origin = overlaps(side_b, origin_set)

    if a_origin or b_origin:
        if overlaps(side_a, group):
            target = "a"
        elif overlaps(side_b, group):
            target = "b"
        elif a_origin and not b_origin:
            target = "a"
        elif b_origin and not a_origin:
            target = "b"
        else:
            target = "a"

        new_a = list(side_a)
        new_b = list(side_b)
        if a_origin and (target != "a" or not groups_equal(side_a, group)):
            new_a = []
        if b_origin and (target != "b" or not groups_equal(side_b, group)):
            new_b = []
        if target == "a":
            new_a = group
        else:
            new_b = group
        changed = not (groups_equal(new_a, side_a) and groups_equal(new_b, side_b))
        return PlacementPlan(new_a, new_b, changed, "origin" if changed else "already placed")

    state_a = classify_side(side_a, group)
    state_b = classify_side(side_b, group)

    if SideState.EXACT in (state_a, state_b):
        return _unchanged(side_a, side_b, "already placed")
    if state_a == SideState.PARTIAL:
        return PlacementPlan(group, list(side_b), True, "upgrade A")
    if state_b == SideState.PARTIAL:
        return PlacementPlan(list(side_a), group, True, "upgrade B")
    if state_a == SideState.EMPTY:
        return PlacementPlan(group, list(side_b), True, "fill A")
    if state_b == SideState.EMPTY:
        return PlacementPlan(list(side_a), group, True, "fill B")
    return _unchanged(side_a, side_b, "both sides occupied")


def plan_retraction(
    side_a: Sequence[int],
    side_b: Sequence[int],
    group: Sequence[int],
    decided: bool = False,
) -> PlacementPlan:
    """Clear the side holding exactly ``group``; anything else is left alone."""
    if decided:
        return _unchanged(side_a, side_b, "locked")
    if not group:
        return _unchanged(side_a, side_b, "empty group")
    if groups_equal(side_a, group):
        return PlacementPlan([], list(side_b), True, "clear A")
    if groups_equal(side_b, group):
        return PlacementPlan(list(side_a), [], True, "clear B")
    return _unchanged(side_a, side_b, "not placed")

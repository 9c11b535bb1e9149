"""
Advancement and rollback: recording a winner pushes the winning and losing groups
into the downstream matches; clearing it pulls them back out.

Every side or winner write is a compare-and-swap on Match.row_version. Incoming
placements and retractions additionally require the downstream match to be
undecided at write time, so a decided match never changes underneath its result.
"""
import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from sqlalchemy import update
from sqlmodel import Session

from knockout.database import PLACEMENT_MAX_ATTEMPTS
from knockout.models.match import Match, Side
from knockout.services.bracket_errors import BracketError, ConcurrentUpdateError, MatchNotFoundError
from knockout.services.placement import PlacementPlan, plan_placement, plan_retraction
from knockout.utils.match_locks import match_lock

logger = logging.getLogger(__name__)

Planner = Callable[[List[int], List[int], bool], PlacementPlan]


def _compare_and_swap(session: Session, match: Match, require_undecided: bool = False, **values) -> bool:
    """Write ``values`` only if the row is still at the version we read."""
    stmt = update(Match).where(Match.id == match.id, Match.row_version == match.row_version)
    if require_undecided:
        stmt = stmt.where(Match.winner.is_(None))
    stmt = stmt.values(row_version=match.row_version + 1, updated_at=datetime.utcnow(), **values)
    result = session.exec(stmt)
    session.commit()
    return result.rowcount == 1


def _rewrite_sides(session: Session, match_id: int, planner: Planner, action: str) -> bool:
    """Read the match, plan its new sides, swap them in. Returns True if sides changed."""
    with match_lock(match_id):
        for attempt in range(1, PLACEMENT_MAX_ATTEMPTS + 1):
            match = session.get(Match, match_id, populate_existing=True)
            if match is None:
                logger.warning("%s skipped: downstream match %d does not exist", action, match_id)
                return False

            plan = planner(list(match.side_a or []), list(match.side_b or []), match.winner is not None)
            if not plan.changed:
                logger.debug("%s into match %d is a no-op (%s)", action, match_id, plan.reason)
                return False

            if _compare_and_swap(session, match, require_undecided=True, side_a=plan.side_a, side_b=plan.side_b):
                logger.debug(
                    "%s into match %d (%s): A=%s B=%s", action, match_id, plan.reason, plan.side_a, plan.side_b
                )
                return True

            logger.warning(
                "Match %d changed during %s (attempt %d/%d); re-reading", match_id, action, attempt, PLACEMENT_MAX_ATTEMPTS
            )

    raise ConcurrentUpdateError(f"Match {match_id} kept changing; gave up after {PLACEMENT_MAX_ATTEMPTS} attempts")


def place_group(
    session: Session,
    next_id: Optional[int],
    group: List[int],
    origin: Optional[Iterable[int]] = None,
) -> bool:
    """Place a participant group into the downstream match ``next_id``.

    ``origin`` is the full set of entrants of the upstream match; sides holding any
    of them are repaired to the new group. See knockout.services.placement for the rules.
    """
    if next_id is None or not group:
        return False
    origin = list(origin or [])

    def planner(side_a, side_b, decided):
        return plan_placement(side_a, side_b, group, origin=origin, decided=decided)

    return _rewrite_sides(session, next_id, planner, "place")


def retract_group(session: Session, next_id: Optional[int], group: List[int]) -> bool:
    """Remove a previously placed group from ``next_id`` if it sits there exactly."""
    if next_id is None or not group:
        return False

    def planner(side_a, side_b, decided):
        return plan_retraction(side_a, side_b, group, decided=decided)

    return _rewrite_sides(session, next_id, planner, "retract")


def propagate_result(session: Session, match: Match) -> int:
    """
    Push a decided match's winner and loser groups downstream.

    Idempotent: re-running on an already propagated match changes nothing.
    Returns count of downstream matches whose sides changed.
    """
    winner_group, loser_group = match.winner_and_loser_groups()
    if not winner_group and not loser_group:
        return 0
    origin = winner_group + loser_group
    changed = 0
    if place_group(session, match.feeds_winner_to, winner_group, origin):
        changed += 1
    if place_group(session, match.feeds_loser_to, loser_group, origin):
        changed += 1
    return changed


def _get_match(session: Session, match_id: int) -> Match:
    match = session.get(Match, match_id, populate_existing=True)
    if match is None:
        raise MatchNotFoundError(f"Match {match_id} not found")
    return match


def set_winner(session: Session, match_id: int, side: Side) -> Match:
    """
    Record ``side`` as the winner of a match and advance both groups.

    Recording a different winner over an existing one repairs the downstream
    slots through the origin rule of placement, as long as those downstream
    matches are still undecided.

    Raises:
        MatchNotFoundError: match does not exist
        BracketError: a side of the match is still empty
        ConcurrentUpdateError: the match or a downstream match kept changing
    """
    side = Side(side)
    with match_lock(match_id):
        for _ in range(PLACEMENT_MAX_ATTEMPTS):
            match = _get_match(session, match_id)
            if not match.side_a or not match.side_b:
                raise BracketError("Both sides must be filled before recording a winner.")
            if match.winner == side.value:
                break
            if _compare_and_swap(session, match, winner=side.value):
                logger.info("Match %d (%s %s): winner %s", match_id, match.bracket, match.stage, side.value)
                break
        else:
            raise ConcurrentUpdateError(f"Match {match_id} kept changing; winner not recorded")

    match = _get_match(session, match_id)
    advanced = propagate_result(session, match)
    logger.debug("Match %d advanced into %d downstream match(es)", match_id, advanced)
    return _get_match(session, match_id)


def clear_result(session: Session, match_id: int) -> Match:
    """
    Clear a recorded winner and retract what it pushed downstream.

    Only exact placements in undecided downstream matches are retracted.
    Clearing a match without a winner changes nothing.
    """
    match = _get_match(session, match_id)
    if match.winner is None:
        return match

    winner_group, loser_group = match.winner_and_loser_groups()
    retract_group(session, match.feeds_winner_to, winner_group)
    retract_group(session, match.feeds_loser_to, loser_group)

    with match_lock(match_id):
        for _ in range(PLACEMENT_MAX_ATTEMPTS):
            match = _get_match(session, match_id)
            if match.winner is None:
                break
            if _compare_and_swap(session, match, winner=None):
                logger.info("Match %d (%s %s): result cleared", match_id, match.bracket, match.stage)
                break
        else:
            raise ConcurrentUpdateError(f"Match {match_id} kept changing; result not cleared")

    return _get_match(session, match_id)

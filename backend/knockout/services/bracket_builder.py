"""
Singles bracket construction: round 1 from seeds, QF/SF/F skeletons for MAIN and
LOWER, and the R1 wiring that sends winners to MAIN and losers to LOWER.

All construction is idempotent (existence check before insert) and every
precondition is checked before the first write of an operation.
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy import delete
from sqlmodel import Session, select

from knockout.models.event import Event
from knockout.models.match import ROUND_NUM, Bracket, Match, Stage
from knockout.models.player import Player
from knockout.services.advancement_service import propagate_result
from knockout.services.bracket_errors import BracketError, EventNotFoundError
from knockout.services.seeding import DRAW_SIZE, canonical_pairs, quarterfinal_index, slot_for_seeds
from knockout.utils.match_locks import forget

logger = logging.getLogger(__name__)

ROUND1_MATCH_COUNT = DRAW_SIZE // 2


def get_event_or_raise(session: Session, event_id: int) -> Event:
    event = session.get(Event, event_id)
    if not event:
        raise EventNotFoundError(f"Event {event_id} not found")
    return event


def stage_matches(session: Session, event_id: int, bracket: Bracket, stage: Stage) -> List[Match]:
    """Matches of one bracket+stage in deterministic order (sequence_in_round, id)."""
    matches = session.exec(
        select(Match).where(
            Match.event_id == event_id,
            Match.bracket == bracket.value,
            Match.stage == stage.value,
        )
    ).all()
    return sorted(matches, key=lambda m: (m.sequence_in_round, m.id))


def require_seeded_players(session: Session, event_id: int) -> Dict[int, Player]:
    """
    Return players keyed by seed, requiring exactly 16 players seeded 1..16.

    Raises:
        BracketError: wrong player count, unseeded player or missing seed
    """
    players = session.exec(select(Player).where(Player.event_id == event_id)).all()
    if len(players) != DRAW_SIZE:
        raise BracketError(f"Expected {DRAW_SIZE} players, found {len(players)}.")

    by_seed: Dict[int, Player] = {}
    for player in players:
        if player.seed is None:
            raise BracketError(f"All {DRAW_SIZE} players must have a seed (1..{DRAW_SIZE}).")
        by_seed[player.seed] = player

    for seed in range(1, DRAW_SIZE + 1):
        if seed not in by_seed:
            raise BracketError(f"Missing player with seed {seed}.")
    return by_seed


def _add_round1(session: Session, event_id: int, players_by_seed: Dict[int, Player]) -> List[Match]:
    """Stage the 8 canonical R1 matches on the session (caller commits)."""
    rows = [
        Match(
            event_id=event_id,
            bracket=Bracket.MAIN.value,
            stage=Stage.R1.value,
            round_num=ROUND_NUM[Stage.R1],
            sequence_in_round=index + 1,
            is_doubles=False,
            side_a=[players_by_seed[seed_a].id],
            side_b=[players_by_seed[seed_b].id],
        )
        for index, (seed_a, seed_b) in enumerate(canonical_pairs())
    ]
    session.add_all(rows)
    return rows


def ensure_skeleton(session: Session, event_id: int, bracket: Bracket) -> List[int]:
    """
    Ensure 4 QF, 2 SF and 1 F exist for a singles bracket and return the QF ids in order.

    QF[0],QF[1] feed SF[0]; QF[2],QF[3] feed SF[1]; both SFs feed F. The seven shells
    are inserted as one batch, then wired, in a single transaction.
    """
    bracket = Bracket(bracket)
    quarterfinals = stage_matches(session, event_id, bracket, Stage.QF)

    if not quarterfinals:

        def shell(stage: Stage, sequence: int) -> Match:
            return Match(
                event_id=event_id,
                bracket=bracket.value,
                stage=stage.value,
                round_num=ROUND_NUM[stage],
                sequence_in_round=sequence,
                is_doubles=False,
            )

        new_qfs = [shell(Stage.QF, i + 1) for i in range(4)]
        new_sfs = [shell(Stage.SF, i + 1) for i in range(2)]
        final = shell(Stage.F, 1)
        session.add_all(new_qfs + new_sfs + [final])
        session.flush()

        for index, qf in enumerate(new_qfs):
            qf.feeds_winner_to = new_sfs[index // 2].id
        for sf in new_sfs:
            sf.feeds_winner_to = final.id
        session.commit()
        logger.info("Event %d: created %s skeleton (4 QF, 2 SF, 1 F)", event_id, bracket.value)

        quarterfinals = stage_matches(session, event_id, bracket, Stage.QF)

    return [m.id for m in quarterfinals]


def _round1_slots(round1: List[Match], seed_by_player: Dict[int, int]) -> Dict[int, int]:
    """Map R1 match id -> canonical slot index; raise if R1 was tampered with."""
    slots: Dict[int, int] = {}
    taken: Dict[int, int] = {}
    for match in round1:
        side_a = list(match.side_a or [])
        side_b = list(match.side_b or [])
        if len(side_a) != 1 or len(side_b) != 1:
            raise BracketError(f"R1 match {match.id} must have one player per side.")
        seed_a = seed_by_player.get(side_a[0])
        seed_b = seed_by_player.get(side_b[0])
        if seed_a is None or seed_b is None:
            raise BracketError(f"R1 match {match.id} has a player who is not in the current seeding.")

        slot = slot_for_seeds(seed_a, seed_b)
        if slot is None:
            raise BracketError(f"R1 match with seeds ({seed_a},{seed_b}) not canonical.")
        if slot in taken:
            raise BracketError(f"R1 matches {taken[slot]} and {match.id} both hold seeds ({seed_a},{seed_b}).")
        taken[slot] = match.id
        slots[match.id] = slot
    return slots


def build_singles_skeleton(session: Session, event_id: int) -> Dict:
    """
    Ensure R1 (MAIN), both QF/SF/F skeletons, and the R1 -> QF wiring.

    Steps:
    1. Require 16 players seeded 1..16 (and, if R1 exists, a canonical R1)
    2. Create the 8 R1 matches if missing
    3. Ensure MAIN and LOWER skeletons
    4. Wire each R1 winner to MAIN QF[slot // 2] and loser to LOWER QF[slot // 2]
    5. Re-propagate R1 results recorded before the wiring existed

    Returns:
        Dict with round1_created, wired, repropagated, message

    Guarantees:
        - Idempotent: re-running only rewrites the same wiring
        - No writes happen if a precondition fails
    """
    get_event_or_raise(session, event_id)
    players_by_seed = require_seeded_players(session, event_id)
    seed_by_player = {p.id: seed for seed, p in players_by_seed.items()}

    round1 = stage_matches(session, event_id, Bracket.MAIN, Stage.R1)
    round1_created = False
    if round1:
        if len(round1) != ROUND1_MATCH_COUNT:
            raise BracketError(f"Expected {ROUND1_MATCH_COUNT} R1 matches (MAIN), found {len(round1)}.")
        slots = _round1_slots(round1, seed_by_player)
    else:
        _add_round1(session, event_id, players_by_seed)
        session.commit()
        round1_created = True
        logger.info("Event %d: created %d R1 matches from seeding", event_id, ROUND1_MATCH_COUNT)
        round1 = stage_matches(session, event_id, Bracket.MAIN, Stage.R1)
        slots = _round1_slots(round1, seed_by_player)

    qf_main = ensure_skeleton(session, event_id, Bracket.MAIN)
    qf_lower = ensure_skeleton(session, event_id, Bracket.LOWER)
    if len(qf_main) != 4 or len(qf_lower) != 4:
        raise BracketError("QF skeleton incomplete.")

    for match in round1:
        target = quarterfinal_index(slots[match.id])
        match.feeds_winner_to = qf_main[target]
        match.feeds_loser_to = qf_lower[target]
        session.add(match)
    session.commit()

    repropagated = 0
    for match in stage_matches(session, event_id, Bracket.MAIN, Stage.R1):
        if match.winner is not None:
            repropagated += propagate_result(session, match)

    logger.info("Event %d: wired %d R1 matches, %d downstream slot(s) repaired", event_id, len(round1), repropagated)
    return {
        "round1_created": round1_created,
        "wired": len(round1),
        "repropagated": repropagated,
        "message": "R1 ensured (or created), QF/SF/F ensured, R1 wired.",
    }


def reset_matches(session: Session, event_id: int, regenerate_round1: bool = False) -> Dict:
    """
    Delete every match of an event in one statement, optionally regenerating R1.

    Seeding is validated before anything is deleted; deletion and regeneration
    commit together.
    """
    get_event_or_raise(session, event_id)
    players_by_seed: Optional[Dict[int, Player]] = None
    if regenerate_round1:
        players_by_seed = require_seeded_players(session, event_id)

    match_ids = session.exec(select(Match.id).where(Match.event_id == event_id)).all()
    result = session.exec(delete(Match).where(Match.event_id == event_id))
    deleted = result.rowcount

    if players_by_seed is not None:
        _add_round1(session, event_id, players_by_seed)
    session.commit()
    forget(match_ids)

    logger.info("Event %d: deleted %d match(es)%s", event_id, deleted, ", R1 regenerated" if regenerate_round1 else "")
    message = "Matches cleared and R1 regenerated." if regenerate_round1 else "All matches cleared."
    return {"deleted": deleted, "round1_regenerated": regenerate_round1, "message": message}

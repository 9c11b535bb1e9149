"""
Doubles bracket: the 8 singles quarterfinal losers paired into 4 teams, 2 SF + 1 F.
"""
import logging
from typing import Dict, List

from sqlmodel import Session, select

from knockout.models.match import ROUND_NUM, Bracket, Match, Stage
from knockout.services.bracket_builder import get_event_or_raise
from knockout.services.bracket_errors import BracketError

logger = logging.getLogger(__name__)

QUARTERFINAL_COUNT = 8

# Team indexes per doubles semifinal: 1 vs 4, 2 vs 3
SEMIFINAL_PAIRINGS = [(0, 3), (1, 2)]

_BRACKET_ORDER = {Bracket.MAIN.value: 0, Bracket.LOWER.value: 1}


def _singles_quarterfinals(session: Session, event_id: int) -> List[Match]:
    """MAIN then LOWER quarterfinals, each in sequence order."""
    matches = session.exec(
        select(Match).where(
            Match.event_id == event_id,
            Match.stage == Stage.QF.value,
            Match.bracket.in_([Bracket.MAIN.value, Bracket.LOWER.value]),
        )
    ).all()
    return sorted(matches, key=lambda m: (_BRACKET_ORDER[m.bracket], m.sequence_in_round, m.id))


def pair_losers(losers: List[List[int]]) -> List[List[int]]:
    """Pair loser groups sequentially: [0,1], [2,3], ..."""
    return [losers[i] + losers[i + 1] for i in range(0, len(losers) - 1, 2)]


def build_doubles(session: Session, event_id: int) -> Dict:
    """
    Build the doubles bracket from the singles quarterfinal losers.

    Returns:
        Dict with created, match_ids, message

    Raises:
        EventNotFoundError: event does not exist
        BracketError: quarterfinals missing, undecided or incomplete
    """
    get_event_or_raise(session, event_id)

    existing = session.exec(
        select(Match).where(
            Match.event_id == event_id,
            Match.bracket == Bracket.DOUBLES.value,
            Match.stage == Stage.SF.value,
        )
    ).first()
    if existing:
        return {"created": False, "match_ids": [], "message": "Doubles already exists."}

    quarterfinals = _singles_quarterfinals(session, event_id)
    if len(quarterfinals) != QUARTERFINAL_COUNT:
        raise BracketError(f"Expected {QUARTERFINAL_COUNT} QFs (MAIN+LOWER), found {len(quarterfinals)}.")

    for match in quarterfinals:
        if match.winner is None:
            raise BracketError("All QFs must have a winner before building doubles.")
        if not match.side_a or not match.side_b:
            raise BracketError("QF teams incomplete.")

    losers = [match.winner_and_loser_groups()[1] for match in quarterfinals]
    teams = pair_losers(losers)

    semifinals = [
        Match(
            event_id=event_id,
            bracket=Bracket.DOUBLES.value,
            stage=Stage.SF.value,
            round_num=ROUND_NUM[Stage.SF],
            sequence_in_round=index + 1,
            is_doubles=True,
            side_a=teams[team_a],
            side_b=teams[team_b],
        )
        for index, (team_a, team_b) in enumerate(SEMIFINAL_PAIRINGS)
    ]
    final = Match(
        event_id=event_id,
        bracket=Bracket.DOUBLES.value,
        stage=Stage.F.value,
        round_num=ROUND_NUM[Stage.F],
        sequence_in_round=1,
        is_doubles=True,
    )
    session.add_all(semifinals + [final])
    session.flush()
    for sf in semifinals:
        sf.feeds_winner_to = final.id
    match_ids = [m.id for m in semifinals] + [final.id]
    session.commit()

    logger.info("Event %d: doubles bracket created (teams %s)", event_id, teams)
    return {"created": True, "match_ids": match_ids, "message": "Doubles created: 2 SF + Final."}

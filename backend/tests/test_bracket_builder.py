"""Singles construction: skeletons, R1 generation, R1 wiring, reset."""
import pytest
from sqlmodel import Session, select

from knockout.models.match import Bracket, Match, Side, Stage
from knockout.models.player import Player
from knockout.services.advancement_service import set_winner
from knockout.services.bracket_builder import build_singles_skeleton, ensure_skeleton, reset_matches
from knockout.services.bracket_errors import BracketError, EventNotFoundError
from tests.helpers import make_event, matches, round1_match, seed_players


def _all_matches(session: Session, event_id: int):
    session.expire_all()
    return session.exec(select(Match).where(Match.event_id == event_id)).all()


# ============================================================================
# ensure_skeleton
# ============================================================================


def test_ensure_skeleton_creates_seven_wired_shells(session: Session):
    event = make_event(session)

    qf_ids = ensure_skeleton(session, event.id, Bracket.MAIN)

    assert len(qf_ids) == 4
    qfs = matches(session, event.id, Bracket.MAIN, Stage.QF)
    sfs = matches(session, event.id, Bracket.MAIN, Stage.SF)
    finals = matches(session, event.id, Bracket.MAIN, Stage.F)
    assert len(sfs) == 2 and len(finals) == 1
    assert [m.id for m in qfs] == qf_ids

    assert [qf.feeds_winner_to for qf in qfs] == [sfs[0].id, sfs[0].id, sfs[1].id, sfs[1].id]
    assert all(sf.feeds_winner_to == finals[0].id for sf in sfs)
    assert finals[0].feeds_winner_to is None
    for m in qfs + sfs + finals:
        assert m.side_a == [] and m.side_b == []
        assert m.winner is None
        assert m.feeds_loser_to is None
        assert m.is_doubles is False
    assert [m.round_num for m in (qfs[0], sfs[0], finals[0])] == [2, 3, 4]


def test_ensure_skeleton_is_idempotent(session: Session):
    event = make_event(session)

    first = ensure_skeleton(session, event.id, Bracket.LOWER)
    topology_before = {m.id: (m.feeds_winner_to, m.feeds_loser_to) for m in _all_matches(session, event.id)}
    second = ensure_skeleton(session, event.id, Bracket.LOWER)
    topology_after = {m.id: (m.feeds_winner_to, m.feeds_loser_to) for m in _all_matches(session, event.id)}

    assert first == second
    assert topology_before == topology_after
    assert len(topology_after) == 7


def test_ensure_skeleton_keeps_brackets_separate(session: Session):
    event = make_event(session)

    main_ids = ensure_skeleton(session, event.id, Bracket.MAIN)
    lower_ids = ensure_skeleton(session, event.id, Bracket.LOWER)

    assert set(main_ids).isdisjoint(lower_ids)
    assert len(_all_matches(session, event.id)) == 14


# ============================================================================
# build_singles_skeleton
# ============================================================================


def test_build_singles_requires_16_players(session: Session):
    event = make_event(session)
    seed_players(session, event.id, count=15)

    with pytest.raises(BracketError, match="Expected 16 players, found 15."):
        build_singles_skeleton(session, event.id)
    assert _all_matches(session, event.id) == []


def test_build_singles_requires_every_player_seeded(session: Session):
    event = make_event(session)
    seed_ids = seed_players(session, event.id)
    player = session.get(Player, seed_ids[7])
    player.seed = None
    session.add(player)
    session.commit()

    with pytest.raises(BracketError, match="must have a seed"):
        build_singles_skeleton(session, event.id)
    assert _all_matches(session, event.id) == []


def test_build_singles_reports_missing_seed(session: Session):
    event = make_event(session)
    seed_ids = seed_players(session, event.id)
    player = session.get(Player, seed_ids[16])
    player.seed = 20
    session.add(player)
    session.commit()

    with pytest.raises(BracketError, match="Missing player with seed 16."):
        build_singles_skeleton(session, event.id)


def test_build_singles_unknown_event(session: Session):
    with pytest.raises(EventNotFoundError):
        build_singles_skeleton(session, 999)


def test_build_singles_creates_canonical_round1(session: Session):
    event = make_event(session)
    seed_ids = seed_players(session, event.id)

    result = build_singles_skeleton(session, event.id)

    assert result["round1_created"] is True
    assert result["wired"] == 8
    round1 = matches(session, event.id, Bracket.MAIN, Stage.R1)
    assert len(round1) == 8
    pairs = [(m.side_a, m.side_b) for m in round1]
    expected = [(1, 16), (8, 9), (5, 12), (4, 13), (3, 14), (6, 11), (7, 10), (2, 15)]
    assert pairs == [([seed_ids[a]], [seed_ids[b]]) for a, b in expected]
    assert len(_all_matches(session, event.id)) == 8 + 7 + 7


def test_build_singles_wires_slots_to_quarterfinals(session: Session):
    event = make_event(session)
    seed_players(session, event.id)

    build_singles_skeleton(session, event.id)

    round1 = matches(session, event.id, Bracket.MAIN, Stage.R1)
    main_qfs = [m.id for m in matches(session, event.id, Bracket.MAIN, Stage.QF)]
    lower_qfs = [m.id for m in matches(session, event.id, Bracket.LOWER, Stage.QF)]
    for slot, m in enumerate(round1):
        assert m.feeds_winner_to == main_qfs[slot // 2]
        assert m.feeds_loser_to == lower_qfs[slot // 2]


def test_build_singles_is_idempotent(session: Session):
    event = make_event(session)
    seed_players(session, event.id)

    build_singles_skeleton(session, event.id)
    before = {m.id: (m.feeds_winner_to, m.feeds_loser_to) for m in _all_matches(session, event.id)}
    result = build_singles_skeleton(session, event.id)
    after = {m.id: (m.feeds_winner_to, m.feeds_loser_to) for m in _all_matches(session, event.id)}

    assert result["round1_created"] is False
    assert before == after


def test_first_round_scenario_feeds_main_and_lower(session: Session):
    event = make_event(session)
    seed_ids = seed_players(session, event.id)
    build_singles_skeleton(session, event.id)

    set_winner(session, round1_match(session, event.id, seed_ids, 1, 16).id, Side.A)
    set_winner(session, round1_match(session, event.id, seed_ids, 8, 9).id, Side.B)

    main_qf0 = matches(session, event.id, Bracket.MAIN, Stage.QF)[0]
    lower_qf0 = matches(session, event.id, Bracket.LOWER, Stage.QF)[0]
    assert (main_qf0.side_a, main_qf0.side_b) == ([seed_ids[1]], [seed_ids[9]])
    assert (lower_qf0.side_a, lower_qf0.side_b) == ([seed_ids[16]], [seed_ids[8]])


def test_rewiring_repropagates_results_recorded_before_wiring(session: Session):
    event = make_event(session)
    seed_ids = seed_players(session, event.id)
    build_singles_skeleton(session, event.id)

    # Simulate results entered while R1 was unwired
    for m in matches(session, event.id, Bracket.MAIN, Stage.R1):
        m.feeds_winner_to = None
        m.feeds_loser_to = None
        session.add(m)
    session.commit()
    set_winner(session, round1_match(session, event.id, seed_ids, 5, 12).id, Side.B)
    assert matches(session, event.id, Bracket.MAIN, Stage.QF)[1].side_a == []

    result = build_singles_skeleton(session, event.id)

    assert result["repropagated"] == 2
    main_qf1 = matches(session, event.id, Bracket.MAIN, Stage.QF)[1]
    lower_qf1 = matches(session, event.id, Bracket.LOWER, Stage.QF)[1]
    assert main_qf1.side_a == [seed_ids[12]]
    assert lower_qf1.side_a == [seed_ids[5]]


def test_rewiring_repairs_stale_placement(session: Session):
    event = make_event(session)
    seed_ids = seed_players(session, event.id)
    build_singles_skeleton(session, event.id)
    r1 = round1_match(session, event.id, seed_ids, 1, 16)
    set_winner(session, r1.id, Side.A)

    # A stale group from the same upstream match sits in MAIN QF0
    main_qf0 = matches(session, event.id, Bracket.MAIN, Stage.QF)[0]
    main_qf0.side_a = [seed_ids[16]]
    session.add(main_qf0)
    session.commit()

    build_singles_skeleton(session, event.id)

    main_qf0 = matches(session, event.id, Bracket.MAIN, Stage.QF)[0]
    assert main_qf0.side_a == [seed_ids[1]]
    assert main_qf0.side_b == []


def test_tampered_round1_is_rejected_without_writes(session: Session):
    event = make_event(session)
    seed_ids = seed_players(session, event.id)
    build_singles_skeleton(session, event.id)
    reset_matches(session, event.id, regenerate_round1=True)

    r1 = round1_match(session, event.id, seed_ids, 1, 16)
    r1.side_b = [seed_ids[2]]
    session.add(r1)
    other = round1_match(session, event.id, seed_ids, 2, 15)
    other.side_a = [seed_ids[16]]
    session.add(other)
    session.commit()

    with pytest.raises(BracketError, match=r"R1 match with seeds \(1,2\) not canonical."):
        build_singles_skeleton(session, event.id)
    assert matches(session, event.id, Bracket.MAIN, Stage.QF) == []
    assert matches(session, event.id, Bracket.LOWER, Stage.QF) == []


def test_partial_round1_is_rejected(session: Session):
    event = make_event(session)
    seed_players(session, event.id)
    build_singles_skeleton(session, event.id)
    victim = matches(session, event.id, Bracket.MAIN, Stage.R1)[3]
    session.delete(victim)
    session.commit()

    with pytest.raises(BracketError, match="Expected 8 R1 matches"):
        build_singles_skeleton(session, event.id)


# ============================================================================
# reset_matches
# ============================================================================


def test_reset_deletes_every_match(session: Session):
    event = make_event(session)
    seed_players(session, event.id)
    build_singles_skeleton(session, event.id)

    result = reset_matches(session, event.id)

    assert result["deleted"] == 22
    assert result["round1_regenerated"] is False
    assert _all_matches(session, event.id) == []


def test_reset_regenerates_round1(session: Session):
    event = make_event(session)
    seed_players(session, event.id)
    build_singles_skeleton(session, event.id)

    result = reset_matches(session, event.id, regenerate_round1=True)

    assert result["message"] == "Matches cleared and R1 regenerated."
    remaining = _all_matches(session, event.id)
    assert len(remaining) == 8
    assert all(m.stage == Stage.R1.value and m.feeds_winner_to is None for m in remaining)


def test_reset_checks_seeding_before_deleting(session: Session):
    event = make_event(session)
    seed_ids = seed_players(session, event.id)
    build_singles_skeleton(session, event.id)
    session.delete(session.get(Player, seed_ids[4]))
    session.commit()

    with pytest.raises(BracketError, match="Expected 16 players, found 15."):
        reset_matches(session, event.id, regenerate_round1=True)
    assert len(_all_matches(session, event.id)) == 22


def test_reset_only_touches_one_event(session: Session):
    event = make_event(session)
    other = make_event(session, name="Other")
    ensure_skeleton(session, event.id, Bracket.MAIN)
    ensure_skeleton(session, other.id, Bracket.MAIN)

    reset_matches(session, event.id)

    assert _all_matches(session, event.id) == []
    assert len(_all_matches(session, other.id)) == 7

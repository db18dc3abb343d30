"""Winner selection per quiz mode.

Player lists are expected in join order (``PlayerSession.joined_at``
ascending); every ranking below is a stable sort so ties keep that order.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, NamedTuple, Sequence, Set

from hoot import db
from hoot.models import Answer, PlayerSession, Question

PROGRESSIVE_WINNERS = 3


class Ranking(NamedTuple):
    winners: List[str]
    scores: List[int]


class SurvivalResult(NamedTuple):
    survivors: List[str]
    eliminated: List[str]


def _by_score(players: Iterable[PlayerSession]) -> List[PlayerSession]:
    return sorted(players, key=lambda p: -(p.total_score or 0))


def select_top_players(players: Sequence[PlayerSession], max_winners: int = 5) -> Ranking:
    """Standard and bonus winners: top ``max_winners`` by score, then only
    players with a wallet and a positive score."""
    top = _by_score(players)[:max_winners]
    eligible = [p for p in top if p.wallet_address and (p.total_score or 0) > 0]
    return Ranking([p.wallet_address for p in eligible], [p.total_score for p in eligible])


def select_question_winners(players: Sequence[PlayerSession]) -> Ranking:
    """Progressive winners: the three best cumulative scores among players
    with a wallet."""
    top = _by_score(p for p in players if p.wallet_address)[:PROGRESSIVE_WINNERS]
    return Ranking([p.wallet_address for p in top], [p.total_score or 0 for p in top])


def _correct_by_player(players: Sequence[PlayerSession], question_ids: Iterable[str]) -> Dict[str, Set[str]]:
    """Map player id -> ids of the given questions that player answered correctly."""
    player_ids = [p.id for p in players]
    question_ids = list(question_ids)
    correct = defaultdict(set)
    if not player_ids or not question_ids:
        return correct
    rows = (
        db.session.query(Answer.player_session_id, Answer.question_id)
        .filter(
            Answer.player_session_id.in_(player_ids),
            Answer.question_id.in_(question_ids),
            Answer.is_correct.is_(True),
        )
        .all()
    )
    for player_id, question_id in rows:
        correct[player_id].add(question_id)
    return correct


def select_survivors(players: Sequence[PlayerSession], questions: Sequence[Question]) -> SurvivalResult:
    """Survival mode: a player with a wallet survives when every question was
    answered correctly. Players without a wallet are left out of both lists."""
    question_ids = {q.id for q in questions}
    correct = _correct_by_player(players, question_ids)
    survivors, eliminated = [], []
    for player in players:
        if not player.wallet_address:
            continue
        if correct[player.id] >= question_ids:
            survivors.append(player.wallet_address)
        else:
            eliminated.append(player.wallet_address)
    return SurvivalResult(survivors, eliminated)


def golden_question_ids(golden_refs, questions: Sequence[Question]) -> Set[str]:
    """Resolve the quiz's golden question references to question ids.

    References are order indices; question id strings are accepted too.
    """
    by_index = {q.order_index: q.id for q in questions}
    known_ids = {q.id for q in questions}
    resolved = set()
    for ref in golden_refs or []:
        if isinstance(ref, bool):
            continue
        if isinstance(ref, int) and ref in by_index:
            resolved.add(by_index[ref])
        elif isinstance(ref, str) and ref in known_ids:
            resolved.add(ref)
        elif isinstance(ref, str) and ref.isdigit() and int(ref) in by_index:
            resolved.add(by_index[int(ref)])
    return resolved


def golden_questions_correct(players: Sequence[PlayerSession], golden_refs, questions: Sequence[Question]) -> bool:
    """True when there is at least one golden question and every player in
    the game answered all golden questions correctly."""
    golden = golden_question_ids(golden_refs, questions)
    if not golden or not players:
        return False
    correct = _correct_by_player(players, golden)
    return all(correct[p.id] >= golden for p in players)

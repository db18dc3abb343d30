from hoot.services.games.winners import (
    golden_question_ids, golden_questions_correct, select_question_winners, select_survivors,
    select_top_players,
)

from conftest import WALLETS


def test_top_players_ranked_by_score_ties_keep_join_order(seed_game, answer):
    game = seed_game(players=WALLETS[:3], questions=1)
    a, b, c = game.players
    answer(a, game.questions[0], elapsed=5000)   # 205
    answer(b, game.questions[0], elapsed=1000)   # 247
    answer(c, game.questions[0], elapsed=5000)   # 205
    ranking = select_top_players(game.players)
    assert ranking.winners == [WALLETS[1], WALLETS[0], WALLETS[2]]
    assert ranking.scores == [247, 205, 205]


def test_top_players_skip_zero_scores_and_missing_wallets(seed_game, answer):
    game = seed_game(players=[WALLETS[0], None, WALLETS[2]], questions=1)
    a, no_wallet, c = game.players
    answer(a, game.questions[0], elapsed=1000)
    answer(no_wallet, game.questions[0], elapsed=0)
    answer(c, game.questions[0], correct=False)
    ranking = select_top_players(game.players)
    assert ranking.winners == [WALLETS[0]]


def test_top_players_capped(seed_game, answer):
    game = seed_game(players=WALLETS[:7], questions=1)
    for player in game.players:
        answer(player, game.questions[0])
    assert len(select_top_players(game.players, 5).winners) == 5


def test_question_winners_are_top_three_with_wallet(seed_game, answer):
    game = seed_game(mode='progressive', players=[None] + WALLETS[:4], questions=1)
    for i, player in enumerate(game.players):
        answer(player, game.questions[0], elapsed=1000 * (i + 1))
    ranking = select_question_winners(game.players)
    assert ranking.winners == WALLETS[:3]


def test_survivors_answered_everything_correctly(seed_game, answer):
    game = seed_game(mode='survival', players=[WALLETS[0], WALLETS[1], None])
    a, b, no_wallet = game.players
    for q in game.questions:
        answer(a, q)
        answer(no_wallet, q)
    answer(b, game.questions[0])
    answer(b, game.questions[1], correct=False)
    result = select_survivors(game.players, game.questions)
    assert result.survivors == [WALLETS[0]]
    assert result.eliminated == [WALLETS[1]]


def test_everyone_survives_a_quiz_without_questions(seed_game):
    game = seed_game(mode='survival', players=WALLETS[:2], questions=0)
    assert select_survivors(game.players, game.questions).survivors == WALLETS[:2]


def test_golden_refs_resolve_indices_and_ids(seed_game):
    game = seed_game(mode='bonus', players=[], questions=3)
    q0, q1, q2 = game.questions
    assert golden_question_ids([0, '2'], game.questions) == {q0.id, q2.id}
    assert golden_question_ids([q1.id, 9, True], game.questions) == {q1.id}
    assert golden_question_ids(None, game.questions) == set()


def test_golden_correct_requires_every_player(seed_game, answer):
    game = seed_game(mode='bonus', players=WALLETS[:2], golden_question_ids=[1])
    a, b = game.players
    answer(a, game.questions[1])
    answer(b, game.questions[1], correct=False)
    assert golden_questions_correct(game.players, [1], game.questions) is False
    assert golden_questions_correct(game.players[:1], [1], game.questions) is True


def test_golden_correct_false_without_golden_questions(seed_game, answer):
    game = seed_game(mode='bonus', players=WALLETS[:1])
    answer(game.players[0], game.questions[0])
    assert golden_questions_correct(game.players, [], game.questions) is False

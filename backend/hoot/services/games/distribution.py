"""Game completion and prize distribution.

``DistributionOrchestrator`` runs one completion request end to end:

    validate -> load -> mode check -> creator check -> idempotency gate
    -> completion check -> mark game completed -> winners/fees/amounts
    -> claim -> contract call(s) -> persist tx hash

The on-chain call is guarded by ``ledger.claim``; the quiz (or, for
progressive quizzes, the per-question payout row) only records a tx hash
after a receipt with status 1.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Mapping, Optional, Sequence, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError

from hoot import db, socketio
from hoot.errors import (
    DistributionInProgress, ModeMismatch, NotFound, OnChainFailure, Unauthorized, ValidationError,
)
from hoot.models import (
    GameSession, PlayerSession, Question, QuestionPayout, Quiz,
    GAME_COMPLETED, QUIZ_COMPLETED, ZERO_ADDRESS,
)
from hoot.services.chain import PrizeContract, TX_REVERTED
from hoot.services.games import ledger
from hoot.services.games.completion import (
    advance_game_status, already_distributed, validate_game_completion, validate_question_completion,
)
from hoot.services.games.prizes import (
    BonusPrize, PrizeDistribution, PrizePool, ProgressivePrize, StandardPrize, SurvivalPrize,
    PPM, PROGRESSIVE_TREASURY_RATIO, calculate_distribution,
)
from hoot.services.games.treasury import FeeSettings, TreasuryFeeResolver
from hoot.services.games.winners import (
    golden_questions_correct, select_question_winners, select_survivors, select_top_players,
)

ALREADY_DISTRIBUTED = 'Prizes already distributed'
# Per-question prizes use fixed ppm ratios, so the contract fee is never read for them
PROGRESSIVE_FEE = FeeSettings(PROGRESSIVE_TREASURY_RATIO, PPM)


@dataclass(frozen=True)
class DistributionConfig:
    rpc_url: str
    distributor_key: Optional[str]
    default_decimals: int = 18
    default_fee: FeeSettings = FeeSettings(100000, 1000000)
    receipt_timeout: int = 120
    max_winners: int = 5
    claim_lease: int = 600

    @classmethod
    def from_mapping(cls, config: Mapping) -> 'DistributionConfig':
        return cls(
            rpc_url=config.get('RPC_URL', 'http://localhost:8545'),
            distributor_key=config.get('PRIZE_DISTRIBUTOR_PRIVATE_KEY'),
            default_decimals=int(config.get('DEFAULT_TOKEN_DECIMALS', 18)),
            default_fee=FeeSettings(
                int(config.get('DEFAULT_TREASURY_FEE_PERCENT', 100000)),
                int(config.get('DEFAULT_FEE_PRECISION', 1000000)),
            ),
            receipt_timeout=int(config.get('TX_RECEIPT_TIMEOUT_SEC', 120)),
            max_winners=int(config.get('MAX_STANDARD_WINNERS', 5)),
            claim_lease=int(config.get('CLAIM_LEASE_SEC', 600)),
        )


def validate_required(payload: Mapping, fields: Sequence[str]) -> None:
    for name in fields:
        value = payload.get(name)
        if value is None or value == '' or value == []:
            raise ValidationError(f'Missing required field: {name}')


def addresses_match(a: Optional[str], b: Optional[str]) -> bool:
    if not a or not b:
        return False
    return a.lower() == b.lower()


def _question_index(value) -> int:
    if isinstance(value, bool):
        raise ValidationError('question_index must be a non-negative integer')
    try:
        index = int(value)
    except (TypeError, ValueError):
        raise ValidationError('question_index must be a non-negative integer')
    if index < 0 or str(index) != str(value).strip():
        raise ValidationError('question_index must be a non-negative integer')
    return index


def _units(values):
    return [str(v) for v in values]


class DistributionOrchestrator:

    def __init__(self, config: DistributionConfig, chain: PrizeContract):
        self.config = config
        self.chain = chain
        self.treasury = TreasuryFeeResolver(chain, config.default_decimals, config.default_fee)

    # ---- request entry points ----

    def complete_game(self, payload: Mapping) -> dict:
        game, quiz = self._load(payload, 'standard')
        if already_distributed(quiz):
            return self._cached(quiz)
        players, questions = self._finish_game(game, quiz)
        ranking = select_top_players(players, self.config.max_winners)
        current_app.logger.info(f"[winners] game={game.id} winners={ranking.winners} scores={ranking.scores}")

        tx_hash = None
        if quiz.contract_address and (quiz.prize_amount or 0) > 0:
            plan = calculate_distribution(StandardPrize(), self._pool(quiz), ranking.winners)
            self._log_plan(quiz, plan)
            tx_hash = self._execute(quiz, quiz.contract_address, 'standard', [
                ('distributePrize', [str(quiz.id), plan.winners, plan.amounts]),
            ], status=QUIZ_COMPLETED)
        else:
            current_app.logger.info(f"[payout-skip] quiz={quiz.id} no contract or no prize")

        return self._summary('Game completed successfully', quiz, tx_hash,
                             winners=ranking.winners, scores=ranking.scores)

    def complete_bonus_game(self, payload: Mapping) -> dict:
        game, quiz = self._load(payload, 'bonus')
        if already_distributed(quiz):
            return self._cached(quiz)
        players, questions = self._finish_game(game, quiz)
        golden_correct = golden_questions_correct(players, quiz.golden_question_ids, questions)
        ranking = select_top_players(players, self.config.max_winners)
        current_app.logger.info(
            f"[winners] game={game.id} winners={ranking.winners} scores={ranking.scores} golden={golden_correct}"
        )

        tx_hash = None
        extras = {'golden_questions_correct': golden_correct}
        prize = quiz.prize_amount or 0
        bounty = quiz.extra_bounty_amount or 0
        if quiz.contract_address and (prize > 0 or bounty > 0):
            plan = calculate_distribution(BonusPrize(bounty, golden_correct), self._pool(quiz), ranking.winners)
            self._log_plan(quiz, plan)
            extras.update(
                extra_bounty_distributed=plan.extra_bounty_distributed,
                extra_treasury_amount=str(plan.extra_treasury_amount),
            )
            tx_hash = self._execute(quiz, quiz.contract_address, 'bonus', [
                ('setGoldenQuestionsResult', [str(quiz.id), golden_correct]),
                ('distributePrize', [str(quiz.id), plan.winners, plan.amounts]),
            ], status=QUIZ_COMPLETED)
        else:
            current_app.logger.info(f"[payout-skip] quiz={quiz.id} no contract or no prize")

        return self._summary('Bonus game completed successfully', quiz, tx_hash,
                             winners=ranking.winners, scores=ranking.scores, **extras)

    def complete_survival_game(self, payload: Mapping) -> dict:
        game, quiz = self._load(payload, 'survival')
        if already_distributed(quiz):
            return self._cached(quiz)
        players, questions = self._finish_game(game, quiz)
        result = select_survivors(players, questions)
        current_app.logger.info(
            f"[survivors] game={game.id} survivors={len(result.survivors)} eliminated={len(result.eliminated)}"
        )

        tx_hash = None
        if quiz.contract_address and (quiz.prize_amount or 0) > 0:
            plan = calculate_distribution(SurvivalPrize(), self._pool(quiz), result.survivors)
            self._log_plan(quiz, plan)
            tx_hash = self._execute(quiz, quiz.contract_address, 'survival', [
                ('setSurvivors', [str(quiz.id), plan.winners]),
                ('distributePrize', [str(quiz.id)]),
            ], status=QUIZ_COMPLETED)
        else:
            current_app.logger.info(f"[payout-skip] quiz={quiz.id} no contract or no prize")

        return self._summary(
            'Survival game completed successfully', quiz, tx_hash,
            survivors=result.survivors,
            eliminated=result.eliminated,
            survival_count=len(result.survivors),
            eliminated_count=len(result.eliminated),
        )

    def complete_progressive_game(self, payload: Mapping) -> dict:
        game, quiz = self._load(payload, 'progressive', ('question_index',))
        question_index = _question_index(payload.get('question_index'))

        payout = QuestionPayout.query.filter_by(quiz_id=quiz.id, question_index=question_index).first()
        if payout is not None and payout.contract_tx_hash:
            return self._cached(payout)
        if already_distributed(quiz):
            return self._cached(quiz)

        question = Question.query.filter_by(quiz_id=quiz.id, order_index=question_index).first()
        if question is None:
            raise NotFound('Question not found')
        questions = Question.query.filter_by(quiz_id=quiz.id).order_by(Question.order_index).all()
        players = self._players(game)
        validate_question_completion(players, question)

        last_index = max(q.order_index for q in questions)
        if question_index == last_index:
            self._mark_completed(game)

        ranking = select_question_winners(players)
        current_app.logger.info(
            f"[winners] game={game.id} question={question_index} winners={ranking.winners} scores={ranking.scores}"
        )

        tx_hash = None
        extras = {'question_index': question_index}
        if quiz.contract_address and (quiz.prize_amount or 0) > 0 and ranking.winners:
            plan = calculate_distribution(ProgressivePrize(len(questions)), self._pool(quiz, PROGRESSIVE_FEE),
                                          ranking.winners)
            self._log_plan(quiz, plan)
            extras.update(amounts=_units(plan.amounts), treasury_amount=str(plan.treasury_fee))
            padded = (list(plan.winners) + [ZERO_ADDRESS] * 3)[:3]
            payout = self._payout_row(quiz, question_index)
            tx_hash = self._execute(payout, quiz.contract_address, 'progressive', [
                ('distributeQuestionPrize', [str(quiz.id), padded]),
            ])
        else:
            current_app.logger.info(
                f"[payout-skip] quiz={quiz.id} question={question_index} no contract, no prize, or no winners"
            )
            ledger.mark_skipped(self._payout_row(quiz, question_index))
        self._close_progressive_quiz(quiz, questions)

        return self._summary(f'Question {question_index} completed successfully', quiz, tx_hash,
                             winners=ranking.winners, scores=ranking.scores, **extras)

    # ---- shared steps ----

    def _load(self, payload: Mapping, mode: str, extra_fields: Tuple[str, ...] = ()):
        validate_required(payload, ('game_session_id', 'creator_wallet_address') + extra_fields)
        game = db.session.get(GameSession, str(payload['game_session_id']))
        if game is None or game.quiz is None:
            raise NotFound('Game session not found')
        quiz = game.quiz
        if quiz.mode != mode:
            raise ModeMismatch(f'This function is only for {mode} quizzes')
        if not quiz.creator_address:
            raise Unauthorized('Quiz creator address not found in database')
        if not addresses_match(quiz.creator_address, payload['creator_wallet_address']):
            raise Unauthorized('Unauthorized: Only the quiz creator can distribute prizes')
        current_app.logger.info(f"[complete] mode={mode} game={game.id} quiz={quiz.id} status={game.status}")
        return game, quiz

    def _players(self, game: GameSession):
        return (
            PlayerSession.query.filter_by(game_session_id=game.id)
            .order_by(PlayerSession.joined_at, PlayerSession.id)
            .all()
        )

    def _finish_game(self, game: GameSession, quiz: Quiz):
        questions = Question.query.filter_by(quiz_id=quiz.id).order_by(Question.order_index).all()
        players = self._players(game)
        validate_game_completion(players, len(questions))
        self._mark_completed(game)
        return players, questions

    def _mark_completed(self, game: GameSession) -> None:
        if advance_game_status(game, GAME_COMPLETED):
            current_app.logger.info(f"[game-completed] game={game.id}")
            socketio.emit('state_update', {'room_code': game.room_code, 'status': game.status},
                          to=f"game:{game.room_code}", namespace='/ws')

    def _pool(self, quiz: Quiz, fee: Optional[FeeSettings] = None) -> PrizePool:
        decimals = self.treasury.resolve_decimals(quiz.prize_token)
        if fee is None:
            fee = self.treasury.resolve_fee(quiz.contract_address, quiz.mode)
        current_app.logger.info(
            f"[treasury] quiz={quiz.id} decimals={decimals} fee={fee.fee_percent}/{fee.fee_precision}"
        )
        return PrizePool(quiz.prize_amount or 0, decimals, fee.fee_percent, fee.fee_precision)

    def _log_plan(self, quiz: Quiz, plan: PrizeDistribution) -> None:
        current_app.logger.info(
            f"[plan] quiz={quiz.id} total={plan.total_prize} treasury={plan.treasury_fee} "
            f"distributed={plan.distributed_prize} amounts={plan.amounts}"
        )

    def _payout_row(self, quiz: Quiz, question_index: int) -> QuestionPayout:
        row = QuestionPayout.query.filter_by(quiz_id=quiz.id, question_index=question_index).first()
        if row is not None:
            return row
        row = QuestionPayout(quiz_id=quiz.id, question_index=question_index)
        db.session.add(row)
        try:
            db.session.commit()
        except IntegrityError:
            # Created concurrently; the unique constraint kept one row
            db.session.rollback()
            row = QuestionPayout.query.filter_by(quiz_id=quiz.id, question_index=question_index).one()
        return row

    def _close_progressive_quiz(self, quiz: Quiz, questions) -> None:
        """Complete the quiz once every question is paid or skipped; it keeps
        the hash of the highest paid question."""
        rows = QuestionPayout.query.filter_by(quiz_id=quiz.id).order_by(QuestionPayout.question_index).all()
        done = [r for r in rows if r.contract_tx_hash or r.skipped]
        if len(done) < len(questions):
            return
        paid = [r.contract_tx_hash for r in done if r.contract_tx_hash]
        ledger.settle(quiz, paid[-1] if paid else None, status=QUIZ_COMPLETED)
        current_app.logger.info(f"[quiz-completed] quiz={quiz.id} paid={len(paid)} skipped={len(done) - len(paid)}")

    def _execute(self, row, contract_address: str, mode: str, calls, **settle_values) -> str:
        """Claim ``row`` and send ``calls``; the last call is the payout.

        Returns the confirmed payout tx hash.
        """
        token = ledger.claim(row)
        if token is None:
            token = self._reconcile(row, settle_values)
            if token is None:
                return row.contract_tx_hash

        *setup, (payout_fn, payout_args) = calls
        for fn_name, args in setup:
            sent = self.chain.submit(contract_address, mode, fn_name, args)
            result = self.chain.wait_for_receipt(sent.tx_hash) if sent.submitted else sent
            if not result.confirmed:
                ledger.release(row, token)
                raise OnChainFailure(f'{fn_name} failed: {result.error or result.status}')

        sent = self.chain.submit(contract_address, mode, payout_fn, payout_args)
        if not sent.submitted:
            ledger.release(row, token)
            raise OnChainFailure(f'{payout_fn} failed: {sent.error or sent.status}')
        ledger.record_pending(row, token, sent.tx_hash)
        current_app.logger.info(f"[payout-sent] row={row.id} fn={payout_fn} tx={sent.tx_hash}")

        result = self.chain.wait_for_receipt(sent.tx_hash)
        if result.confirmed:
            ledger.settle(row, sent.tx_hash, **settle_values)
            current_app.logger.info(f"[payout-confirmed] row={row.id} tx={sent.tx_hash}")
            return sent.tx_hash
        if result.status == TX_REVERTED:
            ledger.release(row, token)
            raise OnChainFailure('Transaction failed')
        # Outcome unknown: keep the claim so a retry reconciles this hash instead of paying twice
        current_app.logger.warning(f"[payout-pending] row={row.id} tx={sent.tx_hash} {result.error or ''}")
        raise OnChainFailure(f'Transaction {sent.tx_hash} not confirmed yet; retry to reconcile')

    def _reconcile(self, row, settle_values) -> Optional[str]:
        """Handle a lost claim. Returns a fresh claim token when the previous
        attempt reverted, None once the row holds a tx hash."""
        if row.contract_tx_hash:
            return None
        pending = row.pending_tx_hash
        if not pending:
            cutoff = datetime.now(timezone.utc) - timedelta(seconds=self.config.claim_lease)
            token = ledger.take_over(row, row.claim_token, claimed_before=cutoff)
            if token is None:
                raise DistributionInProgress('Prize distribution already in progress')
            current_app.logger.warning(f"[payout-retry] row={row.id} claim expired before any transaction was sent")
            return token
        result = self.chain.check_receipt(pending)
        if result.confirmed:
            ledger.settle(row, pending, **settle_values)
            current_app.logger.info(f"[payout-reconciled] row={row.id} tx={pending}")
            return None
        if result.status == TX_REVERTED:
            token = ledger.take_over(row, row.claim_token)
            if token is not None:
                current_app.logger.info(f"[payout-retry] row={row.id} previous tx={pending} reverted")
                return token
        raise DistributionInProgress(f'Prize distribution transaction {pending} is still pending')

    def _cached(self, row) -> dict:
        current_app.logger.info(f"[already-distributed] row={row.id} tx={row.contract_tx_hash}")
        return {
            'success': True,
            'message': ALREADY_DISTRIBUTED,
            'contract_tx_hash': row.contract_tx_hash,
        }

    def _summary(self, message: str, quiz: Quiz, tx_hash: Optional[str], **fields) -> dict:
        body = {'success': True, 'message': message}
        body.update(fields)
        body['contract_address'] = quiz.contract_address
        body['prize_distributed'] = tx_hash is not None
        if tx_hash:
            body['contract_tx_hash'] = tx_hash
        return body

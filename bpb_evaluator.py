"""Board evaluation: exhaustive expectation search and Monte Carlo playouts.

Both strategies score a board by the material a random-but-greedy game
is expected to produce. At every ply the side to move must capture when
it can, picks uniformly among the moves it has, and passes when it has
none. Each capture is worth the attacker's on-capture value, the
victim's on-captured value (kings give none) and a king support bonus
of ``allied kings x king support value``. The support bonus counts
double the first time a given piece (by id) captures within one
evaluation.
"""

from __future__ import annotations

from typing import List, Optional, Set, Union
import logging
import random
import time

from bpb_engine import (
    MAX_SLIDE,
    Board,
    Color,
    Move,
    PieceType,
    all_moves,
    apply_move,
    opposite,
    split_moves,
    undo_move,
)
from bpb_telemetry import EvalEndEvent, EvalStartEvent, TelemetrySink, emit_dataclass_event
from bpb_values import PieceValueTable

EXHAUSTIVE_PIECE_THRESHOLD = 6
MAX_DEPTH = 6
SEARCH_STALL_LIMIT = 2
PLAYOUTS = 1000
MAX_PLAYOUT_PLIES = 100
PLAYOUT_STALL_LIMIT = 4

EXHAUSTIVE = "exhaustive"
MONTE_CARLO = "monte_carlo"

logger = logging.getLogger("bpb")


def capture_score(move: Move, board: Board, values: PieceValueTable, captured_ids: Set[int]) -> float:
    """Score ``move`` on ``board`` (before it is applied).

    Does not touch ``captured_ids``; callers record the attacker themselves.
    """
    attacker = move.piece
    score = values.on_capture(attacker)
    if move.captured is not None:
        score += values.on_captured(move.captured)
    support = board.count_kings(attacker.color) * values.king_support(attacker.color)
    if attacker.id not in captured_ids:
        support *= 2
    return score + support


def static_heuristic(board: Board, values: PieceValueTable) -> float:
    total = 0.0
    non_kings = {Color.WHITE: 0, Color.BLACK: 0}
    for _, _, piece in board.pieces():
        total += values.on_capture(piece)
        if piece.kind != PieceType.KING:
            total += values.on_captured(piece)
            non_kings[piece.color] += 1
    for color, count in non_kings.items():
        total += count * values.king_support(color)
    return total


def _mean(scores: List[float]) -> float:
    return sum(scores) / len(scores)


class ExhaustiveEvaluator:
    name = EXHAUSTIVE

    def __init__(
        self,
        values: PieceValueTable,
        max_depth: int = MAX_DEPTH,
        max_slide: int = MAX_SLIDE,
        telemetry_sink: Optional[TelemetrySink] = None,
    ) -> None:
        self.values = values
        self.max_depth = max_depth
        self.max_slide = max_slide
        self.telemetry_sink = telemetry_sink
        self.last_nodes = 0

    def evaluate(self, board: Board, side_to_move: Color = Color.WHITE) -> float:
        start = time.perf_counter()
        emit_dataclass_event(
            self.telemetry_sink,
            "eval_start",
            EvalStartEvent(strategy=self.name, pieces=board.count_pieces(), side_to_move=Color(side_to_move).value),
        )
        self.last_nodes = 0
        work = board.copy()
        captured_ids: Set[int] = set()
        score = self._search(work, Color(side_to_move), 0, 0, captured_ids)
        logger.debug("exhaustive evaluation: %.2f over %d nodes", score, self.last_nodes)
        emit_dataclass_event(
            self.telemetry_sink,
            "eval_end",
            EvalEndEvent(
                strategy=self.name,
                score=score,
                nodes=self.last_nodes,
                playouts=0,
                elapsed_ms=int((time.perf_counter() - start) * 1000),
            ),
        )
        return score

    def _search(self, board: Board, side: Color, depth: int, stall: int, captured_ids: Set[int]) -> float:
        self.last_nodes += 1
        if stall >= SEARCH_STALL_LIMIT:
            return 0.0
        if depth > self.max_depth:
            return static_heuristic(board, self.values)

        captures, quiet = split_moves(all_moves(side, board, self.max_slide))
        other = opposite(side)

        if captures:
            scores: List[float] = []
            for move in captures:
                score = capture_score(move, board, self.values, captured_ids)
                first = move.piece.id not in captured_ids
                if first:
                    captured_ids.add(move.piece.id)
                apply_move(board, move)
                try:
                    score += self._search(board, other, depth + 1, 0, captured_ids)
                finally:
                    undo_move(board, move)
                    if first:
                        captured_ids.discard(move.piece.id)
                scores.append(score)
            return _mean(scores)

        if quiet:
            scores = []
            for move in quiet:
                apply_move(board, move)
                try:
                    scores.append(self._search(board, other, depth + 1, stall + 1, captured_ids))
                finally:
                    undo_move(board, move)
            return _mean(scores)

        return self._search(board, other, depth + 1, stall + 1, captured_ids)


class MonteCarloEvaluator:
    name = MONTE_CARLO

    def __init__(
        self,
        values: PieceValueTable,
        playouts: int = PLAYOUTS,
        max_plies: int = MAX_PLAYOUT_PLIES,
        max_slide: int = MAX_SLIDE,
        rng: Optional[random.Random] = None,
        telemetry_sink: Optional[TelemetrySink] = None,
    ) -> None:
        self.values = values
        self.playouts = playouts
        self.max_plies = max_plies
        self.max_slide = max_slide
        self.rng = rng if rng is not None else random.Random()
        self.telemetry_sink = telemetry_sink
        self.last_playouts = 0

    def evaluate(self, board: Board, side_to_move: Color = Color.WHITE) -> float:
        start = time.perf_counter()
        emit_dataclass_event(
            self.telemetry_sink,
            "eval_start",
            EvalStartEvent(strategy=self.name, pieces=board.count_pieces(), side_to_move=Color(side_to_move).value),
        )
        snapshot = board.copy()
        self.last_playouts = 0
        total = 0.0
        for _ in range(self.playouts):
            total += self.playout(snapshot.copy(), Color(side_to_move))
            self.last_playouts += 1
        score = total / self.playouts if self.playouts > 0 else 0.0
        logger.debug("monte carlo evaluation: %.2f over %d playouts", score, self.last_playouts)
        emit_dataclass_event(
            self.telemetry_sink,
            "eval_end",
            EvalEndEvent(
                strategy=self.name,
                score=score,
                nodes=0,
                playouts=self.last_playouts,
                elapsed_ms=int((time.perf_counter() - start) * 1000),
            ),
        )
        return score

    def playout(self, board: Board, side: Color) -> float:
        """Play one random game on ``board`` (mutated) and return its capture score."""
        captured_ids: Set[int] = set()
        no_capture = 0
        score = 0.0
        for _ in range(self.max_plies):
            captures, quiet = split_moves(all_moves(side, board, self.max_slide))
            move: Optional[Move] = None
            if captures:
                move = self.rng.choice(captures)
                score += capture_score(move, board, self.values, captured_ids)
                captured_ids.add(move.piece.id)
                no_capture = 0
            elif quiet:
                move = self.rng.choice(quiet)
                no_capture += 1
            else:
                no_capture += 1
            if no_capture >= PLAYOUT_STALL_LIMIT:
                break
            if move is not None:
                apply_move(board, move)
            side = opposite(side)
        return score


class Evaluator:
    """Picks the exhaustive search for sparse boards, Monte Carlo otherwise."""

    def __init__(
        self,
        values: PieceValueTable,
        threshold: int = EXHAUSTIVE_PIECE_THRESHOLD,
        max_depth: int = MAX_DEPTH,
        playouts: int = PLAYOUTS,
        max_slide: int = MAX_SLIDE,
        rng: Optional[random.Random] = None,
        telemetry_sink: Optional[TelemetrySink] = None,
    ) -> None:
        self.values = values
        self.threshold = threshold
        self.exhaustive = ExhaustiveEvaluator(
            values, max_depth=max_depth, max_slide=max_slide, telemetry_sink=telemetry_sink
        )
        self.monte_carlo = MonteCarloEvaluator(
            values, playouts=playouts, max_slide=max_slide, rng=rng, telemetry_sink=telemetry_sink
        )
        self.last_strategy: Optional[str] = None

    def choose(self, board: Board) -> Union[ExhaustiveEvaluator, MonteCarloEvaluator]:
        if board.count_pieces() < self.threshold:
            return self.exhaustive
        return self.monte_carlo

    def evaluate(self, board: Board, side_to_move: Color = Color.WHITE) -> float:
        strategy = self.choose(board)
        self.last_strategy = strategy.name
        return strategy.evaluate(board, side_to_move)


def evaluate(board: Board, values: PieceValueTable, side_to_move: Color = Color.WHITE) -> float:
    return Evaluator(values).evaluate(board, side_to_move)

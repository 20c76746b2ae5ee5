"""Randomized search for holding-area placements that maximize the board score."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple
import logging
import random
import time

from bpb_engine import Board, Color, Coord, Piece, piece_moves
from bpb_evaluator import Evaluator
from bpb_telemetry import PlacementEndEvent, TelemetrySink, emit_dataclass_event
from bpb_values import PieceValueTable

PLACEMENT_TRIALS = 300

OK = "ok"
EMPTY = "empty"
EXHAUSTED = "exhausted"

logger = logging.getLogger("bpb.placement")


@dataclass(frozen=True)
class PlacementResult:
    success: bool
    reason: str
    score: Optional[float]
    assignment: Tuple[Tuple[int, Coord], ...]
    trials: int
    successful_trials: int


def candidate_squares(piece: Piece, board: Board, max_slide: int) -> List[Coord]:
    """Empty squares worth trying for ``piece``.

    Squares the pieces already on the board can reach, plus squares from
    which ``piece`` would attack one of them. Falls back to every empty
    square when neither set has anything.
    """
    empty = board.empty_squares()
    empty_set = set(empty)
    reach: Set[Coord] = set()
    for row, col, placed in board.pieces():
        for dst in piece_moves(placed, row, col, board, max_slide):
            if dst in empty_set:
                reach.add(dst)

    attack: Set[Coord] = set()
    for row, col in empty:
        board.cells[row][col] = piece
        try:
            if any(board.cells[r][c] is not None for r, c in piece_moves(piece, row, col, board, max_slide)):
                attack.add((row, col))
        finally:
            board.cells[row][col] = None

    candidates = reach | attack
    if not candidates:
        return empty
    return sorted(candidates)


class PlacementOptimizer:
    def __init__(
        self,
        values: PieceValueTable,
        trials: int = PLACEMENT_TRIALS,
        evaluator: Optional[Evaluator] = None,
        rng: Optional[random.Random] = None,
        side_to_move: Color = Color.WHITE,
        telemetry_sink: Optional[TelemetrySink] = None,
    ) -> None:
        self.values = values
        self.trials = trials
        self.evaluator = evaluator if evaluator is not None else Evaluator(values)
        self.rng = rng if rng is not None else random.Random()
        self.side_to_move = side_to_move
        self.telemetry_sink = telemetry_sink
        self._board: Optional[Board] = None
        self._snapshot: Optional[Board] = None

    @property
    def max_slide(self) -> int:
        return self.evaluator.exhaustive.max_slide

    def _trial(self, pieces: List[Piece], base: Board) -> Optional[Tuple[Board, Dict[int, Coord]]]:
        board = base.copy()
        self.rng.shuffle(pieces)
        placed: Dict[int, Coord] = {}
        for piece in pieces:
            candidates = candidate_squares(piece, board, self.max_slide)
            if not candidates:
                return None
            row, col = self.rng.choice(candidates)
            board.cells[row][col] = piece.copy()
            placed[piece.id] = (row, col)
        return board, placed

    def suggest(self, pieces: Sequence[Piece], board: Board) -> PlacementResult:
        start = time.perf_counter()
        slots: Dict[int, Coord] = {}
        for piece in pieces:
            slot = board.find_holding(piece.id)
            if slot is None:
                raise ValueError(f"{piece} is not in the holding area")
            slots[piece.id] = slot

        if not pieces:
            return self._finish(PlacementResult(False, EMPTY, None, (), 0, 0), start)

        # Candidate boards never contain the holding pieces themselves.
        base = board.copy()
        for row, col in slots.values():
            base.holding[row][col] = None

        order = list(pieces)
        best: Optional[Tuple[float, Board, Dict[int, Coord]]] = None
        successes = 0
        for _ in range(self.trials):
            outcome = self._trial(order, base)
            if outcome is None:
                continue
            successes += 1
            trial_board, placed = outcome
            score = self.evaluator.evaluate(trial_board, self.side_to_move)
            if best is None or score > best[0]:
                best = (score, trial_board, placed)

        if best is None:
            return self._finish(PlacementResult(False, EXHAUSTED, None, (), self.trials, 0), start)

        score, best_board, placed = best
        self._board = board
        self._snapshot = board.copy()
        board.restore(best_board)
        assignment = tuple(sorted(placed.items(), key=lambda item: item[1]))
        result = PlacementResult(True, OK, score, assignment, self.trials, successes)
        return self._finish(result, start)

    def revert(self) -> bool:
        if self._board is None or self._snapshot is None:
            return False
        self._board.restore(self._snapshot)
        self._board = None
        self._snapshot = None
        return True

    def _finish(self, result: PlacementResult, start: float) -> PlacementResult:
        if result.success:
            logger.info(
                "placement: best score %.2f over %d/%d successful trials",
                result.score, result.successful_trials, result.trials,
            )
        else:
            logger.info("placement failed: %s", result.reason)
        emit_dataclass_event(
            self.telemetry_sink,
            "placement_end",
            PlacementEndEvent(
                success=result.success,
                reason=result.reason,
                trials=result.trials,
                successful_trials=result.successful_trials,
                best_score=result.score,
                assignment=list(result.assignment),
                elapsed_ms=int((time.perf_counter() - start) * 1000),
            ),
        )
        return result

"""Session: the single owner of the board, values and engine controllers."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple
import random

from PySide6.QtCore import QObject, Signal

from bpb_engine import (
    COLS,
    HOLDING_COLS,
    HOLDING_ROWS,
    MAX_SLIDE,
    ROWS,
    Board,
    BoardStats,
    Color,
    Coord,
    Move,
    Piece,
    PieceType,
    apply_move,
    board_stats,
    check_coord,
    check_holding_coord,
)
from bpb_evaluator import MAX_DEPTH, PLAYOUTS, Evaluator
from bpb_placement import PLACEMENT_TRIALS, PlacementOptimizer, PlacementResult
from bpb_simulator import STEP_DELAY_MS, Simulator
from bpb_telemetry import TelemetrySink
from bpb_values import PieceValueTable

BOARD = "board"
HOLDING = "holding"

Cell = Tuple[str, int, int]


class Session(QObject):
    """Board edits come in through the methods below; ``cells_changed``
    tells the display which ``(area, row, col)`` cells to redraw."""

    cells_changed = Signal(object)

    def __init__(
        self,
        values: Optional[PieceValueTable] = None,
        max_slide: int = MAX_SLIDE,
        max_depth: int = MAX_DEPTH,
        playouts: int = PLAYOUTS,
        trials: int = PLACEMENT_TRIALS,
        delay_ms: int = STEP_DELAY_MS,
        seed: Optional[int] = None,
        telemetry_sink: Optional[TelemetrySink] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.board = Board()
        self.values = values if values is not None else PieceValueTable()
        self.max_slide = max_slide
        self._next_id = 0
        rng = random.Random(seed)
        self.evaluator = Evaluator(
            self.values,
            max_depth=max_depth,
            playouts=playouts,
            max_slide=max_slide,
            rng=rng,
            telemetry_sink=telemetry_sink,
        )
        self.simulator = Simulator(self, rng=rng, delay_ms=delay_ms, telemetry_sink=telemetry_sink, parent=self)
        self.optimizer = PlacementOptimizer(
            self.values,
            trials=trials,
            evaluator=self.evaluator,
            rng=rng,
            telemetry_sink=telemetry_sink,
        )

    def _changed(self, cells: List[Cell]) -> None:
        if cells:
            self.cells_changed.emit(cells)

    def _all_cells(self) -> List[Cell]:
        cells = [(BOARD, r, c) for r in range(ROWS) for c in range(COLS)]
        cells.extend((HOLDING, r, c) for r in range(HOLDING_ROWS) for c in range(HOLDING_COLS))
        return cells

    def new_piece(self, kind: PieceType, color: Color, facing: int = 0) -> Piece:
        self._next_id += 1
        return Piece(self._next_id, kind, color, facing)

    def place(self, row: int, col: int, piece: Piece) -> bool:
        if not self.board.put(row, col, piece):
            return False
        self._changed([(BOARD, row, col)])
        return True

    def remove(self, row: int, col: int) -> Optional[Piece]:
        piece = self.board.take(row, col)
        if piece is not None:
            self._changed([(BOARD, row, col)])
        return piece

    def move(self, src: Coord, dst: Coord) -> bool:
        check_coord(*src)
        if src == dst or self.board.is_blocked(*dst):
            return False
        piece = self.board.take(*src)
        if piece is None:
            return False
        self.board.put(dst[0], dst[1], piece)
        self._changed([(BOARD, src[0], src[1]), (BOARD, dst[0], dst[1])])
        return True

    def apply_move(self, move: Move) -> None:
        apply_move(self.board, move)
        self._changed([(BOARD, move.src[0], move.src[1]), (BOARD, move.dst[0], move.dst[1])])

    def hold(self, row: int, col: int, piece: Piece) -> None:
        self.board.holding_put(row, col, piece)
        self._changed([(HOLDING, row, col)])

    def unhold(self, row: int, col: int) -> Optional[Piece]:
        piece = self.board.holding_take(row, col)
        if piece is not None:
            self._changed([(HOLDING, row, col)])
        return piece

    def move_to_holding(self, src: Coord, dst: Coord) -> bool:
        check_holding_coord(*dst)
        piece = self.board.take(*src)
        if piece is None:
            return False
        self.board.holding_put(dst[0], dst[1], piece)
        self._changed([(BOARD, src[0], src[1]), (HOLDING, dst[0], dst[1])])
        return True

    def move_from_holding(self, src: Coord, dst: Coord) -> bool:
        check_coord(*dst)
        piece = self.board.holding_get(*src)
        if piece is None or self.board.is_blocked(*dst):
            return False
        self.board.holding_take(*src)
        self.board.put(dst[0], dst[1], piece)
        self._changed([(HOLDING, src[0], src[1]), (BOARD, dst[0], dst[1])])
        return True

    def toggle_blocked(self, row: int, col: int) -> bool:
        blocked = self.board.toggle_blocked(row, col)
        self._changed([(BOARD, row, col)])
        return blocked

    def rotate(self, row: int, col: int) -> bool:
        piece = self.board.get(row, col)
        if piece is None or piece.kind != PieceType.PAWN:
            return False
        piece.facing = (piece.facing + 1) % 4
        self._changed([(BOARD, row, col)])
        return True

    def clear(self) -> None:
        self.board.clear()
        self._next_id = 0
        self._changed(self._all_cells())

    def restore_board(self, snapshot: Board) -> None:
        self.board.restore(snapshot)
        self._changed(self._all_cells())

    def set_value(self, key: str, slot: int, raw) -> float:
        return self.values.set(key, slot, raw)

    def reset_values(self) -> None:
        self.values.reset()

    def evaluate(self, side_to_move: Color = Color.WHITE) -> float:
        return self.evaluator.evaluate(self.board, side_to_move)

    def stats(self) -> Tuple[BoardStats, float]:
        return board_stats(self.board), self.evaluate()

    def suggest(self, pieces: Optional[Sequence[Piece]] = None) -> PlacementResult:
        if pieces is None:
            pieces = [piece for _, _, piece in self.board.holding_pieces()]
        result = self.optimizer.suggest(pieces, self.board)
        if result.success:
            self._changed(self._all_cells())
        return result

    def revert_suggestion(self) -> bool:
        if not self.optimizer.revert():
            return False
        self._changed(self._all_cells())
        return True

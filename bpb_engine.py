"""Board model and move rules for the Backpack Battles chess board (7x9)."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Set, Tuple

ROWS = 7
COLS = 9
HOLDING_ROWS = 2
HOLDING_COLS = 9
MAX_SLIDE = 5

Coord = Tuple[int, int]


class Color(str, Enum):
    WHITE = "white"
    BLACK = "black"


class PieceType(str, Enum):
    PAWN = "pawn"
    KNIGHT = "knight"
    BISHOP = "bishop"
    ROOK = "rook"
    QUEEN = "queen"
    KING = "king"


PAWN_DIRECTIONS: Tuple[Tuple[Coord, Coord], ...] = (
    ((-1, -1), (-1, 1)),
    ((1, 1), (-1, 1)),
    ((1, -1), (1, 1)),
    ((-1, -1), (1, -1)),
)
KNIGHT_OFFSETS: Tuple[Coord, ...] = ((-2, -1), (-2, 1), (-1, -2), (-1, 2), (1, -2), (1, 2), (2, -1), (2, 1))
KING_OFFSETS: Tuple[Coord, ...] = ((-1, -1), (-1, 0), (-1, 1), (0, -1), (0, 1), (1, -1), (1, 0), (1, 1))
BISHOP_RAYS: Tuple[Coord, ...] = ((-1, -1), (-1, 1), (1, -1), (1, 1))
ROOK_RAYS: Tuple[Coord, ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))
QUEEN_RAYS: Tuple[Coord, ...] = KING_OFFSETS

SYMBOLS: Dict[Tuple[Color, PieceType], str] = {
    (Color.WHITE, PieceType.PAWN): "♙",
    (Color.WHITE, PieceType.KNIGHT): "♘",
    (Color.WHITE, PieceType.BISHOP): "♗",
    (Color.WHITE, PieceType.ROOK): "♖",
    (Color.WHITE, PieceType.QUEEN): "♕",
    (Color.WHITE, PieceType.KING): "♔",
    (Color.BLACK, PieceType.PAWN): "♟",
    (Color.BLACK, PieceType.KNIGHT): "♞",
    (Color.BLACK, PieceType.BISHOP): "♝",
    (Color.BLACK, PieceType.ROOK): "♜",
    (Color.BLACK, PieceType.QUEEN): "♛",
    (Color.BLACK, PieceType.KING): "♚",
}
FACING_MARKS = ("↑", "→", "↓", "←")


def opposite(color: Color) -> Color:
    return Color.BLACK if color == Color.WHITE else Color.WHITE


@dataclass
class Piece:
    id: int
    kind: PieceType
    color: Color
    facing: int = 0

    def __post_init__(self) -> None:
        self.kind = PieceType(self.kind)
        self.color = Color(self.color)
        if self.facing not in (0, 1, 2, 3):
            raise ValueError("facing must be 0..3")

    @property
    def key(self) -> str:
        return f"{self.color.value}-{self.kind.value}"

    @property
    def symbol(self) -> str:
        return SYMBOLS[(self.color, self.kind)]

    def copy(self) -> Piece:
        return Piece(self.id, self.kind, self.color, self.facing)

    def __str__(self) -> str:
        return f"{self.key}#{self.id}"


@dataclass(frozen=True)
class Move:
    piece: Piece
    src: Coord
    dst: Coord
    captured: Optional[Piece] = None

    @property
    def is_capture(self) -> bool:
        return self.captured is not None

    def __str__(self) -> str:
        if self.captured is not None:
            return f"{self.piece} captured {self.captured} {self.src} -> {self.dst}"
        return f"{self.piece} moved {self.src} -> {self.dst}"


@dataclass(frozen=True)
class BoardStats:
    white: int
    black: int
    balance: int
    by_key: Dict[str, int]
    holding: int
    blocked: int


def in_bounds(row: int, col: int) -> bool:
    return 0 <= row < ROWS and 0 <= col < COLS


def check_coord(row: int, col: int) -> None:
    if not in_bounds(row, col):
        raise ValueError(f"board coordinate out of range: ({row}, {col})")


def check_holding_coord(row: int, col: int) -> None:
    if not (0 <= row < HOLDING_ROWS and 0 <= col < HOLDING_COLS):
        raise ValueError(f"holding coordinate out of range: ({row}, {col})")


def _empty_grid(rows: int, cols: int) -> List[List[Optional[Piece]]]:
    return [[None] * cols for _ in range(rows)]


@dataclass
class Board:
    """Main 7x9 grid, blocked squares and the 2x9 holding area.

    A blocked coordinate is never occupied: blocking a square evicts its
    occupant first.
    """

    cells: List[List[Optional[Piece]]] = field(default_factory=lambda: _empty_grid(ROWS, COLS))
    holding: List[List[Optional[Piece]]] = field(
        default_factory=lambda: _empty_grid(HOLDING_ROWS, HOLDING_COLS)
    )
    blocked: Set[Coord] = field(default_factory=set)

    def get(self, row: int, col: int) -> Optional[Piece]:
        check_coord(row, col)
        return self.cells[row][col]

    def put(self, row: int, col: int, piece: Optional[Piece]) -> bool:
        check_coord(row, col)
        if piece is not None and (row, col) in self.blocked:
            return False
        self.cells[row][col] = piece
        return True

    def take(self, row: int, col: int) -> Optional[Piece]:
        check_coord(row, col)
        piece = self.cells[row][col]
        self.cells[row][col] = None
        return piece

    def is_blocked(self, row: int, col: int) -> bool:
        check_coord(row, col)
        return (row, col) in self.blocked

    def set_blocked(self, row: int, col: int, blocked: bool) -> None:
        check_coord(row, col)
        if blocked:
            self.cells[row][col] = None
            self.blocked.add((row, col))
        else:
            self.blocked.discard((row, col))

    def toggle_blocked(self, row: int, col: int) -> bool:
        now_blocked = not self.is_blocked(row, col)
        self.set_blocked(row, col, now_blocked)
        return now_blocked

    def holding_get(self, row: int, col: int) -> Optional[Piece]:
        check_holding_coord(row, col)
        return self.holding[row][col]

    def holding_put(self, row: int, col: int, piece: Optional[Piece]) -> None:
        check_holding_coord(row, col)
        self.holding[row][col] = piece

    def holding_take(self, row: int, col: int) -> Optional[Piece]:
        check_holding_coord(row, col)
        piece = self.holding[row][col]
        self.holding[row][col] = None
        return piece

    def pieces(self, color: Optional[Color] = None) -> Iterator[Tuple[int, int, Piece]]:
        for row in range(ROWS):
            for col in range(COLS):
                piece = self.cells[row][col]
                if piece is not None and (color is None or piece.color == color):
                    yield row, col, piece

    def holding_pieces(self) -> Iterator[Tuple[int, int, Piece]]:
        for row in range(HOLDING_ROWS):
            for col in range(HOLDING_COLS):
                piece = self.holding[row][col]
                if piece is not None:
                    yield row, col, piece

    def find_holding(self, piece_id: int) -> Optional[Coord]:
        for row, col, piece in self.holding_pieces():
            if piece.id == piece_id:
                return row, col
        return None

    def empty_squares(self) -> List[Coord]:
        return [
            (row, col)
            for row in range(ROWS)
            for col in range(COLS)
            if self.cells[row][col] is None and (row, col) not in self.blocked
        ]

    def count_pieces(self) -> int:
        return sum(1 for _ in self.pieces())

    def count_kings(self, color: Color) -> int:
        return sum(1 for _, _, piece in self.pieces(color) if piece.kind == PieceType.KING)

    def is_empty(self) -> bool:
        return self.count_pieces() == 0

    def clear(self) -> None:
        self.cells = _empty_grid(ROWS, COLS)
        self.holding = _empty_grid(HOLDING_ROWS, HOLDING_COLS)
        self.blocked = set()

    def copy(self) -> Board:
        """Deep copy: pieces are copied too, ids preserved."""
        return Board(
            cells=[[p.copy() if p is not None else None for p in row] for row in self.cells],
            holding=[[p.copy() if p is not None else None for p in row] for row in self.holding],
            blocked=set(self.blocked),
        )

    def restore(self, snapshot: Board) -> None:
        copied = snapshot.copy()
        self.cells = copied.cells
        self.holding = copied.holding
        self.blocked = copied.blocked


def _landing_ok(board: Board, piece: Piece, row: int, col: int) -> bool:
    if (row, col) in board.blocked:
        return False
    target = board.cells[row][col]
    return target is None or target.color != piece.color


def _step_moves(board: Board, piece: Piece, row: int, col: int, offsets) -> List[Coord]:
    out: List[Coord] = []
    for dr, dc in offsets:
        r, c = row + dr, col + dc
        if in_bounds(r, c) and _landing_ok(board, piece, r, c):
            out.append((r, c))
    return out


def _slide_moves(board: Board, piece: Piece, row: int, col: int, rays, max_slide: int) -> List[Coord]:
    out: List[Coord] = []
    for dr, dc in rays:
        for dist in range(1, max_slide + 1):
            r, c = row + dr * dist, col + dc * dist
            if not in_bounds(r, c):
                break
            # Occupants and blocked squares never stop the ray.
            if _landing_ok(board, piece, r, c):
                out.append((r, c))
    return out


def piece_moves(piece: Piece, row: int, col: int, board: Board, max_slide: int = MAX_SLIDE) -> List[Coord]:
    check_coord(row, col)
    kind = piece.kind
    if kind == PieceType.PAWN:
        return _step_moves(board, piece, row, col, PAWN_DIRECTIONS[piece.facing])
    if kind == PieceType.KNIGHT:
        return _step_moves(board, piece, row, col, KNIGHT_OFFSETS)
    if kind == PieceType.KING:
        return _step_moves(board, piece, row, col, KING_OFFSETS)
    if kind == PieceType.BISHOP:
        return _slide_moves(board, piece, row, col, BISHOP_RAYS, max_slide)
    if kind == PieceType.ROOK:
        return _slide_moves(board, piece, row, col, ROOK_RAYS, max_slide)
    if kind == PieceType.QUEEN:
        return _slide_moves(board, piece, row, col, QUEEN_RAYS, max_slide)
    raise ValueError(f"unknown piece type: {kind!r}")


def all_moves(color: Color, board: Board, max_slide: int = MAX_SLIDE) -> List[Move]:
    moves: List[Move] = []
    for row, col, piece in board.pieces(color):
        for dst in piece_moves(piece, row, col, board, max_slide):
            moves.append(Move(piece, (row, col), dst, board.cells[dst[0]][dst[1]]))
    return moves


def split_moves(moves: List[Move]) -> Tuple[List[Move], List[Move]]:
    captures = [m for m in moves if m.captured is not None]
    quiet = [m for m in moves if m.captured is None]
    return captures, quiet


def apply_move(board: Board, move: Move) -> None:
    (sr, sc), (dr, dc) = move.src, move.dst
    if board.cells[sr][sc] is not move.piece:
        raise ValueError(f"illegal move: {move.piece} is not at {move.src}")
    board.cells[dr][dc] = move.piece
    board.cells[sr][sc] = None


def undo_move(board: Board, move: Move) -> None:
    (sr, sc), (dr, dc) = move.src, move.dst
    board.cells[sr][sc] = move.piece
    board.cells[dr][dc] = move.captured


def board_stats(board: Board) -> BoardStats:
    by_key: Dict[str, int] = {}
    white = 0
    black = 0
    for _, _, piece in board.pieces():
        by_key[piece.key] = by_key.get(piece.key, 0) + 1
        if piece.color == Color.WHITE:
            white += 1
        else:
            black += 1
    return BoardStats(
        white=white,
        black=black,
        balance=abs(white - black),
        by_key=by_key,
        holding=sum(1 for _ in board.holding_pieces()),
        blocked=len(board.blocked),
    )


def _cell_text(piece: Optional[Piece], blocked: bool) -> str:
    if blocked:
        return "##"
    if piece is None:
        return " ."
    if piece.kind == PieceType.PAWN:
        return piece.symbol + FACING_MARKS[piece.facing]
    return piece.symbol + " "


def pretty_print(board: Board) -> str:
    """Text rendering of the board and holding area.

    Pawns carry an arrow for their facing, blocked squares show as ``##``.
    """
    header = "    " + " ".join(f"{c:>2}" for c in range(COLS))
    lines = [header, "   " + "---" * COLS]
    for row in range(ROWS):
        parts = [
            _cell_text(board.cells[row][col], (row, col) in board.blocked)
            for col in range(COLS)
        ]
        lines.append(f"{row:>2} |" + " ".join(parts))
    lines.append("")
    lines.append("Holding:")
    for row in range(HOLDING_ROWS):
        parts = [_cell_text(board.holding[row][col], False) for col in range(HOLDING_COLS)]
        lines.append(f"{row:>2} |" + " ".join(parts))
    return "\n".join(lines)

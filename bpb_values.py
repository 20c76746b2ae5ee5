"""Runtime-editable piece value table."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple, Union

from bpb_engine import Color, Piece, PieceType

ON_CAPTURE = 0
ON_CAPTURED = 1

# For kings the second slot is the ally support bonus per friendly king.
DEFAULT_PIECE_VALUES: Dict[str, Tuple[float, float]] = {
    "white-pawn": (1, 1),
    "white-knight": (3, 3),
    "white-bishop": (3, 3),
    "white-rook": (5, 5),
    "white-queen": (9, 9),
    "white-king": (4, 2),
    "black-pawn": (1, 1),
    "black-knight": (3, 3),
    "black-bishop": (3, 3),
    "black-rook": (5, 5),
    "black-queen": (9, 9),
    "black-king": (4, 2),
}


def piece_key(color: Color, kind: PieceType) -> str:
    return f"{Color(color).value}-{PieceType(kind).value}"


def parse_piece_key(key: str) -> Tuple[Color, PieceType]:
    parts = key.strip().lower().split("-")
    if len(parts) != 2:
        raise ValueError(f"invalid piece key: {key!r}")
    try:
        return Color(parts[0]), PieceType(parts[1])
    except ValueError:
        raise ValueError(f"invalid piece key: {key!r}") from None


def parse_value(raw: Union[str, int, float]) -> float:
    if isinstance(raw, (int, float)):
        return float(raw)
    try:
        value = float(raw)
    except ValueError:
        return 0.0
    # NaN reads as 0 like an empty form field.
    return value if value == value else 0.0


class PieceValueTable:
    def __init__(self, values: Optional[Dict[str, Tuple[float, float]]] = None) -> None:
        self._values: Dict[str, List[float]] = {}
        self.reset()
        if values:
            for key, (on_capture, on_captured) in values.items():
                self.set(key, ON_CAPTURE, on_capture)
                self.set(key, ON_CAPTURED, on_captured)

    def reset(self) -> None:
        self._values = {key: [float(a), float(b)] for key, (a, b) in DEFAULT_PIECE_VALUES.items()}

    def get(self, key: str) -> Tuple[float, float]:
        color, kind = parse_piece_key(key)
        pair = self._values[piece_key(color, kind)]
        return pair[0], pair[1]

    def set(self, key: str, slot: int, raw: Union[str, int, float]) -> float:
        color, kind = parse_piece_key(key)
        if slot not in (ON_CAPTURE, ON_CAPTURED):
            raise ValueError(f"value slot must be {ON_CAPTURE} or {ON_CAPTURED}")
        value = parse_value(raw)
        self._values[piece_key(color, kind)][slot] = value
        return value

    def on_capture(self, piece: Piece) -> float:
        return self._values[piece.key][ON_CAPTURE]

    def on_captured(self, piece: Piece) -> float:
        if piece.kind == PieceType.KING:
            return 0.0
        return self._values[piece.key][ON_CAPTURED]

    def king_support(self, color: Color) -> float:
        return self._values[piece_key(color, PieceType.KING)][ON_CAPTURED]

    def as_dict(self) -> Dict[str, Tuple[float, float]]:
        return {key: (pair[0], pair[1]) for key, pair in self._values.items()}

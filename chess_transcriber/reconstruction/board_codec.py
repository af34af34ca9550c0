"""
Board State Codec – Labels ↔ Board ↔ Normalised FEN
====================================================

Responsibilities:
  1. Turn a 64-element label list (classifier output, image row-major
     order: a8 first, h1 last) into a :class:`BoardState`.
  2. Serialise a board into a *normalised position*: the FEN placement and
     side-to-move, with castling, en-passant and both clocks pinned to
     placeholders (``"<placement> <w|b> - - 0 1"``).  The classifier
     cannot see those fields, so they must never influence comparison or
     de-duplication.
  3. Parse normalised positions back through python-chess.

python-chess square numbering is used throughout (``chess.A1 == 0``,
``chess.H8 == 63``); only :func:`decode` deals with image order.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

import chess

from chess_transcriber.reconstruction.errors import InvalidPosition, MalformedFrame


# ── Labels ─────────────────────────────────────────────────────────────

class PieceLabel(enum.Enum):
    """One of the 13 per-square classifier outputs."""

    EMPTY = "empty"
    WHITE_PAWN = "white_pawn"
    WHITE_KNIGHT = "white_knight"
    WHITE_BISHOP = "white_bishop"
    WHITE_ROOK = "white_rook"
    WHITE_QUEEN = "white_queen"
    WHITE_KING = "white_king"
    BLACK_PAWN = "black_pawn"
    BLACK_KNIGHT = "black_knight"
    BLACK_BISHOP = "black_bishop"
    BLACK_ROOK = "black_rook"
    BLACK_QUEEN = "black_queen"
    BLACK_KING = "black_king"

    @property
    def piece(self) -> Optional[chess.Piece]:
        """The python-chess piece, or ``None`` for an empty square."""
        return _LABEL_TO_PIECE[self]

    @property
    def fen_char(self) -> str:
        piece = self.piece
        return piece.symbol() if piece is not None else ""

    @classmethod
    def from_piece(cls, piece: Optional[chess.Piece]) -> "PieceLabel":
        if piece is None:
            return cls.EMPTY
        return _PIECE_TO_LABEL[(piece.piece_type, piece.color)]

    @classmethod
    def parse(cls, value: Union["PieceLabel", str]) -> "PieceLabel":
        """Accept a label, its class name (``"white_pawn"``) or FEN char."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            pass
        if isinstance(value, str) and len(value) == 1:
            try:
                return cls.from_piece(chess.Piece.from_symbol(value))
            except ValueError:
                pass
        raise MalformedFrame(f"Unknown square label {value!r}")


_LABEL_TO_PIECE: Dict[PieceLabel, Optional[chess.Piece]] = {PieceLabel.EMPTY: None}
for _label in PieceLabel:
    if _label is PieceLabel.EMPTY:
        continue
    _colour, _name = _label.value.split("_")
    _LABEL_TO_PIECE[_label] = chess.Piece(
        chess.PIECE_NAMES.index(_name),
        _colour == "white",
    )

_PIECE_TO_LABEL: Dict[Tuple[int, bool], PieceLabel] = {
    (piece.piece_type, piece.color): label
    for label, piece in _LABEL_TO_PIECE.items()
    if piece is not None
}


# ── Board state ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class BoardState:
    """Total mapping square → label, indexed by python-chess square."""
    labels: Tuple[PieceLabel, ...]

    def __post_init__(self) -> None:
        if len(self.labels) != 64:
            raise MalformedFrame(f"Expected 64 squares, got {len(self.labels)}")

    def __getitem__(self, square: chess.Square) -> PieceLabel:
        return self.labels[square]

    @classmethod
    def from_board(cls, board: chess.BaseBoard) -> "BoardState":
        return cls(tuple(PieceLabel.from_piece(board.piece_at(sq)) for sq in chess.SQUARES))

    @classmethod
    def from_position(cls, position: str) -> "BoardState":
        return cls.from_board(parse_position(position))

    def diff(self, other: "BoardState") -> List[chess.Square]:
        """Squares whose labels differ, in ascending square order."""
        return [sq for sq in chess.SQUARES if self.labels[sq] != other.labels[sq]]

    def placement(self) -> str:
        """FEN placement field, rank 8 first."""
        rows: List[str] = []
        for rank in range(7, -1, -1):
            row_chars: List[str] = []
            empty_count = 0
            for file in range(8):
                fen_char = self.labels[chess.square(file, rank)].fen_char
                if fen_char == "":
                    empty_count += 1
                    continue
                if empty_count > 0:
                    row_chars.append(str(empty_count))
                    empty_count = 0
                row_chars.append(fen_char)
            if empty_count > 0:
                row_chars.append(str(empty_count))
            rows.append("".join(row_chars))
        return "/".join(rows)


# ── Codec ──────────────────────────────────────────────────────────────

def decode(labels: Sequence[Union[PieceLabel, str]]) -> BoardState:
    """Build a board from 64 labels in image row-major order.

    Index 0 is a8, index 7 is h8, index 63 is h1 – the order produced by
    ``extract_squares``.

    Raises
    ------
    MalformedFrame
        If there are not exactly 64 labels or a label is unknown.
    """
    if len(labels) != 64:
        raise MalformedFrame(f"Expected 64 square labels, got {len(labels)}")

    by_square: List[PieceLabel] = [PieceLabel.EMPTY] * 64
    for index, value in enumerate(labels):
        rank = 7 - index // 8
        file = index % 8
        by_square[chess.square(file, rank)] = PieceLabel.parse(value)
    return BoardState(tuple(by_square))


def _format(placement: str, turn: chess.Color) -> str:
    return f"{placement} {'w' if turn == chess.WHITE else 'b'} - - 0 1"


def to_normalized_position(state: BoardState, turn: chess.Color = chess.WHITE) -> str:
    return _format(state.placement(), turn)


def normalize_board(board: chess.BaseBoard, turn: Optional[chess.Color] = None) -> str:
    """Normalised position of a python-chess board.

    *turn* defaults to the board's own side to move (white for a
    :class:`chess.BaseBoard`).
    """
    if turn is None:
        turn = getattr(board, "turn", chess.WHITE)
    return _format(board.board_fen(), turn)


def normalize_fen(fen: str) -> str:
    """Drop castling, en-passant and clock fields from *fen*.

    A bare placement field is accepted and taken as white to move.
    """
    return normalize_board(parse_position(fen))


def parse_position(position: str) -> chess.Board:
    """Parse a (possibly normalised) FEN, ignoring everything but placement
    and side-to-move.

    Raises
    ------
    InvalidPosition
        If the placement or side-to-move field is unusable.
    """
    if not isinstance(position, str):
        raise InvalidPosition(f"Position must be a FEN string, got {type(position).__name__}")
    fields = position.split()
    if not fields:
        raise InvalidPosition("Empty position string")

    side = fields[1] if len(fields) > 1 else "w"
    if side not in ("w", "b"):
        raise InvalidPosition(f"Bad side-to-move {side!r} in {position!r}")

    try:
        board = chess.Board(f"{fields[0]} {side} - - 0 1")
    except ValueError as exc:
        raise InvalidPosition(f"Cannot parse position {position!r}: {exc}") from exc
    return board


def placement_of(position: str) -> str:
    """Placement field of a position string."""
    return parse_position(position).board_fen()


def labels_from_position(position: str) -> List[PieceLabel]:
    """Inverse of :func:`decode`: 64 labels in image row-major order."""
    board = parse_position(position)
    return [
        PieceLabel.from_piece(board.piece_at(chess.square(index % 8, 7 - index // 8)))
        for index in range(64)
    ]


def count_differences(a: BoardState, b: BoardState) -> int:
    return sum(1 for x, y in zip(a.labels, b.labels) if x != y)


def lichess_editor_url(position: str) -> str:
    """Link that opens *position* in the lichess board editor."""
    return "https://lichess.org/editor/" + position.strip().replace(" ", "_")


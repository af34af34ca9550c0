"""Shared pytest fixtures and position helpers used across the test suite."""

from __future__ import annotations

from typing import Dict, Optional

import chess
import pytest

from chess_transcriber.reconstruction.board_codec import BoardState, PieceLabel, normalize_board

START = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w - - 0 1"


def play(*ucis: str, start: str = START) -> str:
    """Normalised position after playing *ucis* from *start*."""
    board = chess.Board(start)
    for uci in ucis:
        board.push_uci(uci)
    return normalize_board(board)


def perturb(
    position: str,
    changes: Dict[chess.Square, PieceLabel],
    turn: Optional[chess.Color] = None,
) -> str:
    """Copy of *position* with some squares relabelled, as a noisy frame."""
    board = chess.Board(position)
    for square, label in changes.items():
        if label.piece is None:
            board.remove_piece_at(square)
        else:
            board.set_piece_at(square, label.piece)
    return normalize_board(board, board.turn if turn is None else turn)


def as_white_frame(position: str) -> str:
    """What the recogniser would report: same placement, always white to move."""
    return normalize_board(chess.Board(position), chess.WHITE)


@pytest.fixture
def start_position() -> str:
    return START


@pytest.fixture
def start_state() -> BoardState:
    return BoardState.from_position(START)

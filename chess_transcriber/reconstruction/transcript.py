"""
Transcript Synthesizer – Corrected Positions → PGN Text
=======================================================

Replays the aligner's corrected trajectory on a live python-chess board.
For every transition the first legal move whose resulting *placement*
equals the target placement is taken; side-to-move is not compared.

A transition no legal move reproduces exactly is skipped: the live board
jumps to the target and the move list simply has a gap.  This happens when
the aligner accepted a move under its noise tolerance that does not match
the next corrected position square for square.

Notation is an approximation, not SAN: ``<piece letter><x><destination>``
with no disambiguation, check, castling or promotion markers.
"""

from __future__ import annotations

import datetime as _dt
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import chess

from chess_transcriber.reconstruction.board_codec import parse_position

log = logging.getLogger(__name__)

RESULT_UNKNOWN = "*"

DEFAULT_HEADERS: Dict[str, str] = {
    "Event": "Auto-generated game",
    "Site": "Chess Recognition System",
    "Date": "????.??.??",
    "Round": "1",
    "White": "AI",
    "Black": "AI",
    "Result": RESULT_UNKNOWN,
}


@dataclass
class Transcript:
    """Headers plus an approximate move list."""
    headers: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HEADERS))
    moves: List[str] = field(default_factory=list)          # rendered tokens, "1.e4", "e5", …
    skipped: List[int] = field(default_factory=list)        # target indices with no matching move
    result: str = RESULT_UNKNOWN

    @property
    def movetext(self) -> str:
        return " ".join(self.moves + [self.result])

    def pgn(self) -> str:
        tags = "\n".join(f'[{name} "{value}"]' for name, value in self.headers.items())
        return f"{tags}\n\n{self.movetext}"

    def __str__(self) -> str:
        return self.pgn()


def move_notation(board: chess.Board, move: chess.Move) -> str:
    """Approximate notation of *move* played from *board*.

    >>> move_notation(chess.Board(), chess.Move.from_uci("g1f3"))
    'Nf3'
    """
    piece = board.piece_at(move.from_square)
    letter = ""
    if piece is not None and piece.piece_type != chess.PAWN:
        letter = chess.piece_symbol(piece.piece_type).upper()
    capture = "x" if board.piece_at(move.to_square) is not None else ""
    return f"{letter}{capture}{chess.square_name(move.to_square)}"


def find_matching_move(board: chess.Board, target_placement: str) -> Optional[chess.Move]:
    """First legal move whose resulting placement equals *target_placement*."""
    for move in board.legal_moves:
        board.push(move)
        try:
            if board.board_fen() == target_placement:
                return move
        finally:
            board.pop()
    return None


def synthesize(
    positions: Sequence[str],
    headers: Optional[Dict[str, str]] = None,
    date: Optional[_dt.date] = None,
) -> Transcript:
    """Recover the moves between consecutive corrected positions.

    Parameters
    ----------
    positions : sequence of str
        Corrected, de-duplicated normalised positions.
    headers : dict, optional
        Overrides for the default PGN tags.
    date : datetime.date, optional
        Value of the ``Date`` tag; today when omitted.

    Returns
    -------
    Transcript
        Empty move list when fewer than two positions are given.
    """
    tags = dict(DEFAULT_HEADERS)
    tags["Date"] = (date or _dt.date.today()).strftime("%Y.%m.%d")
    if headers:
        tags.update(headers)
    transcript = Transcript(headers=tags, result=tags.get("Result", RESULT_UNKNOWN))

    if len(positions) < 2:
        return transcript

    board = parse_position(positions[0])
    move_number = 1
    for index in range(1, len(positions)):
        target = parse_position(positions[index])
        move = find_matching_move(board, target.board_fen())

        if move is None:
            log.warning(
                "No legal move from %s reaches %s – transition %d skipped",
                board.board_fen(), target.board_fen(), index,
            )
            transcript.skipped.append(index)
            board = target
            continue

        notation = move_notation(board, move)
        if board.turn == chess.WHITE:
            transcript.moves.append(f"{move_number}.{notation}")
        else:
            if not transcript.moves:
                notation = f"{move_number}...{notation}"
            transcript.moves.append(notation)
            move_number += 1
        board.push(move)

    log.info(
        "Synthesised %d moves from %d positions (%d skipped)",
        len(transcript.moves), len(positions), len(transcript.skipped),
    )
    return transcript

"""
Sequence Aligner – Noisy Frame Positions → Move-Consistent Trajectory
=====================================================================

Every sampled frame is classified independently, so the observed position
list is full of glitches: a hand covering a square, motion blur, a bishop
read as a pawn.  The aligner keeps a single *canonical* board that only
ever changes by playing a legal move, and for each frame asks which legal
move best explains what the camera saw.

Per frame:
  1. Diff canonical vs observed.  Changes already remembered as sensor
     noise are ignored; no remaining change → frame skipped.
  2. Play every legal move on the canonical board and count the squares
     where the result still differs from the observation.
  3. Smallest count wins (first in python-chess enumeration order on a
     tie, exact match stops the scan).
  4. Count ≤ ``noise_tolerance`` → move accepted.  Otherwise the frame is
     rejected and each of its changes is remembered as a
     :class:`DiscrepancyRecord`.

Known gap: castling changes 4 squares, so with the default tolerance of 2
a castling move is never accepted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Set, Tuple

import chess

from chess_transcriber.reconstruction.board_codec import (
    BoardState,
    PieceLabel,
    count_differences,
    normalize_board,
    parse_position,
)

log = logging.getLogger(__name__)

NOISE_TOLERANCE: int = 2


@dataclass(frozen=True)
class DiscrepancyRecord:
    """A square-level mismatch that no legal move could explain."""
    square: chess.Square
    expected: PieceLabel
    observed: PieceLabel

    def __str__(self) -> str:
        return (
            f"{chess.square_name(self.square)}: "
            f"{self.expected.value} -> {self.observed.value}"
        )


@dataclass
class AlignmentStats:
    """Per-run frame counters."""
    frames: int = 0
    accepted: int = 0
    rejected: int = 0
    unchanged: int = 0
    malformed: int = 0


class SequenceAligner:
    """Reconstructs the true position trajectory from noisy observations.

    Parameters
    ----------
    noise_tolerance : int
        Maximum number of squares on which the best legal move may still
        disagree with the frame for the move to be accepted.
    """

    def __init__(self, noise_tolerance: int = NOISE_TOLERANCE) -> None:
        if noise_tolerance < 0:
            raise ValueError(f"noise_tolerance must be >= 0, got {noise_tolerance}")
        self.noise_tolerance = noise_tolerance
        self.discrepancies: Set[DiscrepancyRecord] = set()
        self.stats = AlignmentStats()
        self._board: Optional[chess.Board] = None

    @property
    def canonical(self) -> Optional[str]:
        """Normalised canonical position, ``None`` before the first frame."""
        return normalize_board(self._board) if self._board is not None else None

    # ── Public API ─────────────────────────────────────────────────────

    def reconstruct(self, observed: Sequence[Optional[str]]) -> List[str]:
        """Return the corrected, de-duplicated position sequence.

        *observed* holds normalised positions in frame order.  ``None``
        stands for a frame that failed to decode; it is skipped like a
        rejected frame.

        Raises
        ------
        InvalidPosition
            If a non-``None`` entry cannot be parsed at all.
        """
        self.discrepancies = set()
        self.stats = AlignmentStats(frames=len(observed))
        self._board = None

        trajectory: List[str] = []
        for index, position in enumerate(observed):
            if position is None:
                self.stats.malformed += 1
                log.debug("Frame %d: undecodable, skipped", index)
                if self._board is not None:
                    trajectory.append(self.canonical)
                continue

            if self._board is None:
                self._board = parse_position(position)
                trajectory.append(self.canonical)
                log.debug("Frame %d: initial position %s", index, self.canonical)
                continue

            trajectory.append(self._step(index, BoardState.from_position(position)))

        corrected = list(dict.fromkeys(trajectory))
        log.info(
            "Aligned %d frames → %d positions  (accepted=%d rejected=%d "
            "unchanged=%d malformed=%d discrepancies=%d)",
            self.stats.frames, len(corrected), self.stats.accepted,
            self.stats.rejected, self.stats.unchanged, self.stats.malformed,
            len(self.discrepancies),
        )
        return corrected

    # ── Internals ──────────────────────────────────────────────────────

    def _step(self, index: int, observation: BoardState) -> str:
        board = self._board
        current = BoardState.from_board(board)

        changes = self._new_changes(current, observation)
        if not changes:
            self.stats.unchanged += 1
            return self.canonical

        move, diff_count = self._best_move(board, observation)
        if move is not None and diff_count <= self.noise_tolerance:
            log.debug(
                "Frame %d: %s accepted (residual %d)", index, move.uci(), diff_count,
            )
            board.push(move)
            self.stats.accepted += 1
            return self.canonical

        for record in changes:
            self.discrepancies.add(record)
        self.stats.rejected += 1
        log.info(
            "Frame %d: %d changed squares, no legal move within %d "
            "(best residual %s) – treated as noise",
            index, len(changes), self.noise_tolerance,
            diff_count if move is not None else "n/a",
        )
        return self.canonical

    def _new_changes(
        self, current: BoardState, observation: BoardState,
    ) -> List[DiscrepancyRecord]:
        changes = [
            DiscrepancyRecord(sq, current[sq], observation[sq])
            for sq in current.diff(observation)
        ]
        return [c for c in changes if c not in self.discrepancies]

    @staticmethod
    def _best_move(
        board: chess.Board, observation: BoardState,
    ) -> Tuple[Optional[chess.Move], int]:
        """Linear scan over legal moves, first minimum wins."""
        best_move: Optional[chess.Move] = None
        best_count = 65
        for move in board.legal_moves:
            board.push(move)
            try:
                count = count_differences(BoardState.from_board(board), observation)
            finally:
                board.pop()
            if count < best_count:
                best_move, best_count = move, count
                if count == 0:
                    break
        return best_move, best_count


def reconstruct(
    observed: Sequence[Optional[str]],
    noise_tolerance: int = NOISE_TOLERANCE,
) -> List[str]:
    """Convenience wrapper around :meth:`SequenceAligner.reconstruct`."""
    return SequenceAligner(noise_tolerance).reconstruct(observed)

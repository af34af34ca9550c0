"""Tests for the transcript synthesizer."""

import datetime

import chess
import pytest

from chess_transcriber.reconstruction.aligner import reconstruct
from chess_transcriber.reconstruction.board_codec import PieceLabel
from chess_transcriber.reconstruction.transcript import (
    DEFAULT_HEADERS,
    Transcript,
    find_matching_move,
    move_notation,
    synthesize,
)

from conftest import START, as_white_frame, perturb, play

DATE = datetime.date(2024, 3, 9)


class TestNotation:
    @pytest.mark.parametrize("uci, expected", [
        ("e2e4", "e4"),
        ("g1f3", "Nf3"),
        ("b1c3", "Nc3"),
    ])
    def test_quiet_moves(self, uci: str, expected: str) -> None:
        assert move_notation(chess.Board(), chess.Move.from_uci(uci)) == expected

    def test_pawn_capture_has_no_file_letter(self) -> None:
        board = chess.Board(play("e2e4", "d7d5"))
        assert move_notation(board, chess.Move.from_uci("e4d5")) == "xd5"

    def test_piece_capture(self) -> None:
        board = chess.Board(play("e2e4", "d7d5", "e4d5", "d8d5"))
        board.push_uci("b1c3")
        assert move_notation(board, chess.Move.from_uci("d5a2")) == "Qxa2"

    def test_en_passant_not_marked_as_capture(self) -> None:
        board = chess.Board()
        for uci in ("e2e4", "a7a6", "e4e5", "d7d5"):
            board.push_uci(uci)
        assert move_notation(board, chess.Move.from_uci("e5d6")) == "d6"

    def test_castling_renders_as_king_move(self) -> None:
        board = chess.Board("r3k2r/pppppppp/8/8/8/8/PPPPPPPP/R3K2R w KQkq - 0 1")
        assert move_notation(board, chess.Move.from_uci("e1g1")) == "Kg1"


class TestFindMatchingMove:
    def test_finds_move(self) -> None:
        target = chess.Board(play("g1f3")).board_fen()
        assert find_matching_move(chess.Board(), target) == chess.Move.from_uci("g1f3")

    def test_none_when_unreachable(self) -> None:
        target = chess.Board(play("e2e4", "e7e5")).board_fen()
        assert find_matching_move(chess.Board(), target) is None

    def test_board_left_untouched(self) -> None:
        board = chess.Board()
        find_matching_move(board, chess.Board(play("e2e4")).board_fen())
        assert board.move_stack == []


class TestSynthesize:
    def test_clean_game(self) -> None:
        transcript = synthesize([START, play("e2e4"), play("e2e4", "e7e5")], date=DATE)
        assert transcript.movetext == "1.e4 e5 *"
        assert transcript.moves == ["1.e4", "e5"]

    def test_move_numbers(self) -> None:
        line = ["e2e4", "e7e5", "g1f3", "b8c6", "f1b5"]
        positions = [START] + [play(*line[:n]) for n in range(1, len(line) + 1)]
        assert synthesize(positions).movetext == "1.e4 e5 2.Nf3 Nc6 3.Bb5 *"

    def test_black_to_move_first(self) -> None:
        start = play("e2e4")
        transcript = synthesize([start, play("e7e5", start=start), play("e7e5", "g1f3", start=start)])
        assert transcript.movetext == "1...e5 2.Nf3 *"

    @pytest.mark.parametrize("positions", [[], [START]])
    def test_fewer_than_two_positions(self, positions) -> None:
        transcript = synthesize(positions)
        assert transcript.moves == []
        assert transcript.movetext == "*"

    def test_unmatched_transition_skipped(self) -> None:
        # two white moves in a row: nothing legal connects the last pair exactly
        positions = [START, play("e2e4"), play("e2e4", "e7e5", "d2d4", "d7d5")]
        transcript = synthesize(positions)
        assert transcript.moves == ["1.e4"]
        assert transcript.skipped == [2]

    def test_board_jumps_to_target_after_gap(self) -> None:
        gap_target = play("e2e4", "e7e5", "g1f3")
        positions = [START, play("e2e4"), gap_target, play("b8c6", start=gap_target)]
        transcript = synthesize(positions)
        assert transcript.skipped == [2]
        assert transcript.moves == ["1.e4", "Nc6"]

    def test_side_to_move_not_compared(self) -> None:
        # latent gap: the target claims white to move, the match ignores it
        target = as_white_frame(play("e2e4"))
        assert target.split()[1] == "w"
        assert synthesize([START, target]).moves == ["1.e4"]


class TestTranscriptText:
    def test_headers(self) -> None:
        transcript = synthesize([START, play("e2e4")], date=DATE)
        assert list(transcript.headers) == list(DEFAULT_HEADERS)
        assert transcript.headers["Date"] == "2024.03.09"
        assert transcript.headers["Result"] == "*"

    def test_header_overrides(self) -> None:
        transcript = synthesize([START], headers={"White": "Carlsen", "Event": "Club night"})
        assert transcript.headers["White"] == "Carlsen"
        assert transcript.headers["Event"] == "Club night"
        assert transcript.headers["Black"] == "AI"

    def test_pgn(self) -> None:
        pgn = synthesize([START, play("e2e4")], date=DATE).pgn()
        assert pgn.startswith('[Event "Auto-generated game"]\n')
        assert '[Date "2024.03.09"]' in pgn
        assert pgn.endswith("\n\n1.e4 *")
        assert str(synthesize([START, play("e2e4")], date=DATE)) == pgn

    def test_default_transcript(self) -> None:
        assert Transcript().movetext == "*"


class TestEndToEndScenarios:
    def test_clean_game(self) -> None:
        frames = [START, as_white_frame(play("e2e4")), as_white_frame(play("e2e4", "e7e5"))]
        corrected = reconstruct(frames)
        assert len(corrected) == 3
        assert synthesize(corrected).movetext == "1.e4 e5 *"

    def test_duplicate_glitch(self) -> None:
        corrected = reconstruct([START, START, as_white_frame(play("e2e4"))])
        assert len(corrected) == 2
        assert synthesize(corrected).movetext == "1.e4 *"

    def test_unreconcilable_frame(self) -> None:
        noisy = perturb(START, {
            chess.A1: PieceLabel.BLACK_ROOK,
            chess.C1: PieceLabel.EMPTY,
            chess.F8: PieceLabel.WHITE_QUEEN,
            chess.H7: PieceLabel.BLACK_KNIGHT,
            chess.D8: PieceLabel.BLACK_KING,
        })
        corrected = reconstruct([START, noisy, as_white_frame(play("e2e4"))])
        assert corrected == [START, play("e2e4")]
        assert synthesize(corrected).movetext == "1.e4 *"

    def test_noisy_accepted_move_still_transcribed(self) -> None:
        frame = perturb(play("e2e4"), {chess.A7: PieceLabel.EMPTY}, chess.WHITE)
        corrected = reconstruct([START, frame])
        assert synthesize(corrected).movetext == "1.e4 *"

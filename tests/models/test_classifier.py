"""Tests for the square classifier boundary."""

import numpy as np
import torch
import torch.nn as nn

from chess_transcriber.models.classifier import (
    CLASS_NAMES,
    NUM_CLASSES,
    ChessPieceClassifier,
    SquareClassifier,
)
from chess_transcriber.reconstruction.board_codec import PieceLabel


class BrightnessNet(nn.Module):
    """Bright squares → white king, dark → empty."""

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        brightness = x.mean(dim=(1, 2, 3))
        logits = torch.zeros(x.shape[0], NUM_CLASSES)
        logits[:, CLASS_NAMES.index("white_king")] = brightness
        logits[:, CLASS_NAMES.index("empty")] = -brightness
        return logits


def _square(value: int) -> np.ndarray:
    return np.full((50, 50, 3), value, dtype=np.uint8)


class TestClassNames:
    def test_thirteen_classes_empty_first(self) -> None:
        assert NUM_CLASSES == 13
        assert CLASS_NAMES[0] == "empty"
        assert CLASS_NAMES == [label.value for label in PieceLabel]


class TestSquareClassifier:
    def test_batch(self) -> None:
        classifier = SquareClassifier(BrightnessNet())
        labels = classifier.classify_squares([_square(250), _square(5), _square(240)])
        assert labels == [PieceLabel.WHITE_KING, PieceLabel.EMPTY, PieceLabel.WHITE_KING]

    def test_single_square(self) -> None:
        assert SquareClassifier(BrightnessNet()).classify_square(_square(0)) is PieceLabel.EMPTY

    def test_empty_batch(self) -> None:
        assert SquareClassifier(BrightnessNet()).classify_squares([]) == []

    def test_tta_gives_same_answer_on_symmetric_input(self) -> None:
        plain = SquareClassifier(BrightnessNet())
        tta = SquareClassifier(BrightnessNet(), use_tta=True)
        squares = [_square(250), _square(5)]
        assert plain(squares) == tta(squares)


class TestChessPieceClassifier:
    def test_output_shape(self) -> None:
        model = ChessPieceClassifier().eval()
        probs = model.predict_proba(torch.zeros(2, 3, 64, 64))
        assert probs.shape == (2, NUM_CLASSES)
        assert torch.allclose(probs.sum(dim=1), torch.ones(2), atol=1e-5)

    def test_checkpoint_round_trip(self, tmp_path) -> None:
        model = ChessPieceClassifier()
        path = tmp_path / "classifier.pt"
        torch.save(model.state_dict(), path)
        classifier = SquareClassifier.from_checkpoint(path, device="cpu")
        assert len(classifier.classify_squares([_square(128)] * 4)) == 4

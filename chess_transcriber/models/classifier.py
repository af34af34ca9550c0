"""
Square Classifier – MobileNetV3-Small, 13 Classes
==================================================

Two layers:
  • :class:`ChessPieceClassifier` – the network.  MobileNetV3-Small
    backbone with a small MLP head (dropout → 256-d → ReLU → dropout →
    13 logits).  ``forward`` returns logits; ``predict_proba`` applies
    softmax.
  • :class:`SquareClassifier` – the boundary the rest of the package
    talks to.  It maps square images (BGR, OpenCV convention) to
    :class:`PieceLabel` values and keeps no state between calls besides
    the frozen weights, so one instance can be shared by worker threads.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

import cv2
import numpy as np
import torch
import torch.nn as nn
from torchvision import models, transforms

from chess_transcriber.reconstruction.board_codec import PieceLabel


# ── Canonical class list (index ↔ label mapping) ──────────────────────

CLASS_NAMES: list[str] = [label.value for label in PieceLabel]

NUM_CLASSES: int = len(CLASS_NAMES)

IMAGENET_MEAN = [0.485, 0.456, 0.406]
IMAGENET_STD = [0.229, 0.224, 0.225]


def inference_transform() -> transforms.Compose:
    """Normalisation-only transform for RGB square arrays."""
    return transforms.Compose([
        transforms.ToTensor(),
        transforms.Normalize(mean=IMAGENET_MEAN, std=IMAGENET_STD),
    ])


# ── Model ──────────────────────────────────────────────────────────────

class ChessPieceClassifier(nn.Module):
    """MobileNetV3-Small with a custom 13-class head for chess squares.

    Parameters
    ----------
    num_classes : int
        Number of output classes (default 13).
    dropout : float
        Dropout probability used in the classifier head.
    pretrained : bool
        Start from ImageNet weights.  Not needed when a checkpoint is
        loaded on top.
    """

    def __init__(
        self,
        num_classes: int = NUM_CLASSES,
        dropout: float = 0.3,
        pretrained: bool = False,
    ) -> None:
        super().__init__()

        weights = models.MobileNet_V3_Small_Weights.IMAGENET1K_V1 if pretrained else None
        self.backbone = models.mobilenet_v3_small(weights=weights)

        in_features: int = self.backbone.classifier[0].in_features
        self.backbone.classifier = nn.Sequential(
            nn.Dropout(p=dropout),
            nn.Linear(in_features, 256),
            nn.ReLU(inplace=True),
            nn.Dropout(p=dropout),
            nn.Linear(256, num_classes),
        )

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """Return **logits** of shape ``(B, num_classes)``."""
        return self.backbone(x)

    def predict_proba(self, x: torch.Tensor) -> torch.Tensor:
        """Return softmax probabilities of shape ``(B, num_classes)``."""
        with torch.no_grad():
            return torch.softmax(self.forward(x), dim=1)

    @classmethod
    def load_from_checkpoint(
        cls,
        path: str | Path,
        device: Optional[torch.device] = None,
        **kwargs,
    ) -> "ChessPieceClassifier":
        """Convenience loader that handles map_location automatically."""
        if device is None:
            device = torch.device("cuda" if torch.cuda.is_available() else "cpu")
        model = cls(**kwargs)
        state = torch.load(str(path), map_location=device, weights_only=True)
        model.load_state_dict(state)
        model.to(device)
        model.eval()
        return model


# ── Classifier boundary ───────────────────────────────────────────────

class SquareClassifier:
    """Image → :class:`PieceLabel` for single squares or whole frames.

    Parameters
    ----------
    model : nn.Module
        Any module producing ``(B, 13)`` logits in ``CLASS_NAMES`` order.
    device : str
        ``"cpu"`` or ``"cuda"``.
    square_size : int
        Side length each square is resized to before the forward pass.
    use_tta : bool
        Average predictions with a horizontally flipped copy.
    """

    def __init__(
        self,
        model: nn.Module,
        device: str = "cpu",
        square_size: int = 64,
        use_tta: bool = False,
    ) -> None:
        self.device = torch.device(device)
        self.model = model.to(self.device).eval()
        self.square_size = square_size
        self.use_tta = use_tta
        self.transform = inference_transform()

    @classmethod
    def from_checkpoint(
        cls,
        weights: str | Path,
        device: str = "cpu",
        square_size: int = 64,
        use_tta: bool = False,
    ) -> "SquareClassifier":
        model = ChessPieceClassifier.load_from_checkpoint(
            weights, device=torch.device(device),
        )
        return cls(model, device=device, square_size=square_size, use_tta=use_tta)

    def classify_square(self, image: np.ndarray) -> PieceLabel:
        return self.classify_squares([image])[0]

    @torch.no_grad()
    def classify_squares(self, images: Sequence[np.ndarray]) -> List[PieceLabel]:
        """Classify a batch of BGR square images in one forward pass."""
        if len(images) == 0:
            return []

        tensors: List[torch.Tensor] = []
        for img in images:
            rgb = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
            rgb = cv2.resize(rgb, (self.square_size, self.square_size))
            tensors.append(self.transform(rgb))
        batch = torch.stack(tensors).to(self.device)

        logits = self.model(batch)
        probs = torch.softmax(logits, dim=1)
        if self.use_tta:
            flipped = torch.flip(batch, dims=[3])
            probs = (probs + torch.softmax(self.model(flipped), dim=1)) / 2.0

        indices = probs.argmax(dim=1).tolist()
        return [PieceLabel(CLASS_NAMES[i]) for i in indices]

    __call__ = classify_squares

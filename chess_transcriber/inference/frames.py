"""
Frame Sampling & Board Segmentation
===================================

Stages before classification:
  1. **Sampling** – one frame per ``interval_s`` seconds of video, read by
     seeking with ``cv2.CAP_PROP_POS_MSEC``.  A directory of still images
     (sorted by file name) works as well.
  2. **Cropping** – a fixed :class:`CropRegion` given as fractions of the
     frame (the camera does not move during a game), or, when none is
     configured, the largest centred square of the frame.
  3. **Grid split** – the cropped board is resized to ``warp_size`` and
     cut into 64 squares in image row-major order (a8 … h1).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional

import cv2
import numpy as np

log = logging.getLogger(__name__)

IMAGE_SUFFIXES = (".jpg", ".jpeg", ".png", ".bmp")


@dataclass
class VideoFrame:
    """A sampled frame."""
    index: int                   # position in the sampled sequence
    timestamp_s: float           # seconds from the start of the video
    image: np.ndarray            # BGR


# ── Sampling ───────────────────────────────────────────────────────────

def sample_frames(video_path: str | Path, interval_s: float = 1.0) -> Iterator[VideoFrame]:
    """Yield one frame every *interval_s* seconds until the video ends.

    Raises
    ------
    FileNotFoundError
        If *video_path* does not exist.
    IOError
        If OpenCV cannot open the file.
    """
    if interval_s <= 0:
        raise ValueError(f"interval_s must be positive, got {interval_s}")
    path = Path(video_path)
    if not path.exists():
        raise FileNotFoundError(path)

    cap = cv2.VideoCapture(str(path))
    if not cap.isOpened():
        raise IOError(f"Could not open video: {path}")

    try:
        fps = cap.get(cv2.CAP_PROP_FPS) or 0.0
        frame_count = cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0.0
        duration_s = frame_count / fps if fps > 0 else float("inf")
        log.info("Sampling %s  duration=%.1fs  interval=%.2fs", path, duration_s, interval_s)

        index = 0
        t = 0.0
        while t < duration_s:
            cap.set(cv2.CAP_PROP_POS_MSEC, t * 1000.0)
            ok, image = cap.read()
            if not ok or image is None:
                break
            yield VideoFrame(index=index, timestamp_s=t, image=image)
            index += 1
            t += interval_s
    finally:
        cap.release()


def load_frames(directory: str | Path) -> List[VideoFrame]:
    """Load still images from *directory*, ordered by file name."""
    root = Path(directory)
    if not root.is_dir():
        raise FileNotFoundError(root)

    frames: List[VideoFrame] = []
    files = sorted(p for p in root.iterdir() if p.suffix.lower() in IMAGE_SUFFIXES)
    for path in files:
        image = cv2.imread(str(path))
        if image is None:
            log.warning("Could not read frame %s – skipped", path)
            continue
        frames.append(VideoFrame(index=len(frames), timestamp_s=float(len(frames)), image=image))
    return frames


# ── Cropping ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CropRegion:
    """Board rectangle as fractions (0–1) of frame width / height."""
    left: float = 0.15
    top: float = 0.15
    right: float = 0.85
    bottom: float = 0.85

    def __post_init__(self) -> None:
        if not (0.0 <= self.left < self.right <= 1.0 and 0.0 <= self.top < self.bottom <= 1.0):
            raise ValueError(f"Invalid crop region {self}")

    def apply(self, image: np.ndarray) -> np.ndarray:
        h, w = image.shape[:2]
        x1 = min(max(int(self.left * w), 0), w - 1)
        y1 = min(max(int(self.top * h), 0), h - 1)
        x2 = min(max(int(self.right * w), x1 + 1), w)
        y2 = min(max(int(self.bottom * h), y1 + 1), h)
        return image[y1:y2, x1:x2]


def centre_square(image: np.ndarray) -> np.ndarray:
    """Largest centred square of *image*."""
    h, w = image.shape[:2]
    side = min(h, w)
    y1 = (h - side) // 2
    x1 = (w - side) // 2
    return image[y1:y1 + side, x1:x1 + side]


def prepare_board(
    image: np.ndarray,
    crop: Optional[CropRegion] = None,
    warp_size: int = 512,
) -> np.ndarray:
    """Crop the board out of a frame and resize it to ``warp_size`` square."""
    board = crop.apply(image) if crop is not None else centre_square(image)
    return cv2.resize(board, (warp_size, warp_size), interpolation=cv2.INTER_AREA)


# ── Grid split ─────────────────────────────────────────────────────────

def extract_squares(
    board_img: np.ndarray,
    square_size: int = 64,
) -> list[np.ndarray]:
    """Split a square board image into 64 square images.

    The output order is **FEN row-major**: rank 8 (top row of image)
    through rank 1 (bottom row), files a–h left-to-right within each rank.

    Returns
    -------
    list[np.ndarray]
        64 images in FEN order (index 0 = a8, index 63 = h1).
    """
    h, w = board_img.shape[:2]
    cell_h = h / 8
    cell_w = w / 8
    squares: list[np.ndarray] = []

    for row in range(8):
        for col in range(8):
            cell = board_img[
                int(row * cell_h):int((row + 1) * cell_h),
                int(col * cell_w):int((col + 1) * cell_w),
            ]
            squares.append(cv2.resize(cell, (square_size, square_size)))

    return squares

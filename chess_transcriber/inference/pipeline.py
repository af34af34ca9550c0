"""
Transcription Pipeline – Video → PGN
====================================

Pipeline stages:
  1. Frame sampling       – one frame per configured interval
  2. Board crop + resize  – fixed crop region or centred square
  3. Square extraction    – 8×8 grid → 64 images
  4. Classification       – one batched forward pass per frame; frames
                            are dispatched to a thread pool and re-joined
                            in frame order
  5. Decoding             – 64 labels → normalised position (white to move)
  6. Alignment            – noisy positions → legal-move trajectory
  7. Synthesis            – trajectory → approximate PGN

Stages 1–5 are per frame and independent.  Stages 6–7 are strictly
sequential and run once over the whole observed sequence.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Set

import numpy as np

from chess_transcriber.config import TranscriberConfig
from chess_transcriber.inference.frames import (
    VideoFrame,
    extract_squares,
    load_frames,
    prepare_board,
    sample_frames,
)
from chess_transcriber.reconstruction.aligner import (
    AlignmentStats,
    DiscrepancyRecord,
    SequenceAligner,
)
from chess_transcriber.reconstruction.board_codec import (
    BoardState,
    PieceLabel,
    decode,
    lichess_editor_url,
    to_normalized_position,
)
from chess_transcriber.reconstruction.errors import MalformedFrame
from chess_transcriber.reconstruction.transcript import Transcript, synthesize

log = logging.getLogger(__name__)


# ── Result dataclasses ────────────────────────────────────────────────

@dataclass
class FrameRecognition:
    """Recognition of a single board image."""
    labels: List[PieceLabel]                       # 64 labels, a8 … h1
    state: BoardState
    position: str                                  # normalised FEN
    url: str                                       # lichess board editor link


@dataclass
class TranscriptionResult:
    """Full output of a video transcription."""
    observed: List[Optional[str]]                  # per frame, None = undecodable
    corrected: List[str]                           # aligner output
    transcript: Transcript
    discrepancies: Set[DiscrepancyRecord] = field(default_factory=set)
    stats: AlignmentStats = field(default_factory=AlignmentStats)

    @property
    def pgn(self) -> str:
        return self.transcript.pgn()


# ── Pipeline class ─────────────────────────────────────────────────────

class TranscriptionPipeline:
    """End-to-end chess video → PGN pipeline.

    Parameters
    ----------
    classifier
        Object with ``classify_squares(images) -> list[PieceLabel]``,
        normally a :class:`~chess_transcriber.models.classifier.SquareClassifier`.
        It is called concurrently from worker threads and must not keep
        state between calls.
    config : TranscriberConfig, optional
        Sampling, cropping and alignment settings.
    """

    def __init__(self, classifier, config: Optional[TranscriberConfig] = None) -> None:
        self.classifier = classifier
        self.config = config or TranscriberConfig()

        log.info(
            "Pipeline ready  classifier=%s  interval=%.2fs  workers=%d  tolerance=%d",
            type(classifier).__name__,
            self.config.frame_interval_s,
            self.config.workers,
            self.config.noise_tolerance,
        )

    @classmethod
    def from_weights(
        cls,
        weights: str | Path,
        config: Optional[TranscriberConfig] = None,
    ) -> "TranscriptionPipeline":
        """Build a pipeline around a trained classifier checkpoint."""
        from chess_transcriber.models.classifier import SquareClassifier

        config = config or TranscriberConfig()
        classifier = SquareClassifier.from_checkpoint(
            weights,
            device=config.device,
            square_size=config.square_size,
            use_tta=config.use_tta,
        )
        return cls(classifier, config)

    # ── Public API ─────────────────────────────────────────────────────

    def recognize(self, image: np.ndarray) -> FrameRecognition:
        """Classify one BGR board image.

        Raises
        ------
        MalformedFrame
            If the classifier does not return 64 valid labels.
        """
        board_img = prepare_board(image, self.config.crop, self.config.warp_size)
        squares = extract_squares(board_img, square_size=self.config.square_size)
        labels = list(self.classifier.classify_squares(squares))
        state = decode(labels)
        position = to_normalized_position(state)
        return FrameRecognition(
            labels=[PieceLabel.parse(label) for label in labels],
            state=state,
            position=position,
            url=lichess_editor_url(position),
        )

    def observe(self, frames: Iterable[VideoFrame]) -> List[Optional[str]]:
        """Normalised position per frame, in frame order.

        Frames that fail to decode come back as ``None``.
        """
        frames = list(frames)
        if self.config.workers <= 1:
            return [self._observe_frame(frame) for frame in frames]
        with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
            return list(pool.map(self._observe_frame, frames))

    def transcribe_frames(self, frames: Iterable[VideoFrame]) -> TranscriptionResult:
        observed = self.observe(frames)
        if not observed:
            log.warning("No frames to transcribe")

        aligner = SequenceAligner(self.config.noise_tolerance)
        corrected = aligner.reconstruct(observed)
        transcript = synthesize(corrected, headers=self.config.headers)

        return TranscriptionResult(
            observed=observed,
            corrected=corrected,
            transcript=transcript,
            discrepancies=set(aligner.discrepancies),
            stats=aligner.stats,
        )

    def transcribe_video(self, video_path: str | Path) -> TranscriptionResult:
        """Transcribe a video file, or a directory of already extracted frames."""
        if Path(video_path).is_dir():
            frames = load_frames(video_path)
        else:
            frames = sample_frames(video_path, interval_s=self.config.frame_interval_s)
        return self.transcribe_frames(frames)

    def process_video(self, video_path: str | Path) -> str:
        """PGN text for *video_path*, or ``"Error: <reason>"``.

        A degraded transcript is returned whenever at least one frame
        decoded; only a wholesale failure produces the error string.
        """
        try:
            result = self.transcribe_video(video_path)
        except (OSError, ValueError) as exc:
            log.error("Error processing video %s: %s", video_path, exc)
            return f"Error: {exc}"

        if result.observed and all(p is None for p in result.observed):
            log.error("None of the %d frames of %s could be decoded",
                      len(result.observed), video_path)
            return f"Error: no decodable frames in {video_path}"
        return result.pgn

    # ── Per-frame work ─────────────────────────────────────────────────

    def _observe_frame(self, frame: VideoFrame) -> Optional[str]:
        try:
            return self.recognize(frame.image).position
        except MalformedFrame as exc:
            log.warning("Frame %d (t=%.1fs): %s", frame.index, frame.timestamp_s, exc)
            return None

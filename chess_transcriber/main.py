"""
Chess Transcriber – Main Entry Point
====================================

Commands:

  1. **Transcribe** – Sample a chess video, classify every frame and print
                      the reconstructed game as PGN.
  2. **Recognize**  – Classify a single board image and print its FEN and
                      a lichess editor link.
  3. **Replay**     – Align a text file of FEN positions (one per line,
                      e.g. produced by another recogniser) and print the
                      corrected positions and PGN.  No model needed.

Usage examples
--------------

**Transcription**::

    python chess_transcriber.py transcribe \\
        --video game.mp4 \\
        --weights checkpoints/best_classifier.pt \\
        --interval 1.0 \\
        --output game.pgn

**Single image**::

    python chess_transcriber.py recognize \\
        --image board.png \\
        --weights checkpoints/best_classifier.pt

**Replay**::

    python chess_transcriber.py replay --positions frames.fen
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from chess_transcriber.config import TranscriberConfig

log = logging.getLogger("chess_transcriber")


def _load_config(args: argparse.Namespace) -> TranscriberConfig:
    config = TranscriberConfig.from_json(args.config) if args.config else TranscriberConfig()
    for name in ("frame_interval_s", "device", "workers", "noise_tolerance"):
        value = getattr(args, name, None)
        if value is not None:
            setattr(config, name, value)
    if getattr(args, "tta", False):
        config.use_tta = True
    return config


def _write_or_print(text: str, output: Optional[str]) -> None:
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        log.info("Wrote %s", output)
    else:
        print(text)


# ═══════════════════════════════════════════════════════════════════════
# Transcription
# ═══════════════════════════════════════════════════════════════════════

def cmd_transcribe(args: argparse.Namespace) -> None:
    """Run the full video → PGN pipeline."""
    from chess_transcriber.inference.pipeline import TranscriptionPipeline

    if not Path(args.video).exists():
        log.error("Could not find video: %s", args.video)
        sys.exit(1)

    pipeline = TranscriptionPipeline.from_weights(args.weights, _load_config(args))
    pgn = pipeline.process_video(args.video)
    if pgn.startswith("Error:"):
        print(pgn, file=sys.stderr)
        sys.exit(1)
    _write_or_print(pgn, args.output)


# ═══════════════════════════════════════════════════════════════════════
# Single image
# ═══════════════════════════════════════════════════════════════════════

def cmd_recognize(args: argparse.Namespace) -> None:
    """Classify one board image."""
    import cv2

    from chess_transcriber.inference.pipeline import TranscriptionPipeline
    from chess_transcriber.reconstruction.errors import MalformedFrame

    image = cv2.imread(args.image)
    if image is None:
        log.error("Could not read image: %s", args.image)
        sys.exit(1)

    pipeline = TranscriptionPipeline.from_weights(args.weights, _load_config(args))
    try:
        result = pipeline.recognize(image)
    except MalformedFrame as exc:
        log.error("Recognition failed: %s", exc)
        sys.exit(1)

    print("\n" + "=" * 60)
    print("  CHESS RECOGNITION RESULT")
    print("=" * 60)
    print(f"  FEN (position) : {result.state.placement()}")
    print(f"  FEN (full)     : {result.position}")
    print(f"  Lichess        : {result.url}")
    print("=" * 60 + "\n")


# ═══════════════════════════════════════════════════════════════════════
# Replay
# ═══════════════════════════════════════════════════════════════════════

def read_positions(path: str | Path) -> List[Optional[str]]:
    """FEN per non-blank line; a line reading ``-`` marks an undecodable frame."""
    positions: List[Optional[str]] = []
    with open(path, encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            positions.append(None if line == "-" else line)
    return positions


def cmd_replay(args: argparse.Namespace) -> None:
    """Align a list of recognised positions and print the PGN."""
    from chess_transcriber.reconstruction.aligner import SequenceAligner
    from chess_transcriber.reconstruction.errors import InvalidPosition
    from chess_transcriber.reconstruction.transcript import synthesize

    config = _load_config(args)
    try:
        observed = read_positions(args.positions)
        aligner = SequenceAligner(config.noise_tolerance)
        corrected = aligner.reconstruct(observed)
    except (OSError, InvalidPosition) as exc:
        log.error("Replay failed: %s", exc)
        sys.exit(1)

    if args.show_positions:
        for position in corrected:
            print(position)
        for record in sorted(aligner.discrepancies, key=lambda r: r.square):
            print(f"# noise {record}")
        print()

    _write_or_print(synthesize(corrected, headers=config.headers).pgn(), args.output)


# ═══════════════════════════════════════════════════════════════════════
# CLI
# ═══════════════════════════════════════════════════════════════════════

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chess_transcriber",
        description="Reconstruct a chess game from a video of the board.",
    )
    parser.add_argument("--config", default=None,
                        help="JSON file with TranscriberConfig fields")
    parser.add_argument("--verbose", action="store_true",
                        help="Log every accepted / rejected frame")
    sub = parser.add_subparsers(dest="command", help="Available commands")

    # ── transcribe ──
    p_tr = sub.add_parser("transcribe", help="Transcribe a video to PGN")
    p_tr.add_argument("--video", required=True,
                      help="Path to the video file or a directory of frame images")
    p_tr.add_argument("--weights", required=True,
                      help="Path to classifier .pt checkpoint")
    p_tr.add_argument("--interval", dest="frame_interval_s", type=float, default=None,
                      help="Seconds between sampled frames (default 1.0)")
    p_tr.add_argument("--device", default=None, choices=["cpu", "cuda"])
    p_tr.add_argument("--workers", type=int, default=None,
                      help="Frames classified concurrently")
    p_tr.add_argument("--tolerance", dest="noise_tolerance", type=int, default=None,
                      help="Squares a move may disagree with a frame (default 2)")
    p_tr.add_argument("--tta", action="store_true",
                      help="Enable test-time augmentation")
    p_tr.add_argument("--output", default=None, help="Write PGN to this path")

    # ── recognize ──
    p_rec = sub.add_parser("recognize", help="Recognize a single board image")
    p_rec.add_argument("--image", required=True, help="Path to board image")
    p_rec.add_argument("--weights", required=True,
                       help="Path to classifier .pt checkpoint")
    p_rec.add_argument("--device", default=None, choices=["cpu", "cuda"])
    p_rec.add_argument("--tta", action="store_true",
                       help="Enable test-time augmentation")

    # ── replay ──
    p_rep = sub.add_parser("replay", help="Align recognised FEN positions")
    p_rep.add_argument("--positions", required=True,
                       help="Text file with one FEN per line")
    p_rep.add_argument("--tolerance", dest="noise_tolerance", type=int, default=None)
    p_rep.add_argument("--show-positions", action="store_true",
                       help="Also print the corrected positions")
    p_rep.add_argument("--output", default=None, help="Write PGN to this path")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    dispatch = {
        "transcribe": cmd_transcribe,
        "recognize": cmd_recognize,
        "replay": cmd_replay,
    }

    dispatch[args.command](args)


if __name__ == "__main__":
    main()

"""
Root entry point – delegates to the chess_transcriber package.

Usage:
    python chess_transcriber.py transcribe --video game.mp4 --weights checkpoints/best_classifier.pt
    python chess_transcriber.py recognize  --image board.png --weights checkpoints/best_classifier.pt
    python chess_transcriber.py replay     --positions frames.fen
"""

from chess_transcriber.main import main

if __name__ == "__main__":
    main()

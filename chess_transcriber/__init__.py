"""
Chess Video Transcriber
=======================

Reconstructs a chess game from a video of the board and emits it as PGN.

Architecture:
    1. Frame Sampling     – one frame per second via OpenCV
    2. Board Segmentation – crop region / centred square → 8×8 grid
    3. Classification     – MobileNetV3-Small, 13 classes per square
    4. Decoding           – 64 labels → normalised FEN
    5. Alignment          – noisy positions → legal-move trajectory
    6. Synthesis          – trajectory → approximate PGN move text
"""

__version__ = "1.0.0"

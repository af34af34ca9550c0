"""
Reconstruction errors.

Only conditions that make an input unusable raise.  Per-frame noise
(rejected frames, unmatched transitions) is reported through logging and
the aligner / transcript counters instead.
"""

from __future__ import annotations


class TranscriberError(ValueError):
    """Base class for all errors raised by the reconstruction core."""


class MalformedFrame(TranscriberError):
    """A frame's labels do not decode into a 64-square board."""


class InvalidPosition(TranscriberError):
    """A position string cannot be parsed by the rules engine."""

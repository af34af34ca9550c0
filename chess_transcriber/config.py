"""Runtime settings for the transcription pipeline."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Dict, Optional

from chess_transcriber.inference.frames import CropRegion
from chess_transcriber.reconstruction.aligner import NOISE_TOLERANCE


@dataclass
class TranscriberConfig:
    frame_interval_s: float = 1.0                  # one sampled frame per interval
    square_size: int = 64                          # classifier input side
    warp_size: int = 512                           # board side before the grid split
    crop: Optional[CropRegion] = None              # None → centred square
    noise_tolerance: int = NOISE_TOLERANCE
    device: str = "cpu"
    use_tta: bool = False
    workers: int = 4                               # frames classified concurrently
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict) -> "TranscriberConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")
        values = dict(data)
        if values.get("crop") is not None:
            values["crop"] = CropRegion(**values["crop"])
        return cls(**values)

    @classmethod
    def from_json(cls, path: str | Path) -> "TranscriberConfig":
        with open(path, encoding="utf-8") as fh:
            return cls.from_dict(json.load(fh))

    def to_dict(self) -> Dict:
        return asdict(self)

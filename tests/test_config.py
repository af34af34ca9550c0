"""Tests for TranscriberConfig."""

import json

import pytest

from chess_transcriber.config import TranscriberConfig
from chess_transcriber.inference.frames import CropRegion


class TestTranscriberConfig:
    def test_defaults(self) -> None:
        config = TranscriberConfig()
        assert config.frame_interval_s == 1.0
        assert config.noise_tolerance == 2
        assert config.crop is None
        assert config.headers == {}

    def test_from_json(self, tmp_path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "frame_interval_s": 0.5,
            "crop": {"left": 0.1, "top": 0.2, "right": 0.9, "bottom": 0.8},
            "headers": {"Event": "Club night"},
        }))
        config = TranscriberConfig.from_json(path)
        assert config.frame_interval_s == 0.5
        assert config.crop == CropRegion(0.1, 0.2, 0.9, 0.8)
        assert config.headers == {"Event": "Club night"}

    def test_unknown_key(self) -> None:
        with pytest.raises(ValueError, match="Unknown config keys"):
            TranscriberConfig.from_dict({"framerate": 30})

    def test_round_trip(self) -> None:
        config = TranscriberConfig(crop=CropRegion(), workers=2)
        assert TranscriberConfig.from_dict(config.to_dict()) == config

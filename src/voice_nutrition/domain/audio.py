"""Domain models for captured audio."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from uuid import UUID

import numpy as np


@dataclass(frozen=True)
class AudioFormat:
    """Sample rate, channel layout and sample width of a PCM stream."""

    sample_rate: int
    channels: int
    sample_width_bytes: int = 2


TARGET_FORMAT = AudioFormat(sample_rate=16000, channels=1, sample_width_bytes=2)


@dataclass(frozen=True)
class AudioBuffer:
    """One chunk of float32 samples at the input hardware rate."""

    samples: np.ndarray
    sample_rate: int
    captured_at: float = 0.0

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def channels(self) -> int:
        if self.samples.ndim == 1:
            return 1
        return int(self.samples.shape[1])

    @property
    def duration_seconds(self) -> float:
        return self.frame_count / self.sample_rate


@dataclass
class RecordingSession:
    """One user-initiated capture, start to stop."""

    id: UUID
    path: Path
    input_format: AudioFormat
    target_format: AudioFormat
    started_at: datetime
    buffers_dropped: int = 0
    closed: bool = field(default=False)

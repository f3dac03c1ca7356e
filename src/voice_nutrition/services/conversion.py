"""Streaming conversion of captured audio to 16 kHz mono PCM."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
import soundfile as sf

from voice_nutrition.domain.audio import TARGET_FORMAT, AudioBuffer, AudioFormat

_INT16_SCALE = 32767

_logger = logging.getLogger(__name__)


@dataclass
class StreamingResampler:
    """Resample chunked audio while carrying interpolation phase across chunks.

    Multi-channel input is down-mixed by averaging all channels. Output
    length per chunk follows ``frames * output_rate / input_rate``; the total
    over a stream differs from the exact ratio by at most one frame.
    """

    input_rate: int
    output_rate: int
    output_channels: int = 1
    _step: float = field(init=False)
    _position: float = field(default=0.0, init=False)
    _last_sample: float | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        if self.input_rate <= 0 or self.output_rate <= 0:
            raise ValueError("sample rates must be positive")
        self._step = self.input_rate / self.output_rate

    def process(self, samples: np.ndarray) -> np.ndarray:
        """Return int16 frames of shape (n, output_channels) for one chunk."""
        mono = downmix(samples)
        if mono.size == 0:
            return np.zeros((0, self.output_channels), dtype=np.int16)

        if self._last_sample is None:
            extended = mono
            start = self._position
        else:
            extended = np.concatenate(([self._last_sample], mono))
            start = self._position + 1.0

        last_index = extended.size - 1
        if start > last_index:
            count = 0
        else:
            count = int(np.floor((last_index - start) / self._step)) + 1
        positions = start + np.arange(count) * self._step
        resampled = np.interp(positions, np.arange(extended.size), extended)

        self._position = start + count * self._step - extended.size
        self._last_sample = float(extended[-1])
        return _to_int16(resampled, self.output_channels)


def downmix(samples: np.ndarray) -> np.ndarray:
    """Average all channels into one float64 channel."""
    data = np.asarray(samples, dtype=np.float64)
    if data.ndim == 1:
        return data
    if data.shape[1] == 1:
        return data[:, 0]
    return data.mean(axis=1)


def _to_int16(samples: np.ndarray, channels: int) -> np.ndarray:
    clipped = np.clip(samples, -1.0, 1.0)
    pcm = np.round(clipped * _INT16_SCALE).astype(np.int16)
    return np.repeat(pcm[:, np.newaxis], channels, axis=1)


@dataclass
class FormatConverter:
    """Append converted chunks of a session to a WAV file."""

    path: Path
    input_format: AudioFormat
    target_format: AudioFormat
    resampler: StreamingResampler
    sound_file: sf.SoundFile
    chunks_written: int = 0
    chunks_skipped: int = 0
    frames_written: int = 0

    @classmethod
    def open(
        cls,
        path: Path,
        input_format: AudioFormat,
        target_format: AudioFormat = TARGET_FORMAT,
    ) -> "FormatConverter":
        """Create the output file and a resampler for the input format."""
        sound_file = sf.SoundFile(
            str(path),
            mode="w",
            samplerate=target_format.sample_rate,
            channels=target_format.channels,
            format="WAV",
            subtype="PCM_16",
        )
        resampler = StreamingResampler(
            input_rate=input_format.sample_rate,
            output_rate=target_format.sample_rate,
            output_channels=target_format.channels,
        )
        return cls(
            path=path,
            input_format=input_format,
            target_format=target_format,
            resampler=resampler,
            sound_file=sound_file,
        )

    @property
    def closed(self) -> bool:
        return self.sound_file.closed

    def write(self, buffer: AudioBuffer) -> int:
        """Convert and append one buffer, returning the frames written.

        A chunk that fails to convert is logged and skipped so the rest of
        the recording survives.
        """
        try:
            if buffer.sample_rate != self.input_format.sample_rate:
                raise ValueError(
                    f"buffer rate {buffer.sample_rate} Hz does not match "
                    f"stream rate {self.input_format.sample_rate} Hz"
                )
            pcm = self.resampler.process(buffer.samples)
            self.sound_file.write(pcm)
        except Exception as exc:
            self.chunks_skipped += 1
            _logger.warning("Skipping audio chunk (%s frames): %s", buffer.frame_count, exc)
            return 0
        self.chunks_written += 1
        self.frames_written += pcm.shape[0]
        return pcm.shape[0]

    def close(self) -> None:
        """Finalize the WAV header and release the file handle."""
        if self.sound_file.closed:
            return
        self.sound_file.close()
        _logger.info(
            "Recording finalized: path=%s frames=%s chunks=%s skipped=%s",
            self.path,
            self.frames_written,
            self.chunks_written,
            self.chunks_skipped,
        )

"""Microphone capture feeding the format converter."""

import asyncio
import logging
import os
import queue
import tempfile
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol
from uuid import uuid4

import numpy as np

from voice_nutrition.domain.audio import AudioBuffer, AudioFormat, RecordingSession
from voice_nutrition.errors import DeviceError, RecordingSaveError
from voice_nutrition.services.conversion import FormatConverter

DEFAULT_LEVEL_GAIN = 10.0

_STOP = object()

_logger = logging.getLogger(__name__)


class InputStream(Protocol):
    """A running hardware input stream."""

    def stop(self) -> None:
        """Stop delivering buffers."""

    def close(self) -> None:
        """Release the device."""


class Microphone(Protocol):
    """Interface for the platform audio input."""

    def has_input_device(self) -> bool:
        """Return True when an input device can be used."""

    def input_format(self) -> AudioFormat:
        """Return the native format buffers will be delivered in."""

    def open_stream(
        self,
        input_format: AudioFormat,
        block_size: int,
        callback: Callable[[np.ndarray], None],
    ) -> InputStream:
        """Open and start a stream calling ``callback`` per hardware buffer."""


def compute_level(samples: np.ndarray, gain: float = DEFAULT_LEVEL_GAIN) -> float:
    """Return the RMS of ``samples`` scaled by ``gain`` and clamped to [0, 1]."""
    data = np.asarray(samples, dtype=np.float64)
    if data.size == 0:
        return 0.0
    rms = float(np.sqrt(np.mean(np.square(data))))
    if not np.isfinite(rms):
        return 1.0
    return min(max(rms * gain, 0.0), 1.0)


@dataclass
class AudioCapture:
    """Owns the input stream and streams buffers into a converter thread.

    The hardware callback only computes the level and enqueues the buffer
    with ``put_nowait``; conversion and file writes happen on a separate
    worker thread so the callback never blocks.
    """

    microphone: Microphone
    recordings_dir: Path | None = None
    block_size: int = 1024
    queue_size: int = 256
    level_gain: float = DEFAULT_LEVEL_GAIN
    _session: RecordingSession | None = field(default=None, init=False, repr=False)
    _converter: FormatConverter | None = field(default=None, init=False, repr=False)
    _stream: InputStream | None = field(default=None, init=False, repr=False)
    _queue: "queue.Queue[object] | None" = field(default=None, init=False, repr=False)
    _worker: threading.Thread | None = field(default=None, init=False, repr=False)
    _level: float = field(default=0.0, init=False, repr=False)

    @property
    def is_recording(self) -> bool:
        return self._session is not None

    @property
    def level(self) -> float:
        """Return the loudness of the latest buffer in [0, 1]."""
        return self._level

    @property
    def session(self) -> RecordingSession | None:
        return self._session

    @property
    def converter(self) -> FormatConverter | None:
        return self._converter

    async def request_permission(self) -> bool:
        """Return whether audio input may be used; never raises."""
        try:
            return await asyncio.to_thread(self.microphone.has_input_device)
        except Exception:
            _logger.warning("Microphone permission check failed", exc_info=True)
            return False

    def start(self, target_sample_rate: int = 16000, channels: int = 1) -> RecordingSession:
        """Open the input stream and a new session file.

        Starting while a session is open is ignored and returns that session.
        """
        if self._session is not None:
            _logger.warning("Recording already in progress")
            return self._session

        if not self.microphone.has_input_device():
            raise DeviceError()
        input_format = self.microphone.input_format()
        target_format = AudioFormat(sample_rate=target_sample_rate, channels=channels)
        path = _create_recording_path(self.recordings_dir)
        try:
            converter = FormatConverter.open(path, input_format, target_format)
        except (OSError, RuntimeError) as exc:
            path.unlink(missing_ok=True)
            raise DeviceError(f"Cannot create recording file: {exc}") from exc

        session = RecordingSession(
            id=uuid4(),
            path=path,
            input_format=input_format,
            target_format=target_format,
            started_at=datetime.now(tz=UTC),
        )
        self._session = session
        self._converter = converter
        self._queue = queue.Queue(maxsize=self.queue_size)
        self._worker = threading.Thread(
            target=self._drain, name="AudioConverterThread", daemon=True
        )
        self._worker.start()

        try:
            self._stream = self.microphone.open_stream(
                input_format, self.block_size, self._on_buffer
            )
        except DeviceError:
            self._shutdown_worker()
            converter.close()
            path.unlink(missing_ok=True)
            self._reset()
            raise

        _logger.info(
            "Recording started: session=%s input=%sHz/%sch target=%sHz/%sch",
            session.id,
            input_format.sample_rate,
            input_format.channels,
            target_format.sample_rate,
            target_format.channels,
        )
        return session

    def stop(self) -> Path | None:
        """Stop the stream and finalize the session file.

        Returns the file path, or None when no session is open. The session
        is cleared even when finalizing fails; the partial file is then
        deleted and RecordingSaveError is raised.
        """
        session = self._session
        if session is None:
            return None

        try:
            if self._stream is not None:
                try:
                    self._stream.stop()
                    self._stream.close()
                except Exception:
                    _logger.warning("Failed to close input stream cleanly", exc_info=True)
            self._shutdown_worker()
            if self._converter is not None:
                self._converter.close()
        except Exception as exc:
            _logger.exception("Failed to finalize recording %s", session.path)
            try:
                session.path.unlink(missing_ok=True)
            except OSError:
                _logger.warning("Failed to delete recording %s", session.path)
            raise RecordingSaveError(str(exc)) from exc
        finally:
            session.closed = True
            self._reset()
        if session.buffers_dropped:
            _logger.warning("Dropped %s buffers during recording", session.buffers_dropped)
        _logger.info("Recording stopped: session=%s", session.id)
        return session.path

    def _on_buffer(self, samples: np.ndarray) -> None:
        session = self._session
        buffer_queue = self._queue
        if session is None or buffer_queue is None:
            return
        self._level = compute_level(samples, self.level_gain)
        buffer = AudioBuffer(
            samples=samples,
            sample_rate=session.input_format.sample_rate,
            captured_at=time.monotonic(),
        )
        try:
            buffer_queue.put_nowait(buffer)
        except queue.Full:
            session.buffers_dropped += 1

    def _drain(self) -> None:
        buffer_queue = self._queue
        converter = self._converter
        if buffer_queue is None or converter is None:
            return
        while True:
            item = buffer_queue.get()
            if item is _STOP:
                return
            converter.write(item)  # type: ignore[arg-type]

    def _shutdown_worker(self) -> None:
        worker = self._worker
        if worker is None or not worker.is_alive():
            return
        if self._queue is not None:
            self._queue.put(_STOP)
        worker.join()

    def _reset(self) -> None:
        self._session = None
        self._converter = None
        self._stream = None
        self._queue = None
        self._worker = None
        self._level = 0.0


def _create_recording_path(directory: Path | None) -> Path:
    if directory is not None:
        directory.mkdir(parents=True, exist_ok=True)
    fd, filename = tempfile.mkstemp(
        suffix=".wav", prefix="voice-nutrition-", dir=directory
    )
    os.close(fd)
    return Path(filename)

"""Microphone access through PortAudio via sounddevice."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from types import ModuleType

import numpy as np

from voice_nutrition.domain.audio import AudioFormat
from voice_nutrition.errors import DeviceError
from voice_nutrition.services.capture import InputStream, Microphone

_MAX_CHANNELS = 2

_logger = logging.getLogger(__name__)


def _load_sounddevice() -> ModuleType:
    """Import sounddevice, which fails when PortAudio is not installed."""
    try:
        import sounddevice  # noqa: PLC0415
    except (ImportError, OSError) as exc:
        raise DeviceError(
            "The `sounddevice` package and the PortAudio library are required "
            "for recording"
        ) from exc
    return sounddevice


@dataclass
class SoundDeviceMicrophone(Microphone):
    """Microphone backed by a sounddevice input stream."""

    device: int | str | None = None

    def has_input_device(self) -> bool:
        """Return True when PortAudio reports a usable input device."""
        sd = _load_sounddevice()
        try:
            info = sd.query_devices(self.device, kind="input")
        except (sd.PortAudioError, ValueError) as exc:
            _logger.warning("No input device available: %s", exc)
            return False
        return int(info.get("max_input_channels", 0)) > 0

    def input_format(self) -> AudioFormat:
        """Return the device's native sample rate and channel count."""
        sd = _load_sounddevice()
        try:
            info = sd.query_devices(self.device, kind="input")
        except (sd.PortAudioError, ValueError) as exc:
            raise DeviceError(f"Cannot query input device: {exc}") from exc
        channels = max(1, min(int(info["max_input_channels"]), _MAX_CHANNELS))
        return AudioFormat(
            sample_rate=int(info["default_samplerate"]),
            channels=channels,
            sample_width_bytes=4,
        )

    def open_stream(
        self,
        input_format: AudioFormat,
        block_size: int,
        callback: Callable[[np.ndarray], None],
    ) -> InputStream:
        """Open and start a float32 input stream delivering to ``callback``."""
        sd = _load_sounddevice()

        def _on_audio(indata, frames, time, status) -> None:  # type: ignore[no-untyped-def]
            if status:
                _logger.debug("Input stream status: %s", status)
            callback(indata.copy())

        try:
            stream = sd.InputStream(
                device=self.device,
                samplerate=input_format.sample_rate,
                channels=input_format.channels,
                blocksize=block_size,
                dtype="float32",
                callback=_on_audio,
            )
            stream.start()
        except (sd.PortAudioError, ValueError) as exc:
            raise DeviceError(f"Cannot open input stream: {exc}") from exc
        return stream

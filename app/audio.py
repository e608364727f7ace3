"""Alert chime playback.

The chime is synthesised once with numpy and played fire-and-forget
through sounddevice. When audio is disabled or PortAudio is missing the
sink quietly does nothing apart from logging a warning once.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from loguru import logger

SAMPLE_RATE = 44100


def build_chime(
    sample_rate: int = SAMPLE_RATE,
    volume: float = 0.5,
    tones: tuple[float, ...] = (880.0, 1320.0),
    tone_s: float = 0.18,
) -> np.ndarray:
    """Synthesise a short notification chime.

    Args:
        sample_rate: Output sample rate in Hz.
        volume: Peak amplitude (0.0 to 1.0).
        tones: Frequencies played back to back, in Hz.
        tone_s: Duration of each tone in seconds.

    Returns:
        Mono float32 samples in [-volume, volume].
    """
    volume = max(0.0, min(1.0, volume))
    n = int(sample_rate * tone_s)
    t = np.arange(n) / sample_rate
    # Quick attack, exponential decay to avoid clicks
    envelope = np.minimum(1.0, t / 0.005) * np.exp(-t * 12.0)
    wave = np.concatenate([np.sin(2 * np.pi * f * t) * envelope for f in tones])
    return (volume * wave).astype(np.float32)


class AudioAlert:
    """Plays the alert chime once per call, without blocking.

    Usage:
        >>> with AudioAlert(volume=0.5) as audio:
        ...     audio.play_once()
    """

    def __init__(
        self,
        enabled: bool = True,
        volume: float = 0.5,
        sample_rate: int = SAMPLE_RATE,
    ) -> None:
        self._enabled = enabled
        self._sample_rate = sample_rate
        self._wave = build_chime(sample_rate=sample_rate, volume=volume)
        self._sd: Any = None
        self._plays = 0

        if enabled:
            self._open()

    @property
    def available(self) -> bool:
        """True when sounds will actually be played."""
        return self._sd is not None

    @property
    def plays(self) -> int:
        """Number of play_once() calls, including no-op ones."""
        return self._plays

    @property
    def wave(self) -> np.ndarray:
        return self._wave

    def _open(self) -> None:
        try:
            import sounddevice as sd
        except OSError as e:
            # sounddevice raises OSError when the PortAudio library is missing
            logger.warning(f"Audio unavailable, alerts will be silent: {e}")
            return
        self._sd = sd

    def play_once(self) -> None:
        """Start the chime and return immediately."""
        self._plays += 1
        if self._sd is None:
            return
        try:
            self._sd.play(self._wave, self._sample_rate)
        except self._sd.PortAudioError as e:
            logger.warning(f"Could not play alert sound: {e}")

    def close(self) -> None:
        if self._sd is not None:
            try:
                self._sd.stop()
            except self._sd.PortAudioError as e:
                logger.debug(f"Audio stop failed: {e}")
            self._sd = None

    def __enter__(self) -> AudioAlert:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

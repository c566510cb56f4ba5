"""Audible cue played inside the host page through the Web Audio API."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)

_CREATE_CONTEXT_JS = """() => {
    const Ctx = window.AudioContext || window.webkitAudioContext;
    return Ctx ? new Ctx() : null;
}"""

_PLAY_TONE_JS = """([ctx, tone]) => {
    if (ctx.state === 'suspended') {
        // Not awaited: a pending resume must not block the poll loop.
        ctx.resume();
    }
    const oscillator = ctx.createOscillator();
    const gain = ctx.createGain();
    const now = ctx.currentTime;
    oscillator.type = tone.waveform;
    oscillator.frequency.setValueAtTime(tone.frequency_hz, now);
    gain.gain.setValueAtTime(tone.volume, now);
    gain.gain.exponentialRampToValueAtTime(tone.fade_to, now + tone.duration_s);
    oscillator.connect(gain);
    gain.connect(ctx.destination);
    oscillator.start(now);
    oscillator.stop(now + tone.duration_s);
    return ctx.state;
}"""

_BLOCKED_ERRORS = ("NotAllowedError", "SecurityError")


class SoundCue(Protocol):
    def emit(self) -> bool:
        ...


@dataclass(frozen=True)
class Tone:
    frequency_hz: float = 660.0
    duration_s: float = 0.5
    volume: float = 0.25
    fade_to: float = 0.001
    waveform: str = "sine"


class WebAudioCue:
    def __init__(self, page: Any, tone: Optional[Tone] = None) -> None:
        self.page = page
        self.tone = tone or Tone()
        self._context: Any = None

    def _ensure_context(self) -> Any:
        if self._context is not None:
            if self._context.evaluate("ctx => ctx.state") != "closed":
                return self._context
            self._discard()
        handle = self.page.evaluate_handle(_CREATE_CONTEXT_JS)
        if handle.evaluate("ctx => ctx === null"):
            handle.dispose()
            return None
        self._context = handle
        return handle

    def _discard(self) -> None:
        context, self._context = self._context, None
        if context is None:
            return
        try:
            context.dispose()
        except Exception:  # noqa: BLE001
            logger.debug("Audio context handle already gone")

    def emit(self) -> bool:
        """Play one tone. Returns False instead of raising when the page refuses audio."""
        try:
            context = self._ensure_context()
            if context is None:
                logger.warning("AudioContext not supported by the page. Cannot play sound.")
                return False
            self.page.evaluate(_PLAY_TONE_JS, [context, asdict(self.tone)])
            logger.info("Ding! Control went from busy back to ready.")
            return True
        except Exception as exc:  # noqa: BLE001
            logger.error("Error playing sound: %s", exc)
            if any(name in str(exc) for name in _BLOCKED_ERRORS):
                logger.warning("Browser blocked audio playback. Disable sound or interact with the page first.")
            self._discard()
            return False

    def close(self) -> None:
        if self._context is None:
            return
        try:
            self._context.evaluate("ctx => ctx.state === 'closed' ? null : ctx.close()")
        except Exception:  # noqa: BLE001
            logger.debug("Audio context could not be closed", exc_info=True)
        self._discard()

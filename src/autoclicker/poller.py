"""Poll a page control and click it whenever it is ready.

Each cycle reads the control's label and disabled state, fills the input and
clicks when the control is neither busy nor disabled, then re-arms a single
timer with a random delay. The busy -> not-busy transition of the label is
edge-triggered into an optional sound cue.
"""
from __future__ import annotations

import logging
import random
from typing import Optional

from .config import ClickerConfig
from .controls import PageControls
from .scheduler import LoopScheduler, TimerHandle
from .sound import SoundCue

logger = logging.getLogger(__name__)

OUTCOME_ABSENT = "absent"
OUTCOME_WAITING = "waiting"
OUTCOME_ACTED = "acted"


class Poller:
    def __init__(
        self,
        controls: PageControls,
        config: ClickerConfig,
        scheduler: LoopScheduler,
        sound: Optional[SoundCue] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.controls = controls
        self.config = config
        self.scheduler = scheduler
        self.sound = sound
        self.rng = rng or random.Random()
        self.play_sound_on_change = False
        self.previous_label_was_busy = False
        self.pending_timer: Optional[TimerHandle] = None
        self.last_outcome: Optional[str] = None
        self.cycles = 0
        self.clicks = 0
        self.sounds = 0
        self.error: Optional[str] = None
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def start(self, play_sound_on_change: bool = False) -> bool:
        if self._active:
            logger.warning("Already running. Stop the current session with stop() first.")
            return False

        cfg = self.config
        logger.info(
            "Initializing: fill text=%r, control=%r, input=%r, interval=%d-%dms, sound on change=%s",
            cfg.fill_text,
            cfg.button_selector,
            cfg.textarea_selector,
            cfg.min_interval_ms,
            cfg.max_interval_ms,
            play_sound_on_change,
        )
        self.play_sound_on_change = play_sound_on_change
        self.previous_label_was_busy = False
        self.error = None
        try:
            self._prefill()
            self.previous_label_was_busy = self._initial_busy_state()
        except Exception:  # noqa: BLE001
            logger.exception("Error during initialization/prefill")

        self._active = True
        self.pending_timer = self.scheduler.call_later(cfg.first_check_delay_ms, self.check_and_act)
        logger.info("First check scheduled.")
        return True

    def stop(self) -> bool:
        if not self._active:
            logger.info("Already stopped or was never started.")
            return False
        if self.pending_timer is not None:
            self.pending_timer.cancel()
        self.pending_timer = None
        self._active = False
        logger.info("Stopped.")
        return True

    def next_delay_ms(self) -> int:
        return self.rng.randint(self.config.min_interval_ms, self.config.max_interval_ms)

    def _prefill(self) -> None:
        text_input = self.controls.find_input()
        if text_input is None:
            logger.warning("Initial input not found, cannot prefill.")
        elif text_input.value().strip() == "":
            logger.info("Pre-filling empty input with %r", self.config.fill_text)
            text_input.fill(self.config.fill_text)
        else:
            logger.info("Initial input not empty, skipping prefill.")

    def _initial_busy_state(self) -> bool:
        control = self.controls.find_control()
        if control is None:
            logger.info("Initial control not found, assuming it is not busy.")
            return False
        busy = control.is_busy_label()
        logger.info("Initial control state detected. Busy: %s", busy)
        return busy

    def _notify(self) -> None:
        if self.sound is None:
            return
        try:
            emitted = self.sound.emit()
        except Exception:  # noqa: BLE001
            logger.exception("Sound cue failed; polling continues")
            return
        if emitted:
            self.sounds += 1

    def _cycle(self) -> str:
        control = self.controls.find_control()
        text_input = self.controls.find_input()

        if control is None:
            logger.warning("Control not found.")
            if self.play_sound_on_change and self.previous_label_was_busy:
                logger.info("Control disappeared, likely indicating state change.")
                self._notify()
            self.previous_label_was_busy = False
            return OUTCOME_ABSENT

        busy = control.is_busy_label()
        disabled = control.is_disabled()

        if self.play_sound_on_change and self.previous_label_was_busy and not busy:
            logger.info("Detected state change from busy to ready.")
            self._notify()
        self.previous_label_was_busy = busy

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Checking - control found. Disabled: %s, label: %r (busy: %s)", disabled, control.label(), busy)

        if disabled or busy:
            if disabled:
                logger.debug("Condition not met - control is disabled.")
            if busy:
                logger.debug("Condition not met - control says %r.", self.config.busy_label)
            return OUTCOME_WAITING

        logger.info("Conditions met! Preparing to click.")
        if text_input is None:
            logger.warning("Input not found. Cannot fill text, but will attempt click.")
        else:
            text_input.fill(self.config.fill_text)
            logger.info("Input filled with %r", self.config.fill_text)
        control.activate()
        self.clicks += 1
        logger.info("Click action performed.")
        return OUTCOME_ACTED

    def check_and_act(self) -> None:
        """Run one cycle and re-arm the timer. Any failure ends the session."""
        if not self._active:
            logger.info("Loop detected stop signal, halting check.")
            return

        self.cycles += 1
        try:
            self.last_outcome = self._cycle()
            if self._active:
                delay = self.next_delay_ms()
                logger.info("Next check scheduled in %dms.", delay)
                self.pending_timer = self.scheduler.call_later(delay, self.check_and_act)
        except Exception as exc:  # noqa: BLE001
            logger.exception("An error occurred during check/click. Stopping.")
            self.error = str(exc) or type(exc).__name__
            self.stop()


def start(
    controls: PageControls,
    config: ClickerConfig,
    scheduler: LoopScheduler,
    *,
    play_sound_on_change: bool = False,
    sound: Optional[SoundCue] = None,
    rng: Optional[random.Random] = None,
) -> Poller:
    """Create a poller, start it and return it as the session handle."""
    poller = Poller(controls, config, scheduler, sound=sound, rng=rng)
    poller.start(play_sound_on_change=play_sound_on_change)
    return poller

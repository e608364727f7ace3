"""Edge-triggered alert state machine.

Two states, MONITORING and ALERTING. The alert sound fires exactly once
per rising edge of the per-frame detection signal; a falling edge resets
silently.
"""

from __future__ import annotations

from loguru import logger

from core.alert.channel import LatestValue
from core.types import AlertState, Transition


def advance(current: AlertState, detected: bool) -> Transition:
    """Compute the next state and whether to play the alert sound.

    Args:
        current: State before this frame.
        detected: Whether a hand was near the mouth in this frame.

    Returns:
        Transition(next_state, should_play_sound). ``should_play_sound`` is
        True only for (MONITORING, True).
    """
    if detected:
        return Transition(AlertState.ALERTING, current is AlertState.MONITORING)
    return Transition(AlertState.MONITORING, False)


class AlertStateMachine:
    """Owner of a session's AlertState.

    Only the pipeline worker calls ``feed``/``reset``. Every step publishes
    the resulting state to ``channel`` for the presentation layer.

    Usage:
        >>> machine = AlertStateMachine()
        >>> machine.feed(True)
        Transition(state=<AlertState.ALERTING: 'alerting'>, should_play_sound=True)
        >>> machine.feed(True).should_play_sound
        False
    """

    def __init__(self, channel: LatestValue[AlertState] | None = None) -> None:
        self._state = AlertState.MONITORING
        self._channel = channel or LatestValue(AlertState.MONITORING)
        self._channel.publish(self._state)

    @property
    def state(self) -> AlertState:
        return self._state

    @property
    def channel(self) -> LatestValue[AlertState]:
        return self._channel

    def feed(self, detected: bool) -> Transition:
        """Advance on one frame's detection result and publish the new state."""
        transition = advance(self._state, detected)
        if transition.state is not self._state:
            logger.info(f"Alert state: {self._state.value} -> {transition.state.value}")
        self._state = transition.state
        self._channel.publish(self._state)
        return transition

    def reset(self) -> None:
        """Return to MONITORING (session stop)."""
        self._state = AlertState.MONITORING
        self._channel.publish(self._state)

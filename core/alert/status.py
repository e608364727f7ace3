"""Status line shown for each alert state."""

from __future__ import annotations

from dataclasses import dataclass

from core.types import AlertState

Color = tuple[int, int, int]  # BGR

GREEN: Color = (0, 200, 0)
RED: Color = (0, 0, 255)


@dataclass(frozen=True, slots=True)
class AlertStatus:
    """What the presentation layer renders for a state.

    Attributes:
        text: Status line.
        color: Target text color (BGR).
        emphasized: Large bold text when True, small thin text otherwise.
    """
    text: str
    color: Color
    emphasized: bool


_STATUSES: dict[AlertState, AlertStatus] = {
    AlertState.MONITORING: AlertStatus("Monitoring...", GREEN, emphasized=False),
    AlertState.ALERTING: AlertStatus("Hands off your mouth!", RED, emphasized=True),
}


def status_for(state: AlertState) -> AlertStatus:
    return _STATUSES[state]

"""Alert module — edge-triggered state machine and status channel."""

from core.alert.channel import LatestValue
from core.alert.state_machine import AlertStateMachine, advance
from core.alert.status import AlertStatus, status_for

__all__ = ["AlertStateMachine", "AlertStatus", "LatestValue", "advance", "status_for"]

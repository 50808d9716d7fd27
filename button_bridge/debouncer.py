"""
Debouncer - Decides which button presses are real

A press is accepted only when the cooldown has elapsed since the last
accepted press. In ``global`` scope a single cooldown is shared by every
button (pressing button 1 right after button 0 is ignored); in
``per_button`` scope each button has its own cooldown.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Optional

SCOPE_GLOBAL = 'global'
SCOPE_PER_BUTTON = 'per_button'
SCOPES = (SCOPE_GLOBAL, SCOPE_PER_BUTTON)


@dataclass(frozen=True)
class ButtonEvent:
    """A single press reported by a button board"""
    button_id: int
    timestamp: float
    payload: bytes = field(default=b'', repr=False)


@dataclass(frozen=True)
class DebounceState:
    """Snapshot of the debounce bookkeeping for one cooldown bucket"""
    # None means the cooldown has already elapsed
    last_accepted_time: Optional[float] = None
    current_button: Optional[int] = None


class Debouncer:
    """Accepts at most one press per cooldown window"""

    def __init__(self, cooldown=15.0, scope=SCOPE_GLOBAL, clock=time.monotonic):
        if cooldown < 0:
            raise ValueError('cooldown must not be negative')
        if scope not in SCOPES:
            raise ValueError(f'Unknown debounce scope: {scope!r}')
        self.cooldown = cooldown
        self.scope = scope
        self.clock = clock
        self._lock = threading.Lock()
        self._states = {}

    def _key(self, button_id):
        return button_id if self.scope == SCOPE_PER_BUTTON else None

    def accept(self, event, now=None):
        """Return True if the press should be propagated.

        On acceptance the bucket's last accepted time becomes ``now``; a
        rejected press leaves the state untouched.
        """
        if event.button_id < 0:
            raise ValueError(f'Button id must be non-negative, got {event.button_id}')
        if now is None:
            now = self.clock()

        key = self._key(event.button_id)
        with self._lock:
            state = self._states.get(key, DebounceState())
            last = state.last_accepted_time
            if last is not None and now - last < self.cooldown:
                return False
            self._states[key] = DebounceState(last_accepted_time=now, current_button=event.button_id)
            if self.scope == SCOPE_PER_BUTTON:
                self._prune(now)
            return True

    def _prune(self, now):
        # An expired entry behaves exactly like a missing one
        expired = [key for key, state in self._states.items()
                   if now - state.last_accepted_time >= self.cooldown]
        for key in expired:
            del self._states[key]

    def tracked(self):
        """Number of buttons still inside their cooldown window"""
        with self._lock:
            return len(self._states)

    def state(self, button_id=None):
        """Get the debounce state for a button (or the shared one in global scope)"""
        with self._lock:
            return self._states.get(self._key(button_id), DebounceState())

    def remaining(self, button_id=None, now=None):
        """Seconds left before the next press can be accepted"""
        state = self.state(button_id)
        if state.last_accepted_time is None:
            return 0.0
        if now is None:
            now = self.clock()
        return max(0.0, self.cooldown - (now - state.last_accepted_time))

    def reset(self):
        """Forget every accepted press"""
        with self._lock:
            self._states.clear()

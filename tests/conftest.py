import threading

import pytest

from button_bridge.errors import SinkWriteError
from button_bridge.sink import MemorySink, phase_for


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FailingSink(MemorySink):
    """Fails writes of the given states, records every attempt"""

    def __init__(self, fail_states=(True,), failures=None):
        super().__init__(path_prefix='test/pressed')
        self.fail_states = fail_states
        self.failures = failures
        self.attempts = []
        self._attempt_lock = threading.Lock()

    def set_pressed(self, button_id, pressed):
        with self._attempt_lock:
            self.attempts.append((button_id, pressed))
            should_fail = pressed in self.fail_states and (self.failures is None or self.failures > 0)
            if should_fail and self.failures is not None:
                self.failures -= 1
        if should_fail:
            raise SinkWriteError(button_id, phase_for(pressed), 'simulated outage')
        super().set_pressed(button_id, pressed)


class RecordingPublisher:
    def __init__(self):
        self.published = []

    def publish(self, button_id):
        self.published.append(button_id)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sink():
    return MemorySink(path_prefix='test/pressed')

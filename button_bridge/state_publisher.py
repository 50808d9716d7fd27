"""
State Publisher - Mirrors accepted presses into the sink

Each accepted press runs as its own PressSequence thread:
pressed=true, hold for ``hold_duration``, pressed=false. The hold can be
cancelled on shutdown, in which case the released write happens immediately
so the flag is never left set.
"""

import threading
import time

from .sink import PHASE_PRESSED, PHASE_RELEASED

STATUS_PENDING = 'pending'
STATUS_PRESSED = 'pressed'
STATUS_HOLDING = 'holding'
STATUS_RELEASED = 'released'
STATUS_DONE = 'done'


def report_write_error(button_id, phase, error):
    """Default error reporter: print the failed write"""
    print(f"[ERROR] [{time.strftime('%H:%M:%S')}] Button {button_id}: {phase} write failed: {error}")


class PressSequence:
    """One pressed -> hold -> released run for a single button"""

    def __init__(self, publisher, button_id):
        self.publisher = publisher
        self.button_id = button_id
        self.status = STATUS_PENDING
        self.cancelled = False
        self.pressed_ok = None
        self.released_ok = None
        self._cancel_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            name=f'press-sequence-{button_id}',
            daemon=True,
        )

    def start(self):
        self._thread.start()
        return self

    def cancel(self):
        """Cut the hold short; the released write still happens"""
        self._cancel_event.set()

    def join(self, timeout=None):
        self._thread.join(timeout)
        return not self._thread.is_alive()

    @property
    def done(self):
        return self.status == STATUS_DONE

    def _run(self):
        try:
            # The hold is measured from the start of the sequence, retries included
            deadline = time.monotonic() + self.publisher.hold_duration

            self.status = STATUS_PRESSED
            self.pressed_ok = self.publisher.write_state(
                self.button_id, True, interrupt=self._cancel_event, deadline=deadline)

            self.status = STATUS_HOLDING
            remaining = max(0.0, deadline - time.monotonic())
            self.cancelled = self._cancel_event.wait(remaining)

            self.status = STATUS_RELEASED
            self.released_ok = self.publisher.write_state(self.button_id, False)
        finally:
            self.status = STATUS_DONE
            self.publisher._finished(self)


class StatePublisher:
    """Writes pressed/released flags for accepted presses"""

    def __init__(self, sink, hold_duration=15.0, write_retries=3, retry_backoff=0.5,
                 on_error=report_write_error, sleep=time.sleep):
        if hold_duration < 0:
            raise ValueError('hold_duration must not be negative')
        if write_retries < 0:
            raise ValueError('write_retries must not be negative')
        self.sink = sink
        self.hold_duration = hold_duration
        self.write_retries = write_retries
        self.retry_backoff = retry_backoff
        self.on_error = on_error
        self.sleep = sleep
        self.listeners = []
        self._sequences = []
        self._lock = threading.Lock()
        self._closed = False

    def add_listener(self, listener):
        """Register ``listener(button_id, state, ok)`` called after every write attempt"""
        self.listeners.append(listener)

    def publish(self, button_id):
        """Start a pressed -> hold -> released sequence; returns without waiting"""
        with self._lock:
            if self._closed:
                print(f'[WARN] Publisher is shut down, ignoring press of button {button_id}')
                return None
            sequence = PressSequence(self, button_id)
            # Started under the lock so shutdown never sees an unstarted thread
            sequence.start()
            self._sequences.append(sequence)
        return sequence

    def write_state(self, button_id, pressed, interrupt=None, deadline=None):
        """Write one flag, retrying with exponential backoff.

        Returns True on success. Failures are handed to ``on_error`` and
        never raised, so a failed pressed write does not stop the sequence.
        Retrying stops early once ``interrupt`` is set or the next attempt
        would start after ``deadline`` (a ``time.monotonic`` value).
        """
        phase = PHASE_PRESSED if pressed else PHASE_RELEASED
        error = None
        for attempt in range(self.write_retries + 1):
            try:
                self.sink.set_pressed(button_id, pressed)
            except Exception as e:
                error = e
                if attempt == self.write_retries:
                    break
                delay = self.retry_backoff * (2 ** attempt)
                if deadline is not None and time.monotonic() + delay >= deadline:
                    break
                print(f'[WARN] Button {button_id}: {phase} write failed (attempt {attempt + 1}), retrying: {e}')
                if interrupt is None:
                    self.sleep(delay)
                elif interrupt.wait(delay):
                    break
                continue
            state_str = "PRESSED" if pressed else "RELEASED"
            print(f"[{time.strftime('%H:%M:%S')}] Button {button_id}: {state_str}")
            self._notify(button_id, pressed, True)
            return True

        try:
            self.on_error(button_id, phase, error)
        except Exception as e:
            print(f'[WARN] Error reporter failed: {e}')
        self._notify(button_id, pressed, False)
        return False

    def _notify(self, button_id, pressed, ok):
        for listener in list(self.listeners):
            try:
                listener(button_id, pressed, ok)
            except Exception as e:
                print(f'[WARN] State listener failed: {e}')

    def _finished(self, sequence):
        with self._lock:
            if sequence in self._sequences:
                self._sequences.remove(sequence)

    def active(self):
        """Sequences that have not finished yet"""
        with self._lock:
            return list(self._sequences)

    def shutdown(self, cancel=True, timeout=None):
        """Stop accepting presses and wait for running sequences.

        With ``cancel`` the holds are cut short and every button gets its
        released write right away. Returns True if all sequences finished.
        """
        with self._lock:
            self._closed = True
            sequences = list(self._sequences)
        for sequence in sequences:
            if cancel:
                sequence.cancel()
        return all([sequence.join(timeout) for sequence in sequences])

"""
State Sinks - Where pressed/released flags are written

FirebaseSink writes to a Firebase Realtime Database; MemorySink keeps the
flags in process for dry runs and tests.
"""

import threading
import time

import firebase_admin
from firebase_admin import credentials, db

from .config import FirebaseConfig
from .errors import ConfigError, SinkWriteError

PHASE_PRESSED = 'pressed'
PHASE_RELEASED = 'released'


def phase_for(pressed):
    return PHASE_PRESSED if pressed else PHASE_RELEASED


def button_path(prefix, button_id):
    """Key path of a button's pressed flag"""
    return f"{prefix.rstrip('/')}/{button_id}"


class StateSink:
    """Write-only key-value store for pressed flags"""

    def set_pressed(self, button_id, pressed):
        raise NotImplementedError

    def close(self):
        pass


class MemorySink(StateSink):
    """Keeps every write in memory, in the order it arrived"""

    def __init__(self, path_prefix=None):
        self.path_prefix = path_prefix or FirebaseConfig.PATH_PREFIX
        self.values = {}
        self.writes = []
        self._lock = threading.Lock()

    def set_pressed(self, button_id, pressed):
        path = button_path(self.path_prefix, button_id)
        with self._lock:
            self.values[path] = bool(pressed)
            self.writes.append((time.monotonic(), button_id, bool(pressed)))
        print(f"[DRY-RUN] {path} = {str(bool(pressed)).lower()}")

    def get(self, button_id):
        """Last value written for a button, or None"""
        with self._lock:
            return self.values.get(button_path(self.path_prefix, button_id))


class FirebaseSink(StateSink):
    """Writes pressed flags to a Firebase Realtime Database"""

    def __init__(self, database_url=None, credentials_path=None, path_prefix=None, app_name='button-bridge'):
        self.database_url = database_url or FirebaseConfig.DATABASE_URL
        self.credentials_path = credentials_path if credentials_path is not None else FirebaseConfig.CREDENTIALS
        self.path_prefix = path_prefix or FirebaseConfig.PATH_PREFIX
        self.app_name = app_name
        self.app = None

    def setup(self):
        """Initialize the Firebase app"""
        if not self.database_url:
            raise ConfigError('FIREBASE_DATABASE_URL is not set')

        if self.credentials_path:
            cred = credentials.Certificate(self.credentials_path)
        else:
            cred = credentials.ApplicationDefault()

        self.app = firebase_admin.initialize_app(cred, {'databaseURL': self.database_url}, name=self.app_name)
        print(f'[OK] Firebase database: {self.database_url}')
        return self

    def set_pressed(self, button_id, pressed):
        if self.app is None:
            self.setup()
        try:
            db.reference(button_path(self.path_prefix, button_id), app=self.app).set(bool(pressed))
        except Exception as e:
            raise SinkWriteError(button_id, phase_for(pressed), e) from e

    def close(self):
        if self.app is not None:
            firebase_admin.delete_app(self.app)
            self.app = None

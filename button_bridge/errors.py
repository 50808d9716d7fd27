"""
Bridge error types
"""


class BridgeError(Exception):
    """Base class for errors raised by the bridge"""


class ConfigError(BridgeError):
    """Invalid configuration value"""


class ParseError(BridgeError):
    """Topic did not end in a usable button id"""

    def __init__(self, topic, reason='button id is not a non-negative integer'):
        self.topic = topic
        self.reason = reason
        super().__init__(f'Malformed topic {topic!r}: {reason}')


class SinkWriteError(BridgeError):
    """Writing a pressed/released flag to the sink failed"""

    def __init__(self, button_id, phase, cause=None):
        self.button_id = button_id
        self.phase = phase
        self.cause = cause
        message = f'Failed to write {phase} state for button {button_id}'
        if cause is not None:
            message += f': {cause}'
        super().__init__(message)

"""
Bridge Configuration

Centralized configuration for the MQTT broker, the Firebase sink, the
debounce filter and the status dashboard.
Can be overridden with environment variables.
"""

import os

from .errors import ConfigError

# Unparseable environment values, reported by DebounceConfig.validate()
ENV_ERRORS = []


def _env_int(name, default):
    value = os.getenv(name, str(default))
    try:
        return int(value)
    except ValueError:
        ENV_ERRORS.append(f'{name} must be an integer, got {value!r}')
        return default


def _env_float(name, default):
    value = os.getenv(name, str(default))
    try:
        return float(value)
    except ValueError:
        ENV_ERRORS.append(f'{name} must be a number, got {value!r}')
        return default


def _env_bool(name, default):
    return os.getenv(name, str(default)).lower() in ('1', 'true', 'yes', 'on')


class MQTTConfig:
    """MQTT broker configuration"""

    # Broker settings
    BROKER = os.getenv('MQTT_BROKER', 'localhost')
    PORT = _env_int('MQTT_PORT', 1883)
    TOPIC = os.getenv('MQTT_TOPIC', 'button/pressed/#')
    USERNAME = os.getenv('MQTT_USERNAME', '')
    PASSWORD = os.getenv('MQTT_PASSWORD', '')
    QOS = _env_int('MQTT_QOS', 0)

    # Connection settings
    KEEPALIVE = _env_int('MQTT_KEEPALIVE', 60)
    CLIENT_ID_PREFIX = os.getenv('MQTT_CLIENT_ID_PREFIX', 'mqtt-proxy')

    @classmethod
    def get_broker_info(cls):
        """Get broker connection info"""
        return {
            'broker': cls.BROKER,
            'port': cls.PORT,
            'topic': cls.TOPIC,
            'has_auth': bool(cls.USERNAME and cls.PASSWORD)
        }


class FirebaseConfig:
    """Firebase Realtime Database configuration"""

    DATABASE_URL = os.getenv('FIREBASE_DATABASE_URL', '')
    # Path to a service account JSON; empty uses application default credentials
    CREDENTIALS = os.getenv('FIREBASE_CREDENTIALS', '')
    PATH_PREFIX = os.getenv('FIREBASE_PATH_PREFIX', 'rooside_soda/button/pressed')


class DebounceConfig:
    """Debounce and hold timing"""

    COOLDOWN = _env_float('DEBOUNCE_COOLDOWN', 15.0)
    SCOPE = os.getenv('DEBOUNCE_SCOPE', 'global')
    HOLD_DURATION = _env_float('HOLD_DURATION', 15.0)

    # Sink write retries before an error is reported
    WRITE_RETRIES = _env_int('SINK_WRITE_RETRIES', 3)
    RETRY_BACKOFF = _env_float('SINK_RETRY_BACKOFF', 0.5)

    @classmethod
    def validate(cls):
        """Raise ConfigError if any setting is unusable"""
        if ENV_ERRORS:
            raise ConfigError('; '.join(ENV_ERRORS))
        if cls.SCOPE not in ('global', 'per_button'):
            raise ConfigError(f"DEBOUNCE_SCOPE must be 'global' or 'per_button', got {cls.SCOPE!r}")
        if cls.COOLDOWN < 0:
            raise ConfigError('DEBOUNCE_COOLDOWN must not be negative')
        if cls.HOLD_DURATION < 0:
            raise ConfigError('HOLD_DURATION must not be negative')
        if cls.WRITE_RETRIES < 0:
            raise ConfigError('SINK_WRITE_RETRIES must not be negative')


class WebConfig:
    """Web server configuration"""

    ENABLED = _env_bool('WEB_ENABLED', True)
    HOST = os.getenv('HOST', '0.0.0.0')
    PORT = _env_int('PORT', 8080)
    SECRET_KEY = os.getenv('SECRET_KEY', 'button-bridge-secret-key')
    DEBUG = _env_bool('DEBUG', False)

"""
MQTT -> Firebase Button Bridge

This package listens for button presses published over MQTT, filters out
bounces with a cooldown-based debouncer and mirrors accepted presses into a
Firebase Realtime Database as a pressed/released flag per button.
"""

__version__ = '1.0.0'

#!/usr/bin/env python3
"""
Entry point for the MQTT -> Firebase button bridge

Run this script on the server that can reach both the broker and Firebase.
"""

from button_bridge.app import main

if __name__ == '__main__':
    raise SystemExit(main())

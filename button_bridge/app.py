"""
Button Bridge - MQTT button presses to Firebase

Wires the ingestor, debouncer, state publisher and sink together and keeps
the process alive until SIGINT/SIGTERM.
"""

import argparse
import signal
import threading

from .config import DebounceConfig, FirebaseConfig, MQTTConfig, WebConfig
from .debouncer import SCOPES, Debouncer
from .errors import BridgeError
from .ingestor import ButtonIngestor
from .sink import FirebaseSink, MemorySink
from .state_publisher import StatePublisher
from .web_server import create_app, serve


class ButtonBridge:
    """Owns every component and the shutdown signal"""

    def __init__(self, sink, cooldown=None, hold_duration=None, scope=None, web_enabled=None):
        self.sink = sink
        self.debouncer = Debouncer(
            cooldown=DebounceConfig.COOLDOWN if cooldown is None else cooldown,
            scope=scope or DebounceConfig.SCOPE,
        )
        self.publisher = StatePublisher(
            sink,
            hold_duration=DebounceConfig.HOLD_DURATION if hold_duration is None else hold_duration,
            write_retries=DebounceConfig.WRITE_RETRIES,
            retry_backoff=DebounceConfig.RETRY_BACKOFF,
        )
        self.ingestor = ButtonIngestor(self.debouncer, self.publisher)
        self.web_enabled = WebConfig.ENABLED if web_enabled is None else web_enabled
        self.board = None
        self._shutdown = threading.Event()

    def start(self):
        """Start the dashboard and connect to the broker"""
        if self.web_enabled:
            app, socketio, self.board = create_app(self.debouncer, self.ingestor)
            self.publisher.add_listener(self.board.on_state_change)
            serve(app, socketio)

        if not self.ingestor.setup():
            print("[FAIL] Failed to setup MQTT. Exiting.")
            return False
        return True

    def stop(self, *_):
        """Request shutdown; safe to use as a signal handler"""
        self._shutdown.set()

    @property
    def stopping(self):
        return self._shutdown.is_set()

    def wait(self, timeout=None):
        """Block until stop() is called"""
        return self._shutdown.wait(timeout)

    def cleanup(self):
        """Disconnect, then release every button still held"""
        self.ingestor.cleanup()
        if not self.publisher.shutdown(cancel=True, timeout=10):
            print("[WARN] Some press sequences did not finish")
        self.sink.close()
        print("[OK] Bridge stopped")

    def run(self):
        """Start, block until a shutdown signal, clean up"""
        if threading.current_thread() is threading.main_thread():
            signal.signal(signal.SIGINT, self.stop)
            signal.signal(signal.SIGTERM, self.stop)

        print("=" * 60)
        print("  Button Bridge - MQTT -> Firebase")
        print("=" * 60)
        print(f"[OK] Broker {MQTTConfig.BROKER}:{MQTTConfig.PORT}, topic {MQTTConfig.TOPIC}")
        print(f"[OK] Debounce: {self.debouncer.scope}, cooldown {self.debouncer.cooldown}s, "
              f"hold {self.publisher.hold_duration}s")

        try:
            if not self.start():
                return False
            print("  Press Ctrl+C to exit")
            self.wait()
            print("\n\nShutting down...")
        finally:
            self.cleanup()
        return True


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Mirror MQTT button presses into Firebase')
    parser.add_argument('--dry-run', action='store_true',
                        help='print writes instead of sending them to Firebase')
    parser.add_argument('--scope', choices=SCOPES, help='debounce per button or globally')
    parser.add_argument('--cooldown', type=float, help='seconds between accepted presses')
    parser.add_argument('--hold', type=float, help='seconds a button stays pressed')
    parser.add_argument('--no-web', action='store_true', help='disable the status dashboard')
    return parser.parse_args(argv)


def main(argv=None):
    """Entry point for the bridge"""
    args = parse_args(argv)
    try:
        DebounceConfig.validate()
        if args.dry_run:
            sink = MemorySink()
        else:
            sink = FirebaseSink().setup()
        bridge = ButtonBridge(
            sink,
            cooldown=args.cooldown,
            hold_duration=args.hold,
            scope=args.scope,
            web_enabled=False if args.no_web else None,
        )
    except (BridgeError, ValueError, OSError) as e:
        print(f"[FAIL] {e}")
        return 1

    print(f"[OK] Writing to {FirebaseConfig.PATH_PREFIX}/<button>")
    return 0 if bridge.run() else 1


if __name__ == '__main__':
    raise SystemExit(main())

"""
Event Ingestor - Receives button presses from MQTT

Parses the button id from the topic (``button/pressed/<id>``), runs it through
the debouncer and hands accepted presses to the state publisher.
"""

import time
import uuid

import paho.mqtt.client as mqtt

from .config import MQTTConfig
from .debouncer import ButtonEvent
from .errors import ParseError


def parse_button_id(topic):
    """Button id from the last topic segment"""
    segment = topic.rsplit('/', 1)[-1]
    if not segment:
        raise ParseError(topic, 'topic has no trailing button id')
    # isdigit() alone would accept characters like '²' that int() rejects
    if not (segment.isascii() and segment.isdigit()):
        raise ParseError(topic)
    return int(segment)


class ButtonIngestor:
    """Subscribes to button topics and feeds presses to the debouncer"""

    def __init__(self, debouncer, publisher, topic=None, qos=None, clock=time.monotonic):
        self.debouncer = debouncer
        self.publisher = publisher
        self.topic = topic or MQTTConfig.TOPIC
        self.qos = MQTTConfig.QOS if qos is None else qos
        self.clock = clock
        self.mqtt_client = None
        self.connected = False

    def handle(self, topic, payload=b'', now=None):
        """Process one message; returns True if the press was accepted"""
        try:
            button_id = parse_button_id(topic)
        except ParseError as e:
            print(f'[WARN] {e}, dropping message')
            return False

        event = ButtonEvent(button_id, self.clock() if now is None else now, payload)
        if not self.debouncer.accept(event, event.timestamp):
            return False

        ticks = payload.decode('UTF-8', errors='replace') if payload else '-'
        print(f"[{time.strftime('%H:%M:%S')}] Button pressed: {button_id} (device ticks: {ticks})")
        self.publisher.publish(button_id)
        return True

    def on_connect(self, client, userdata, flags, reason_code, properties=None):
        """MQTT connection callback"""
        if reason_code.is_failure:
            self.connected = False
            print(f'[FAIL] MQTT connection failed: {reason_code}')
            return
        self.connected = True
        print(f'[OK] MQTT connected to {MQTTConfig.BROKER}:{MQTTConfig.PORT}')
        # Subscribing here restores the subscription after every reconnect
        client.subscribe(self.topic, qos=self.qos)
        print(f'[OK] Subscribed to {self.topic}')

    def on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        """MQTT disconnection callback"""
        self.connected = False
        if reason_code.is_failure:
            print(f'[WARN] MQTT connection lost: {reason_code}')

    def on_message(self, client, userdata, msg):
        """MQTT message received - debounce and propagate"""
        try:
            self.handle(msg.topic, msg.payload)
        except Exception as e:
            print(f'[WARN] Error processing message on {msg.topic}: {e}')

    def setup(self):
        """Setup and connect MQTT client"""
        try:
            client_id = f"{MQTTConfig.CLIENT_ID_PREFIX}-{str(uuid.uuid1())}"
            self.mqtt_client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)

            if MQTTConfig.USERNAME and MQTTConfig.PASSWORD:
                self.mqtt_client.username_pw_set(MQTTConfig.USERNAME, MQTTConfig.PASSWORD)

            self.mqtt_client.on_connect = self.on_connect
            self.mqtt_client.on_disconnect = self.on_disconnect
            self.mqtt_client.on_message = self.on_message
            self.mqtt_client.reconnect_delay_set(min_delay=1, max_delay=30)

            self.mqtt_client.connect(MQTTConfig.BROKER, port=MQTTConfig.PORT, keepalive=MQTTConfig.KEEPALIVE)
            self.mqtt_client.loop_start()
            return True
        except Exception as e:
            print(f'[WARN] MQTT setup failed: {e}')
            return False

    def cleanup(self):
        """Cleanup resources"""
        if self.mqtt_client:
            self.mqtt_client.loop_stop()
            self.mqtt_client.disconnect()
            self.mqtt_client = None

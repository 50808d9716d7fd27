from types import SimpleNamespace

import pytest

from button_bridge import ingestor as ingestor_module
from button_bridge.debouncer import Debouncer
from button_bridge.errors import ParseError
from button_bridge.ingestor import ButtonIngestor, parse_button_id

from conftest import RecordingPublisher


class SpyDebouncer(Debouncer):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.events = []

    def accept(self, event, now=None):
        self.events.append(event)
        return super().accept(event, now)


class FakeReasonCode:
    def __init__(self, is_failure=False):
        self.is_failure = is_failure

    def __str__(self):
        return 'Not authorized' if self.is_failure else 'Success'


class FakeClient:
    def __init__(self, *args, **kwargs):
        self.args = args
        self.kwargs = kwargs
        self.subscriptions = []
        self.calls = []
        self.credentials = None

    def subscribe(self, topic, qos=0):
        self.subscriptions.append((topic, qos))

    def username_pw_set(self, username, password):
        self.credentials = (username, password)

    def reconnect_delay_set(self, min_delay=1, max_delay=120):
        self.calls.append('reconnect_delay_set')

    def connect(self, host, port=1883, keepalive=60):
        self.calls.append(('connect', host, port, keepalive))

    def loop_start(self):
        self.calls.append('loop_start')

    def loop_stop(self):
        self.calls.append('loop_stop')

    def disconnect(self):
        self.calls.append('disconnect')


@pytest.mark.parametrize('topic, expected', [
    ('button/pressed/0', 0),
    ('button/pressed/1', 1),
    ('button/pressed/42', 42),
    ('7', 7),
])
def test_parse_button_id(topic, expected):
    assert parse_button_id(topic) == expected


@pytest.mark.parametrize('topic', [
    'button/pressed/abc',
    'button/pressed/',
    'button/pressed/-1',
    'button/pressed/+1',
    'button/pressed/1.5',
    'button/pressed/ 1',
])
def test_parse_button_id_rejects_malformed_topics(topic):
    with pytest.raises(ParseError) as excinfo:
        parse_button_id(topic)
    assert excinfo.value.topic == topic


def test_malformed_topic_is_dropped_without_debouncing(capsys):
    debouncer = SpyDebouncer(cooldown=15)
    publisher = RecordingPublisher()
    ingestor = ButtonIngestor(debouncer, publisher, topic='button/pressed/#', qos=0)

    assert not ingestor.handle('button/pressed/abc', b'123', now=0)
    assert debouncer.events == []
    assert publisher.published == []
    assert "Malformed topic 'button/pressed/abc'" in capsys.readouterr().out


def test_accepted_press_is_published(clock):
    debouncer = SpyDebouncer(cooldown=15)
    publisher = RecordingPublisher()
    ingestor = ButtonIngestor(debouncer, publisher, topic='button/pressed/#', qos=0, clock=clock)

    assert ingestor.handle('button/pressed/1', b'5512')
    event = debouncer.events[0]
    assert (event.button_id, event.timestamp, event.payload) == (1, clock.now, b'5512')
    assert publisher.published == [1]


def test_debounced_press_is_not_published():
    publisher = RecordingPublisher()
    ingestor = ButtonIngestor(Debouncer(cooldown=15), publisher, topic='button/pressed/#', qos=0)

    assert ingestor.handle('button/pressed/0', now=0)
    assert not ingestor.handle('button/pressed/0', now=5)
    assert not ingestor.handle('button/pressed/1', now=6)
    assert ingestor.handle('button/pressed/0', now=20)
    assert publisher.published == [0, 0]


def test_on_message_forwards_topic_and_payload():
    publisher = RecordingPublisher()
    ingestor = ButtonIngestor(Debouncer(cooldown=15), publisher, topic='button/pressed/#', qos=0)
    ingestor.on_message(None, None, SimpleNamespace(topic='button/pressed/2', payload=b'99'))
    assert publisher.published == [2]


def test_on_message_survives_publisher_errors(capsys):
    class BrokenPublisher:
        def publish(self, button_id):
            raise RuntimeError('sink unavailable')

    ingestor = ButtonIngestor(Debouncer(cooldown=15), BrokenPublisher(), topic='button/pressed/#', qos=0)
    ingestor.on_message(None, None, SimpleNamespace(topic='button/pressed/2', payload=b''))
    assert 'sink unavailable' in capsys.readouterr().out


def test_on_connect_subscribes_to_topic():
    client = FakeClient()
    ingestor = ButtonIngestor(Debouncer(), RecordingPublisher(), topic='button/pressed/#', qos=1)
    ingestor.on_connect(client, None, {}, FakeReasonCode())
    assert client.subscriptions == [('button/pressed/#', 1)]
    assert ingestor.connected

    ingestor.on_disconnect(client, None, {}, FakeReasonCode(is_failure=True))
    assert not ingestor.connected


def test_failed_connect_does_not_subscribe(capsys):
    client = FakeClient()
    ingestor = ButtonIngestor(Debouncer(), RecordingPublisher(), topic='button/pressed/#', qos=0)
    ingestor.on_connect(client, None, {}, FakeReasonCode(is_failure=True))
    assert client.subscriptions == []
    assert '[FAIL]' in capsys.readouterr().out


def test_setup_and_cleanup(monkeypatch):
    monkeypatch.setattr(ingestor_module.mqtt, 'Client', FakeClient)
    monkeypatch.setattr(ingestor_module.MQTTConfig, 'USERNAME', 'test')
    monkeypatch.setattr(ingestor_module.MQTTConfig, 'PASSWORD', 'secret')
    ingestor = ButtonIngestor(Debouncer(), RecordingPublisher(), topic='button/pressed/#', qos=0)

    assert ingestor.setup()
    client = ingestor.mqtt_client
    assert client.credentials == ('test', 'secret')
    assert client.kwargs['client_id'].startswith(ingestor_module.MQTTConfig.CLIENT_ID_PREFIX)
    assert client.on_message == ingestor.on_message
    assert 'loop_start' in client.calls

    ingestor.cleanup()
    assert client.calls[-2:] == ['loop_stop', 'disconnect']
    assert ingestor.mqtt_client is None


def test_setup_failure_returns_false(monkeypatch):
    class RefusingClient(FakeClient):
        def connect(self, host, port=1883, keepalive=60):
            raise ConnectionRefusedError('refused')

    monkeypatch.setattr(ingestor_module.mqtt, 'Client', RefusingClient)
    ingestor = ButtonIngestor(Debouncer(), RecordingPublisher(), topic='button/pressed/#', qos=0)
    assert not ingestor.setup()

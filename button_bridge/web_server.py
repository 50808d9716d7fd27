"""
Status Dashboard - Live view of the bridge

Serves a small web page with the pressed flag of every button seen so far
and a feed of recent writes, updated over Socket.IO.
"""

import threading
from datetime import datetime

from flask import Flask, jsonify, render_template_string
from flask_socketio import SocketIO, emit

from .config import MQTTConfig, WebConfig


class StatusBoard:
    """Tracks the last written state per button and an activity history"""

    def __init__(self, socketio=None, max_history=20):
        self.socketio = socketio
        self.max_history = max_history
        self.button_states = {}
        self.activity_history = []
        self._lock = threading.Lock()

    def on_state_change(self, button_id, pressed, ok):
        """State publisher listener"""
        timestamp = datetime.now().strftime('%H:%M:%S')
        state_str = "PRESSED" if pressed else "RELEASED"
        activity_item = {
            'button_id': button_id,
            'state': state_str,
            'ok': ok,
            'timestamp': timestamp
        }
        with self._lock:
            if ok:
                self.button_states[str(button_id)] = pressed
            self.activity_history.insert(0, activity_item)
            if len(self.activity_history) > self.max_history:
                self.activity_history.pop()
            states = self.button_states.copy()

        if self.socketio:
            self.socketio.emit('button_update', {
                'button_id': button_id,
                'state': pressed,
                'state_str': state_str,
                'ok': ok,
                'timestamp': timestamp
            })
            self.socketio.emit('button_states', states)

    def get_states(self):
        """Get current button states"""
        with self._lock:
            return self.button_states.copy()

    def get_history(self):
        """Get activity history"""
        with self._lock:
            return list(self.activity_history)


def create_app(debouncer=None, ingestor=None):
    """Build the Flask app, its SocketIO server and the status board"""
    app = Flask(__name__)
    app.config['SECRET_KEY'] = WebConfig.SECRET_KEY
    socketio = SocketIO(app, cors_allowed_origins="*", async_mode='threading')
    board = StatusBoard(socketio)

    def debounce_info():
        if debouncer is None:
            return None
        state = debouncer.state()
        return {
            'scope': debouncer.scope,
            'cooldown': debouncer.cooldown,
            'last_button': state.current_button,
            'remaining': round(debouncer.remaining(), 3)
        }

    @app.route('/')
    def index():
        """Serve the dashboard HTML"""
        return render_template_string(DASHBOARD_HTML)

    @app.route('/status')
    def status():
        """Current states as JSON"""
        return jsonify({
            'buttons': board.get_states(),
            'history': board.get_history(),
            'debounce': debounce_info(),
            'mqtt': dict(MQTTConfig.get_broker_info(),
                         connected=bool(ingestor and ingestor.connected))
        })

    @socketio.on('connect')
    def handle_connect():
        """Send current states to a newly connected client"""
        print('[WebSocket] Client connected')
        emit('button_states', board.get_states())
        emit('activity_history', board.get_history())

    @socketio.on('disconnect')
    def handle_disconnect():
        print('[WebSocket] Client disconnected')

    return app, socketio, board


def serve(app, socketio):
    """Run the dashboard in a background thread"""
    thread = threading.Thread(
        target=socketio.run,
        args=(app,),
        kwargs={
            'host': WebConfig.HOST,
            'port': WebConfig.PORT,
            'debug': WebConfig.DEBUG,
            'use_reloader': False,
            'allow_unsafe_werkzeug': True
        },
        name='status-dashboard',
        daemon=True,
    )
    thread.start()
    print(f"[OK] Dashboard on http://{WebConfig.HOST}:{WebConfig.PORT}")
    return thread


# Embedded HTML dashboard
DASHBOARD_HTML = '''
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Button Bridge</title>
    <script src="https://cdn.socket.io/4.5.4/socket.io.min.js"></script>
    <style>
        :root {
            --success: #16a34a;
            --danger: #dc2626;
            --background: #000000;
            --surface: #1a1a1a;
            --text-primary: #ffffff;
            --text-secondary: #a3a3a3;
            --border: #404040;
        }

        body {
            margin: 0;
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
            background: var(--background);
            color: var(--text-primary);
            padding: 2rem;
        }

        .button-grid {
            display: grid;
            grid-template-columns: repeat(auto-fit, minmax(200px, 1fr));
            gap: 1.5rem;
            margin-bottom: 2rem;
        }

        .button-card {
            background: var(--surface);
            border: 2px solid var(--border);
            border-radius: 1rem;
            padding: 1.5rem;
            text-align: center;
        }

        .button-card.pressed {
            border-color: var(--success);
            box-shadow: 0 0 30px rgba(22, 163, 74, 0.4);
        }

        .activity-item {
            padding: 0.75rem;
            border-bottom: 1px solid var(--border);
            display: flex;
            justify-content: space-between;
        }

        .activity-item.failed {
            color: var(--danger);
        }

        .activity-time {
            color: var(--text-secondary);
        }
    </style>
</head>
<body>
    <h1>Button Bridge</h1>
    <div class="button-grid" id="buttonGrid"></div>
    <h2>Activity Feed</h2>
    <div id="activityFeed"></div>

    <script>
        const socket = io();

        function renderStates(states) {
            const grid = document.getElementById('buttonGrid');
            grid.innerHTML = '';
            Object.keys(states).sort().forEach(function(buttonId) {
                const card = document.createElement('div');
                card.className = 'button-card ' + (states[buttonId] ? 'pressed' : 'released');
                card.innerHTML = `<h3>Button ${buttonId}</h3><div>${states[buttonId] ? 'PRESSED' : 'RELEASED'}</div>`;
                grid.appendChild(card);
            });
        }

        function addActivityItem(item, append) {
            const feed = document.getElementById('activityFeed');
            const row = document.createElement('div');
            row.className = 'activity-item' + (item.ok ? '' : ' failed');
            row.innerHTML = `<span>Button ${item.button_id}: ${item.state_str || item.state}${item.ok ? '' : ' (write failed)'}</span>
                             <span class="activity-time">${item.timestamp}</span>`;
            if (append) {
                feed.appendChild(row);
            } else {
                feed.insertBefore(row, feed.firstChild);
            }
            while (feed.children.length > 20) {
                feed.removeChild(feed.lastChild);
            }
        }

        socket.on('button_states', renderStates);

        socket.on('button_update', function(data) {
            addActivityItem(data, false);
        });

        socket.on('activity_history', function(history) {
            document.getElementById('activityFeed').innerHTML = '';
            history.forEach(function(item) {
                addActivityItem(item, true);
            });
        });
    </script>
</body>
</html>
'''

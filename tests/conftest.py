from types import SimpleNamespace

import pytest
from flask import Flask
from flask_socketio import SocketIO

from uplink_relay.effects import Send, Terminate
from uplink_relay.limiter import RateLimiter
from uplink_relay.relay import Relay
from uplink_relay.rooms import RoomRegistry
from uplink_relay.sockets import register_handlers


LIMITS = {
    "create": {"max_tokens": 3, "window": 60},
    "message": {"max_tokens": 10, "window": 1},
    "ai": {"max_tokens": 5, "window": 60},
}

LIFETIME = 120 * 60


class ManualClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class RecordingScheduler:
    """Collects deferred actions instead of sleeping on them."""

    def __init__(self):
        self.calls = []

    def __call__(self, delay, callback):
        self.calls.append((delay, callback))

    def fire_all(self):
        effects = []
        for _, callback in self.calls:
            effects += callback()
        return effects


class StubAssistant:
    def generate_alias(self):
        return {"username": "Ghost_7", "backstory": "Encrypted signal found."}

    def generate_room_name(self):
        return {"name": "Neon_Grid"}

    def scan_url(self, url):
        return {"url": url, "status": "SAFE", "reason": "Known domain"}


# =====================================================
#   EFFECT HELPERS
# =====================================================

def sends(effects, event=None, sid=None):
    return [
        e for e in effects
        if isinstance(e, Send)
        and (event is None or e.event == event)
        and (sid is None or e.sid == sid)
    ]


def terminated(effects):
    return [e.sid for e in effects if isinstance(e, Terminate)]


# =====================================================
#   CORE FIXTURES
# =====================================================

@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def limiter(clock):
    return RateLimiter(limits=LIMITS, ban_duration=30, idle_seconds=60, clock=clock)


@pytest.fixture
def registry(limiter, scheduler, clock):
    return RoomRegistry(limiter, scheduler=scheduler, clock=clock, lifetime=LIFETIME)


@pytest.fixture
def relay(registry, limiter):
    return Relay(registry, limiter)


@pytest.fixture
def connect_session(registry):
    """Open a session with its own network identity."""
    def _open(sid):
        registry.open_session(sid, f"ip-{sid}")
        return sid
    return _open


@pytest.fixture
def room(registry, connect_session):
    """alice's room with alice joined as admin."""
    alice = connect_session("sid-alice")
    room_id = registry.create_room(alice, "alice", "Node1", "abc123")
    registry.join_room(alice, "alice", room_id, "abc123")
    return room_id


# =====================================================
#   GATEWAY FIXTURES
# =====================================================

def build_server(make_scheduler=None, lifetime=LIFETIME):
    """Flask app + handlers. Without make_scheduler, expiry is recorded, not run."""
    app = Flask(__name__)
    socketio = SocketIO(app, async_mode="threading")

    limiter = RateLimiter(limits=LIMITS, ban_duration=30)
    scheduler = make_scheduler(socketio) if make_scheduler else RecordingScheduler()
    registry = RoomRegistry(limiter, scheduler=scheduler, lifetime=lifetime)
    relay = Relay(registry, limiter)

    register_handlers(socketio, registry, relay, limiter, StubAssistant())

    return SimpleNamespace(
        app=app,
        socketio=socketio,
        limiter=limiter,
        scheduler=scheduler,
        registry=registry,
    )


@pytest.fixture
def server():
    return build_server()


@pytest.fixture
def connect(server):
    clients = []

    def _connect(ip):
        client = server.socketio.test_client(server.app, headers={"X-Forwarded-For": ip})
        clients.append(client)
        return client

    yield _connect

    for client in clients:
        if client.is_connected():
            client.disconnect()


def drain(client):
    """Everything received since the last drain: {event: [payload, ...]}."""
    events = {}
    for r in client.get_received():
        # "message" and "json" arrive with the payload itself as args
        if r["name"] in ("message", "json"):
            payload = r["args"]
        else:
            payload = r["args"][0] if r["args"] else None
        events.setdefault(r["name"], []).append(payload)
    return events

# ============================================
#     Uplink — Session Helpers
#     + Client identity resolution
#     + Input validation
# ============================================

from uplink_relay.config import MAX_NAME_LENGTH


# =====================================================
#   SESSION STRUCT
# =====================================================

def new_session(identity: str) -> dict:
    """
    Fresh per-connection state, attached at connect time.

    Fields:
        username: str|None  -> display name claimed at join
        room_id: str|None   -> current room
        is_admin: bool      -> username == room admin at join time
        identity: str       -> network origin, rate limit key
    """
    return {
        "username": None,
        "room_id": None,
        "is_admin": False,
        "identity": identity,
    }


def detach_session(session: dict):
    """Forget the room association (kick / room deletion / leave)."""
    if session is None:
        return
    session["room_id"] = None
    session["is_admin"] = False


# =====================================================
#   CLIENT IDENTITY (proxy aware)
# =====================================================

def client_identity(headers, remote_addr, fallback):
    """
    First hop of X-Forwarded-For when behind a proxy, else the socket peer.
    Falls back to the connection id so the limiter always has a key.
    """
    forwarded = (headers.get("X-Forwarded-For") or "") if headers else ""
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    return remote_addr or fallback


# =====================================================
#   VALIDATION
# =====================================================

def is_present(value) -> bool:
    """Non-empty string."""
    return isinstance(value, str) and value != ""


def is_too_long(name) -> bool:
    """
    Display names and room names are capped at MAX_NAME_LENGTH.
    Compared exactly elsewhere (no case folding, no trimming).
    """
    return len(name) > MAX_NAME_LENGTH


def field(data, key):
    """Read a payload field without trusting the payload shape."""
    if not isinstance(data, dict):
        return None
    return data.get(key)

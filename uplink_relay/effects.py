# ============================================
#   Uplink — Outbound Effects
# ============================================
# Rooms and relay never touch sockets. They hand back a list of these
# and sockets.dispatch() applies them in order.

from collections import namedtuple

# Emit `event` with `data` to a single connection
Send = namedtuple("Send", ["sid", "event", "data"])

# Forcibly close a connection (after any notices queued before it)
Terminate = namedtuple("Terminate", ["sid"])


def broadcast(sids, event, data=None, skip_sid=None):
    """One Send per member, preserving member order."""
    return [Send(sid, event, data) for sid in sids if sid != skip_sid]

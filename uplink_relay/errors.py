# ============================================
#   Uplink — Relay Errors
# ============================================
# Every error carries the notice shown to the originating client.
# Handlers in sockets.py turn them into an "error" event; nothing here
# ever reaches another connection.

from uplink_relay.config import MAX_NAME_LENGTH


class RelayError(Exception):
    text = "Request failed."

    def __init__(self, text=None):
        if text is not None:
            self.text = text
        super().__init__(self.text)


# =====================================================
#   ABUSE LIMITS
# =====================================================

class RateLimited(RelayError):
    """Soft limit: this one action is refused and the client is told why."""

    def __init__(self, ban_seconds):
        super().__init__(f"RATE LIMIT: Too many requests. Wait {ban_seconds:g}s.")


class ConnectionBanned(RelayError):
    """Hard limit: the caller is still in the penalty box, drop the connection."""

    text = ""


# =====================================================
#   VALIDATION / ROOMS
# =====================================================

class InvalidRequest(RelayError):
    text = "Missing fields"


class NameTooLong(RelayError):
    text = f"Name too long (max {MAX_NAME_LENGTH} characters)."


class RoomNotFound(RelayError):
    text = "Room not found"


class BadPassword(RelayError):
    text = "Bad Password"


class Banned(RelayError):
    text = "Banned"


class NameTaken(RelayError):
    text = "Username taken"


class AlreadyInRoom(RelayError):
    text = "Already in a room. Reconnect to switch rooms."


class NotInRoom(RelayError):
    text = "You are not in a room."


# =====================================================
#   MODERATION
# =====================================================

class NotAuthorized(RelayError):
    text = "ACCESS DENIED: You are not the Host."


class SelfKick(RelayError):
    text = "You cannot kick yourself."


class UserNotFound(RelayError):
    def __init__(self, username):
        super().__init__(f"User '{username}' not found. Check exact spelling.")


class AlreadyBanned(RelayError):
    def __init__(self, username):
        super().__init__(f"User '{username}' is already banned.")


# =====================================================
#   GENERATIVE TEXT COLLABORATOR
# =====================================================
# Never surfaced to users: assistant.py answers with fallbacks instead.

class CollaboratorUnavailable(Exception):
    pass


class ExtractionFailure(CollaboratorUnavailable):
    pass

# ============================================
#   Uplink — Relay Engine
#   Blind fan-out of encrypted payloads + typing indicators
# ============================================

from uplink_relay.effects import broadcast
from uplink_relay.errors import InvalidRequest, NotInRoom


class Relay:
    """
    Routes chat traffic inside a room. The payload is never inspected:
    ciphertext and IV go out exactly as they came in.
    """

    def __init__(self, registry, limiter):
        self.registry = registry
        self.limiter = limiter

    def _room_of(self, sid):
        session = self.registry.get_session(sid)
        if not session or not session.get("room_id"):
            return None, None
        if not self.registry.get_room(session["room_id"]):
            return None, None
        return session, session["room_id"]

    def relay_message(self, sid, encrypted_data, iv):
        """
        Echo to every member, sender included; the sender renders its own
        message from the echo so every client sees the relay's order.
        """
        session, room_id = self._room_of(sid)
        if not room_id:
            raise NotInRoom()

        self.limiter.check(session["identity"], "message")

        if encrypted_data is None or iv is None:
            raise InvalidRequest()

        return broadcast(self.registry.room_members(room_id), "message", {
            "username": session["username"],
            "encryptedData": encrypted_data,
            "iv": iv,
            "isAdmin": bool(session.get("is_admin")),
        })

    def typing(self, sid):
        session, room_id = self._room_of(sid)
        if not room_id:
            return []
        return broadcast(
            self.registry.room_members(room_id),
            "displayTyping",
            {"username": session["username"]},
            skip_sid=sid,
        )

    def stop_typing(self, sid):
        _, room_id = self._room_of(sid)
        if not room_id:
            return []
        return broadcast(self.registry.room_members(room_id), "hideTyping", skip_sid=sid)

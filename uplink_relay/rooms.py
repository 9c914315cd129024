# ============================================
#     Uplink — Room Registry
#     Ephemeral password-gated rooms, blacklists, expiry
# ============================================

import time
import secrets
import threading
from functools import partial

from uplink_relay.config import ROOM_LIFETIME_SECONDS
from uplink_relay.effects import Send, Terminate, broadcast
from uplink_relay.errors import (
    InvalidRequest,
    RoomNotFound,
    BadPassword,
    Banned,
    NameTaken,
    AlreadyInRoom,
    NotInRoom,
    NotAuthorized,
    SelfKick,
    UserNotFound,
    AlreadyBanned,
    NameTooLong,
)
from uplink_relay.users import new_session, detach_session, is_present, is_too_long
from uplink_relay.logger import log_info, log_warning


def generate_room_id() -> str:
    # 4 random bytes → 8 hex chars. Collisions are not checked.
    return secrets.token_hex(4)


class RoomRegistry:
    """
    Owner of every live room and every connection session.

    rooms = {
        room_id: {
            "name": str,
            "password_hash": str,     # opaque, equality-checked only
            "admin": str,             # creator display name
            "admin_sid": str,         # informational
            "created_at": float,
            "expiry_time": float,     # never changes
            "users": [{"sid": str, "username": str}, ...],
            "blacklist": set(str),    # only grows
        }
    }

    sessions = { sid: users.new_session(...) }

    Every operation returns a list of effects (Send / Terminate) for the
    gateway, or raises a RelayError for the caller.
    """

    def __init__(self, limiter, scheduler=None, clock=time.time,
                 lifetime=ROOM_LIFETIME_SECONDS):
        self.limiter = limiter
        self.scheduler = scheduler
        self.clock = clock
        self.lifetime = lifetime
        self.rooms = {}
        self.sessions = {}
        self._lock = threading.RLock()

    # =====================================================
    #   LOOKUPS
    # =====================================================

    def get_room(self, room_id):
        return self.rooms.get(room_id)

    def get_session(self, sid):
        return self.sessions.get(sid)

    def room_members(self, room_id):
        room = self.rooms.get(room_id)
        if not room:
            return []
        return [u["sid"] for u in room["users"]]

    def _find_user(self, room, username):
        for u in room["users"]:
            if u["username"] == username:
                return u
        return None

    def _current_room(self, sid):
        """(session, room_id, room) for a connection that sits in a live room."""
        session = self.sessions.get(sid)
        if not session or not session.get("room_id"):
            raise NotInRoom()

        room_id = session["room_id"]
        room = self.rooms.get(room_id)
        if not room:
            raise NotInRoom()

        return session, room_id, room

    # =====================================================
    #   SESSIONS
    # =====================================================

    def open_session(self, sid, identity):
        with self._lock:
            session = new_session(identity)
            self.sessions[sid] = session
            return session

    def close_session(self, sid):
        """Connection gone: leave its room (if any) and forget it."""
        with self._lock:
            effects = self.leave(sid)
            self.sessions.pop(sid, None)
            return effects

    # =====================================================
    #   CREATE
    # =====================================================

    def create_room(self, sid, username, room_name, password_hash):
        self.limiter.check(self.sessions[sid]["identity"], "create")

        if not (is_present(username) and is_present(room_name) and is_present(password_hash)):
            raise InvalidRequest()

        if is_too_long(username) or is_too_long(room_name):
            raise NameTooLong()

        now = self.clock()

        with self._lock:
            room_id = generate_room_id()
            self.rooms[room_id] = {
                "name": room_name,
                "password_hash": password_hash,
                "admin": username,
                "admin_sid": sid,
                "created_at": now,
                "expiry_time": now + self.lifetime,
                "users": [],
                "blacklist": set(),
            }

        if self.scheduler is not None:
            self.scheduler(self.lifetime, partial(self.expire, room_id))

        log_info("rooms", f"Room created: {room_id} by '{username}' (ttl={self.lifetime}s)")
        return room_id

    # =====================================================
    #   JOIN
    # =====================================================

    def join_room(self, sid, username, room_id, password_hash):
        session = self.sessions[sid]
        self.limiter.check(session["identity"], "message")

        if not (is_present(username) and is_present(room_id) and is_present(password_hash)):
            raise InvalidRequest()

        if is_too_long(username):
            raise NameTooLong()

        with self._lock:
            if session.get("room_id") and session["room_id"] in self.rooms:
                raise AlreadyInRoom()

            room = self.rooms.get(room_id)
            if not room or self.clock() >= room["expiry_time"]:
                raise RoomNotFound()

            if room["password_hash"] != password_hash:
                log_warning("rooms", f"Bad password for room {room_id} (sid={sid})")
                raise BadPassword()

            if username in room["blacklist"]:
                raise Banned()

            if self._find_user(room, username):
                raise NameTaken()

            others = self.room_members(room_id)

            room["users"].append({"sid": sid, "username": username})
            session["room_id"] = room_id
            session["username"] = username
            session["is_admin"] = room["admin"] == username

            effects = [Send(sid, "joined", {
                "roomId": room_id,
                "roomName": room["name"],
                "adminName": room["admin"],
                "isAdmin": session["is_admin"],
                "expiryTime": int(room["expiry_time"] * 1000),
            })]
            effects += broadcast(others, "systemMessage", {"text": f"{username} joined."})

        log_info("rooms", f"'{username}' joined {room_id} (admin={session['is_admin']})")
        return effects

    # =====================================================
    #   LEAVE
    # =====================================================

    def leave(self, sid):
        with self._lock:
            session = self.sessions.get(sid)
            if not session or not session.get("room_id"):
                return []

            room_id = session["room_id"]
            username = session.get("username")
            detach_session(session)

            room = self.rooms.get(room_id)
            if not room:
                return []

            room["users"] = [u for u in room["users"] if u["sid"] != sid]
            effects = broadcast(self.room_members(room_id), "systemMessage", {"text": f"{username} left."})

        log_info("rooms", f"'{username}' left {room_id}")
        return effects

    # =====================================================
    #   DELETE / EXPIRE
    # =====================================================

    def delete_room(self, room_id, reason):
        """
        Destroy a room: notify, detach, remove, then drop every member.
        Deleting a room that is already gone does nothing.
        """
        with self._lock:
            room = self.rooms.pop(room_id, None)
            if room is None:
                return []

            members = [u["sid"] for u in room["users"]]
            for member in members:
                session = self.sessions.get(member)
                if session and session.get("room_id") == room_id:
                    detach_session(session)

            effects = broadcast(members, "roomDestroyed", {"reason": reason})
            effects += [Terminate(member) for member in members]

        log_info("rooms", f"Room deleted: {room_id} ({reason}, {len(members)} members)")
        return effects

    def destroy_room(self, sid):
        """Admin-issued deletion of the caller's own room."""
        session, room_id, _ = self._current_room(sid)
        if not session.get("is_admin"):
            raise NotAuthorized()

        return self.delete_room(room_id, "Admin Destroyed")

    def expire(self, room_id):
        # Fires once per room. The room may already be gone (admin delete).
        if room_id not in self.rooms:
            return []
        return self.delete_room(room_id, "Expired")

    # =====================================================
    #   KICK
    # =====================================================

    def kick(self, sid, target_username):
        with self._lock:
            session, room_id, room = self._current_room(sid)

            if not session.get("is_admin"):
                raise NotAuthorized()

            if not is_present(target_username):
                raise InvalidRequest()

            if target_username == session.get("username"):
                raise SelfKick()

            if target_username in room["blacklist"]:
                raise AlreadyBanned(target_username)

            target = self._find_user(room, target_username)
            if not target:
                raise UserNotFound(target_username)

            target_sid = target["sid"]

            room["blacklist"].add(target_username)

            effects = broadcast(
                self.room_members(room_id),
                "systemMessage",
                {"text": f'"{target_username}" was forcibly disconnected by Admin.'},
            )
            effects.append(Send(target_sid, "kicked", {"reason": "You have been removed by the administrator."}))

            detach_session(self.sessions.get(target_sid))
            room["users"] = [u for u in room["users"] if u["sid"] != target_sid]

            effects.append(Terminate(target_sid))
            effects.append(Send(sid, "systemMessage", {"text": f"Success: {target_username} has been booted."}))

        log_info("rooms", f"'{target_username}' kicked from {room_id} by '{session.get('username')}'")
        return effects

# ============================================
#   Uplink — Socket.IO Gateway
#   Connection lifecycle + event routing
# ============================================

from flask import request
from flask_socketio import emit

from uplink_relay.effects import Send, Terminate
from uplink_relay.errors import RelayError, ConnectionBanned
from uplink_relay.users import client_identity, field
from uplink_relay.logger import log_info, log_warning, log_exception

NAMESPACE = "/"


# =====================================================
#   EFFECTS → TRANSPORT
# =====================================================

def dispatch(socketio, effects):
    """Apply Send/Terminate instructions in order. Works outside a request."""
    for effect in effects or []:
        if isinstance(effect, Terminate):
            socketio.server.disconnect(effect.sid, namespace=NAMESPACE)
        elif isinstance(effect, Send):
            args = () if effect.data is None else (effect.data,)
            socketio.emit(effect.event, *args, to=effect.sid, namespace=NAMESPACE)


def make_scheduler(socketio):
    """
    Deferred one-shot actions (room expiry). The callback returns effects,
    dispatched once it fires.
    """
    def schedule(delay, callback):
        def _task():
            socketio.sleep(delay)
            try:
                dispatch(socketio, callback())
            except Exception:
                log_exception("sockets", "Scheduled action failed")

        socketio.start_background_task(_task)

    return schedule


# =====================================================
#   SOCKET HANDLERS
# =====================================================

def register_handlers(socketio, registry, relay, limiter, assistant):

    def _event(name):
        """
        Bind a handler `fn(sid, data)` returning effects.
        Domain errors go back to the caller only; a boxed client is dropped.
        """
        def decorator(fn):
            def wrapper(*args):
                sid = request.sid
                data = args[0] if args else None
                try:
                    dispatch(socketio, fn(sid, data))
                except ConnectionBanned:
                    log_warning("sockets", f"Dropping boxed connection sid={sid} on {name}")
                    socketio.server.disconnect(sid, namespace=NAMESPACE)
                except RelayError as e:
                    log_warning("sockets", f"{name} refused for sid={sid}: {e.text}")
                    emit("error", {"text": e.text})
                except Exception:
                    log_exception("sockets", f"Error handling {name} (sid={sid})")

            socketio.on(name, namespace=NAMESPACE)(wrapper)
            return wrapper

        return decorator

    def _identity(sid):
        session = registry.get_session(sid)
        return session["identity"] if session else sid

    # -----------------------------------------
    # CONNECT / DISCONNECT
    # -----------------------------------------
    @socketio.on("connect", namespace=NAMESPACE)
    def on_connect(auth=None):
        identity = client_identity(request.headers, request.remote_addr, request.sid)
        registry.open_session(request.sid, identity)
        log_info("sockets", f"Client connected: sid={request.sid} ({identity})")

    @socketio.on("disconnect", namespace=NAMESPACE)
    def on_disconnect(reason=None):
        sid = request.sid
        try:
            dispatch(socketio, registry.close_session(sid))
        except Exception:
            log_exception("sockets", f"Error closing session sid={sid}")
        log_info("sockets", f"Client disconnected: sid={sid}")

    # -----------------------------------------
    # GENERATIVE TEXT (alias / room name / link scan)
    # -----------------------------------------
    @_event("generateAlias")
    def generate_alias(sid, data):
        limiter.check(_identity(sid), "ai")
        return [Send(sid, "aliasGenerated", assistant.generate_alias())]

    @_event("generateRoomName")
    def generate_room_name(sid, data):
        limiter.check(_identity(sid), "ai")
        return [Send(sid, "roomNameGenerated", assistant.generate_room_name())]

    @_event("scanUrl")
    def scan_url(sid, data):
        limiter.check(_identity(sid), "ai")
        return [Send(sid, "scanResult", assistant.scan_url(field(data, "url")))]

    # -----------------------------------------
    # ROOMS
    # -----------------------------------------
    @_event("createRoom")
    def create_room(sid, data):
        room_id = registry.create_room(
            sid,
            field(data, "username"),
            field(data, "roomName"),
            field(data, "passwordHash"),
        )
        return [Send(sid, "roomCreated", {"roomId": room_id})]

    @_event("joinRoom")
    def join_room(sid, data):
        return registry.join_room(
            sid,
            field(data, "username"),
            field(data, "roomId"),
            field(data, "passwordHash"),
        )

    @_event("deleteRoom")
    def delete_room(sid, data):
        return registry.destroy_room(sid)

    @_event("kickUser")
    def kick_user(sid, data):
        return registry.kick(sid, field(data, "targetUsername"))

    # -----------------------------------------
    # CHAT
    # -----------------------------------------
    @_event("chatMessage")
    def chat_message(sid, data):
        return relay.relay_message(sid, field(data, "encryptedData"), field(data, "iv"))

    @_event("typing")
    def typing(sid, data):
        return relay.typing(sid)

    @_event("stopTyping")
    def stop_typing(sid, data):
        return relay.stop_typing(sid)

# ============================================
#     Uplink — Main Application
#     Ephemeral encrypted group relay
# ============================================

# -------------------------------------------------
#   EVENTLET PATCH (REQUIRED FOR GUNICORN)
# -------------------------------------------------
import eventlet
eventlet.monkey_patch()

from flask import Flask
from flask_socketio import SocketIO

# -----------------------------------------
#   ENV VARIABLES (.env / host secrets)
# -----------------------------------------
from dotenv import load_dotenv
load_dotenv()

from uplink_relay.config import HOST, PORT, CORS_ALLOWED_ORIGINS, PING_TIMEOUT_SECONDS
from uplink_relay.limiter import RateLimiter
from uplink_relay.rooms import RoomRegistry
from uplink_relay.relay import Relay
from uplink_relay.assistant import Assistant
from uplink_relay.cleanup import start_cleanup_task
from uplink_relay.sockets import register_handlers, make_scheduler
from uplink_relay.logger import log_info, log_error

# =========================================
#   FLASK + SOCKET.IO
# =========================================
app = Flask(__name__)
socketio = SocketIO(
    app,
    cors_allowed_origins=CORS_ALLOWED_ORIGINS,
    ping_timeout=PING_TIMEOUT_SECONDS,
)

# =========================================
#   RELAY STATE (memory only, gone on restart)
# =========================================
limiter = RateLimiter()
registry = RoomRegistry(limiter, scheduler=make_scheduler(socketio))
relay = Relay(registry, limiter)
assistant = Assistant()

# =========================================
#   START HOUSEKEEPING TASK
# =========================================
try:
    start_cleanup_task(socketio, limiter)
    log_info("app", "Housekeeping task started.")
except Exception as e:
    log_error("app", f"Error starting housekeeping task: {e}")

# =========================================
#   REGISTER SOCKET.IO HANDLERS
# =========================================
register_handlers(socketio, registry, relay, limiter, assistant)
log_info("app", "Socket handlers registered successfully.")


# =========================================
#   LIVENESS
# =========================================
@app.route("/")
def index():
    return f"Secure Uplink Active ({len(registry.rooms)} rooms)"


# =========================================
#   RUN SERVER
# =========================================
if __name__ == "__main__":
    log_info("app", f"Secure Uplink Active on {PORT}")
    socketio.run(app, host=HOST, port=PORT)

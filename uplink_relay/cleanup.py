# ============================================
#     Uplink — Housekeeping Task
#     Idle rate records only (rooms expire on their own timers)
# ============================================

from uplink_relay.config import RATE_LIMIT_SWEEP_INTERVAL_SECONDS
from uplink_relay.logger import log_info, log_exception


def start_cleanup_task(socketio, limiter, interval=RATE_LIMIT_SWEEP_INTERVAL_SECONDS):
    """
    Start the recurring sweep of idle, unbanned rate records.
    Keeps the limiter table bounded on long-running servers.
    """
    log_info("cleanup", f"Starting rate record sweep (every {interval}s).")

    def _task():
        while True:
            try:
                socketio.sleep(interval)
                limiter.sweep()
            except Exception as e:
                log_exception("cleanup", f"Error during sweep cycle: {e}")

    return socketio.start_background_task(_task)

# ============================================
#   Uplink — Rate Limiter (token bucket + penalty box)
# ============================================

import time
import threading

from uplink_relay.config import RATE_LIMITS, BAN_DURATION_SECONDS, RATE_LIMIT_IDLE_SECONDS
from uplink_relay.errors import RateLimited, ConnectionBanned
from uplink_relay.logger import log_info, log_warning


class RateLimiter:
    """
    Per-identity abuse limits.

    _records[identity] = {
        "blocked_until": ts,            # penalty box, shared by all classes
        "last_seen": ts,
        "buckets": {
            "create": {"tokens": int, "last_refill": ts},
            ...
        },
    }
    """

    def __init__(self, limits=None, ban_duration=BAN_DURATION_SECONDS,
                 idle_seconds=RATE_LIMIT_IDLE_SECONDS, clock=time.time):
        self.limits = limits or RATE_LIMITS
        self.ban_duration = ban_duration
        self.idle_seconds = idle_seconds
        self.clock = clock
        self._records = {}
        self._lock = threading.RLock()

    def _limits_for(self, action):
        return self.limits.get(action) or self.limits["message"]

    def check(self, identity, action):
        """
        Spend one token of `action` for `identity`.

        Raises ConnectionBanned while the identity sits in the penalty box
        (caller must drop the connection), and RateLimited on the call that
        empties the bucket (that call also opens the penalty box).
        """
        now = self.clock()
        config = self._limits_for(action)
        bucket_key = action if action in self.limits else "message"

        with self._lock:
            record = self._records.get(identity)
            if record is None:
                record = {"blocked_until": 0.0, "last_seen": now, "buckets": {}}
                self._records[identity] = record

            record["last_seen"] = now

            if now < record["blocked_until"]:
                raise ConnectionBanned()

            bucket = record["buckets"].get(bucket_key)
            if bucket is None:
                bucket = {"tokens": config["max_tokens"], "last_refill": now}
                record["buckets"][bucket_key] = bucket

            if now - bucket["last_refill"] > config["window"]:
                bucket["tokens"] = config["max_tokens"]
                bucket["last_refill"] = now

            if bucket["tokens"] > 0:
                bucket["tokens"] -= 1
                return

            record["blocked_until"] = now + self.ban_duration

        log_warning("limiter", f"Penalty box for {identity} ({bucket_key}, {self.ban_duration}s)")
        raise RateLimited(self.ban_duration)

    def sweep(self, now=None):
        """Drop records that are neither boxed nor recently used. Best-effort."""
        now = self.clock() if now is None else now

        with self._lock:
            stale = [
                identity
                for identity, record in self._records.items()
                if now > record["blocked_until"] and now - record["last_seen"] > self.idle_seconds
            ]
            for identity in stale:
                self._records.pop(identity, None)

        if stale:
            log_info("limiter", f"Evicted {len(stale)} idle rate records.")
        return len(stale)

    def __len__(self):
        return len(self._records)

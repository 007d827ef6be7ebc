"""
Ephemeral key-value store for one-time codes.

Entries live for the lifetime of the process only. A restart drops every
outstanding code, and separate worker processes do not share entries; a
multi-instance deployment needs a shared cache with native expiry instead.
"""

import threading
import time


class OtpStore:
    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._entries = {}
        self._lock = threading.Lock()

    def put(self, key, value, ttl):
        """Store value under key for ttl seconds, replacing any live entry."""
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)

    def get(self, key):
        with self._lock:
            return self._get_live(key)

    def delete(self, key):
        with self._lock:
            return self._entries.pop(key, None) is not None

    def pop(self, key):
        """Return the live value for key and remove it in one step."""
        with self._lock:
            value = self._get_live(key)
            self._entries.pop(key, None)
            return value

    def compare_and_delete(self, key, expected):
        """
        Remove key only if its live value equals expected.
        Returns (found, matched); a mismatch leaves the entry in place.
        """
        with self._lock:
            value = self._get_live(key)
            if value is None:
                return False, False
            if value != expected:
                return True, False
            del self._entries[key]
            return True, True

    def purge_expired(self):
        with self._lock:
            now = self._clock()
            expired = [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def _get_live(self, key):
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self._clock():
            del self._entries[key]
            return None
        return value

# -*- coding: utf-8 -*-
"""Shared switch state and opt-in registry"""

import threading


class SwitchRegistry:
    """
    Last observed switch state plus the set of users who opted in.
    Safe for the polling thread and request handlers to use concurrently.
    """

    def __init__(self, state=False):
        # One lock for both fields; both change rarely
        self._lock = threading.Lock()
        self._state = bool(state)
        self._opted_in = set()

    def get(self):
        with self._lock:
            return self._state

    def set(self, state):
        with self._lock:
            self._state = bool(state)

    def opt_in(self, user_id):
        """Add a user to the opt-in set, returns False if already present"""
        with self._lock:
            if user_id in self._opted_in:
                return False
            self._opted_in.add(user_id)
            return True

    def is_opted_in(self, user_id):
        with self._lock:
            return user_id in self._opted_in

    def opted_in(self):
        """Snapshot of opted-in user ids"""
        with self._lock:
            return frozenset(self._opted_in)

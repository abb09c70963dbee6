# -*- coding: utf-8 -*-
"""
Switch edge monitor
Polls the switch at a fixed interval and relays every level change.
"""

import logging
import threading

from .errors import SensorError
from .sensor import Level

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.1


def format_state(state):
    return "true" if state else "false"


def transition_message(state):
    return f"Switch state changed to: {format_state(state)}"


class EdgeMonitor:
    """
    Reads the switch every poll_interval seconds.
    A closed switch pulls the pin LOW, which is reported as state True.
    """

    def __init__(self, sensor, registry, notifier, poll_interval=DEFAULT_POLL_INTERVAL, stop_event=None):
        self.sensor = sensor
        self.registry = registry
        self.notifier = notifier
        self.poll_interval = poll_interval
        self.stop_event = stop_event or threading.Event()
        # None is never a real level, so the first read only sets the baseline
        self.last_level = None

    def poll_once(self):
        """Read the switch once, returns True if a transition was relayed"""
        try:
            level = Level(self.sensor.read())
        except (SensorError, OSError, ValueError) as e:
            logger.error(f"Error reading switch: {e}")
            return False

        if level == self.last_level:
            return False

        first_read = self.last_level is None
        self.last_level = level
        state = level == Level.LOW
        self.registry.set(state)

        if first_read:
            logger.info(f"Initial switch state: {format_state(state)}")
            return False

        message = transition_message(state)
        logger.info(message)
        self.notifier.send(message)
        return True

    def run(self):
        """Main monitoring loop, runs until stop_event is set"""
        logger.info(f"Starting switch monitor (poll interval {self.poll_interval}s)")
        while not self.stop_event.is_set():
            try:
                self.poll_once()
            except Exception:
                logger.exception("Unexpected error in switch monitor")
            self.stop_event.wait(self.poll_interval)
        logger.info("Switch monitor stopped")

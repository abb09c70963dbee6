# -*- coding: utf-8 -*-
"""
Service wiring
Starts the switch monitor, the log compactor and the HTTP server, and stops
them all through one shutdown event.
"""

import argparse
import logging
import signal
import sys
import threading

from . import __version__
from .api import HttpServer, create_app
from .config import DEFAULT_CONFIG_FILE, load_config
from .errors import ConfigError, SensorError
from .monitor import EdgeMonitor
from .notifier import SlackNotifier
from .registry import SwitchRegistry
from .retention import Compactor, setup_logging
from .sensor import open_sensor

logger = logging.getLogger(__name__)


class Service:
    """Owns the registry and every long-running task"""

    def __init__(self, config, sensor, notifier, log_handler=None, registry=None):
        self.config = config
        self.notifier = notifier
        self.registry = registry if registry is not None else SwitchRegistry()
        self.stop_event = threading.Event()
        self._stopped = False

        self.monitor = EdgeMonitor(
            sensor,
            self.registry,
            notifier,
            poll_interval=config.monitoring.poll_interval,
            stop_event=self.stop_event,
        )
        self._monitor_thread = threading.Thread(target=self.monitor.run, name="switch-monitor", daemon=True)

        self._compactor = None
        if log_handler is not None:
            self._compactor = Compactor(log_handler, config.logging.cleanup_interval, self.stop_event)

        self.app = create_app(self.registry, config.slack.verification_token)
        self.server = HttpServer(self.app, config.http.host, config.http.port)

    def start(self):
        if self.config.slack.announce_startup:
            self.notifier.send("✅ Switch monitor started")

        self._monitor_thread.start()
        if self._compactor is not None:
            self._compactor.start()
        self.server.start()

    def wait(self, timeout=None):
        """Block until stop() is called, returns True once stopped"""
        return self.stop_event.wait(timeout)

    def stop(self):
        if self._stopped:
            return
        self._stopped = True
        logger.info("Stopping switch monitor...")
        self.stop_event.set()
        self.server.shutdown()
        for thread in (self._monitor_thread, self._compactor):
            if thread is not None and thread.is_alive():
                thread.join()


# ==================== MAIN ====================

def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="switch-monitor",
        description="Relay switch state changes to Slack",
    )
    parser.add_argument("-c", "--config", default=DEFAULT_CONFIG_FILE,
                        help=f"path to the YAML configuration (default: {DEFAULT_CONFIG_FILE})")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point"""
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        sys.exit(f"ERROR: {e}")

    try:
        log_handler = setup_logging(config)
    except OSError as e:
        sys.exit(f"ERROR: Failed to open log file {config.logging.path}: {e}")

    logger.info("=" * 60)
    logger.info(f"Switch Monitor {__version__} Starting")
    logger.info("=" * 60)

    try:
        sensor = open_sensor(config.sensor)
    except SensorError as e:
        logger.error(f"Failed to initialize switch input: {e}")
        sys.exit(1)

    notifier = SlackNotifier(
        config.slack.token,
        config.slack.channel,
        api_url=config.slack.api_url,
        timeout=config.slack.timeout,
    )

    try:
        service = Service(config, sensor, notifier, log_handler=log_handler)
    except OSError as e:
        logger.error(f"Failed to start HTTP server on port {config.http.port}: {e}")
        sensor.close()
        sys.exit(1)

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signal.Signals(signum).name}")
        service.stop_event.set()

    signal.signal(signal.SIGTERM, handle_signal)

    service.start()
    try:
        service.wait()
    except KeyboardInterrupt:
        logger.info("Monitoring stopped by user")
    finally:
        service.stop()
        sensor.close()
        logger.info("Switch monitor stopped")


if __name__ == "__main__":
    main()

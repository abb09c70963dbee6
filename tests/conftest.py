from __future__ import annotations

import threading

import pytest

from switch_monitor.config import Config, HttpConfig, LoggingConfig, MonitoringConfig, SlackConfig
from switch_monitor.errors import SensorError
from switch_monitor.registry import SwitchRegistry


class FakeSensor:
    """Returns the scripted levels in order, then repeats the last one"""

    def __init__(self, levels):
        self.levels = list(levels)
        self.reads = 0
        self.closed = False
        self.exhausted = threading.Event()

    def read(self):
        self.reads += 1
        if not self.levels:
            raise SensorError("no levels scripted")
        if len(self.levels) == 1:
            self.exhausted.set()
            item = self.levels[0]
        else:
            item = self.levels.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed = True


class RecordingNotifier:
    def __init__(self, result=True):
        self.result = result
        self.messages = []

    def send(self, message):
        self.messages.append(message)
        return self.result


@pytest.fixture
def registry() -> SwitchRegistry:
    return SwitchRegistry()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_sensor():
    return FakeSensor


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(
        monitoring=MonitoringConfig(poll_interval=0.01),
        slack=SlackConfig(token="xoxb-test", channel="C123", verification_token="secret"),
        http=HttpConfig(host="127.0.0.1", port=0),
        logging=LoggingConfig(log_dir=str(tmp_path / "logs"), cleanup_interval=0.05),
    )


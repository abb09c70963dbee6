from __future__ import annotations

from types import SimpleNamespace

import pytest
import serial

from switch_monitor import sensor as sensor_module
from switch_monitor.errors import SensorError
from switch_monitor.sensor import GpioSwitch, Level, SerialSwitch, find_arduino_port, parse_level


@pytest.mark.parametrize("text, level", [
    ("0\r\n", Level.LOW),
    ("1\n", Level.HIGH),
    ("low", Level.LOW),
    (" HIGH ", Level.HIGH),
])
def test_parse_level(text, level) -> None:
    assert parse_level(text) is level


@pytest.mark.parametrize("text", ["", "2", "OPEN", "1,0"])
def test_parse_level_rejects_unknown_values(text) -> None:
    with pytest.raises(SensorError):
        parse_level(text)


class FakeConnection:
    def __init__(self, lines, error=None):
        self.lines = list(lines)
        self.error = error
        self.is_open = True
        self.buffer_resets = 0

    def reset_input_buffer(self):
        self.buffer_resets += 1

    def readline(self):
        if self.error is not None:
            raise self.error
        return self.lines.pop(0) if self.lines else b""

    def close(self):
        self.is_open = False


def _serial_switch(connection: FakeConnection) -> SerialSwitch:
    switch = SerialSwitch(port="/dev/ttyUSB0", timeout=0.1)
    switch._connection = connection
    return switch


def test_serial_switch_reads_levels() -> None:
    switch = _serial_switch(FakeConnection([b"1\r\n", b"0\r\n"]))

    assert switch.read() is Level.HIGH
    assert switch.read() is Level.LOW


def test_serial_switch_timeout_is_a_read_error() -> None:
    switch = _serial_switch(FakeConnection([]))

    with pytest.raises(SensorError, match="No data"):
        switch.read()


def test_serial_switch_wraps_serial_errors() -> None:
    switch = _serial_switch(FakeConnection([], error=serial.SerialException("device gone")))

    with pytest.raises(SensorError, match="device gone"):
        switch.read()


def test_serial_switch_requires_open_connection() -> None:
    connection = FakeConnection([b"1\n"])
    switch = _serial_switch(connection)
    switch.close()

    assert connection.is_open is False
    with pytest.raises(SensorError):
        switch.read()


def test_serial_switch_configure_without_arduino_fails(monkeypatch) -> None:
    monkeypatch.setattr(sensor_module, "find_arduino_port", lambda: None)

    with pytest.raises(SensorError, match="Could not find Arduino"):
        SerialSwitch(port="").configure()


def test_find_arduino_port(monkeypatch) -> None:
    ports = [
        SimpleNamespace(device="/dev/ttyS0", vid=None, pid=None, description="n/a"),
        SimpleNamespace(device="/dev/ttyUSB3", vid=0x1A86, pid=0x7523, description="USB Serial"),
    ]
    monkeypatch.setattr(sensor_module.serial.tools.list_ports, "comports", lambda: ports)

    assert find_arduino_port() == "/dev/ttyUSB3"


def test_find_arduino_port_none_found(monkeypatch) -> None:
    ports = [SimpleNamespace(device="/dev/ttyUSB0", vid=0x1234, pid=0x5678, description="Modem")]
    monkeypatch.setattr(sensor_module.serial.tools.list_ports, "comports", lambda: ports)

    assert find_arduino_port() is None


def test_gpio_switch_reads_pin_level() -> None:
    values = {"pin": 1}
    switch = GpioSwitch("gpio1p0")
    switch._gpio = SimpleNamespace(input=lambda pin: values[pin])
    switch._pin = "pin"

    assert switch.read() is Level.HIGH
    values["pin"] = 0
    assert switch.read() is Level.LOW


def test_gpio_switch_must_be_configured() -> None:
    with pytest.raises(SensorError):
        GpioSwitch("gpio1p0").read()


def test_gpio_switch_close_runs_cleanup() -> None:
    calls = []
    switch = GpioSwitch("gpio1p0")
    switch._gpio = SimpleNamespace(input=lambda pin: 1, cleanup=lambda: calls.append("cleanup"))
    switch._pin = "pin"

    switch.close()
    switch.close()

    assert calls == ["cleanup"]
    with pytest.raises(SensorError):
        switch.read()


def test_gpio_switch_close_without_cleanup(caplog) -> None:
    switch = GpioSwitch("gpio1p0")
    switch._gpio = SimpleNamespace(input=lambda pin: 1)
    switch._pin = "pin"

    switch.close()

    assert "no cleanup" in caplog.text

# -*- coding: utf-8 -*-
"""
Switch inputs
Either a GPIO pin read directly (OrangePi via pyA20) or an Arduino Nano
connected over USB that reports the pin level on its serial port.
"""

import enum
import logging
import time

import serial
import serial.tools.list_ports

from .errors import SensorError

logger = logging.getLogger(__name__)

# Arduino Nano: 2341:0043, 1a86:7523 (CH340), 0403:6001 (FTDI)
ARDUINO_VID_PIDS = ("2341:0043", "1a86:7523", "0403:6001")
ARDUINO_DESCRIPTIONS = ("Arduino", "CH340", "FTDI")
ARDUINO_RESET_DELAY = 2


class Level(enum.IntEnum):
    LOW = 0
    HIGH = 1


def parse_level(text):
    """Parse a level reported by the Arduino sketch ("0"/"1" or "LOW"/"HIGH")"""
    value = text.strip().upper()
    if value in ("0", "LOW"):
        return Level.LOW
    if value in ("1", "HIGH"):
        return Level.HIGH
    raise SensorError(f"Unrecognized level from sensor: {text.strip()!r}")


# ==================== GPIO PIN ====================

class GpioSwitch:
    """Switch wired to an OrangePi GPIO pin, read through pyA20"""

    def __init__(self, pin_name, pull_up=True):
        self.pin_name = pin_name
        self.pull_up = pull_up
        self._gpio = None
        self._pin = None

    def configure(self):
        try:
            from pyA20.gpio import connector, gpio
        except ImportError as e:
            raise SensorError(f"pyA20 is not available: {e}") from e

        pin = getattr(connector, self.pin_name, None)
        if pin is None:
            raise SensorError(f"Failed to find pin {self.pin_name}")

        try:
            gpio.init()
            gpio.setcfg(pin, gpio.INPUT)
            gpio.pullup(pin, gpio.PULLUP if self.pull_up else gpio.PULLDOWN)
        except Exception as e:
            raise SensorError(f"Failed to configure pin {self.pin_name} as input: {e}") from e

        self._gpio = gpio
        self._pin = pin
        logger.info(f"✓ GPIO pin {self.pin_name} configured as input")

    def read(self):
        if self._gpio is None:
            raise SensorError("GPIO pin is not configured")
        return Level.HIGH if self._gpio.input(self._pin) else Level.LOW

    def close(self):
        if self._gpio is None:
            return
        gpio, self._gpio = self._gpio, None
        # Not every pyA20 build ships cleanup()
        cleanup = getattr(gpio, "cleanup", None)
        if cleanup is None:
            logger.info("GPIO reference dropped (pyA20 has no cleanup)")
            return
        try:
            cleanup()
        except Exception as e:
            logger.error(f"GPIO cleanup failed: {e}")
            return
        logger.info("GPIO cleanup completed")


# ==================== ARDUINO OVER USB ====================

def find_arduino_port():
    """Auto-detect Arduino Nano USB port"""
    logger.info("Searching for Arduino Nano...")

    ports = serial.tools.list_ports.comports()
    for port in ports:
        if port.vid and port.pid:
            vid_pid = f"{port.vid:04x}:{port.pid:04x}"
            description = port.description or ""
            logger.info(f"  Found device: {port.device} ({vid_pid}) - {description}")

            if vid_pid in ARDUINO_VID_PIDS or any(name in description for name in ARDUINO_DESCRIPTIONS):
                logger.info(f"  ✓ Arduino detected at {port.device}")
                return port.device

    logger.warning("Arduino not found, available ports:")
    for port in ports:
        logger.warning(f"  - {port.device}: {port.description}")
    return None


class SerialSwitch:
    """Switch read by an Arduino Nano that prints the pin level as lines"""

    def __init__(self, port="", baud_rate=9600, timeout=2):
        self.port = port
        self.baud_rate = baud_rate
        self.timeout = timeout
        self._connection = None

    def configure(self):
        port = self.port or find_arduino_port()
        if not port:
            raise SensorError("Could not find Arduino. Please set sensor.port manually.")

        try:
            logger.info(f"Connecting to Arduino on {port} at {self.baud_rate} baud...")
            self._connection = serial.Serial(
                port=port,
                baudrate=self.baud_rate,
                timeout=self.timeout,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
            )
        except serial.SerialException as e:
            raise SensorError(f"Failed to open serial port {port}: {e}") from e

        # Arduino resets when the port opens
        time.sleep(ARDUINO_RESET_DELAY)
        self._connection.reset_input_buffer()
        logger.info("✓ Serial connection established")

    def read(self):
        if not self._connection or not self._connection.is_open:
            raise SensorError("Serial connection not available")

        try:
            self._connection.reset_input_buffer()
            line = self._connection.readline().decode('utf-8', errors='ignore')
        except serial.SerialException as e:
            raise SensorError(f"Serial read error: {e}") from e

        if not line.strip():
            raise SensorError(f"No data from Arduino within {self.timeout}s")
        return parse_level(line)

    def close(self):
        if self._connection and self._connection.is_open:
            self._connection.close()
            logger.info("Serial connection closed")


def open_sensor(sensor_config):
    """Create and configure the switch input described by the config"""
    if sensor_config.backend == "serial":
        sensor = SerialSwitch(
            port=sensor_config.port,
            baud_rate=sensor_config.baud_rate,
            timeout=sensor_config.timeout,
        )
    else:
        sensor = GpioSwitch(sensor_config.pin, pull_up=sensor_config.pull_up)

    sensor.configure()
    return sensor

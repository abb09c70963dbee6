# -*- coding: utf-8 -*-
"""Exceptions raised by the switch monitor"""


class SwitchMonitorError(Exception):
    """Base class for all switch monitor errors"""


class ConfigError(SwitchMonitorError):
    """Configuration is missing or invalid"""


class SensorError(SwitchMonitorError):
    """Sensor could not be configured or read"""


class NotificationError(SwitchMonitorError):
    """Notification could not be delivered"""

# -*- coding: utf-8 -*-
"""
Configuration loading
Defaults are overridden by config.yaml, secrets by environment variables
"""

import logging
import os
from dataclasses import dataclass, field, fields

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "config.yaml"

# Environment variables that override the slack section
ENV_SLACK_TOKEN = "SLACK_TOKEN"
ENV_SLACK_CHANNEL = "SLACK_CHANNEL"
ENV_SLACK_VERIFICATION_TOKEN = "SLACK_VERIFICATION_TOKEN"


# ==================== CONFIGURATION SECTIONS ====================

@dataclass(frozen=True)
class SensorConfig:
    backend: str = "gpio"         # "gpio" (pyA20 pin) or "serial" (Arduino over USB)
    pin: str = "gpio1p0"          # pyA20 connector name
    pull_up: bool = True
    port: str = ""                # empty = auto-detect Arduino
    baud_rate: int = 9600
    timeout: float = 2


@dataclass(frozen=True)
class MonitoringConfig:
    poll_interval: float = 0.1    # Seconds between switch reads


@dataclass(frozen=True)
class SlackConfig:
    token: str = ""
    channel: str = ""
    verification_token: str = ""
    api_url: str = "https://slack.com/api/chat.postMessage"
    timeout: float = 5
    announce_startup: bool = False


@dataclass(frozen=True)
class HttpConfig:
    host: str = "0.0.0.0"
    port: int = 8080


@dataclass(frozen=True)
class LoggingConfig:
    log_dir: str = "logs"
    log_file: str = "app.log"
    level: str = "INFO"
    retention_hours: float = 24
    cleanup_interval: float = 3600   # Seconds between log compactions

    @property
    def path(self):
        return os.path.join(self.log_dir, self.log_file)


@dataclass(frozen=True)
class Config:
    sensor: SensorConfig = field(default_factory=SensorConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    slack: SlackConfig = field(default_factory=SlackConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_SECTIONS = {
    'sensor': SensorConfig,
    'monitoring': MonitoringConfig,
    'slack': SlackConfig,
    'http': HttpConfig,
    'logging': LoggingConfig,
}

_POSITIVE = (
    ('sensor', 'baud_rate'),
    ('sensor', 'timeout'),
    ('monitoring', 'poll_interval'),
    ('slack', 'timeout'),
    ('http', 'port'),
    ('logging', 'retention_hours'),
    ('logging', 'cleanup_interval'),
)


# ==================== LOAD CONFIGURATION ====================

def _build_section(name, cls, values):
    if values is None:
        values = {}
    if not isinstance(values, dict):
        raise ConfigError(f"Section '{name}' must be a mapping")

    known = set(cls.__dataclass_fields__)
    unknown = set(values) - known
    if unknown:
        raise ConfigError(f"Unknown keys in section '{name}': {', '.join(sorted(unknown))}")

    checked = {}
    for item in fields(cls):
        if item.name in values:
            checked[item.name] = _check_type(f"{name}.{item.name}", item.type, values[item.name])
    return cls(**checked)


def _check_type(key, expected, value):
    # YAML reads unquoted digits as numbers; tokens and pin names are strings
    if expected is str:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if not isinstance(value, str):
            raise ConfigError(f"{key} must be a string, got {value!r}")
    elif expected is bool and not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false, got {value!r}")
    return value


def _read_yaml(config_path):
    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        logger.warning(f"⚠ Configuration file {config_path} not found, using defaults")
        return {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Error loading configuration from {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {config_path} must contain a mapping")
    return data


def _validate(config):
    for section, key in _POSITIVE:
        value = getattr(getattr(config, section), key)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ConfigError(f"{section}.{key} must be a positive number, got {value!r}")

    if config.sensor.backend not in ('gpio', 'serial'):
        raise ConfigError(f"sensor.backend must be 'gpio' or 'serial', got {config.sensor.backend!r}")

    if not isinstance(logging.getLevelName(str(config.logging.level).upper()), int):
        raise ConfigError(f"Unknown logging.level {config.logging.level!r}")

    for key in ('token', 'channel', 'verification_token'):
        if not getattr(config.slack, key):
            raise ConfigError(f"slack.{key} must be set (config file or environment)")


def load_config(config_file=None, environ=None):
    """Load configuration from a YAML file and the environment"""
    if config_file is None:
        config_file = DEFAULT_CONFIG_FILE
    if environ is None:
        environ = os.environ

    data = _read_yaml(config_file)
    unknown = set(data) - set(_SECTIONS)
    if unknown:
        raise ConfigError(f"Unknown configuration sections: {', '.join(sorted(unknown))}")

    sections = {name: data.get(name) for name in _SECTIONS}
    if sections['slack'] is None:
        sections['slack'] = {}

    # Secrets from the environment win over the file
    slack = sections['slack']
    if isinstance(slack, dict):
        slack = sections['slack'] = dict(slack)
        for env_key, key in ((ENV_SLACK_TOKEN, 'token'),
                             (ENV_SLACK_CHANNEL, 'channel'),
                             (ENV_SLACK_VERIFICATION_TOKEN, 'verification_token')):
            if environ.get(env_key):
                slack[key] = environ[env_key]

    config = Config(**{name: _build_section(name, cls, sections[name])
                       for name, cls in _SECTIONS.items()})
    _validate(config)
    return config

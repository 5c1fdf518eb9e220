# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Configuration module for loading and parsing configuration files

# Standard library imports
import logging

from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

# Third-party imports
import yaml

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

# Local/package imports
from dual_syslog_listener.errors import ConfigurationError

DEFAULT_PORT = 514
DEFAULT_ADDRESS = "0.0.0.0"
DEFAULT_RECV_BUFFER_SIZE = 16 * 1024 * 1024  # 16 MiB


class LoggerConfig(BaseModel):
    """
    Configuration for individual loggers.

    Attributes:
        name (str): Logger name.
        level (str): Logging level (default: "INFO").
        propagate (bool): Whether to propagate logs to parent (default: True).
    """

    model_config = ConfigDict(frozen=True)

    name: str
    level: str = "INFO"
    propagate: bool = True


class UDPConfig(BaseModel):
    """
    Datagram transport settings. The socket binds on the top-level port/address.

    Attributes:
        enabled (bool): Whether the UDP listener is started (default: True).
        recv_buffer_size (Optional[int]): SO_RCVBUF hint, falls back to the top-level value.
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    recv_buffer_size: Optional[int] = Field(default=None, gt=0)


class TCPConfig(BaseModel):
    """
    Stream transport settings.

    Attributes:
        enabled (bool): Whether the TCP listener is started (default: False).
        port (int): Port to listen on.
        address (str): Address to bind to.
        allow_half_open (bool): Accepted for compatibility; connections are closed after EOF.
        keep_alive (bool): Enable SO_KEEPALIVE on accepted connections.
        keep_alive_delay (float): Idle seconds before the first keep-alive probe.
        recv_buffer_size (Optional[int]): SO_RCVBUF hint, falls back to the top-level value.
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535)
    address: str = DEFAULT_ADDRESS
    allow_half_open: bool = False
    keep_alive: bool = True
    keep_alive_delay: float = Field(default=60.0, ge=0)
    recv_buffer_size: Optional[int] = Field(default=None, gt=0)


class Config(BaseModel):
    """
    Main configuration class for the dual transport syslog listener.

    Instances are immutable. Derive a modified configuration with
    ``apply_overrides``, which re-runs validation and the legacy binding rule.
    """

    model_config = ConfigDict(frozen=True)

    # Shared/UDP binding
    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535)
    address: str = DEFAULT_ADDRESS
    exclusive: bool = True
    recv_buffer_size: int = Field(default=DEFAULT_RECV_BUFFER_SIZE, gt=0)

    udp: UDPConfig = Field(default_factory=UDPConfig)
    tcp: TCPConfig = Field(default_factory=TCPConfig)

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s %(name)s %(message)s"
    log_date_format: str = "%Y-%m-%d %H:%M:%S"
    loggers: List[LoggerConfig] = Field(default_factory=list)

    # Tracing
    enable_tracing: bool = False

    @model_validator(mode="before")
    @classmethod
    def apply_legacy_binding(cls, data: Any) -> Any:
        """
        Copy a bare top-level port/address onto the TCP settings.

        This keeps the single-port form working: ``Config(port=1514, tcp={"enabled": True})``
        listens on 1514 for both transports unless ``tcp.port`` is given explicitly.
        """
        if not isinstance(data, Mapping):
            return data
        if "port" not in data and "address" not in data:
            return data

        tcp = data.get("tcp")
        if isinstance(tcp, TCPConfig):
            tcp = tcp.model_dump(exclude_unset=True)
        tcp = dict(tcp or {})

        for key in ("port", "address"):
            if key in data and key not in tcp:
                tcp[key] = data[key]

        return {**data, "tcp": tcp}

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that the log level is a valid Python logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v

    @property
    def udp_recv_buffer_size(self) -> int:
        return self.udp.recv_buffer_size or self.recv_buffer_size

    @property
    def tcp_recv_buffer_size(self) -> int:
        return self.tcp.recv_buffer_size or self.recv_buffer_size

    @property
    def any_transport_enabled(self) -> bool:
        return self.udp.enabled or self.tcp.enabled


def resolve_config(options: Union[Config, Mapping[str, Any], None] = None) -> Config:
    """
    Merge caller supplied options over the defaults.

    Args:
        options: A Config, a mapping of overrides, or None for the defaults.

    Returns:
        The resolved Config.

    Raises:
        ConfigurationError: If the options do not validate.
    """
    if isinstance(options, Config):
        return options
    try:
        return Config(**dict(options or {}))
    except (ValidationError, TypeError) as e:
        raise ConfigurationError("Invalid syslog server configuration", e) from e


def apply_overrides(config: Config, overrides: Mapping[str, Any]) -> Config:
    """
    Merge overrides into an existing configuration and re-validate it.

    Sub-config overrides ("udp", "tcp") are merged key by key. A TCP port or
    address that was only copied from the old top-level binding follows a
    new top-level ``port``/``address`` override.

    Raises:
        ConfigurationError: If the merged options do not validate.
    """
    if not overrides:
        return config

    data = config.model_dump(exclude_unset=True)
    udp = config.udp.model_dump(exclude_unset=True)
    tcp = config.tcp.model_dump(exclude_unset=True)
    tcp_overrides = dict(overrides.get("tcp") or {})

    for key in ("port", "address"):
        if key in overrides and key not in tcp_overrides and tcp.get(key) == getattr(config, key):
            del tcp[key]

    udp.update(overrides.get("udp") or {})
    tcp.update(tcp_overrides)
    data.update({k: v for k, v in overrides.items() if k not in ("udp", "tcp")})
    data["udp"] = udp
    data["tcp"] = tcp
    return resolve_config(data)


def load_config(config_path: Optional[Union[str, Path]] = None) -> Config:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the configuration file. If None, will look for config.yaml
                   in the current directory and default directories.

    Returns:
        A Config object containing the loaded configuration.

    Raises:
        FileNotFoundError: If the configuration file cannot be found.
        yaml.YAMLError: If the configuration file contains invalid YAML.
    """
    search_paths = [
        Path.cwd() / "config.yaml",
        Path.cwd() / "config.yml",
        Path("/etc/dual-syslog-listener/config.yaml"),
        Path("/etc/dual-syslog-listener/config.yml"),
    ]

    if config_path:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
    else:
        for path in search_paths:
            if path.exists():
                config_file = path
                break
        else:
            logging.warning("No configuration file found, using default configuration")
            return Config()

    with open(config_file, "r") as f:
        try:
            config_data = yaml.safe_load(f) or {}
            return Config(**config_data)
        except yaml.YAMLError as e:
            logging.error("Error parsing configuration file", extra={"error": e})
            raise
        except Exception as e:
            logging.error("Error loading configuration", extra={"error": e})
            raise


class SafeExtraFormatter(logging.Formatter):
    """
    Custom formatter that substitutes missing extra fields with a blank string.
    """

    def format(self, record: logging.LogRecord) -> str:
        for field in ("host", "protocol"):
            if not hasattr(record, field):
                setattr(record, field, "")
        return super().format(record)


def configure_logging(config: "Config") -> None:
    """
    Configure logging based on the provided configuration.

    Args:
        config: The loaded configuration object.
    """
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    level = getattr(logging, config.log_level, logging.INFO)
    formatter = SafeExtraFormatter(config.log_format, datefmt=config.log_date_format)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logging.root.setLevel(level)
    logging.root.addHandler(console_handler)

    for logger_config in config.loggers:
        logger = logging.getLogger(logger_config.name)
        logger.setLevel(getattr(logging, logger_config.level, logging.INFO))
        logger.propagate = logger_config.propagate

"""
Watcher configuration loader.

Loads configuration from a YAML file. Keys are camelCase:

    url: tcp://localhost:26657
    validatorNetworkAddress: 6E0D8AB8F4B54D2D6D9C1B7A1E4BA3F0E9C4D2A1
    listenAddress: localhost:8080
    websocketEndpoint: /websocket
    query: "tm.event = 'NewBlock'"

Only `url` and `validatorNetworkAddress` are required.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError, field_validator

from vote_watcher.api import DEFAULT_LISTEN_ADDRESS, ApiServerConfig
from vote_watcher.subscription import (
    DEFAULT_WEBSOCKET_ENDPOINT,
    NEW_BLOCK_QUERY,
    build_websocket_url,
)
from vote_watcher.types import StrictBaseModel

DEFAULT_CONFIG_PATH = Path("config.yaml")
"""Configuration file read when no path is given, relative to the working directory."""


class ConfigError(Exception):
    """Raised when the configuration cannot be read or is invalid."""


class WatcherConfig(StrictBaseModel):
    """
    Static configuration of the vote watcher.

    Read once at startup; there is no reload.
    """

    url: str
    """
    RPC address of the node.

    Accepts tcp://, http(s)://, ws(s):// or a bare host:port.
    """

    validator_network_address: str
    """
    Address of the validator to watch.

    Must use the node's canonical encoding (uppercase hex). Compared exactly.
    """

    listen_address: str = DEFAULT_LISTEN_ADDRESS
    """host:port the metrics server binds to."""

    websocket_endpoint: str = DEFAULT_WEBSOCKET_ENDPOINT
    """Path of the RPC websocket on the node."""

    query: str = NEW_BLOCK_QUERY
    """Subscription query. Must select new block events only."""

    @field_validator("url", "validator_network_address", "query")
    @classmethod
    def require_non_empty(cls, v: str) -> str:
        """Reject blank values."""
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Check the node address has a supported scheme."""
        build_websocket_url(v)
        return v

    @field_validator("listen_address")
    @classmethod
    def validate_listen_address(cls, v: str) -> str:
        """Check the listen address parses as host:port."""
        ApiServerConfig.from_address(v)
        return v

    @property
    def websocket_url(self) -> str:
        """Full websocket URL of the node's event endpoint."""
        return build_websocket_url(self.url, self.websocket_endpoint)

    @property
    def api_config(self) -> ApiServerConfig:
        """Metrics server configuration derived from the listen address."""
        return ApiServerConfig.from_address(self.listen_address)

    @classmethod
    def from_yaml_file(cls, path: Path | str = DEFAULT_CONFIG_PATH) -> WatcherConfig:
        """
        Load configuration from a YAML file.

        Raises:
            ConfigError: If the file is missing, is not valid YAML, or fails validation.
        """
        path = Path(path)
        try:
            with path.open(encoding="utf-8") as f:
                content = f.read()
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e
        return cls.from_yaml(content)

    @classmethod
    def from_yaml(cls, content: str) -> WatcherConfig:
        """
        Load configuration from a YAML string.

        Raises:
            ConfigError: If the content is not valid YAML or fails validation.
        """
        try:
            data: Any = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError("Config must be a mapping")

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid config: {e}") from e

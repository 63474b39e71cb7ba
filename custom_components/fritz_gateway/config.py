"""Runtime configuration of a FRITZ!Box Gateway config entry."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

from homeassistant.const import CONF_PASSWORD, CONF_USERNAME, CONF_VERIFY_SSL

from .const import (
    CONF_CONCURRENT,
    CONF_DEVICES,
    CONF_INTERVAL,
    CONF_MAX_CONCURRENT,
    CONF_MIN_REFRESH_AGE,
    CONF_URL,
    DEFAULT_CONCURRENCY_WIDTH,
    DEFAULT_MIN_REFRESH_AGE,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_URL,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from homeassistant.config_entries import ConfigEntry

_LOGGER = logging.getLogger(__name__)

_MISSING = object()


def normalize_url(url: str) -> str:
    """Strip whitespace and the trailing slash, warn about odd schemes."""
    url = (url or DEFAULT_URL).strip().rstrip("/")
    if urlparse(url).scheme not in ("http", "https"):
        _LOGGER.warning("FRITZ!Box URL %s does not start with http(s)://", url)
    return url


@dataclass(frozen=True)
class GatewayConfig:
    """Settings of one FRITZ!Box, merged from entry data and options."""

    url: str = DEFAULT_URL
    username: str = ""
    password: str = ""
    interval: float = DEFAULT_POLL_INTERVAL
    concurrent: bool = False
    max_concurrent: int = DEFAULT_CONCURRENCY_WIDTH
    verify_ssl: bool = False
    min_refresh_age: float = DEFAULT_MIN_REFRESH_AGE
    devices: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_entry(cls, entry: ConfigEntry) -> GatewayConfig:
        """Build the configuration of a config entry."""
        return cls.from_mapping({**entry.data, **entry.options})

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> GatewayConfig:
        return cls(
            url=normalize_url(data.get(CONF_URL, DEFAULT_URL)),
            username=data.get(CONF_USERNAME) or "",
            password=data.get(CONF_PASSWORD) or "",
            interval=float(data.get(CONF_INTERVAL, DEFAULT_POLL_INTERVAL)),
            concurrent=bool(data.get(CONF_CONCURRENT, False)),
            max_concurrent=int(data.get(CONF_MAX_CONCURRENT, DEFAULT_CONCURRENCY_WIDTH)),
            verify_ssl=bool(data.get(CONF_VERIFY_SSL, False)),
            min_refresh_age=float(
                data.get(CONF_MIN_REFRESH_AGE, DEFAULT_MIN_REFRESH_AGE)
            ),
            devices=dict(data.get(CONF_DEVICES) or {}),
        )

    @property
    def concurrency_width(self) -> int:
        """Return the number of calls the request queue may run at once."""
        return max(1, self.max_concurrent) if self.concurrent else 1

    def device_config(self, key: str, default: Any = None) -> Any:  # noqa: ANN401
        """Look up a device override by dotted key.

        ``"087610000434.display"`` reads ``devices["087610000434"]["display"]``.
        A flat key containing the dot is accepted as well.
        """
        if key in self.devices:
            return self.devices[key]
        node: Any = self.devices
        for part in key.split("."):
            if not isinstance(node, dict):
                return default
            node = node.get(part, _MISSING)
            if node is _MISSING:
                return default
        return node

"""Client configuration for pyfloorplan."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any

from pyfloorplan._constants import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_QUEUE_SIZE,
    DEFAULT_RECONNECT_DELAY,
    DEFAULT_SNAPSHOT_TIMEOUT,
)
from pyfloorplan.exceptions import FloorplanConfigError


def _parse_mapping(value: str) -> dict[str, str]:
    """Parse ``"light.a=lamp,switch.b=fan"`` into a dict."""
    mapping: dict[str, str] = {}
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        key, sep, target = item.partition("=")
        if not sep or not key.strip() or not target.strip():
            raise FloorplanConfigError(f"Invalid mapping entry {item!r}, expected entity_id=element_id")
        mapping[key.strip()] = target.strip()
    return mapping


def _parse_domains(value: str | Iterable[str] | None) -> frozenset[str] | None:
    if value is None:
        return None
    items = value.split(",") if isinstance(value, str) else value
    domains = frozenset(item.strip() for item in items if item and item.strip())
    return domains or None


def _check_positive(name: str, value: Any, kinds: tuple[type, ...]) -> None:
    if isinstance(value, bool) or not isinstance(value, kinds):
        raise FloorplanConfigError(f"{name} must be a number, got {value!r}")
    if value <= 0:
        raise FloorplanConfigError(f"{name} must be positive, got {value!r}")


@dataclasses.dataclass(frozen=True)
class FloorplanConfig:
    """Engine configuration.

    Parameters
    ----------
    url : str
        Home Assistant base URL, e.g. ``"http://homeassistant.local:8123"``.
    token : str
        Long-lived access token sent as a bearer credential.
    mapping : Mapping[str, str]
        Alias table from entity id to floorplan element id. Entities without
        an entry use their own id. Stored read-only.
    floorplan : str or None
        Path to the SVG floorplan (used by the SVG renderer).
    custom_css : str or None
        Path to a stylesheet that replaces the bundled one.
    domains : frozenset[str] or None
        Only track entities in these domains (``"light"``, ``"switch"`` ...).
        ``None`` tracks everything.
    reconnect_delay : float
        Seconds to wait between stream attempts.
    snapshot_timeout : float
        Upper bound in seconds for one snapshot request.
    connect_timeout : float
        Upper bound in seconds for establishing the event stream. The stream
        itself has no read deadline.
    queue_size : int
        Capacity of the update queue between network and renderer.
    """

    url: str
    token: str = dataclasses.field(repr=False)
    mapping: Mapping[str, str] = dataclasses.field(default_factory=dict)
    floorplan: str | None = None
    custom_css: str | None = None
    domains: frozenset[str] | None = None
    reconnect_delay: float = DEFAULT_RECONNECT_DELAY
    snapshot_timeout: float = DEFAULT_SNAPSHOT_TIMEOUT
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    queue_size: int = DEFAULT_QUEUE_SIZE

    def __post_init__(self) -> None:
        for name in ("url", "token"):
            if not isinstance(getattr(self, name), str):
                raise FloorplanConfigError(f"{name} must be a string, got {type(getattr(self, name)).__name__}")
        url = self.url.strip()
        if not url.startswith(("http://", "https://")):
            raise FloorplanConfigError(f"url must be an http(s) URL, got {self.url!r}")
        if not self.token.strip():
            raise FloorplanConfigError("token must be non-empty")
        for name in ("reconnect_delay", "snapshot_timeout", "connect_timeout"):
            _check_positive(name, getattr(self, name), (int, float))
        _check_positive("queue_size", self.queue_size, (int,))

        object.__setattr__(self, "url", url.rstrip("/"))
        object.__setattr__(self, "token", self.token.strip())
        object.__setattr__(self, "mapping", MappingProxyType(dict(self.mapping)))
        object.__setattr__(self, "domains", _parse_domains(self.domains))

    def endpoint_url(self, path: str) -> str:
        """Absolute URL for an API *path* such as ``"api/states"``."""
        return f"{self.url}/{path.lstrip('/')}"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], **overrides: Any) -> FloorplanConfig:
        """Create configuration from a parsed module config block.

        Accepts the keys used by the looking-glass module config
        (``url``, ``token``, ``floorplan``, ``customCss``, ``mapping``) as
        well as the snake_case names of every other field.
        """
        field_names = {f.name for f in dataclasses.fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = "custom_css" if key == "customCss" else key
            if name not in field_names:
                raise FloorplanConfigError(f"Unknown configuration key {key!r}")
            kwargs[name] = value

        mapping = kwargs.get("mapping")
        if mapping is not None and not isinstance(mapping, Mapping):
            raise FloorplanConfigError("mapping must be a table of entity_id: element_id")
        if mapping is None:
            kwargs.pop("mapping", None)

        kwargs.update(overrides)
        try:
            return cls(**kwargs)
        except TypeError as exc:
            raise FloorplanConfigError(f"Incomplete configuration: {exc}") from exc

    @classmethod
    def from_env(cls, **overrides: Any) -> FloorplanConfig:
        """Create configuration from environment variables.

        Reads ``FLOORPLAN_URL``, ``FLOORPLAN_TOKEN`` and optional
        ``FLOORPLAN_*`` variables. Explicit keyword arguments override
        environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        FloorplanConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "FLOORPLAN_URL": "url",
            "FLOORPLAN_TOKEN": "token",
            "FLOORPLAN_FLOORPLAN": "floorplan",
            "FLOORPLAN_CUSTOM_CSS": "custom_css",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        mapping_env = env.get("FLOORPLAN_MAPPING")
        if mapping_env is not None and "mapping" not in overrides:
            config_kwargs["mapping"] = _parse_mapping(mapping_env)

        domains_env = env.get("FLOORPLAN_DOMAINS")
        if domains_env is not None and "domains" not in overrides:
            config_kwargs["domains"] = _parse_domains(domains_env)

        # numeric settings, handled separately
        try:
            delay_env = env.get("FLOORPLAN_RECONNECT_DELAY")
            if delay_env is not None and "reconnect_delay" not in overrides:
                config_kwargs["reconnect_delay"] = float(delay_env)

            timeout_env = env.get("FLOORPLAN_SNAPSHOT_TIMEOUT")
            if timeout_env is not None and "snapshot_timeout" not in overrides:
                config_kwargs["snapshot_timeout"] = float(timeout_env)

            queue_env = env.get("FLOORPLAN_QUEUE_SIZE")
            if queue_env is not None and "queue_size" not in overrides:
                config_kwargs["queue_size"] = int(queue_env)
        except ValueError as exc:
            raise FloorplanConfigError(f"Invalid numeric setting: {exc}") from exc

        config_kwargs.update(overrides)
        if "url" not in config_kwargs or "token" not in config_kwargs:
            raise FloorplanConfigError("FLOORPLAN_URL and FLOORPLAN_TOKEN must be set")

        return cls(**config_kwargs)

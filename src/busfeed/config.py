"""Runtime configuration for busfeed."""

from __future__ import annotations

import dataclasses
import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from busfeed._constants import DEFAULT_REQUEST_TIMEOUT, DEFAULT_SOURCE, DEFAULT_SWEEP_CONCURRENCY
from busfeed.exceptions import BusFeedConfigError
from busfeed.schedule import cron_trigger


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _coerce_number(name: str, value: Any, kind: type[float] | type[int]) -> Any:
    if value is None:
        return None
    if isinstance(value, bool):
        raise BusFeedConfigError(f"{name} must be a number, got {value!r}")
    try:
        return kind(value)
    except (TypeError, ValueError) as exc:
        raise BusFeedConfigError(f"{name} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class FieldKeys:
    """Names of the structured-feed fields that describe one bus.

    A single spreadsheet row may describe several buses side by side,
    so the config carries one ``FieldKeys`` per bus column group.
    """

    name: str
    location: str
    departure: str | None = None


@dataclasses.dataclass(frozen=True)
class ColumnGroup:
    """Zero-based cell offsets of one bus inside a table row."""

    name: int
    location: int
    departure: int | None = None


@dataclasses.dataclass(frozen=True)
class TableLayout:
    """Shape of the HTML table fallback feed."""

    header_rows: int = 1
    columns: tuple[ColumnGroup, ...] = (ColumnGroup(name=0, location=1, departure=2),)


def _parse_keys(raw: Any) -> tuple[FieldKeys, ...]:
    if isinstance(raw, str):
        # Compact env form: "name:location[:departure],name2:location2"
        groups: list[FieldKeys] = []
        for chunk in raw.split(","):
            parts = [part.strip() for part in chunk.split(":")]
            if len(parts) < 2 or not parts[0] or not parts[1]:
                raise BusFeedConfigError(f"invalid key group {chunk!r}; expected name:location[:departure]")
            groups.append(FieldKeys(name=parts[0], location=parts[1], departure=parts[2] if len(parts) > 2 else None))
        return tuple(groups)
    if not isinstance(raw, list):
        raise BusFeedConfigError("keys must be a list of {name, location, departure} objects")
    try:
        return tuple(
            FieldKeys(name=str(item["name"]), location=str(item["location"]), departure=item.get("departure"))
            for item in raw
        )
    except (KeyError, TypeError, AttributeError) as exc:
        raise BusFeedConfigError(f"invalid keys entry: {exc}") from exc


def _parse_table(raw: Any) -> TableLayout:
    if not isinstance(raw, dict):
        raise BusFeedConfigError("table must be an object with headerRows and columns")
    try:
        columns = tuple(
            ColumnGroup(
                name=int(item["name"]),
                location=int(item["location"]),
                departure=None if item.get("departure") is None else int(item["departure"]),
            )
            for item in raw.get("columns", [])
        )
        header_rows = int(raw.get("headerRows", TableLayout.header_rows))
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise BusFeedConfigError(f"invalid table layout: {exc}") from exc
    if not columns:
        return TableLayout(header_rows=header_rows)
    return TableLayout(header_rows=header_rows, columns=columns)



def _parse_cron(raw: Any) -> tuple[str, ...]:
    if isinstance(raw, str):
        return tuple(rule.strip() for rule in raw.split(";") if rule.strip())
    if not isinstance(raw, list) or not all(isinstance(rule, str) for rule in raw):
        raise BusFeedConfigError("cron must be a list of crontab rules")
    return tuple(raw)


@dataclasses.dataclass(frozen=True)
class BusFeedConfig:
    """Service configuration.

    Parameters
    ----------
    api_url : str
        Base URL of the remote bus service (no trailing slash).
    feed_url : str or None
        URL of the structured (JSON) spreadsheet feed.
    table_url : str or None
        URL of the HTML table fallback feed.
    keys : tuple[FieldKeys, ...]
        Field-key triples used to pull buses out of structured feed entries.
    table : TableLayout
        Header row count and column offsets of the HTML table feed.
    data_path : Path
        Location of the persisted bus cache.
    dry_run : bool
        Compute every decision but never send a remote mutation.
    log : bool
        Log per-bus decisions at INFO level.
    token : str or None
        Bearer token for remote mutations.
    time_zone : str
        IANA time zone used to compute next-midnight invalidate times.
    source : str
        Tag sent with location updates.
    sync_interval : float or None
        Seconds between reconciliation passes in periodic mode.
    save_interval : float or None
        Seconds between cache saves in periodic mode. When neither this nor
        ``save_cron`` is set the cache is saved after every pass.
    cron : tuple[str, ...]
        Crontab rules that trigger reconciliation passes. Combined with
        ``sync_interval`` when both are set.
    save_cron : str or None
        Crontab rule for cache saves in periodic mode.
    single_run : bool
        Run one pass, save, and exit.
    sweep_concurrency : int
        Maximum concurrent availability sweeps.
    request_timeout : float
        Total HTTP timeout per request in seconds.
    """

    api_url: str
    feed_url: str | None = None
    table_url: str | None = None
    keys: tuple[FieldKeys, ...] = ()
    table: TableLayout = dataclasses.field(default_factory=TableLayout)
    data_path: Path = Path("data.json")
    dry_run: bool = False
    log: bool = False
    token: str | None = None
    time_zone: str = "UTC"
    source: str = DEFAULT_SOURCE
    sync_interval: float | None = None
    save_interval: float | None = None
    cron: tuple[str, ...] = ()
    save_cron: str | None = None
    single_run: bool = False
    sweep_concurrency: int = DEFAULT_SWEEP_CONCURRENCY
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    def __post_init__(self) -> None:
        if not self.api_url:
            raise BusFeedConfigError("api_url is required")
        if not self.feed_url and not self.table_url:
            raise BusFeedConfigError("at least one of feed_url or table_url is required")
        if self.feed_url and not self.keys:
            raise BusFeedConfigError("keys are required when feed_url is set")
        for name in ("sync_interval", "save_interval", "request_timeout"):
            value = _coerce_number(name, getattr(self, name), float)
            if value is not None and value <= 0:
                raise BusFeedConfigError(f"{name} must be positive")
            object.__setattr__(self, name, value)
        object.__setattr__(self, "sweep_concurrency", _coerce_number("sweep_concurrency", self.sweep_concurrency, int))
        if self.sweep_concurrency is None or self.sweep_concurrency < 1:
            raise BusFeedConfigError("sweep_concurrency must be at least 1")
        try:
            ZoneInfo(self.time_zone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise BusFeedConfigError(f"unknown time zone {self.time_zone!r}") from exc
        if self.save_cron is not None and not isinstance(self.save_cron, str):
            raise BusFeedConfigError("save_cron must be a crontab rule")
        for rule in (*self.cron, *([self.save_cron] if self.save_cron else [])):
            cron_trigger(rule, self.zone)
        object.__setattr__(self, "api_url", self.api_url.rstrip("/"))
        object.__setattr__(self, "data_path", Path(self.data_path))

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.time_zone)

    @property
    def periodic(self) -> bool:
        """Whether passes are scheduled by interval or cron rule."""
        return bool(self.sync_interval or self.cron)

    @classmethod
    def from_env(cls, **overrides: Any) -> BusFeedConfig:
        """Create configuration from ``BUSFEED_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        config_kwargs = _env_kwargs(os.environ)
        config_kwargs.update(overrides)
        return cls(**config_kwargs)

    @classmethod
    def from_file(cls, path: str | os.PathLike[str], **overrides: Any) -> BusFeedConfig:
        """Create configuration from a JSON file.

        Keys use the camelCase names of ``config.json``
        (``apiURL``, ``feedURL``, ``dataPath``, ``dryRun`` ...). A relative
        ``dataPath`` is resolved against the file's directory. Environment
        variables override file values; keyword arguments override both.
        """
        config_path = Path(path)
        try:
            raw = json.loads(config_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise BusFeedConfigError(f"could not read config file {config_path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise BusFeedConfigError(f"config file {config_path} must contain a JSON object")

        config_kwargs: dict[str, Any] = {}
        for file_key, field_name in _FILE_CONFIG_MAP.items():
            if file_key in raw:
                config_kwargs[field_name] = raw[file_key]
        if "keys" in raw:
            config_kwargs["keys"] = _parse_keys(raw["keys"])
        if "table" in raw:
            config_kwargs["table"] = _parse_table(raw["table"])
        if "cron" in raw:
            config_kwargs["cron"] = _parse_cron(raw["cron"])
        if "data_path" in config_kwargs:
            data_path = Path(config_kwargs["data_path"])
            if not data_path.is_absolute():
                data_path = config_path.parent / data_path
            config_kwargs["data_path"] = data_path

        config_kwargs.update(_env_kwargs(os.environ))
        config_kwargs.update(overrides)
        return cls(**config_kwargs)


_FILE_CONFIG_MAP = {
    "apiURL": "api_url",
    "feedURL": "feed_url",
    "tableURL": "table_url",
    "dataPath": "data_path",
    "dryRun": "dry_run",
    "log": "log",
    "token": "token",
    "timeZone": "time_zone",
    "source": "source",
    "syncInterval": "sync_interval",
    "saveInterval": "save_interval",
    "saveDataCron": "save_cron",
    "singleRun": "single_run",
    "sweepConcurrency": "sweep_concurrency",
    "requestTimeout": "request_timeout",
}


def _env_kwargs(env: Mapping[str, str]) -> dict[str, Any]:
    _ENV_CONFIG_MAP = {
        "BUSFEED_API_URL": "api_url",
        "BUSFEED_FEED_URL": "feed_url",
        "BUSFEED_TABLE_URL": "table_url",
        "BUSFEED_DATA_PATH": "data_path",
        "BUSFEED_TOKEN": "token",
        "BUSFEED_TIME_ZONE": "time_zone",
        "BUSFEED_SOURCE": "source",
        "BUSFEED_SAVE_CRON": "save_cron",
    }
    config_kwargs: dict[str, Any] = {}
    for env_key, field_name in _ENV_CONFIG_MAP.items():
        val = env.get(env_key)
        if val is not None:
            config_kwargs[field_name] = val

    keys_env = env.get("BUSFEED_KEYS")
    if keys_env is not None:
        config_kwargs["keys"] = _parse_keys(keys_env)

    cron_env = env.get("BUSFEED_CRON")
    if cron_env is not None:
        config_kwargs["cron"] = _parse_cron(cron_env)

    for env_key, field_name in (("BUSFEED_DRY_RUN", "dry_run"), ("BUSFEED_LOG", "log")):
        val = env.get(env_key)
        if val is not None:
            config_kwargs[field_name] = _env_bool(val, False)

    # Numeric values are checked in BusFeedConfig.__post_init__.
    for env_key, field_name in (
        ("BUSFEED_SYNC_INTERVAL", "sync_interval"),
        ("BUSFEED_SAVE_INTERVAL", "save_interval"),
        ("BUSFEED_REQUEST_TIMEOUT", "request_timeout"),
        ("BUSFEED_SWEEP_CONCURRENCY", "sweep_concurrency"),
    ):
        val = env.get(env_key)
        if val is not None:
            config_kwargs[field_name] = val

    return config_kwargs

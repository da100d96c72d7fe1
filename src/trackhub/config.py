"""Hub configuration.

Every setting is read from environment variables (the names match the ones
the hub has always used in its ``.env`` files). Durations arrive in
milliseconds and are stored in seconds.
"""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from trackhub._constants import DEFAULT_TIME_ZONE
from trackhub.exceptions import ConfigError

_REQUIRED_ENV_VARS: tuple[str, ...] = (
    "SANKHYA_URL",
    "SANKHYA_USER",
    "SANKHYA_PASSWORD",
    "JOB_RETRY_DELAY_MS",
    "REQUEST_TIMEOUT_MS",
)

_DEFAULT_INTERVAL_MS = 300_000


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_seconds(env: Mapping[str, str], key: str, default_ms: float | None) -> float | None:
    """Read a millisecond env var and return seconds."""
    raw = env.get(key)
    if raw is None or not raw.strip():
        return None if default_ms is None else default_ms / 1000.0
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number of milliseconds, got {raw!r}") from exc
    if value < 0:
        raise ConfigError(f"{key} must not be negative, got {raw!r}")
    return value / 1000.0


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from exc


def _env_str(env: Mapping[str, str], key: str, default: str | None = None) -> str | None:
    value = env.get(key)
    if value is None or not value.strip():
        return default
    return value.strip()


@dataclasses.dataclass(frozen=True)
class ErpConfig:
    """Sankhya access.

    Parameters
    ----------
    url : str
        Primary Sankhya base URL.
    username, password : str
        Sankhya API user.
    contingency_url : str or None
        Secondary base URL used after repeated primary failures.
    failover_threshold : int
        Consecutive transport failures on the primary before switching to
        the contingency URL.
    """

    url: str
    username: str
    password: str
    contingency_url: str | None = None
    failover_threshold: int = 2

    def __post_init__(self) -> None:
        if self.failover_threshold < 1:
            raise ConfigError(f"failover_threshold must be >= 1, got {self.failover_threshold}")


@dataclasses.dataclass(frozen=True, kw_only=True)
class SourceConfig:
    """Fields shared by every tracking provider.

    ``fabricante_id`` is the ERP manufacturer key that tells apart tags of
    different providers living in the same ERP table.
    """

    name: str
    enabled: bool
    url: str | None
    interval: float = _DEFAULT_INTERVAL_MS / 1000.0
    fabricante_id: str
    token_expiry_margin: float = 0.0


@dataclasses.dataclass(frozen=True, kw_only=True)
class AtualcargoConfig(SourceConfig):
    """Atualcargo issues opaque tokens without expiry; ``token_ttl`` bounds them."""

    api_key: str | None = None
    username: str | None = None
    password: str | None = None
    token_ttl: float = 270.0


@dataclasses.dataclass(frozen=True, kw_only=True)
class SitraxConfig(SourceConfig):
    """Sitrax sends its credentials with every position request."""

    login: str | None = None
    cgru_chave: str | None = None
    cusu_chave: str | None = None


@dataclasses.dataclass(frozen=True, kw_only=True)
class PositronConfig(SourceConfig):
    """Positron returns a server-side token expiry on login."""

    login: str | None = None
    password: str | None = None


@dataclasses.dataclass(frozen=True)
class HubConfig:
    """Top-level configuration.

    Parameters
    ----------
    erp : ErpConfig
        Sankhya access.
    atualcargo, sitrax, positron : SourceConfig
        Per-provider settings.
    request_timeout : float
        Seconds allowed for auth and ERP calls.
    positions_timeout : float
        Seconds allowed for bulk position fetches, which are slow.
    job_retry_delay : float
        Seconds a failed cycle waits before handing control back to the
        scheduler.
    login_settle_delay : float
        Seconds to wait after a provider login before the first call.
    time_zone : str
        IANA zone the ERP stores timestamps in.
    log_level : str
        Root log level.
    log_dir : str or None
        Directory for rotating log files; console only when ``None``.
    """

    erp: ErpConfig
    atualcargo: AtualcargoConfig
    sitrax: SitraxConfig
    positron: PositronConfig
    request_timeout: float
    job_retry_delay: float
    positions_timeout: float = 150.0
    login_settle_delay: float = 0.0
    time_zone: str = DEFAULT_TIME_ZONE
    log_level: str = "INFO"
    log_dir: str | None = None

    @property
    def sources(self) -> tuple[SourceConfig, ...]:
        return (self.atualcargo, self.sitrax, self.positron)

    @property
    def enabled_sources(self) -> tuple[SourceConfig, ...]:
        return tuple(source for source in self.sources if source.enabled)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> HubConfig:
        """Create configuration from environment variables.

        Parameters
        ----------
        environ
            Mapping to read instead of ``os.environ``.
        **overrides
            Explicit field values that take precedence over env vars.

        Raises
        ------
        ConfigError
            If a required variable is missing or a value is malformed.
        """
        env = os.environ if environ is None else environ

        missing = [key for key in _REQUIRED_ENV_VARS if not (env.get(key) or "").strip()]
        if missing:
            raise ConfigError(f"Missing required environment variable(s): {', '.join(missing)}")

        erp = ErpConfig(
            url=env["SANKHYA_URL"].strip(),
            username=env["SANKHYA_USER"],
            password=env["SANKHYA_PASSWORD"],
            contingency_url=_env_str(env, "SANKHYA_CONTINGENCY_URL"),
            failover_threshold=_env_int(env, "SANKHYA_RETRY_LIMIT_BEFORE_SWAP", 2),
        )

        atualcargo_url = _env_str(env, "ATUALCARGO_URL")
        atualcargo_key = _env_str(env, "ATUALCARGO_API_KEY")
        atualcargo = AtualcargoConfig(
            name="Atualcargo",
            enabled=_env_bool(env.get("ATUALCARGO_ENABLED"), bool(atualcargo_url and atualcargo_key)),
            url=atualcargo_url,
            interval=_env_seconds(env, "JOB_INTERVAL_ATUALCARGO", _DEFAULT_INTERVAL_MS),
            fabricante_id=_env_str(env, "SANKHYA_ISCA_FABRICANTE_ID_ATUALCARGO", "2"),
            token_expiry_margin=_env_seconds(env, "ATUALCARGO_TOKEN_EXPIRY_MARGIN_MS", 0),
            api_key=atualcargo_key,
            username=_env_str(env, "ATUALCARGO_USERNAME"),
            password=env.get("ATUALCARGO_PASSWORD"),
            token_ttl=_env_seconds(env, "ATUALCARGO_TOKEN_EXPIRATION_MS", 270_000),
        )

        sitrax_url = _env_str(env, "SITRAX_URL")
        sitrax_login = _env_str(env, "SITRAX_LOGIN")
        sitrax = SitraxConfig(
            name="Sitrax",
            enabled=_env_bool(env.get("SITRAX_ENABLED"), bool(sitrax_url and sitrax_login)),
            url=sitrax_url,
            interval=_env_seconds(env, "JOB_INTERVAL_SITRAX", _DEFAULT_INTERVAL_MS),
            fabricante_id=_env_str(env, "SANKHYA_ISCA_FABRICANTE_ID_SITRAX", "3"),
            login=sitrax_login,
            cgru_chave=_env_str(env, "SITRAX_CGRUCHAVE"),
            cusu_chave=_env_str(env, "SITRAX_CUSUCHAVE"),
        )

        positron_url = _env_str(env, "POSITRON_URL")
        positron_login = _env_str(env, "POSITRON_LOGIN")
        positron = PositronConfig(
            name="Positron",
            enabled=_env_bool(env.get("POSITRON_ENABLED"), bool(positron_url and positron_login)),
            url=positron_url,
            interval=_env_seconds(env, "JOB_INTERVAL_POSITRON", _DEFAULT_INTERVAL_MS),
            fabricante_id=_env_str(env, "SANKHYA_ISCA_FABRICANTE_ID_POSITRON", "4"),
            token_expiry_margin=_env_seconds(env, "POSITRON_TOKEN_EXPIRY_MARGIN_MS", 30_000),
            login=positron_login,
            password=env.get("POSITRON_PASSWORD"),
        )

        config_kwargs: dict[str, Any] = {
            "erp": erp,
            "atualcargo": atualcargo,
            "sitrax": sitrax,
            "positron": positron,
            "request_timeout": _env_seconds(env, "REQUEST_TIMEOUT_MS", None),
            "job_retry_delay": _env_seconds(env, "JOB_RETRY_DELAY_MS", None),
            "positions_timeout": _env_seconds(env, "POSITIONS_TIMEOUT_MS", 150_000),
            "login_settle_delay": _env_seconds(env, "LOGIN_SETTLE_DELAY_MS", 0),
            "time_zone": _env_str(env, "HUB_TIME_ZONE", DEFAULT_TIME_ZONE),
            "log_level": _env_str(env, "LOG_LEVEL", "INFO").upper(),
            "log_dir": _env_str(env, "LOG_DIR"),
        }
        config_kwargs.update(overrides)

        config = cls(**config_kwargs)
        config.validate()
        return config

    def validate(self) -> None:
        """Check that every enabled source has what it needs to run.

        Raises
        ------
        ConfigError
            On the first enabled source missing a required setting.
        """
        required: dict[str, tuple[str, ...]] = {
            "Atualcargo": ("url", "api_key", "username", "password"),
            "Sitrax": ("url", "login", "cgru_chave", "cusu_chave"),
            "Positron": ("url", "login", "password"),
        }
        for source in self.enabled_sources:
            for field_name in required.get(source.name, ("url",)):
                if not getattr(source, field_name, None):
                    raise ConfigError(f"{source.name} is enabled but '{field_name}' is not configured")
            if source.interval <= 0:
                raise ConfigError(f"{source.name} poll interval must be positive")

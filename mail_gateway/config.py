"""Configuration helpers."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional

from .exceptions import ConfigurationError


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = ".config"
DEFAULT_API_BASE = "https://api.mailgun.net/v3"

REQUIRED_FIELDS = ("domain", "privateAPIKey", "publicValidationKey", "toAddress")


class BaseConfig:
    """Default Flask settings that can be overridden per environment."""

    # Provider configuration file, tried before the MG* environment variables.
    CONFIG_PATH = os.environ.get("CONFIG_PATH", DEFAULT_CONFIG_PATH)

    # Socket timeouts (seconds) applied by the serving layer.
    READ_TIMEOUT = 15
    WRITE_TIMEOUT = 15
    IDLE_TIMEOUT = 60

    # How long in-flight requests may run after an interrupt.
    SHUTDOWN_GRACE_PERIOD = 10

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestingConfig(BaseConfig):
    TESTING = True
    CONFIG_PATH = "/nonexistent/mail-gateway.config"


@dataclass(frozen=True)
class MailConfig:
    """Provider credentials and routing, immutable once loaded."""

    domain: str
    # Keys stay out of logs and tracebacks.
    private_api_key: str = field(repr=False)
    public_validation_key: str = field(repr=False)
    to_address: str
    referers: tuple[str, ...] = ()
    api_base: str = DEFAULT_API_BASE

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "MailConfig":
        """Build from the JSON field names used by the configuration file."""
        missing = [key for key in REQUIRED_FIELDS if not data.get(key)]
        if missing:
            raise ConfigurationError(
                f"missing configuration fields: {', '.join(missing)}"
            )

        referers = data.get("referers") or []
        if isinstance(referers, str):
            referers = parse_referers(referers)
        elif not isinstance(referers, list) or not all(
            isinstance(item, str) for item in referers
        ):
            raise ConfigurationError("referers must be a list of strings")

        return cls(
            domain=str(data["domain"]),
            private_api_key=str(data["privateAPIKey"]),
            public_validation_key=str(data["publicValidationKey"]),
            to_address=str(data["toAddress"]),
            referers=tuple(r.strip() for r in referers if r.strip()),
            api_base=str(data.get("apiBase") or DEFAULT_API_BASE).rstrip("/"),
        )


def parse_referers(value: str) -> list[str]:
    """Split a comma-separated referer list, dropping blank entries."""
    return [item.strip() for item in value.split(",") if item.strip()]


def load_config_from_file(path: str | os.PathLike) -> Optional[MailConfig]:
    """Read a JSON configuration file; ``None`` if absent or unusable."""
    try:
        with open(path, "r", encoding="utf-8") as handle:
            raw = handle.read()
    except FileNotFoundError:
        logger.info("no configuration file at %s", path)
        return None
    except OSError as exc:
        logger.warning("could not read configuration file %s: %s", path, exc)
        return None

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("configuration file %s is not valid JSON: %s", path, exc)
        return None
    if not isinstance(data, dict):
        logger.warning("configuration file %s must hold a JSON object", path)
        return None

    try:
        config = MailConfig.from_mapping(data)
    except ConfigurationError as exc:
        logger.error("configuration file %s rejected: %s", path, exc)
        return None

    logger.info("loaded configuration from %s", path)
    return config


ENV_FIELDS = {
    "domain": "MGDOMAIN",
    "privateAPIKey": "MGPRIVATEKEY",
    "publicValidationKey": "MGPUBLICKEY",
    "toAddress": "TOADDRESS",
}


def load_config_from_env(
    environ: Mapping[str, str] | None = None,
) -> Optional[MailConfig]:
    """Read the MG* environment variables; ``None`` if any is empty."""
    environ = os.environ if environ is None else environ

    missing = [name for name in ENV_FIELDS.values() if not environ.get(name)]
    if missing:
        logger.error(
            "configuration environment variables not set: %s", ", ".join(missing)
        )
        return None

    data: dict[str, Any] = {key: environ[name] for key, name in ENV_FIELDS.items()}
    data["referers"] = parse_referers(environ.get("REFERERS", ""))
    data["apiBase"] = environ.get("MGAPIBASE", "")

    config = MailConfig.from_mapping(data)
    logger.info("loaded configuration from environment")
    return config


Loader = Callable[[], Optional[MailConfig]]


def config_loaders(
    path: str | os.PathLike = DEFAULT_CONFIG_PATH,
    environ: Mapping[str, str] | None = None,
) -> list[tuple[str, Loader]]:
    """Loader attempts in priority order, labelled by source."""
    return [
        (f"file {os.fspath(path)}", lambda: load_config_from_file(path)),
        ("environment", lambda: load_config_from_env(environ)),
    ]


def first_config(
    loaders: Iterable[tuple[str, Loader]],
) -> tuple[Optional[str], Optional[MailConfig]]:
    for source, loader in loaders:
        config = loader()
        if config is not None:
            return source, config
    return None, None


def load_config(
    path: str | os.PathLike = DEFAULT_CONFIG_PATH,
    environ: Mapping[str, str] | None = None,
) -> Optional[MailConfig]:
    """Try the configuration file, then the environment.

    Returns ``None`` when neither source yields a complete configuration; the
    gateway then answers every mail request with 500.
    """
    _, config = first_config(config_loaders(path, environ))
    if config is None:
        logger.error("no usable configuration, mail sending disabled")
    return config

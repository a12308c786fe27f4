"""Runtime configuration for fundledger.

Configuration is an explicit value passed to each service at construction.
``load_config`` builds it from ``FUNDLEDGER_*`` environment variables, with
keyword arguments taking precedence.
"""

import os
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

from fundledger.domain.errors import ValidationError

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class LedgerConfig:
    """Settings shared by the ledger services and the CLI."""

    database_path: Optional[str] = None
    default_page_size: int = 20
    max_page_size: int = 100
    journal_prefix: str = "JE"
    sequence_retry_limit: int = 3
    log_level: str = "WARNING"
    log_json: bool = False

    def __post_init__(self) -> None:
        if self.default_page_size < 1:
            raise ValidationError("default_page_size must be at least 1")
        if self.max_page_size < self.default_page_size:
            raise ValidationError("max_page_size must not be smaller than default_page_size")
        if self.sequence_retry_limit < 1:
            raise ValidationError("sequence_retry_limit must be at least 1")
        if not self.journal_prefix or "/" in self.journal_prefix:
            raise ValidationError("journal_prefix must be non-empty and must not contain '/'")


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got '{value}'")


def _parse_bool(name: str, value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ValidationError(f"{name} must be a boolean, got '{value}'")


def load_config(environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> LedgerConfig:
    """Build a LedgerConfig from the environment.

    Args:
        environ: Mapping to read variables from (defaults to os.environ)
        **overrides: Explicit field values; ``None`` values are ignored

    Returns:
        LedgerConfig instance

    Raises:
        ValidationError: If a variable has an invalid value
    """
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}

    if env.get("FUNDLEDGER_DB_PATH"):
        values["database_path"] = env["FUNDLEDGER_DB_PATH"]
    if env.get("FUNDLEDGER_PAGE_SIZE"):
        values["default_page_size"] = _parse_int("FUNDLEDGER_PAGE_SIZE", env["FUNDLEDGER_PAGE_SIZE"])
    if env.get("FUNDLEDGER_MAX_PAGE_SIZE"):
        values["max_page_size"] = _parse_int(
            "FUNDLEDGER_MAX_PAGE_SIZE", env["FUNDLEDGER_MAX_PAGE_SIZE"]
        )
    if env.get("FUNDLEDGER_JOURNAL_PREFIX"):
        values["journal_prefix"] = env["FUNDLEDGER_JOURNAL_PREFIX"]
    if env.get("FUNDLEDGER_SEQUENCE_RETRIES"):
        values["sequence_retry_limit"] = _parse_int(
            "FUNDLEDGER_SEQUENCE_RETRIES", env["FUNDLEDGER_SEQUENCE_RETRIES"]
        )
    if env.get("FUNDLEDGER_LOG_LEVEL"):
        values["log_level"] = env["FUNDLEDGER_LOG_LEVEL"].upper()
    if "FUNDLEDGER_LOG_JSON" in env:
        values["log_json"] = _parse_bool("FUNDLEDGER_LOG_JSON", env["FUNDLEDGER_LOG_JSON"])

    config = LedgerConfig(**values)
    explicit = {key: value for key, value in overrides.items() if value is not None}
    if explicit:
        config = replace(config, **explicit)
    return config

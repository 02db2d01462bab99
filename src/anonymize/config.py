"""
Rule file loading.

The rule file is TOML::

    seed = "s1"
    production_patterns = ["db-main"]

    [[rules]]
    table = "app.users"
    columns = { email = "fake_email", name = "fake_name" }

    [[rules]]
    table = "app.audit_logs"
    skip = true

Strategy names are validated here, so a typo fails the run before anything is
exported.
"""

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigurationError
from .rules import AnonymizeRule, RuleIndex, parse_table_name

logger = logging.getLogger(__name__)


DEFAULT_CONFIG_PATH = Path("anonymize.toml")

SEED_ENV_VAR = "ANONYMIZE_SEED"
CONFIG_ENV_VAR = "ANONYMIZE_CONFIG"

BUILTIN_PRODUCTION_PATTERNS = ("prod", "production", "primary")
CLOUD_HOST_PATTERNS = (
    ".rds.amazonaws.com",
    ".postgres.database.azure.com",
    ".cloudsql.google.com",
)


@dataclass
class AnonymizeConfig:
    """Validated contents of a rule file."""

    seed: str | None = None
    rules: list[AnonymizeRule] = field(default_factory=list)
    production_patterns: list[str] = field(default_factory=list)
    source: Path | None = None

    def rule_index(self) -> RuleIndex:
        return RuleIndex(self.rules)


def load_config(path: str | Path | None = None) -> AnonymizeConfig:
    """
    Load and validate a rule file.

    Args:
        path: Rule file to read. When omitted, ``./anonymize.toml`` is used if
            it exists and an empty configuration is returned otherwise.

    Returns:
        Parsed configuration

    Raises:
        ConfigurationError: If an explicit path is missing, the TOML is
            malformed or a rule is invalid
    """
    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            logger.debug(f"No {DEFAULT_CONFIG_PATH} found, using empty rule set")
            return AnonymizeConfig()
        path = DEFAULT_CONFIG_PATH

    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Rule file not found: {path}")

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read rule file {path}: {e}") from e

    config = parse_config(data)
    config.source = path

    logger.info(
        f"Loaded {len(config.rules)} rules from {path}",
        extra={"rule_count": len(config.rules), "config_path": str(path)},
    )
    return config


def parse_config(data: dict[str, Any]) -> AnonymizeConfig:
    """
    Build a configuration from an already-parsed TOML document.

    Raises:
        ConfigurationError: On any invalid key or value
    """
    seed = data.get("seed")
    if seed is not None:
        seed = _validate_seed(seed)

    patterns = data.get("production_patterns", [])
    if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
        raise ConfigurationError("production_patterns must be a list of strings")

    raw_rules = data.get("rules", [])
    if not isinstance(raw_rules, list):
        raise ConfigurationError("rules must be an array of tables ([[rules]])")

    rules: list[AnonymizeRule] = []
    for position, raw in enumerate(raw_rules, start=1):
        rules.extend(_parse_rule(raw, position))

    return AnonymizeConfig(seed=seed, rules=rules, production_patterns=list(patterns))


def _parse_rule(raw: Any, position: int) -> list[AnonymizeRule]:
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Rule #{position} must be a table")

    table = raw.get("table")
    if not isinstance(table, str) or not table:
        raise ConfigurationError(f"Rule #{position} is missing a table name")

    schema, name = parse_table_name(table)
    if not schema or not name:
        raise ConfigurationError(f"Rule #{position} has an invalid table name: {table!r}")

    skip = raw.get("skip", False)
    if not isinstance(skip, bool):
        raise ConfigurationError("skip must be true or false", table=table)

    columns = raw.get("columns")
    if skip:
        if columns:
            logger.warning(f"Rule for {table} sets skip = true; its column rules are ignored")
        return [AnonymizeRule.skip_table(schema, name)]

    if not isinstance(columns, dict) or not columns:
        raise ConfigurationError("rule needs either skip = true or a columns table", table=table)

    rules = []
    for column, strategy in columns.items():
        if not isinstance(strategy, str):
            raise ConfigurationError(f"strategy for column {column!r} must be a string", table=table)
        try:
            rules.append(AnonymizeRule.column(schema, name, column, strategy))
        except ConfigurationError as e:
            raise ConfigurationError(f"column {column}: {e}", table=table) from e
    return rules


def _validate_seed(seed: Any) -> str:
    if not isinstance(seed, str):
        raise ConfigurationError("seed must be a string")
    if not seed:
        raise ConfigurationError("seed must not be empty")
    if "\x00" in seed:
        raise ConfigurationError("seed must not contain NUL characters")
    return seed


def resolve_seed(cli_seed: str | None, config: AnonymizeConfig) -> str:
    """
    Pick the seed for a run.

    Precedence: ``--seed`` flag, then ``ANONYMIZE_SEED``, then the rule file.
    An empty environment variable counts as unset; an empty ``--seed`` is
    rejected.

    Raises:
        ConfigurationError: If no source provides a seed, or the chosen one is
            invalid
    """
    for seed in (cli_seed, os.getenv(SEED_ENV_VAR) or None, config.seed):
        if seed is not None:
            return _validate_seed(seed)

    raise ConfigurationError(
        f"No anonymization seed provided. Use --seed, the {SEED_ENV_VAR} env var, "
        f"or 'seed' in {DEFAULT_CONFIG_PATH}"
    )


def url_matches_production_patterns(url: str, patterns: list[str] | None = None) -> bool:
    """
    Check whether a database URL looks like a production server.

    Matching is a case-insensitive substring test against the built-in words,
    the managed cloud host suffixes and any configured patterns. Used for a
    warning only.
    """
    lower = url.lower()

    if any(word in lower for word in BUILTIN_PRODUCTION_PATTERNS):
        return True
    if any(host in lower for host in CLOUD_HOST_PATTERNS):
        return True
    return any(pattern.lower() in lower for pattern in patterns or [] if pattern)

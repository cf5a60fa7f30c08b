"""
Configuration for the MySQL → SQLite translator.

Holds the type-mapping table, the function-mapping table, the canonical no-op
statement and the execution settings used by the schema installer. Defaults
live in code; a JSON file can override any top-level section:

    {
        "types": {"integer": ["int", "bigint"], "text": ["varchar"]},
        "functions": {"MONTH": {"strftime": "%m"}},
        "translation": {"noop_sql": "SELECT 1=1"},
        "execution": {"max_retries": 5}
    }

The loaded configuration is read-only; one instance can be shared by every
translator in the process.
"""

import copy
import json
import logging
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

FUNCTION_KINDS = ("strftime", "replace", "rename")


class TranslatorConfig:
    """
    Read-only configuration for SQLiteTranslator.
    Loads settings from a JSON config file layered over the defaults.
    """

    def __init__(self, config_path: str = None):
        self._config: Dict[str, Any] = {}
        self._load_defaults()

        if config_path:
            self._load_from_file(config_path)

        self._type_map = MappingProxyType(self._build_type_map())
        self._function_map = MappingProxyType(self._build_function_map())

    def _load_from_file(self, config_path: str) -> None:
        """Overlay the sections found in a JSON file on the defaults."""
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                overrides = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}. Using defaults.")
            return

        for section, values in overrides.items():
            if isinstance(values, dict) and isinstance(self._config.get(section), dict):
                self._config[section].update(values)
            else:
                self._config[section] = values
        logger.info(f"Loaded translator config from {config_path}")

    def _load_defaults(self) -> None:
        """Load default configuration values."""
        self._config = {
            "types": {
                "integer": [
                    "tinyint", "smallint", "mediumint", "int", "integer", "bigint",
                    "bit", "bool", "boolean", "year", "serial",
                ],
                "text": [
                    "char", "varchar", "nchar", "nvarchar", "tinytext", "text",
                    "mediumtext", "longtext", "enum", "set", "json",
                    "date", "datetime", "timestamp", "time",
                ],
                "real": [
                    "float", "double", "double precision", "real",
                    "decimal", "dec", "numeric", "fixed",
                ],
                "blob": [
                    "binary", "varbinary", "tinyblob", "blob", "mediumblob", "longblob",
                ],
            },
            "functions": {
                "YEAR": {"strftime": "%Y"},
                # Kept as observed in the MySQL-on-SQLite port; %M is minutes in SQLite.
                "MONTH": {"strftime": "%M"},
                "DAY": {"strftime": "%d"},
                "DAYOFMONTH": {"strftime": "%d"},
                "HOUR": {"strftime": "%H"},
                "MINUTE": {"strftime": "%M"},
                "SECOND": {"strftime": "%S"},
                "NOW": {"replace": "CURRENT_TIMESTAMP"},
                "CURRENT_TIMESTAMP": {"replace": "CURRENT_TIMESTAMP"},
                "UTC_TIMESTAMP": {"replace": "CURRENT_TIMESTAMP"},
                "CURDATE": {"replace": "CURRENT_DATE"},
                "CURTIME": {"replace": "CURRENT_TIME"},
                "RAND": {"rename": "RANDOM"},
                "LCASE": {"rename": "LOWER"},
                "UCASE": {"rename": "UPPER"},
            },
            "translation": {
                "noop_sql": "SELECT 1=1",
                "placeholder_prefix": "param",
            },
            "execution": {
                "max_retries": 3,
                "retry_delay_seconds": 0.1,
            },
        }

    def _build_type_map(self) -> Dict[str, str]:
        """Invert {target: [source, ...]} into {source: target}."""
        type_map = {}
        for target, sources in self._config.get("types", {}).items():
            for source in sources:
                type_map[source.lower()] = target
        return type_map

    def _build_function_map(self) -> Dict[str, Mapping[str, str]]:
        function_map = {}
        for name, rule in self._config.get("functions", {}).items():
            if len(rule) != 1 or next(iter(rule)) not in FUNCTION_KINDS:
                raise ValueError(
                    f"Function rule for {name} must have exactly one of {', '.join(FUNCTION_KINDS)}"
                )
            function_map[name.upper()] = MappingProxyType(dict(rule))
        return function_map

    @property
    def type_map(self) -> Mapping[str, str]:
        """Lower-case MySQL type name → SQLite type."""
        return self._type_map

    @property
    def function_map(self) -> Mapping[str, Mapping[str, str]]:
        """Upper-case MySQL function name → {kind: argument}."""
        return self._function_map

    @property
    def noop_sql(self) -> str:
        return self.get("translation.noop_sql", "SELECT 1=1")

    @property
    def placeholder_prefix(self) -> str:
        return self.get("translation.placeholder_prefix", "param")

    @property
    def max_retries(self) -> int:
        return int(self.get("execution.max_retries", 3))

    @property
    def retry_delay_seconds(self) -> float:
        return float(self.get("execution.retry_delay_seconds", 0.1))

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dot-notation key."""
        keys = key.split(".")
        value = self._config
        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default
        return copy.deepcopy(value) if value is not None else default


DEFAULT_CONFIG = TranslatorConfig()


def load_config(config_path: Optional[str] = None) -> TranslatorConfig:
    """Load configuration, falling back to the shared defaults."""
    if not config_path:
        return DEFAULT_CONFIG
    return TranslatorConfig(config_path=config_path)

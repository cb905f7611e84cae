"""Configuration Manager for Converter Options.

This module loads the named converter options from an options file and from
the environment, and validates them into a ConverterOptions model.

Sources (later ones override earlier ones):
    1. Options file: ``KEY = value`` / ``KEY: value`` lines with ``#``
       comments, or a JSON object when the file ends in ``.json``. If the
       given path does not exist, ``<path>.config`` is tried.
    2. Environment variables ``CW_OPT_<KEY>`` (a ``.env`` file in the
       project root is loaded first).

Architecture:
    - Follows Hexagonal Architecture: Infrastructure layer isolated from domain
    - Type-safe options using the Pydantic model of the domain layer
    - Unknown keys are ignored; missing keys fall back to compiled-in defaults
"""

import json
import os
import logging
from pathlib import Path
from typing import Optional, Dict, Any

from dotenv import load_dotenv
from pydantic import ValidationError

from src.domain.options import ConverterOptions

logger = logging.getLogger(__name__)

ENV_OPTION_PREFIX = "CW_OPT_"
CONFIG_EXTENSION = ".config"


def _known_option_keys() -> set[str]:
    return {field.alias for field in ConverterOptions.model_fields.values() if field.alias}


def parse_options_text(text: str) -> Dict[str, str]:
    """Parse ``KEY = value`` / ``KEY: value`` lines.

    Blank lines and lines starting with ``#`` or ``!`` are skipped. Keys are
    upper-cased; values are kept verbatim apart from surrounding whitespace.
    """
    values: Dict[str, str] = {}
    for line_number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith(("#", "!")):
            continue
        separators = [position for position in (line.find("="), line.find(":")) if position > 0]
        if not separators:
            logger.warning(f"Ignoring options line {line_number} without '=' or ':'")
            continue
        position = min(separators)
        key, value = line[:position].strip(), line[position + 1:].strip()
        values[key.upper()] = value
    return values


class ConfigManager:
    """Configuration manager for converter options.

    Example Usage:
        ```python
        # Load from file, then let the environment override
        config = ConfigManager.from_file("converter.config").merged(ConfigManager.from_environment())
        options = config.get_converter_options()
        ```
    """

    def __init__(self, config_data: Dict[str, Any], source: Optional[str] = None):
        """Initialize configuration manager.

        Parameters:
            config_data: Raw option values keyed by option name
            source: Where the values came from (for logs)
        """
        self._config_data = {str(key).upper(): value for key, value in config_data.items()}
        self.source = source
        self._converter_options: Optional[ConverterOptions] = None

    @classmethod
    def from_environment(cls, environ: Optional[Dict[str, str]] = None) -> 'ConfigManager':
        """Load options from ``CW_OPT_<KEY>`` environment variables.

        Parameters:
            environ: Mapping to read instead of ``os.environ`` (tests)

        Returns:
            ConfigManager instance
        """
        if environ is None:
            env_path = Path(__file__).parent.parent.parent / ".env"
            if env_path.exists():
                load_dotenv(env_path)
                logger.debug(f"Loaded environment variables from {env_path}")
            environ = dict(os.environ)

        config_data = {
            key[len(ENV_OPTION_PREFIX):]: value
            for key, value in environ.items()
            if key.upper().startswith(ENV_OPTION_PREFIX)
        }
        return cls(config_data, source="environment")

    @classmethod
    def from_file(cls, config_path: str) -> 'ConfigManager':
        """Load options from a key/value or JSON options file.

        Parameters:
            config_path: Path to the options file; ``<path>.config`` is tried
                when the path itself does not exist

        Returns:
            ConfigManager instance

        Raises:
            FileNotFoundError: If neither the path nor its ``.config`` variant exists
            ValueError: If a JSON options file is invalid
        """
        config_file = Path(config_path)
        if not config_file.exists():
            fallback = Path(f"{config_path}{CONFIG_EXTENSION}")
            if not fallback.exists():
                raise FileNotFoundError(f"Options file not found: {config_path}")
            config_file = fallback

        text = config_file.read_text(encoding='utf-8')
        if config_file.suffix.lower() == ".json":
            try:
                config_data = json.loads(text)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in options file: {str(e)}")
            if not isinstance(config_data, dict):
                raise ValueError(f"Options file {config_file} must contain a JSON object")
        else:
            config_data = parse_options_text(text)

        logger.info(f"Loaded converter options from {config_file}")
        return cls(config_data, source=str(config_file))

    def merged(self, other: 'ConfigManager') -> 'ConfigManager':
        """New manager with ``other``'s values overriding this one's."""
        return ConfigManager({**self._config_data, **other._config_data}, source=other.source or self.source)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a raw option value by name (case-insensitive)."""
        value = self._config_data.get(key.upper())
        return value if value is not None else default

    def get_converter_options(self) -> ConverterOptions:
        """Validate the loaded values into ConverterOptions.

        Raises:
            ValueError: If a value cannot be interpreted (e.g. a non-numeric START_ID)
        """
        if self._converter_options is None:
            known = _known_option_keys()
            for key in self._config_data:
                if key not in known:
                    logger.debug(f"Ignoring unknown option {key}")
            try:
                self._converter_options = ConverterOptions.model_validate(
                    {key: value for key, value in self._config_data.items() if key in known}
                )
            except ValidationError as e:
                raise ValueError(f"Invalid converter options from {self.source}: {str(e)}")
        return self._converter_options


# ============================================================================
# Convenience Functions
# ============================================================================

def load_converter_options(options_file: Optional[str] = None) -> ConverterOptions:
    """Resolve converter options from an optional file plus the environment.

    Parameters:
        options_file: Options file path (None = environment and defaults only)

    Returns:
        ConverterOptions instance
    """
    config_manager = ConfigManager.from_environment()
    if options_file:
        config_manager = ConfigManager.from_file(options_file).merged(config_manager)
    return config_manager.get_converter_options()

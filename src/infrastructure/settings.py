"""Application Settings and Configuration.

This module provides application-wide settings read from the environment
(prefix ``CW_``) with defaults for interactive use. Converter options, which
steer the conversion itself, are resolved separately by the ConfigManager.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from src.domain.options import ConverterOptions
from src.infrastructure.config_manager import load_converter_options

# Application metadata
APP_NAME = "Case-Weaver"
APP_VERSION = "1.0.0"

# Default number of rows read per CSV chunk
DEFAULT_CHUNK_SIZE = 10000

# Default base name of output bundles
DEFAULT_OUTPUT_NAME = "bundle"

_env_path = Path(__file__).parent.parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() == "true"


class Settings:
    """Application settings loaded from environment variables.

    Environment Variables:
        - CW_APP_NAME: Application name in reports
        - CW_LOG_LEVEL: Logging level (default: INFO)
        - CW_LOG_JSON: Emit JSON log lines (default: false)
        - CW_OUTPUT_NAME: Base name of output bundle files
        - CW_FHIR_BASE_URL: Base URL used for entry ``fullUrl`` values (optional)
        - CW_CHUNK_SIZE: Rows per CSV chunk
        - CW_CSV_DELIMITER: CSV delimiter (default: ',')
        - CW_MAX_WORKERS: Worker threads for per-patient conversion (default: 1)
        - CW_SAVE_REPORT: Save the conversion report as JSON (default: true)
        - CW_REPORT_DIR: Directory for conversion reports (default: reports)
        - CW_OPTIONS_FILE: Default converter options file
    """

    def __init__(self):
        """Initialize settings from the environment."""
        self._converter_options: Optional[ConverterOptions] = None

        self.app_name = os.getenv("CW_APP_NAME", APP_NAME)
        self.log_level = os.getenv("CW_LOG_LEVEL", "INFO")
        self.log_json = _env_flag("CW_LOG_JSON", "false")

        self.output_name = os.getenv("CW_OUTPUT_NAME", DEFAULT_OUTPUT_NAME)
        self.fhir_base_url = os.getenv("CW_FHIR_BASE_URL") or None

        self.chunk_size = int(os.getenv("CW_CHUNK_SIZE", str(DEFAULT_CHUNK_SIZE)))
        self.csv_delimiter = os.getenv("CW_CSV_DELIMITER", ",")
        self.max_workers = max(1, int(os.getenv("CW_MAX_WORKERS", "1")))

        # Conversion report settings
        self.save_report = _env_flag("CW_SAVE_REPORT", "true")
        self.report_dir = os.getenv("CW_REPORT_DIR", "reports")

        self.options_file = os.getenv("CW_OPTIONS_FILE") or None

    @property
    def converter_options(self) -> ConverterOptions:
        """Converter options from CW_OPTIONS_FILE and the environment.

        Loaded lazily on first access.
        """
        if self._converter_options is None:
            self._converter_options = load_converter_options(self.options_file)
        return self._converter_options


# Global settings instance
settings = Settings()

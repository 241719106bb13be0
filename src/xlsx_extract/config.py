"""Configuration management for xlsx extraction.

This module provides centralized configuration using pydantic-settings.
All configuration options can be set via environment variables with the
XLX_ prefix, or via a .env file in the working directory.

Environment Variables:
    XLX_XML_PARSER: XML event backend, sax or expat (default: sax)
    XLX_READ_CHUNK_SIZE: Bytes read from an archive part per feed (default: 65536)
    XLX_TSV_DELIMITER: Default TSV field delimiter (default: tab)
    XLX_TSV_ENDOFLINE: Default TSV line terminator (default: newline)
    XLX_LOG_LEVEL: Logging level (default: INFO)
    XLX_DEBUG: Log every emitted row at DEBUG level (default: false)
"""

import logging
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_PARSERS = {"sax", "expat"}


class Settings(BaseSettings):
    """Engine settings loaded from environment variables.

    Example .env file:
        XLX_XML_PARSER=expat
        XLX_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="XLX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # =========================================================================
    # Parser Settings
    # =========================================================================

    xml_parser: str = "sax"
    """Default XML event backend used when options do not name one."""

    read_chunk_size: int = 64 * 1024
    """Number of bytes read from an archive part before feeding the parser."""

    # =========================================================================
    # Delimited-Text Defaults
    # =========================================================================

    tsv_delimiter: str = "\t"
    """Field delimiter used by the TSV serializer."""

    tsv_endofline: str = "\n"
    """Row terminator used by the TSV serializer."""

    # =========================================================================
    # Logging Settings
    # =========================================================================

    log_level: str = "INFO"
    """Logging level: DEBUG, INFO, WARNING, ERROR, or CRITICAL."""

    debug: bool = False
    """Log every emitted row at DEBUG level."""

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(valid_levels)}"
            )
        return upper_v

    @field_validator("xml_parser")
    @classmethod
    def validate_xml_parser(cls, v: str) -> str:
        """Validate the parser names a known backend."""
        lower_v = v.strip().lower()
        if lower_v not in VALID_PARSERS:
            raise ValueError(
                f"Invalid xml_parser: {v}. Must be one of: {', '.join(sorted(VALID_PARSERS))}"
            )
        return lower_v

    @field_validator("read_chunk_size")
    @classmethod
    def validate_chunk_size(cls, v: int) -> int:
        """Validate the read chunk size is between 1 KiB and 16 MiB."""
        if not 1024 <= v <= 16 * 1024 * 1024:
            raise ValueError(
                f"read_chunk_size must be between 1024 and 16777216, got {v}"
            )
        return v

    @field_validator("tsv_delimiter", "tsv_endofline")
    @classmethod
    def validate_non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("TSV delimiter and line terminator must be non-empty")
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def log_level_int(self) -> int:
        """Get log level as integer for logging module."""
        level: int = getattr(logging, self.log_level)
        return level

    def to_safe_dict(self) -> dict[str, Any]:
        """Convert settings to a dictionary suitable for logging."""
        return {
            "xml_parser": self.xml_parser,
            "read_chunk_size": self.read_chunk_size,
            "tsv_delimiter": repr(self.tsv_delimiter),
            "tsv_endofline": repr(self.tsv_endofline),
            "log_level": self.log_level,
            "debug": self.debug,
        }


settings = Settings()

"""Configuration management for cite_core."""

import os
import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional

from pydantic import BaseModel, Field, field_validator

from cite_core.constants import (
    DEFAULT_CONFIG_PATH, DEFAULT_VAULT_DIR, DEFAULT_EXPORT_FORMAT, DEFAULT_LOG_LEVEL,
    DEFAULT_LITERATURE_NOTE_FOLDER, DEFAULT_TITLE_TEMPLATE, DEFAULT_CONTENT_TEMPLATE,
    DEFAULT_MARKDOWN_CITATION_TEMPLATE, DEFAULT_ALTERNATIVE_MARKDOWN_CITATION_TEMPLATE
)
from cite_core.models import EntryFormat

logger = logging.getLogger(__name__)


class LoggingConfig(BaseModel):
    """Logging configuration model."""
    level: str = Field(default=DEFAULT_LOG_LEVEL, description="Logging level")
    file: Optional[str] = Field(default=None, description="Log file path")

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate logging level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            logger.warning(f"Invalid logging level: {v}. Using default: {DEFAULT_LOG_LEVEL}")
            return DEFAULT_LOG_LEVEL
        return v.upper()


class CitationsSettings(BaseModel):
    """Citation settings: where the export lives and the four templates."""
    vault_dir: str = Field(default=DEFAULT_VAULT_DIR, description="Root for relative paths")
    citation_export_path: Optional[str] = Field(default=None, description="Path to the bibliography export")
    citation_export_format: str = Field(default=DEFAULT_EXPORT_FORMAT, description="biblatex or csl-json")
    literature_note_folder: str = Field(default=DEFAULT_LITERATURE_NOTE_FOLDER,
                                        description="Folder for literature notes, relative to the vault")
    literature_note_title_template: str = Field(default=DEFAULT_TITLE_TEMPLATE)
    literature_note_content_template: str = Field(default=DEFAULT_CONTENT_TEMPLATE)
    markdown_citation_template: str = Field(default=DEFAULT_MARKDOWN_CITATION_TEMPLATE)
    alternative_markdown_citation_template: str = Field(default=DEFAULT_ALTERNATIVE_MARKDOWN_CITATION_TEMPLATE)

    @field_validator('citation_export_format')
    @classmethod
    def validate_export_format(cls, v: str) -> str:
        """Validate the export format name."""
        return EntryFormat.from_setting(v).value

    @property
    def export_format(self) -> EntryFormat:
        return EntryFormat.from_setting(self.citation_export_format)

    def resolve_export_path(self) -> Optional[str]:
        """
        Resolve the export path, rooting relative paths at the vault directory.

        Returns:
            Absolute path, or None if no export path is configured
        """
        if not self.citation_export_path:
            return None
        raw_path = resolve_path(self.citation_export_path)
        return os.path.abspath(os.path.join(resolve_path(self.vault_dir), raw_path))


class CiteConfig(BaseModel):
    """Main configuration model."""
    citations: CitationsSettings = Field(default_factory=CitationsSettings, description="Citation settings")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging configuration")


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from the YAML config file.

    Args:
        config_path: Path to the config file. If None, default is used.

    Returns:
        Dict with configuration values.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    config: Dict[str, Any] = {}

    try:
        resolved_path = resolve_path(path)
        config_file = Path(resolved_path)
        if config_file.exists():
            with open(config_file, 'r', encoding='utf-8') as f:
                raw_config = yaml.safe_load(f) or {}

            try:
                validated_config = CiteConfig(**raw_config)
                config = validated_config.model_dump()
                logger.debug(f"Loaded and validated configuration from {resolved_path}")
            except Exception as validation_error:
                logger.error(f"Configuration validation error: {validation_error}")
                logger.warning("Using default configuration with provided values where valid")
                config = raw_config
        else:
            logger.warning(f"Config file '{resolved_path}' not found. Using defaults.")
    except Exception as e:
        logger.error(f"Error loading config file '{path}': {e}")

    return config


def load_settings(config: Dict[str, Any]) -> CitationsSettings:
    """
    Build citation settings from a loaded configuration.

    Invalid values are dropped one by one so a single bad entry does not
    discard the rest of the section.
    """
    section = get_config_value(config, "citations", {}) or {}
    if not isinstance(section, dict):
        logger.warning(f"'citations' section is not a mapping: {type(section)}. Using defaults.")
        return CitationsSettings()
    try:
        return CitationsSettings(**section)
    except Exception as e:
        logger.warning(f"Invalid citation settings: {e}")
    valid: Dict[str, Any] = {}
    for key, value in section.items():
        try:
            CitationsSettings(**{key: value})
            valid[key] = value
        except Exception:
            logger.warning(f"Ignoring invalid setting citations.{key}={value!r}")
    return CitationsSettings(**valid)


def resolve_path(path: Optional[str]) -> Optional[str]:
    """Resolve path with environment variables and user home."""
    if not path:
        return path
    return os.path.expanduser(os.path.expandvars(path))


def get_config_value(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Get configuration value using a dot-separated path.

    Args:
        config: Configuration dictionary
        key_path: Dot-separated path (e.g., "section.key")
        default: Default value if path not found

    Returns:
        Configuration value or default if not found
    """
    keys = key_path.split('.')
    current = config

    for key in keys:
        if isinstance(current, dict) and key in current:
            current = current[key]
        else:
            return default

    return current

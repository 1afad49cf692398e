"""
Centralized configuration management for the stream extraction system.

ConfigManager resolves the settings handed to the extractors from four layers,
lowest precedence first:

1. ExtractionDefaults
2. an optional JSON or YAML settings file
3. STREAM_EXTRACTOR_* environment variables
4. per-call overrides passed to the get_* methods

Settings file layout (JSON shown, YAML is equivalent):

    {
        "log_level": "INFO",
        "xml": {"encoding": "UTF-8", "options": {"huge_tree": true}},
        "csv": {"delimiter": ";", "start_line": 1, "exceptions": false},
        "soap": {"timeout": 10, "soap_version": "1.1"}
    }
"""

import json
import logging
import os

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from ..exceptions import ConfigurationError
from ..models import CSVExtractionConfig, SOAPOptions, XMLExtractionConfig
from .processing_defaults import ExtractionDefaults


SETTINGS_SECTIONS = ("xml", "csv", "soap")


def _env_bool(name: str) -> Optional[bool]:
    value = os.environ.get(name)
    if value is None:
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_number(name: str, cast) -> Optional[Any]:
    value = os.environ.get(name)
    if value is None:
        return None
    try:
        return cast(value)
    except ValueError as e:
        raise ConfigurationError(f"Invalid value for {name}: {value!r}") from e


@dataclass
class EnvironmentSettings:
    """Settings read from STREAM_EXTRACTOR_* environment variables; None means not set."""
    encoding: Optional[str] = None
    huge_tree: Optional[bool] = None
    recover: Optional[bool] = None
    delimiter: Optional[str] = None
    enclosure: Optional[str] = None
    escape: Optional[str] = None
    start_line: Optional[int] = None
    exceptions: Optional[bool] = None
    auto_eol: Optional[bool] = None
    soap_timeout: Optional[float] = None
    soap_version: Optional[str] = None
    log_level: Optional[str] = None
    settings_path: Optional[str] = None

    @classmethod
    def from_environment(cls) -> 'EnvironmentSettings':
        """Create settings from environment variables."""
        return cls(
            encoding=os.environ.get('STREAM_EXTRACTOR_ENCODING'),
            huge_tree=_env_bool('STREAM_EXTRACTOR_HUGE_TREE'),
            recover=_env_bool('STREAM_EXTRACTOR_RECOVER'),
            delimiter=os.environ.get('STREAM_EXTRACTOR_CSV_DELIMITER'),
            enclosure=os.environ.get('STREAM_EXTRACTOR_CSV_ENCLOSURE'),
            escape=os.environ.get('STREAM_EXTRACTOR_CSV_ESCAPE'),
            start_line=_env_number('STREAM_EXTRACTOR_CSV_START_LINE', int),
            exceptions=_env_bool('STREAM_EXTRACTOR_CSV_EXCEPTIONS'),
            auto_eol=_env_bool('STREAM_EXTRACTOR_CSV_AUTO_EOL'),
            soap_timeout=_env_number('STREAM_EXTRACTOR_SOAP_TIMEOUT', float),
            soap_version=os.environ.get('STREAM_EXTRACTOR_SOAP_VERSION'),
            log_level=os.environ.get('STREAM_EXTRACTOR_LOG_LEVEL'),
            settings_path=os.environ.get('STREAM_EXTRACTOR_SETTINGS_PATH'),
        )

    def xml_overrides(self) -> Dict[str, Any]:
        overrides: Dict[str, Any] = {}
        if self.encoding is not None:
            overrides['encoding'] = self.encoding
        options = {key: value for key, value in (('huge_tree', self.huge_tree), ('recover', self.recover))
                   if value is not None}
        if options:
            overrides['options'] = options
        return overrides

    def csv_overrides(self) -> Dict[str, Any]:
        values = {
            'delimiter': self.delimiter,
            'enclosure': self.enclosure,
            'escape': self.escape,
            'start_line': self.start_line,
            'exceptions': self.exceptions,
            'auto_eol': self.auto_eol,
            'encoding': self.encoding,
        }
        return {key: value for key, value in values.items() if value is not None}

    def soap_overrides(self) -> Dict[str, Any]:
        values = {'timeout': self.soap_timeout, 'soap_version': self.soap_version}
        return {key: value for key, value in values.items() if value is not None}


class ConfigManager:
    """
    Single source of truth for extraction settings.

    Usage:
        manager = get_config_manager()
        extractor.extract(path, manager.get_xml_config())
        csv_extractor.extract(path, manager.get_csv_config({'start_line': 1}))
    """

    def __init__(self, settings_path: Optional[Union[str, Path]] = None):
        """
        Initialize the configuration manager.

        Args:
            settings_path: Optional JSON or YAML settings file. Falls back to
                           STREAM_EXTRACTOR_SETTINGS_PATH when not given.
        """
        self.logger = logging.getLogger(__name__)
        self.environment = EnvironmentSettings.from_environment()

        path = settings_path or self.environment.settings_path
        self.settings_path: Optional[Path] = Path(path) if path else None

        # Cache for loaded settings files
        self._settings_cache: Dict[str, Dict[str, Any]] = {}

        self.logger.info(f"ConfigManager initialized with settings file: {self.settings_path or 'none'}")

    def load_settings_file(self, path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
        """
        Load and cache a JSON or YAML settings file.

        Returns:
            Settings mapping, empty when no file is configured

        Raises:
            ConfigurationError: If the file is missing, unreadable or malformed
        """
        full_path = Path(path) if path else self.settings_path
        if full_path is None:
            return {}

        cache_key = str(full_path)
        if cache_key in self._settings_cache:
            self.logger.debug(f"Returning cached settings for {cache_key}")
            return self._settings_cache[cache_key]

        if not full_path.exists():
            raise ConfigurationError(f"Settings file not found: {full_path}")

        try:
            with open(full_path, 'r', encoding='utf-8') as file:
                if full_path.suffix.lower() in ['.yaml', '.yml']:
                    settings = yaml.safe_load(file)
                elif full_path.suffix.lower() == '.json':
                    settings = json.load(file)
                else:
                    raise ConfigurationError(f"Unsupported file format: {full_path.suffix}")
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to parse settings file {full_path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read settings file {full_path}: {e}") from e

        settings = settings or {}
        if not isinstance(settings, Mapping):
            raise ConfigurationError(f"Settings file {full_path} must contain a mapping")
        for section in SETTINGS_SECTIONS:
            if section in settings and not isinstance(settings[section], Mapping):
                raise ConfigurationError(f"Section '{section}' in {full_path} must be a mapping")

        self._settings_cache[cache_key] = dict(settings)
        self.logger.info(f"Loaded settings from {full_path}")
        return self._settings_cache[cache_key]

    def _section(self, name: str) -> Dict[str, Any]:
        return dict(self.load_settings_file().get(name) or {})

    def get_xml_config(self, overrides: Optional[Mapping[str, Any]] = None) -> XMLExtractionConfig:
        settings = self._section('xml')
        options = dict(settings.get('options') or {})

        environment = self.environment.xml_overrides()
        options.update(environment.pop('options', {}))
        settings.update(environment)

        if overrides:
            overrides = dict(overrides)
            options.update(overrides.pop('options', None) or {})
            settings.update(overrides)
        if options:
            settings['options'] = options
        return XMLExtractionConfig.from_mapping(settings)

    def get_csv_config(self, overrides: Optional[Mapping[str, Any]] = None) -> CSVExtractionConfig:
        settings = self._section('csv')
        settings.update(self.environment.csv_overrides())
        settings.update(overrides or {})
        return CSVExtractionConfig.from_mapping(settings)

    def get_soap_options(self, overrides: Optional[Mapping[str, Any]] = None) -> SOAPOptions:
        settings = self._section('soap')
        settings.update(self.environment.soap_overrides())
        settings.update(overrides or {})
        return SOAPOptions.from_mapping(settings)

    def get_log_level(self) -> str:
        level = self.environment.log_level or self.load_settings_file().get('log_level') or ExtractionDefaults.LOG_LEVEL
        level = str(level).upper()
        if level not in ('CRITICAL', 'ERROR', 'WARNING', 'INFO', 'DEBUG'):
            raise ConfigurationError(f"Invalid log level: {level}")
        return level

    def get_configuration_summary(self) -> Dict[str, Any]:
        """
        Get a summary of the resolved settings.

        Returns:
            Dictionary containing configuration summary
        """
        xml_config = self.get_xml_config()
        csv_config = self.get_csv_config()
        soap_options = self.get_soap_options()
        return {
            'settings_path': str(self.settings_path) if self.settings_path else None,
            'log_level': self.get_log_level(),
            'xml': {
                'encoding': xml_config.encoding,
                'options': dict(xml_config.options),
            },
            'csv': {
                'delimiter': csv_config.delimiter,
                'enclosure': csv_config.enclosure,
                'escape': csv_config.escape,
                'start_line': csv_config.start_line,
                'exceptions': csv_config.exceptions,
                'auto_eol': csv_config.auto_eol,
                'encoding': csv_config.encoding,
            },
            'soap': {
                'timeout': soap_options.timeout,
                'soap_version': soap_options.soap_version,
            },
        }

    def clear_cache(self) -> None:
        """Clear all cached settings files."""
        self._settings_cache.clear()

        self.logger.info("Configuration cache cleared")

    def reload_configuration(self) -> None:
        """Reload configuration from environment variables and clear cache."""
        self.environment = EnvironmentSettings.from_environment()
        self.clear_cache()

        self.logger.info("Configuration reloaded from environment variables")


# Global configuration manager instance
_global_config_manager: Optional[ConfigManager] = None


def get_config_manager(settings_path: Optional[Union[str, Path]] = None) -> ConfigManager:
    """
    Get the global configuration manager instance.

    Args:
        settings_path: Settings file path. Only used on first call.

    Returns:
        Global ConfigManager instance
    """
    global _global_config_manager

    if _global_config_manager is None:
        _global_config_manager = ConfigManager(settings_path)

    return _global_config_manager


def reset_config_manager() -> None:
    """Reset the global configuration manager instance."""
    global _global_config_manager
    _global_config_manager = None

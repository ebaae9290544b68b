"""
YAML configuration parser for findgrep.

This module provides functionality to load, parse, and validate YAML
configuration files holding search defaults (ignore pattern, scope flags,
and pipeline limits). It handles configuration file discovery, parsing,
validation, and provides helpful error messages for configuration issues.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional, List, Union
import logging
from dataclasses import dataclass
from pydantic import ValidationError

from ..models.config import SearchConfig, SearchSettings


logger = logging.getLogger(__name__)

# Above this, the permit pool no longer protects the process fd limit
MAX_OPEN_FILES_WARNING = 256


@dataclass
class ConfigParseResult:
    """
    Result of configuration parsing operation.

    Attributes:
        settings: The parsed and validated search settings
        warnings: List of non-fatal warnings
        config_path: Path to the configuration file used
        is_default: Whether default configuration was used
    """
    settings: SearchSettings
    warnings: List[str]
    config_path: Optional[Path]
    is_default: bool


class ConfigurationError(Exception):
    """Raised when configuration parsing or validation fails."""
    pass


class ConfigParser:
    """
    YAML configuration parser with validation and error handling.

    This class handles loading YAML configuration files, validating their
    contents, and converting them to SearchSettings objects.
    """

    DEFAULT_CONFIG_NAMES = [
        '.findgrep.yaml',
        '.findgrep.yml',
        'findgrep.yaml',
        'findgrep.yml'
    ]

    def __init__(self, strict_mode: bool = False):
        """
        Initialize the configuration parser.

        Args:
            strict_mode: If True, treat warnings as errors
        """
        self.strict_mode = strict_mode
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def get_search_paths(self) -> List[Path]:
        """Directories searched for a default configuration file, in order."""
        return [
            Path.cwd(),
            Path.home(),
            Path.home() / '.config' / 'findgrep',
        ]

    def load_config(self, config_path: Optional[Union[str, Path]] = None) -> ConfigParseResult:
        """
        Load and parse configuration from file or use defaults.

        Args:
            config_path: Path to configuration file. If None, searches for default files.

        Returns:
            ConfigParseResult containing parsed settings and metadata

        Raises:
            ConfigurationError: If configuration is invalid or file cannot be read
        """
        if config_path:
            config_path = Path(config_path)
            if not config_path.exists():
                raise ConfigurationError(f"Configuration file not found: {config_path}")

            config_data = self._load_yaml_file(config_path)
            is_default = False
        else:
            config_path, config_data = self._find_and_load_config()
            is_default = config_data is None
            if is_default:
                config_data = {}

        settings = self._validate_config_data(config_data)

        warnings = self._get_parser_warnings(settings, is_default)
        if self.strict_mode and warnings:
            raise ConfigurationError(f"Configuration warnings in strict mode: {'; '.join(warnings)}")

        self.logger.info(f"Configuration loaded successfully from {config_path or 'defaults'}")

        return ConfigParseResult(
            settings=settings,
            warnings=warnings,
            config_path=config_path,
            is_default=is_default
        )

    def _find_and_load_config(self) -> tuple[Optional[Path], Optional[Dict[str, Any]]]:
        """
        Find and load configuration file from default locations.

        Returns:
            Tuple of (config_path, config_data) or (None, None) if not found
        """
        for search_path in self.get_search_paths():
            for config_name in self.DEFAULT_CONFIG_NAMES:
                config_file = search_path / config_name
                if config_file.exists() and config_file.is_file():
                    try:
                        config_data = self._load_yaml_file(config_file)
                        self.logger.info(f"Found configuration file: {config_file}")
                        return config_file, config_data
                    except ConfigurationError as e:
                        self.logger.warning(f"Failed to load {config_file}: {e}")
                        continue

        self.logger.info("No configuration file found, using defaults")
        return None, None

    def _load_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        """
        Load and parse YAML file.

        Args:
            file_path: Path to YAML file

        Returns:
            Parsed YAML data as dictionary

        Raises:
            ConfigurationError: If file cannot be read or parsed
        """
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                content = f.read()

            if not content.strip():
                self.logger.warning(f"Configuration file is empty: {file_path}")
                return {}

            data = yaml.safe_load(content)

            if data is None:
                return {}

            if not isinstance(data, dict):
                raise ConfigurationError(f"Configuration file must contain a YAML object, got {type(data).__name__}")

            return data

        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {file_path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file {file_path}: {e}") from e

    def _validate_config_data(self, config_data: Dict[str, Any]) -> SearchSettings:
        """
        Validate configuration data structure and values.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if 'pattern' in config_data:
            raise ConfigurationError("The search pattern cannot be set in a configuration file")

        try:
            return SearchSettings.model_validate(config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

    def _get_parser_warnings(self, settings: SearchSettings, is_default: bool) -> List[str]:
        """
        Get parser-specific warnings.

        Args:
            settings: The parsed settings
            is_default: Whether default configuration was used

        Returns:
            List of warning messages
        """
        warnings = []

        if is_default:
            warnings.append("No configuration file found, using default settings")

        if settings.scope.binary and not settings.scope.content:
            warnings.append("Binary search enabled without content search has no effect")

        if settings.scope.hidden:
            warnings.append("Hidden entries will be searched")

        if settings.limits.max_open_files > MAX_OPEN_FILES_WARNING:
            warnings.append(f"Very high max_open_files limit ({settings.limits.max_open_files}) may exhaust file descriptors")

        return warnings

    def save_config(self, settings: SearchSettings, output_path: Union[str, Path]) -> None:
        """
        Save settings to YAML file.

        Raises:
            ConfigurationError: If file cannot be written
        """
        try:
            output_path = Path(output_path)
            output_path.parent.mkdir(parents=True, exist_ok=True)

            yaml_content = self._generate_yaml_with_comments(settings.to_dict())

            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(yaml_content)

            self.logger.info(f"Configuration saved to {output_path}")

        except OSError as e:
            raise ConfigurationError(f"Cannot write configuration file {output_path}: {e}") from e

    def _generate_yaml_with_comments(self, config_dict: Dict[str, Any]) -> str:
        """
        Generate YAML content with helpful comments.

        Args:
            config_dict: Configuration dictionary

        Returns:
            YAML content with comments
        """
        lines = [
            "# findgrep configuration",
            "# Defaults for search scope and pipeline limits; the pattern is given per search",
            "",
        ]

        sections = [
            ("root", "Directory where traversal starts"),
            ("ignore", "Regex of entry names (and content lines) to skip"),
            ("scope", "What to search and report"),
            ("limits", "Concurrency and buffering limits")
        ]

        for section_name, comment in sections:
            if section_name in config_dict:
                lines.append(f"# {comment}")
                section_yaml = yaml.dump({section_name: config_dict[section_name]},
                                         default_flow_style=False,
                                         sort_keys=False)
                lines.append(section_yaml.rstrip())
                lines.append("")

        return "\n".join(lines)

    def validate_config_file(self, config_path: Union[str, Path]) -> List[str]:
        """
        Validate a configuration file.

        Args:
            config_path: Path to configuration file

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        config_path = Path(config_path)
        if not config_path.exists():
            errors.append(f"Configuration file not found: {config_path}")
            return errors

        try:
            config_data = self._load_yaml_file(config_path)
            self._validate_config_data(config_data)
        except ConfigurationError as e:
            errors.append(str(e))

        return errors

    def get_config_template(self) -> str:
        """
        Get a template configuration file with all options and comments.

        Returns:
            YAML template as string
        """
        template_config = {
            'root': '.',
            'ignore': r'^(\.git|node_modules|__pycache__)$',
            'scope': {
                'directories': True,
                'files': True,
                'symlinks': True,
                'content': False,
                'binary': False,
                'hidden': False
            },
            'limits': {
                'max_open_files': 10,
                'stream_buffer': 10,
                'scan_workers': 16
            }
        }

        return self._generate_yaml_with_comments(template_config)


def load_config(config_path: Optional[Union[str, Path]] = None, strict_mode: bool = False) -> ConfigParseResult:
    """
    Convenience function to load configuration.

    Args:
        config_path: Path to configuration file (optional)
        strict_mode: Whether to treat warnings as errors

    Returns:
        ConfigParseResult containing parsed settings

    Raises:
        ConfigurationError: If configuration is invalid
    """
    parser = ConfigParser(strict_mode=strict_mode)
    return parser.load_config(config_path)


def validate_config_file(config_path: Union[str, Path]) -> List[str]:
    """
    Convenience function to validate a configuration file.

    Args:
        config_path: Path to configuration file

    Returns:
        List of validation errors (empty if valid)
    """
    parser = ConfigParser()
    return parser.validate_config_file(config_path)


def create_config_template(output_path: Union[str, Path]) -> None:
    """
    Create a template configuration file.

    Args:
        output_path: Where to save the template

    Raises:
        ConfigurationError: If template cannot be created
    """
    parser = ConfigParser()
    template_content = parser.get_config_template()

    try:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(template_content)

    except OSError as e:
        raise ConfigurationError(f"Cannot create template file {output_path}: {e}") from e


def build_search_config(
    pattern: str,
    config_path: Optional[Union[str, Path]] = None,
    **overrides: Any
) -> SearchConfig:
    """
    Build a SearchConfig from a configuration file plus caller overrides.

    Overrides for 'root' and 'ignore' replace the file value; 'scope' and
    'limits' dictionaries are merged key by key.

    Args:
        pattern: Search pattern
        config_path: Path to configuration file (optional)
        **overrides: Values taking precedence over the file

    Returns:
        Compiled SearchConfig

    Raises:
        ConfigurationError: If the file or the resulting configuration is invalid
    """
    result = load_config(config_path)
    data = result.settings.to_dict()

    for key, value in overrides.items():
        if key in ('scope', 'limits') and isinstance(value, dict):
            data[key] = {**data[key], **value}
        else:
            data[key] = value

    data['pattern'] = pattern
    try:
        return SearchConfig.from_dict(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid search configuration: {e}") from e

"""
Configuration management package for findgrep.

This package provides configuration parsing, validation, and management
functionality for search defaults.
"""

from .parser import (
    ConfigParser,
    ConfigParseResult,
    ConfigurationError,
    load_config,
    validate_config_file,
    create_config_template,
    build_search_config
)

__all__ = [
    'ConfigParser',
    'ConfigParseResult',
    'ConfigurationError',
    'load_config',
    'validate_config_file',
    'create_config_template',
    'build_search_config'
]

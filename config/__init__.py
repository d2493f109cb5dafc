"""
Configuration Module for the Receipt Extraction System.

Settings live in YAML. The bundled ``settings.yaml`` holds every default;
a custom file (CLI ``--config``) only needs the keys it overrides and is
layered on top of the defaults section by section.
"""

import copy
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

DEFAULT_CONFIG_PATH = Path(__file__).parent / "settings.yaml"


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``override`` into a copy of ``base``; nested mappings are merged, not replaced."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


class ConfigurationManager:
    """
    Process-wide access to the receipt extraction settings.

    Attributes:
        config_path (Path): File the overrides were read from.

    Example:
        >>> config = ConfigurationManager()
        >>> config.get("extraction.confidence.date")
        0.9
        >>> config.get("ocr.tesseract.lang")
        'eng'
    """

    _instance: Optional['ConfigurationManager'] = None

    def __new__(cls, config_path: Optional[Union[str, Path]] = None) -> 'ConfigurationManager':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[Union[str, Path]] = None) -> None:
        """
        Load the settings once per process.

        Args:
            config_path: Optional YAML file with overrides. Passing a
                different path to an existing instance switches to it.

        Raises:
            FileNotFoundError: If a configuration file doesn't exist.
            ValueError: If a configuration file is not a mapping.
        """
        requested = Path(config_path) if config_path is not None else None

        if self._initialized:
            if requested is not None and requested != self.config_path:
                self.config_path = requested
                self._load_config()
            return

        self.config_path = requested or DEFAULT_CONFIG_PATH
        self._load_config()
        self._initialized = True

    def _load_config(self) -> None:
        """Read the defaults, then layer the selected file over them."""
        config = _read_yaml(DEFAULT_CONFIG_PATH)
        if self.config_path != DEFAULT_CONFIG_PATH:
            config = _deep_merge(config, _read_yaml(self.config_path))

        self._config = config
        self._resolve_paths()

    def _resolve_paths(self) -> None:
        """
        Resolve relative paths in configuration to absolute paths.
        Uses project root as base directory.
        """
        project_root = Path(__file__).parent.parent

        for key, value in (self._config.get('paths') or {}).items():
            if value and not Path(value).is_absolute():
                self._config['paths'][key] = str(project_root / value)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Args:
            key: Configuration key in dot notation (e.g., "ocr.tesseract.psm").
            default: Default value if key doesn't exist.

        Returns:
            Configuration value or default.

        Example:
            >>> config.get("extraction.merchant_scan_lines")
            5
            >>> config.get("nonexistent.key", "default_value")
            'default_value'
        """
        value = self._config

        try:
            for k in key.split('.'):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def get_all(self) -> Dict[str, Any]:
        """Deep copy of the merged settings."""
        return copy.deepcopy(self._config)

    def reload(self) -> None:
        """Re-read the settings files."""
        self._load_config()

    @classmethod
    def reset(cls) -> None:
        """Drop the instance; the next access loads the defaults again."""
        cls._instance = None


def get_config(key: str, default: Any = None) -> Any:
    """
    Shorthand for ``ConfigurationManager().get(key, default)``.

    Example:
        >>> get_config("form.confidence_levels.high")
        0.8
    """
    return ConfigurationManager().get(key, default)


__all__ = ['ConfigurationManager', 'get_config', 'DEFAULT_CONFIG_PATH']

"""Configuration loader with 3-tier parameter precedence."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from ..errors import MalformedDataError
from .defaults import DefaultConfig, get_default_config

CONFIG_FILENAME = "fasting.yaml"


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_dir: Path
    defaults: DefaultConfig

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
        )

    def load_file_config(self) -> dict[str, Any]:
        """
        Load the YAML configuration file, empty when it does not exist.

        Raises:
            MalformedDataError: if the file is not valid YAML or not a mapping
        """
        config_file = self.config_dir / CONFIG_FILENAME

        if not config_file.exists():
            return {}

        try:
            with open(config_file) as f:
                file_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise MalformedDataError(
                f"Invalid YAML in {config_file}: {e}",
                raw_data=str(config_file),
                expected_format="YAML mapping"
            ) from e

        if file_config is None:
            return {}

        if not isinstance(file_config, dict):
            raise MalformedDataError(
                f"Top level of {config_file} must be a mapping",
                raw_data=str(config_file),
                expected_format="YAML mapping"
            )

        return file_config

    def merge_config(
        self,
        overrides: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Explicit overrides (highest priority)
        2. fasting.yaml in the config directory
        3. Global defaults (lowest priority)
        """
        # Start with global defaults
        config = self._dataclass_to_dict(self.defaults)

        # Apply file overrides
        config = self._deep_merge(config, self.load_file_config())

        # Apply explicit overrides
        if overrides:
            config = self._deep_merge(config, overrides)

        return config

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name in obj.__dataclass_fields__:
                value = getattr(obj, field_name)
                if hasattr(value, '__dataclass_fields__'):
                    result[field_name] = self._dataclass_to_dict(value)
                elif isinstance(value, tuple):
                    result[field_name] = list(value)
                else:
                    result[field_name] = value
            return result
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result


def load_config(
    config_dir: Optional[Path] = None,
    overrides: Optional[dict[str, Any]] = None
) -> dict[str, Any]:
    """Shortcut for ConfigLoader.create(config_dir).merge_config(overrides)."""
    return ConfigLoader.create(config_dir).merge_config(overrides)


def merge_with_defaults(config: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    """Complete a partial config dict with the built-in defaults, ignoring fasting.yaml."""
    loader = ConfigLoader(config_dir=Path("."), defaults=get_default_config())
    base = loader._dataclass_to_dict(loader.defaults)
    return loader._deep_merge(base, config or {})

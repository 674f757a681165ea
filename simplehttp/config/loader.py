"""Configuration loader for simplehttp clients.

Settings come either from a dictionary (useful in tests) or from a YAML
file. The client reads them from the "client" section:

    client:
      base_url: https://api.example.com
      headers: {X-Api-Key: abc}
      auth:
        bearer_token: secret
      tls:
        ca_file: certs/internal-ca.pem
        skip_verify: false
      debug: false
"""

from pathlib import Path
from typing import Any, cast

import yaml

from ..exceptions import ConfigurationError


class Config:
    """Configuration manager that provides dot-notation access to settings."""

    def __init__(self, config_dict: dict[str, Any] | None = None, base_dir: Path | None = None):
        """
        Initialize the configuration manager.

        Args:
            config_dict: Dictionary of config values
            base_dir: Directory relative file paths (tls.ca_file) are resolved
                      against. Defaults to the current working directory.
        """
        self._configs: dict[str, Any] = config_dict if config_dict is not None else {}
        self._base_dir = base_dir

    @classmethod
    def from_file(cls, path: str | Path) -> "Config":
        """
        Load configuration from a YAML file.

        Raises:
            ConfigurationError: If the file is missing or does not hold a mapping
        """
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigurationError(f"Config file not found at {config_path}")

        with open(config_path, encoding="utf-8") as f:
            loaded_config = yaml.safe_load(f)

        # An empty file loads as None
        if loaded_config is None:
            loaded_config = {}
        if not isinstance(loaded_config, dict):
            raise ConfigurationError(
                f"Config file {config_path.name} must contain a dictionary, "
                f"got {type(loaded_config).__name__}"
            )

        return cls(loaded_config, base_dir=config_path.parent)

    def get(self, path: str, default: Any = None) -> Any:
        """Get a configuration value using dot notation.

        Args:
            path: Dot-separated path to the config value (e.g., "client.tls.skip_verify")
            default: Default value to return if path is not found

        Returns:
            The configuration value or default if not found

        Example:
            >>> config.get("client.base_url")
            "https://api.example.com"
        """
        parts = path.split(".")
        value = self._configs

        for part in parts:
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default

        return value

    def ca_pem(self) -> str | None:
        """
        Return the custom CA certificate text, if one is configured.

        tls.ca_pem holds the PEM inline, tls.ca_file points to a PEM file.

        Raises:
            ConfigurationError: If both are set or the file does not exist
        """
        inline = self.get("client.tls.ca_pem")
        ca_file = self.get("client.tls.ca_file")

        if inline and ca_file:
            raise ConfigurationError(
                "ca_pem and ca_file are mutually exclusive", config_key="client.tls"
            )
        if inline:
            return cast(str, inline)
        if not ca_file:
            return None

        ca_path = Path(ca_file)
        if not ca_path.is_absolute() and self._base_dir is not None:
            ca_path = self._base_dir / ca_path
        if not ca_path.exists():
            raise ConfigurationError(
                f"CA file not found at {ca_path}", config_key="client.tls.ca_file"
            )
        return ca_path.read_text(encoding="utf-8")

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


class ConfigManager:
    """Read/write access to the JSON configuration file with dotted-key lookups"""

    def __init__(self, config_file: Optional[Union[str, Path]] = None):
        """Initialize the configuration manager"""
        # Relative to the current working directory unless a path is given
        self.config_file = Path(config_file) if config_file else Path("config.json")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration file; a missing file yields an empty configuration"""
        if not self.config_file.exists():
            return {}
        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Error loading config %s: %s", self.config_file, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Config %s is not a JSON object; ignoring it", self.config_file)
            return {}
        return data

    def _save_config(self, config: Dict[str, Any]) -> None:
        """Save configuration to file"""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration item"""
        keys = key.split('.')
        value = self.config
        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration item and persist it"""
        keys = key.split('.')
        config = self.config
        for k in keys[:-1]:
            if not isinstance(config.get(k), dict):
                config[k] = {}
            config = config[k]
        config[keys[-1]] = value
        self._save_config(self.config)

    def list_config(self) -> Dict[str, Any]:
        """List all configuration items"""
        return self.config

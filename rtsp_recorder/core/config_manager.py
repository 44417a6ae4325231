"""Reader for dotenv-style ``KEY=VALUE`` settings files."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Sequence

from .logging_utils import get_module_logger

logger = get_module_logger("ConfigManager")


class ConfigManager:

    def __init__(self):
        self.logger = get_module_logger("ConfigManager")

    @staticmethod
    def _unquote(value: str) -> str:
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
            return value[1:-1]
        return value

    def _parse_config_lines(self, lines: Iterable[str]) -> Dict[str, str]:
        config: Dict[str, str] = {}

        for raw_line in lines:
            line = raw_line.strip()
            if not line or line.startswith('#'):
                continue
            if line.startswith('export '):
                line = line[len('export '):].lstrip()
            if '=' not in line:
                continue

            key, value = line.split('=', 1)
            key = key.strip()
            value = value.strip()
            if not key:
                continue

            quoted = value[:1] in ('"', "'") and len(value) >= 2 and value.endswith(value[0])
            if not quoted and '#' in value:
                value = value.split('#')[0].strip()

            config[key] = self._unquote(value)

        return config

    def read_config(self, config_path: Path) -> Dict[str, str]:
        """Return the key/value pairs in ``config_path``.

        A missing file yields an empty mapping. An unreadable one is logged
        and also yields an empty mapping.
        """
        config_path = Path(config_path)
        if not config_path.is_file():
            return {}

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = self._parse_config_lines(f)
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Failed to read config %s: %s", config_path, e)
            return {}

        logger.debug("Loaded %d settings from %s", len(config), config_path)
        return config

    def merge_layers(self, layers: Sequence[Mapping[str, str]]) -> Dict[str, str]:
        """Merge ``layers`` so that earlier layers win; empty values count as unset."""
        merged: Dict[str, str] = {}
        for layer in reversed(layers):
            for key, value in layer.items():
                if value != "":
                    merged[key] = value
        return merged

    def get_str(self, config: Mapping[str, str], key: str, default: str = "") -> str:
        value: Optional[str] = config.get(key)
        return value if value else default


_config_manager = ConfigManager()


def get_config_manager() -> ConfigManager:
    return _config_manager

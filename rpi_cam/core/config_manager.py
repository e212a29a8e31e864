"""Reader for the ``key = value`` config files used by rpi-cam."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Dict, Iterable, Optional

import aiofiles

from .logging_utils import get_module_logger


logger = get_module_logger("ConfigManager")

_TRUE_VALUES = {"true", "1", "yes", "on"}


class ConfigManager:

    def __init__(self):
        self.logger = get_module_logger("ConfigManager")

    # ------------------------------------------------------------------
    # Internal helpers

    @staticmethod
    def _parse_config_lines(lines: Iterable[str]) -> Dict[str, str]:
        config: Dict[str, str] = {}

        for line_num, raw_line in enumerate(lines, 1):
            line = raw_line.strip()
            if not line or line.startswith('#'):
                continue
            if '=' not in line:
                logger.warning("Invalid config line %d (missing '='): %s", line_num, line)
                continue

            key, value = line.split('=', 1)
            key = key.strip()
            value = value.strip()

            if '#' in value:
                value = value.split('#')[0].strip()

            if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
                value = value[1:-1]

            config[key] = value

        return config

    # ------------------------------------------------------------------
    # Reading

    def read_config(self, config_path: Path) -> Dict[str, str]:
        config_path = Path(config_path)
        if not config_path.exists():
            logger.debug("Config file not found at %s, using defaults", config_path)
            return {}

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = self._parse_config_lines(f)
        except OSError as e:
            logger.error("Failed to read config %s: %s", config_path, e)
            return {}

        logger.debug("Loaded config from %s (%d values)", config_path, len(config))
        return config

    async def read_config_async(self, config_path: Path) -> Dict[str, str]:
        config_path = Path(config_path)
        if not await asyncio.to_thread(config_path.exists):
            logger.debug("Config file not found at %s, using defaults", config_path)
            return {}

        try:
            lines: list[str] = []
            async with aiofiles.open(config_path, 'r', encoding='utf-8') as f:
                async for line in f:
                    lines.append(line)
        except OSError as e:
            logger.error("Failed to read config %s: %s", config_path, e)
            return {}

        config = self._parse_config_lines(lines)
        logger.debug("Loaded config from %s (%d values)", config_path, len(config))
        return config

    # ------------------------------------------------------------------
    # Typed getters

    def get_bool(self, config: Dict[str, str], key: str, default: bool = False) -> bool:
        value = config.get(key)
        if value is None or value == '':
            return default
        return str(value).strip().lower() in _TRUE_VALUES

    def get_int(self, config: Dict[str, str], key: str, default: int = 0) -> int:
        value = config.get(key)
        if value is None or value == '':
            return default
        try:
            return int(str(value), 0)
        except ValueError:
            logger.warning("Failed to parse '%s' for %s as int, using default %s", value, key, default)
            return default

    def get_float(self, config: Dict[str, str], key: str, default: float = 0.0) -> float:
        value = config.get(key)
        if value is None or value == '':
            return default
        try:
            return float(value)
        except ValueError:
            logger.warning("Failed to parse '%s' for %s as float, using default %s", value, key, default)
            return default

    def get_str(self, config: Dict[str, str], key: str, default: Optional[str] = None) -> Optional[str]:
        value = config.get(key)
        if value is None:
            return default
        text = str(value).strip()
        return text if text else default


_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


__all__ = ["ConfigManager", "get_config_manager"]

"""Utilities for loading and caching the detector's configuration files"""

import json
from typing import Dict, Any, Optional
from pathlib import Path
import logging

from utils.env import get_config_dir_override


class ConfigManager:
    """Loads and caches the JSON configuration under config/"""

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = (
            config_dir
            or get_config_dir_override()
            or Path(__file__).parent.parent.parent / "config"
        )
        self._detector_config: Optional[Dict[str, Any]] = None
        self._base_knowledge: Optional[Dict[str, Any]] = None
        self._state_detection: Optional[Dict[str, Any]] = None
        self._state_knowledge: Dict[str, Optional[Dict[str, Any]]] = {}

    def get_detector_config(self) -> Dict[str, Any]:
        """Detector thresholds and weights (falls back to an empty dict)."""
        if self._detector_config is None:
            try:
                cfg = self._load_config("detector_config.json")
                if not isinstance(cfg, dict):
                    raise ValueError("detector_config must be a dict")
                self._detector_config = cfg
            except Exception as e:
                logging.getLogger(__name__).warning(
                    f"Detector config missing or invalid, using defaults: {e}"
                )
                self._detector_config = {}
        return self._detector_config

    def get_base_knowledge(self) -> Dict[str, Any]:
        """Common field patterns shared by every jurisdiction."""
        if self._base_knowledge is None:
            self._base_knowledge = self._load_config("knowledge/base_patterns.json")
        return self._base_knowledge

    def get_state_knowledge(self, state_code: Optional[str]) -> Optional[Dict[str, Any]]:
        """Jurisdiction overrides for a 2-letter code, or None when none ship.

        Args:
            state_code: two-letter code such as "DC" or "CA" (case-insensitive)

        Returns:
            the parsed overrides file, or None if the state has no file
        """
        if not state_code:
            return None
        key = state_code.strip().lower()
        if key not in self._state_knowledge:
            path = self.config_dir / "knowledge" / "states" / f"{key}.json"
            if path.exists():
                self._state_knowledge[key] = self._load_config(f"knowledge/states/{key}.json")
            else:
                logging.getLogger(__name__).debug(f"No jurisdiction overrides for {state_code}")
                self._state_knowledge[key] = None
        return self._state_knowledge[key]

    def get_state_detection_table(self) -> Dict[str, Any]:
        """Static state lookup table used to guess the jurisdiction."""
        if self._state_detection is None:
            self._state_detection = self._load_config("knowledge/state_detection.json")
        return self._state_detection

    def _load_config(self, filename: str) -> Dict[str, Any]:
        """Read one JSON file relative to the config directory"""
        config_path = self.config_dir / filename

        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Config file is malformed ({filename}): {e}")
        except Exception as e:
            raise RuntimeError(f"Failed to read config file ({filename}): {e}")


# Shared config manager instance
config_manager = ConfigManager()


def get_detector_config() -> Dict[str, Any]:
    """Convenience accessor for the detector settings"""
    return config_manager.get_detector_config()


def get_base_knowledge() -> Dict[str, Any]:
    """Convenience accessor for the common knowledge base"""
    return config_manager.get_base_knowledge()


def get_state_knowledge(state_code: Optional[str]) -> Optional[Dict[str, Any]]:
    """Convenience accessor for jurisdiction overrides"""
    return config_manager.get_state_knowledge(state_code)


def get_state_detection_table() -> Dict[str, Any]:
    """Convenience accessor for the state lookup table"""
    return config_manager.get_state_detection_table()

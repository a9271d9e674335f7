#!/usr/bin/env python3
"""
Configuration Management
Central configuration for the director core - parser, guardrails, memory, oracle
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/settings.yaml"


class Config:
    """
    Configuration manager
    Loads from YAML and provides dot-notation access.
    Missing keys fall back to the built-in defaults.
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self._config: Dict[str, Any] = self._defaults()
        self._loaded = data is not None
        if data:
            _deep_merge(self._config, data)

    def load(self, config_path: str = DEFAULT_CONFIG_PATH) -> 'Config':
        """Load configuration from YAML file"""
        if self._loaded:
            return self

        path = Path(config_path)
        self._config = self._defaults()
        if path.exists():
            with open(path, 'r', encoding='utf-8') as f:
                _deep_merge(self._config, yaml.safe_load(f) or {})
            logger.info(f"[CONFIG] Loaded from {config_path}")
        else:
            logger.info(f"[CONFIG] Using defaults (no config file at {config_path})")

        self._loaded = True
        return self

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get config value by dot notation
        Example: config.get('healing.max_retries') -> 3
        """
        if not self._loaded:
            self.load()

        value: Any = self._config
        for k in key.split('.'):
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default
            if value is None:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set a config value at runtime"""
        if not self._loaded:
            self.load()

        keys = key.split('.')
        config = self._config
        for k in keys[:-1]:
            if not isinstance(config.get(k), dict):
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get entire config section"""
        if not self._loaded:
            self.load()
        return self._config.get(section, {})

    def _defaults(self) -> Dict[str, Any]:
        """Default configuration when no file exists"""
        return {
            "parser": {
                "key_column_limit": 50,
                "known_keys": [
                    "gameObjectName", "scriptName", "scriptContent", "componentType",
                    "name", "parent", "gameobject_name", "script_name",
                    "script_content", "component_type",
                ],
            },
            "dispatcher": {
                "post_checks_enabled": True,
            },
            "guardrails": {
                "ranges": {
                    "create_gameobject": [
                        {"parameter": "x", "min": -10000, "max": 10000},
                        {"parameter": "y", "min": -10000, "max": 10000},
                        {"parameter": "z", "min": -10000, "max": 10000},
                    ],
                    "set_position": [
                        {"parameter": "x", "min": -10000, "max": 10000},
                        {"parameter": "y", "min": -10000, "max": 10000},
                        {"parameter": "z", "min": -10000, "max": 10000},
                    ],
                    "set_scale": [
                        {"parameter": "x", "min": 0.0001, "max": 1000},
                        {"parameter": "y", "min": 0.0001, "max": 1000},
                        {"parameter": "z", "min": 0.0001, "max": 1000},
                    ],
                },
                "verifications": {
                    "create_gameobject": {
                        "query": "get_gameobject_info",
                        "parameters": {"name": "name"},
                        "expect_absent": ["not found", "❌"],
                    },
                    "add_component": {
                        "query": "get_gameobject_info",
                        "parameters": {"name": "gameobject_name"},
                        "expect_contains_parameter": "component_type",
                    },
                },
            },
            "grouper": {
                "max_group_size": 5,
                "query_tools": [
                    "find_gameobjects", "get_scene_info",
                    "get_component_property", "get_gameobject_info",
                ],
                "target_parameters": ["name", "gameobject_name", "material_name"],
            },
            "interceptor": {
                "rules": [],
                "build_wait_sec": 20.0,
                "build_poll_sec": 0.5,
            },
            "planner": {
                "base_complexity": 3,
                "max_complexity": 10,
            },
            "healing": {
                "max_checkpoints": 20,
                "max_retries": 3,
                "max_iterations": 50,
            },
            "memory": {
                "path": "./.runtime/data/long_term_memory.json",
                "capacity": 1000,
            },
            "vector": {
                "path": "./.runtime/data/vector_index.json",
                "dimensions": 128,
                "search_threshold": 0.1,
                "context_threshold": 0.2,
                "min_content_length": 100,
                "patterns": ["*.cs", "*.py", "*.md"],
            },
            "oracle": {
                "provider": "ollama",
                "model": "qwen3:1.7b",
                "host": None,
                "temperature": 0.2,
                "timeout_sec": 60,
            },
            "logging": {
                "level": "INFO",
                "file": "./.runtime/logs/director.log",
            },
            "telemetry": {
                "enabled": True,
                "log_file": "./.runtime/logs/dispatch.jsonl",
            },
        }

    def reload(self, config_path: str = DEFAULT_CONFIG_PATH) -> 'Config':
        """Force reload configuration"""
        self._loaded = False
        return self.load(config_path)

    def save(self, config_path: str = DEFAULT_CONFIG_PATH) -> None:
        """Save current config to file"""
        path = Path(config_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w', encoding='utf-8') as f:
            yaml.dump(self._config, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
        logger.info(f"[CONFIG] Saved to {config_path}")

    @property
    def all(self) -> Dict[str, Any]:
        """Get entire configuration"""
        if not self._loaded:
            self.load()
        return copy.deepcopy(self._config)

    def __repr__(self) -> str:
        return f"Config(loaded={self._loaded}, sections={list(self._config.keys())})"


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


# Global config instance
config = Config()


def get_config() -> Config:
    """Get the global config instance"""
    return config

"""
ConfigManager: dynamic, dot-notation configuration access.

Purpose
-------
- Provide hierarchical, dot-notation access to tunable service values
  (cache TTLs, streak history window, pagination caps, badge milestones).
- Back configuration with YAML defaults from the `config/` directory.
- Allow runtime overrides (used by tests and operational tweaks) without
  touching the YAML defaults.

Responsibilities
----------------
- Load and deep-merge every YAML file under `config/`.
- Serve configuration reads from an in-memory cache with metrics.
- Overlay explicit overrides on top of the YAML defaults.

Key Design Decisions
--------------------
- YAML is the single source for **defaults**; overrides live in memory.
- Reads never raise: a missing key resolves to the caller's default.
- Access before `initialize()` lazily loads the YAML defaults.

Dependencies
------------
- PyYAML for parsing `config/*.yaml`.
- `src.core.config.config.Config` for the config directory location.
- `src.core.logging.logger.get_logger` for structured logging.
"""

from __future__ import annotations

import copy
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, MutableMapping, Optional

import yaml

from src.core.config.config import Config
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


_MISSING = object()


@dataclass(slots=True)
class ConfigMetrics:
    gets: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    overrides_applied: int = 0
    errors: int = 0
    total_get_time_ms: float = 0.0


class ConfigManager:
    """
    Dynamic configuration management with YAML defaults and overrides.

    Features
    --------
    - Hierarchical config access with dot notation (e.g. `"progress.cache.ttl_seconds"`).
    - Deep-merged YAML defaults loaded once per process.
    - In-memory overrides for hot changes and tests.
    """

    _defaults: Dict[str, Any] = {}
    _cache: Dict[str, Any] = {}
    _overrides: Dict[str, Any] = {}
    _initialized: bool = False
    _config_dir: Optional[Path] = None
    _metrics: ConfigMetrics = ConfigMetrics()

    # =========================================================================
    # YAML LOADING & DEFAULTS
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: MutableMapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)  # type: ignore[index]
            else:
                target[key] = copy.deepcopy(value)

    @classmethod
    def _load_yaml_configs(cls, config_dir: Path) -> None:
        """Recursively load all YAML config files from `config_dir` into `_defaults`."""
        cls._defaults = {}

        if not config_dir.exists():
            logger.warning(
                "Config directory not found; using built-in defaults only",
                extra={"config_dir": str(config_dir)},
            )
            return

        yaml_files = sorted(config_dir.rglob("*.yaml")) + sorted(config_dir.rglob("*.yml"))
        loaded_count = 0

        for yaml_file in yaml_files:
            relative = str(yaml_file.relative_to(config_dir))
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                logger.warning(
                    "Failed to load YAML config",
                    extra={
                        "file": relative,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                    exc_info=True,
                )
                continue

            if isinstance(data, dict):
                cls._deep_merge_dict(cls._defaults, data)
                loaded_count += 1
                logger.debug("Loaded YAML config", extra={"file": relative})
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={"file": relative, "root_type": type(data).__name__},
                )

        logger.info(
            "YAML configs loaded",
            extra={
                "yaml_file_count": loaded_count,
                "top_level_keys": sorted(cls._defaults.keys()),
            },
        )

    @classmethod
    def _rebuild_cache(cls) -> None:
        cache: Dict[str, Any] = copy.deepcopy(cls._defaults)
        for key, value in cls._overrides.items():
            cls._assign(cache, key, value)
        cls._cache = cache

    @staticmethod
    def _assign(target: Dict[str, Any], key: str, value: Any) -> None:
        parts = key.split(".")
        node = target
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value

    # =========================================================================
    # INITIALIZATION
    # =========================================================================

    @classmethod
    def initialize(cls, config_dir: Optional[Path] = None) -> None:
        """
        Load YAML defaults (idempotent unless a different directory is given).

        Parameters
        ----------
        config_dir:
            Directory holding `*.yaml` files. Defaults to `Config.CONFIG_DIR`.
        """
        target_dir = Path(config_dir) if config_dir else Path(Config.CONFIG_DIR)
        if cls._initialized and cls._config_dir == target_dir:
            return

        cls._config_dir = target_dir
        cls._load_yaml_configs(target_dir)
        cls._rebuild_cache()
        cls._initialized = True

    @classmethod
    def reset(cls) -> None:
        """Drop overrides and force a reload on next access."""
        cls._overrides = {}
        cls._cache = {}
        cls._defaults = {}
        cls._initialized = False
        cls._config_dir = None
        cls._metrics = ConfigMetrics()

    # =========================================================================
    # READS
    # =========================================================================

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Examples
        --------
        >>> ttl = ConfigManager.get("progress.cache.ttl_seconds", 300)
        >>> window = ConfigManager.get("progress.streak.history_window")
        """
        start_time = time.perf_counter()
        cls._metrics.gets += 1

        if not cls._initialized:
            cls.initialize()

        try:
            value: Any = cls._cache
            for part in key.split("."):
                if not isinstance(value, dict):
                    value = _MISSING
                    break
                value = value.get(part, _MISSING)
                if value is _MISSING:
                    break

            if value is _MISSING or value is None:
                cls._metrics.cache_misses += 1
                return default

            cls._metrics.cache_hits += 1
            return value
        finally:
            cls._metrics.total_get_time_ms += (time.perf_counter() - start_time) * 1000

    @classmethod
    def get_all_keys(cls) -> List[str]:
        if not cls._initialized:
            cls.initialize()
        return list(cls._cache.keys())

    # =========================================================================
    # OVERRIDES
    # =========================================================================

    @classmethod
    def set_override(cls, key: str, value: Any) -> None:
        """Overlay a value on top of the YAML defaults."""
        if not cls._initialized:
            cls.initialize()

        cls._overrides[key] = value
        cls._rebuild_cache()
        cls._metrics.overrides_applied += 1

        logger.info(
            "Configuration override applied",
            extra={"config_key": key, "value_type": type(value).__name__},
        )

    @classmethod
    def clear_overrides(cls) -> None:
        cls._overrides = {}
        if cls._initialized:
            cls._rebuild_cache()

    # =========================================================================
    # METRICS
    # =========================================================================

    @classmethod
    def get_metrics(cls) -> Dict[str, Any]:
        snapshot = asdict(cls._metrics)
        snapshot["cached_top_level_keys"] = len(cls._cache)
        snapshot["overrides"] = len(cls._overrides)
        return snapshot

"""
Logging for the table source, built on loguru.

Every class logs through ``LoggerMixin``, which binds its class name as the
``component``. Sinks filter on that component, so a noisy part of a run (the
per-connection lines of SourceDatabase, say) can be quieted without losing
debug output elsewhere.
"""

import sys
from pathlib import Path
from typing import Callable, Dict

from loguru import logger

from .config import LoggingConfig

ROOT_COMPONENT = "tablesource"


def component_filter(default_level: str, component_levels: Dict[str, str]) -> Callable[[dict], bool]:
    """
    Build a sink filter applying per-component minimum levels.

    Components without an entry in ``component_levels`` use ``default_level``.
    """
    default_no = logger.level(default_level.upper()).no
    thresholds = {name: logger.level(level.upper()).no for name, level in component_levels.items()}

    def _filter(record: dict) -> bool:
        component = record["extra"].get("component", ROOT_COMPONENT)
        return record["level"].no >= thresholds.get(component, default_no)

    return _filter


def setup_logging(config: LoggingConfig):
    """Install the stderr sink and, when configured, a rotating file sink."""
    logger.remove()
    logger.configure(extra={"component": ROOT_COMPONENT})

    # sinks take every level; the component filter decides
    level_filter = component_filter(config.level, config.component_levels)

    # stdout may carry extracted records
    logger.add(
        sys.stderr,
        level=0,
        filter=level_filter,
        format=config.format,
        colorize=True,
        backtrace=True,
        diagnose=False
    )

    if config.file_path:
        Path(config.file_path).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            config.file_path,
            level=0,
            filter=level_filter,
            format=config.format,
            rotation=config.rotation,
            retention=config.retention,
            compression="zip",
            backtrace=True,
            diagnose=False
        )

    logger.debug(f"Logging initialized at {config.level}")
    for component, level in sorted(config.component_levels.items()):
        logger.debug(f"Component {component} logs at {level}")


def get_logger(name: str):
    """Get a logger bound to a component name"""
    return logger.bind(component=name)


class LoggerMixin:
    """Mixin giving a class a logger bound to its class name"""

    @property
    def logger(self):
        return get_logger(self.__class__.__name__)

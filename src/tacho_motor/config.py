"""
Configuration loading and logging setup.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional, Union

import yaml
from loguru import logger

from .models import MotorConfig


def load_config(path: Union[str, Path]) -> MotorConfig:
    """
    Load a motor configuration from a YAML file.

    The file may hold the fields at top level or under a ``motor:`` section.

    Args:
        path: Path to configuration YAML file

    Returns:
        Validated motor configuration
    """
    path = Path(path)
    if not path.exists():
        logger.error(f"Config file not found: {path}")
        raise FileNotFoundError(path)

    with open(path, 'r') as f:
        data = yaml.safe_load(f) or {}

    if isinstance(data, dict) and "motor" in data:
        data = data["motor"]

    if not isinstance(data, dict):
        logger.error(f"Config file {path} does not hold a mapping")
        raise ValueError(f"Expected a mapping in {path}, got {type(data).__name__}")

    config = MotorConfig(**data)
    logger.info(f"Configuration loaded from {path}")
    return config


def setup_logging(verbose: bool = False, log_dir: Optional[Path] = None) -> None:
    """Configure logging."""
    logger.remove()  # Remove default handler

    level = "DEBUG" if verbose else "INFO"

    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=level,
        colorize=True
    )

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / "tacho_motor_{time}.log",
            rotation="10 MB",
            retention="7 days",
            level="DEBUG"
        )

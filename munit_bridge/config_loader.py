"""Loader for munit-bridge.yaml configuration files."""

import asyncio
from pathlib import Path

import yaml
from pydantic import ValidationError

from munit_bridge.config import BridgeConfig

CONFIG_FILE_NAME = "munit-bridge.yaml"


async def load_bridge_config(path: Path) -> BridgeConfig:
    """Load and validate a bridge configuration file.

    Args:
        path: Path to the YAML configuration

    Returns:
        Validated configuration

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is empty, not valid YAML or fails validation

    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    content = await asyncio.to_thread(path.read_text, encoding="utf-8")

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        raise ValueError(f"Empty config file: {path}")

    try:
        return BridgeConfig.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid config schema in {path}: {e}") from e

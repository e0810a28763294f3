"""Configuration models for the bridge."""

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Literal

from pydantic import Field

from munit_bridge.models.base import Model


class CatalogueSettings(Model):
    """Where the test catalogue comes from."""

    source: Literal["language-server", "workspace"] = Field(
        default="workspace", description="Catalogue source kind"
    )
    options: Mapping[str, Any] = Field(
        default_factory=lambda: {"root": "."},
        description="Configuration of the catalogue source",
    )


class SessionSettings(Model):
    """Which session plugin receives the runner scripts."""

    provider: str = Field(..., description="Session key (fifo, remote)")
    options: Mapping[str, Any] = Field(
        default_factory=dict, description="Configuration of the session plugin"
    )


class BridgeConfig(Model):
    """Complete bridge configuration loaded from munit-bridge.yaml."""

    catalogue: CatalogueSettings = Field(default_factory=CatalogueSettings)
    session: SessionSettings | None = None
    poll_interval: float = Field(
        default=0.25, gt=0, description="Seconds between result file checks"
    )
    timeout: float | None = Field(
        default=None, gt=0, description="Result wait limit in seconds, none to wait"
    )
    workdir: Path | None = Field(
        default=None, description="Parent of the private per-run directory"
    )
    watch_paths: Sequence[Path] = Field(
        default_factory=lambda: [Path(".")],
        description="Directories watched for Magik source changes",
    )

"""Configuration helpers for the heatmap engine."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

EXECUTION_MODES = ("serial", "threads", "spark")


@dataclass(frozen=True)
class HeatmapConfig:
    """Density kernel, grid and thresholding parameters."""

    grid_size: int = 256
    significance_threshold: float = 0.05  # fraction of peak density
    sigma_divisor: float = 2.0  # sigma = radius / sigma_divisor
    padding_fraction: float = 0.1
    default_radius: float = 50.0  # meters
    point_chunk_size: int = 4096

    def validate(self) -> "HeatmapConfig":
        if self.grid_size < 2:
            raise ValueError(f"grid_size must be at least 2, got {self.grid_size}.")
        if not 0.0 <= self.significance_threshold < 1.0:
            raise ValueError(
                f"significance_threshold must be in [0, 1), got {self.significance_threshold}."
            )
        if not self.sigma_divisor > 0:
            raise ValueError(f"sigma_divisor must be positive, got {self.sigma_divisor}.")
        if not self.padding_fraction >= 0:
            raise ValueError(f"padding_fraction must be non-negative, got {self.padding_fraction}.")
        if self.point_chunk_size < 1:
            raise ValueError(f"point_chunk_size must be positive, got {self.point_chunk_size}.")
        validate_radius(self.default_radius)
        return self


@dataclass(frozen=True)
class ExecutionConfig:
    """How grid rows are scheduled."""

    mode: str = "serial"  # serial | threads | spark
    max_workers: Optional[int] = None
    spark_master: str = "local[*]"
    spark_partitions: int = 8


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class AppConfig:
    """Aggregated configuration model."""

    heatmap: HeatmapConfig = field(default_factory=HeatmapConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def validate_radius(radius: float) -> float:
    radius = float(radius)
    if not math.isfinite(radius) or radius <= 0:
        raise ValueError(f"Kernel radius must be a positive number of meters, got {radius}.")
    return radius


def load_config(path: str | Path) -> AppConfig:
    """Parse a YAML config file into an AppConfig dataclass."""

    raw = _load_yaml(path)
    heatmap_cfg = raw.get("heatmap") or {}
    execution_cfg = raw.get("execution") or {}
    logging_cfg = raw.get("logging") or {}

    heatmap = HeatmapConfig(
        grid_size=int(heatmap_cfg.get("grid_size", 256)),
        significance_threshold=float(heatmap_cfg.get("significance_threshold", 0.05)),
        sigma_divisor=float(heatmap_cfg.get("sigma_divisor", 2.0)),
        padding_fraction=float(heatmap_cfg.get("padding_fraction", 0.1)),
        default_radius=float(heatmap_cfg.get("default_radius", 50.0)),
        point_chunk_size=int(heatmap_cfg.get("point_chunk_size", 4096)),
    ).validate()

    mode = str(execution_cfg.get("mode", "serial")).lower()
    if mode not in EXECUTION_MODES:
        raise ValueError(f"Unknown execution mode {mode!r}; expected one of {', '.join(EXECUTION_MODES)}.")
    max_workers = execution_cfg.get("max_workers")
    execution = ExecutionConfig(
        mode=mode,
        max_workers=int(max_workers) if max_workers is not None else None,
        spark_master=str(execution_cfg.get("spark_master", "local[*]")),
        spark_partitions=int(execution_cfg.get("spark_partitions", 8)),
    )
    logging_config = LoggingConfig(level=str(logging_cfg.get("level", "INFO")).upper())
    return AppConfig(heatmap=heatmap, execution=execution, logging=logging_config)


def configure_logging(config: AppConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.logging.level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_yaml(path: str | Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a top-level mapping.")
    return data

"""Schedulers for independent grid rows."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, TypeVar

from pyspark.sql import SparkSession

from geoheat.common.config import EXECUTION_MODES, ExecutionConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SerialRowExecutor:
    """Runs rows one after another in the calling thread."""

    def map_rows(self, fn: Callable[[int], T], rows: Sequence[int]) -> List[T]:
        return [fn(row) for row in rows]


class ThreadedRowExecutor:
    """Fans rows out over a thread pool; numpy releases the GIL in the kernel."""

    def __init__(self, max_workers: Optional[int] = None) -> None:
        self.max_workers = max_workers

    def map_rows(self, fn: Callable[[int], T], rows: Sequence[int]) -> List[T]:
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            return list(pool.map(fn, rows))


class SparkRowExecutor:
    """Distributes row indices across a Spark cluster."""

    def __init__(self, spark: SparkSession, partitions: int = 8) -> None:
        self.spark = spark
        self.partitions = max(int(partitions), 1)

    def map_rows(self, fn: Callable[[int], T], rows: Sequence[int]) -> List[T]:
        rows = list(rows)
        if not rows:
            return []
        slices = min(self.partitions, len(rows))
        rdd = self.spark.sparkContext.parallelize(rows, slices)
        return rdd.map(fn).collect()


def make_executor(config: ExecutionConfig, spark: SparkSession | None = None):
    """Build the row executor named by ``config.mode``."""

    if config.mode == "serial":
        return SerialRowExecutor()
    if config.mode == "threads":
        return ThreadedRowExecutor(config.max_workers)
    if config.mode == "spark":
        if spark is None:
            raise RuntimeError("Spark execution requested but no SparkSession was provided.")
        logger.info("Distributing grid rows over Spark (%s partitions)", config.spark_partitions)
        return SparkRowExecutor(spark, config.spark_partitions)
    raise ValueError(f"Unknown execution mode {config.mode!r}; expected one of {', '.join(EXECUTION_MODES)}.")


def spark_session(config: ExecutionConfig, app_name: str = "geoheat") -> SparkSession:
    """Create (or reuse) the SparkSession described by ``config``."""

    return (
        SparkSession.builder.appName(app_name)
        .master(config.spark_master)
        .config("spark.ui.enabled", "false")
        .getOrCreate()
    )

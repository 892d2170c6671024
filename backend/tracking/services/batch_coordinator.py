"""Batch status updates across many selected materials.

This module provides the BatchUpdateCoordinator class, which applies one
target status to a set of ``"{order_id}-{index}"`` selection keys by running
an independent transition per key, concurrently, and reporting each outcome.
"""

import asyncio
import logging
from collections.abc import Iterable, MutableSet
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable

from tracking.core.config import settings
from tracking.fulfillment.errors import MaterialNotFoundError, TrackingError
from tracking.fulfillment.models import MaterialRecord, MaterialStatus
from tracking.fulfillment.transition_engine import StatusTransitionEngine

logger = logging.getLogger(__name__)


def selection_key(order_id: str, material_index: int) -> str:
    return f"{order_id}-{material_index}"


def parse_selection_key(key: str) -> tuple[str, int]:
    """Split a selection key into (order_id, material_index).

    Splits on the last dash so order ids that contain dashes still parse.

    Raises:
        MaterialNotFoundError: If the key does not address a material
    """
    order_id, sep, index = key.rpartition("-")
    # int() still rejects digit strings past its length limit
    if not sep or not order_id or not index.isdecimal():
        raise MaterialNotFoundError(f"Malformed selection key '{key[:80]}'")
    try:
        return order_id, int(index)
    except ValueError:
        raise MaterialNotFoundError(f"Malformed selection key '{key[:80]}'") from None


@dataclass
class BatchUpdateConfig:
    """Configuration for batch updates.

    Attributes:
        max_concurrent: Maximum number of transitions in flight at once
    """

    max_concurrent: int = field(default_factory=lambda: settings.BATCH_MAX_CONCURRENT)


@dataclass
class BatchFailure:
    key: str
    kind: str
    error: str


@dataclass
class BatchSuccess:
    key: str
    material: MaterialRecord


@dataclass
class BatchUpdateResult:
    """Outcome of a batch update.

    Attributes:
        total: Number of distinct keys attempted
        succeeded: Number of keys whose transition committed
        failed: Number of keys that failed
        successes: Committed keys with the stored material
        failures: Failed keys with error kind and message
        duration_seconds: Wall time of the whole batch
    """

    total: int
    succeeded: int
    failed: int
    status: MaterialStatus
    successes: list[BatchSuccess] = field(default_factory=list)
    failures: list[BatchFailure] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def summary(self) -> str:
        return f"{self.succeeded} succeeded, {self.failed} failed"


class BatchUpdateCoordinator:
    """Applies one status to many materials, each key independently.

    A failing key never stops the others and nothing is rolled back; the
    caller decides whether to retry the failed subset.
    """

    def __init__(
        self,
        engine: StatusTransitionEngine,
        config: BatchUpdateConfig | None = None,
    ):
        """Initialize the coordinator.

        Args:
            engine: Transition engine each key is delegated to
            config: Default batch configuration
        """
        self.engine = engine
        self.config = config or BatchUpdateConfig()

    async def apply_batch(
        self,
        selection_keys: Iterable[str],
        new_status: str | MaterialStatus,
        config: BatchUpdateConfig | None = None,
        progress_callback: Callable[[dict], Awaitable] | None = None,
    ) -> BatchUpdateResult:
        """Transition every selected material to ``new_status``.

        Args:
            selection_keys: ``"{order_id}-{index}"`` keys; a mutable set is
                cleared once the batch has settled
            new_status: Target material status
            config: Optional per-call configuration
            progress_callback: Optional async callback for each settled key

        Returns:
            BatchUpdateResult with success/failure breakdown

        Raises:
            InvalidStatusError: new_status is not a material status; no key
                is attempted
        """
        status = MaterialStatus.parse(new_status)
        config = config or self.config
        start_time = datetime.now()

        keys = list(dict.fromkeys(selection_keys))
        total = len(keys)
        completed = 0
        successes: list[BatchSuccess] = []
        failures: list[BatchFailure] = []

        semaphore = asyncio.Semaphore(max(1, config.max_concurrent))

        async def process_one(key: str) -> tuple[str, MaterialRecord | Exception]:
            async with semaphore:
                try:
                    order_id, index = parse_selection_key(key)
                    return key, await self.engine.transition(order_id, index, status)
                except Exception as e:
                    return key, e

        tasks = [asyncio.ensure_future(process_one(key)) for key in keys]

        try:
            for task in asyncio.as_completed(tasks):
                key, outcome = await task
                completed += 1

                if isinstance(outcome, Exception):
                    if isinstance(outcome, TrackingError):
                        kind, message = outcome.kind, outcome.message
                        logger.warning(f"Batch update of {key} to {status.value} failed: {message}")
                    else:
                        kind, message = "error", str(outcome) or type(outcome).__name__
                        logger.error(
                            f"Batch update of {key} to {status.value} crashed: {message}",
                            exc_info=outcome,
                        )
                    failures.append(BatchFailure(key=key, kind=kind, error=message))
                    update = {"success": False, "error": message, "kind": kind}
                else:
                    successes.append(BatchSuccess(key=key, material=outcome))
                    update = {"success": True}

                if progress_callback:
                    await progress_callback({
                        "type": "batch_progress",
                        "completed": completed,
                        "total": total,
                        "key": key,
                        **update,
                    })
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        if isinstance(selection_keys, MutableSet):
            selection_keys.clear()

        duration = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Batch update to {status.value}: {len(successes)} succeeded, "
            f"{len(failures)} failed in {duration:.2f}s"
        )

        return BatchUpdateResult(
            total=total,
            succeeded=len(successes),
            failed=len(failures),
            status=status,
            successes=successes,
            failures=failures,
            duration_seconds=duration,
        )

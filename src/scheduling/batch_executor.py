from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Sequence

from calendar_filler.models import BatchTask, TaskOutcome

logger = logging.getLogger(__name__)

Dispatch = Callable[[BatchTask], Awaitable[str]]


class BatchExecutor:
    """
    Runs tasks in fixed-size groups: concurrently within a group, strictly
    one group after another with a cooldown in between.

    Every task is attempted at most once. ``dispatch`` returns the external
    identifier of the created item or raises; either way the outcome is
    written onto the task. Tasks that are no longer PENDING when they reach
    the executor are left untouched.
    """

    def __init__(
        self,
        dispatch: Dispatch,
        group_size: int = 3,
        cooldown_s: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if group_size < 1:
            raise ValueError("group_size must be positive")
        self.dispatch = dispatch
        self.group_size = group_size
        self.cooldown_s = cooldown_s
        self._sleep = sleep

    def partition(self, tasks: Sequence[BatchTask]) -> List[List[BatchTask]]:
        return [list(tasks[i : i + self.group_size]) for i in range(0, len(tasks), self.group_size)]

    async def run(self, tasks: Sequence[BatchTask]) -> Sequence[BatchTask]:
        groups = self.partition(tasks)
        logger.info(f"Creating {len(tasks)} events in {len(groups)} group(s) of up to {self.group_size}")

        for n, group in enumerate(groups, start=1):
            dispatched = any(t.outcome is TaskOutcome.PENDING for t in group)
            try:
                await self._run_group(group)
            except Exception as e:
                logger.error(f"Batch {n} failed completely: {e}")
                for task in group:
                    if task.outcome is TaskOutcome.PENDING:
                        task.mark_failed(f"batch dispatch failed: {e}")

            created = sum(t.outcome is TaskOutcome.CREATED for t in tasks)
            failed = sum(t.outcome is TaskOutcome.FAILED for t in tasks)
            logger.info(f"Batch {n}/{len(groups)} completed. Success: {created}, Failed: {failed}")

            # a group with nothing to dispatch never touched the store
            if dispatched and n < len(groups) and self.cooldown_s > 0:
                logger.info(f"Waiting {self.cooldown_s:.1f}s before next batch...")
                await self._sleep(self.cooldown_s)

        return tasks

    async def _run_group(self, group: List[BatchTask]) -> None:
        pending = [t for t in group if t.outcome is TaskOutcome.PENDING]
        if not pending:
            return
        # shielded so tasks already handed to the store still record their
        # outcome if the caller stops waiting
        await asyncio.shield(asyncio.gather(*(self._attempt(t) for t in pending)))

    async def _attempt(self, task: BatchTask) -> None:
        try:
            external_id = await self.dispatch(task)
        except Exception as e:
            logger.error(f"Failed to create event {task.index + 1}: {e}")
            task.mark_failed(str(e) or e.__class__.__name__)
        else:
            task.mark_created(external_id)

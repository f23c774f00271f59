# -*- coding: utf-8 -*-
"""
Background task registry for per-message pipelines.

Every inbound message is processed in its own task so that a slow translation
never blocks polling. Failed tasks are logged and never propagate.
"""
import asyncio
from typing import Awaitable, Set

from loguru import logger


class TaskManager:
    def __init__(self):
        self._active_tasks: Set[asyncio.Task] = set()

    @property
    def active_count(self) -> int:
        """Get the number of currently active background tasks"""
        return len(self._active_tasks)

    def spawn(self, coro: Awaitable, name: str = "unknown") -> asyncio.Task:
        """
        Run a coroutine as a background task.

        Args:
            coro: the coroutine to run
            name: name of the task for logging purposes
        """
        task = asyncio.create_task(self._execute(coro, name), name=name)

        # Keep a reference to prevent garbage collection
        self._active_tasks.add(task)
        task.add_done_callback(self._active_tasks.discard)

        logger.debug(f"Started {name} task (Active tasks: {len(self._active_tasks)})")
        return task

    @staticmethod
    async def _execute(coro: Awaitable, name: str):
        try:
            result = await coro
            logger.debug(f"Completed {name} task")
            return result
        except asyncio.CancelledError:
            logger.warning(f"Cancelled {name} task")
            raise
        except Exception as e:
            logger.exception(f"Error in {name} task: {e}")

    async def wait_for_all(self, timeout: float = 30.0) -> bool:
        """
        Wait for all active tasks to complete, with timeout.
        Useful for graceful shutdown.

        Returns:
            True if all tasks completed, False if timeout occurred
        """
        if not self._active_tasks:
            return True

        logger.info(f"Waiting for {len(self._active_tasks)} active tasks to complete...")

        _, pending = await asyncio.wait(set(self._active_tasks), timeout=timeout)
        if pending:
            logger.warning(
                f"Timeout waiting for tasks to complete, {len(pending)} tasks still running"
            )
            return False

        logger.info("All tasks completed successfully")
        return True

    def cancel_all(self) -> None:
        """Cancel all active tasks. Use with caution."""
        if not self._active_tasks:
            return

        logger.warning(f"Cancelling {len(self._active_tasks)} active tasks...")

        for task in self._active_tasks.copy():
            if not task.done():
                task.cancel()

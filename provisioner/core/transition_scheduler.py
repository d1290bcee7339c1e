"""
Transition Scheduler for delayed server state changes

Background transitions run as tasks on the application's event loop instead
of one thread per server. Pending transitions are kept in a table keyed by
server id, which enforces that a server has at most one transition waiting
at any time and lets shutdown cancel everything in bulk.

The scheduler is bound to one event loop: the loop it was created on, or
the loop of its first caller. Callers on other threads (including ones
running their own short-lived loop) hand their work over to the bound loop,
so a transition never dies with the loop of the caller that scheduled it.

Usage:
    >>> scheduler = TransitionScheduler()
    >>> scheduler.schedule(server_id, 35.0, engine.complete_build, name="build")
    >>> ...
    >>> await scheduler.cancel_all()
"""

import asyncio
import threading
from typing import Callable, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from provisioner.config.logging import bind_server_context, get_logger
from provisioner.config.settings import Settings, settings as default_settings
from provisioner.exceptions import InternalError

logger = get_logger(__name__)

TransitionAction = Callable[[UUID], None]


class TransitionPolicy(BaseModel):
    """Delays, in seconds, before each background transition fires."""

    build_delay: float = Field(default=35.0, ge=0.0, description="BUILDING -> RUNNING")
    teardown_delay: float = Field(default=30.0, ge=0.0, description="TERMINATING -> DESTROYED")
    purge_delay: float = Field(default=30.0, ge=0.0, description="DESTROYED -> removed")

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "TransitionPolicy":
        settings = settings or default_settings
        return cls(
            build_delay=settings.build_delay_seconds,
            teardown_delay=settings.teardown_delay_seconds,
            purge_delay=settings.purge_delay_seconds,
        )


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class TransitionScheduler:
    """
    Runs one delayed action per server id on a single bound event loop.

    Actions are synchronous and short; the delay is the only thing that
    suspends, and it suspends only the transition's own task. schedule()
    may be called from any thread.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        """
        Initialize transition scheduler.

        Args:
            loop: Event loop that runs the transitions. Defaults to the loop
                running at construction time, or the first caller's loop.
        """
        self._loop = loop or _running_loop()
        # None marks a slot reserved by another thread whose task has not started yet
        self._tasks: Dict[UUID, Optional[asyncio.Task]] = {}
        self._lock = threading.Lock()
        self._closed = False

    @property
    def loop(self) -> Optional[asyncio.AbstractEventLoop]:
        return self._loop

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._tasks)

    @property
    def closed(self) -> bool:
        return self._closed

    def pending(self, server_id: UUID) -> bool:
        with self._lock:
            return server_id in self._tasks

    def schedule(
        self,
        server_id: UUID,
        delay: float,
        action: TransitionAction,
        name: str = "transition",
    ) -> None:
        """
        Schedule action(server_id) to run after delay seconds.

        Raises:
            InternalError: If the scheduler is shut down, has no usable event
                loop, or a transition is already pending for this server
        """
        details = {"server_id": str(server_id), "transition": name}

        with self._lock:
            if self._closed:
                raise InternalError("Transition scheduler is shut down", details=details)

            if self._loop is None:
                self._loop = _running_loop()
            loop = self._loop
            if loop is None or loop.is_closed():
                raise InternalError("Transition scheduler has no running event loop", details=details)

            if server_id in self._tasks:
                logger.error("transition_already_pending", server_id=str(server_id), transition=name)
                raise InternalError(
                    f"A transition is already pending for server {server_id}",
                    details=details,
                )

            on_loop = _running_loop() is loop
            if on_loop:
                self._tasks[server_id] = loop.create_task(
                    self._run(server_id, delay, action, name),
                    name=f"{name}:{server_id}",
                )
            else:
                self._tasks[server_id] = None

        if not on_loop:
            try:
                loop.call_soon_threadsafe(self._start, server_id, delay, action, name)
            except RuntimeError:
                # the bound loop closed between the check and the hand-over
                with self._lock:
                    self._tasks.pop(server_id, None)
                raise InternalError("Transition scheduler has no running event loop", details=details)

        logger.debug(
            "transition_scheduled",
            server_id=str(server_id),
            transition=name,
            delay_seconds=delay,
        )

    def _start(self, server_id: UUID, delay: float, action: TransitionAction, name: str) -> None:
        """Create the task for a slot reserved from another thread. Runs on the bound loop."""
        with self._lock:
            if self._closed or server_id not in self._tasks or self._tasks[server_id] is not None:
                return
            self._tasks[server_id] = self._loop.create_task(
                self._run(server_id, delay, action, name),
                name=f"{name}:{server_id}",
            )

    async def _run(
        self,
        server_id: UUID,
        delay: float,
        action: TransitionAction,
        name: str,
    ) -> None:
        try:
            await asyncio.sleep(delay)
        finally:
            # Release the slot before the action runs so it can schedule a follow-up
            with self._lock:
                if self._tasks.get(server_id) is asyncio.current_task():
                    del self._tasks[server_id]

        with bind_server_context(server_id, name):
            try:
                action(server_id)
            except Exception as e:
                logger.error(
                    "transition_failed",
                    error=str(e),
                    exc_info=True,
                )

    async def cancel_all(self, timeout: float = 10.0) -> int:
        """
        Cancel every pending transition and refuse new ones.

        Args:
            timeout: Seconds to wait for cancelled tasks to finish

        Returns:
            Number of transitions cancelled
        """
        with self._lock:
            self._closed = True
            cancelled = len(self._tasks)
            tasks = [task for task in self._tasks.values() if task is not None]
            self._tasks.clear()

        if not tasks:
            return cancelled

        logger.info("cancelling_pending_transitions", count=cancelled)

        if _running_loop() is self._loop:
            await self._cancel_tasks(tasks, timeout)
        else:
            future = asyncio.run_coroutine_threadsafe(self._cancel_tasks(tasks, timeout), self._loop)
            await asyncio.wrap_future(future)

        return cancelled

    async def _cancel_tasks(self, tasks: List[asyncio.Task], timeout: float) -> None:
        for task in tasks:
            task.cancel()

        try:
            await asyncio.wait_for(
                asyncio.gather(*tasks, return_exceptions=True),
                timeout=timeout,
            )
            logger.info("pending_transitions_cancelled", count=len(tasks))
        except asyncio.TimeoutError:
            logger.warning("pending_transitions_cancel_timeout", count=len(tasks))

import asyncio
import logging
import math
import time
import uuid
from collections import defaultdict
from typing import Any

from motion_gateway.bus import EventBus
from motion_gateway.errors import DriveBusyError
from motion_gateway.hw.actuator import Actuator
from motion_gateway.messages import DriveCommand, DriveEvent, DriveState, OverlapPolicy

logger = logging.getLogger(__name__)

DRIVE_RESOURCE = "drive"

_FINAL_STATES = (DriveState.COMPLETED, DriveState.CANCELLED, DriveState.FAILED)


class DriveTask:
    """Handle of one background drive execution."""

    def __init__(self, command: DriveCommand) -> None:
        self.id = str(uuid.uuid4())[:8]
        self.command = command
        self.state = DriveState.STARTED
        self.ticks = 0
        self.error: str | None = None
        self.started_at = time.monotonic()
        self._cancel = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def cancel_requested(self) -> bool:
        return self._cancel.is_set()

    @property
    def done(self) -> bool:
        return self.state in _FINAL_STATES

    def cancel(self) -> None:
        self._cancel.set()

    async def wait(self) -> None:
        if self._task is not None:
            await self._task

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "state": self.state.value,
            "ticks": self.ticks,
            "elapsedMs": int((time.monotonic() - self.started_at) * 1000),
            "command": self.command.as_dict(),
        }


class DriveNode:
    def __init__(
        self,
        actuator: Actuator,
        bus: EventBus | None = None,
        tick_interval_s: float = 0.05,
        policy: OverlapPolicy = OverlapPolicy.CONCURRENT,
    ) -> None:
        self.actuator = actuator
        self.bus = bus
        self.tick_interval_s = tick_interval_s
        self.policy = policy
        # resource -> task id -> task
        self._active: dict[str, dict[str, DriveTask]] = defaultdict(dict)

    def active(self) -> list[DriveTask]:
        return [t for t in self._active[DRIVE_RESOURCE].values() if not t.cancel_requested]

    def snapshot(self) -> list[dict[str, Any]]:
        return [t.as_dict() for t in self.active()]

    def start(self, cmd: DriveCommand) -> DriveTask:
        """Spawn the drive loop on the running event loop and return without waiting for it."""
        running = self.active()
        if running:
            if self.policy == OverlapPolicy.REJECT:
                raise DriveBusyError(details=f"Drive task {running[0].id} is still running")
            if self.policy == OverlapPolicy.REPLACE:
                for old in running:
                    logger.info("Drive task %s superseded", old.id)
                    old.cancel()

        task = DriveTask(cmd)
        self._active[DRIVE_RESOURCE][task.id] = task
        task._task = asyncio.create_task(self._run(task), name=f"drive-{task.id}")
        return task

    def cancel_all(self, reason: str = "stop requested") -> int:
        running = self.active()
        for task in running:
            logger.info("Cancelling drive %s: %s", task.id, reason)
            task.cancel()
        return len(running)

    async def shutdown(self) -> None:
        tasks = list(self._active[DRIVE_RESOURCE].values())
        for task in tasks:
            task.cancel()
        if tasks:
            logger.info("Waiting for %d drive task(s) to stop", len(tasks))
            await asyncio.gather(*(t.wait() for t in tasks), return_exceptions=True)

    async def _run(self, task: DriveTask) -> None:
        cmd = task.command
        logger.info(
            "Starting drive %s: speedX=%s, speedY=%s, duration=%dms, smart=%s",
            task.id, cmd.speed_x, cmd.speed_y, cmd.duration_ms, cmd.smart,
        )
        await self._publish(task)
        task.state = DriveState.RUNNING
        try:
            await self._loop(task)
        except asyncio.CancelledError:
            task.state = DriveState.CANCELLED
            self._forget(task)
            raise
        except Exception as exc:
            # Ответ клиенту уже отправлен, остаётся только лог и событие на шине
            logger.exception("Drive task %s failed after %d ticks", task.id, task.ticks)
            task.state = DriveState.FAILED
            task.error = str(exc)
        else:
            task.state = DriveState.CANCELLED if task.cancel_requested else DriveState.COMPLETED

        self._forget(task)
        logger.info("Drive %s %s after %d ticks", task.id, task.state.value, task.ticks)
        await self._publish(task)

    async def _loop(self, task: DriveTask) -> None:
        cmd = task.command
        loop = asyncio.get_running_loop()
        start = loop.time()
        deadline = start + cmd.duration_ms / 1000.0

        while not task.cancel_requested and loop.time() < deadline:
            self.actuator.drive(cmd.speed_x, cmd.speed_y, cmd.smart)
            task.ticks += 1

            # Next slot on the start + k * tick grid that is at least half a tick away.
            # Slots missed while the loop was stalled are dropped, not replayed.
            slot = math.ceil((loop.time() - start) / self.tick_interval_s + 0.5)
            wake_at = min(start + slot * self.tick_interval_s, deadline)
            try:
                await asyncio.wait_for(task._cancel.wait(), max(0.0, wake_at - loop.time()))
            except asyncio.TimeoutError:
                pass

    def _forget(self, task: DriveTask) -> None:
        self._active[DRIVE_RESOURCE].pop(task.id, None)

    async def _publish(self, task: DriveTask) -> None:
        if self.bus is None:
            return
        event = DriveEvent(
            task_id=task.id,
            state=task.state,
            command=task.command,
            ticks=task.ticks,
            detail=task.error,
        )
        await self.bus.publish_drive_event(event)

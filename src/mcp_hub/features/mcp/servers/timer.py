"""
Serveur MCP de comptes à rebours.

Outils: create-timer, start-timer, stop-timer, list-timers.

Chaque timer en marche possède une tâche asyncio de tick (clé = id du timer).
`stop()` annule toutes ces tâches avant de rendre la main: aucun décrément
n'a lieu après l'arrêt du serveur.
"""
import asyncio
import logging
import time
from typing import Dict, Optional

from pydantic import BaseModel, Field

from ....core.constants import TIMER_TICK_SECONDS
from ....core.jsonrpc import tool_error, tool_result
from ....core.models import CountdownTimer
from ..base import BaseServerInstance

logger = logging.getLogger(__name__)


class CreateTimerArgs(BaseModel):
    name: str = Field(..., min_length=1, description="Name of the timer")
    duration: int = Field(..., ge=1, description="Duration in seconds")


class TimerIdArgs(BaseModel):
    id: str = Field(..., min_length=1, description="ID of the timer")


class TimerServer(BaseServerInstance):
    server_id = "timer"
    display_name = "timer-server"

    def __init__(self, server_id: Optional[str] = None, tick_interval: float = TIMER_TICK_SECONDS):
        self.tick_interval = tick_interval
        self.timers: Dict[str, CountdownTimer] = {}
        self._tick_tasks: Dict[str, asyncio.Task] = {}
        self._last_id = 0
        super().__init__(server_id)

    def _next_id(self) -> str:
        # Horodatage en millisecondes, strictement croissant
        timer_id = max(int(time.time() * 1000), self._last_id + 1)
        self._last_id = timer_id
        return str(timer_id)

    def _register_tools(self) -> None:

        @self._tool("create-timer", "Create a new countdown timer", CreateTimerArgs)
        async def create_timer(args: CreateTimerArgs):
            timer_id = self._next_id()
            self.timers[timer_id] = CountdownTimer(
                id=timer_id,
                name=args.name,
                duration=args.duration,
                remaining=args.duration,
            )
            logger.info(f"Timer créé: {timer_id} ({args.duration}s)")
            return tool_result(f"Timer created successfully with ID: {timer_id}")

        @self._tool("start-timer", "Start a countdown timer", TimerIdArgs)
        async def start_timer(args: TimerIdArgs):
            timer = self.timers.get(args.id)
            if timer is None:
                return tool_error(f"Timer with ID {args.id} not found")
            if timer.is_running:
                return tool_error(f"Timer {args.id} is already running")

            timer.is_running = True
            self._tick_tasks[args.id] = asyncio.create_task(self._tick(timer))
            logger.info(f"Timer démarré: {args.id}")
            return tool_result(f"Timer {args.id} started")

        @self._tool("stop-timer", "Stop a countdown timer", TimerIdArgs)
        async def stop_timer(args: TimerIdArgs):
            error = self.stop_timer(args.id)
            if error:
                return tool_error(error)
            return tool_result(f"Timer {args.id} stopped")

        @self._tool("list-timers", "List all timers")
        async def list_timers(args):
            timers_list = "\n".join(
                f"ID: {timer.id}\nName: {timer.name}\nRemaining: {timer.remaining}s\n"
                f"Status: {'Running' if timer.is_running else 'Stopped'}\n---"
                for timer in self.timers.values()
            )
            return tool_result(timers_list or "No timers found")

    async def _tick(self, timer: CountdownTimer) -> None:
        while True:
            await asyncio.sleep(self.tick_interval)
            if not self._enabled or not timer.is_running:
                return
            if timer.remaining > 0:
                timer.remaining -= 1
            if timer.remaining == 0:
                logger.info(f"⏰ Timer terminé: {timer.id} ({timer.name})")
                timer.is_running = False
                self._tick_tasks.pop(timer.id, None)
                return

    def stop_timer(self, timer_id: str) -> Optional[str]:
        """
        Arrête un timer et annule sa tâche de tick.

        Returns:
            Message d'erreur, ou None si le timer a été arrêté
        """
        timer = self.timers.get(timer_id)
        if timer is None:
            return f"Timer with ID {timer_id} not found"
        if not timer.is_running:
            return f"Timer {timer_id} is not running"

        task = self._tick_tasks.pop(timer_id, None)
        if task is not None:
            task.cancel()
        timer.is_running = False
        logger.info(f"Timer arrêté: {timer_id}")
        return None

    def running_tick_count(self) -> int:
        return len(self._tick_tasks)

    async def _on_stop(self) -> None:
        for timer_id in list(self._tick_tasks):
            self.stop_timer(timer_id)
        for timer in self.timers.values():
            timer.is_running = False

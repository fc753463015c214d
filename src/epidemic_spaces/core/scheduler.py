"""
Scheduler for future commands.

The Scheduler owns simulated time. Modules push (time, Command) pairs and
the host advances time with run_until(); due commands are delivered back to
the module that registered for them.
"""

import heapq
import itertools
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from epidemic_spaces.core.errors import PreconditionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Command:
    """
    Envelope for a scheduled unit of work.

    The Scheduler does not look inside the payload; it only routes by module_id,
    so unrelated command kinds from different modules share one queue.

    Attributes:
        module_id: ID of the module whose handler receives the payload
        payload: Module-specific command (e.g., a PandemicCmd)
    """

    module_id: str
    payload: Any


CommandHandler = Callable[[datetime, Any], None]


class Scheduler:
    """
    Time-ordered, exactly-once command dispatcher.

    Guarantees:
    - Commands are delivered in non-decreasing time order
    - Commands with equal times are delivered in push order
    - Each pushed command is delivered at most once, and exactly once if
      run_until() reaches its time
    """

    def __init__(self, start: datetime) -> None:
        """
        Initialize the scheduler.

        Args:
            start: Simulated time at which the run begins
        """
        self._now = start
        self._queue: List[Tuple[datetime, int, Command]] = []
        self._counter = itertools.count()
        self._handlers: Dict[str, CommandHandler] = {}

    @property
    def now(self) -> datetime:
        """Current simulated time."""
        return self._now

    def register_handler(self, module_id: str, handler: CommandHandler) -> None:
        """
        Register the handler that receives commands for a module.

        Args:
            module_id: Module ID used in Command envelopes
            handler: Callable(now, payload)

        Raises:
            ValueError: If a handler is already registered for module_id
        """
        if module_id in self._handlers:
            raise ValueError(f"Handler for module '{module_id}' already registered")

        self._handlers[module_id] = handler
        logger.debug(f"Registered command handler for module {module_id}")

    def push(self, time: datetime, command: Command) -> None:
        """
        Schedule a command for delivery at or after `time`.

        Args:
            time: When the command is due
            command: The command envelope

        Raises:
            PreconditionError: If time is earlier than the current simulated time
        """
        if time < self._now:
            raise PreconditionError(
                f"Cannot schedule {command} at {time}: simulation is already at {self._now}"
            )

        heapq.heappush(self._queue, (time, next(self._counter), command))
        logger.debug(f"Scheduled {command.module_id} command at {time}")

    def next_time(self) -> Optional[datetime]:
        """Time of the earliest pending command, or None if the queue is empty."""
        if not self._queue:
            return None
        return self._queue[0][0]

    def pending(self) -> List[Tuple[datetime, Command]]:
        """All pending commands in delivery order."""
        return [(time, command) for time, _, command in sorted(self._queue)]

    def __len__(self) -> int:
        return len(self._queue)

    def run_until(self, time: datetime) -> int:
        """
        Advance simulated time, delivering every command due by `time`.

        Commands pushed by handlers during delivery are delivered in the same
        call if they fall due by `time`.

        Args:
            time: Simulated time to advance to

        Returns:
            Number of commands delivered

        Raises:
            PreconditionError: If time moves backwards or a command has no handler
        """
        if time < self._now:
            raise PreconditionError(f"Cannot run backwards from {self._now} to {time}")

        delivered = 0
        while self._queue and self._queue[0][0] <= time:
            due, _, command = heapq.heappop(self._queue)
            self._now = due

            handler = self._handlers.get(command.module_id)
            if handler is None:
                raise PreconditionError(f"No handler registered for module '{command.module_id}'")

            handler(due, command.payload)
            delivered += 1

        self._now = time
        if delivered:
            logger.debug(f"Delivered {delivered} commands, now at {time}")
        return delivered

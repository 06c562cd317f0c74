"""Supervisor running the token renewal and certificate issuance cycles."""

import queue
import threading
from dataclasses import dataclass
from typing import Protocol

from .logging_config import LOGGER


class Cycle(Protocol):
    name: str

    def run(self) -> None: ...


@dataclass
class CycleFailure:
    """First exception raised by a cycle thread."""

    cycle: str
    error: BaseException


class Agent:
    """Runs both cycles as threads and surfaces the first failure on the caller's thread.

    Neither cycle can be cancelled; the agent stops only when one of them
    fails, and the process is expected to exit right after.
    """

    def __init__(self, token_cycle: Cycle, issuance_cycle: Cycle) -> None:
        """Initialize agent.

        Args:
            token_cycle: Token renewal cycle
            issuance_cycle: Certificate issuance cycle
        """
        self.token_cycle = token_cycle
        self.issuance_cycle = issuance_cycle
        self.failures: queue.Queue[CycleFailure] = queue.Queue()
        self.threads: list[threading.Thread] = []

    def _guard(self, cycle: Cycle) -> None:
        try:
            cycle.run()
        except BaseException as e:
            self.failures.put(CycleFailure(cycle=cycle.name, error=e))
        else:
            LOGGER.info("Cycle finished", extra={"cycle": cycle.name})

    def start(self) -> None:
        for cycle in (self.token_cycle, self.issuance_cycle):
            thread = threading.Thread(
                target=self._guard, args=(cycle,), name=cycle.name, daemon=True
            )
            thread.start()
            self.threads.append(thread)

    def wait(self) -> CycleFailure:
        """Block until a cycle fails and return the failure."""
        failure = self.failures.get()
        LOGGER.error("Cycle failed", extra={"cycle": failure.cycle})
        return failure

    def run(self) -> None:
        """Start both cycles and re-raise the first failure.

        Raises:
            BaseException: Whatever the failing cycle raised, SystemExit included
        """
        self.start()
        raise self.wait().error

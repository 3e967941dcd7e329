"""
Poll/push loop.

Each cycle pulls the forwarded port from Gluetun and pushes it to every
configured torrent client in order. A failing backend never stops the others.
The delay before the next cycle depends on whether anything failed:
- delay_success when the pull and every push succeeded
- delay_error when the pull or any push failed

The loop has no terminal state; it runs until the process is stopped.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from .base_client import BasePortClient, PushResult
from .errors import PortPusherError
from .gluetun_client import GluetunClient
from .logger import logger


@dataclass
class CycleResult:
    """Outcome of one pull plus the pushes that followed it."""
    port: Optional[int] = None
    pull_error: Optional[Exception] = None
    results: List[PushResult] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.pull_error is not None or any(r.failed for r in self.results)


class PortPusher:
    def __init__(
        self,
        source: GluetunClient,
        clients: Sequence[BasePortClient],
        delay_success: float,
        delay_error: float,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            source: Where the forwarded port comes from
            clients: Backends to push to, in the order they are pushed
            delay_success: Seconds to wait after a cycle without failures
            delay_error: Seconds to wait after a cycle with any failure
            sleep: Blocking sleep function, replaceable in tests
        """
        self.source = source
        self.clients = list(clients)
        self.delay_success = delay_success
        self.delay_error = delay_error
        self._sleep = sleep

    def run_once(self) -> CycleResult:
        """Pull the forwarded port and push it to every backend."""
        cycle = CycleResult()
        try:
            cycle.port = self.source.pull_port()
        except PortPusherError as e:
            # Already logged by the source; skip every backend this cycle
            cycle.pull_error = e
            return cycle

        for client in self.clients:
            cycle.results.append(client.push(cycle.port))
        return cycle

    def next_delay(self, cycle: CycleResult) -> float:
        return self.delay_error if cycle.failed else self.delay_success

    def run(self, max_cycles: Optional[int] = None) -> None:
        """
        Main loop.

        Args:
            max_cycles: Stop after this many cycles; None loops forever
        """
        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            logger.info("Running...")
            try:
                cycle = self.run_once()
            except Exception as e:
                logger.exception(f"Unexpected error in push cycle: {e}")
                cycle = CycleResult(pull_error=e)

            delay = self.next_delay(cycle)
            if cycle.failed:
                logger.info(f"Done. Next push attempt in {_format_delay(delay)}.")
            else:
                logger.info(f"Done. Next push in {_format_delay(delay)}.")

            cycles += 1
            self._sleep(delay)


def _format_delay(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    if minutes and secs:
        return f"{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m"
    return f"{secs}s"

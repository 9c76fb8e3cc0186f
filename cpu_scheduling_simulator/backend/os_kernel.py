from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .schedulers import Algorithm, DEFAULT_TIME_QUANTUM
from .simulator import SchedulerEngine, SimulationResult, Snapshot, build_result
from .utils import ProcessSpec

logger = logging.getLogger(__name__)


@dataclass
class KernelConfig:
    algorithm: str = Algorithm.FCFS
    time_quantum: int = DEFAULT_TIME_QUANTUM
    context_switch_time: int = 0
    max_ticks: int = 10_000
    tick_delay: float = 0.0


class OSKernel:
    """Timer-loop driver around :class:`SchedulerEngine`.

    Loads a workload into a fresh engine and calls ``tick()`` until every
    process has terminated. ``tick_delay`` only paces the loop for a viewer;
    it has no effect on the simulated clock.
    """

    def __init__(self, config: KernelConfig | None = None):
        self.config = config or KernelConfig()

    def build_engine(self) -> SchedulerEngine:
        return SchedulerEngine(
            self.config.algorithm,
            time_quantum=self.config.time_quantum,
            context_switch_duration=self.config.context_switch_time,
        )

    def run(self, specs: Iterable[ProcessSpec], on_tick: Optional[Callable[[Snapshot], None]] = None) -> SimulationResult:
        """Run the workload to completion, calling ``on_tick`` with each snapshot."""
        engine = self.build_engine()
        for spec in specs:
            engine.add_spec(spec)

        ticks = 0
        while engine.processes and not engine.is_complete and ticks < self.config.max_ticks:
            snap = engine.tick()
            ticks += 1
            if on_tick is not None:
                on_tick(snap)
            if self.config.tick_delay > 0:
                time.sleep(self.config.tick_delay)

        if not engine.processes:
            logger.info("Empty workload, nothing to run")
        elif not engine.is_complete:
            logger.warning("Stopped after %d ticks with unfinished processes", ticks)
        else:
            logger.info("%s finished %d processes in %d ticks", engine.algorithm, len(engine.processes), engine.current_tick)
        return build_result(engine)

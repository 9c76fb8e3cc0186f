from __future__ import annotations

import copy
import itertools
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from .core import (
    PCB,
    ProcessState,
    ProcessType,
    RotationQueue,
    InvalidOperationError,
    InvalidParameterError,
)
from .schedulers import (
    Algorithm,
    BasePolicy,
    MLFQPolicy,
    DEFAULT_MLFQ_QUANTA,
    DEFAULT_TIME_QUANTUM,
    get_policy,
)
from .utils import (
    CPUStats,
    EventLogger,
    ExecutionInterval,
    IntervalKind,
    LogEntry,
    ProcessSpec,
    Severity,
    compute_stats,
    compute_turnaround_times,
    compute_waiting_times,
)

logger = logging.getLogger(__name__)


@dataclass
class Snapshot:
    """Read-only copy of the engine state after a tick."""
    processes: List[PCB]
    current_tick: int
    running_pid: Optional[str]
    log: List[LogEntry]
    intervals: List[ExecutionInterval]
    rotation: List[str]
    stats: CPUStats
    context_switches: int


@dataclass
class SimulationResult:
    processes: List[PCB]
    total_time: int
    waiting_times: Dict[str, int]
    turnaround_times: Dict[str, int]
    stats: CPUStats
    context_switches: int
    logger: EventLogger = field(repr=False)

    @property
    def avg_waiting_time(self) -> float:
        return self.stats.avg_waiting_time

    @property
    def avg_turnaround_time(self) -> float:
        return self.stats.avg_turnaround_time

    @property
    def throughput(self) -> float:
        return self.stats.throughput


class SchedulerEngine:
    """Discrete-time scheduling engine.

    Owns the process table, the rotation queue and the decision log, and
    advances all of them by one tick per ``tick()`` call. It is the only
    writer of that state; ``snapshot()`` hands out deep copies.
    """

    def __init__(
        self,
        algorithm: str = Algorithm.FCFS,
        time_quantum: int = DEFAULT_TIME_QUANTUM,
        context_switch_duration: int = 0,
        mlfq_quanta: Sequence[Optional[int]] = DEFAULT_MLFQ_QUANTA,
    ):
        self._check_quantum(time_quantum)
        self._check_switch_duration(context_switch_duration)
        self.algorithm = Algorithm.normalize(algorithm)
        self.time_quantum = time_quantum
        self.context_switch_duration = context_switch_duration
        self.mlfq_quanta = tuple(mlfq_quanta)
        self.policy: BasePolicy = get_policy(self.algorithm, time_quantum, self.mlfq_quanta)

        self._processes: Dict[str, PCB] = {}
        self._ids = itertools.count(1)
        self._seq = itertools.count()
        self.logger = EventLogger()
        self._reset_runtime()

    def _reset_runtime(self) -> None:
        self.current_tick = 0
        self.context_switches = 0
        self.rotation = RotationQueue()
        self._running: Optional[str] = None
        self._last_owner: Optional[str] = None
        self._switch_pending = False
        self._switch_remaining = 0
        self.logger.clear()

    # ------------------------------------------------------------------
    # configuration
    # ------------------------------------------------------------------

    @staticmethod
    def _check_quantum(n: int) -> None:
        if n < 1:
            raise InvalidParameterError(f"time quantum must be >= 1, got {n}")

    @staticmethod
    def _check_switch_duration(n: int) -> None:
        if n < 0:
            raise InvalidParameterError(f"context switch duration must be >= 0, got {n}")

    @property
    def in_progress(self) -> bool:
        """True once any process has been dispatched since the last reset."""
        return any(p.dispatched for p in self._processes.values())

    def set_algorithm(self, algorithm: str) -> None:
        algorithm = Algorithm.normalize(algorithm)
        if algorithm == self.algorithm:
            return
        if self.in_progress:
            raise InvalidOperationError("cannot change algorithm while a simulation is in progress; reset first")
        self.algorithm = algorithm
        self.policy = get_policy(algorithm, self.time_quantum, self.mlfq_quanta)
        # rebuild rotation for processes that are already ready
        self.rotation.clear()
        if self.policy.uses_rotation:
            for pcb in self._ordered(ProcessState.READY):
                self.rotation.push(pcb.pid)
        logger.info("Algorithm set to %s", algorithm)

    def set_time_quantum(self, n: int) -> None:
        self._check_quantum(n)
        self.time_quantum = n
        if self.algorithm == Algorithm.RR:
            self.policy.time_quantum = n
        logger.info("Time quantum set to %d", n)

    def set_context_switch_duration(self, n: int) -> None:
        self._check_switch_duration(n)
        self.context_switch_duration = n
        logger.info("Context switch duration set to %d", n)

    # ------------------------------------------------------------------
    # process table
    # ------------------------------------------------------------------

    def add_process(
        self,
        name: str,
        arrival_time: int,
        burst_time: int,
        priority: int = 1,
        process_type: ProcessType = ProcessType.USER,
        io_start: Optional[int] = None,
        io_duration: Optional[int] = None,
        deadline: Optional[int] = None,
    ) -> str:
        """Register a new process in state NEW and return its pid."""
        if burst_time < 1:
            raise InvalidParameterError(f"burst time must be >= 1, got {burst_time}")
        if arrival_time < 0:
            raise InvalidParameterError(f"arrival time must be >= 0, got {arrival_time}")
        if arrival_time < self.current_tick:
            raise InvalidParameterError(
                f"arrival time {arrival_time} is before the current tick {self.current_tick}"
            )
        if priority < 1:
            raise InvalidParameterError(f"priority must be >= 1, got {priority}")
        if (io_start is None) != (io_duration is None):
            raise InvalidParameterError("io_start and io_duration must be given together")
        if io_start is not None:
            if not 0 <= io_start < burst_time:
                raise InvalidParameterError(f"io_start must be in [0, {burst_time}), got {io_start}")
            if io_duration < 1:
                raise InvalidParameterError(f"io_duration must be >= 1, got {io_duration}")
        if (
            deadline is not None
            and self.algorithm == Algorithm.EDF
            and deadline < arrival_time + burst_time
        ):
            raise InvalidParameterError(
                f"deadline {deadline} is earlier than arrival + burst ({arrival_time + burst_time})"
            )
        if not isinstance(process_type, ProcessType):
            try:
                process_type = ProcessType(process_type)
            except ValueError:
                raise InvalidParameterError(f"unknown process type {process_type!r}") from None

        pid = f"p{next(self._ids)}"
        self._processes[pid] = PCB(
            pid=pid,
            name=name,
            arrival_time=arrival_time,
            burst_time=burst_time,
            priority=priority,
            process_type=process_type,
            io_start=io_start,
            io_duration=io_duration,
            deadline=deadline,
            seq=next(self._seq),
        )
        logger.info("Added %s (%s): arrival=%d burst=%d priority=%d", name, pid, arrival_time, burst_time, priority)
        return pid

    def add_spec(self, spec: ProcessSpec) -> str:
        return self.add_process(
            spec.name,
            spec.arrival_time,
            spec.burst_time,
            priority=spec.priority,
            process_type=spec.process_type,
            io_start=spec.io_start,
            io_duration=spec.io_duration,
            deadline=spec.deadline,
        )

    def remove_process(self, pid: str) -> None:
        pcb = self._get(pid)
        if pcb.dispatched:
            raise InvalidOperationError(f"{pcb.name} has already been dispatched and cannot be removed")
        del self._processes[pid]
        self.rotation.remove(pid)
        logger.info("Removed %s (%s)", pcb.name, pid)

    def _get(self, pid: str) -> PCB:
        try:
            return self._processes[pid]
        except KeyError:
            raise InvalidParameterError(f"unknown process id {pid!r}") from None

    def _ordered(self, state: ProcessState) -> List[PCB]:
        return sorted(
            (p for p in self._processes.values() if p.state == state),
            key=lambda p: (p.arrival_time, p.seq),
        )

    @property
    def processes(self) -> List[PCB]:
        return list(self._processes.values())

    @property
    def running_process(self) -> Optional[PCB]:
        return self._processes.get(self._running) if self._running else None

    @property
    def is_complete(self) -> bool:
        return bool(self._processes) and all(
            p.state == ProcessState.TERMINATED for p in self._processes.values()
        )

    @property
    def stats(self) -> CPUStats:
        return compute_stats(self._processes.values(), self.current_tick)

    def snapshot(self) -> Snapshot:
        return Snapshot(
            processes=copy.deepcopy(list(self._processes.values())),
            current_tick=self.current_tick,
            running_pid=self._running,
            log=copy.deepcopy(self.logger.entries),
            intervals=copy.deepcopy(self.logger.intervals),
            rotation=self.rotation.to_list(),
            stats=self.stats,
            context_switches=self.context_switches,
        )

    def reset(self) -> None:
        """Return every process to NEW and clear clock, log, intervals and queues."""
        for pcb in self._processes.values():
            pcb.reset()
        self._reset_runtime()
        logger.info("Simulation reset")

    # ------------------------------------------------------------------
    # stepping
    # ------------------------------------------------------------------

    def _log(self, message: str, severity: Severity = Severity.INFO) -> None:
        self.logger.log(self.current_tick, message, severity)

    def _make_ready(self, pcb: PCB) -> None:
        pcb.state = ProcessState.READY
        if self.policy.uses_rotation:
            self.rotation.push(pcb.pid)

    def _release_cpu(self) -> None:
        self._running = None
        self._switch_pending = True

    def _preempt(self, pcb: PCB) -> None:
        pcb.quantum_used = 0
        self._make_ready(pcb)
        self._release_cpu()

    def _start_io(self, pcb: PCB) -> None:
        pcb.state = ProcessState.WAITING
        pcb.remaining_io_time = pcb.io_duration
        pcb.io_done = True
        pcb.quantum_used = 0
        self._release_cpu()
        self._log(f"{pcb.name} started I/O for {pcb.io_duration} ticks", Severity.WARNING)

    def _ready_set(self) -> List[PCB]:
        return self._ordered(ProcessState.READY)

    def _select(self) -> Optional[PCB]:
        pid = self.policy.select_next(self._ready_set(), self.current_tick, self.rotation.to_list())
        return self._processes[pid] if pid else None

    def tick(self) -> Snapshot:
        """Advance the simulation by exactly one tick and return the new state."""
        if not self._processes or self.is_complete:
            self.current_tick += 1
            return self.snapshot()

        t = self.current_tick
        self._admit_arrivals(t)
        self._advance_io()
        self._check_quantum_expiry()
        self._check_io_request()
        self._check_preemption()
        if self._running is None:
            self._dispatch()
        self._execute(t)
        for pcb in self._processes.values():
            if pcb.state == ProcessState.READY:
                pcb.stats.waiting_ticks += 1
        self.current_tick = t + 1
        return self.snapshot()

    def _admit_arrivals(self, t: int) -> None:
        for pcb in self._ordered(ProcessState.NEW):
            if pcb.arrival_time <= t:
                self._make_ready(pcb)
                self._log(f"{pcb.name} arrived")

    def _advance_io(self) -> None:
        for pcb in self._ordered(ProcessState.WAITING):
            pcb.remaining_io_time -= 1
            pcb.total_io_time += 1
            if pcb.remaining_io_time <= 0:
                self._make_ready(pcb)
                self._log(f"{pcb.name} completed I/O")

    def _check_quantum_expiry(self) -> None:
        pcb = self.running_process
        if pcb is None or not self.policy.uses_rotation:
            return
        quantum = self.policy.quantum_for(pcb)
        if quantum is None:
            return
        pcb.quantum_used += 1
        if pcb.quantum_used < quantum:
            return
        self._log(f"Quantum expired for {pcb.name} after {quantum} ticks", Severity.WARNING)
        if isinstance(self.policy, MLFQPolicy):
            old_level = pcb.queue_level
            new_level = self.policy.demote(pcb)
            if new_level != old_level:
                self._log(f"{pcb.name} demoted to level {new_level}", Severity.WARNING)
        self._preempt(pcb)

    def _check_io_request(self) -> None:
        pcb = self.running_process
        if pcb is not None and pcb.io_due:
            self._start_io(pcb)

    def _check_preemption(self) -> None:
        running = self.running_process
        if running is None or not self.policy.preemptive:
            return
        candidate = self._select()
        if candidate is None or candidate.pid == running.pid:
            return
        if self.policy.should_preempt(running, candidate):
            self._preempt(running)
            self._log(f"{candidate.name} preempted {running.name}", Severity.WARNING)

    def _dispatch(self) -> None:
        """Fill the idle CPU: pay a pending context switch or dispatch the next process."""
        if self._switch_remaining > 0:
            self._pay_switch()
            return

        while True:
            candidate = self._select()
            if candidate is None:
                self._switch_pending = False
                kind = IntervalKind.IO_WAIT if any(
                    p.state == ProcessState.WAITING for p in self._processes.values()
                ) else IntervalKind.IDLE
                self.logger.record_tick(self.current_tick, kind)
                return

            if (
                self._switch_pending
                and self.context_switch_duration > 0
                and self._last_owner is not None
                and candidate.pid != self._last_owner
            ):
                self._switch_pending = False
                self._switch_remaining = self.context_switch_duration
                self._log(f"Context switch to {candidate.name} ({self.context_switch_duration} ticks)")
                self._pay_switch()
                return

            self._switch_pending = False
            self._start(candidate)
            if not candidate.io_due:
                return
            # the offset was reached before this dispatch, so the I/O request fires now
            self._start_io(candidate)

    def _pay_switch(self) -> None:
        self.logger.record_tick(self.current_tick, IntervalKind.CONTEXT_SWITCH)
        self._switch_remaining -= 1

    def _start(self, pcb: PCB) -> None:
        self.rotation.remove(pcb.pid)
        pcb.state = ProcessState.RUNNING
        pcb.quantum_used = 0
        pcb.stats.dispatches += 1
        if pcb.stats.start_time is None:
            pcb.stats.start_time = self.current_tick
            pcb.stats.response_time = self.current_tick - pcb.arrival_time
        if self._last_owner is not None and self._last_owner != pcb.pid:
            self.context_switches += 1
        self._running = pcb.pid
        self._last_owner = pcb.pid
        self._log(f"Dispatched {pcb.name}")

    def _execute(self, t: int) -> None:
        pcb = self.running_process
        if pcb is None:
            return
        self.logger.record_tick(t, IntervalKind.PROCESS, pcb.pid)
        pcb.remaining_time -= 1
        pcb.executed_time += 1
        if pcb.remaining_time > 0:
            return
        pcb.state = ProcessState.TERMINATED
        pcb.stats.completion_time = t + 1
        pcb.stats.turnaround_time = pcb.stats.completion_time - pcb.arrival_time
        pcb.stats.waiting_time = pcb.stats.turnaround_time - pcb.burst_time - pcb.total_io_time
        self._release_cpu()
        self.logger.log(t + 1, f"{pcb.name} completed", Severity.SUCCESS)

    def run_until_complete(self, max_ticks: int = 10_000) -> Snapshot:
        """Tick until every process has terminated or ``max_ticks`` ticks were spent."""
        snap = self.snapshot()
        for _ in range(max_ticks):
            if not self._processes or self.is_complete:
                break
            snap = self.tick()
        return snap


def simulate(
    specs: Iterable[ProcessSpec],
    algorithm: str = Algorithm.FCFS,
    time_quantum: int = DEFAULT_TIME_QUANTUM,
    context_switch_duration: int = 0,
    max_ticks: int = 10_000,
) -> SimulationResult:
    """Run a workload to completion and collect the results."""
    engine = SchedulerEngine(algorithm, time_quantum=time_quantum, context_switch_duration=context_switch_duration)
    for spec in specs:
        engine.add_spec(spec)
    engine.run_until_complete(max_ticks)
    return build_result(engine)


def build_result(engine: SchedulerEngine) -> SimulationResult:
    processes = engine.processes
    return SimulationResult(
        processes=processes,
        total_time=engine.current_tick,
        waiting_times=compute_waiting_times(processes),
        turnaround_times=compute_turnaround_times(processes),
        stats=engine.stats,
        context_switches=engine.context_switches,
        logger=engine.logger,
    )

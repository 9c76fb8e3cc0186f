"""
Scheduling policies: FCFS, SJF, SRTF, Priority, Round Robin, EDF, MLQ and MLFQ.

A policy only decides; it never mutates a process. The engine hands it the
ready set (and, for rotating policies, the rotation order) and applies the
outcome itself.
"""

from __future__ import annotations

from abc import ABC
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .core import PCB, MLFQ_LEVELS, InvalidParameterError, ProcessState


DEFAULT_TIME_QUANTUM = 2
DEFAULT_MLFQ_QUANTA: Tuple[Optional[int], ...] = (4, 8, None)


class Algorithm:
    """Algorithm name constants."""
    FCFS = "FCFS"
    SJF = "SJF"             # non-preemptive, by total burst
    SRTF = "SRTF"           # preemptive SJF
    PRIORITY = "PRIORITY"   # preemptive, lower number = higher priority
    RR = "RR"
    EDF = "EDF"
    MLQ = "MLQ"
    MLFQ = "MLFQ"

    ALL = (FCFS, SJF, SRTF, PRIORITY, RR, EDF, MLQ, MLFQ)

    @classmethod
    def normalize(cls, name: str) -> str:
        key = name.strip().upper().replace("-", "_")
        aliases = {"ROUND_ROBIN": cls.RR, "ROUNDROBIN": cls.RR}
        key = aliases.get(key, key)
        if key not in cls.ALL:
            raise InvalidParameterError(f"unknown algorithm {name!r}")
        return key


class BasePolicy(ABC):
    """Abstract base class for all policies.

    Subclasses either supply ``sort_key`` (a total order over ready
    processes) or override ``select_next``.
    """

    name: str = ""
    preemptive: bool = False
    uses_rotation: bool = False

    def sort_key(self, pcb: PCB) -> tuple:
        return (pcb.arrival_time, pcb.seq)

    def candidates(self, ready: Sequence[PCB], time: int) -> List[PCB]:
        return [p for p in ready if p.state == ProcessState.READY and p.arrival_time <= time]

    def select_next(self, ready: Sequence[PCB], time: int, rotation: Sequence[str] = ()) -> Optional[str]:
        """Return the pid of the process to dispatch next, or None."""
        eligible = self.candidates(ready, time)
        if not eligible:
            return None
        return min(eligible, key=self.sort_key).pid

    def should_preempt(self, running: PCB, candidate: PCB) -> bool:
        """Strict improvement only; equal keys never preempt."""
        return False

    def quantum_for(self, pcb: PCB) -> Optional[int]:
        """Quantum the running process may use, None when unbounded."""
        return None


class FCFSPolicy(BasePolicy):
    """First Come First Serve."""
    name = Algorithm.FCFS


class SJFPolicy(BasePolicy):
    """Shortest Job First, by total burst time."""
    name = Algorithm.SJF

    def sort_key(self, pcb: PCB) -> tuple:
        return (pcb.burst_time, pcb.arrival_time, pcb.seq)


class SRTFPolicy(BasePolicy):
    """Shortest Remaining Time First (preemptive SJF)."""
    name = Algorithm.SRTF
    preemptive = True

    def sort_key(self, pcb: PCB) -> tuple:
        return (pcb.remaining_time, pcb.arrival_time, pcb.seq)

    def should_preempt(self, running: PCB, candidate: PCB) -> bool:
        return candidate.remaining_time < running.remaining_time


class PriorityPolicy(BasePolicy):
    """Preemptive priority scheduling (lower number = higher priority)."""
    name = Algorithm.PRIORITY
    preemptive = True

    def sort_key(self, pcb: PCB) -> tuple:
        return (pcb.priority, pcb.arrival_time, pcb.seq)

    def should_preempt(self, running: PCB, candidate: PCB) -> bool:
        return candidate.priority < running.priority


class EDFPolicy(BasePolicy):
    """Earliest Deadline First. A process without deadline sorts last."""
    name = Algorithm.EDF
    preemptive = True

    def sort_key(self, pcb: PCB) -> tuple:
        return (pcb.effective_deadline, pcb.arrival_time, pcb.seq)

    def should_preempt(self, running: PCB, candidate: PCB) -> bool:
        return candidate.effective_deadline < running.effective_deadline


class MLQPolicy(BasePolicy):
    """Multilevel Queue: fixed queue per process type, FCFS within a queue."""
    name = Algorithm.MLQ
    preemptive = True

    def sort_key(self, pcb: PCB) -> tuple:
        return (pcb.mlq_queue, pcb.arrival_time, pcb.seq)

    def should_preempt(self, running: PCB, candidate: PCB) -> bool:
        return candidate.mlq_queue < running.mlq_queue


class RoundRobinPolicy(BasePolicy):
    """Round Robin over the rotation queue."""
    name = Algorithm.RR
    uses_rotation = True

    def __init__(self, time_quantum: int = DEFAULT_TIME_QUANTUM):
        self.time_quantum = time_quantum

    def select_next(self, ready: Sequence[PCB], time: int, rotation: Sequence[str] = ()) -> Optional[str]:
        eligible = {p.pid for p in self.candidates(ready, time)}
        for pid in rotation:
            if pid in eligible:
                return pid
        return None

    def quantum_for(self, pcb: PCB) -> Optional[int]:
        return self.time_quantum


class MLFQPolicy(BasePolicy):
    """Multilevel Feedback Queue.

    Three levels, picked by level and then by arrival within a level. Levels
    0 and 1 have their own quantum, the bottom level runs FCFS. Quantum
    expiry demotes one level, an I/O yield keeps the level. The rotation
    queue only tracks membership for MLFQ.
    """
    name = Algorithm.MLFQ
    preemptive = True
    uses_rotation = True

    def __init__(self, quanta: Sequence[Optional[int]] = DEFAULT_MLFQ_QUANTA):
        if len(quanta) != MLFQ_LEVELS:
            raise InvalidParameterError(f"MLFQ needs {MLFQ_LEVELS} quanta, got {len(quanta)}")
        self.quanta = tuple(quanta)

    def sort_key(self, pcb: PCB) -> tuple:
        return (pcb.queue_level, pcb.arrival_time, pcb.seq)

    def should_preempt(self, running: PCB, candidate: PCB) -> bool:
        return candidate.queue_level < running.queue_level

    def quantum_for(self, pcb: PCB) -> Optional[int]:
        return self.quanta[pcb.queue_level]

    @staticmethod
    def demote(pcb: PCB) -> int:
        pcb.queue_level = min(pcb.queue_level + 1, MLFQ_LEVELS - 1)
        return pcb.queue_level


_SIMPLE_POLICIES: Dict[str, Callable[[], BasePolicy]] = {
    Algorithm.FCFS: FCFSPolicy,
    Algorithm.SJF: SJFPolicy,
    Algorithm.SRTF: SRTFPolicy,
    Algorithm.PRIORITY: PriorityPolicy,
    Algorithm.EDF: EDFPolicy,
    Algorithm.MLQ: MLQPolicy,
}


def get_policy(
    algorithm: str,
    time_quantum: int = DEFAULT_TIME_QUANTUM,
    mlfq_quanta: Sequence[Optional[int]] = DEFAULT_MLFQ_QUANTA,
) -> BasePolicy:
    """Build the policy object for an algorithm name."""
    algorithm = Algorithm.normalize(algorithm)
    if algorithm == Algorithm.RR:
        return RoundRobinPolicy(time_quantum)
    if algorithm == Algorithm.MLFQ:
        return MLFQPolicy(mlfq_quanta)
    return _SIMPLE_POLICIES[algorithm]()

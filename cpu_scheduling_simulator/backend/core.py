"""
Core data structures for the CPU scheduling simulator.
Includes the process record (PCB), the rotation queue and the error types.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, Iterator, List, Optional


class SchedulerError(Exception):
    """Base class for engine errors."""


class InvalidParameterError(SchedulerError, ValueError):
    """Raised for bad construction or configuration arguments."""


class InvalidOperationError(SchedulerError, RuntimeError):
    """Raised when an operation is not allowed in the current engine state."""


class ProcessState(Enum):
    """Process states in the system."""
    NEW = "new"
    READY = "ready"
    RUNNING = "running"
    WAITING = "waiting"
    TERMINATED = "terminated"


class ProcessType(Enum):
    """Process classes, used by MLQ and for workload defaults."""
    SYSTEM = "system"
    INTERACTIVE = "interactive"
    USER = "user"
    BATCH = "batch"


# MLQ queue index for each process type (lower index runs first)
MLQ_QUEUE_INDEX: Dict[ProcessType, int] = {
    ProcessType.SYSTEM: 0,
    ProcessType.INTERACTIVE: 1,
    ProcessType.USER: 2,
    ProcessType.BATCH: 3,
}

MLFQ_LEVELS = 3


@dataclass
class ProcessStats:
    """Statistics tracked for each process."""
    waiting_ticks: int = 0
    waiting_time: int = 0
    turnaround_time: int = 0
    response_time: Optional[int] = None
    start_time: Optional[int] = None
    completion_time: Optional[int] = None
    dispatches: int = 0


@dataclass
class PCB:
    """Process Control Block - descriptor fields plus runtime state."""
    pid: str
    name: str
    arrival_time: int
    burst_time: int
    priority: int = 1
    process_type: ProcessType = ProcessType.USER
    io_start: Optional[int] = None
    io_duration: Optional[int] = None
    deadline: Optional[int] = None
    seq: int = 0
    state: ProcessState = ProcessState.NEW
    remaining_time: int = field(init=False)
    executed_time: int = field(init=False, default=0)
    remaining_io_time: int = field(init=False, default=0)
    total_io_time: int = field(init=False, default=0)
    io_done: bool = field(init=False, default=False)
    queue_level: int = field(init=False, default=0)
    quantum_used: int = field(init=False, default=0)
    stats: ProcessStats = field(init=False)

    def __post_init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        """Return the process to NEW with its initial runtime fields."""
        self.state = ProcessState.NEW
        self.remaining_time = self.burst_time
        self.executed_time = 0
        self.remaining_io_time = 0
        self.total_io_time = 0
        self.io_done = False
        self.queue_level = 0
        self.quantum_used = 0
        self.stats = ProcessStats()

    @property
    def has_io(self) -> bool:
        return self.io_start is not None and self.io_duration is not None

    @property
    def io_due(self) -> bool:
        """True once the process has executed up to its I/O offset and not yet blocked."""
        return self.has_io and not self.io_done and self.executed_time >= self.io_start

    @property
    def effective_deadline(self) -> float:
        return float("inf") if self.deadline is None else self.deadline

    @property
    def mlq_queue(self) -> int:
        return MLQ_QUEUE_INDEX[self.process_type]

    @property
    def dispatched(self) -> bool:
        return self.stats.start_time is not None


class RotationQueue:
    """FIFO of process ids used by the rotating policies (RR, MLFQ).

    The queue is independent of ``PCB.state``; a pid is present at most once.
    """

    def __init__(self) -> None:
        self._items: Deque[str] = deque()
        self._members: set = set()

    def push(self, pid: str) -> bool:
        """Append a pid to the tail. Returns False if it is already queued."""
        if pid in self._members:
            return False
        self._items.append(pid)
        self._members.add(pid)
        return True

    def remove(self, pid: str) -> bool:
        if pid not in self._members:
            return False
        self._items.remove(pid)
        self._members.discard(pid)
        return True

    def peek(self) -> Optional[str]:
        return self._items[0] if self._items else None

    def clear(self) -> None:
        self._items.clear()
        self._members.clear()

    def is_empty(self) -> bool:
        return len(self._items) == 0

    def to_list(self) -> List[str]:
        return list(self._items)

    def __contains__(self, pid: object) -> bool:
        return pid in self._members

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

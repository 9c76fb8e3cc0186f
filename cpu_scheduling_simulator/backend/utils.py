from __future__ import annotations

from dataclasses import dataclass, asdict
from enum import Enum
from typing import List, Dict, Optional, Iterable
import csv
import json
import logging
import random

from .core import PCB, ProcessState, ProcessType, InvalidParameterError

logger = logging.getLogger(__name__)


class Severity(Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class IntervalKind(Enum):
    PROCESS = "process"
    IDLE = "idle"
    IO_WAIT = "io-wait"
    CONTEXT_SWITCH = "context-switch"


@dataclass
class LogEntry:
    tick: int
    message: str
    severity: Severity = Severity.INFO


@dataclass
class ExecutionInterval:
    owner_id: Optional[str]
    start: int
    end: int
    kind: IntervalKind

    @property
    def length(self) -> int:
        return self.end - self.start


@dataclass
class CPUStats:
    cpu_utilization: float = 0.0
    avg_waiting_time: float = 0.0
    avg_turnaround_time: float = 0.0
    avg_response_time: float = 0.0
    throughput: float = 0.0
    current_time: int = 0


@dataclass
class ProcessSpec:
    """Arguments of one ``add_process`` call."""
    name: str
    arrival_time: int
    burst_time: int
    priority: int = 1
    process_type: ProcessType = ProcessType.USER
    io_start: Optional[int] = None
    io_duration: Optional[int] = None
    deadline: Optional[int] = None


# Default burst and priority for each process type
PROCESS_TYPE_DEFAULTS: Dict[ProcessType, Dict[str, int]] = {
    ProcessType.SYSTEM: {"burst": 3, "priority": 1},
    ProcessType.INTERACTIVE: {"burst": 4, "priority": 2},
    ProcessType.USER: {"burst": 6, "priority": 3},
    ProcessType.BATCH: {"burst": 10, "priority": 4},
}


class EventLogger:
    """Decision log plus the merged CPU-occupancy timeline."""

    def __init__(self) -> None:
        self.entries: List[LogEntry] = []
        self.intervals: List[ExecutionInterval] = []

    def log(self, tick: int, message: str, severity: Severity = Severity.INFO) -> LogEntry:
        entry = LogEntry(tick, message, severity)
        self.entries.append(entry)
        logger.debug("[t=%d] %s", tick, message)
        return entry

    def record_tick(self, tick: int, kind: IntervalKind, owner_id: Optional[str] = None) -> ExecutionInterval:
        """Account one tick of CPU occupancy, extending the last interval when contiguous."""
        last = self.intervals[-1] if self.intervals else None
        if last is not None and last.kind == kind and last.owner_id == owner_id and last.end == tick:
            last.end = tick + 1
            return last
        interval = ExecutionInterval(owner_id, tick, tick + 1, kind)
        self.intervals.append(interval)
        return interval

    def clear(self) -> None:
        self.entries = []
        self.intervals = []

    def export_json(self, path: str) -> None:
        data = {
            "log": [{**asdict(e), "severity": e.severity.value} for e in self.entries],
            "intervals": [{**asdict(i), "kind": i.kind.value} for i in self.intervals],
        }
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def export_csv(self, base_path_no_ext: str) -> None:
        with open(f"{base_path_no_ext}_log.csv", "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=["tick", "message", "severity"])
            writer.writeheader()
            for e in self.entries:
                writer.writerow({"tick": e.tick, "message": e.message, "severity": e.severity.value})
        with open(f"{base_path_no_ext}_intervals.csv", "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=["owner_id", "start", "end", "kind"])
            writer.writeheader()
            for i in self.intervals:
                writer.writerow({"owner_id": i.owner_id or "", "start": i.start, "end": i.end, "kind": i.kind.value})


def compute_waiting_times(processes: Iterable[PCB]) -> Dict[str, int]:
    return {p.pid: p.stats.waiting_time for p in processes if p.state == ProcessState.TERMINATED}


def compute_turnaround_times(processes: Iterable[PCB]) -> Dict[str, int]:
    return {p.pid: p.stats.turnaround_time for p in processes if p.state == ProcessState.TERMINATED}


def compute_avg(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def compute_throughput(completed: int, total_time: int) -> float:
    if total_time <= 0:
        return 0.0
    return completed / total_time


def compute_stats(processes: Iterable[PCB], current_tick: int) -> CPUStats:
    """Aggregate statistics over the terminated processes.

    All metrics are 0 until at least one process has terminated. CPU
    utilization counts only the bursts of terminated processes and is
    capped at 100.
    """
    completed = [p for p in processes if p.state == ProcessState.TERMINATED]
    if not completed:
        return CPUStats(current_time=current_tick)

    total_burst = sum(p.burst_time for p in completed)
    utilization = (total_burst / current_tick) * 100 if current_tick > 0 else 0.0
    return CPUStats(
        cpu_utilization=min(utilization, 100.0),
        avg_waiting_time=compute_avg([p.stats.waiting_time for p in completed]),
        avg_turnaround_time=compute_avg([p.stats.turnaround_time for p in completed]),
        avg_response_time=compute_avg([p.stats.response_time or 0 for p in completed]),
        throughput=compute_throughput(len(completed), current_tick),
        current_time=current_tick,
    )


def generate_workload(n: int, seed: int = 42, io_probability: float = 0.3, with_deadlines: bool = False) -> List[ProcessSpec]:
    """Random workload in the style of the quick-add button."""
    rng = random.Random(seed)
    types = list(PROCESS_TYPE_DEFAULTS)
    specs: List[ProcessSpec] = []
    for i in range(n):
        ptype = rng.choice(types)
        defaults = PROCESS_TYPE_DEFAULTS[ptype]
        arrival = rng.randrange(8)
        burst = max(1, defaults["burst"] + rng.randint(-2, 1))
        io_start = io_duration = None
        if rng.random() < io_probability:
            io_start = rng.randint(0, max(0, burst - 2))
            io_duration = rng.randint(1, 5)
        deadline = arrival + burst + rng.randrange(20) if with_deadlines else None
        specs.append(ProcessSpec(
            name=f"{ptype.value.capitalize()} {i + 1}",
            arrival_time=arrival,
            burst_time=burst,
            priority=defaults["priority"],
            process_type=ptype,
            io_start=io_start,
            io_duration=io_duration,
            deadline=deadline,
        ))
    return specs


def _optional_int(value: Optional[str]) -> Optional[int]:
    if value is None or not value.strip():
        return None
    return int(value)


def _or_default(value: Optional[int], default: int) -> int:
    return default if value is None else value


def load_workload_csv(path: str) -> List[ProcessSpec]:
    """Read process specs from a CSV with a ``name,arrival_time,burst_time`` header.

    Optional columns: ``priority``, ``type``, ``io_start``, ``io_duration``,
    ``deadline``.
    """
    specs: List[ProcessSpec] = []
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        for lineno, row in enumerate(reader, start=2):
            try:
                specs.append(ProcessSpec(
                    name=row["name"],
                    arrival_time=int(row["arrival_time"]),
                    burst_time=int(row["burst_time"]),
                    priority=_or_default(_optional_int(row.get("priority")), 1),
                    process_type=ProcessType((row.get("type") or "user").strip().lower()),
                    io_start=_optional_int(row.get("io_start")),
                    io_duration=_optional_int(row.get("io_duration")),
                    deadline=_optional_int(row.get("deadline")),
                ))
            except (KeyError, ValueError) as e:
                raise InvalidParameterError(f"{path}:{lineno}: {e}") from e
    logger.info("Loaded %d processes from %s", len(specs), path)
    return specs

from .core import (
    PCB,
    ProcessState,
    ProcessType,
    SchedulerError,
    InvalidParameterError,
    InvalidOperationError,
)
from .schedulers import Algorithm, get_policy
from .simulator import SchedulerEngine, Snapshot, SimulationResult, simulate
from .utils import CPUStats, ProcessSpec, compute_stats

__all__ = [
    "PCB",
    "ProcessState",
    "ProcessType",
    "SchedulerError",
    "InvalidParameterError",
    "InvalidOperationError",
    "Algorithm",
    "get_policy",
    "SchedulerEngine",
    "Snapshot",
    "SimulationResult",
    "simulate",
    "CPUStats",
    "ProcessSpec",
    "compute_stats",
]

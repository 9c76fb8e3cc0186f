from __future__ import annotations

from cpu_scheduling_simulator.backend.core import ProcessState
from cpu_scheduling_simulator.backend.os_kernel import OSKernel, KernelConfig
from cpu_scheduling_simulator.backend.utils import ProcessSpec


def test_kernel_runs_simple():
    # create a few simple processes
    specs = [
        ProcessSpec("p1", arrival_time=0, burst_time=1, priority=1),
        ProcessSpec("p2", arrival_time=1, burst_time=2, priority=2),
        ProcessSpec("p3", arrival_time=1, burst_time=3, priority=3, io_start=1, io_duration=2),
    ]

    kernel = OSKernel(KernelConfig(algorithm="RR", time_quantum=1, context_switch_time=1))
    result = kernel.run(specs)

    # All processes should complete
    assert all(p.state == ProcessState.TERMINATED for p in result.processes)
    # Total time should be at least sum of bursts
    assert result.total_time >= sum(s.burst_time for s in specs)
    assert set(result.waiting_times) == {p.pid for p in result.processes}
    assert result.context_switches > 0


def test_kernel_calls_on_tick_once_per_tick():
    seen = []
    kernel = OSKernel(KernelConfig(algorithm="FCFS"))
    result = kernel.run([ProcessSpec("A", 0, 3), ProcessSpec("B", 5, 1)], on_tick=lambda snap: seen.append(snap.current_tick))
    assert seen == list(range(1, result.total_time + 1))
    assert result.total_time == 6


def test_kernel_stops_at_max_ticks():
    kernel = OSKernel(KernelConfig(algorithm="FCFS", max_ticks=3))
    result = kernel.run([ProcessSpec("Long", 0, 10)])
    assert result.total_time == 3
    assert result.processes[0].state == ProcessState.RUNNING
    assert result.stats.throughput == 0


def test_kernel_empty_workload_does_not_tick():
    seen = []
    kernel = OSKernel(KernelConfig(max_ticks=50))
    result = kernel.run([], on_tick=seen.append)
    assert result.total_time == 0
    assert seen == []
    assert result.processes == []
    assert result.stats.throughput == 0

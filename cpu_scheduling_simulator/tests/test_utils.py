"""
Tests for the decision/interval log, statistics and workload helpers.
"""

import csv
import json

import pytest

from cpu_scheduling_simulator.backend.core import PCB, ProcessState, ProcessType, InvalidParameterError
from cpu_scheduling_simulator.backend.simulator import SchedulerEngine
from cpu_scheduling_simulator.backend.utils import (
    CPUStats,
    EventLogger,
    IntervalKind,
    Severity,
    compute_stats,
    generate_workload,
    load_workload_csv,
)


def finished(pid, arrival, burst, completion, response):
    pcb = PCB(pid=pid, name=pid, arrival_time=arrival, burst_time=burst)
    pcb.state = ProcessState.TERMINATED
    pcb.remaining_time = 0
    pcb.stats.start_time = arrival + response
    pcb.stats.response_time = response
    pcb.stats.completion_time = completion
    pcb.stats.turnaround_time = completion - arrival
    pcb.stats.waiting_time = completion - arrival - burst
    return pcb


class TestEventLogger:

    def test_merges_contiguous_ticks_of_same_owner(self):
        log = EventLogger()
        for t in range(3):
            log.record_tick(t, IntervalKind.PROCESS, "p1")
        log.record_tick(3, IntervalKind.PROCESS, "p2")
        log.record_tick(4, IntervalKind.IDLE)
        log.record_tick(5, IntervalKind.IDLE)
        log.record_tick(6, IntervalKind.IO_WAIT)

        spans = [(i.owner_id, i.start, i.end, i.kind) for i in log.intervals]
        assert spans == [
            ("p1", 0, 3, IntervalKind.PROCESS),
            ("p2", 3, 4, IntervalKind.PROCESS),
            (None, 4, 6, IntervalKind.IDLE),
            (None, 6, 7, IntervalKind.IO_WAIT),
        ]

    def test_gap_opens_new_interval(self):
        log = EventLogger()
        log.record_tick(0, IntervalKind.PROCESS, "p1")
        log.record_tick(2, IntervalKind.PROCESS, "p1")
        assert len(log.intervals) == 2

    def test_log_entries(self):
        log = EventLogger()
        log.log(0, "Dispatched A")
        log.log(3, "A completed", Severity.SUCCESS)
        assert [(e.tick, e.severity) for e in log.entries] == [(0, Severity.INFO), (3, Severity.SUCCESS)]
        log.clear()
        assert log.entries == [] and log.intervals == []

    def test_export_json(self, tmp_path):
        log = EventLogger()
        log.log(1, "A completed", Severity.SUCCESS)
        log.record_tick(0, IntervalKind.PROCESS, "p1")
        path = tmp_path / "run.json"
        log.export_json(str(path))

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["log"] == [{"tick": 1, "message": "A completed", "severity": "success"}]
        assert data["intervals"] == [{"owner_id": "p1", "start": 0, "end": 1, "kind": "process"}]

    def test_export_csv(self, tmp_path):
        log = EventLogger()
        log.log(0, "Dispatched A")
        log.record_tick(0, IntervalKind.CONTEXT_SWITCH)
        base = tmp_path / "run"
        log.export_csv(str(base))

        with open(f"{base}_log.csv", newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert rows == [{"tick": "0", "message": "Dispatched A", "severity": "info"}]
        with open(f"{base}_intervals.csv", newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert rows == [{"owner_id": "", "start": "0", "end": "1", "kind": "context-switch"}]


class TestComputeStats:

    def test_no_terminated_processes(self):
        pending = PCB(pid="p1", name="A", arrival_time=0, burst_time=3)
        assert compute_stats([pending], 5) == CPUStats(current_time=5)

    def test_textbook_values(self):
        procs = [finished("p1", 0, 5, 5, 0), finished("p2", 1, 3, 8, 4)]
        stats = compute_stats(procs, 8)
        assert stats.avg_waiting_time == 2
        assert stats.avg_turnaround_time == 6
        assert stats.avg_response_time == 2
        assert stats.cpu_utilization == 100
        assert stats.throughput == pytest.approx(0.25)

    def test_only_terminated_processes_count(self):
        running = PCB(pid="p2", name="B", arrival_time=0, burst_time=10)
        running.state = ProcessState.RUNNING
        stats = compute_stats([finished("p1", 0, 2, 2, 0), running], 4)
        assert stats.cpu_utilization == 50
        assert stats.throughput == pytest.approx(0.25)

    def test_utilization_capped(self):
        stats = compute_stats([finished("p1", 0, 6, 6, 0)], 3)
        assert stats.cpu_utilization == 100

    def test_zero_time(self):
        stats = compute_stats([finished("p1", 0, 1, 1, 0)], 0)
        assert stats.throughput == 0
        assert stats.cpu_utilization == 0


class TestWorkload:

    def test_deterministic_for_seed(self):
        assert generate_workload(6, seed=3) == generate_workload(6, seed=3)

    def test_generated_values_are_valid(self):
        for spec in generate_workload(50, seed=11, io_probability=0.5, with_deadlines=True):
            assert 0 <= spec.arrival_time < 8
            assert spec.burst_time >= 1
            assert spec.priority >= 1
            if spec.io_start is not None:
                assert 0 <= spec.io_start < spec.burst_time
                assert 1 <= spec.io_duration <= 5
            assert spec.deadline >= spec.arrival_time + spec.burst_time

    def test_no_deadlines_by_default(self):
        assert all(s.deadline is None for s in generate_workload(10, seed=1))

    def test_load_csv(self, tmp_path):
        path = tmp_path / "workload.csv"
        path.write_text(
            "name,arrival_time,burst_time,priority,type,io_start,io_duration,deadline\n"
            "Shell,0,4,2,interactive,1,2,\n"
            "Backup,3,9,,batch,,,30\n",
            encoding="utf-8",
        )
        specs = load_workload_csv(str(path))
        assert [s.name for s in specs] == ["Shell", "Backup"]
        assert specs[0].process_type == ProcessType.INTERACTIVE
        assert (specs[0].io_start, specs[0].io_duration, specs[0].deadline) == (1, 2, None)
        assert specs[1].priority == 1
        assert specs[1].deadline == 30

    def test_load_csv_keeps_zero_priority_for_validation(self, tmp_path):
        path = tmp_path / "zero.csv"
        path.write_text("name,arrival_time,burst_time,priority\nP,0,3,0\n", encoding="utf-8")
        specs = load_workload_csv(str(path))
        assert specs[0].priority == 0
        with pytest.raises(InvalidParameterError):
            SchedulerEngine().add_spec(specs[0])

    def test_load_csv_bad_row(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("name,arrival_time,burst_time\nShell,zero,4\n", encoding="utf-8")
        with pytest.raises(InvalidParameterError):
            load_workload_csv(str(path))

from cpu_scheduling_simulator.backend.simulator import SchedulerEngine
from cpu_scheduling_simulator.backend.visualizer import plot_gantt, process_colors


def test_plot_gantt_writes_file(tmp_path):
    engine = SchedulerEngine("RR", context_switch_duration=1)
    engine.add_process("A", 0, 4, io_start=1, io_duration=3)
    engine.add_process("B", 2, 3)
    engine.run_until_complete()

    out = tmp_path / "plots" / "gantt.png"
    plot_gantt(engine.logger.intervals, engine.processes, str(out))
    assert out.exists()
    assert out.stat().st_size > 0


def test_process_colors_are_distinct():
    engine = SchedulerEngine()
    for i in range(4):
        engine.add_process(f"P{i}", i, 1)
    colors = process_colors(engine.processes)
    assert len(set(colors.values())) == 4
    assert all(c.startswith("#") and len(c) == 7 for c in colors.values())

import pytest

from cpu_scheduling_simulator.backend.core import ProcessState
from cpu_scheduling_simulator.backend.manual_terminal import ManualTerminal


@pytest.fixture
def terminal():
    return ManualTerminal()


def test_add_step_and_stats(terminal, capsys):
    terminal.handle_command("add P1 0 5")
    terminal.handle_command("add P2 1 3 2 batch")
    terminal.handle_command("step 8")
    out = capsys.readouterr().out

    assert "Process P1 added as p1" in out
    assert "Dispatched P1" in out
    assert "P2 completed" in out
    assert terminal.engine.is_complete

    terminal.handle_command("stats")
    out = capsys.readouterr().out
    assert "Avg waiting time: 2.00" in out
    assert "CPU utilization: 100.0%" in out


def test_add_with_io_and_deadline(terminal):
    terminal.handle_command("algo edf")
    terminal.handle_command("add Render 0 4 1 interactive --io 1 2 --deadline 12")
    p = terminal.engine.processes[0]
    assert (p.io_start, p.io_duration, p.deadline) == (1, 2, 12)


def test_errors_are_reported(terminal, capsys):
    terminal.handle_command("add Bad 0 0")
    terminal.handle_command("add Short 0")
    terminal.handle_command("add NaN x 3")
    terminal.handle_command("frobnicate")
    out = capsys.readouterr().out
    assert "Error: burst time must be >= 1" in out
    assert "Usage: add" in out
    assert "Invalid value" in out
    assert "Unknown command" in out
    assert terminal.engine.processes == []


def test_algorithm_locked_mid_run(terminal, capsys):
    terminal.handle_command("add A 0 3")
    terminal.handle_command("step")
    terminal.handle_command("algo rr")
    terminal.handle_command("remove p1")
    out = capsys.readouterr().out
    assert "cannot change algorithm" in out
    assert "already been dispatched" in out
    terminal.handle_command("reset")
    terminal.handle_command("algo rr")
    assert terminal.engine.algorithm == "RR"
    assert terminal.engine.processes[0].state == ProcessState.NEW


def test_quick_run_and_timeline(terminal, capsys):
    terminal.handle_command("quantum 3")
    terminal.handle_command("cs 1")
    terminal.handle_command("algo RR")
    terminal.handle_command("quick 4")
    terminal.handle_command("run")
    terminal.handle_command("timeline")
    terminal.handle_command("list")
    out = capsys.readouterr().out
    assert len(terminal.engine.processes) == 4
    assert terminal.engine.is_complete
    assert "Throughput" in out
    assert "terminated" in out


def test_export(terminal, tmp_path):
    terminal.handle_command("add A 0 2")
    terminal.handle_command("run")
    base = tmp_path / "session"
    terminal.handle_command(f"export {base}")
    assert (tmp_path / "session.json").exists()
    assert (tmp_path / "session_log.csv").exists()
    assert (tmp_path / "session_intervals.csv").exists()


def test_exit(terminal):
    with pytest.raises(SystemExit):
        terminal.handle_command("exit")

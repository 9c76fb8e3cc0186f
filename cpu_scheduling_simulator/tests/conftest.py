import os
import sys

import matplotlib
import pytest

matplotlib.use("Agg")


def pytest_sessionstart(session):
    # Ensure the repository root is on sys.path so 'cpu_scheduling_simulator' can be imported
    here = os.path.dirname(os.path.abspath(__file__))
    repo_root = os.path.abspath(os.path.join(here, os.pardir, os.pardir))
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


@pytest.fixture
def make_engine():
    """Factory for engines with an optional list of (name, arrival, burst, kwargs) processes."""
    from cpu_scheduling_simulator.backend.simulator import SchedulerEngine

    def _make(algorithm="FCFS", processes=(), **config):
        engine = SchedulerEngine(algorithm, **config)
        pids = {}
        for name, arrival, burst, *rest in processes:
            kwargs = rest[0] if rest else {}
            pids[name] = engine.add_process(name, arrival, burst, **kwargs)
        engine.pids = pids
        return engine

    return _make

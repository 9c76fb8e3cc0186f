from __future__ import annotations

import argparse
import logging
import os
import sys

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.abspath(os.path.join(SCRIPT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from cpu_scheduling_simulator.backend.manual_terminal import ManualTerminal
from cpu_scheduling_simulator.backend.schedulers import Algorithm
from cpu_scheduling_simulator.backend.simulator import SchedulerEngine


def main() -> None:
    p = argparse.ArgumentParser(description="Interactive CPU scheduling terminal")
    p.add_argument("--algorithm", type=Algorithm.normalize, default=Algorithm.FCFS)
    p.add_argument("--quantum", type=int, default=2)
    p.add_argument("--context-switch", type=int, default=0)
    p.add_argument("--verbose", "-v", action="store_true")
    args = p.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s - %(levelname)s - %(message)s",
    )
    engine = SchedulerEngine(args.algorithm, time_quantum=args.quantum, context_switch_duration=args.context_switch)
    ManualTerminal(engine).prompt()


if __name__ == "__main__":
    main()

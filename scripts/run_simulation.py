from __future__ import annotations

import argparse
import logging
import os
import sys

# Ensure project root is on sys.path when running as a script
SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.abspath(os.path.join(SCRIPT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from cpu_scheduling_simulator.backend.core import SchedulerError
from cpu_scheduling_simulator.backend.os_kernel import OSKernel, KernelConfig
from cpu_scheduling_simulator.backend.schedulers import Algorithm
from cpu_scheduling_simulator.backend.utils import generate_workload, load_workload_csv


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="CPU scheduling simulator")
    p.add_argument("--algorithm", type=Algorithm.normalize, default=Algorithm.FCFS,
                   help="One of " + ", ".join(Algorithm.ALL))
    p.add_argument("--n", type=int, default=8, help="Number of synthetic processes")
    p.add_argument("--seed", type=int, default=42)
    p.add_argument("--workload", type=str, default=None, help="CSV workload instead of a generated one")
    p.add_argument("--quantum", type=int, default=2)
    p.add_argument("--context-switch", type=int, default=0)
    p.add_argument("--max-ticks", type=int, default=10_000)
    p.add_argument("--out", type=str, default=None, help="Save a Gantt chart to this path")
    p.add_argument("--log-out", type=str, default=None, help="Base path for JSON/CSV decision log export")
    p.add_argument("--verbose", "-v", action="store_true")
    return p.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        if args.workload:
            specs = load_workload_csv(args.workload)
        else:
            specs = generate_workload(args.n, args.seed, with_deadlines=args.algorithm == Algorithm.EDF)
        kernel = OSKernel(KernelConfig(
            algorithm=args.algorithm,
            time_quantum=args.quantum,
            context_switch_time=args.context_switch,
            max_ticks=args.max_ticks,
        ))
        result = kernel.run(specs)
    except SchedulerError as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(2)

    print(f"{'pid':<5} {'name':<16} {'arr':>4} {'burst':>5} {'start':>5} {'end':>5} {'tat':>4} {'wait':>4} {'resp':>4}")
    for p in result.processes:
        s = p.stats
        print(f"{p.pid:<5} {p.name:<16} {p.arrival_time:>4} {p.burst_time:>5} "
              f"{s.start_time if s.start_time is not None else '-':>5} "
              f"{s.completion_time if s.completion_time is not None else '-':>5} "
              f"{s.turnaround_time:>4} {s.waiting_time:>4} "
              f"{s.response_time if s.response_time is not None else '-':>4}")

    st = result.stats
    print(f"Avg waiting: {st.avg_waiting_time:.3f}, Avg turnaround: {st.avg_turnaround_time:.3f}, "
          f"Avg response: {st.avg_response_time:.3f}, Throughput: {st.throughput:.3f}, "
          f"CPU utilization: {st.cpu_utilization:.1f}%, Context switches: {result.context_switches}")

    if args.log_out:
        result.logger.export_json(f"{args.log_out}.json")
        result.logger.export_csv(args.log_out)
        print(f"Decision log written to {args.log_out}.json")
    if args.out:
        from cpu_scheduling_simulator.backend.visualizer import plot_gantt
        plot_gantt(result.logger.intervals, result.processes, args.out, title=f"{args.algorithm} timeline")
        print(f"Saved plot to {args.out}")


if __name__ == "__main__":
    main()

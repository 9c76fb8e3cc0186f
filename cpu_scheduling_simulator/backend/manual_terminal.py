from __future__ import annotations

import shlex
from typing import List, Optional
from colorama import Fore, Style, init as colorama_init

from .core import ProcessState, ProcessType, SchedulerError
from .schedulers import Algorithm
from .simulator import SchedulerEngine
from .utils import IntervalKind, Severity, generate_workload
from .visualizer import plot_gantt


STATE_COLORS = {
    ProcessState.NEW: Fore.WHITE,
    ProcessState.READY: Fore.YELLOW,
    ProcessState.RUNNING: Fore.GREEN,
    ProcessState.WAITING: Fore.MAGENTA,
    ProcessState.TERMINATED: Fore.BLUE,
}

SEVERITY_COLORS = {
    Severity.INFO: Fore.WHITE,
    Severity.SUCCESS: Fore.GREEN,
    Severity.WARNING: Fore.YELLOW,
    Severity.ERROR: Fore.RED,
}

TIMELINE_CHARS = {
    IntervalKind.IDLE: ".",
    IntervalKind.IO_WAIT: "~",
    IntervalKind.CONTEXT_SWITCH: "#",
}


class ManualTerminal:
    """Step-by-step driver: the terminal stand-in for the step button."""

    def __init__(self, engine: Optional[SchedulerEngine] = None) -> None:
        colorama_init(autoreset=True)
        self.engine = engine or SchedulerEngine()
        self._quick_count = 0

    def prompt(self) -> None:
        print(Fore.CYAN + "CPU scheduling simulator. Type 'help' for commands.")
        while True:
            try:
                raw = input(Fore.GREEN + f"[t={self.engine.current_tick} {self.engine.algorithm}]> ")
            except (EOFError, KeyboardInterrupt):
                print()
                break
            if not raw.strip():
                continue
            self.handle_command(raw)

    def handle_command(self, raw: str) -> None:
        try:
            parts = shlex.split(raw)
        except ValueError as e:
            print(Fore.RED + f"Parse error: {e}")
            return
        if not parts:
            return
        cmd, *args = parts
        cmd = cmd.lower()
        handlers = {
            "help": self._help,
            "add": self._add,
            "quick": self._quick,
            "remove": self._remove,
            "list": self._list,
            "algo": self._algo,
            "quantum": self._quantum,
            "cs": self._context_switch,
            "step": self._step,
            "run": self._run,
            "stats": self._stats,
            "log": self._log,
            "timeline": self._timeline,
            "reset": self._reset,
            "export": self._export,
            "plot": self._plot,
        }
        if cmd in ("exit", "quit"):
            raise SystemExit(0)
        handler = handlers.get(cmd)
        if handler is None:
            print(Fore.YELLOW + "Unknown command. Type 'help'.")
            return
        try:
            handler(args)
        except SchedulerError as e:
            print(Fore.RED + f"Error: {e}")
        except ValueError as e:
            print(Fore.RED + f"Invalid value: {e}")

    def _help(self, args: List[str]) -> None:
        print("Commands:")
        print("  add <name> <arrival> <burst> [priority=1] [type=user] [--io START DURATION] [--deadline D]")
        print("  quick [n=1]              add random processes")
        print("  remove <pid>")
        print("  list")
        print("  algo <" + "|".join(Algorithm.ALL) + ">")
        print("  quantum <n>")
        print("  cs <n>                   context switch duration in ticks")
        print("  step [n=1]")
        print("  run                      step until every process terminates")
        print("  stats | log [n=10] | timeline | reset")
        print("  export <base path>       write the decision log as JSON and CSV")
        print("  plot <file.png>")
        print("  exit")

    def _add(self, args: List[str]) -> None:
        io_start = io_duration = deadline = None
        positional: List[str] = []
        it = iter(args)
        for token in it:
            if token == "--io":
                io_start = int(next(it, ""))
                io_duration = int(next(it, ""))
            elif token == "--deadline":
                deadline = int(next(it, ""))
            else:
                positional.append(token)
        if len(positional) < 3:
            print(Fore.RED + "Usage: add <name> <arrival> <burst> [priority] [type] [--io START DURATION] [--deadline D]")
            return
        name = positional[0]
        arrival = int(positional[1])
        burst = int(positional[2])
        priority = int(positional[3]) if len(positional) >= 4 else 1
        ptype = ProcessType(positional[4].lower()) if len(positional) >= 5 else ProcessType.USER
        pid = self.engine.add_process(name, arrival, burst, priority, ptype, io_start, io_duration, deadline)
        print(Fore.CYAN + f"Process {name} added as {pid}: arrival={arrival}, burst={burst}, priority={priority}")

    def _quick(self, args: List[str]) -> None:
        n = int(args[0]) if args else 1
        self._quick_count += 1
        specs = generate_workload(n, seed=self._quick_count,
                                  with_deadlines=self.engine.algorithm == Algorithm.EDF)
        for spec in specs:
            spec.arrival_time += self.engine.current_tick
            if spec.deadline is not None:
                spec.deadline += self.engine.current_tick
            pid = self.engine.add_spec(spec)
            print(Fore.CYAN + f"Process {spec.name} added as {pid}: arrival={spec.arrival_time}, burst={spec.burst_time}")

    def _remove(self, args: List[str]) -> None:
        if not args:
            print(Fore.RED + "Usage: remove <pid>")
            return
        self.engine.remove_process(args[0])
        print(Fore.CYAN + f"Removed {args[0]}")

    def _list(self, args: List[str]) -> None:
        if not self.engine.processes:
            print("No processes yet")
            return
        for p in self.engine.processes:
            color = STATE_COLORS[p.state]
            extra = ""
            if p.has_io:
                extra += f" io@{p.io_start}+{p.io_duration}"
            if p.deadline is not None:
                extra += f" deadline={p.deadline}"
            if self.engine.algorithm == Algorithm.MLFQ:
                extra += f" level={p.queue_level}"
            print(color + f"{p.pid:>4} {p.name:<16} {p.state.value:<10} "
                  f"arrival={p.arrival_time} burst={p.burst_time} remaining={p.remaining_time} "
                  f"priority={p.priority} type={p.process_type.value}{extra}")

    def _algo(self, args: List[str]) -> None:
        if not args:
            print(f"Current algorithm: {self.engine.algorithm}")
            return
        self.engine.set_algorithm(args[0])
        print(Fore.CYAN + f"Algorithm set to {self.engine.algorithm}")

    def _quantum(self, args: List[str]) -> None:
        if not args:
            print(f"Time quantum: {self.engine.time_quantum}")
            return
        self.engine.set_time_quantum(int(args[0]))
        print(Fore.CYAN + f"Time quantum set to {self.engine.time_quantum}")

    def _context_switch(self, args: List[str]) -> None:
        if not args:
            print(f"Context switch duration: {self.engine.context_switch_duration}")
            return
        self.engine.set_context_switch_duration(int(args[0]))
        print(Fore.CYAN + f"Context switch duration set to {self.engine.context_switch_duration}")

    def _step(self, args: List[str]) -> None:
        n = int(args[0]) if args else 1
        for _ in range(n):
            before = len(self.engine.logger.entries)
            snap = self.engine.tick()
            for entry in snap.log[before:]:
                self._print_entry(entry)
        running = self.engine.running_process
        print(Style.BRIGHT + f"t={self.engine.current_tick} running={running.name if running else '-'}")

    def _run(self, args: List[str]) -> None:
        if not self.engine.processes:
            print("No processes yet")
            return
        self.engine.run_until_complete()
        self._stats([])

    def _stats(self, args: List[str]) -> None:
        s = self.engine.stats
        print(Style.BRIGHT + f"Time: {s.current_time}")
        print(f"CPU utilization: {s.cpu_utilization:.1f}%")
        print(f"Avg waiting time: {s.avg_waiting_time:.2f}")
        print(f"Avg turnaround time: {s.avg_turnaround_time:.2f}")
        print(f"Avg response time: {s.avg_response_time:.2f}")
        print(f"Throughput: {s.throughput:.3f} processes/tick")
        print(f"Context switches: {self.engine.context_switches}")

    def _print_entry(self, entry) -> None:
        print(SEVERITY_COLORS[entry.severity] + f"[{entry.tick:>4}] {entry.message}")

    def _log(self, args: List[str]) -> None:
        n = int(args[0]) if args else 10
        for entry in self.engine.logger.entries[-n:]:
            self._print_entry(entry)

    def _timeline(self, args: List[str]) -> None:
        intervals = self.engine.logger.intervals
        if not intervals:
            print("Timeline is empty")
            return
        names = {p.pid: p.name for p in self.engine.processes}
        for seg in intervals:
            if seg.kind == IntervalKind.PROCESS:
                label = names.get(seg.owner_id, seg.owner_id)
                bar = "=" * seg.length
            else:
                label = seg.kind.value
                bar = TIMELINE_CHARS[seg.kind] * seg.length
            print(f"[{seg.start:>4}, {seg.end:>4}) {label:<16} {bar}")

    def _reset(self, args: List[str]) -> None:
        self.engine.reset()
        print(Fore.CYAN + "Simulation reset")

    def _export(self, args: List[str]) -> None:
        if not args:
            print(Fore.RED + "Usage: export <base path>")
            return
        base = args[0]
        self.engine.logger.export_json(f"{base}.json")
        self.engine.logger.export_csv(base)
        print(Fore.CYAN + f"Log written to {base}.json, {base}_log.csv and {base}_intervals.csv")

    def _plot(self, args: List[str]) -> None:
        if not args:
            print(Fore.RED + "Usage: plot <file.png>")
            return
        plot_gantt(self.engine.logger.intervals, self.engine.processes, args[0],
                   title=f"{self.engine.algorithm} timeline")
        print(Fore.CYAN + f"Saved plot to {args[0]}")


def main() -> None:
    ManualTerminal().prompt()


if __name__ == "__main__":
    main()

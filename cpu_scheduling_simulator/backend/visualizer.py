from __future__ import annotations

from typing import List, Optional, Dict, Iterable
import colorsys
import os
import matplotlib.pyplot as plt

from .core import PCB
from .utils import ExecutionInterval, IntervalKind


KIND_COLORS: Dict[IntervalKind, str] = {
    IntervalKind.IDLE: "#dddddd",
    IntervalKind.IO_WAIT: "#f4c27a",
    IntervalKind.CONTEXT_SWITCH: "#e07070",
}


def ensure_dir(path: str) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)


def process_colors(processes: Iterable[PCB]) -> Dict[str, str]:
    """Evenly spaced hues, stable for a given process order."""
    procs = list(processes)
    colors: Dict[str, str] = {}
    for i, p in enumerate(procs):
        r, g, b = colorsys.hsv_to_rgb(i / max(1, len(procs)), 0.55, 0.85)
        colors[p.pid] = f"#{int(r * 255):02x}{int(g * 255):02x}{int(b * 255):02x}"
    return colors


def plot_gantt(intervals: List[ExecutionInterval], processes: List[PCB], out_path: Optional[str] = None, title: str = "CPU Timeline") -> None:
    # One row per process, plus a bottom "CPU" row for idle/io-wait/switch spans
    names = {p.pid: p.name for p in processes}
    pid_to_color = process_colors(processes)
    pids_order = [p.pid for p in sorted(processes, key=lambda p: (p.arrival_time, p.pid))]
    y_positions: Dict[str, int] = {pid: i + 1 for i, pid in enumerate(pids_order)}

    fig, ax = plt.subplots(figsize=(12, 2 + 0.4 * max(1, len(pids_order))))

    for seg in intervals:
        if seg.kind == IntervalKind.PROCESS and seg.owner_id in y_positions:
            ax.barh(y_positions[seg.owner_id], seg.length, left=seg.start,
                    color=pid_to_color.get(seg.owner_id, "#777777"), edgecolor="black", alpha=0.9)
        elif seg.kind != IntervalKind.PROCESS:
            ax.barh(0, seg.length, left=seg.start, color=KIND_COLORS[seg.kind], edgecolor="#999999",
                    hatch="//" if seg.kind == IntervalKind.CONTEXT_SWITCH else None)

    ax.set_yticks([0] + [y_positions[pid] for pid in pids_order])
    ax.set_yticklabels(["idle / io / switch"] + [names[pid] for pid in pids_order])
    ax.set_xlabel("Tick")
    ax.set_title(title)
    ax.grid(True, axis="x", linestyle=":", alpha=0.5)
    fig.tight_layout()

    if out_path:
        ensure_dir(out_path)
        fig.savefig(out_path, dpi=150)
        plt.close(fig)
    else:
        plt.show()

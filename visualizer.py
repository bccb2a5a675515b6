"""
Visualizer for FlapSim.

Produces:
  1. Frame snapshots  – pipes, ground and birds from Simulation.snapshot()
  2. Training chart   – best score + best/mean fitness over generations
  3. Brain diagrams   – weights of a champion's 4-6-1 network
  4. CSV log          – per-generation stats
"""

import colorsys
import csv
import os
import re

import numpy as np
import matplotlib
matplotlib.use("Agg")          # non-interactive backend (no display needed)
import matplotlib.pyplot as plt
import matplotlib.patches as mpatches
from matplotlib.colors import to_rgba

from config import (
    CANVAS_WIDTH, CANVAS_HEIGHT, GROUND_HEIGHT, FLOOR_Y,
    PIPE_WIDTH, BIRD_RADIUS, SAVE_DIR, LOG_CSV, SENSOR_LABELS,
)

_HSLA = re.compile(r"hsla?\(\s*([\d.]+)\s*,\s*([\d.]+)%\s*,\s*([\d.]+)%\s*(?:,\s*([\d.]+)\s*)?\)")


# ──────────────────────────────────────────────────────────────────────────────
# Directory setup
# ──────────────────────────────────────────────────────────────────────────────

def ensure_dirs(base: str = SAVE_DIR):
    for sub in ("snapshots", "charts", "neural"):
        os.makedirs(os.path.join(base, sub), exist_ok=True)


def color_to_rgba(color: str) -> tuple:
    """Matplotlib colour for '#RRGGBB' or CSS 'hsla(h, s%, l%, a)' strings."""
    m = _HSLA.fullmatch(color.strip())
    if m:
        h, s, l = float(m.group(1)), float(m.group(2)), float(m.group(3))
        alpha = float(m.group(4)) if m.group(4) is not None else 1.0
        r, g, b = colorsys.hls_to_rgb((h % 360) / 360, l / 100, s / 100)
        return (r, g, b, alpha)
    return to_rgba(color)


# ──────────────────────────────────────────────────────────────────────────────
# Frame snapshot
# ──────────────────────────────────────────────────────────────────────────────

def save_frame_snapshot(frame: dict, base: str = SAVE_DIR, label: str = ""):
    """
    Draw one frame (Simulation.snapshot()) in canvas coordinates.
    The champion gets a white ring. Dead birds are not drawn.
    """
    fig, ax = plt.subplots(figsize=(4, 6), dpi=100)
    ax.set_xlim(0, CANVAS_WIDTH)
    ax.set_ylim(CANVAS_HEIGHT, 0)          # canvas y grows downward
    ax.set_aspect("equal")
    ax.set_facecolor("#7DD3FC")
    ax.set_xticks([])
    ax.set_yticks([])

    for pipe in frame["pipes"]:
        ax.add_patch(mpatches.Rectangle(
            (pipe["x"], 0), PIPE_WIDTH, pipe["topHeight"],
            facecolor="#22C55E", edgecolor="#14532D", linewidth=1.5))
        ax.add_patch(mpatches.Rectangle(
            (pipe["x"], pipe["bottomY"]), PIPE_WIDTH, FLOOR_Y - pipe["bottomY"],
            facecolor="#22C55E", edgecolor="#14532D", linewidth=1.5))

    ax.add_patch(mpatches.Rectangle(
        (0, FLOOR_Y), CANVAS_WIDTH, GROUND_HEIGHT,
        facecolor="#D6D3D1", edgecolor="#78716C", linewidth=1.5))

    for bird in frame["birds"]:
        if not bird["alive"]:
            continue
        ax.add_patch(mpatches.Circle(
            (bird["x"], bird["y"]), BIRD_RADIUS,
            facecolor=color_to_rgba(bird["color"]),
            edgecolor="white" if bird["champion"] else "#854D0E",
            linewidth=2 if bird["champion"] else 1))

    title = f"{frame['mode']}  score {frame['score']}"
    if frame["mode"] == "AI":
        title += f"  gen {frame['generation']}  alive {frame['alive']}"
    ax.set_title(title, fontsize=9)

    name = f"gen_{frame['generation']:06d}_step_{frame['steps']:06d}"
    if label:
        name += f"_{label}"
    path = os.path.join(base, "snapshots", name + ".png")
    plt.savefig(path, dpi=100, bbox_inches="tight")
    plt.close(fig)
    return path


# ──────────────────────────────────────────────────────────────────────────────
# Training chart
# ──────────────────────────────────────────────────────────────────────────────

def save_training_chart(stats: list, base: str = SAVE_DIR,
                        filename: str = "training.png"):
    """
    Best score per generation (left axis) against best and mean fitness
    (right axis).
    """
    if not stats:
        return
    gens       = [s["generation"]   for s in stats]
    best_score = [s["best_score"]   for s in stats]
    best_fit   = [s["best_fitness"] for s in stats]
    mean_fit   = [s["mean_fitness"] for s in stats]

    fig, ax1 = plt.subplots(figsize=(12, 5), dpi=100)
    fig.patch.set_facecolor("#111111")
    ax1.set_facecolor("#111111")

    ax1.plot(gens, best_score, color="#44FF44", linewidth=1.2,
             label="Best score", zorder=3)
    ax1.set_ylabel("Pipes cleared", color="white")
    ax1.set_ylim(0, max(best_score) * 1.05 + 1)
    ax1.tick_params(axis="both", colors="white")
    ax1.set_xlabel("Generation", color="white")

    ax2 = ax1.twinx()
    ax2.plot(gens, best_fit, color="#CC44FF", linewidth=1.0,
             linestyle="--", label="Best fitness", zorder=2)
    ax2.plot(gens, mean_fit, color="#FF8800", linewidth=1.0,
             alpha=0.8, label="Mean fitness", zorder=2)
    ax2.set_ylabel("Fitness", color="white")
    ax2.tick_params(colors="white")

    for spine in ax1.spines.values():
        spine.set_edgecolor("#444444")

    lines1, labels1 = ax1.get_legend_handles_labels()
    lines2, labels2 = ax2.get_legend_handles_labels()
    ax1.legend(lines1 + lines2, labels1 + labels2,
               facecolor="#222222", labelcolor="white",
               loc="upper left", fontsize=8)

    ax1.set_title("Training Progress", color="white", fontsize=12)
    plt.tight_layout()
    path = os.path.join(base, "charts", filename)
    plt.savefig(path, dpi=100, bbox_inches="tight",
                facecolor=fig.get_facecolor())
    plt.close(fig)
    return path


# ──────────────────────────────────────────────────────────────────────────────
# Brain diagram
# ──────────────────────────────────────────────────────────────────────────────

def save_brain_diagram(brain, generation: int, label: str = "",
                       base: str = SAVE_DIR):
    """
    Draw the network as three columns: sensors (blue) → hidden (grey) →
    output (pink). Green edges = positive weights, red = negative,
    width ~ |weight|.
    """
    layers = [brain.input_nodes, brain.hidden_nodes, brain.output_nodes]
    xs = (0.0, 0.5, 1.0)

    def _positions(n, x):
        return [(x, (i + 1) / (n + 1)) for i in range(n)]

    pos = [_positions(n, x) for n, x in zip(layers, xs)]

    fig, ax = plt.subplots(figsize=(10, 6), dpi=100)
    fig.patch.set_facecolor("#111111")
    ax.set_facecolor("#111111")
    ax.axis("off")
    ax.set_xlim(-0.2, 1.25)
    ax.set_ylim(-0.05, 1.08)

    for weights, src, dst in ((brain.weights_ih, pos[0], pos[1]),
                              (brain.weights_ho, pos[1], pos[2])):
        for i, (x1, y1) in enumerate(src):
            for j, (x2, y2) in enumerate(dst):
                w = weights[i, j]
                color = "#44FF44" if w >= 0 else "#FF4444"
                lw = 0.5 + min(3.0, abs(w) * 2)
                ax.plot([x1, x2], [y1, y2], color=color, lw=lw,
                        alpha=0.7, zorder=1)

    colours = ("#4499FF", "#AAAAAA", "#FF88AA")
    for layer, (nodes, colour) in enumerate(zip(pos, colours)):
        for i, (x, y) in enumerate(nodes):
            ax.add_patch(plt.Circle((x, y), 0.025, color=colour, zorder=3))
            if layer == 0:
                ax.text(x - 0.04, y, SENSOR_LABELS.get(i, f"S{i}"),
                        color="white", fontsize=7, ha="right", va="center")
            elif layer == 1:
                ax.text(x, y - 0.05, f"b={brain.bias_h[i]:+.2f}",
                        color="#CCCCCC", fontsize=6, ha="center")
            else:
                ax.text(x + 0.04, y, f"flap (b={brain.bias_o[i]:+.2f})",
                        color="white", fontsize=7, ha="left", va="center")

    for tx, title in zip(xs, ("Sensors", "Hidden", "Output")):
        ax.text(tx, 1.04, title, color="#CCCCCC", ha="center",
                fontsize=9, fontweight="bold")

    ax.set_title(f"Gen {generation} - Brain of {label}  "
                 f"({brain.parameter_count} parameters, "
                 f"mean |w| {np.mean(np.abs(brain.parameters())):.2f})",
                 color="white", fontsize=10, pad=4)

    path = os.path.join(base, "neural", f"gen_{generation:06d}_{label}.png")
    plt.savefig(path, dpi=100, bbox_inches="tight",
                facecolor=fig.get_facecolor())
    plt.close(fig)
    return path


# ──────────────────────────────────────────────────────────────────────────────
# CSV log
# ──────────────────────────────────────────────────────────────────────────────

def append_csv(stats: dict, base: str = SAVE_DIR):
    """Append one generation's stats to a CSV file."""
    if not LOG_CSV:
        return
    path = os.path.join(base, "training_log.csv")
    file_exists = os.path.isfile(path)
    with open(path, "a", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(stats.keys()))
        if not file_exists:
            writer.writeheader()
        writer.writerow(stats)
    return path

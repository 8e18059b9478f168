# chart rendering: bar and area charts as inline svg
# driven entirely by a ChartConfig, so every page variant shares one renderer

import io
import logging
from typing import Sequence

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from practice_dashboard.services.presentation import ChartConfig

logger = logging.getLogger(__name__)

GRID_COLOR = "#444444"
TICK_COLOR = "#aaaaaa"


def _style_axes(ax):
    ax.set_facecolor("none")
    ax.grid(True, linestyle="--", color=GRID_COLOR, alpha=0.6)
    ax.tick_params(colors=TICK_COLOR, labelsize=9)
    for spine in ax.spines.values():
        spine.set_color(GRID_COLOR)


def render_chart(config: ChartConfig, rows: Sequence) -> str:
    """render rows as an svg string using the chart's style and series"""
    labels = [str(getattr(r, config.x_key, "")) for r in rows]
    positions = range(len(labels))

    fig, ax = plt.subplots(figsize=(8, config.height))
    fig.patch.set_alpha(0)
    _style_axes(ax)

    if config.style == "bar":
        width = 0.8 / max(len(config.series), 1)
        for i, series in enumerate(config.series):
            values = [getattr(r, series.key, 0) for r in rows]
            offsets = [p + (i - (len(config.series) - 1) / 2) * width for p in positions]
            ax.bar(offsets, values, width=width, color=series.color, label=series.label)
    elif config.style == "area":
        for series in config.series:
            values = [getattr(r, series.key, 0) for r in rows]
            ax.fill_between(positions, values, color=series.color, alpha=0.6, label=series.label)
            ax.plot(positions, values, color=series.color, linewidth=1.5)
        if len(config.series) > 1:
            legend = ax.legend(frameon=False, fontsize=8)
            for text in legend.get_texts():
                text.set_color(TICK_COLOR)
    else:
        plt.close(fig)
        raise ValueError(f"Unsupported chart style: {config.style}")

    ax.set_xticks(list(positions))
    ax.set_xticklabels(labels, rotation=0 if len(labels) <= 6 else 45, ha="center" if len(labels) <= 6 else "right")
    fig.tight_layout()

    buffer = io.StringIO()
    fig.savefig(buffer, format="svg", transparent=True)
    plt.close(fig)
    # drop the xml prolog and doctype, the svg is inlined into html
    svg = buffer.getvalue()
    return svg[svg.find("<svg"):]

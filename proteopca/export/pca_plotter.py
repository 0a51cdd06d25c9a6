"""Scatter plot of two principal components, exported with matplotlib."""

import pandas as pd
import seaborn as sns
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.lines import Line2D
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from proteopca.analysis.annotationmerger import LABEL_COLUMN
from proteopca.utils.utils import log_time, log_info

MARKERS = ["o", "^", "s", "D", "v", "P", "X", "*", "<", ">"]


def axis_label(k: int, variance: Sequence[str]) -> str:
    """'PC1 (41.27% explained variance)' from preformatted percentage strings."""
    return f"PC{k} ({variance[k - 1]}% explained variance)"


def _levels(series: Optional[pd.Series]) -> List[str]:
    if series is None:
        return []
    return list(dict.fromkeys(series.astype(str)))


class PCAPlotter:
    def __init__(self, plot_config: Optional[Dict] = None):
        """Matplotlib renderer for a merged PCA table; reads options from the `plot` config section."""
        cfg = plot_config or {}
        self.path_plot = cfg.get("path_plot", "PCA.pdf")
        self.shape_column = cfg.get("shape_column", "Infected")
        self.shape_title = cfg.get("shape_title", "Condition")
        self.color_column = cfg.get("color_column", "Time")
        self.show_color_legend = bool(cfg.get("show_color_legend", False))
        self.title = cfg.get("title", "Principal Component Analysis (PCA)")
        self.width = float(cfg.get("width", 2.5))
        self.height = float(cfg.get("height", 2.5))
        self.base_size = float(cfg.get("base_size", 7))
        self.point_size = float(cfg.get("point_size", 12))
        self.alpha = float(cfg.get("alpha", 0.8))
        self.palette = cfg.get("palette", "tab10")

    def _column(self, df: pd.DataFrame, name: Optional[str]) -> Optional[pd.Series]:
        if name is None:
            return None
        if name not in df.columns:
            log_info(f"Plot column '{name}' not in table; ignored.")
            return None
        return df[name]

    def _annotate(self, ax, df: pd.DataFrame, x_col: str, y_col: str, colors: List) -> None:
        x_median = df[x_col].median()
        for (x, y, label), color in zip(df[[x_col, y_col, LABEL_COLUMN]].itertuples(index=False), colors):
            if not label:
                continue
            ha = "left" if x <= x_median else "right"
            ax.annotate(
                label,
                xy=(x, y),
                xytext=(4 if ha == "left" else -4, 0),
                textcoords="offset points",
                ha=ha, va="center",
                fontsize=max(self.base_size - 2, 4),
                color=color,
                bbox=dict(boxstyle="round,pad=0.2", fc="white", ec=color, alpha=0.25, lw=0.5),
            )

    def render(
        self,
        plot_df: pd.DataFrame,
        variance: Sequence[str],
        axis_x: int = 1,
        axis_y: int = 2,
        n_proteins: Optional[int] = None,
    ):
        """Draw the scatter and return the matplotlib Figure."""
        x_col, y_col = f"PC{axis_x}", f"PC{axis_y}"

        shape_s = self._column(plot_df, self.shape_column)
        color_s = self._column(plot_df, self.color_column)
        shape_levels = _levels(shape_s)
        color_levels = _levels(color_s)
        palette = dict(zip(color_levels, sns.color_palette(self.palette, max(len(color_levels), 1))))
        markers = {lv: MARKERS[i % len(MARKERS)] for i, lv in enumerate(shape_levels)}

        # categorical copies for hue/style, same as treating them as factors
        data = plot_df[list(dict.fromkeys([x_col, y_col, LABEL_COLUMN]))].copy()
        hue = style = None
        style_kwargs = {"color": "black"}
        if color_s is not None:
            hue = "_color"
            data[hue] = color_s.astype(str).to_numpy()
            style_kwargs = {"palette": palette}
        if shape_s is not None:
            style = "_shape"
            data[style] = shape_s.astype(str).to_numpy()
            style_kwargs["markers"] = markers

        fig, ax = plt.subplots(figsize=(self.width, self.height))
        sns.scatterplot(
            data=data,
            x=x_col,
            y=y_col,
            hue=hue,
            style=style,
            s=self.point_size,
            alpha=self.alpha,
            linewidth=0,
            legend=False,
            ax=ax,
            **style_kwargs,
        )
        point_colors = ([palette[v] for v in data[hue]] if hue else ["black"] * len(data))
        self._annotate(ax, data, x_col, y_col, point_colors)

        ax.margins(0.1)
        ax.grid(False)
        ax.tick_params(labelsize=self.base_size)
        ax.set_xlabel(axis_label(axis_x, variance), fontsize=self.base_size)
        ax.set_ylabel(axis_label(axis_y, variance), fontsize=self.base_size)

        fig.suptitle(self.title, fontsize=self.base_size + 1)
        if n_proteins is not None:
            ax.set_title(f"n = {n_proteins:,} proteins", fontsize=self.base_size, style="italic")

        # seaborn's own legend mixes hue and style; the color guide is optional here
        handles = [Line2D([0], [0], marker=markers[lv], color="grey", linestyle="", label=lv)
                   for lv in shape_levels]
        if self.show_color_legend:
            handles += [Line2D([0], [0], marker="o", color=palette[lv], linestyle="", label=lv)
                        for lv in color_levels]
        if handles:
            ax.legend(handles=handles, title=self.shape_title, loc="lower right",
                      fontsize=self.base_size - 1, title_fontsize=self.base_size - 1,
                      frameon=True, facecolor=(0.95, 0.95, 0.95), edgecolor="none",
                      markerscale=0.6)
        fig.tight_layout()
        return fig

    @log_time("Plotting PCA")
    def plot(
        self,
        plot_df: pd.DataFrame,
        variance: Sequence[str],
        axis_x: int = 1,
        axis_y: int = 2,
        n_proteins: Optional[int] = None,
    ) -> Path:
        """Render and write the figure to `path_plot`."""
        fig = self.render(plot_df, variance, axis_x, axis_y, n_proteins)
        out = Path(self.path_plot)
        out.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(out)
        plt.close(fig)
        log_info(f"Figure written to {out}")
        return out

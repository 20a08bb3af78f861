from __future__ import annotations
import os
from typing import Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt


def _ensure_dir(p: Optional[str]) -> None:
    if p:
        d = os.path.dirname(str(p))
        if d and not os.path.exists(d):
            os.makedirs(d, exist_ok=True)


def _require(df: pd.DataFrame, cols, name: str = "df") -> None:
    miss = set(cols) - set(df.columns)
    if miss:
        raise ValueError(f"'{name}' is missing columns: {miss}")


def _finish(fig: plt.Figure, out_path: Optional[str], show: bool) -> Optional[str]:
    fig.tight_layout()
    saved = None
    if out_path:
        _ensure_dir(out_path)
        fig.savefig(out_path, dpi=150, bbox_inches="tight")
        saved = str(out_path)
    if show:
        plt.show()
    else:
        plt.close(fig)
    return saved


def plot_bar_counts(
    df: pd.DataFrame,
    label_col: str,
    count_col: str = "count",
    title: str = "",
    out_path: Optional[str] = None,
    show: bool = False,
    *,
    top_n: Optional[int] = None,
    xlabel: str = "Count",
) -> Tuple[plt.Figure, plt.Axes, Optional[str]]:
    """
    Horizontal bar chart, largest bar on top.
    """
    _require(df, {label_col, count_col})
    data = df.sort_values(count_col, ascending=False)
    if top_n:
        data = data.head(top_n)
    data = data.iloc[::-1]

    fig, ax = plt.subplots(figsize=(9, max(3.0, 0.32 * len(data) + 1.2)))
    ax.barh(data[label_col].astype(str), data[count_col])
    ax.set_title(title)
    ax.set_xlabel(xlabel)
    ax.set_ylabel("")
    saved = _finish(fig, out_path, show)
    return fig, ax, saved


def plot_point_percentages(
    df: pd.DataFrame,
    label_col: str,
    pct_col: str = "pct",
    title: str = "",
    out_path: Optional[str] = None,
    show: bool = False,
    *,
    xlabel: str = "Share of respondents",
) -> Tuple[plt.Figure, plt.Axes, Optional[str]]:
    """
    Dot plot of 0..1 shares, highest share on top, x axis in percent.
    """
    _require(df, {label_col, pct_col})
    data = df.sort_values(pct_col, ascending=True)

    fig, ax = plt.subplots(figsize=(8, max(3.0, 0.32 * len(data) + 1.2)))
    ax.scatter(data[pct_col] * 100.0, data[label_col].astype(str), zorder=3)
    ax.grid(axis="x", alpha=0.3)
    ax.set_xlim(0, 100)
    ax.set_title(title)
    ax.set_xlabel(f"{xlabel} (%)")
    saved = _finish(fig, out_path, show)
    return fig, ax, saved


def plot_line(
    df: pd.DataFrame,
    x_col: str,
    y_col: str,
    group_col: Optional[str] = None,
    title: str = "",
    out_path: Optional[str] = None,
    show: bool = False,
) -> Tuple[plt.Figure, plt.Axes, Optional[str]]:
    """
    One line per `group_col` value (or a single line), sorted by x.
    """
    _require(df, {x_col, y_col} | ({group_col} if group_col else set()))

    fig, ax = plt.subplots(figsize=(9, 4.5))
    if group_col:
        for key, sub in df.groupby(group_col, sort=True):
            sub = sub.sort_values(x_col)
            ax.plot(sub[x_col].to_numpy(), sub[y_col].to_numpy(), marker="o", linewidth=1.5, label=str(key))
        ax.legend(title=group_col, fontsize=8)
    else:
        data = df.sort_values(x_col)
        ax.plot(data[x_col].to_numpy(), data[y_col].to_numpy(), marker="o", linewidth=1.5)
    ax.set_title(title)
    ax.set_xlabel(x_col)
    ax.set_ylabel(y_col)
    saved = _finish(fig, out_path, show)
    return fig, ax, saved


def plot_stacked_counts(
    df: pd.DataFrame,
    label_col: str,
    stack_col: str,
    count_col: str = "count",
    title: str = "",
    out_path: Optional[str] = None,
    show: bool = False,
) -> Tuple[plt.Figure, plt.Axes, Optional[str]]:
    """
    Stacked horizontal bars: one bar per `label_col`, segments per `stack_col`.
    """
    _require(df, {label_col, stack_col, count_col})
    pivot = pd.pivot_table(df, index=label_col, columns=stack_col, values=count_col, aggfunc="sum", fill_value=0)
    pivot = pivot.loc[pivot.sum(axis=1).sort_values(ascending=True).index]

    fig, ax = plt.subplots(figsize=(10, max(3.0, 0.35 * len(pivot) + 1.5)))
    labels = pivot.index.astype(str)
    left = np.zeros(len(pivot))
    for col in pivot.columns:
        widths = pivot[col].to_numpy(dtype=float)
        ax.barh(labels, widths, left=left, label=str(col))
        left = left + widths
    ax.set_title(title)
    ax.set_xlabel(count_col)
    ax.legend(title=stack_col, fontsize=8, loc="lower right")
    saved = _finish(fig, out_path, show)
    return fig, ax, saved

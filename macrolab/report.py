# macrolab/report.py
from pathlib import Path
from typing import Iterable, Mapping

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd

from .composite import CompositeScore
from .regime import RegimeResult


def save_frame(df: pd.DataFrame, path: Path, index: bool = True) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=index, encoding="utf-8")
    return path


def write_snapshot(lines: Iterable[str], path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def _save(fig, out_png: Path, dpi: int = 140) -> Path:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(out_png, dpi=dpi)
    plt.close(fig)
    return out_png


def engine_frame(engines: Mapping[str, CompositeScore]) -> pd.DataFrame:
    rows = []
    for eid, sc in engines.items():
        top = sc.contributions[0].indicator_id if sc.contributions else ""
        rows.append({"engine": eid, "z": sc.z, "score": sc.display_score, "top_driver": top,
                     "missing": ";".join(sc.missing)})
    return pd.DataFrame(rows).set_index("engine")


def plot_engine_scores(engines: Mapping[str, CompositeScore], out_png: Path) -> Path:
    df = engine_frame(engines)
    fig = plt.figure(figsize=(8, 4))
    ax = fig.gca()
    ax.bar(df.index, df["score"], color="#2E86AB")
    ax.axhline(50, color="gray", linestyle="--", linewidth=1)
    ax.set_ylim(0, 100)
    ax.set_title("Engine scores (50 = neutral)")
    ax.set_ylabel("score")
    return _save(fig, out_png)


def plot_regime_probabilities(result: RegimeResult, out_png: Path) -> Path:
    labels = [rp.label for rp in result.probabilities]
    probs = [rp.p for rp in result.probabilities]
    fig = plt.figure(figsize=(8, 4))
    ax = fig.gca()
    ax.barh(labels[::-1], probs[::-1], color="#A23B72")
    ax.set_xlim(0, 1)
    ax.set_title(f"Regime probabilities (confidence {result.confidence:.0%})")
    ax.set_xlabel("probability")
    return _save(fig, out_png)


def plot_output_gap(frame: pd.DataFrame, out_png: Path) -> Path:
    fig = plt.figure(figsize=(10, 4))
    ax = fig.gca()
    ax.plot(frame.index, frame["gap"].values, linewidth=1.8, color="#2E86AB", label="output gap (%)")
    ax.axhline(0, color="gray", linestyle="--", alpha=0.5, linewidth=1)
    ax.set_title("Output gap (HP filter on log real GDP)")
    ax.set_ylabel("% of trend")
    ax.legend(loc="lower left")
    ax.grid(True, alpha=0.15, linestyle=":", linewidth=0.5)
    return _save(fig, out_png)


def plot_sensitivity_grid(grid: pd.DataFrame, out_png: Path) -> Path:
    fig = plt.figure(figsize=(7, 6))
    ax = fig.gca()
    im = ax.imshow(grid.values, aspect="auto", origin="lower", cmap="RdYlGn")
    ax.set_xticks(range(len(grid.columns)))
    ax.set_xticklabels([f"{v:.1f}" for v in grid.columns], rotation=45, ha="right")
    ax.set_yticks(range(len(grid.index)))
    ax.set_yticklabels([f"{v:.1f}" for v in grid.index])
    ax.set_xlabel("demand shock (%)")
    ax.set_ylabel("supply shock (%)")
    ax.set_title("Implied price move (%)")
    fig.colorbar(im, ax=ax)
    return _save(fig, out_png)

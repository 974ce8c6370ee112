# run_scorecard.py
import argparse
import logging
from pathlib import Path

import pandas as pd

from macrolab.composite import models_from_config, score_engines
from macrolab.config import load_config
from macrolab.errors import is_available
from macrolab.hpfilter import forecast_from_output_gap, output_gap
from macrolab.indicators import (DEFAULT_INDICATORS, compute_indicator_stats, coverage_confidence,
                                 leading_composite_history, macro_correlations, nowcast_growth, score_vector)
from macrolab.loader import load_indicators, load_single_csv
from macrolab.narrative import market_lens, risk_level, turning_note
from macrolab.regime import classify, regimes_from_config, turning_point
from macrolab.report import (engine_frame, plot_engine_scores, plot_output_gap, plot_regime_probabilities,
                             plot_sensitivity_grid, save_frame, write_snapshot)
from macrolab.scenario import ScenarioInputs, balance_engine

BASE = Path(__file__).resolve().parent


def pick_data_dir(files) -> Path:
    # Prefer data/, fall back to data/sample/
    for c in [BASE/"data", BASE/"data"/"sample"]:
        if c.exists():
            hits = sum((c/f).exists() for f in files)
            if hits >= 1:
                return c
    return BASE/"data"/"sample"


def run(cfg: dict, data_dir: Path, out_dir: Path) -> dict:
    files = cfg["data"]["files"]
    series = load_indicators(data_dir, files)
    for key in files:
        if key not in series:
            print(f"[WARN] {key}: no data, engine terms using it are skipped")

    base = cfg["baseline"]
    stats = {k: compute_indicator_stats(s, lookback=base["lookback_years"], indicator_id=k,
                                        min_samples=base["summary_min_samples"])
             for k, s in series.items()}
    scores = score_vector(stats)

    # 1) Engines -> regime -> turning point
    engines = score_engines(models_from_config(cfg["engines"]), scores)
    rc = cfg["regimes"]
    regime = classify(engines, regimes_from_config(rc["table"]),
                      fragility_weight=rc["fragility_weight"],
                      confidence_slope=rc["confidence_slope"],
                      confidence_floor=rc["confidence_floor"])
    tc = cfg["turning_point"]
    u, g = stats.get("unemployment"), stats.get("gdp_growth")
    turn = turning_point(engines,
                         unemployment_delta=u.delta if u else 0.0,
                         gdp_delta=g.delta if g else 0.0,
                         table=tc["features"], slope=tc["slope"], shift=tc["shift"])

    # 2) Output gap (optional real GDP level file)
    gap = None
    gdp_path = Path(data_dir) / cfg["data"]["real_gdp"]
    if gdp_path.exists():
        gap = output_gap(load_single_csv(gdp_path), lam=cfg["hp"]["lambda"])
        if not is_available(gap):
            print(f"[WARN] output gap: {gap['reason']}")

    # 3) Commodity balance scenario
    sc = cfg["scenario"]
    inputs = ScenarioInputs(
        demand_growth=sc["demand_growth"],
        supply_growth=sc["supply_growth"],
        inventory_swing=sc["inventory_swing"],
        demand_elasticity=sc["demand_elasticity"],
        supply_elasticity=sc["supply_elasticity"],
        balance_override=sc.get("balance_override"),
    )
    balance = balance_engine(inputs, sc["range"], sc["steps"], sc["grid_span"], sc["grid_points"])

    # 4) Reports
    out_dir = Path(out_dir)
    out_dir.mkdir(exist_ok=True, parents=True)
    save_frame(engine_frame(engines), out_dir/"engine_scores.csv")
    save_frame(pd.DataFrame({"label": [rp.label for rp in regime.probabilities],
                             "p": [rp.p for rp in regime.probabilities]},
                            index=pd.Index([rp.id for rp in regime.probabilities], name="regime")),
               out_dir/"regime_probabilities.csv")
    save_frame(balance.sweep_frame(), out_dir/"scenario_sweep.csv", index=False)
    save_frame(balance.grid, out_dir/"sensitivity_grid.csv")
    plot_engine_scores(engines, out_dir/"engine_scores.png")
    plot_regime_probabilities(regime, out_dir/"regime_probabilities.png")
    plot_sensitivity_grid(balance.grid, out_dir/"sensitivity_grid.png")
    if is_available(gap):
        save_frame(gap["frame"], out_dir/"output_gap.csv")
        plot_output_gap(gap["frame"], out_dir/"output_gap.png")

    # 5) Macro correlations and leading composite history
    corr = macro_correlations(series, min_years=base["history_min_years"])
    if is_available(corr) and corr["pairs"]:
        save_frame(pd.DataFrame(corr["pairs"]), out_dir/"macro_correlations.csv", index=False)
    lead_hist = leading_composite_history(series, min_points=base["history_min_years"])
    if lead_hist is not None:
        save_frame(lead_hist.to_frame(), out_dir/"leading_composite.csv")

    nowcast = nowcast_growth(g, scores)
    forecast = forecast_from_output_gap(gap)
    lines = [
        f"Data directory: {data_dir}",
        f"Indicator coverage confidence: {coverage_confidence(stats, len(DEFAULT_INDICATORS))}%",
        "",
    ]
    for eid, s in engines.items():
        lines.append(f"- {eid}: z={s.z:+.2f} score={s.display_score} risk={risk_level(s.z)}")
    lines.append("")
    lines.append(f"Top regime: {regime.top.label} (p={regime.top.p:.2f}, confidence {regime.confidence:.0%})")
    lines.append(f"Turning point probability: {turn['p']:.0%}. {turning_note(turn['p'], engines)}")
    if nowcast is not None:
        lines.append(f"Nowcast growth: {nowcast['nowcast']:.2f}% (leading composite {nowcast['composite']:+.2f})")
    if forecast is not None:
        lines.append(f"Trend growth (forecast proxy): {forecast:.2f}%")
    if is_available(corr):
        for pr in corr["pairs"]:
            lines.append(f"Correlation {pr['a']} vs {pr['b']}: {pr['r']:+.2f} ({corr['years']} years)")
    else:
        lines.append(f"Correlations: {corr['reason']}")
    if lead_hist is not None:
        lines.append(f"Leading composite history: {len(lead_hist)} periods, latest {lead_hist.iloc[-1]:+.2f}")
    lines.append(f"Balance shock {balance.base_balance:+.2f} -> implied move {balance.implied_move:+.2f}%")
    lines.append("Market lens: " + " | ".join(market_lens(engines)))
    write_snapshot(lines, out_dir/"snapshot.txt")

    return {"engines": engines, "regime": regime, "turning_point": turn, "output_gap": gap,
            "balance": balance, "nowcast": nowcast, "correlations": corr, "leading_history": lead_hist}


def main(argv=None):
    p = argparse.ArgumentParser(description="Score macro engines, regimes and scenarios from indicator CSVs.")
    p.add_argument("--config", default=str(BASE/"config.yaml"), help="YAML config (default: config.yaml)")
    p.add_argument("--data-dir", default=None, help="Directory with indicator CSVs (default: data/ or data/sample/)")
    p.add_argument("--out", default=str(BASE/"reports"), help="Where to write reports (default: reports)")
    p.add_argument("--verbose", action="store_true", help="Debug logging")
    args = p.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")
    cfg = load_config(args.config)
    data_dir = Path(args.data_dir) if args.data_dir else pick_data_dir(cfg["data"]["files"].values())
    print(f"[INFO] Using data directory: {data_dir}")

    res = run(cfg, data_dir, Path(args.out))
    print("[DONE] Reports saved to:", args.out)
    return res


if __name__ == "__main__":
    main()

"""
---
version: 0.1.0
created: 2026-10-19
updated: 2026-10-19
---

table_survey.py — Survey of generated decoding tables across sizes and seeds.

For every grid size in range and a block of seeds, generates the
decoding table and checks:
  1. Determinism — regenerating gives the identical table
  2. Totality — every product of the grid has a letter
  3. Coverage — every letter except space has at least one product
  4. Round-trip — sample messages decode back to their normalized form
  5. Frequency fit — chi-squared and KL divergence of letter supply
     against the letter weights

Usage:
    python3 table_survey.py [--sizes 8-20] [--seeds 200] [--start-seed 1]
                            [--no-plots] [--save-dir DIR]
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

import numpy as np

from timescipher import (
    LETTERS, MAX_GRID_SIZE, MIN_GRID_SIZE,
    build_reverse_table, decode, encode, generate_decoding_table,
    normalize_message, table_frequency_test,
)

SAMPLE_MESSAGES: tuple[str, ...] = (
    "the quick brown fox jumps over the lazy dog",
    "SPHINX OF BLACK QUARTZ JUDGE MY VOW",
    "meet me at the usual place at ten",
    "zzz",
)


def parse_sizes(text: str) -> list[int]:
    """Parse "8-20" or "12" into a list of grid sizes."""
    start, sep, end = text.partition("-")
    try:
        lo = int(start)
        hi = int(end) if sep else lo
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected N or A-B, got {text!r}")
    if lo < 1 or hi < lo:
        raise argparse.ArgumentTypeError(f"Invalid size range {text!r}")
    return list(range(lo, hi + 1))


def survey_table(grid_size: int, seed: int) -> dict:
    """Run all checks on one (grid_size, seed) pair."""
    table = generate_decoding_table(grid_size, seed)
    freq = table_frequency_test(table, grid_size)
    round_trip_ok = all(
        decode(encode(message, table), table) == normalize_message(message)
        for message in SAMPLE_MESSAGES
    ) if not freq["missing"] else False
    return {
        "grid_size": grid_size,
        "seed": seed,
        "deterministic": table == generate_decoding_table(grid_size, seed),
        "total": set(table) == set(build_reverse_table(grid_size)),
        "missing": freq["missing"],
        "round_trip": round_trip_ok,
        "chi2": freq["chi2"],
        "p_value": freq["p_value"],
        "kl_divergence": freq["kl_divergence"],
        "spaces": sum(1 for letter in table.values() if letter == " "),
    }


def run_survey(sizes: list[int], n_seeds: int = 200, start_seed: int = 1) -> dict:
    """
    Survey every size over seeds [start_seed, start_seed + n_seeds).

    Returns dict with:
        rows: one survey_table() result per (size, seed)
        by_size: per-size summary (failures, chi2/KL percentiles, best/worst seed)
        failures: rows failing determinism, totality, coverage or round-trip
    """
    if n_seeds < 1:
        raise ValueError(f"Need at least one seed, got {n_seeds}")
    rows: list[dict] = []
    t0 = time.time()
    for size in sizes:
        for seed in range(start_seed, start_seed + n_seeds):
            rows.append(survey_table(size, seed))
        print(f"  N={size:>2}: {n_seeds} seeds surveyed ({time.time() - t0:.1f}s)")

    failures = [
        r for r in rows
        if not (r["deterministic"] and r["total"] and not r["missing"] and r["round_trip"])
    ]

    by_size: dict[int, dict] = {}
    for size in sizes:
        size_rows = [r for r in rows if r["grid_size"] == size]
        chi2 = np.array([r["chi2"] for r in size_rows], dtype=float)
        kl = np.array([r["kl_divergence"] for r in size_rows], dtype=float)
        best = min(size_rows, key=lambda r: r["kl_divergence"])
        worst = max(size_rows, key=lambda r: r["kl_divergence"])
        by_size[size] = {
            "n": len(size_rows),
            "failures": sum(1 for r in failures if r["grid_size"] == size),
            "chi2_median": float(np.median(chi2)),
            "chi2_p95": float(np.percentile(chi2, 95)),
            "kl_median": float(np.median(kl)),
            "kl_p95": float(np.percentile(kl, 95)),
            "spaces_mean": float(np.mean([r["spaces"] for r in size_rows])),
            "best_seed": best["seed"],
            "worst_seed": worst["seed"],
        }

    return {"rows": rows, "by_size": by_size, "failures": failures}


def print_summary(results: dict) -> None:
    """Print the per-size table and any failing tables."""
    print("\n" + "=" * 70)
    print("SUMMARY BY GRID SIZE")
    print("=" * 70)
    print(f"  {'N':>3} {'Tables':>7} {'Fail':>5} {'Chi2 med':>9} {'Chi2 p95':>9} "
          f"{'KL med':>7} {'KL p95':>7} {'Spaces':>7} {'Best':>6} {'Worst':>6}")
    print("  " + "-" * 76)
    for size, s in results["by_size"].items():
        print(f"  {size:>3} {s['n']:>7} {s['failures']:>5} {s['chi2_median']:>9.1f} "
              f"{s['chi2_p95']:>9.1f} {s['kl_median']:>7.3f} {s['kl_p95']:>7.3f} "
              f"{s['spaces_mean']:>7.2f} {s['best_seed']:>6} {s['worst_seed']:>6}")

    failures = results["failures"]
    print(f"\nFailing tables: {len(failures)}")
    for r in failures[:20]:
        reasons = []
        if not r["deterministic"]:
            reasons.append("not deterministic")
        if not r["total"]:
            reasons.append("not total")
        if r["missing"]:
            reasons.append(f"missing {''.join(r['missing'])}")
        elif not r["round_trip"]:
            reasons.append("round-trip mismatch")
        print(f"  N={r['grid_size']:>2} seed={r['seed']:>6}: {', '.join(reasons)}")
    if len(failures) > 20:
        print(f"  ... {len(failures) - 20} more")


def plot_survey(results: dict, save_dir: Path) -> None:
    """KL divergence distribution per grid size."""
    try:
        import matplotlib.pyplot as plt
    except ImportError:
        print("  matplotlib not available; skipping plots")
        return

    sizes = list(results["by_size"])
    data = [
        [r["kl_divergence"] for r in results["rows"] if r["grid_size"] == size]
        for size in sizes
    ]

    fig, ax = plt.subplots(figsize=(max(6, len(sizes)), 4))
    ax.boxplot(data)
    ax.set_xticks(range(1, len(sizes) + 1))
    ax.set_xticklabels([str(size) for size in sizes])
    ax.set_xlabel("Grid size")
    ax.set_ylabel("KL divergence (bits)")
    ax.set_title(f"Letter supply vs weights ({len(LETTERS)} letters)")

    plt.tight_layout()
    path = save_dir / "table_survey_kl.png"
    plt.savefig(str(path), dpi=150, bbox_inches="tight")
    print(f"  Saved: {path}")
    plt.close(fig)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Survey generated decoding tables")
    parser.add_argument("--sizes", type=parse_sizes,
                        default=list(range(MIN_GRID_SIZE, MAX_GRID_SIZE + 1)),
                        help=f"Grid size or range (default {MIN_GRID_SIZE}-{MAX_GRID_SIZE})")
    parser.add_argument("--seeds", type=int, default=200, help="Seeds per grid size")
    parser.add_argument("--start-seed", type=int, default=1, help="First seed")
    parser.add_argument("--no-plots", action="store_true", help="Skip plot generation")
    parser.add_argument("--save-dir", type=str, default=".", help="Directory for output")
    args = parser.parse_args(argv)
    if args.seeds < 1:
        parser.error("--seeds must be at least 1")

    print("=" * 70)
    print("DECODING TABLE SURVEY")
    print(f"Sizes: {args.sizes[0]}-{args.sizes[-1]}, "
          f"seeds {args.start_seed}-{args.start_seed + args.seeds - 1}")
    print("=" * 70)

    results = run_survey(args.sizes, n_seeds=args.seeds, start_seed=args.start_seed)
    print_summary(results)

    if not args.no_plots:
        print("\nGenerating plots...")
        plot_survey(results, Path(args.save_dir))

    return 1 if any(r["grid_size"] >= MIN_GRID_SIZE for r in results["failures"]) else 0


if __name__ == "__main__":
    sys.exit(main())

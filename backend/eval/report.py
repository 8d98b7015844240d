"""Terminal tables and the JSON report for slicing evaluation results."""

import json
import statistics
from pathlib import Path

import numpy as np

from eval.metrics import ALL_GROUPS

# Per-type rows, then the type-agnostic and micro-averaged summaries
ROWS = ALL_GROUPS + ["onsets", "overall"]
SUMMARY_ROWS = {"onsets", "overall"}


def _percent(value: float) -> str:
    return f"{100.0 * value:.1f}%"


def _mean_std(values: list[float]) -> tuple[float, float]:
    if not values:
        return 0.0, 0.0
    return statistics.mean(values), statistics.stdev(values) if len(values) > 1 else 0.0


def _print_table(columns: list[tuple[str, int]], rows: list[tuple[str, list[str]]]) -> None:
    """Print a boxed table; a rule is drawn before the first summary row."""
    rule = "+" + "+".join("-" * width for _, width in columns) + "+"

    def line(cells: list[str]) -> str:
        return "|" + "|".join(cell.center(width) for cell, (_, width) in zip(cells, columns)) + "|"

    print(rule)
    print(line([title for title, _ in columns]))
    print(rule)
    ruled = False
    for label, cells in rows:
        if label in SUMMARY_ROWS and not ruled:
            print(rule)
            ruled = True
        print(line([label] + cells))
    print(rule)


def print_sample_table(example_name: str, fm_result: dict, onset_mae: float) -> None:
    """Precision/recall/F1 and counts for one example."""
    print(f"\n{'=' * 56}")
    print(f"  {example_name}  (onset MAE {onset_mae:.3f} ms)")

    rows = []
    for row in ROWS:
        stats = fm_result.get(row, {})
        rows.append(
            (
                row,
                [_percent(stats.get(key, 0.0)) for key in ("precision", "recall", "f1")]
                + [str(stats.get(key, 0)) for key in ("tp", "fp", "fn")],
            )
        )
    _print_table(
        [("Type", 10), ("Prec", 8), ("Rec", 8), ("F1", 8), ("TP", 6), ("FP", 6), ("FN", 6)],
        rows,
    )


def print_aggregate_table(all_results: list[dict]) -> None:
    """Mean and spread of each row's scores over every evaluated example."""
    if not all_results:
        return

    print(f"\n{'=' * 56}")
    print(f"  AGGREGATE over {len(all_results)} examples")

    rows = []
    for row in ROWS:
        scores = [r["fm"].get(row, {}) for r in all_results]
        f1_mean, f1_std = _mean_std([s.get("f1", 0.0) for s in scores])
        p_mean, _ = _mean_std([s.get("precision", 0.0) for s in scores])
        r_mean, _ = _mean_std([s.get("recall", 0.0) for s in scores])
        rows.append((row, [_percent(f1_mean), "±" + _percent(f1_std), _percent(p_mean), _percent(r_mean)]))
    _print_table([("Type", 10), ("F1", 10), ("F1 std", 10), ("Prec", 10), ("Rec", 10)], rows)

    mae_mean, mae_std = _mean_std([r["onset_mae_ms"] for r in all_results])
    print(f"  Onset MAE: {mae_mean:.2f} ± {mae_std:.2f} ms\n")


def print_confusion_matrix(matrix: np.ndarray, groups: list[str]) -> None:
    """Ground-truth types down, predicted types across."""
    cell = 9
    print(f"\n{'=' * 56}")
    print("  TYPE CONFUSION (rows = expected, columns = predicted)")
    print(" " * 10 + "".join(g[:cell].center(cell) for g in groups))
    for label, counts in zip(groups, matrix):
        print(label.ljust(10) + "".join(str(int(c)).center(cell) for c in counts))
    print()


def _to_json(value):
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    raise TypeError(f"Cannot serialize {type(value).__name__}")


def write_json_report(output_path: Path, all_results: list[dict]) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(all_results, indent=2, default=_to_json))
    print(f"Report written to {output_path}")

"""Command-line entry point for the slicing evaluation.

  generate-dataset  render synthetic hit sequences with ground truth
  evaluate          slice every example of a dataset and score the result

Run from the backend/ directory:
  python -m eval.evaluate generate-dataset --output-dir ./eval/dataset --count 10
  python -m eval.evaluate evaluate --dataset ./eval/dataset --tolerance 50 \\
      --output-json ./eval/results.json
"""

import argparse
import json
import sys
from pathlib import Path

import numpy as np

from alchemist.errors import AlchemistError
from alchemist.models.analysis import AnalysisParams
from alchemist.services.audio_loader import load_audio
from alchemist.services.pipeline import analyze_buffer
from eval.generate_dataset import render_example
from eval.metrics import ALL_GROUPS, compute_confusion_matrix, compute_f_measure, compute_onset_mae
from eval.report import print_aggregate_table, print_confusion_matrix, print_sample_table, write_json_report


def find_examples(dataset_dir: Path) -> list[Path]:
    """Example directories holding both a mix and its ground truth, in name order."""
    return sorted(
        d
        for d in dataset_dir.iterdir()
        if d.is_dir() and (d / "mix.wav").is_file() and (d / "ground_truth.json").is_file()
    )


def evaluate_example(example_dir: Path, params: AnalysisParams, tolerance_s: float) -> tuple[dict, np.ndarray]:
    """Slice one example and score it; returns (result row, confusion counts)."""
    ground_truth = json.loads((example_dir / "ground_truth.json").read_text())
    predicted = analyze_buffer(load_audio(example_dir / "mix.wav"), params).samples

    fm_result, _ = compute_f_measure(predicted, ground_truth, tolerance_s)
    confusion, _ = compute_confusion_matrix(predicted, ground_truth, tolerance_s)
    row = {
        "example": example_dir.name,
        "gt_events": len(ground_truth),
        "predicted_samples": len(predicted),
        "fm": fm_result,
        "onset_mae_ms": compute_onset_mae(predicted, ground_truth, tolerance_s),
    }
    return row, confusion


def generate_dataset(args: argparse.Namespace) -> None:
    output_dir = Path(args.output_dir)
    noise = f", SNR {args.snr} dB" if args.snr is not None else ""
    print(f"Rendering {args.count} examples into {output_dir}{noise}")

    for i in range(args.count):
        example_dir = output_dir / f"example_{i:03d}"
        meta = render_example(example_dir, duration_s=args.duration, seed=args.seed + i, snr_db=args.snr)
        print(f"  {example_dir.name}: {meta['event_count']} events over {meta['duration_s']:.1f}s")


def evaluate(args: argparse.Namespace) -> None:
    dataset_dir = Path(args.dataset)
    examples = find_examples(dataset_dir) if dataset_dir.is_dir() else []
    if not examples:
        print(f"No examples (mix.wav + ground_truth.json) found in {dataset_dir}", file=sys.stderr)
        sys.exit(1)

    params = AnalysisParams(sensitivity=args.sensitivity, min_length_ms=args.min_length)
    tolerance_s = args.tolerance / 1000.0
    print(
        f"Evaluating {len(examples)} examples: tolerance {args.tolerance:g} ms, "
        f"sensitivity {args.sensitivity:g}, min length {args.min_length:g} ms"
    )

    results: list[dict] = []
    confusion = np.zeros((len(ALL_GROUPS), len(ALL_GROUPS)), dtype=int)
    for example_dir in examples:
        try:
            row, counts = evaluate_example(example_dir, params, tolerance_s)
        except AlchemistError as e:
            print(f"  Skipping {example_dir.name}: {e}", file=sys.stderr)
            continue
        results.append(row)
        confusion += counts
        print_sample_table(row["example"], row["fm"], row["onset_mae_ms"])

    if results:
        print_aggregate_table(results)
        print_confusion_matrix(confusion, ALL_GROUPS)
    if args.output_json:
        write_json_report(Path(args.output_json), results)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sample Alchemist slicing evaluation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    commands = parser.add_subparsers(dest="command", required=True)

    gen = commands.add_parser("generate-dataset", help="Render a synthetic dataset")
    gen.add_argument("--output-dir", required=True)
    gen.add_argument("--count", type=int, default=10, help="examples to render (default: 10)")
    gen.add_argument("--duration", type=float, default=8.0, help="seconds per example (default: 8)")
    gen.add_argument("--seed", type=int, default=0, help="seed of the first example (default: 0)")
    gen.add_argument("--snr", type=float, default=None, help="mix in white noise at this SNR in dB")
    gen.set_defaults(handler=generate_dataset)

    ev = commands.add_parser("evaluate", help="Slice and score a dataset")
    ev.add_argument("--dataset", required=True)
    ev.add_argument("--tolerance", type=float, default=50.0, help="onset tolerance in ms (default: 50)")
    ev.add_argument("--sensitivity", type=float, default=50.0, help="detection sensitivity 0-100 (default: 50)")
    ev.add_argument("--min-length", type=float, default=100.0, help="minimum sample length in ms (default: 100)")
    ev.add_argument("--output-json", default=None, help="also write the per-example results here")
    ev.set_defaults(handler=evaluate)
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    args.handler(args)


if __name__ == "__main__":
    main()

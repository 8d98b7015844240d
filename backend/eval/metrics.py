"""Core metric computation for sample-slicing evaluation.

Implements F-measure, onset MAE and a confusion matrix over the sample
types. Predictions are ``Sample`` objects (their ``start`` is the onset);
ground truth is a list of ``{time, sample_type}`` dicts.
"""

import numpy as np

from alchemist.models.sample import Sample, SampleType

ALL_GROUPS = [t.value for t in SampleType]


def _pred_group(sample: Sample) -> str:
    return str(sample.type)


def _gt_group(gt: dict) -> str:
    return gt.get("sample_type", SampleType.other.value)


def _greedy_pairs(
    predicted: list[Sample], ground_truth: list[dict], tolerance_s: float
) -> list[tuple[Sample, dict]]:
    """Nearest-first one-to-one pairing of predictions and GT within the tolerance."""
    candidates: list[tuple[float, int, int]] = []
    for i, pred in enumerate(predicted):
        for j, gt in enumerate(ground_truth):
            diff = abs(pred.start - gt["time"])
            if diff <= tolerance_s:
                candidates.append((diff, i, j))
    candidates.sort(key=lambda x: x[0])

    used_pred: set[int] = set()
    used_gt: set[int] = set()
    pairs: list[tuple[Sample, dict]] = []
    for _, i, j in candidates:
        if i in used_pred or j in used_gt:
            continue
        used_pred.add(i)
        used_gt.add(j)
        pairs.append((predicted[i], ground_truth[j]))
    return pairs


def match_events(
    predicted: list[Sample],
    ground_truth: list[dict],
    tolerance_s: float = 0.05,
) -> tuple[list[tuple[Sample, dict]], list[Sample], list[dict]]:
    """Greedy nearest-neighbor matching within each sample type.

    Returns:
        matched: List of (pred, gt) pairs
        unmatched_pred: Predictions with no GT match (false positives)
        unmatched_gt: GT events with no predicted match (false negatives)
    """
    matched: list[tuple[Sample, dict]] = []
    for group in ALL_GROUPS:
        preds = [p for p in predicted if _pred_group(p) == group]
        gts = [g for g in ground_truth if _gt_group(g) == group]
        matched.extend(_greedy_pairs(preds, gts, tolerance_s))

    matched_pred = {id(p) for p, _ in matched}
    matched_gt = {id(g) for _, g in matched}
    unmatched_pred = [p for p in predicted if id(p) not in matched_pred]
    unmatched_gt = [g for g in ground_truth if id(g) not in matched_gt]
    return matched, unmatched_pred, unmatched_gt


def _prf(tp: int, fp: int, fn: int) -> dict:
    precision = tp / (tp + fp) if (tp + fp) > 0 else 0.0
    recall = tp / (tp + fn) if (tp + fn) > 0 else 0.0
    f1 = 2 * precision * recall / (precision + recall) if (precision + recall) > 0 else 0.0
    return {
        "precision": round(precision, 4),
        "recall": round(recall, 4),
        "f1": round(f1, 4),
        "tp": tp,
        "fp": fp,
        "fn": fn,
    }


def compute_f_measure(
    predicted: list[Sample],
    ground_truth: list[dict],
    tolerance_s: float = 0.05,
) -> tuple[dict[str, dict], list[tuple[Sample, dict]]]:
    """Precision, recall and F1 per sample type, plus type-agnostic "onsets" and micro "overall".

    Returns:
        result: {group: {precision, recall, f1, tp, fp, fn}}
        matched: Type-aware (pred, gt) pairs
    """
    matched, unmatched_pred, unmatched_gt = match_events(predicted, ground_truth, tolerance_s)

    stats: dict[str, dict[str, int]] = {g: {"tp": 0, "fp": 0, "fn": 0} for g in ALL_GROUPS}
    for pred, _ in matched:
        stats[_pred_group(pred)]["tp"] += 1
    for pred in unmatched_pred:
        stats[_pred_group(pred)]["fp"] += 1
    for gt in unmatched_gt:
        stats.setdefault(_gt_group(gt), {"tp": 0, "fp": 0, "fn": 0})["fn"] += 1

    result = {group: _prf(**s) for group, s in stats.items()}
    result["overall"] = _prf(
        sum(s["tp"] for s in stats.values()),
        sum(s["fp"] for s in stats.values()),
        sum(s["fn"] for s in stats.values()),
    )

    # Segmentation quality regardless of the assigned type
    onset_pairs = _greedy_pairs(predicted, ground_truth, tolerance_s)
    result["onsets"] = _prf(
        len(onset_pairs),
        len(predicted) - len(onset_pairs),
        len(ground_truth) - len(onset_pairs),
    )
    return result, matched


def compute_onset_mae(predicted: list[Sample], ground_truth: list[dict], tolerance_s: float = 0.05) -> float:
    """Mean absolute onset error (ms) over type-agnostic matches; 0.0 if none."""
    pairs = _greedy_pairs(predicted, ground_truth, tolerance_s)
    if not pairs:
        return 0.0
    errors = [abs(pred.start - gt["time"]) * 1000.0 for pred, gt in pairs]
    return round(sum(errors) / len(errors), 3)


def compute_confusion_matrix(
    predicted: list[Sample],
    ground_truth: list[dict],
    tolerance_s: float = 0.05,
) -> tuple[np.ndarray, list[str]]:
    """Type confusion over time-only matches.

    Returns:
        matrix: int array, rows=GT types, cols=predicted types
        groups: Ordered list of type names (row/col labels)
    """
    group_to_idx = {g: i for i, g in enumerate(ALL_GROUPS)}
    matrix = np.zeros((len(ALL_GROUPS), len(ALL_GROUPS)), dtype=int)

    for pred, gt in _greedy_pairs(predicted, ground_truth, tolerance_s):
        row = group_to_idx.get(_gt_group(gt), -1)
        col = group_to_idx.get(_pred_group(pred), -1)
        if row >= 0 and col >= 0:
            matrix[row, col] += 1

    return matrix, ALL_GROUPS

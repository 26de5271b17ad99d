"""Tolerant edit distance between a ground truth and a reconstruction."""

import logging
from dataclasses import dataclass, field
from time import time

import numpy as np
from fastremap import remap

from .cells import CellPartition, extract_cells
from .config import TolerantEditDistanceConfig
from .exceptions import ValidationError
from .ilp import IlpModel, build_model
from .solver import Solution, solve
from .tolerance import find_alternative_labels
from .types import TedScoreDict
from .volume import LabelVolume

logger = logging.getLogger(__name__)


@dataclass
class TolerantEditDistanceResult:
    """Scores, corrected reconstruction and error locations of one evaluation."""

    num_splits: int
    num_merges: int
    num_false_positives: int = 0
    num_false_negatives: int = 0
    splits_by_label: dict = field(default_factory=dict)
    merges_by_label: dict = field(default_factory=dict)
    corrected_reconstruction: np.ndarray | None = field(default=None, repr=False)
    split_locations: np.ndarray | None = field(default=None, repr=False)
    merge_locations: np.ndarray | None = field(default=None, repr=False)
    fp_locations: np.ndarray | None = field(default=None, repr=False)
    fn_locations: np.ndarray | None = field(default=None, repr=False)
    num_cells: int = 0
    num_variables: int = 0
    num_constraints: int = 0

    @property
    def total_errors(self) -> int:
        return (
            self.num_splits
            + self.num_merges
            + self.num_false_positives
            + self.num_false_negatives
        )

    def to_scores(self, config: TolerantEditDistanceConfig | None = None) -> TedScoreDict:
        scores: TedScoreDict = {
            "num_splits": self.num_splits,
            "num_merges": self.num_merges,
            "num_false_positives": self.num_false_positives,
            "num_false_negatives": self.num_false_negatives,
            "total_errors": self.total_errors,
            "splits_by_label": {str(k): v for k, v in self.splits_by_label.items()},
            "merges_by_label": {str(k): v for k, v in self.merges_by_label.items()},
            "num_cells": self.num_cells,
            "num_variables": self.num_variables,
            "num_constraints": self.num_constraints,
            "status": "scored",
        }
        if config is not None:
            scores["distance_threshold"] = config.distance_threshold
            scores["voxel_size"] = tuple(config.voxel_size)
        return scores


def _as_volume(volume, voxel_size) -> LabelVolume:
    voxel_size = tuple(float(v) for v in voxel_size)
    if not isinstance(volume, LabelVolume):
        return LabelVolume(np.asarray(volume), voxel_size=voxel_size)
    if volume.voxel_size != voxel_size:
        raise ValidationError(
            f"Volume voxel size {volume.voxel_size} differs from the configured "
            f"voxel size {voxel_size}"
        )
    return volume


def _selected_labels(
    partition: CellPartition, model: IlpModel, solution: Solution
) -> np.ndarray:
    """Reconstruction label id chosen for every cell."""
    chosen = np.full(partition.num_cells, -1, dtype=np.int64)
    for var, (cell, rec_label) in model.labeling_by_var.items():
        if solution[var] == 1:
            assert chosen[cell] == -1, f"Cell {cell} received more than one label"
            chosen[cell] = rec_label
    assert (chosen >= 0).all(), "Every cell needs a label"
    return chosen


def extract_result(
    partition: CellPartition,
    model: IlpModel,
    solution: Solution,
    config: TolerantEditDistanceConfig,
) -> TolerantEditDistanceResult:
    """Read scores from the solution and map the solved labeling back to voxels.

    Args:
        partition: Cells the model was built from
        model: The solved model
        solution: Solution vector indexed like the model's variables
        config: Evaluation configuration

    Returns:
        TolerantEditDistanceResult
    """
    gt = partition.ground_truth
    rec = partition.reconstruction

    num_splits = solution[model.splits]
    num_merges = solution[model.merges]
    num_fp = solution[model.false_positives] if model.false_positives is not None else 0
    num_fn = solution[model.false_negatives] if model.false_negatives is not None else 0

    splits_by_label = {
        gt.label_value(g): solution[v] for g, v in model.split_vars.items()
    }
    merges_by_label = {
        rec.label_value(r): solution[v] for r, v in model.merge_vars.items()
    }

    # corrected reconstruction
    chosen = _selected_labels(partition, model, solution)
    corrected_ids = remap(
        partition.cell_ids,
        {cell: int(label) for cell, label in enumerate(chosen)},
        preserve_missing_labels=True,
    )
    corrected = rec.labels[corrected_ids]

    gt_background = rec_background = None
    if config.has_background:
        gt_background = gt.label_id(config.gt_background_label)
        rec_background = rec.label_id(config.rec_background_label)

    # error locations from the active matches
    matched = [pair for pair, v in model.match_vars.items() if solution[v] == 1]
    recs_by_gt: dict[int, set[int]] = {}
    gts_by_rec: dict[int, set[int]] = {}
    for g, r in matched:
        if g == gt_background or r == rec_background:
            continue
        recs_by_gt.setdefault(g, set()).add(r)
        gts_by_rec.setdefault(r, set()).add(g)
    split_gt = [g for g, recs in recs_by_gt.items() if len(recs) > 1]
    merged_rec = [r for r, gts in gts_by_rec.items() if len(gts) > 1]

    split_locations = np.isin(gt.ids, split_gt)
    merge_locations = np.isin(corrected_ids, merged_rec)
    fp_locations = np.zeros(gt.shape, dtype=bool)
    fn_locations = np.zeros(gt.shape, dtype=bool)
    if config.has_background:
        gt_is_background = np.zeros(gt.shape, dtype=bool)
        rec_is_background = np.zeros(gt.shape, dtype=bool)
        if gt_background is not None:
            gt_is_background = gt.ids == gt_background
        if rec_background is not None:
            rec_is_background = corrected_ids == rec_background
        fp_locations = gt_is_background & ~rec_is_background
        fn_locations = ~gt_is_background & rec_is_background

    return TolerantEditDistanceResult(
        num_splits=num_splits,
        num_merges=num_merges,
        num_false_positives=num_fp,
        num_false_negatives=num_fn,
        splits_by_label=splits_by_label,
        merges_by_label=merges_by_label,
        corrected_reconstruction=corrected,
        split_locations=split_locations,
        merge_locations=merge_locations,
        fp_locations=fp_locations,
        fn_locations=fn_locations,
        num_cells=partition.num_cells,
        num_variables=model.num_variables,
        num_constraints=len(model.constraints),
    )


def tolerant_edit_distance(
    ground_truth: np.ndarray | LabelVolume,
    reconstruction: np.ndarray | LabelVolume,
    config: TolerantEditDistanceConfig | None = None,
) -> TolerantEditDistanceResult:
    """Minimal number of splits and merges after tolerant relabeling.

    Voxel groups of the reconstruction may take over the label of a nearby
    reconstruction region if all of their voxels lie within the distance
    threshold of it. Among all such relabelings, the one with the fewest
    split and merge errors is found by an integer linear program.

    Args:
        ground_truth: Ground truth labels in (z, y, x) order
        reconstruction: Reconstruction labels of the same shape
        config: Evaluation configuration (uses defaults if None)

    Returns:
        TolerantEditDistanceResult with the split and merge counts, the
        corrected reconstruction and error location masks

    Raises:
        SizeMismatchError: If the volumes differ in shape
        ValidationError: If a LabelVolume carries a voxel size other than
            the configured one
        SolverFailedError: If the ILP could not be solved to optimality

    Example:
        >>> result = tolerant_edit_distance(gt, rec)
        >>> result.num_splits, result.num_merges
    """
    if config is None:
        config = TolerantEditDistanceConfig.from_env()
    config.validate()

    start = time()
    gt = _as_volume(ground_truth, config.voxel_size)
    rec = _as_volume(reconstruction, config.voxel_size)

    logger.info("Extracting cells...")
    partition = extract_cells(gt, rec)

    logger.info("Searching tolerable relabelings...")
    find_alternative_labels(
        partition,
        config.distance_threshold,
        config.voxel_size,
        max_threads=config.max_threads,
    )

    model = build_model(partition, config)
    solution = solve(
        model,
        backend=config.solver_backend,
        time_limit=config.solver_time_limit,
    )
    result = extract_result(partition, model, solution, config)

    logger.info(f"Number of splits: {result.num_splits}")
    logger.info(f"Number of merges: {result.num_merges}")
    if config.has_background:
        logger.info(f"Number of false positives: {result.num_false_positives}")
        logger.info(f"Number of false negatives: {result.num_false_negatives}")
    logger.info(f"Tolerant edit distance computed in {time() - start:.2f}s")
    return result

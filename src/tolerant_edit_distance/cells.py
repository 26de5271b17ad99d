"""Partition of a volume into cells of identical (reconstruction, ground truth) label pairs."""

import bisect
import logging
from collections import defaultdict
from dataclasses import dataclass, field

import numpy as np

from .exceptions import SizeMismatchError
from .volume import LabelVolume

logger = logging.getLogger(__name__)


@dataclass
class Cell:
    """The atomic unit of relabeling.

    All voxels sharing one (reconstruction label, ground truth label) pair,
    whether or not they are spatially connected. Labels are interned ids.
    """

    gt_label: int
    rec_label: int
    voxels: np.ndarray  # flat voxel indices
    alternative_labels: list[int] = field(default_factory=list)

    def __len__(self) -> int:
        return int(self.voxels.size)

    def add_alternative_label(self, rec_label: int) -> None:
        """Add a reconstruction label this cell could be relabeled to."""
        assert rec_label != self.rec_label, "A cell's own label is not an alternative"
        idx = bisect.bisect_left(self.alternative_labels, rec_label)
        if idx == len(self.alternative_labels) or self.alternative_labels[idx] != rec_label:
            self.alternative_labels.insert(idx, rec_label)

    @property
    def candidate_labels(self) -> list[int]:
        """The default label followed by all alternatives."""
        return [self.rec_label] + self.alternative_labels


@dataclass
class LabelRegistry:
    """All labels and the bipartite relation of possible matches between them."""

    gt_labels: set[int] = field(default_factory=set)
    rec_labels: set[int] = field(default_factory=set)
    matches_by_gt: dict[int, set[int]] = field(default_factory=lambda: defaultdict(set))
    matches_by_rec: dict[int, set[int]] = field(default_factory=lambda: defaultdict(set))

    def register_possible_match(self, gt_label: int, rec_label: int) -> None:
        self.matches_by_gt[gt_label].add(rec_label)
        self.matches_by_rec[rec_label].add(gt_label)
        self.gt_labels.add(gt_label)
        self.rec_labels.add(rec_label)

    def possible_matches_by_gt(self, gt_label: int) -> list[int]:
        assert gt_label in self.gt_labels, f"Unknown ground truth label {gt_label}"
        return sorted(self.matches_by_gt[gt_label])

    def possible_matches_by_rec(self, rec_label: int) -> list[int]:
        assert rec_label in self.rec_labels, f"Unknown reconstruction label {rec_label}"
        return sorted(self.matches_by_rec[rec_label])

    @property
    def num_possible_matches(self) -> int:
        return sum(len(recs) for recs in self.matches_by_gt.values())


@dataclass
class CellPartition:
    """Cells of a ground truth / reconstruction pair and their label registry."""

    ground_truth: LabelVolume
    reconstruction: LabelVolume
    cells: list[Cell]
    registry: LabelRegistry
    cell_ids: np.ndarray  # cell index per voxel, same shape as the volumes
    cells_by_rec: dict[int, list[int]]

    @property
    def shape(self) -> tuple[int, int, int]:
        return self.ground_truth.shape

    @property
    def num_cells(self) -> int:
        return len(self.cells)


def check_same_size(ground_truth: LabelVolume, reconstruction: LabelVolume) -> None:
    """Raise SizeMismatchError unless depth, height and width agree."""
    if ground_truth.shape != reconstruction.shape:
        raise SizeMismatchError(ground_truth.shape, reconstruction.shape)


def extract_cells(
    ground_truth: LabelVolume, reconstruction: LabelVolume
) -> CellPartition:
    """Partition the volume into cells and register every occurring label pair.

    Cells are ordered by reconstruction label, then ground truth label.

    Args:
        ground_truth: Ground truth label volume
        reconstruction: Reconstruction label volume of the same shape

    Returns:
        CellPartition with one cell per distinct label pair

    Raises:
        SizeMismatchError: If the volumes differ in shape
    """
    check_same_size(ground_truth, reconstruction)

    logger.debug(
        "extracting cells in %dx%dx%d volume",
        ground_truth.width,
        ground_truth.height,
        ground_truth.depth,
    )

    # Encode pairs to a single key, reconstruction label major
    n_gt = np.int64(ground_truth.num_labels)
    key = reconstruction.ids.ravel() * n_gt + ground_truth.ids.ravel()
    uniq_keys, inverse = np.unique(key, return_inverse=True)
    inverse = inverse.reshape(-1)

    order = np.argsort(inverse, kind="stable")
    counts = np.bincount(inverse, minlength=uniq_keys.size)
    voxel_groups = np.split(order, np.cumsum(counts)[:-1])

    cells = []
    cells_by_rec: dict[int, list[int]] = defaultdict(list)
    registry = LabelRegistry()
    for index, (k, voxels) in enumerate(zip(uniq_keys, voxel_groups)):
        rec_label, gt_label = divmod(int(k), int(n_gt))
        cells.append(Cell(gt_label=gt_label, rec_label=rec_label, voxels=voxels))
        cells_by_rec[rec_label].append(index)
        registry.register_possible_match(gt_label, rec_label)

    logger.info(
        f"Found {len(registry.gt_labels)} ground truth labels and "
        f"{len(registry.rec_labels)} reconstruction labels in {len(cells)} cells"
    )

    return CellPartition(
        ground_truth=ground_truth,
        reconstruction=reconstruction,
        cells=cells,
        registry=registry,
        cell_ids=inverse.reshape(ground_truth.shape),
        cells_by_rec=dict(cells_by_rec),
    )

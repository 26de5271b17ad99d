"""Find the reconstruction labels each cell may tolerably adopt."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

import numpy as np
from scipy import ndimage
from scipy.ndimage import distance_transform_edt
from tqdm import tqdm

from .cells import CellPartition

logger = logging.getLogger(__name__)


def squared_distance_map(mask: np.ndarray, voxel_size: Sequence[float]) -> np.ndarray:
    """
    Squared physical distance of every voxel to the nearest voxel in ``mask``.

    Parameters
    ----------
    mask : np.ndarray
        Boolean foreground volume in (z, y, x) order.
    voxel_size : Sequence[float]
        Physical voxel sizes in Z, Y, X order.
    """
    distance = distance_transform_edt(~mask, sampling=np.asarray(voxel_size, dtype=np.float64))
    return np.square(distance)


def max_squared_distances(
    partition: CellPartition, rec_label: int, voxel_size: Sequence[float]
) -> np.ndarray:
    """
    Largest squared distance of any voxel of each cell to the region of
    ``rec_label``. Returns a 1D array indexed by cell.
    """
    mask = partition.reconstruction.ids == rec_label
    distances = squared_distance_map(mask, voxel_size)
    maxima = ndimage.maximum(
        distances,
        labels=partition.cell_ids,
        index=np.arange(partition.num_cells),
    )
    return np.asarray(maxima, dtype=np.float64)


def _cells_within_threshold(
    partition: CellPartition,
    rec_label: int,
    voxel_size: Sequence[float],
    distance_threshold: float,
) -> list[int]:
    logger.debug(f"Creating distance map for reconstruction label {rec_label}")
    maxima = max_squared_distances(partition, rec_label, voxel_size)

    # the whole cell has to be within the threshold, not just some voxels
    within = maxima < distance_threshold
    return [
        int(index)
        for index in np.flatnonzero(within)
        if partition.cells[index].rec_label != rec_label
    ]


def find_alternative_labels(
    partition: CellPartition,
    distance_threshold: float,
    voxel_size: Sequence[float],
    max_threads: int = 1,
) -> CellPartition:
    """Add every tolerable reconstruction label to the alternatives of each cell.

    For each reconstruction label, a cell with another label may adopt it if
    the maximal distance of all of the cell's voxels to the label's region is
    below ``distance_threshold``, compared as squared physical distance,
    like the distance map itself. Each accepted relabeling
    is registered as a possible match of the cell's ground truth label.

    Args:
        partition: Cells to analyze, updated in place
        distance_threshold: Maximal tolerated squared distance in physical units
        voxel_size: Physical voxel sizes in Z, Y, X order
        max_threads: Number of labels processed concurrently

    Returns:
        The updated partition
    """
    rec_labels = sorted(partition.cells_by_rec)

    def get_candidates(rec_label: int):
        return rec_label, _cells_within_threshold(
            partition, rec_label, voxel_size, distance_threshold
        )

    candidates: dict[int, list[int]] = {}
    with ThreadPoolExecutor(max_workers=max_threads) as executor:
        for rec_label, cell_indices in tqdm(
            executor.map(get_candidates, rec_labels),
            desc="Computing tolerance distance maps",
            total=len(rec_labels),
            dynamic_ncols=True,
            disable=len(rec_labels) < 2,
        ):
            candidates[rec_label] = cell_indices

    num_alternatives = 0
    for rec_label in rec_labels:
        for index in candidates[rec_label]:
            cell = partition.cells[index]
            cell.add_alternative_label(rec_label)
            partition.registry.register_possible_match(cell.gt_label, rec_label)
            num_alternatives += 1

    logger.info(
        f"Found {num_alternatives} alternative labels within "
        f"{distance_threshold} for {partition.num_cells} cells"
    )
    return partition

import numpy as np
import pytest

from tolerant_edit_distance.cells import Cell, LabelRegistry, extract_cells
from tolerant_edit_distance.exceptions import SizeMismatchError
from tolerant_edit_distance.volume import LabelVolume


def _random_volumes(seed=0, shape=(3, 5, 6), n_gt=4, n_rec=3):
    rng = np.random.default_rng(seed)
    gt = rng.integers(0, n_gt, size=shape).astype(np.float32)
    rec = rng.integers(0, n_rec, size=shape).astype(np.float32) * 10
    return LabelVolume(gt), LabelVolume(rec)


def test_cells_partition_the_volume():
    gt, rec = _random_volumes()
    partition = extract_cells(gt, rec)

    voxels = np.concatenate([cell.voxels for cell in partition.cells])
    np.testing.assert_array_equal(np.sort(voxels), np.arange(gt.data.size))

    gt_ids = gt.ids.ravel()
    rec_ids = rec.ids.ravel()
    cell_ids = partition.cell_ids.ravel()
    for index, cell in enumerate(partition.cells):
        assert len(cell) > 0
        assert (gt_ids[cell.voxels] == cell.gt_label).all()
        assert (rec_ids[cell.voxels] == cell.rec_label).all()
        assert (cell_ids[cell.voxels] == index).all()


def test_cells_are_unique_per_label_pair_and_ordered():
    gt, rec = _random_volumes(seed=3)
    partition = extract_cells(gt, rec)

    pairs = [(cell.rec_label, cell.gt_label) for cell in partition.cells]
    assert pairs == sorted(set(pairs))
    for rec_label, indices in partition.cells_by_rec.items():
        assert all(partition.cells[i].rec_label == rec_label for i in indices)


def test_disconnected_voxels_share_a_cell():
    gt = LabelVolume(np.array([[[1, 2, 1]]], dtype=np.float32))
    rec = LabelVolume(np.array([[[5, 5, 5]]], dtype=np.float32))
    partition = extract_cells(gt, rec)

    assert partition.num_cells == 2
    np.testing.assert_array_equal(partition.cells[0].voxels, [0, 2])
    np.testing.assert_array_equal(partition.cells[1].voxels, [1])


def test_registry_holds_occurring_pairs():
    gt = LabelVolume(np.array([[[1, 1, 2, 2]]], dtype=np.float32))
    rec = LabelVolume(np.array([[[7, 8, 8, 8]]], dtype=np.float32))
    registry = extract_cells(gt, rec).registry

    assert registry.gt_labels == {0, 1}
    assert registry.rec_labels == {0, 1}
    assert registry.possible_matches_by_gt(0) == [0, 1]
    assert registry.possible_matches_by_gt(1) == [1]
    assert registry.possible_matches_by_rec(1) == [0, 1]
    assert registry.num_possible_matches == 3


@pytest.mark.parametrize(
    "rec_shape",
    [(1, 3, 3), (2, 2, 3), (2, 3, 4)],
    ids=["depth", "height", "width"],
)
def test_size_mismatch_raises(rec_shape):
    gt = LabelVolume(np.zeros((2, 3, 3)))
    rec = LabelVolume(np.zeros(rec_shape))
    with pytest.raises(SizeMismatchError, match="different size"):
        extract_cells(gt, rec)


def test_unknown_label_lookup_is_an_assertion():
    registry = LabelRegistry()
    registry.register_possible_match(0, 1)
    with pytest.raises(AssertionError):
        registry.possible_matches_by_gt(5)


def test_alternative_labels_stay_sorted_and_unique():
    cell = Cell(gt_label=0, rec_label=2, voxels=np.array([0]))
    for label in (5, 1, 5, 3):
        cell.add_alternative_label(label)
    assert cell.alternative_labels == [1, 3, 5]
    assert cell.candidate_labels == [2, 1, 3, 5]

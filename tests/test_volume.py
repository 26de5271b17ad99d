import numpy as np
import pytest

from tolerant_edit_distance.exceptions import ValidationError
from tolerant_edit_distance.volume import LabelVolume, load_volume, save_volume


def test_labels_are_interned():
    data = np.array([[[0.5, 2.0], [0.5, 7.25]]], dtype=np.float32)
    volume = LabelVolume(data)

    np.testing.assert_array_equal(volume.labels, [0.5, 2.0, 7.25])
    np.testing.assert_array_equal(volume.ids, [[[0, 1], [0, 2]]])
    assert volume.ids.dtype == np.int64
    assert volume.num_labels == 3
    assert volume.label_value(2) == 7.25
    assert volume.label_id(2.0) == 1
    assert volume.label_id(3.0) is None


def test_dimensions_follow_zyx_order():
    volume = LabelVolume(np.zeros((2, 3, 4)))
    assert volume.shape == (2, 3, 4)
    assert volume.depth == 2
    assert volume.height == 3
    assert volume.width == 4
    assert volume.voxel_size == (10.0, 1.0, 1.0)


def test_2d_volume_is_promoted():
    volume = LabelVolume(np.ones((3, 3)))
    assert volume.shape == (1, 3, 3)


def test_invalid_dimensions_raise():
    with pytest.raises(ValidationError, match="2D or 3D"):
        LabelVolume(np.zeros((2, 2, 2, 2)))


def test_empty_volume_raises():
    with pytest.raises(ValidationError, match="empty"):
        LabelVolume(np.zeros((0, 3, 3)))


def test_invalid_voxel_size_raises():
    with pytest.raises(ValidationError, match="voxel_size"):
        LabelVolume(np.zeros((1, 2, 2)), voxel_size=(1.0, 1.0))


def test_npy_volume(tmp_path):
    data = np.arange(8, dtype=np.float32).reshape(2, 2, 2)
    path = tmp_path / "volume.npy"
    save_volume(data, path)

    volume = load_volume(path, voxel_size=(4, 1, 1))
    np.testing.assert_array_equal(volume.data, data)
    assert volume.voxel_size == (4.0, 1.0, 1.0)


def test_zarr_volume_keeps_voxel_size(tmp_path):
    data = np.arange(8, dtype=np.float32).reshape(2, 2, 2)
    path = tmp_path / "volume.zarr"
    save_volume(data, path, voxel_size=(40.0, 4.0, 4.0))

    volume = load_volume(path)
    np.testing.assert_array_equal(volume.data, data)
    assert volume.voxel_size == (40.0, 4.0, 4.0)

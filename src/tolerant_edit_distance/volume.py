"""Labeled 3D volumes with anisotropic voxel size."""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np
import zarr
from upath import UPath

from .config import DEFAULT_VOXEL_SIZE
from .exceptions import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class LabelVolume:
    """A label volume in (z, y, x) order.

    Label values are arbitrary scalars and are commonly stored as floats.
    They are interned once: ``labels`` holds the sorted distinct values and
    ``ids`` holds the volume with every value replaced by its index into
    ``labels``, so label identity never relies on float comparisons later.
    """

    data: np.ndarray
    voxel_size: tuple[float, float, float] = DEFAULT_VOXEL_SIZE
    labels: np.ndarray = field(init=False, repr=False)
    ids: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        data = np.asarray(self.data)
        if data.ndim == 2:
            data = data[np.newaxis]
        if data.ndim != 3:
            raise ValidationError(
                f"Label volumes must be 2D or 3D, got {data.ndim} dimensions"
            )
        if data.size == 0:
            raise ValidationError("Label volume is empty")
        if len(self.voxel_size) != 3:
            raise ValidationError(
                f"voxel_size must have 3 entries (z, y, x), got {self.voxel_size}"
            )
        self.data = data
        self.voxel_size = tuple(float(v) for v in self.voxel_size)

        labels, inverse = np.unique(data, return_inverse=True)
        self.labels = labels
        self.ids = inverse.reshape(data.shape).astype(np.int64, copy=False)

    @property
    def shape(self) -> tuple[int, int, int]:
        return self.data.shape

    @property
    def depth(self) -> int:
        return self.data.shape[0]

    @property
    def height(self) -> int:
        return self.data.shape[1]

    @property
    def width(self) -> int:
        return self.data.shape[2]

    @property
    def num_labels(self) -> int:
        return int(self.labels.size)

    def label_value(self, label_id: int):
        """Original label value for an interned id."""
        return self.labels[label_id].item()

    def label_id(self, value) -> int | None:
        """Interned id for a label value, or None if the value does not occur."""
        idx = int(np.searchsorted(self.labels, value))
        if idx < self.labels.size and self.labels[idx] == value:
            return idx
        return None


def _get_attr_any(attrs, keys):
    for k in keys:
        if k in attrs:
            return attrs[k]
    return None


def _parse_voxel_size(attrs) -> Optional[tuple[float, ...]]:
    vs = _get_attr_any(attrs, ["voxel_size", "resolution", "scale"])
    if vs is None:
        return None
    return tuple(float(x) for x in vs)


def load_volume(
    path: str | UPath, voxel_size: Optional[Sequence[float]] = None
) -> LabelVolume:
    """Load a label volume from a ``.npy`` file or a zarr array.

    Args:
        path: Location of the volume
        voxel_size: Voxel size in (z, y, x) order. If None, the zarr
            attributes are searched for a voxel size, falling back to the
            default.

    Returns:
        The loaded LabelVolume
    """
    path = UPath(path)
    if path.suffix == ".npy":
        with path.open("rb") as f:
            data = np.load(f)
        attrs = {}
    else:
        array = zarr.open_array(path.path, mode="r")
        data = array[...]
        attrs = dict(array.attrs)

    if voxel_size is None:
        voxel_size = _parse_voxel_size(attrs) or DEFAULT_VOXEL_SIZE
    logger.info(f"Loaded {data.shape} volume from {path} (voxel size {voxel_size})")
    return LabelVolume(data, voxel_size=tuple(voxel_size))


def save_volume(
    data: np.ndarray,
    path: str | UPath,
    voxel_size: Optional[Sequence[float]] = None,
) -> None:
    """Save a label volume as a ``.npy`` file or a zarr array."""
    path = UPath(path)
    if path.suffix == ".npy":
        with path.open("wb") as f:
            np.save(f, data)
        return

    array = zarr.create(
        shape=data.shape, dtype=data.dtype, store=path.path, overwrite=True
    )
    array[...] = data
    if voxel_size is not None:
        array.attrs["voxel_size"] = [float(v) for v in voxel_size]
    logger.info(f"Saved {data.shape} volume to {path}")

"""Type definitions for tolerant edit distance scores."""

from typing import Literal, TypedDict


class TedScoreDict(TypedDict, total=False):
    """Type definition for tolerant edit distance scores."""

    num_splits: int
    num_merges: int
    num_false_positives: int
    num_false_negatives: int
    total_errors: int
    splits_by_label: dict[str, int]
    merges_by_label: dict[str, int]
    distance_threshold: float
    voxel_size: tuple[float, ...]
    num_cells: int
    num_variables: int
    num_constraints: int
    status: Literal["scored"]

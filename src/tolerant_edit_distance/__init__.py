import lazy_loader as lazy

# Lazy-load submodules
__getattr__, __dir__, __all__ = lazy.attach(
    __name__,
    submod_attrs={
        "evaluate": [
            "tolerant_edit_distance",
            "extract_result",
            "TolerantEditDistanceResult",
        ],
        "cells": ["Cell", "CellPartition", "LabelRegistry", "extract_cells"],
        "tolerance": [
            "find_alternative_labels",
            "max_squared_distances",
            "squared_distance_map",
        ],
        "ilp": ["IlpModel", "build_model"],
        "solver": ["Solution", "solve"],
        "volume": ["LabelVolume", "load_volume", "save_volume"],
        "exceptions": [
            "EvaluationError",
            "ValidationError",
            "SizeMismatchError",
            "SolverFailedError",
        ],
    },
)

from .config import TolerantEditDistanceConfig

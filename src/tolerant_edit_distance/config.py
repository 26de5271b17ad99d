"""Configuration for tolerant edit distance evaluation."""

import logging
import os
from dataclasses import dataclass
from typing import Sequence

# Logging Configuration
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    force=True,
)

# Voxel size in (z, y, x) order: fine in-plane, coarse section thickness
DEFAULT_VOXEL_SIZE = (10.0, 1.0, 1.0)
DEFAULT_DISTANCE_THRESHOLD = 100.0
DEFAULT_SOLVER_BACKEND = "SCIP"


def parse_voxel_size(value: str | Sequence[float]) -> tuple[float, float, float]:
    """Parse a voxel size given as ``"z,y,x"`` or as a sequence of numbers.

    Args:
        value: Comma-separated string or sequence of three numbers

    Returns:
        Voxel size as a tuple of three floats

    Raises:
        ValueError: If the value does not describe exactly three axes
    """
    if isinstance(value, str):
        parts = [p for p in value.replace(" ", "").split(",") if p]
    else:
        parts = list(value)
    if len(parts) != 3:
        raise ValueError(f"voxel_size must have 3 entries (z, y, x), got {value!r}")
    return tuple(float(p) for p in parts)


def _env_optional_float(name: str) -> float | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return float(value)


def _env_flag(name: str, default: bool = False) -> bool:
    return os.getenv(name, str(default)).lower() not in ("false", "0", "no", "")


@dataclass
class TolerantEditDistanceConfig:
    """Configuration for tolerant edit distance evaluation.

    All parameters can be set via environment variables or passed directly.
    Environment variables take precedence over defaults but not over
    explicitly passed values.
    """

    # Bound on the squared physical distance of a cell to another label
    distance_threshold: float = DEFAULT_DISTANCE_THRESHOLD
    voxel_size: tuple[float, float, float] = DEFAULT_VOXEL_SIZE

    # Optional background labels, both or neither
    gt_background_label: float | None = None
    rec_background_label: float | None = None

    # Drop the constraint that keeps every reconstruction label alive
    allow_label_removal: bool = False

    # Threads for the per-label distance transforms
    max_threads: int = 1

    # ILP solver
    solver_backend: str = DEFAULT_SOLVER_BACKEND
    solver_time_limit: float | None = None

    @property
    def has_background(self) -> bool:
        return self.gt_background_label is not None and self.rec_background_label is not None

    @classmethod
    def from_env(cls) -> "TolerantEditDistanceConfig":
        """Load configuration from environment variables with defaults.

        Returns:
            TolerantEditDistanceConfig with values from environment or defaults.
        """
        return cls(
            distance_threshold=float(
                os.getenv("TED_DISTANCE_THRESHOLD", str(DEFAULT_DISTANCE_THRESHOLD))
            ),
            voxel_size=parse_voxel_size(
                os.getenv("TED_VOXEL_SIZE", ",".join(str(v) for v in DEFAULT_VOXEL_SIZE))
            ),
            gt_background_label=_env_optional_float("TED_GT_BACKGROUND_LABEL"),
            rec_background_label=_env_optional_float("TED_REC_BACKGROUND_LABEL"),
            allow_label_removal=_env_flag("TED_ALLOW_LABEL_REMOVAL"),
            max_threads=int(os.getenv("TED_MAX_THREADS", "1")),
            solver_backend=os.getenv("TED_SOLVER_BACKEND", DEFAULT_SOLVER_BACKEND),
            solver_time_limit=_env_optional_float("TED_SOLVER_TIME_LIMIT"),
        )

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If any configuration value is invalid.
        """
        if self.distance_threshold < 0:
            raise ValueError(
                f"distance_threshold must be >= 0, got {self.distance_threshold}"
            )
        if len(self.voxel_size) != 3 or any(v <= 0 for v in self.voxel_size):
            raise ValueError(
                f"voxel_size must be 3 positive values, got {self.voxel_size}"
            )
        if (self.gt_background_label is None) != (self.rec_background_label is None):
            raise ValueError(
                "gt_background_label and rec_background_label must be set together"
            )
        if self.max_threads < 1:
            raise ValueError(f"max_threads must be >= 1, got {self.max_threads}")
        if self.solver_time_limit is not None and self.solver_time_limit <= 0:
            raise ValueError(
                f"solver_time_limit must be > 0, got {self.solver_time_limit}"
            )

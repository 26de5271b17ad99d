"""Custom exceptions for tolerant edit distance evaluation."""


class EvaluationError(Exception):
    """Base exception for evaluation errors."""

    pass


class ValidationError(EvaluationError):
    """Raised when input validation fails."""

    pass


class SizeMismatchError(ValidationError):
    """Raised when ground truth and reconstruction volumes differ in shape.

    The evaluation cannot proceed without matching geometry, so no partial
    result is produced.
    """

    def __init__(self, gt_shape: tuple[int, ...], rec_shape: tuple[int, ...]):
        self.gt_shape = tuple(gt_shape)
        self.rec_shape = tuple(rec_shape)
        super().__init__(
            f"Ground truth and reconstruction have different size: "
            f"{self.gt_shape} vs {self.rec_shape}"
        )


class SolverFailedError(EvaluationError):
    """Raised when the ILP solver does not report an optimal solution."""

    def __init__(self, status: int | None, reason: str | None = None):
        self.status = status
        self.reason = reason
        message = f"ILP solver failed with status: {status}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)

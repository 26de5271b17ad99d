"""Solve an IlpModel with an OR-tools MIP backend."""

import logging
from dataclasses import dataclass

import numpy as np

from .config import DEFAULT_SOLVER_BACKEND
from .exceptions import SolverFailedError
from .ilp import IlpModel, Relation, Sense, VariableType

logger = logging.getLogger(__name__)


@dataclass
class Solution:
    """Variable values indexed exactly like the model's variables."""

    values: np.ndarray
    objective_value: float

    def __getitem__(self, var: int) -> int:
        return int(self.values[var])

    def __len__(self) -> int:
        return int(self.values.size)


def solve(
    model: IlpModel,
    backend: str = DEFAULT_SOLVER_BACKEND,
    time_limit: float | None = None,
) -> Solution:
    """Solve the model to optimality.

    Args:
        model: Objective, constraints and variable types
        backend: OR-tools solver id, e.g. "SCIP" or "CBC"
        time_limit: Optional limit in seconds; hitting it is a failure

    Returns:
        Solution with one integral value per variable

    Raises:
        SolverFailedError: If the backend is unavailable or the status is
            anything but optimal
    """
    from ortools.linear_solver import pywraplp

    solver = pywraplp.Solver.CreateSolver(backend)
    if solver is None:
        raise SolverFailedError(None, f"solver backend {backend!r} is not available")

    infinity = solver.infinity()
    variables = []
    for var, role in enumerate(model.roles):
        name = f"{role.kind.value}_{var}"
        variable_type = model.variable_type(var)
        if variable_type == VariableType.BINARY:
            variables.append(solver.BoolVar(name))
        elif variable_type == VariableType.INTEGER:
            variables.append(solver.IntVar(-infinity, infinity, name))
        else:
            variables.append(solver.NumVar(-infinity, infinity, name))

    for constraint in model.constraints:
        if constraint.relation == Relation.EQUAL:
            lower, upper = constraint.value, constraint.value
        elif constraint.relation == Relation.GREATER_EQUAL:
            lower, upper = constraint.value, infinity
        else:
            lower, upper = -infinity, constraint.value
        ct = solver.Constraint(lower, upper)
        for var, coefficient in constraint.coefficients.items():
            ct.SetCoefficient(variables[var], coefficient)

    objective = solver.Objective()
    for var, coefficient in model.objective.coefficients.items():
        objective.SetCoefficient(variables[var], coefficient)
    if model.objective.sense == Sense.MINIMIZE:
        objective.SetMinimization()
    else:
        objective.SetMaximization()

    if time_limit is not None:
        solver.SetTimeLimit(int(time_limit * 1000))

    logger.info(
        f"Solving ILP with {solver.NumVariables()} variables and "
        f"{solver.NumConstraints()} constraints using {backend}"
    )
    status = solver.Solve()
    if status != pywraplp.Solver.OPTIMAL:
        logger.warning(f"ILP did not solve optimally (status={status}).")
        raise SolverFailedError(status)

    values = np.array([round(v.solution_value()) for v in variables], dtype=np.int64)
    return Solution(values=values, objective_value=float(objective.Value()))

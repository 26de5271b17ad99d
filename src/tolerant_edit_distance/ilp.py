"""Integer linear program for the minimal number of splits and merges."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from .cells import CellPartition
from .config import TolerantEditDistanceConfig

logger = logging.getLogger(__name__)


class Relation(Enum):
    EQUAL = "=="
    GREATER_EQUAL = ">="
    LESS_EQUAL = "<="


class VariableType(Enum):
    BINARY = "binary"
    INTEGER = "integer"
    CONTINUOUS = "continuous"


class Sense(Enum):
    MINIMIZE = "minimize"
    MAXIMIZE = "maximize"


@dataclass
class LinearConstraint:
    coefficients: dict[int, float] = field(default_factory=dict)
    relation: Relation = Relation.EQUAL
    value: float = 0.0

    def set_coefficient(self, var: int, coefficient: float) -> None:
        self.coefficients[var] = float(coefficient)

    def __str__(self) -> str:
        terms = " + ".join(f"{c:g}*x{v}" for v, c in sorted(self.coefficients.items()))
        return f"{terms} {self.relation.value} {self.value:g}"


@dataclass
class LinearObjective:
    coefficients: dict[int, float] = field(default_factory=dict)
    sense: Sense = Sense.MINIMIZE

    def set_coefficient(self, var: int, coefficient: float) -> None:
        self.coefficients[var] = float(coefficient)


class VariableKind(Enum):
    INDICATOR = "indicator"
    MATCH = "match"
    SPLIT = "split"
    MERGE = "merge"
    SPLITS = "splits"
    MERGES = "merges"
    FALSE_POSITIVES = "false_positives"
    FALSE_NEGATIVES = "false_negatives"


@dataclass(frozen=True)
class VariableRole:
    """What an ILP variable stands for. Labels are interned ids."""

    kind: VariableKind
    cell: int | None = None
    gt_label: int | None = None
    rec_label: int | None = None


@dataclass
class IlpModel:
    """Variables, constraints and objective of the tolerant edit distance ILP.

    Variables are indexed in order of creation: cell indicators grouped by
    reconstruction label, match variables, split counters, merge counters,
    the split total and the merge total, optionally followed by the false
    positive and false negative totals.
    """

    roles: list[VariableRole] = field(default_factory=list)
    constraints: list[LinearConstraint] = field(default_factory=list)
    objective: LinearObjective = field(default_factory=LinearObjective)
    default_variable_type: VariableType = VariableType.BINARY
    variable_types: dict[int, VariableType] = field(default_factory=dict)

    indicator_vars_by_rec: dict[int, list[int]] = field(default_factory=dict)
    indicator_vars_by_gt_rec: dict[tuple[int, int], list[int]] = field(default_factory=dict)
    labeling_by_var: dict[int, tuple[int, int]] = field(default_factory=dict)
    match_vars: dict[tuple[int, int], int] = field(default_factory=dict)
    split_vars: dict[int, int] = field(default_factory=dict)
    merge_vars: dict[int, int] = field(default_factory=dict)

    splits: int | None = None
    merges: int | None = None
    false_positives: int | None = None
    false_negatives: int | None = None

    @property
    def num_variables(self) -> int:
        return len(self.roles)

    @property
    def num_indicator_vars(self) -> int:
        return len(self.labeling_by_var)

    def variable_type(self, var: int) -> VariableType:
        return self.variable_types.get(var, self.default_variable_type)

    def add_variable(self, role: VariableRole, variable_type: VariableType | None = None) -> int:
        var = len(self.roles)
        self.roles.append(role)
        if variable_type is not None and variable_type != self.default_variable_type:
            self.variable_types[var] = variable_type
        return var

    def add_constraint(
        self,
        coefficients: Iterable[tuple[int, float]],
        relation: Relation,
        value: float,
    ) -> LinearConstraint:
        constraint = LinearConstraint(relation=relation, value=float(value))
        for var, coefficient in coefficients:
            constraint.set_coefficient(var, coefficient)
        self.constraints.append(constraint)
        return constraint

    def assign_indicator_variable(self, cell: int, gt_label: int, rec_label: int) -> int:
        var = self.add_variable(
            VariableRole(VariableKind.INDICATOR, cell=cell, gt_label=gt_label, rec_label=rec_label)
        )
        logger.debug(f"variable {var} indicates a single mapping from {gt_label} to {rec_label}")
        self.indicator_vars_by_rec.setdefault(rec_label, []).append(var)
        self.indicator_vars_by_gt_rec.setdefault((gt_label, rec_label), []).append(var)
        self.labeling_by_var[var] = (cell, rec_label)
        return var

    def indicators_by_rec(self, rec_label: int) -> list[int]:
        return self.indicator_vars_by_rec.get(rec_label, [])

    def indicators_gt_to_rec(self, gt_label: int, rec_label: int) -> list[int]:
        return self.indicator_vars_by_gt_rec.get((gt_label, rec_label), [])

    def assign_match_variable(self, gt_label: int, rec_label: int) -> int:
        var = self.add_variable(
            VariableRole(VariableKind.MATCH, gt_label=gt_label, rec_label=rec_label)
        )
        logger.debug(f"variable {var} indicates a match of {gt_label} to {rec_label}")
        self.match_vars[(gt_label, rec_label)] = var
        return var

    def match_variable(self, gt_label: int, rec_label: int) -> int:
        assert (gt_label, rec_label) in self.match_vars, (
            f"No match variable for ground truth label {gt_label} "
            f"and reconstruction label {rec_label}"
        )
        return self.match_vars[(gt_label, rec_label)]


def _add_cell_indicators(model: IlpModel, partition: CellPartition) -> None:
    for rec_label in sorted(partition.registry.rec_labels):
        for index in partition.cells_by_rec.get(rec_label, []):
            cell = partition.cells[index]

            # one variable for the default label, one per alternative
            variables = [
                model.assign_indicator_variable(index, cell.gt_label, label)
                for label in cell.candidate_labels
            ]

            # every cell needs exactly one label
            model.add_constraint(((v, 1) for v in variables), Relation.EQUAL, 1)


def _add_label_persistence(model: IlpModel, partition: CellPartition) -> None:
    # labels of the reconstruction can not disappear
    for rec_label in sorted(partition.cells_by_rec):
        model.add_constraint(
            ((v, 1) for v in model.indicators_by_rec(rec_label)),
            Relation.GREATER_EQUAL,
            1,
        )


def _add_matches(model: IlpModel, partition: CellPartition) -> None:
    registry = partition.registry
    for gt_label in sorted(registry.gt_labels):
        for rec_label in registry.possible_matches_by_gt(gt_label):
            model.assign_match_variable(gt_label, rec_label)

    # cell label selection activates match
    for gt_label in sorted(registry.gt_labels):
        for rec_label in registry.possible_matches_by_gt(gt_label):
            match_var = model.match_variable(gt_label, rec_label)
            indicators = model.indicators_gt_to_rec(gt_label, rec_label)
            assert indicators, f"Match of {gt_label} to {rec_label} without indicators"

            # at least one assignment of gt_label to rec_label -> match is one
            for v in indicators:
                model.add_constraint(
                    [(match_var, 1), (v, -1)], Relation.GREATER_EQUAL, 0
                )

            # no assignment of gt_label to rec_label -> match is zero
            model.add_constraint(
                [(v, 1) for v in indicators] + [(match_var, -1)],
                Relation.GREATER_EQUAL,
                0,
            )


def _add_counter(
    model: IlpModel,
    role: VariableRole,
    match_vars: list[int],
    exact: bool,
) -> int:
    """Integer counter of matches in excess of one, constrained to be >= 0.

    With ``exact`` the counter equals ``len(match_vars) - 1``. Otherwise it is
    only bounded from below, which the minimization makes tight, so that
    labels matching nothing but background count zero.
    """
    var = model.add_variable(role, VariableType.INTEGER)
    model.add_constraint([(var, 1)], Relation.GREATER_EQUAL, 0)
    model.add_constraint(
        [(var, 1)] + [(m, -1) for m in match_vars],
        Relation.EQUAL if exact else Relation.GREATER_EQUAL,
        -1,
    )
    return var


def _add_total(model: IlpModel, kind: VariableKind, summands: list[int]) -> int:
    var = model.add_variable(VariableRole(kind), VariableType.INTEGER)
    model.add_constraint(
        [(var, 1)] + [(s, -1) for s in summands], Relation.EQUAL, 0
    )
    return var


def build_model(
    partition: CellPartition, config: TolerantEditDistanceConfig | None = None
) -> IlpModel:
    """Translate cells and their alternative labels into an ILP.

    Args:
        partition: Cells after tolerance analysis
        config: Evaluation configuration (uses defaults if None)

    Returns:
        IlpModel minimizing the number of splits and merges
    """
    if config is None:
        config = TolerantEditDistanceConfig()

    registry = partition.registry
    gt_background = rec_background = None
    if config.has_background:
        gt_background = partition.ground_truth.label_id(config.gt_background_label)
        rec_background = partition.reconstruction.label_id(config.rec_background_label)

    model = IlpModel()

    _add_cell_indicators(model, partition)
    if not config.allow_label_removal:
        _add_label_persistence(model, partition)
    _add_matches(model, partition)

    exact = not config.has_background

    # number of splits for each ground truth label
    for gt_label in sorted(registry.gt_labels):
        if gt_label == gt_background:
            continue
        recs = [r for r in registry.possible_matches_by_gt(gt_label) if r != rec_background]
        var = _add_counter(
            model,
            VariableRole(VariableKind.SPLIT, gt_label=gt_label),
            [model.match_variable(gt_label, r) for r in recs],
            exact,
        )
        logger.debug(f"variable {var} counts the number of splits for ground truth label {gt_label}")
        model.split_vars[gt_label] = var

    # number of merges for each reconstruction label
    for rec_label in sorted(registry.rec_labels):
        if rec_label == rec_background:
            continue
        gts = [g for g in registry.possible_matches_by_rec(rec_label) if g != gt_background]
        var = _add_counter(
            model,
            VariableRole(VariableKind.MERGE, rec_label=rec_label),
            [model.match_variable(g, rec_label) for g in gts],
            exact,
        )
        logger.debug(f"variable {var} counts the number of merges for reconstruction label {rec_label}")
        model.merge_vars[rec_label] = var

    model.splits = _add_total(model, VariableKind.SPLITS, list(model.split_vars.values()))
    model.merges = _add_total(model, VariableKind.MERGES, list(model.merge_vars.values()))
    model.objective.set_coefficient(model.splits, 1)
    model.objective.set_coefficient(model.merges, 1)

    if config.has_background:
        false_positives = []
        if gt_background is not None:
            false_positives = [
                model.match_variable(gt_background, r)
                for r in registry.possible_matches_by_gt(gt_background)
                if r != rec_background
            ]
        false_negatives = []
        if rec_background is not None:
            false_negatives = [
                model.match_variable(g, rec_background)
                for g in registry.possible_matches_by_rec(rec_background)
                if g != gt_background
            ]
        model.false_positives = _add_total(model, VariableKind.FALSE_POSITIVES, false_positives)
        model.false_negatives = _add_total(model, VariableKind.FALSE_NEGATIVES, false_negatives)
        model.objective.set_coefficient(model.false_positives, 1)
        model.objective.set_coefficient(model.false_negatives, 1)

    model.objective.sense = Sense.MINIMIZE

    logger.info(
        f"Built ILP with {model.num_variables} variables "
        f"({model.num_indicator_vars} indicators, {len(model.match_vars)} matches) "
        f"and {len(model.constraints)} constraints"
    )
    if logger.isEnabledFor(logging.DEBUG):
        for constraint in model.constraints:
            logger.debug(f"\t{constraint}")

    return model

import numpy as np
import pytest

from tolerant_edit_distance.cells import extract_cells
from tolerant_edit_distance.config import TolerantEditDistanceConfig
from tolerant_edit_distance.ilp import (
    IlpModel,
    LinearConstraint,
    Relation,
    Sense,
    VariableKind,
    VariableType,
    build_model,
)
from tolerant_edit_distance.tolerance import find_alternative_labels
from tolerant_edit_distance.volume import LabelVolume


def _split_row(threshold):
    """
    GT:  1 1 1 1
    Rec: 1 1 2 2
    """
    gt = LabelVolume(np.ones((1, 1, 4)))
    rec = LabelVolume(np.array([[[1, 1, 2, 2]]], dtype=np.float64))
    partition = extract_cells(gt, rec)
    return find_alternative_labels(partition, threshold, (10.0, 1.0, 1.0))


def test_variable_enumeration_order():
    model = build_model(_split_row(0.0))

    kinds = [role.kind for role in model.roles]
    assert kinds == [
        VariableKind.INDICATOR,
        VariableKind.INDICATOR,
        VariableKind.MATCH,
        VariableKind.MATCH,
        VariableKind.SPLIT,
        VariableKind.MERGE,
        VariableKind.MERGE,
        VariableKind.SPLITS,
        VariableKind.MERGES,
    ]
    assert model.labeling_by_var == {0: (0, 0), 1: (1, 1)}
    assert model.match_vars == {(0, 0): 2, (0, 1): 3}
    assert model.split_vars == {0: 4}
    assert model.merge_vars == {0: 5, 1: 6}
    assert model.splits == 7
    assert model.merges == 8
    assert model.false_positives is None
    assert model.false_negatives is None


def test_variable_types():
    model = build_model(_split_row(0.0))

    for var in range(4):
        assert model.variable_type(var) == VariableType.BINARY
    for var in range(4, 9):
        assert model.variable_type(var) == VariableType.INTEGER


def test_constraint_set():
    model = build_model(_split_row(0.0))

    # 2 cell labels, 2 persistence, 4 match links, 2 split, 4 merge, 2 totals
    assert len(model.constraints) == 16

    one_label, persistence = model.constraints[0], model.constraints[2]
    assert one_label.coefficients == {0: 1.0}
    assert one_label.relation == Relation.EQUAL
    assert one_label.value == 1
    assert persistence.relation == Relation.GREATER_EQUAL
    assert persistence.value == 1

    num_splits = LinearConstraint({4: 1.0, 2: -1.0, 3: -1.0}, Relation.EQUAL, -1.0)
    assert num_splits in model.constraints
    sum_of_splits = LinearConstraint({7: 1.0, 4: -1.0}, Relation.EQUAL, 0.0)
    assert sum_of_splits in model.constraints

    assert model.objective.coefficients == {7: 1.0, 8: 1.0}
    assert model.objective.sense == Sense.MINIMIZE


def test_alternatives_add_indicators_and_matches():
    model = build_model(_split_row(5.0))

    # cell 0: labels 0 then 1, cell 1: labels 1 then 0
    assert model.labeling_by_var == {0: (0, 0), 1: (0, 1), 2: (1, 1), 3: (1, 0)}
    assert model.indicators_by_rec(0) == [0, 3]
    assert model.indicators_gt_to_rec(0, 1) == [1, 2]
    assert model.constraints[0].coefficients == {0: 1.0, 1: 1.0}


def test_label_removal_drops_persistence_constraints():
    partition = _split_row(5.0)
    kept = build_model(partition)
    removed = build_model(partition, TolerantEditDistanceConfig(allow_label_removal=True))

    assert len(kept.constraints) - len(removed.constraints) == 2
    assert kept.roles == removed.roles


def test_background_counters():
    gt = LabelVolume(np.array([[[0, 0, 1, 1]]], dtype=np.float64))
    rec = LabelVolume(np.array([[[0, 3, 3, 3]]], dtype=np.float64))
    partition = find_alternative_labels(extract_cells(gt, rec), 0.0, (1.0, 1.0, 1.0))
    config = TolerantEditDistanceConfig(gt_background_label=0, rec_background_label=0)
    model = build_model(partition, config)

    # no split counter for the gt background, no merge counter for the rec background
    assert list(model.split_vars) == [1]
    assert list(model.merge_vars) == [1]
    assert model.false_positives == model.num_variables - 2
    assert model.false_negatives == model.num_variables - 1

    fp = LinearConstraint(
        {model.false_positives: 1.0, model.match_variable(0, 1): -1.0},
        Relation.EQUAL,
        0.0,
    )
    assert fp in model.constraints
    merge = LinearConstraint(
        {model.merge_vars[1]: 1.0, model.match_variable(1, 1): -1.0},
        Relation.GREATER_EQUAL,
        -1.0,
    )
    assert merge in model.constraints
    assert set(model.objective.coefficients) == {
        model.splits,
        model.merges,
        model.false_positives,
        model.false_negatives,
    }


def test_enumeration_is_deterministic():
    rng = np.random.default_rng(5)
    gt = rng.integers(0, 3, size=(2, 4, 4)).astype(np.float32)
    rec = rng.integers(0, 4, size=(2, 4, 4)).astype(np.float32)

    def build():
        partition = extract_cells(LabelVolume(gt), LabelVolume(rec))
        find_alternative_labels(partition, 3.0, (1.0, 1.0, 1.0))
        return build_model(partition)

    first, second = build(), build()
    assert first.roles == second.roles
    assert first.constraints == second.constraints


def test_unknown_match_is_an_assertion():
    model = IlpModel()
    with pytest.raises(AssertionError):
        model.match_variable(0, 0)


def test_constraint_str():
    constraint = LinearConstraint({3: 1.0, 1: -1.0}, Relation.GREATER_EQUAL, 0.0)
    assert str(constraint) == "-1*x1 + 1*x3 >= 0"

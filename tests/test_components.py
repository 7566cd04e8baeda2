# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import numpy as np
import pytest

from scipy import stats

from scipathpy.model.components.abstract_model_component import (
    AbstractModelComponent,
    InputKind,
    InputSpec,
)
from scipathpy.model.components.constants import Constant
from scipathpy.model.components.distributions import (
    CompoundDistribution,
    Distribution,
    Exponential,
    LogNormal,
    Normal,
    Uniform,
)
from scipathpy.model.components.operators import (
    Operator,
    RandomWalkOperator,
    ScaleOperator,
)
from scipathpy.model.components.parameters import RealParameter


class Tagged(AbstractModelComponent):
    INPUTS = (
        InputSpec("label", InputKind.STRING),
        InputSpec("scale", InputKind.SCALAR, 1.0),
        InputSpec("parent", InputKind.NODE),
        InputSpec("members", InputKind.LIST),
    )


def test_unknown_inputs_are_rejected():
    with pytest.raises(TypeError, match="unexpected inputs"):
        Tagged(label="a", colour="red")


def test_input_kinds_are_checked():
    with pytest.raises(TypeError):
        Tagged(label=3)
    with pytest.raises(TypeError):
        Tagged(scale="large")
    with pytest.raises(TypeError):
        Tagged(parent="not a node")
    with pytest.raises(TypeError):
        Tagged(members=[{"a": 1}])


def test_inputs_are_normalized():
    tagged = Tagged(label="a", parent=2.5, members=np.array([[1.0, 2.0]]))

    # Defaults and empty lists
    assert tagged.get_input("scale") == 1.0
    assert Tagged().get_input("members") == []

    # Raw values become constants and arrays become flat lists
    assert isinstance(tagged.get_input("parent"), Constant)
    np.testing.assert_array_equal(tagged.get_input("parent").values, [2.5])
    assert tagged.get_input("members") == [1.0, 2.0]

    # Single list elements are wrapped
    assert Tagged(members="x").get_input("members") == ["x"]

    assert [name for name, _, _ in tagged.list_inputs()] == [
        "label",
        "scale",
        "parent",
        "members",
    ]
    with pytest.raises(KeyError):
        tagged.get_input("colour")


def test_walk_inputs_visits_each_node_once_in_order():
    shared = Constant(1.0, node_id="shared")
    first = Tagged(parent=shared, node_id="first")
    second = Tagged(parent=shared, node_id="second")
    root = Tagged(parent=first, members=[second, first], node_id="root")

    assert root.input_nodes() == [first, second]
    assert [node.node_id for node in root.walk_inputs()] == [
        "root",
        "first",
        "shared",
        "second",
    ]


def test_node_id_must_be_non_empty():
    tagged = Tagged()
    assert tagged.node_id is None
    with pytest.raises(ValueError):
        tagged.node_id = ""
    tagged.node_id = "t"
    assert repr(tagged) == "Tagged(node_id='t')"


def test_real_parameter_checks_values_and_bounds():
    with pytest.raises(ValueError):
        RealParameter()
    with pytest.raises(ValueError):
        RealParameter(value=1.0, lower=2.0, upper=1.0)
    with pytest.raises(ValueError):
        RealParameter(value=-1.0, lower=0.0)

    parameter = RealParameter(value=[1.0, 2.0], lower=0.0)
    assert parameter.dimension == 2
    assert parameter.lower == 0.0
    assert parameter.upper == np.inf
    assert parameter.in_bounds()
    assert not parameter.in_bounds(np.array([1.0, -1.0]))

    with pytest.raises(ValueError):
        parameter.values = np.array([1.0])


def test_real_parameter_store_and_restore():
    parameter = RealParameter(value=[1.0, 2.0])
    parameter.store()
    parameter.values = np.array([5.0, 6.0])
    np.testing.assert_array_equal(parameter.values, [5.0, 6.0])
    parameter.restore()
    np.testing.assert_array_equal(parameter.values, [1.0, 2.0])


@pytest.mark.parametrize(
    "distribution, expected",
    [
        (
            Normal(x=[0.5, -1.0], mu=0.2, sigma=2.0),
            stats.norm.logpdf([0.5, -1.0], 0.2, 2.0).sum(),
        ),
        (LogNormal(x=[1.5], mu=0.3, sigma=0.7), stats.lognorm.logpdf(1.5, 0.7, scale=np.exp(0.3))),
        (Exponential(x=[2.0], beta=0.5), np.log(0.5) - 1.0),
        (Uniform(x=[0.5], lower=0.0, upper=2.0), np.log(0.5)),
        (Uniform(x=[3.0], lower=0.0, upper=2.0), -np.inf),
    ],
)
def test_distribution_log_densities(distribution, expected):
    assert distribution.calculate_log_p() == pytest.approx(expected)
    assert distribution.current_log_p == pytest.approx(expected)


def test_distributions_require_all_parameters():
    with pytest.raises(TypeError):
        Normal(x=[0.0], mu=0.0)


def test_distribution_inputs_must_carry_values():
    normal = Normal(x=[0.0], mu=Tagged(), sigma=1.0)
    with pytest.raises(TypeError):
        normal.calculate_log_p()


def test_distribution_cache_follows_the_state():
    mu = RealParameter(value=0.0)
    normal = Normal(x=[1.0], mu=mu, sigma=1.0)
    initial = normal.calculate_log_p()
    normal.store()

    mu.values = np.array([1.0])
    normal.mark_dirty()
    assert normal.is_dirty
    moved = normal.calculate_log_p()
    assert not normal.is_dirty
    assert moved > initial

    normal.restore()
    assert normal.current_log_p == initial

    normal.calculate_log_p()
    normal.accept()
    normal.restore()
    assert normal.current_log_p == moved


def test_compound_distribution():
    mu = RealParameter(value=0.5)
    prior = Normal(x=mu, mu=0.0, sigma=1.0)
    likelihood = Normal(x=[1.0, 2.0], mu=mu, sigma=1.0)
    posterior = CompoundDistribution([prior, likelihood])

    assert posterior.likelihood is likelihood
    assert posterior.calculate_log_p() == pytest.approx(
        prior.current_log_p + likelihood.current_log_p
    )
    assert posterior.prior_log_p == pytest.approx(stats.norm.logpdf(0.5))

    with pytest.raises(TypeError):
        CompoundDistribution([prior, mu])
    with pytest.raises(ValueError):
        _ = CompoundDistribution().likelihood


def test_operators_check_their_inputs():
    with pytest.raises(TypeError):
        RandomWalkOperator(parameter=Constant(1.0))
    with pytest.raises(ValueError):
        RandomWalkOperator(parameter=RealParameter(value=0.0), weight=-1.0)
    with pytest.raises(TypeError):
        RandomWalkOperator(parameter=RealParameter(value=0.0), evaluator=Constant(1.0))
    with pytest.raises(ValueError):
        RandomWalkOperator(parameter=RealParameter(value=0.0), window_size=0.0)
    with pytest.raises(ValueError):
        ScaleOperator(parameter=RealParameter(value=1.0), scale_factor=1.5)
    with pytest.raises(TypeError, match="abstract"):
        Operator(parameter=RealParameter(value=0.0))


def test_base_distribution_is_abstract():
    with pytest.raises(TypeError, match="abstract"):
        Distribution()


def test_random_walk_moves_one_element():
    parameter = RealParameter(value=[0.0, 0.0, 0.0])
    operator = RandomWalkOperator(
        parameter=parameter, window_size=0.5, rng=np.random.default_rng(0)
    )
    assert operator.proposal() == 0.0
    changed = np.flatnonzero(parameter.values)
    assert len(changed) == 1
    assert abs(parameter.values[changed[0]]) <= 0.5


def test_random_walk_out_of_bounds_is_impossible():
    parameter = RealParameter(value=0.0, lower=0.0, upper=0.0)
    operator = RandomWalkOperator(
        parameter=parameter, use_gaussian=True, rng=np.random.default_rng(1)
    )
    assert operator.proposal() == -np.inf
    np.testing.assert_array_equal(parameter.values, [0.0])


def test_scale_operator_hastings_ratio():
    parameter = RealParameter(value=2.0, lower=0.0)
    operator = ScaleOperator(
        parameter=parameter, scale_factor=0.5, rng=np.random.default_rng(2)
    )
    log_hastings_ratio = operator.proposal()
    scale = parameter.values[0] / 2.0
    assert 0.5 <= scale <= 2.0
    assert log_hastings_ratio == pytest.approx(-np.log(scale))


def test_operator_tuning_and_reset():
    walk = RandomWalkOperator(parameter=RealParameter(value=0.0), window_size=1.0)
    scale = ScaleOperator(parameter=RealParameter(value=1.0), scale_factor=0.75)

    # Accepting everything widens the proposals
    walk.optimize(0.0)
    scale.optimize(0.0)
    assert walk.window_size > 1.0
    assert scale.scale_factor < 0.75

    # Rejecting everything narrows them
    walk.reset()
    scale.reset()
    walk.optimize(-np.inf)
    scale.optimize(-np.inf)
    assert walk.window_size < 1.0
    assert scale.scale_factor > 0.75

    walk.accept()
    walk.reject()
    walk.reject()
    assert walk.acceptance_rate == pytest.approx(1 / 3)
    walk.reset()
    assert walk.window_size == 1.0
    assert np.isnan(walk.acceptance_rate)


def test_calc_delta_shrinks_with_history():
    operator = RandomWalkOperator(parameter=RealParameter(value=0.0))
    first = operator.calc_delta(0.0)
    assert first == pytest.approx(1 - operator.TARGET_ACCEPTANCE)
    operator.accept()
    assert operator.calc_delta(0.0) == pytest.approx(first / 2)
    assert operator.calc_delta(np.nan) == 0.0

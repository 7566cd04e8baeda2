# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import numpy as np
import pytest

from scipathpy.model.analysis import Analysis
from scipathpy.model.components.constants import Constant
from scipathpy.model.components.distributions import CompoundDistribution, Normal
from scipathpy.model.components.operators import RandomWalkOperator
from scipathpy.model.components.parameters import RealParameter
from scipathpy.model.model import Model
from scipathpy.model.state import State


def test_identifiers_are_assigned_in_walk_order():
    mu = RealParameter(value=0.0)
    model = Model(Normal(x=mu, mu=0.0, sigma=1.0))
    assert model.ids == ["Normal0", "RealParameter0", "Constant0", "Constant1"]
    assert model["RealParameter0"] is mu
    assert "Constant1" in model
    assert len(model) == 4
    assert list(model) == model.ids


def test_explicit_identifiers_are_reserved():
    data = Constant([1.0, 2.0], node_id="Constant0")
    likelihood = Normal(x=data, mu=0.0, sigma=1.0)
    model = Model(likelihood)

    assert data.node_id == "Constant0"
    assert likelihood.get_input("mu").node_id == "Constant1"
    assert likelihood.get_input("sigma").node_id == "Constant2"


def test_identifiers_are_stable_across_rebuilds():
    model = Model(Normal(x=[1.0], mu=0.0, sigma=1.0))
    ids = model.ids
    model.rebuild_index()
    assert model.ids == ids


def test_shared_identifiers_are_rejected():
    first = Normal(x=[1.0], mu=0.0, sigma=1.0, node_id="lik")
    second = Normal(x=[2.0], mu=0.0, sigma=1.0, node_id="lik")
    with pytest.raises(ValueError, match="lik"):
        Model(CompoundDistribution([first, second]))


def test_consumer_index():
    mu = RealParameter(value=0.0, node_id="mu")
    prior = Normal(x=mu, mu=0.0, sigma=1.0, node_id="prior")
    likelihood = Normal(x=[0.5], mu=mu, sigma=1.0, node_id="likelihood")
    posterior = CompoundDistribution([prior, likelihood], node_id="posterior")
    model = Model(posterior, State([mu], node_id="state"))

    assert model.consumers_of("mu") == ["prior", "likelihood", "state"]
    assert model.consumers_of("prior") == ["posterior"]
    assert model.consumers_of("posterior") == []
    assert [root.node_id for root in model.roots] == ["posterior", "state"]
    with pytest.raises(KeyError):
        model.consumers_of("missing")


def test_nodes_is_a_copy():
    model = Model(Constant(1.0, node_id="c"))
    nodes = model.nodes
    nodes.clear()
    assert "c" in model


def test_state_snapshot_protocol(normal_analysis):
    state = normal_analysis.state
    mu = state.state_nodes[0]
    state.initialise(normal_analysis.posterior)
    assert len(state.calculation_nodes) == 3

    # Restore rolls back
    state.store(1)
    assert state.stored_at == 1
    mu.values = np.array([3.0])
    state.restore()
    assert state.stored_at is None
    np.testing.assert_array_equal(mu.values, [0.0])

    # Accept commits
    state.store(2)
    mu.values = np.array([3.0])
    state.accept()
    np.testing.assert_array_equal(mu.values, [3.0])

    # Snapshots must be resolved before the next one
    state.store(3)
    with pytest.raises(AssertionError):
        state.store(4)
    state.accept()


def test_state_whole_snapshots(normal_analysis):
    state = normal_analysis.state
    mu = state.state_nodes[0]
    snapshot = state.snapshot()
    assert list(snapshot) == ["mu"]

    mu.values = np.array([2.0])
    np.testing.assert_array_equal(snapshot["mu"], [0.0])

    state.initialise(normal_analysis.posterior)
    state.set_everything_dirty(False)
    state.load_snapshot(snapshot)
    np.testing.assert_array_equal(mu.values, [0.0])
    assert all(node.is_dirty for node in state.calculation_nodes)

    with pytest.raises(ValueError):
        State([RealParameter(value=0.0)]).snapshot()


def test_state_nodes_are_parameters():
    with pytest.raises(TypeError):
        State([Constant(1.0)])

    state = State()
    parameter = RealParameter(value=0.0)
    state.add_state_node(parameter)
    state.add_state_node(parameter)
    assert state.state_nodes == [parameter]


def test_analysis_checks_its_inputs():
    mu = RealParameter(value=0.0, node_id="mu")
    posterior = Normal(x=mu, mu=0.0, sigma=1.0)
    state = State([mu])
    operator = RandomWalkOperator(parameter=mu)

    with pytest.raises(TypeError, match="posterior"):
        Analysis(posterior=Constant(1.0), state=state, operators=[operator])
    with pytest.raises(TypeError, match="state"):
        Analysis(posterior=posterior, state=Constant(1.0), operators=[operator])
    with pytest.raises(TypeError, match="operators"):
        Analysis(posterior=posterior, state=state, operators=[Constant(1.0)])

    analysis = Analysis(posterior=posterior, state=state, operators=[operator])
    assert analysis.posterior is posterior
    assert analysis.operators == [operator]

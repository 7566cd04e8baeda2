# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import pytest

import scipathpy as spp

from scipathpy.model.analysis import Analysis
from scipathpy.model.components.distributions import CompoundDistribution, Normal
from scipathpy.model.components.operators import RandomWalkOperator
from scipathpy.model.components.parameters import RealParameter
from scipathpy.model.state import State


@pytest.fixture(autouse=True)
def seeded_rng():
    spp.manual_seed(1234)
    yield


def build_normal_analysis(observation=0.0, prior_sigma=1.0, window_size=1.0):
    """Normal prior on a mean, one normal observation with unit variance.

    The marginal likelihood of the observation is N(observation; 0, 1 + prior_sigma^2).
    """
    mu = RealParameter(value=0.0, node_id="mu")
    prior = Normal(x=mu, mu=0.0, sigma=prior_sigma, node_id="prior")
    likelihood = Normal(x=[observation], mu=mu, sigma=1.0, node_id="likelihood")
    posterior = CompoundDistribution([prior, likelihood], node_id="posterior")
    state = State([mu], node_id="state")
    operator = RandomWalkOperator(parameter=mu, window_size=window_size, node_id="rw")
    return Analysis(posterior=posterior, state=state, operators=[operator])


@pytest.fixture
def normal_analysis():
    return build_normal_analysis()


@pytest.fixture
def analysis_factory():
    return build_normal_analysis

# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import pytest

from pydantic import ValidationError

from scipathpy.config import PathSamplingConfig
from scipathpy.exceptions import ConfigurationError
from scipathpy.schedule import Scheme


def test_defaults():
    config = PathSamplingConfig()
    assert config.n_steps == 8
    assert config.scheme is Scheme.SIGMOID
    assert config.resolved_scheme is Scheme.SIGMOID
    assert config.logging_interval == 100
    assert config.root_dir is None
    assert len(config.betas) == 8
    assert config.betas[0] == 1.0
    assert config.betas[-1] == 0.0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"n_steps": 1},
        {"chain_length": 0},
        {"pre_burn_in": -1},
        {"chain_length": 10, "pre_burn_in": 11},
        {"burn_in_percentage": -0.5},
        {"burn_in_percentage": 100.0},
        {"checkpoint_interval": -1},
        {"log_every": 0},
        {"n_parallel": 0},
        {"scheme": "geometric"},
    ],
)
def test_invalid_settings(kwargs):
    with pytest.raises(ConfigurationError):
        PathSamplingConfig(**kwargs)


def test_unknown_fields_are_rejected():
    with pytest.raises(ValidationError):
        PathSamplingConfig(n_stepz=4)


def test_config_is_immutable():
    config = PathSamplingConfig()
    with pytest.raises(ValidationError):
        config.n_steps = 4


def test_non_positive_alpha_forces_uniform():
    config = PathSamplingConfig(n_steps=5, alpha=-1.0, scheme="sigmoid")
    assert config.scheme is Scheme.SIGMOID
    assert config.resolved_scheme is Scheme.UNIFORM
    assert config.betas == [0.0, 0.25, 0.5, 0.75, 1.0]


@pytest.mark.parametrize(
    "chain_length, log_every, expected",
    [(500, None, 1), (2000, None, 2), (123456, None, 123), (2000, 7, 7)],
)
def test_logging_interval(chain_length, log_every, expected):
    config = PathSamplingConfig(chain_length=chain_length, log_every=log_every)
    assert config.logging_interval == expected

# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import numpy as np
import pytest

from scipathpy.exceptions import ConfigurationError, DegenerateTraceError
from scipathpy.inference.estimator import (
    MarginalLikelihoodEstimator,
    estimate_marginal_likelihood,
)
from scipathpy.inference.trace import Trace
from scipathpy.schedule import Scheme


def test_uniform_trapezoidal_rule():
    estimator = MarginalLikelihoodEstimator("uniform", burn_in_percentage=0)
    result = estimator.estimate([[1.0], [2.0], [3.0], [4.0]])
    assert result.log_bayes_factor == pytest.approx(-2.5)
    assert result.scheme is Scheme.UNIFORM


def test_uniform_uses_means_of_retained_samples():
    traces = [[100.0, 1.0, 1.0], [100.0, 3.0, 5.0]]
    estimator = MarginalLikelihoodEstimator(Scheme.UNIFORM, burn_in_percentage=50)
    result = estimator.estimate(traces)

    # One record of three is discarded from each trace
    assert result.diagnostics["mean"].tolist() == [1.0, 4.0]
    assert result.log_bayes_factor == pytest.approx(-2.5)


def test_non_positive_alpha_selects_the_uniform_rule():
    estimator = MarginalLikelihoodEstimator("sigmoid", alpha=0.0, burn_in_percentage=0)
    assert estimator.scheme is Scheme.UNIFORM
    result = estimator.estimate([[1.0], [2.0], [3.0], [4.0]])
    assert result.log_bayes_factor == pytest.approx(-2.5)


def test_sigmoid_stepping_stone_rule():
    # Two steps: beta runs from 1 to 0, so the single weight is -1
    samples = [np.array([0.0, np.log(3.0)]), np.array([7.0, 7.0])]
    estimator = MarginalLikelihoodEstimator("sigmoid", alpha=5.0, burn_in_percentage=0)
    result = estimator.estimate(samples)

    expected_contribution = np.log(np.mean(np.exp(-samples[0])))
    assert result.diagnostics["contribution"].iloc[0] == pytest.approx(
        expected_contribution
    )
    assert np.isnan(result.diagnostics["contribution"].iloc[1])
    assert result.log_bayes_factor == pytest.approx(np.log(1.5))


def test_sigmoid_constant_zero_samples_contribute_nothing():
    traces = [np.zeros(10) for _ in range(5)]
    result = MarginalLikelihoodEstimator("sigmoid", burn_in_percentage=0).estimate(traces)
    assert result.log_bayes_factor == pytest.approx(0.0, abs=1e-12)
    assert result.diagnostics["contribution"].iloc[:-1].tolist() == pytest.approx(
        [0.0] * 4, abs=1e-12
    )


def test_sigmoid_rule_is_stable_for_large_magnitudes():
    traces = [np.array([-5000.0, -5001.0, -4999.0]) for _ in range(4)]
    result = MarginalLikelihoodEstimator("sigmoid", burn_in_percentage=0).estimate(traces)
    assert np.isfinite(result.log_bayes_factor)


def test_sigmoid_rule_matches_direct_computation():
    rng = np.random.default_rng(0)
    traces = [rng.normal(-3.0, 1.0, size=50) for _ in range(6)]
    estimator = MarginalLikelihoodEstimator("sigmoid", alpha=4.0, burn_in_percentage=0)
    result = estimator.estimate(traces)

    betas = result.diagnostics["beta"].to_numpy()
    direct = sum(
        np.log(np.mean(np.exp((betas[i + 1] - betas[i]) * traces[i])))
        for i in range(5)
    )
    assert result.log_bayes_factor == pytest.approx(-direct)


def test_traces_and_arrays_are_equivalent():
    values = [[0.5, 1.0, 1.5, 2.0], [2.0, 3.0, 4.0, 5.0]]
    traces = []
    for i, step_values in enumerate(values):
        trace = Trace(i, 0.0, "likelihood")
        for iteration, value in enumerate(step_values):
            trace.append(iteration, value)
        traces.append(trace)

    estimator = MarginalLikelihoodEstimator("uniform", burn_in_percentage=25)
    assert estimator.estimate(traces).log_bayes_factor == pytest.approx(
        estimator.estimate(values).log_bayes_factor
    )


def test_retained_samples():
    estimator = MarginalLikelihoodEstimator(burn_in_percentage=50)
    np.testing.assert_array_equal(
        estimator.retained_samples(np.arange(10.0), 0), [5.0, 6.0, 7.0, 8.0, 9.0]
    )
    np.testing.assert_array_equal(estimator.retained_samples([3.0], 0), [3.0])

    with pytest.raises(DegenerateTraceError) as excinfo:
        estimator.retained_samples([], 4)
    assert excinfo.value.step == 4


def test_degenerate_trace_aborts_estimation():
    estimator = MarginalLikelihoodEstimator("uniform", burn_in_percentage=0)
    with pytest.raises(DegenerateTraceError) as excinfo:
        estimator.estimate([[1.0], [], [2.0]])
    assert excinfo.value.step == 1


@pytest.mark.parametrize("n_traces", [0, 1])
def test_too_few_traces(n_traces):
    with pytest.raises(ConfigurationError):
        MarginalLikelihoodEstimator().estimate([[1.0]] * n_traces)


@pytest.mark.parametrize("percentage", [-1.0, 100.0, 150.0])
def test_invalid_burn_in_percentage(percentage):
    with pytest.raises(ConfigurationError):
        MarginalLikelihoodEstimator(burn_in_percentage=percentage)


def test_diagnostics_table():
    rng = np.random.default_rng(1)
    traces = [rng.normal(size=400) for _ in range(3)]
    result = MarginalLikelihoodEstimator(
        "uniform", burn_in_percentage=0, ess_threshold=10
    ).estimate(traces)

    diagnostics = result.diagnostics
    assert diagnostics.columns.tolist() == ["step", "beta", "mean", "contribution", "ess"]
    assert diagnostics["step"].tolist() == [0, 1, 2]
    assert diagnostics["beta"].tolist() == [0.0, 0.5, 1.0]
    assert (diagnostics["ess"] > 10).all()


def test_low_effective_sample_size_warns():
    # Strongly autocorrelated chains
    rng = np.random.default_rng(2)
    traces = [np.cumsum(rng.normal(size=200)) for _ in range(2)]
    with pytest.warns(UserWarning, match="effective sample size"):
        MarginalLikelihoodEstimator("uniform", burn_in_percentage=0).estimate(traces)


def test_report_is_printed_when_not_silent(capsys):
    log_bayes_factor, diagnostics = estimate_marginal_likelihood(
        [[1.0], [2.0], [3.0], [4.0]],
        scheme="uniform",
        burn_in_percentage=0,
        silent=False,
    )
    output = capsys.readouterr().out
    assert "log Bayes factor" in output
    assert "contribution" in output
    assert log_bayes_factor == pytest.approx(-2.5)
    assert len(diagnostics) == 4


@pytest.mark.parametrize("scheme", ["uniform", "sigmoid"])
def test_contributions_sum_to_the_negated_estimate(scheme):
    rng = np.random.default_rng(3)
    traces = [rng.normal(-2.0, 0.5, size=100) for _ in range(5)]
    result = MarginalLikelihoodEstimator(scheme, burn_in_percentage=0).estimate(traces)
    contributions = result.diagnostics["contribution"].iloc[:-1]
    assert contributions.sum() == pytest.approx(-result.log_bayes_factor)

# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import os

import numpy as np
import pytest

import scipathpy as spp

from scipathpy.inference.checkpoint import PickleCheckpointStore
from scipathpy.inference.trace import read_trace


def test_identical_models_have_no_evidence_either_way(analysis_factory):
    config = spp.PathSamplingConfig(
        n_steps=4, alpha=0.0, chain_length=200, burn_in_percentage=10
    )
    sampler = spp.PathSampler(config, analysis_factory(), analysis_factory())
    result = sampler.run()

    assert sampler.merge_record.n_merged == len(sampler.model)
    assert result.log_bayes_factor == pytest.approx(0.0, abs=1e-12)
    assert all(trace.label == "diff-posterior" for trace in sampler.traces)


def test_single_model_conjugate_normal(analysis_factory):
    # Normal prior N(0, 1) on the mean and one observation y = 0 with unit
    # variance: p(y) = N(0; 0, 2), so log p(y) = -log(4 * pi) / 2
    log_evidence = -0.5 * np.log(4 * np.pi)

    spp.manual_seed(2024)
    config = spp.PathSamplingConfig(
        n_steps=11,
        alpha=0.0,
        chain_length=2000,
        pre_burn_in=200,
        burn_in_percentage=10,
        log_every=1,
        ess_threshold=0,
    )
    result = spp.PathSampler(config, analysis_factory()).run()

    # The trapezoidal accumulator is negated once
    assert result.scheme is spp.Scheme.UNIFORM
    assert result.log_bayes_factor == pytest.approx(-log_evidence, abs=0.15)
    assert len(result.diagnostics) == 11


def test_steps_and_warm_starts(analysis_factory):
    config = spp.PathSamplingConfig(
        n_steps=4, alpha=0.0, chain_length=20, pre_burn_in=5, n_parallel=2
    )
    sampler = spp.PathSampler(config, analysis_factory())
    steps = sampler.steps()

    assert [step.index for step in steps] == [0, 1, 2, 3]
    assert [step.beta for step in steps] == [0.0, 1 / 3, 2 / 3, 1.0]
    assert [step.burn_in for step in steps] == [5, 5, 0, 0]
    assert all(step.log_every == 1 for step in steps)

    # Later steps resume from the final state of an earlier one
    with pytest.raises(KeyError):
        sampler.run_step(steps[2])
    sampler.run_step(steps[0])
    final = sampler.analysis.state.snapshot()
    sampler.run_step(steps[1])
    trace = sampler.run_step(steps[2])
    assert trace.iterations[0] == 0
    expected = -0.5 * np.log(2 * np.pi) - 0.5 * final["mu"][0] ** 2
    assert trace.values[0] == pytest.approx(expected)


def test_operators_are_reset_between_steps(analysis_factory):
    config = spp.PathSamplingConfig(n_steps=2, alpha=0.0, chain_length=50)
    sampler = spp.PathSampler(config, analysis_factory())
    operator = sampler.analysis.operators[0]
    steps = sampler.steps()

    sampler.run_step(steps[0])
    assert operator.n_accepted + operator.n_rejected == 50
    sampler.run_step(steps[1])
    assert operator.n_accepted + operator.n_rejected == 50


def test_step_files_are_written(tmp_path, analysis_factory):
    config = spp.PathSamplingConfig(
        n_steps=3,
        alpha=0.0,
        chain_length=20,
        checkpoint_interval=5,
        root_dir=str(tmp_path),
    )
    sampler = spp.PathSampler(config, analysis_factory())
    sampler.run()

    for i in range(3):
        step_dir = tmp_path / f"step{i}"
        trace = read_trace(str(step_dir / "likelihood.log"), step_index=i)
        assert trace.label == "likelihood"
        assert trace.values.tolist() == pytest.approx(sampler.traces[i].values.tolist())

        iteration, snapshot = PickleCheckpointStore(str(step_dir / "state.pkl")).load()
        assert iteration == 20
        assert list(snapshot) == ["mu"]

    assert sampler.step_dir(1) == os.path.join(str(tmp_path), "step1")


def test_nothing_is_written_without_root_dir(tmp_path, analysis_factory, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = spp.PathSamplingConfig(n_steps=2, alpha=0.0, chain_length=10)
    sampler = spp.PathSampler(config, analysis_factory())
    sampler.run()
    assert sampler.step_dir(0) is None
    assert os.listdir(tmp_path) == []


def test_merge_report_when_not_silent(capsys, analysis_factory):
    config = spp.PathSamplingConfig(
        n_steps=2, alpha=0.0, chain_length=10, burn_in_percentage=0
    )
    spp.PathSampler(
        config, analysis_factory(), analysis_factory(), silent=False
    ).run()
    output = capsys.readouterr().out
    assert "Merging mu" in output
    assert "log Bayes factor" in output

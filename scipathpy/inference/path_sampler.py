# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""In-process orchestration of a complete path sampling run.

:py:class:`PathSampler` chains together the pieces of a run:

    1. The coefficients of all steps are computed from the configured schedule.
    2. For paired runs, the second analysis is merged into the first.
    3. Every step is run by a
       :py:class:`~scipathpy.inference.sampler.PowerPosteriorSampler`. The first
       ``n_parallel`` steps start from the initial state with ``pre_burn_in``
       burn-in iterations; every later step starts, without burn-in, from the
       final state of the step ``n_parallel`` positions before it.
    4. The traces of all steps are combined into a log Bayes factor by a
       :py:class:`~scipathpy.inference.estimator.MarginalLikelihoodEstimator`.

When an output directory is configured, the trace and checkpoints of step ``i``
are written to ``<root_dir>/step<i>/``.

Steps are run sequentially here. Each step only depends on the model, its
settings, and its starting state, so :py:meth:`PathSampler.run_step` can equally
be dispatched to other processes by an external scheduler.

Example:
    >>> import scipathpy as spp
    >>> config = spp.PathSamplingConfig(n_steps=11, alpha=0.0, chain_length=2000)
    >>> result = spp.PathSampler(config, analysis).run()
    >>> result.log_bayes_factor
"""

from __future__ import annotations

import os.path

from typing import Optional, TYPE_CHECKING

import numpy as np

from tqdm import tqdm

from scipathpy import utils
from scipathpy.config import PathSamplingConfig
from scipathpy.defaults import (
    CHECKPOINT_FILE,
    LIKELIHOOD_LOG_FILE,
    PAIRED_TRACE_LABEL,
    SINGLE_TRACE_LABEL,
)
from scipathpy.inference.checkpoint import PickleCheckpointStore
from scipathpy.inference.estimator import (
    MarginalLikelihoodEstimator,
    MarginalLikelihoodResult,
)
from scipathpy.inference.operator_schedule import OperatorSchedule
from scipathpy.inference.sampler import PowerPosteriorSampler, Step
from scipathpy.inference.trace import Trace, TraceWriter
from scipathpy.model.analysis import Analysis
from scipathpy.model.merge import MergeRecord, merge_analyses
from scipathpy.model.model import Model

if TYPE_CHECKING:
    from scipathpy import custom_types


class PathSampler:
    """Runs every step of a path sampling analysis and estimates the result.

    :param config: Configuration of the run
    :type config: PathSamplingConfig
    :param analysis1: The first (or only) analysis. For paired runs it receives the
        operators and state parameters of the second analysis.
    :type analysis1: Analysis
    :param analysis2: The second analysis for paired runs. Defaults to None
        (single-model run).
    :type analysis2: Optional[Analysis]
    :param silent: Whether to suppress the merge report and the diagnostic table.
        Defaults to True.
    :type silent: bool
    :param progress: Whether to display a progress bar over the steps. Defaults to
        False.
    :type progress: bool
    :param rng: Random number generator for operator selection and acceptance
        draws. Defaults to the global :py:obj:`scipathpy.RNG`.
    :type rng: Optional[np.random.Generator]

    :ivar model: The (unified) model graph
    :ivar merge_record: Record of the merge for paired runs, None otherwise
    :ivar traces: Traces of the steps run so far, ordered by step index
    """

    def __init__(
        self,
        config: PathSamplingConfig,
        analysis1: Analysis,
        analysis2: Optional[Analysis] = None,
        *,
        silent: bool = True,
        progress: bool = False,
        rng: Optional[np.random.Generator] = None,
    ):
        self.config = config
        self.analysis = analysis1
        self.silent = silent
        self.progress = progress
        self._rng = rng

        # Merge before any sampling
        self.merge_record: Optional[MergeRecord] = None
        if analysis2 is None:
            self.posterior2 = None
            self.model = Model(analysis1)
        else:
            self.model, self.merge_record = merge_analyses(
                analysis1, analysis2, silent=silent
            )
            self.posterior2 = analysis2.posterior

        self.betas = config.betas
        self.traces: list[Trace] = []
        self._initial_snapshot = analysis1.state.snapshot()
        self._final_snapshots: dict[int, "custom_types.Snapshot"] = {}

    def steps(self) -> list[Step]:
        """Build the settings of every step.

        :returns: One step per coefficient, ordered by index
        :rtype: list[Step]
        """
        return [
            Step(
                index=i,
                beta=beta,
                chain_length=self.config.chain_length,
                burn_in=self.config.pre_burn_in if i < self.config.n_parallel else 0,
                checkpoint_interval=self.config.checkpoint_interval,
                log_every=self.config.logging_interval,
            )
            for i, beta in enumerate(self.betas)
        ]

    def step_dir(self, index: "custom_types.Integer") -> Optional[str]:
        """Output directory of a step, or None if nothing is written to disk."""
        if self.config.root_dir is None:
            return None
        return utils.get_step_dir(self.config.root_dir, index)

    def _starting_snapshot(self, step: Step) -> "custom_types.Snapshot":
        """Initial state for fresh steps, otherwise the final state of an earlier one."""
        if step.index < self.config.n_parallel:
            return self._initial_snapshot
        return self._final_snapshots[step.index - self.config.n_parallel]

    def run_step(self, step: Step) -> Trace:
        """Run a single step.

        :param step: The step to run. Steps resuming from an earlier step require
            that step to have been run first.
        :type step: Step

        :returns: The trace of the step
        :rtype: Trace
        """
        state = self.analysis.state
        state.load_snapshot(self._starting_snapshot(step))
        for operator in self.analysis.operators:
            operator.reset()

        # Per-step output files
        checkpoint_store = None
        trace_writer = None
        if (step_dir := self.step_dir(step.index)) is not None:
            checkpoint_store = PickleCheckpointStore(
                os.path.join(step_dir, CHECKPOINT_FILE)
            )
            trace_writer = TraceWriter(
                os.path.join(step_dir, LIKELIHOOD_LOG_FILE),
                label=SINGLE_TRACE_LABEL
                if self.posterior2 is None
                else PAIRED_TRACE_LABEL,
            )

        sampler = PowerPosteriorSampler(
            step,
            self.analysis.posterior,
            state,
            OperatorSchedule(self.analysis.operators, rng=self._rng),
            posterior2=self.posterior2,
            checkpoint_store=checkpoint_store,
            trace_writer=trace_writer,
            rng=self._rng,
        )
        if trace_writer is None:
            trace = sampler.run()
        else:
            with trace_writer:
                trace = sampler.run()

        self._final_snapshots[step.index] = state.snapshot()
        return trace

    def run(self) -> MarginalLikelihoodResult:
        """Run every step and estimate the log Bayes factor.

        :returns: The estimate and the per-step diagnostics
        :rtype: MarginalLikelihoodResult
        """
        self.traces = []
        self._final_snapshots = {}
        for step in tqdm(
            self.steps(), desc="Path sampling", disable=not self.progress
        ):
            self.traces.append(self.run_step(step))

        estimator = MarginalLikelihoodEstimator(
            scheme=self.config.scheme,
            alpha=self.config.alpha,
            burn_in_percentage=self.config.burn_in_percentage,
            ess_threshold=self.config.ess_threshold,
        )
        return estimator.estimate(self.traces, silent=self.silent)

# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Annealed Metropolis-Hastings sampling of a single step of the path.

Each step of a path sampling run draws from a power posterior: an interpolation,
controlled by the coefficient ``beta`` of the step, between a reference and a
target distribution.

    - For paired runs the annealed log density is
      ``(1 - beta) * log p1 + beta * log p2``, where ``p1`` and ``p2`` are the
      posteriors of the two models, and the diagnostic value recorded is
      ``log p1 - log p2``.
    - For single-model runs the annealed log density is
      ``log prior + beta * log likelihood``, and the diagnostic value recorded is
      the log-likelihood.

The chain runs ``burn_in`` iterations (numbered from ``-burn_in``) followed by
``chain_length`` iterations. Records are kept for burn-in iterations as well;
discarding them is left to the estimator. A step is a pure function of the
model, its coefficient, and its chain settings, so steps can be run in any order
and in any process.

Example:
    >>> step = Step(index=0, beta=0.5, chain_length=1000, burn_in=100)
    >>> sampler = PowerPosteriorSampler(
    ...     step, analysis.posterior, analysis.state, OperatorSchedule(analysis.operators)
    ... )
    >>> trace = sampler.run()
"""

from __future__ import annotations

import warnings

from typing import Callable, Optional, TYPE_CHECKING

import numpy as np

from tqdm import tqdm

import scipathpy

from scipathpy.defaults import PAIRED_TRACE_LABEL, SINGLE_TRACE_LABEL
from scipathpy.exceptions import ConfigurationError
from scipathpy.inference.checkpoint import CheckpointStore
from scipathpy.inference.operator_schedule import OperatorSchedule
from scipathpy.inference.trace import Trace, TraceWriter
from scipathpy.model.components.distributions import CompoundDistribution, Distribution
from scipathpy.model.components.operators import Operator
from scipathpy.model.state import State

if TYPE_CHECKING:
    from scipathpy import custom_types


def _weighted(log_p: float, weight: float) -> float:
    """Scale a log density, treating a zero weight as removing the term."""
    return 0.0 if weight == 0 else weight * log_p


class Step:
    """One point on the interpolation path.

    :param index: Index of the step along the path
    :type index: custom_types.Integer
    :param beta: Interpolation coefficient, in ``[0, 1]``
    :type beta: custom_types.Float
    :param chain_length: Number of iterations run after burn-in
    :type chain_length: custom_types.Integer
    :param burn_in: Number of burn-in iterations. Must not exceed
        ``chain_length``. Defaults to 0.
    :type burn_in: custom_types.Integer
    :param checkpoint_interval: Number of iterations between two checkpoints. 0
        disables checkpointing. Defaults to 0.
    :type checkpoint_interval: custom_types.Integer
    :param log_every: Number of iterations between two trace records. Defaults
        to 1.
    :type log_every: custom_types.Integer

    :raises ConfigurationError: If any of the values is out of range
    """

    def __init__(
        self,
        index: "custom_types.Integer",
        beta: "custom_types.Float",
        chain_length: "custom_types.Integer",
        burn_in: "custom_types.Integer" = 0,
        checkpoint_interval: "custom_types.Integer" = 0,
        log_every: "custom_types.Integer" = 1,
    ):
        # Integer settings must be non-negative integers
        for name, value in (
            ("index", index),
            ("chain_length", chain_length),
            ("burn_in", burn_in),
            ("checkpoint_interval", checkpoint_interval),
            ("log_every", log_every),
        ):
            if not isinstance(value, (int, np.integer)) or isinstance(value, bool):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}")
            if value < 0:
                raise ConfigurationError(f"{name} must be non-negative, got {value}")

        # Check ranges
        if not 0 <= beta <= 1:
            raise ConfigurationError(f"beta must be in [0, 1], got {beta}")
        if burn_in > chain_length:
            raise ConfigurationError(
                f"Burn-in ({burn_in}) must not exceed the chain length ({chain_length})"
            )
        if log_every < 1:
            raise ConfigurationError("log_every must be at least 1")

        self.index = int(index)
        self.beta = float(beta)
        self.chain_length = int(chain_length)
        self.burn_in = int(burn_in)
        self.checkpoint_interval = int(checkpoint_interval)
        self.log_every = int(log_every)

    def __repr__(self) -> str:
        return (
            f"Step(index={self.index}, beta={self.beta}, "
            f"chain_length={self.chain_length}, burn_in={self.burn_in}, "
            f"checkpoint_interval={self.checkpoint_interval}, "
            f"log_every={self.log_every})"
        )


class PowerPosteriorSampler:
    """Runs the annealed chain of one step and records its diagnostic trace.

    :param step: The step to run
    :type step: Step
    :param posterior: Posterior of the first model. For single-model runs, a
        :py:class:`~scipathpy.model.components.distributions.CompoundDistribution`
        whose last child is the likelihood.
    :type posterior: Distribution
    :param state: The state explored. The sampler owns it for the duration of the
        run.
    :type state: State
    :param operator_schedule: Policy selecting the operator of every iteration
    :type operator_schedule: OperatorSchedule
    :param posterior2: Posterior of the second model for paired runs. Defaults to
        None (single-model run).
    :type posterior2: Optional[Distribution]
    :param checkpoint_store: Durable storage of the periodic checkpoints. Defaults
        to None.
    :type checkpoint_store: Optional[CheckpointStore]
    :param trace_writer: Writer receiving every trace record as it is produced.
        Must be open. Defaults to None.
    :type trace_writer: Optional[TraceWriter]
    :param user_callback: Called with the iteration number at the end of every
        iteration. Defaults to None.
    :type user_callback: Optional[Callable]
    :param rng: Random number generator for the acceptance draws. Defaults to
        the global :py:obj:`scipathpy.RNG`.
    :type rng: Optional[np.random.Generator]
    :param progress: Whether to display a progress bar. Defaults to False.
    :type progress: bool
    """

    def __init__(
        self,
        step: Step,
        posterior: Distribution,
        state: State,
        operator_schedule: OperatorSchedule,
        *,
        posterior2: Optional[Distribution] = None,
        checkpoint_store: Optional[CheckpointStore] = None,
        trace_writer: Optional[TraceWriter] = None,
        user_callback: Optional[Callable] = None,
        rng: Optional[np.random.Generator] = None,
        progress: bool = False,
    ):
        self.step = step
        self.posterior = posterior
        self.posterior2 = posterior2
        self.state = state
        self.operator_schedule = operator_schedule
        self.checkpoint_store = checkpoint_store
        self.trace_writer = trace_writer
        self.user_callback = user_callback
        self.progress = progress
        self._rng = rng

        # Single-model runs anneal the likelihood only
        if posterior2 is None and isinstance(posterior, CompoundDistribution):
            self._likelihood = posterior.likelihood
        else:
            self._likelihood = posterior

    @property
    def is_paired(self) -> bool:
        """Whether the run interpolates between two models."""
        return self.posterior2 is not None

    @property
    def label(self) -> str:
        """Name of the diagnostic value."""
        return PAIRED_TRACE_LABEL if self.is_paired else SINGLE_TRACE_LABEL

    def _get_rng(self) -> np.random.Generator:
        return scipathpy.RNG if self._rng is None else self._rng

    def annealed_log_p(self) -> float:
        """Recompute the annealed log density of the current state.

        :returns: The annealed log density
        :rtype: float
        """
        beta = self.step.beta

        # Geometric interpolation between the two posteriors
        if self.is_paired:
            log_p1 = self.posterior.calculate_log_p()
            log_p2 = self.posterior2.calculate_log_p()
            return _weighted(log_p1, 1.0 - beta) + _weighted(log_p2, beta)

        # Power posterior
        self.posterior.calculate_log_p()
        if self._likelihood is self.posterior:
            prior = 0.0
        else:
            prior = self.posterior.prior_log_p
        return float(prior + _weighted(self._likelihood.current_log_p, beta))

    def diagnostic_value(self) -> float:
        """The value recorded in the trace for the current state.

        :returns: The difference of the two cached posterior log densities for
            paired runs, or the cached log-likelihood for single-model runs
        :rtype: float
        """
        if self.is_paired:
            return self.posterior.current_log_p - self.posterior2.current_log_p
        return self._likelihood.current_log_p

    def _make_evaluator(
        self, operator: Operator, iteration: "custom_types.Integer"
    ) -> Optional[Callable[[], float]]:
        """Build the auxiliary evaluation callback of an operator, if it needs one.

        The callback evaluates the evaluator distribution of the operator and then
        returns the state and calculation nodes to the snapshot of the iteration.
        """
        distribution = operator.get_evaluator_distribution()
        if distribution is None:
            return None

        def evaluator() -> float:
            self.state.store_calculation_nodes()
            self.state.check_calculation_nodes_dirtiness()
            log_p = distribution.calculate_log_p()
            self.state.restore_calculation_nodes()
            self.state.restore()
            self.state.store(iteration)
            return log_p

        return evaluator

    def _log(self, trace: Trace, iteration: "custom_types.Integer") -> None:
        value = self.diagnostic_value()
        trace.append(iteration, value)
        if self.trace_writer is not None:
            self.trace_writer.write(iteration, value)

    def run(self) -> Trace:
        """Run the chain of the step.

        :returns: The diagnostic trace of the step, burn-in records included
        :rtype: Trace
        """
        step = self.step
        state = self.state
        rng = self._get_rng()

        # Warn about settings that cannot be honored
        if step.checkpoint_interval > 0 and self.checkpoint_store is None:
            warnings.warn(
                f"Checkpointing every {step.checkpoint_interval} iterations was "
                "requested, but no checkpoint store was given. No checkpoints will "
                "be written."
            )

        # Evaluate the initial state
        posteriors = [self.posterior]
        if self.is_paired:
            posteriors.append(self.posterior2)
        state.initialise(*posteriors)
        old_log_p = self.annealed_log_p()
        state.set_everything_dirty(False)
        if not np.isfinite(old_log_p):
            warnings.warn(
                f"The initial annealed log density of step {step.index} is "
                f"{old_log_p}. Sampling may not mix until a finite state is found."
            )

        # The first record is always kept
        trace = Trace(step.index, step.beta, self.label)
        self._log(trace, -step.burn_in)

        for iteration in tqdm(
            range(-step.burn_in + 1, step.chain_length + 1),
            desc=f"Step {step.index}",
            disable=not self.progress,
            smoothing=1.0,
        ):
            # Snapshot and checkpoint
            state.store(iteration)
            if (
                self.checkpoint_store is not None
                and step.checkpoint_interval > 0
                and iteration > 0
                and iteration % step.checkpoint_interval == 0
            ):
                self.checkpoint_store.save(iteration, state.snapshot())

            # Propose
            operator = self.operator_schedule.select_operator()
            state.store_calculation_nodes()
            log_hastings_ratio = operator.proposal(
                self._make_evaluator(operator, iteration)
            )
            bookkeeping = iteration >= 0

            # Impossible moves are rejected outright
            if log_hastings_ratio == -np.inf:
                state.restore()
                state.restore_calculation_nodes()
                if bookkeeping:
                    operator.reject()
                log_alpha = -np.inf

            # Otherwise, Metropolis-Hastings
            else:
                state.check_calculation_nodes_dirtiness()
                new_log_p = self.annealed_log_p()
                log_alpha = new_log_p - old_log_p + log_hastings_ratio
                if log_alpha >= 0 or rng.uniform() < np.exp(log_alpha):
                    old_log_p = new_log_p
                    state.accept()
                    state.accept_calculation_nodes()
                    if bookkeeping:
                        operator.accept()
                else:
                    state.restore()
                    state.restore_calculation_nodes()
                    if bookkeeping:
                        operator.reject()

            # Record, tune, and report
            if iteration % step.log_every == 0:
                self._log(trace, iteration)
            operator.optimize(log_alpha)
            if self.user_callback is not None:
                self.user_callback(iteration)

        return trace

# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Proposal operators for SciPathPy models.

Operators are the proposal mechanisms that move the state of a model during
sampling. Every operator exposes the same lifecycle to the sampler:

    1. :py:meth:`Operator.proposal` changes the state in place and returns the
       log Hastings ratio of the move. Negative infinity marks an impossible move.
    2. :py:meth:`Operator.accept` or :py:meth:`Operator.reject` records the
       outcome.
    3. :py:meth:`Operator.optimize` receives the realized acceptance log-ratio and
       tunes the operator toward a target acceptance probability.

An operator may also declare an auxiliary evaluator distribution. When it does,
the sampler passes a callable to :py:meth:`Operator.proposal` that evaluates the
log density of that distribution for the proposed state without leaking into
the accepted state.

New kernels are added by subclassing :py:class:`Operator` and implementing
:py:meth:`Operator._proposal`; two kernels are provided here.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Callable, Optional, TYPE_CHECKING

import numpy as np

import scipathpy

from scipathpy.defaults import (
    DEFAULT_SCALE_FACTOR,
    DEFAULT_TARGET_ACCEPTANCE,
    DEFAULT_WINDOW_SIZE,
)
from scipathpy.model.components import abstract_model_component
from scipathpy.model.components.distributions import Distribution
from scipathpy.model.components.parameters import RealParameter

if TYPE_CHECKING:
    from scipathpy import custom_types

InputKind = abstract_model_component.InputKind
InputSpec = abstract_model_component.InputSpec


class Operator(abstract_model_component.AbstractModelComponent):
    """Base class for proposal operators.

    :param parameter: The state parameter moved by the operator
    :type parameter: RealParameter
    :param weight: Relative probability of selecting the operator. Defaults to 1.0.
    :type weight: custom_types.Float
    :param evaluator: Optional auxiliary distribution evaluated during proposals.
        Defaults to None.
    :type evaluator: Optional[Distribution]
    :param rng: Random number generator. Defaults to the global
        :py:obj:`scipathpy.RNG`.
    :type rng: Optional[np.random.Generator]

    :ivar n_accepted: Number of accepted proposals
    :ivar n_rejected: Number of rejected proposals
    """

    INPUTS = (
        InputSpec("parameter", InputKind.NODE),
        InputSpec("weight", InputKind.SCALAR, 1.0),
        InputSpec("evaluator", InputKind.NODE),
    )

    TARGET_ACCEPTANCE: float = DEFAULT_TARGET_ACCEPTANCE
    """Acceptance probability that the operator is tuned toward."""

    def __init__(self, rng: Optional[np.random.Generator] = None, **kwargs):
        super().__init__(**kwargs)

        # Check the inputs
        if not isinstance(self.get_input("parameter"), RealParameter):
            raise TypeError(f"{self.type_name} must operate on a RealParameter")
        if self.weight < 0:
            raise ValueError("Operator weights must be non-negative")
        evaluator = self.get_input("evaluator")
        if evaluator is not None and not isinstance(evaluator, Distribution):
            raise TypeError("The evaluator of an operator must be a distribution")

        # Bookkeeping
        self._rng = rng
        self.n_accepted: int = 0
        self.n_rejected: int = 0

    def get_rng(self) -> np.random.Generator:
        """Get the random number generator used for proposals.

        :returns: The generator given at construction, or the global
            :py:obj:`scipathpy.RNG` if none was given
        :rtype: np.random.Generator
        """
        if self._rng is None:
            return scipathpy.RNG
        return self._rng

    @abstractmethod
    def _proposal(self, evaluator: Optional[Callable[[], float]]) -> float:
        """Change the state in place and return the log Hastings ratio."""

    def proposal(self, evaluator: Optional[Callable[[], float]] = None) -> float:
        """Propose a move of the state.

        :param evaluator: Callable returning the log density of the evaluator
            distribution for the current (proposed) state. Only provided when the
            operator declares an evaluator distribution.
        :type evaluator: Optional[Callable[[], float]]

        :returns: The log Hastings ratio of the move, or negative infinity if the
            move must be rejected
        :rtype: float
        """
        return float(self._proposal(evaluator))

    def accept(self) -> None:
        """Record an accepted proposal."""
        self.n_accepted += 1

    def reject(self) -> None:
        """Record a rejected proposal."""
        self.n_rejected += 1

    def calc_delta(self, log_alpha: "custom_types.Float") -> float:
        """Calculate the tuning step for a realized acceptance log-ratio.

        The step shrinks as the number of recorded proposals grows, and is positive
        when the acceptance probability exceeds the target.

        :param log_alpha: Realized acceptance log-ratio
        :type log_alpha: custom_types.Float

        :returns: The tuning step
        :rtype: float
        """
        count = self.n_accepted + self.n_rejected + 1
        delta = (np.exp(min(log_alpha, 0.0)) - self.TARGET_ACCEPTANCE) / count
        return float(delta) if np.isfinite(delta) else 0.0

    def optimize(self, log_alpha: "custom_types.Float") -> None:
        """Tune the operator. The base operator is not tunable.

        :param log_alpha: Realized acceptance log-ratio
        :type log_alpha: custom_types.Float
        """

    def reset(self) -> None:
        """Clear the acceptance counters and return tunables to their inputs."""
        self.n_accepted = 0
        self.n_rejected = 0

    def get_evaluator_distribution(self) -> Optional[Distribution]:
        """The auxiliary distribution evaluated during proposals, if any."""
        return self.get_input("evaluator")

    @property
    def parameter(self) -> RealParameter:
        """The state parameter moved by the operator."""
        return self.get_input("parameter")

    @property
    def weight(self) -> float:
        """Relative probability of selecting the operator."""
        return float(self.get_input("weight"))

    @property
    def acceptance_rate(self) -> float:
        """Fraction of recorded proposals that were accepted."""
        total = self.n_accepted + self.n_rejected
        return self.n_accepted / total if total else float("nan")


class RandomWalkOperator(Operator):
    """Adds a random perturbation to one element of a parameter.

    :param window_size: Half-width of the uniform perturbation, or standard
        deviation of the Gaussian one. Tuned during sampling. Defaults to
        ``DEFAULT_WINDOW_SIZE``.
    :type window_size: custom_types.Float
    :param use_gaussian: Whether to draw Gaussian perturbations. Defaults to False.
    :type use_gaussian: bool
    """

    INPUTS = Operator.INPUTS + (
        InputSpec("window_size", InputKind.SCALAR, DEFAULT_WINDOW_SIZE),
        InputSpec("use_gaussian", InputKind.SCALAR, False),
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.get_input("window_size") <= 0:
            raise ValueError("Window size must be positive")
        self.window_size: float = float(self.get_input("window_size"))

    def reset(self):
        super().reset()
        self.window_size = float(self.get_input("window_size"))

    def _proposal(self, evaluator):
        rng = self.get_rng()
        parameter = self.parameter
        index = rng.integers(parameter.dimension)

        # Draw the perturbation
        if self.get_input("use_gaussian"):
            shift = rng.normal(0.0, self.window_size)
        else:
            shift = rng.uniform(-self.window_size, self.window_size)

        # Moves out of bounds are impossible
        values = parameter.values.copy()
        values[index] += shift
        if not parameter.in_bounds(values):
            return -np.inf
        parameter.values = values
        return 0.0

    def optimize(self, log_alpha):
        delta = self.calc_delta(log_alpha) + np.log(self.window_size)
        self.window_size = float(np.exp(delta))


class ScaleOperator(Operator):
    """Multiplies one element of a parameter by a random scale.

    The scale is drawn uniformly from ``[f, 1 / f]`` where ``f`` is the scale
    factor, which is tuned during sampling.

    :param scale_factor: Scale factor in ``(0, 1)``. Defaults to
        ``DEFAULT_SCALE_FACTOR``.
    :type scale_factor: custom_types.Float
    """

    INPUTS = Operator.INPUTS + (
        InputSpec("scale_factor", InputKind.SCALAR, DEFAULT_SCALE_FACTOR),
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if not 0 < self.get_input("scale_factor") < 1:
            raise ValueError("Scale factor must be in (0, 1)")
        self.scale_factor: float = float(self.get_input("scale_factor"))

    def reset(self):
        super().reset()
        self.scale_factor = float(self.get_input("scale_factor"))

    def _proposal(self, evaluator):
        rng = self.get_rng()
        parameter = self.parameter
        index = rng.integers(parameter.dimension)

        # Draw the scale
        scale = self.scale_factor + rng.uniform() * (
            1 / self.scale_factor - self.scale_factor
        )

        # Moves out of bounds are impossible
        values = parameter.values.copy()
        values[index] *= scale
        if not parameter.in_bounds(values):
            return -np.inf
        parameter.values = values
        return -np.log(scale)

    def optimize(self, log_alpha):
        delta = self.calc_delta(log_alpha) + np.log(1 / self.scale_factor - 1)
        self.scale_factor = float(1 / (np.exp(delta) + 1))

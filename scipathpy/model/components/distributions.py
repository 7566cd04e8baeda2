# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Probability distributions for SciPathPy models.

Distributions are the calculation nodes of a SciPathPy model graph. Each
distribution evaluates the log density of its ``x`` input (a state parameter or
constant data) given its parameter inputs, and caches the result so that the
sampler can store, restore, and accept it alongside the state.

Log densities are evaluated with the corresponding SciPy distribution. Parameter
names and parametrizations can differ between SciPathPy and SciPy; the
``PARAM_TO_SCIPY_NAMES`` and ``PARAM_TO_SCIPY_TRANSFORMS`` class variables map
between the two.

Available Distributions
-----------------------
- :py:class:`~scipathpy.model.components.distributions.Normal`
- :py:class:`~scipathpy.model.components.distributions.LogNormal`
- :py:class:`~scipathpy.model.components.distributions.Exponential`
- :py:class:`~scipathpy.model.components.distributions.Uniform`
- :py:class:`~scipathpy.model.components.distributions.CompoundDistribution`

A posterior is a :py:class:`CompoundDistribution` whose last child is, by
convention, the likelihood and whose other children form the prior.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Callable, Optional, TYPE_CHECKING

import numpy as np
import numpy.typing as npt

from scipy import stats

from scipathpy.model.components import abstract_model_component

if TYPE_CHECKING:
    from scipathpy import custom_types

InputKind = abstract_model_component.InputKind
InputSpec = abstract_model_component.InputSpec


def _inverse_transform(x: npt.NDArray[np.floating]) -> npt.NDArray[np.floating]:
    return 1 / x


def _exp_transform(x: npt.NDArray[np.floating]) -> npt.NDArray[np.floating]:
    return np.exp(x)


def _node_values(
    node: abstract_model_component.AbstractModelComponent,
) -> npt.NDArray[np.floating]:
    """Get the current values of a data-carrying node."""
    try:
        return node.values
    except AttributeError as error:
        raise TypeError(
            f"{node} does not carry values and cannot be used as a distribution input"
        ) from error


class Distribution(abstract_model_component.AbstractModelComponent):
    """Base class for calculation nodes that evaluate a log density.

    The log density is cached: :py:meth:`calculate_log_p` recomputes it,
    :py:attr:`current_log_p` returns the cached value, and :py:meth:`store`,
    :py:meth:`restore`, and :py:meth:`accept` keep the cache in step with the
    state during a proposal.
    """

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._log_p: Optional[float] = None
        self._stored_log_p: Optional[float] = None
        self._dirty: bool = True

    @abstractmethod
    def _calculate_log_p(self) -> float:
        """Evaluate the log density from the current inputs."""

    def calculate_log_p(self) -> float:
        """Recompute the log density and cache it.

        :returns: The log density of the current inputs
        :rtype: float
        """
        self._log_p = float(self._calculate_log_p())
        self._dirty = False
        return self._log_p

    @property
    def current_log_p(self) -> float:
        """The cached log density, computed on first access."""
        if self._log_p is None:
            return self.calculate_log_p()
        return self._log_p

    def store(self) -> None:
        """Keep the cached log density so that it can be restored."""
        self._stored_log_p = self._log_p

    def restore(self) -> None:
        """Return to the log density kept by the last call to :py:meth:`store`."""
        self._log_p = self._stored_log_p
        self._dirty = False

    def accept(self) -> None:
        """Make the current log density the one that is restored."""
        self._stored_log_p = self._log_p
        self._dirty = False

    def mark_dirty(self) -> None:
        """Flag the cached log density as needing recomputation."""
        self._dirty = True

    @property
    def is_dirty(self) -> bool:
        """Whether the cached log density needs to be recomputed."""
        return self._dirty


class ScipyDistribution(Distribution):
    """A distribution whose log density is evaluated by SciPy.

    :cvar SCIPY_DIST: Corresponding SciPy distribution (e.g., ``scipy.stats.norm``)
    :cvar PARAM_TO_SCIPY_NAMES: Maps parameter input names to SciPy argument names
    :cvar PARAM_TO_SCIPY_TRANSFORMS: Functions converting parameter values to the
        SciPy parametrization
    """

    SCIPY_DIST: Optional[stats.rv_continuous] = None
    """Corresponding SciPy distribution."""

    PARAM_TO_SCIPY_NAMES: dict[str, str] = {}
    """Maps parameter input names to SciPy argument names."""

    PARAM_TO_SCIPY_TRANSFORMS: dict[
        str, Callable[[npt.NDArray[np.floating]], npt.NDArray[np.floating]]
    ] = {}
    """Converts parameter values to the SciPy parametrization."""

    def __init__(self, **kwargs):
        # All parameters must be given
        if missing_params := self.PARAM_TO_SCIPY_NAMES.keys() - set(kwargs.keys()):
            raise TypeError(
                f"Missing parameters {missing_params} for {self.__class__.__name__}."
            )
        super().__init__(**kwargs)

    def _scipy_kwargs(self) -> dict[str, npt.NDArray[np.floating]]:
        """Collect the parameter values, renamed and transformed for SciPy."""
        return {
            scipy_name: self.PARAM_TO_SCIPY_TRANSFORMS.get(name, lambda x: x)(
                _node_values(self.get_input(name))
            )
            for name, scipy_name in self.PARAM_TO_SCIPY_NAMES.items()
        }

    def _calculate_log_p(self) -> float:
        x = _node_values(self.get_input("x"))
        return float(np.sum(self.SCIPY_DIST.logpdf(x, **self._scipy_kwargs())))


class Normal(ScipyDistribution):
    r"""Normal distribution.

    :param x: The values whose density is evaluated
    :param mu: Location parameter
    :param sigma: Scale parameter

    .. math::
        P(x | \mu, \sigma) = \frac{1}{\sigma\sqrt{2\pi}}
        e^{-\frac{1}{2}\left(\frac{x-\mu}{\sigma}\right)^2}
    """

    INPUTS = (
        InputSpec("x", InputKind.NODE),
        InputSpec("mu", InputKind.NODE),
        InputSpec("sigma", InputKind.NODE),
    )
    SCIPY_DIST = stats.norm
    PARAM_TO_SCIPY_NAMES = {"mu": "loc", "sigma": "scale"}


class LogNormal(ScipyDistribution):
    r"""Log-normal distribution.

    :param x: The values whose density is evaluated
    :param mu: Mean of the logarithm of ``x``
    :param sigma: Standard deviation of the logarithm of ``x``
    """

    INPUTS = (
        InputSpec("x", InputKind.NODE),
        InputSpec("mu", InputKind.NODE),
        InputSpec("sigma", InputKind.NODE),
    )
    SCIPY_DIST = stats.lognorm
    PARAM_TO_SCIPY_NAMES = {"mu": "scale", "sigma": "s"}
    PARAM_TO_SCIPY_TRANSFORMS = {"mu": _exp_transform}


class Exponential(ScipyDistribution):
    r"""Exponential distribution with rate parameter beta.

    :param x: The values whose density is evaluated
    :param beta: Rate parameter

    .. math::
        P(x | \beta) = \beta e^{-\beta x} \text{ for } x \geq 0
    """

    INPUTS = (
        InputSpec("x", InputKind.NODE),
        InputSpec("beta", InputKind.NODE),
    )
    SCIPY_DIST = stats.expon
    PARAM_TO_SCIPY_NAMES = {"beta": "scale"}
    PARAM_TO_SCIPY_TRANSFORMS = {"beta": _inverse_transform}


class Uniform(ScipyDistribution):
    """Uniform distribution over ``[lower, upper]``.

    :param x: The values whose density is evaluated
    :param lower: Lower end of the support
    :param upper: Upper end of the support
    """

    INPUTS = (
        InputSpec("x", InputKind.NODE),
        InputSpec("lower", InputKind.NODE),
        InputSpec("upper", InputKind.NODE),
    )
    SCIPY_DIST = stats.uniform
    PARAM_TO_SCIPY_NAMES = {"lower": "loc", "upper": "scale"}

    def _scipy_kwargs(self) -> dict[str, npt.NDArray[np.floating]]:
        # SciPy parametrizes by location and width
        lower = _node_values(self.get_input("lower"))
        upper = _node_values(self.get_input("upper"))
        return {"loc": lower, "scale": upper - lower}


class CompoundDistribution(Distribution):
    """The product of several distributions, evaluated as a sum of log densities.

    :param distributions: The component distributions. When the compound is used
        as a posterior, the last one is the likelihood.
    :type distributions: list[Distribution]
    """

    INPUTS = (InputSpec("distributions", InputKind.LIST),)

    def __init__(self, distributions=None, **kwargs):
        super().__init__(distributions=distributions, **kwargs)
        if not all(
            isinstance(d, Distribution) for d in self.get_input("distributions")
        ):
            raise TypeError(f"All elements of {self} must be distributions")

    def _calculate_log_p(self) -> float:
        return sum(d.calculate_log_p() for d in self.distributions)

    @property
    def distributions(self) -> list[Distribution]:
        """The component distributions."""
        return list(self.get_input("distributions"))

    @property
    def likelihood(self) -> Distribution:
        """The likelihood: the last component distribution."""
        if not (distributions := self.distributions):
            raise ValueError(f"{self} has no component distributions")
        return distributions[-1]

    @property
    def prior_log_p(self) -> "custom_types.Float":
        """Sum of the cached log densities of all but the last component."""
        return sum(d.current_log_p for d in self.distributions[:-1])

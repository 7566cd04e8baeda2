# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

r"""Estimation of log Bayes factors from the traces of a path sampling run.

The traces of all steps are combined by numerical quadrature over the path. The
quadrature rule follows the scheme used to place the steps:

    - **uniform**: trapezoidal integration of the mean diagnostic value,

      .. math::

          \log BF = -\frac{1}{2(n - 1)} \sum_{i=0}^{n-2} (\bar{d}_i + \bar{d}_{i+1})

    - **sigmoid**: stepping-stone estimation. For every pair of adjacent steps
      with coefficient difference :math:`w_i = \beta_{i+1} - \beta_i`, the
      contribution of the pair is

      .. math::

          w_i d^{\max}_i + \log \frac{1}{m} \sum_{j=1}^{m}
          e^{w_i (d_{ij} - d^{\max}_i)}

      where :math:`d_{ij}` are the retained samples of step :math:`i`, and the log
      Bayes factor is the negated sum of the contributions.

All aggregation happens in log space; the log-mean-exp subtracts the maximum so
that large sample magnitudes never overflow.

Example:
    >>> from scipathpy.inference.estimator import MarginalLikelihoodEstimator
    >>> estimator = MarginalLikelihoodEstimator("uniform", burn_in_percentage=0)
    >>> result = estimator.estimate([[1.0], [2.0], [3.0], [4.0]])
    >>> round(result.log_bayes_factor, 6)
    -2.5
"""

from __future__ import annotations

import warnings

from typing import Sequence, TYPE_CHECKING, Union

import numpy as np
import numpy.typing as npt
import pandas as pd

from scipathpy import utils
from scipathpy.defaults import (
    DEFAULT_ALPHA,
    DEFAULT_BURN_IN_PERCENTAGE,
    DEFAULT_ESS_THRESH,
    DEFAULT_SCHEME,
)
from scipathpy.exceptions import ConfigurationError, DegenerateTraceError
from scipathpy.inference.trace import Trace
from scipathpy.schedule import Scheme, beta_schedule, resolve_scheme

if TYPE_CHECKING:
    from scipathpy import custom_types


class MarginalLikelihoodResult:
    """Outcome of a marginal likelihood estimation.

    :param log_bayes_factor: The estimated log Bayes factor
    :type log_bayes_factor: float
    :param diagnostics: One row per step with the columns ``step``, ``beta``,
        ``mean``, ``contribution``, and ``ess``. The contribution of a step is that
        of the pair it opens, so the last step has none. Contributions are given
        before the final negation: the log Bayes factor is minus their sum.
    :type diagnostics: pd.DataFrame
    :param scheme: The quadrature scheme used
    :type scheme: Scheme
    """

    def __init__(
        self, log_bayes_factor: float, diagnostics: pd.DataFrame, scheme: Scheme
    ):
        self.log_bayes_factor = log_bayes_factor
        self.diagnostics = diagnostics
        self.scheme = scheme

    def __repr__(self) -> str:
        return (
            f"MarginalLikelihoodResult(log_bayes_factor={self.log_bayes_factor}, "
            f"scheme={self.scheme.value}, n_steps={len(self.diagnostics)})"
        )


class MarginalLikelihoodEstimator:
    """Combines per-step traces into a log Bayes factor estimate.

    :param scheme: Scheme used to place the steps. Defaults to ``DEFAULT_SCHEME``.
    :type scheme: Union[Scheme, str]
    :param alpha: Steepness of the sigmoid schedule. Values <= 0 select the
        uniform rule. Defaults to ``DEFAULT_ALPHA``.
    :type alpha: custom_types.Float
    :param burn_in_percentage: Percentage of each trace discarded as burn-in, in
        ``[0, 100)``. Defaults to ``DEFAULT_BURN_IN_PERCENTAGE``.
    :type burn_in_percentage: custom_types.Float
    :param ess_threshold: Steps with fewer effective samples are reported with a
        warning. Defaults to ``DEFAULT_ESS_THRESH``.
    :type ess_threshold: custom_types.Float

    :raises ConfigurationError: If the scheme is unknown or the burn-in percentage
        is out of range
    """

    def __init__(
        self,
        scheme: Union[Scheme, str] = DEFAULT_SCHEME,
        alpha: "custom_types.Float" = DEFAULT_ALPHA,
        burn_in_percentage: "custom_types.Float" = DEFAULT_BURN_IN_PERCENTAGE,
        ess_threshold: "custom_types.Float" = DEFAULT_ESS_THRESH,
    ):
        if not 0 <= burn_in_percentage < 100:
            raise ConfigurationError(
                f"Burn-in percentage must be in [0, 100), got {burn_in_percentage}"
            )
        self.scheme = resolve_scheme(scheme, alpha)
        self.alpha = alpha
        self.burn_in_percentage = burn_in_percentage
        self.ess_threshold = ess_threshold

    def retained_samples(
        self,
        trace: "custom_types.TraceLike",
        step: "custom_types.Integer",
    ) -> npt.NDArray[np.floating]:
        """Discard the burn-in of a trace.

        :param trace: The trace, or its diagnostic values
        :type trace: custom_types.TraceLike
        :param step: Index of the step, for error reporting
        :type step: custom_types.Integer

        :returns: The samples kept for estimation
        :rtype: npt.NDArray[np.floating]

        :raises DegenerateTraceError: If no sample is left
        """
        values = trace.values if isinstance(trace, Trace) else trace
        values = np.asarray(values, dtype=np.float64).ravel()
        n_discarded = int(len(values) * self.burn_in_percentage / 100)
        if len(retained := values[n_discarded:]) == 0:
            raise DegenerateTraceError(step)
        return retained

    def _uniform_contributions(self, means: list[float]) -> list[float]:
        """Trapezoidal contribution of every pair of adjacent steps."""
        n = len(means)
        return [(means[i] + means[i + 1]) / (2 * (n - 1)) for i in range(n - 1)]

    def _sigmoid_contributions(
        self, samples: list[npt.NDArray[np.floating]], betas: list[float]
    ) -> list[float]:
        """Stepping-stone contribution of every pair of adjacent steps."""
        contributions = []
        for i in range(len(samples) - 1):
            weight = betas[i + 1] - betas[i]
            log_l_max = np.max(samples[i])
            contributions.append(
                float(
                    weight * log_l_max
                    + utils.log_mean_exp(weight * (samples[i] - log_l_max))
                )
            )
        return contributions

    def estimate(
        self,
        traces: Sequence["custom_types.TraceLike"],
        silent: bool = True,
    ) -> MarginalLikelihoodResult:
        """Estimate the log Bayes factor from the traces of all steps.

        :param traces: The traces of all steps, ordered by step index. Either
            :py:class:`~scipathpy.inference.trace.Trace` instances or arrays of
            diagnostic values.
        :type traces: Sequence[custom_types.TraceLike]
        :param silent: Whether to suppress printing the diagnostic table. Defaults
            to True.
        :type silent: bool

        :returns: The estimate and the per-step diagnostics
        :rtype: MarginalLikelihoodResult

        :raises ConfigurationError: If fewer than two traces are given
        :raises DegenerateTraceError: If a trace holds no samples after burn-in
        """
        if (n_steps := len(traces)) < 2:
            raise ConfigurationError(f"At least 2 traces are required, got {n_steps}")

        # Preprocess
        samples = [self.retained_samples(trace, i) for i, trace in enumerate(traces)]
        means = [float(np.mean(s)) for s in samples]
        ess = [utils.effective_sample_size(s) for s in samples]
        betas = beta_schedule(n_steps, self.scheme, self.alpha)

        # Quadrature
        if self.scheme is Scheme.UNIFORM:
            contributions = self._uniform_contributions(means)
        else:
            contributions = self._sigmoid_contributions(samples, betas)
        log_bayes_factor = -float(np.sum(contributions))

        # Report
        diagnostics = pd.DataFrame(
            {
                "step": np.arange(n_steps),
                "beta": betas,
                "mean": means,
                "contribution": contributions + [np.nan],
                "ess": ess,
            }
        )
        if low_ess := [
            i for i, value in enumerate(ess) if value < self.ess_threshold
        ]:
            warnings.warn(
                f"Steps {', '.join(str(i) for i in low_ess)} have an effective "
                f"sample size below {self.ess_threshold}. Consider longer chains."
            )
        if not silent:
            print(diagnostics.to_string(index=False))
            print(f"log Bayes factor: {log_bayes_factor}")

        return MarginalLikelihoodResult(log_bayes_factor, diagnostics, self.scheme)


def estimate_marginal_likelihood(
    traces: Sequence["custom_types.TraceLike"],
    scheme: Union[Scheme, str] = DEFAULT_SCHEME,
    alpha: "custom_types.Float" = DEFAULT_ALPHA,
    burn_in_percentage: "custom_types.Float" = DEFAULT_BURN_IN_PERCENTAGE,
    silent: bool = True,
) -> tuple[float, pd.DataFrame]:
    """Estimate the log Bayes factor from the traces of all steps.

    Shortcut for building a :py:class:`MarginalLikelihoodEstimator` and calling
    :py:meth:`MarginalLikelihoodEstimator.estimate`.

    :returns: The log Bayes factor and the per-step diagnostic table
    :rtype: tuple[float, pd.DataFrame]
    """
    result = MarginalLikelihoodEstimator(scheme, alpha, burn_in_percentage).estimate(
        traces, silent=silent
    )
    return result.log_bayes_factor, result.diagnostics

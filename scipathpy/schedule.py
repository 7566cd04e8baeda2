# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Placement of the interpolation points along the sampling path.

This module maps a step index onto the interpolation coefficient ``beta`` of the
annealed distribution sampled at that step. Two schemes are supported:

    - **uniform**: ``beta = step / total_steps``, so the path runs from 0 to 1
    - **sigmoid**: a centered logistic curve that runs from 1 (first step) to 0
      (last step) and concentrates points near the high-beta end of the path,
      where the log-likelihood typically changes fastest

Both schemes are pure functions of their arguments. The two endpoints of the
path always evaluate exactly to 0 and 1.

Example:
    >>> from scipathpy.schedule import Scheme, beta_schedule
    >>> beta_schedule(5, Scheme.UNIFORM)
    [0.0, 0.25, 0.5, 0.75, 1.0]
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Union

import numpy as np

from scipathpy.defaults import DEFAULT_ALPHA
from scipathpy.exceptions import ConfigurationError, ScheduleRangeError

if TYPE_CHECKING:
    from scipathpy import custom_types


class Scheme(str, Enum):
    """Schemes available for spacing the interpolation points."""

    UNIFORM = "uniform"
    SIGMOID = "sigmoid"


# Below this steepness tanh(f) and f agree to double precision over the path
_LINEAR_ALPHA = 1e-8


def _centered_sigmoid(exponent: float) -> float:
    r"""The sigmoid used by the schedule, shifted to be centered on 0.

    .. math::

        s(f) - \frac{1}{2} = \frac{e^{f}}{e^{f} + e^{-f}} - \frac{1}{2}
        = \frac{\tanh(f)}{2}
    """
    return float(np.tanh(exponent)) / 2


def resolve_scheme(
    scheme: Union[Scheme, str], alpha: "custom_types.Float" = DEFAULT_ALPHA
) -> Scheme:
    """Resolve the scheme that is actually used for a given steepness.

    A non-positive ``alpha`` always forces uniform spacing, regardless of the
    requested scheme.

    :param scheme: The requested scheme
    :type scheme: Union[Scheme, str]
    :param alpha: Steepness of the sigmoid. Defaults to ``DEFAULT_ALPHA``.
    :type alpha: custom_types.Float

    :returns: The scheme to use
    :rtype: Scheme

    :raises ConfigurationError: If the scheme is not recognized
    """
    try:
        scheme = Scheme(scheme)
    except ValueError as error:
        raise ConfigurationError(
            f"Unknown scheme '{scheme}'. Options are "
            f"{', '.join(s.value for s in Scheme)}"
        ) from error

    if alpha <= 0:
        return Scheme.UNIFORM
    return scheme


def next_beta(
    scheme: Union[Scheme, str],
    step: "custom_types.Integer",
    total_steps: "custom_types.Integer",
    alpha: "custom_types.Float" = DEFAULT_ALPHA,
) -> float:
    r"""Calculate the interpolation coefficient of a step.

    For the uniform scheme, ``beta = step / total_steps``. For the sigmoid scheme,
    the boundaries are exact (``step == 0`` gives 1.0, ``step == total_steps``
    gives 0.0) and interior steps are placed on a logistic curve in the
    normalized position :math:`x = (T - t) / T - 0.5`:

    .. math::

        \beta = \frac{s(\alpha x) - 0.5}{s(\alpha / 2) - s(-\alpha / 2)} + 0.5

    which passes through 0 and 1 at the two ends of the path. It is evaluated
    through the identity :math:`s(f) - 0.5 = \tanh(f) / 2`. As ``alpha``
    approaches 0 the curve approaches linear spacing, and that limit is used
    directly once ``|alpha|`` is too small to tell the two apart.

    :param scheme: The spacing scheme
    :type scheme: Union[Scheme, str]
    :param step: Index of the step, in ``[0, total_steps]``
    :type step: custom_types.Integer
    :param total_steps: Number of intervals along the path, at least 1
    :type total_steps: custom_types.Integer
    :param alpha: Steepness of the sigmoid. Ignored by the uniform scheme.
        Defaults to ``DEFAULT_ALPHA``.
    :type alpha: custom_types.Float

    :returns: The interpolation coefficient in ``[0, 1]``
    :rtype: float

    :raises ConfigurationError: If ``total_steps < 1`` or the scheme is unknown
    :raises ScheduleRangeError: If ``step`` lies outside ``[0, total_steps]``
    """
    # Check the inputs
    if total_steps < 1:
        raise ConfigurationError(
            f"The schedule needs at least one interval, got {total_steps}"
        )
    if step < 0 or step > total_steps:
        raise ScheduleRangeError(int(step), int(total_steps))
    try:
        scheme = Scheme(scheme)
    except ValueError as error:
        raise ConfigurationError(f"Unknown scheme '{scheme}'") from error

    # Uniform spacing
    if scheme is Scheme.UNIFORM:
        return step / total_steps

    # Exact boundaries for the sigmoid
    if step == 0:
        return 1.0
    if step == total_steps:
        return 0.0

    # Linear limit of the sigmoid, reached to double precision for small alpha
    x = (total_steps - step) / total_steps
    if abs(alpha) < _LINEAR_ALPHA:
        return x

    # Rescaled logistic curve
    x -= 0.5
    beta = _centered_sigmoid(alpha * x) / (2 * _centered_sigmoid(0.5 * alpha)) + 0.5

    return min(max(beta, 0.0), 1.0)


def beta_schedule(
    n_steps: "custom_types.Integer",
    scheme: Union[Scheme, str],
    alpha: "custom_types.Float" = DEFAULT_ALPHA,
) -> list[float]:
    """Calculate the coefficients of every step along the path.

    The scheme is first resolved with :py:func:`resolve_scheme`, so that a
    non-positive ``alpha`` yields uniform spacing.

    :param n_steps: Number of steps along the path, at least 2
    :type n_steps: custom_types.Integer
    :param scheme: The spacing scheme
    :type scheme: Union[Scheme, str]
    :param alpha: Steepness of the sigmoid. Defaults to ``DEFAULT_ALPHA``.
    :type alpha: custom_types.Float

    :returns: One coefficient per step, ordered by step index
    :rtype: list[float]

    :raises ConfigurationError: If ``n_steps < 2``
    """
    if n_steps < 2:
        raise ConfigurationError(f"At least 2 steps are required, got {n_steps}")

    resolved = resolve_scheme(scheme, alpha)
    return [next_beta(resolved, i, n_steps - 1, alpha) for i in range(n_steps)]

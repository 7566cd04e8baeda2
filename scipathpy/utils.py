# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Utility functions and classes for the SciPathPy package.

This module provides various utility functions used throughout SciPathPy,
including lazy importing, numerically stable aggregation, effective sample
size computation, and helpers for laying out the per-step output directories.

Key Features:
    - Lazy import functionality to improve startup performance
    - Numerically stable log-mean-exp computation
    - Effective sample size estimation through ArviZ
    - Step directory naming
"""

from __future__ import annotations

import importlib.util
import os.path
import sys

from typing import TYPE_CHECKING

import arviz as az
import numpy as np
import numpy.typing as npt

from scipy import special

from scipathpy.defaults import STEP_DIR_PREFIX

if TYPE_CHECKING:
    from scipathpy import custom_types


def lazy_import(name: str):
    """Import a module only when it is first needed.

    This function implements lazy module importing to improve package import
    performance by deferring module loading until actual use.

    :param name: The fully qualified module name to import
    :type name: str

    :returns: The imported module
    :rtype: module

    :raises ImportError: If the specified module cannot be found

    .. note::
        If the module is already imported, returns the cached version
        from sys.modules.
    """
    # Check if the module is already imported
    if name in sys.modules:
        return sys.modules[name]

    # Get the spec
    spec = importlib.util.find_spec(name)

    # If the spec is None, raise an ImportError
    if spec is None:
        raise ImportError(f"Module '{name}' not found.")

    # Create the module with a lazy loader
    spec.loader = importlib.util.LazyLoader(spec.loader)
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    spec.loader.exec_module(module)
    return module


def log_mean_exp(values: npt.NDArray[np.floating]) -> float:
    r"""Compute the logarithm of the mean of exponentiated values.

    .. math::

        \log \frac{1}{n} \sum_{i=1}^{n} e^{x_i}

    The computation is delegated to :py:func:`scipy.special.logsumexp`, which
    shifts by the maximum so that neither large positive nor large negative
    values overflow.

    :param values: One-dimensional array of values
    :type values: npt.NDArray[np.floating]

    :returns: The log-mean-exp of the values
    :rtype: float

    :raises ValueError: If ``values`` is empty
    """
    values = np.asarray(values, dtype=np.float64)
    if values.size == 0:
        raise ValueError("Cannot compute the log-mean-exp of an empty array")
    return float(special.logsumexp(values) - np.log(values.size))


def effective_sample_size(samples: npt.NDArray[np.floating]) -> float:
    """Estimate the effective sample size of a single chain of samples.

    The estimate is computed with :py:func:`arviz.ess` using the bulk method.
    Chains with fewer than four samples, or with no variance, do not support a
    meaningful estimate and return NaN.

    :param samples: One-dimensional array of samples from a single chain
    :type samples: npt.NDArray[np.floating]

    :returns: The effective sample size of the chain
    :rtype: float
    """
    samples = np.asarray(samples, dtype=np.float64)
    if samples.size < 4 or np.all(samples == samples[0]):
        return float("nan")

    # ArviZ expects (chain, draw)
    return float(az.ess(samples[None, :]))


def get_step_dir(root_dir: str, index: "custom_types.Integer") -> str:
    """Build the name of the output directory of a step.

    :param root_dir: Root directory of the path sampling run
    :type root_dir: str
    :param index: Index of the step
    :type index: custom_types.Integer

    :returns: The path ``<root_dir>/step<index>``
    :rtype: str

    Example:
        >>> get_step_dir("run", 3)
        'run/step3'
    """
    return os.path.join(root_dir, f"{STEP_DIR_PREFIX}{index}")

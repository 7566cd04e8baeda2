# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
SciPathPy: Marginal likelihood and Bayes factor estimation by path sampling.

SciPathPy estimates the marginal likelihood of a model, or the Bayes factor
between two models, by sampling a sequence of annealed distributions that
interpolate between a reference distribution and a target posterior, and by
combining the resulting traces through numerical quadrature in log space.

Key Features:
    - Uniform and sigmoid placement of the interpolation points
    - Deduplication of two independently built model graphs for paired runs
    - Annealed Metropolis-Hastings sampling with checkpointing and warm starts
    - Numerically stable trapezoidal and stepping-stone estimators
    - Type-safe model construction with runtime type checking

Global Variables:
    RNG: Global random number generator for reproducible computations
    __version__: Package version string

Example:
    >>> import scipathpy as spp
    >>> # Set global seed for reproducibility
    >>> spp.manual_seed(42)
    >>> # Place eight steps along a sigmoid path
    >>> betas = spp.beta_schedule(8, "sigmoid", alpha=10.0)
"""

from typing import Optional, TYPE_CHECKING

from typeguard import install_import_hook

import numpy as np

# Define the version
__version__ = "0.1.0"

# Set up type checking
install_import_hook("scipathpy")

# Define the global random number generator
RNG: np.random.Generator
"""Global random number generator for SciPathPy.

This generator is used by operators and samplers whenever no explicit generator
is given. It can be seeded using the manual_seed() function to ensure consistent
results across runs.

:type: np.random.Generator
"""

# Get custom types if TYPE_CHECKING is True
if TYPE_CHECKING:
    from scipathpy import custom_types


def manual_seed(seed: Optional["custom_types.Integer"] = None):
    """Set the seed for the global random number generator.

    :param seed: Seed value for random number generation. If None, uses
                system entropy to generate a random seed.
    :type seed: Union[custom_types.Integer, None]

    Example:
        >>> import scipathpy as spp
        >>> spp.manual_seed(42)
        >>> random_data = spp.RNG.normal(0, 1, size=100)

    Note:
        This function modifies global state and should typically be called
        once at the beginning of a script or analysis for reproducibility.
    """
    global RNG  # pylint: disable=global-statement
    RNG = np.random.default_rng(seed)


manual_seed()  # Set the seed for the global random number generator

# Import objects that should be easily accessible from the package level
# pylint: disable=wrong-import-position
from scipathpy import utils
from scipathpy.config import PathSamplingConfig
from scipathpy.exceptions import (
    ConfigurationError,
    DegenerateTraceError,
    MergeInvariantViolation,
    SciPathPyError,
    ScheduleRangeError,
)
from scipathpy.inference.estimator import (
    MarginalLikelihoodEstimator,
    estimate_marginal_likelihood,
)
from scipathpy.inference.path_sampler import PathSampler
from scipathpy.inference.sampler import PowerPosteriorSampler, Step
from scipathpy.model.merge import ModelGraphMerger, merge_analyses
from scipathpy.model.model import Model
from scipathpy.schedule import Scheme, beta_schedule, next_beta

# Lazy imports for the model-building submodules
distributions = utils.lazy_import("scipathpy.model.components.distributions")
operators = utils.lazy_import("scipathpy.model.components.operators")
parameters = utils.lazy_import("scipathpy.model.components.parameters")

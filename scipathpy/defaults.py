# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Default configuration values for SciPathPy package components.

This module centralizes default values used across the SciPathPy package,
including the discretization of the interpolation path, the length of each
annealed chain, operator tuning targets, file naming conventions, and diagnostic
thresholds.

Default values cannot be programmatically altered. This documentation serves as a
reference for users and developers to understand the standard configuration used
by SciPathPy.
"""

# Schedule defaults
DEFAULT_N_STEPS: int = 8
"""Default number of steps (interpolation points) along the path.

:type: int
"""

DEFAULT_ALPHA: float = 10.0
"""Default steepness of the sigmoid schedule. Values <= 0 force uniform spacing.

:type: float
"""

DEFAULT_SCHEME: str = "sigmoid"
"""Default scheme used to place the interpolation points.

:type: str
"""

# Chain defaults
DEFAULT_CHAIN_LENGTH: int = 100000
"""Default number of post-burn-in iterations run for every step.

:type: int
"""

DEFAULT_PRE_BURN_IN: int = 0
"""Default number of burn-in iterations for steps that do not resume from a
previous step.

:type: int
"""

DEFAULT_BURN_IN_PERCENTAGE: float = 50.0
"""Default percentage of every trace discarded before estimation.

:type: float
"""

DEFAULT_CHECKPOINT_INTERVAL: int = 0
"""Default number of iterations between two checkpoints. 0 disables checkpointing.

:type: int
"""

DEFAULT_N_PARALLEL: int = 1
"""Default number of steps started from scratch. Every later step resumes from
the final state of the step ``n_parallel`` positions before it.

:type: int
"""

DEFAULT_LOGGED_SAMPLES: int = 1000
"""Default number of trace records kept per step. The logging frequency is
``max(1, chain_length // DEFAULT_LOGGED_SAMPLES)``.

:type: int
"""

# Operator defaults
DEFAULT_TARGET_ACCEPTANCE: float = 0.234
"""Acceptance probability that self-tuning operators aim for.

:type: float
"""

DEFAULT_WINDOW_SIZE: float = 1.0
"""Default window size of the random walk operator.

:type: float
"""

DEFAULT_SCALE_FACTOR: float = 0.75
"""Default scale factor of the scale operator.

:type: float
"""

# File naming
LIKELIHOOD_LOG_FILE: str = "likelihood.log"
"""Name of the trace file written inside every step directory.

:type: str
"""

CHECKPOINT_FILE: str = "state.pkl"
"""Name of the checkpoint file written inside every step directory.

:type: str
"""

STEP_DIR_PREFIX: str = "step"
"""Prefix of the per-step directory names.

:type: str
"""

PAIRED_TRACE_LABEL: str = "diff-posterior"
"""Label of the diagnostic column for paired (two-model) runs.

:type: str
"""

SINGLE_TRACE_LABEL: str = "likelihood"
"""Label of the diagnostic column for single-model runs.

:type: str
"""

# Diagnostics
DEFAULT_ESS_THRESH: int = 100
"""Default threshold for the effective sample size of a step.

Steps with fewer effective samples are reported with a warning.

:type: int
"""

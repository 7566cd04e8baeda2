# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Validated configuration of a path sampling run.

The configuration surface of a run is held in an immutable Pydantic model. Every
value is checked when the configuration is created, so that invalid settings are
reported before any sampling begins.

Example:
    >>> from scipathpy.config import PathSamplingConfig
    >>> config = PathSamplingConfig(n_steps=16, alpha=0.0, chain_length=5000)
    >>> config.resolved_scheme
    <Scheme.UNIFORM: 'uniform'>
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from scipathpy import defaults
from scipathpy.exceptions import ConfigurationError
from scipathpy.schedule import Scheme, beta_schedule, resolve_scheme


class PathSamplingConfig(BaseModel):
    """Configuration of a path sampling run.

    Instances are immutable and unknown fields are rejected. Range violations
    raise :py:class:`~scipathpy.exceptions.ConfigurationError`.

    :param n_steps: Number of steps along the path. Must be at least 2.
    :type n_steps: int
    :param alpha: Steepness of the sigmoid schedule. Values <= 0 force uniform
        spacing.
    :type alpha: float
    :param scheme: Scheme used to space the steps.
    :type scheme: Scheme
    :param chain_length: Number of post-burn-in iterations run for every step.
        Must be positive.
    :type chain_length: int
    :param pre_burn_in: Number of burn-in iterations of the steps that do not
        resume from a previous step. Must be non-negative.
    :type pre_burn_in: int
    :param burn_in_percentage: Percentage of every trace discarded before
        estimation, in ``[0, 100)``.
    :type burn_in_percentage: float
    :param checkpoint_interval: Number of iterations between two checkpoints. 0
        disables checkpointing.
    :type checkpoint_interval: int
    :param log_every: Number of iterations between two trace records. Defaults to
        ``max(1, chain_length // DEFAULT_LOGGED_SAMPLES)`` when not given.
    :type log_every: Optional[int]
    :param n_parallel: Number of steps started from scratch. Every later step
        resumes from the final state of the step ``n_parallel`` positions before it.
    :type n_parallel: int
    :param root_dir: Directory under which the per-step directories are written.
        Nothing is written to disk when not given.
    :type root_dir: Optional[str]
    :param ess_threshold: Steps whose effective sample size falls below this
        value are reported with a warning.
    :type ess_threshold: int
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Schedule
    n_steps: int = Field(defaults.DEFAULT_N_STEPS, description="Number of steps")
    alpha: float = Field(defaults.DEFAULT_ALPHA, description="Sigmoid steepness")
    scheme: Scheme = Field(Scheme(defaults.DEFAULT_SCHEME), description="Scheme")

    # Chains
    chain_length: int = Field(
        defaults.DEFAULT_CHAIN_LENGTH, description="Iterations per step"
    )
    pre_burn_in: int = Field(
        defaults.DEFAULT_PRE_BURN_IN, description="Burn-in of fresh steps"
    )
    burn_in_percentage: float = Field(
        defaults.DEFAULT_BURN_IN_PERCENTAGE, description="Burn-in discarded (%)"
    )
    checkpoint_interval: int = Field(
        defaults.DEFAULT_CHECKPOINT_INTERVAL, description="Checkpoint interval"
    )
    log_every: Optional[int] = Field(None, description="Trace logging interval")
    n_parallel: int = Field(
        defaults.DEFAULT_N_PARALLEL, description="Number of independent chains"
    )

    # Output
    root_dir: Optional[str] = Field(None, description="Output directory")
    ess_threshold: int = Field(
        defaults.DEFAULT_ESS_THRESH, description="Low-ESS warning threshold"
    )

    @field_validator("scheme", mode="before")
    @classmethod
    def validate_scheme(cls, v):
        """Validate the scheme name."""
        try:
            return Scheme(v)
        except ValueError as error:
            raise ConfigurationError(
                f"Unknown scheme '{v}'. Options are "
                f"{', '.join(s.value for s in Scheme)}"
            ) from error

    @model_validator(mode="after")
    def check_ranges(self) -> "PathSamplingConfig":
        """Reject out-of-range values before any sampling begins."""
        if self.n_steps < 2:
            raise ConfigurationError(
                f"At least 2 steps are required, got {self.n_steps}"
            )
        if self.chain_length < 1:
            raise ConfigurationError(
                f"Chain length must be positive, got {self.chain_length}"
            )
        if self.pre_burn_in < 0:
            raise ConfigurationError(
                f"Pre-burn-in must be non-negative, got {self.pre_burn_in}"
            )
        if self.pre_burn_in > self.chain_length:
            raise ConfigurationError(
                f"Pre-burn-in ({self.pre_burn_in}) must not exceed the chain length "
                f"({self.chain_length})"
            )
        if not 0 <= self.burn_in_percentage < 100:
            raise ConfigurationError(
                "Burn-in percentage must be in [0, 100), got "
                f"{self.burn_in_percentage}"
            )
        if self.checkpoint_interval < 0:
            raise ConfigurationError(
                "Checkpoint interval must be non-negative, got "
                f"{self.checkpoint_interval}"
            )
        if self.log_every is not None and self.log_every < 1:
            raise ConfigurationError(
                f"Logging interval must be positive, got {self.log_every}"
            )
        if self.n_parallel < 1:
            raise ConfigurationError(
                f"At least one independent chain is required, got {self.n_parallel}"
            )
        return self

    @property
    def resolved_scheme(self) -> Scheme:
        """The scheme actually used, accounting for non-positive ``alpha``."""
        return resolve_scheme(self.scheme, self.alpha)

    @property
    def logging_interval(self) -> int:
        """Number of iterations between two trace records."""
        if self.log_every is not None:
            return self.log_every
        return max(1, self.chain_length // defaults.DEFAULT_LOGGED_SAMPLES)

    @property
    def betas(self) -> list[float]:
        """The coefficient of every step, ordered by step index."""
        return beta_schedule(self.n_steps, self.scheme, self.alpha)

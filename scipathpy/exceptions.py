# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Custom exception classes for the SciPathPy package.

This module defines the hierarchy of exceptions raised while configuring a path
sampling run, building the interpolation schedule, merging model graphs, and
estimating marginal likelihoods. All custom exceptions inherit from the base
SciPathPyError class to allow for unified exception handling when needed.

Rejected proposals are not errors and never surface as exceptions; they are
part of the ordinary control flow of the sampler.
"""


class SciPathPyError(Exception):
    """Base class for all exceptions in the SciPathPy package.

    :param message: Error message describing the exception
    :type message: str

    Example:
        >>> try:
        ...     # SciPathPy operations
        ...     pass
        ... except SciPathPyError as e:
        ...     print(f"SciPathPy error occurred: {e}")
    """


class ConfigurationError(SciPathPyError):
    """Raised when a path sampling configuration is invalid.

    Configuration errors are detected eagerly, before any sampling begins. Typical
    causes are fewer than two steps, a burn-in percentage outside ``[0, 100)``,
    or a negative checkpoint interval.
    """


class ScheduleRangeError(SciPathPyError):
    """Raised when a step index falls outside of the configured schedule.

    :param step: The requested step index
    :type step: int
    :param total_steps: The number of intervals in the schedule
    :type total_steps: int
    """

    def __init__(self, step: int, total_steps: int):
        self.step = step
        self.total_steps = total_steps
        super().__init__(
            f"Step {step} is outside of the schedule range [0, {total_steps}]"
        )


class MergeInvariantViolation(SciPathPyError):
    """Raised when a node scheduled for replacement cannot be found in a consumer.

    This indicates an inconsistency between the consumer index of a model graph
    and the forward input edges of its nodes. It is a programming-level error,
    aborts the merge, and is never retried.

    :param node_id: Identifier of the node that should have been replaced
    :type node_id: str
    :param consumer_id: Identifier of the consumer that was expected to reference it
    :type consumer_id: str
    """

    def __init__(self, node_id: str, consumer_id: str):
        self.node_id = node_id
        self.consumer_id = consumer_id
        super().__init__(
            f"Could not find node '{node_id}' among the inputs of its declared "
            f"consumer '{consumer_id}'"
        )


class DegenerateTraceError(SciPathPyError):
    """Raised when a trace holds no samples after discarding burn-in.

    :param step: Index of the step whose trace is degenerate
    :type step: int
    :param message: Additional detail on why the trace is degenerate
    :type message: str
    """

    def __init__(self, step: int, message: str = "no samples retained after burn-in"):
        self.step = step
        super().__init__(f"Trace of step {step} is degenerate: {message}")

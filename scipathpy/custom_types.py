# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Custom type definitions for SciPathPy.

This module provides type aliases used throughout the SciPathPy package for the
values that flow through model nodes, state snapshots, and traces.
"""

from typing import Sequence, TYPE_CHECKING, Union

import numpy as np
import numpy.typing as npt

if TYPE_CHECKING:
    from scipathpy.inference import trace
    from scipathpy.model.components import abstract_model_component

# Scalar types
Integer = Union[int, np.integer]
"""Type alias for integer values.

Accepts both Python's built-in int and NumPy integer types.

:type: Union[int, np.integer]
"""

Float = Union[float, np.floating]
"""Type alias for floating-point values.

Accepts both Python's built-in float and NumPy floating-point types.

:type: Union[float, np.floating]
"""

Scalar = Union[Integer, Float, bool]
"""Type alias for the values accepted by scalar-kind node inputs.

:type: Union[Integer, Float, bool]
"""

# Node input types
InputValue = Union[
    Scalar,
    str,
    "abstract_model_component.AbstractModelComponent",
    list,
    None,
]
"""Type alias for the value held by a node input: a scalar, a string, another
node, an ordered list of any of these, or ``None`` when unset.

:type: Union[Scalar, str, AbstractModelComponent, list, None]
"""

# Trace types
TraceLike = Union["trace.Trace", Sequence[Float], npt.NDArray[np.floating]]
"""Type alias for the input of the estimator for a single step: a trace, or the
diagnostic values of a trace.

:type: Union[Trace, Sequence[Float], npt.NDArray[np.floating]]
"""

# State types
Snapshot = dict[str, npt.NDArray[np.floating]]
"""Type alias for a snapshot of a state: state node identifier to a copy of its
values.

:type: dict[str, npt.NDArray[np.floating]]
"""

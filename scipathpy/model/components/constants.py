# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Constant value components for SciPathPy models.

This module provides the Constant class for representing fixed values in SciPathPy
models. Constants hold hyperparameters and observed data that do not change
during sampling.

Constants are rarely built by hand: any plain number, list of numbers, or NumPy
array passed to a node-kind input of another component is converted to a
Constant automatically.

**Basic Usage:**

.. code-block:: python

    from scipathpy.model.components.constants import Constant
    from scipathpy.model.components.distributions import Normal

    observations = Constant([1.2, 0.4, 2.2], node_id="data")
    likelihood = Normal(x=observations, mu=0.0, sigma=1.0)
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt

from scipathpy.model.components import abstract_model_component

InputKind = abstract_model_component.InputKind
InputSpec = abstract_model_component.InputSpec


class Constant(abstract_model_component.AbstractModelComponent):
    """Represents a constant value component in SciPathPy models.

    :param value: The constant value. Scalars are stored as a one-element list.
    :type value: Union[custom_types.Float, list, npt.NDArray]
    :param node_id: Identifier of the component. Defaults to None.
    :type node_id: Optional[str]
    """

    INPUTS = (InputSpec("value", InputKind.LIST),)

    def __init__(self, value=None, **kwargs):
        super().__init__(value=value, **kwargs)

    @property
    def values(self) -> npt.NDArray[np.floating]:
        """The constant values as a NumPy array."""
        return np.asarray(self.get_input("value"), dtype=np.float64)

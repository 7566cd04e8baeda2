# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""State parameters of SciPathPy models.

State parameters are the quantities that the sampler explores. Their ``value``
input holds the initial values; the current values live in the ``values``
attribute, are changed by operators, and can be stored and restored so that a
rejected proposal leaves no trace.

**Basic Usage:**

.. code-block:: python

    from scipathpy.model.components.parameters import RealParameter

    mu = RealParameter(value=0.0, node_id="mu")
    sigma = RealParameter(value=1.0, lower=0.0, node_id="sigma")
"""

from __future__ import annotations

from typing import Optional, TYPE_CHECKING

import numpy as np
import numpy.typing as npt

from scipathpy.model.components import abstract_model_component

if TYPE_CHECKING:
    from scipathpy import custom_types

InputKind = abstract_model_component.InputKind
InputSpec = abstract_model_component.InputSpec


class RealParameter(abstract_model_component.AbstractModelComponent):
    """A real-valued state parameter.

    :param value: Initial values of the parameter. Scalars give a one-dimensional
        parameter.
    :type value: Union[custom_types.Float, list, npt.NDArray]
    :param lower: Lower bound of the values. Defaults to None (unbounded).
    :type lower: Optional[custom_types.Float]
    :param upper: Upper bound of the values. Defaults to None (unbounded).
    :type upper: Optional[custom_types.Float]
    :param node_id: Identifier of the component. Defaults to None.
    :type node_id: Optional[str]

    :raises ValueError: If no initial value is given
    :raises ValueError: If the bounds are inconsistent or exclude the initial values
    """

    INPUTS = (
        InputSpec("value", InputKind.LIST),
        InputSpec("lower", InputKind.SCALAR),
        InputSpec("upper", InputKind.SCALAR),
    )

    def __init__(
        self,
        value=None,
        lower: Optional["custom_types.Float"] = None,
        upper: Optional["custom_types.Float"] = None,
        **kwargs,
    ):
        super().__init__(value=value, lower=lower, upper=upper, **kwargs)

        # Check the values
        if len(self.get_input("value")) == 0:
            raise ValueError(f"{self.type_name} needs at least one initial value")
        if self.lower > self.upper:
            raise ValueError("Lower bound must not exceed upper bound")

        # Current and stored values
        self._values = np.asarray(self.get_input("value"), dtype=np.float64)
        self._stored_values: Optional[npt.NDArray[np.floating]] = None
        if not self.in_bounds():
            raise ValueError(f"Initial values of {self} are out of bounds")

    def in_bounds(self, values: Optional[npt.NDArray[np.floating]] = None) -> bool:
        """Check whether values respect the bounds of the parameter.

        :param values: Values to check. Defaults to the current values.
        :type values: Optional[npt.NDArray[np.floating]]

        :returns: True if every value lies within the bounds
        :rtype: bool
        """
        values = self._values if values is None else values
        return bool(np.all((values >= self.lower) & (values <= self.upper)))

    def store(self) -> None:
        """Keep a copy of the current values so that they can be restored."""
        self._stored_values = self._values.copy()

    def restore(self) -> None:
        """Return to the values kept by the last call to :py:meth:`store`."""
        assert self._stored_values is not None, "Nothing stored to restore"
        self._values = self._stored_values.copy()

    @property
    def values(self) -> npt.NDArray[np.floating]:
        """Current values of the parameter."""
        return self._values

    @values.setter
    def values(self, values: npt.NDArray[np.floating]) -> None:
        values = np.asarray(values, dtype=np.float64)
        if values.shape != self._values.shape:
            raise ValueError(
                f"Expected values of shape {self._values.shape}, got {values.shape}"
            )
        self._values = values.copy()

    @property
    def dimension(self) -> int:
        """Number of values held by the parameter."""
        return self._values.size

    @property
    def lower(self) -> float:
        """Lower bound of the values."""
        lower = self.get_input("lower")
        return -np.inf if lower is None else float(lower)

    @property
    def upper(self) -> float:
        """Upper bound of the values."""
        upper = self.get_input("upper")
        return np.inf if upper is None else float(upper)

# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Weighted selection of the operator applied at each iteration."""

from __future__ import annotations

from typing import Optional

import numpy as np

import scipathpy

from scipathpy.model.components.operators import Operator


class OperatorSchedule:
    """Selects operators at random, in proportion to their weights.

    :param operators: The operators to select from
    :type operators: list[Operator]
    :param rng: Random number generator. Defaults to the global
        :py:obj:`scipathpy.RNG`.
    :type rng: Optional[np.random.Generator]

    :raises ValueError: If there are no operators or all weights are zero
    """

    def __init__(
        self, operators: list[Operator], rng: Optional[np.random.Generator] = None
    ):
        if len(operators) == 0:
            raise ValueError("At least one operator is required")
        weights = np.array([op.weight for op in operators], dtype=np.float64)
        if weights.sum() <= 0:
            raise ValueError("At least one operator must have a positive weight")

        self.operators = list(operators)
        self._probabilities = weights / weights.sum()
        self._rng = rng

    def select_operator(self) -> Operator:
        """Draw the operator to apply next.

        :returns: The selected operator
        :rtype: Operator
        """
        rng = scipathpy.RNG if self._rng is None else self._rng
        return self.operators[rng.choice(len(self.operators), p=self._probabilities)]

    def __len__(self) -> int:
        return len(self.operators)

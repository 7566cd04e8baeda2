# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Root node of a SciPathPy model graph."""

from __future__ import annotations

from scipathpy.model.components import abstract_model_component
from scipathpy.model.components.distributions import Distribution
from scipathpy.model.components.operators import Operator
from scipathpy.model.state import State

InputKind = abstract_model_component.InputKind
InputSpec = abstract_model_component.InputSpec


class Analysis(abstract_model_component.AbstractModelComponent):
    """Ties together everything needed to sample a model.

    :param posterior: The distribution sampled. For single-model runs this should
        be a :py:class:`~scipathpy.model.components.distributions.CompoundDistribution`
        whose last child is the likelihood.
    :type posterior: Distribution
    :param state: The state explored by the sampler
    :type state: State
    :param operators: The proposal operators acting on the state
    :type operators: list[Operator]
    :param node_id: Identifier of the component. Defaults to None.
    :type node_id: Optional[str]
    """

    INPUTS = (
        InputSpec("posterior", InputKind.NODE),
        InputSpec("state", InputKind.NODE),
        InputSpec("operators", InputKind.LIST),
    )

    def __init__(self, posterior=None, state=None, operators=None, **kwargs):
        super().__init__(
            posterior=posterior, state=state, operators=operators, **kwargs
        )

        # Check types
        if not isinstance(self.get_input("posterior"), Distribution):
            raise TypeError("The posterior of an analysis must be a distribution")
        if not isinstance(self.get_input("state"), State):
            raise TypeError("The state of an analysis must be a State")
        if not all(isinstance(op, Operator) for op in self.get_input("operators")):
            raise TypeError("All operators of an analysis must be Operator instances")

    def add_operator(self, operator: Operator) -> None:
        """Append an operator unless it is already held."""
        if not any(operator is known for known in self.operators):
            self.set_input("operators", self.operators + [operator])

    @property
    def posterior(self) -> Distribution:
        return self.get_input("posterior")

    @property
    def state(self) -> State:
        return self.get_input("state")

    @property
    def operators(self) -> list[Operator]:
        return list(self.get_input("operators"))

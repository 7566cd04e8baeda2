# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""The mutable state of a SciPathPy model.

The :py:class:`State` holds the state parameters explored by the sampler together
with the calculation nodes (distributions) whose log densities depend on them.
It supports the snapshot protocol the sampler relies on:

    - :py:meth:`State.store` snapshots the state parameters at an iteration
    - :py:meth:`State.restore` rolls the parameters back to that snapshot
    - :py:meth:`State.accept` commits the current parameters

Every store must be resolved by exactly one restore or accept before the next
store. Calculation nodes are stored, restored, and accepted alongside.

Snapshots of the full state can also be taken as plain dictionaries, which is
what checkpoints persist and what warm starts load.
"""

from __future__ import annotations

from typing import Optional, TYPE_CHECKING

import numpy as np

from scipathpy.model.components import abstract_model_component
from scipathpy.model.components.distributions import Distribution
from scipathpy.model.components.parameters import RealParameter

if TYPE_CHECKING:
    from scipathpy import custom_types

InputKind = abstract_model_component.InputKind
InputSpec = abstract_model_component.InputSpec


class State(abstract_model_component.AbstractModelComponent):
    """Container of the state parameters of a model.

    :param state_nodes: The state parameters
    :type state_nodes: list[RealParameter]
    :param node_id: Identifier of the component. Defaults to None.
    :type node_id: Optional[str]

    :raises TypeError: If a state node is not a :py:class:`RealParameter`
    """

    INPUTS = (InputSpec("state_nodes", InputKind.LIST),)

    def __init__(self, state_nodes=None, **kwargs):
        super().__init__(state_nodes=state_nodes, **kwargs)
        if not all(
            isinstance(node, RealParameter) for node in self.get_input("state_nodes")
        ):
            raise TypeError("All state nodes must be RealParameter instances")

        self._calculation_nodes: list[Distribution] = []
        self._stored_at: Optional["custom_types.Integer"] = None

    def initialise(self, *posteriors: Distribution) -> None:
        """Collect the calculation nodes that depend on the state.

        Every distribution reachable from the given posteriors becomes a
        calculation node, and all of them are flagged for recomputation.

        :param posteriors: The distributions evaluated by the sampler
        :type posteriors: Distribution
        """
        self._calculation_nodes = []
        for posterior in posteriors:
            for node in posterior.walk_inputs():
                if isinstance(node, Distribution) and not any(
                    node is known for known in self._calculation_nodes
                ):
                    self._calculation_nodes.append(node)
        self.set_everything_dirty(True)

    def add_state_node(self, node: RealParameter) -> None:
        """Append a state parameter unless it is already held.

        :param node: The parameter to add
        :type node: RealParameter
        """
        if not any(node is known for known in self.state_nodes):
            self.set_input("state_nodes", self.state_nodes + [node])

    # Snapshot protocol
    def store(self, iteration: "custom_types.Integer") -> None:
        """Snapshot the state parameters at an iteration.

        :param iteration: The iteration the snapshot belongs to
        :type iteration: custom_types.Integer
        """
        assert self._stored_at is None, (
            f"Snapshot of iteration {self._stored_at} was never resolved"
        )
        for node in self.state_nodes:
            node.store()
        self._stored_at = iteration

    def restore(self) -> None:
        """Roll the state parameters back to the pending snapshot."""
        assert self._stored_at is not None, "No snapshot to restore"
        for node in self.state_nodes:
            node.restore()
        self._stored_at = None

    def accept(self) -> None:
        """Commit the current state parameters, resolving the pending snapshot."""
        assert self._stored_at is not None, "No snapshot to accept"
        self._stored_at = None

    # Calculation node bookkeeping
    def store_calculation_nodes(self) -> None:
        for node in self._calculation_nodes:
            node.store()

    def check_calculation_nodes_dirtiness(self) -> None:
        for node in self._calculation_nodes:
            node.mark_dirty()

    def restore_calculation_nodes(self) -> None:
        for node in self._calculation_nodes:
            node.restore()

    def accept_calculation_nodes(self) -> None:
        for node in self._calculation_nodes:
            node.accept()

    def set_everything_dirty(self, dirty: bool) -> None:
        """Flag every calculation node as needing recomputation or not."""
        for node in self._calculation_nodes:
            if dirty:
                node.mark_dirty()
            else:
                node.accept()

    # Whole-state snapshots
    def snapshot(self) -> "custom_types.Snapshot":
        """Copy the current values of every state parameter.

        :returns: Mapping from state parameter identifier to a copy of its values
        :rtype: custom_types.Snapshot

        :raises ValueError: If a state parameter has no identifier
        """
        snapshot = {}
        for node in self.state_nodes:
            if node.node_id is None:
                raise ValueError(f"Cannot snapshot {node} without an identifier")
            snapshot[node.node_id] = node.values.copy()
        return snapshot

    def load_snapshot(self, snapshot: "custom_types.Snapshot") -> None:
        """Set the state parameters from a snapshot.

        Parameters absent from the snapshot keep their current values.

        :param snapshot: Mapping from state parameter identifier to values
        :type snapshot: custom_types.Snapshot
        """
        for node in self.state_nodes:
            if node.node_id in snapshot:
                node.values = np.asarray(snapshot[node.node_id])
        self.set_everything_dirty(True)

    @property
    def state_nodes(self) -> list[RealParameter]:
        """The state parameters."""
        return list(self.get_input("state_nodes"))

    @property
    def calculation_nodes(self) -> list[Distribution]:
        """The calculation nodes collected by :py:meth:`initialise`."""
        return list(self._calculation_nodes)

    @property
    def stored_at(self) -> Optional["custom_types.Integer"]:
        """Iteration of the pending snapshot, or None if there is none."""
        return self._stored_at

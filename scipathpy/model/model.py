# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Registry of the components that make up a SciPathPy model graph.

A :py:class:`Model` enumerates every component reachable from one or more root
components and keeps two views of the resulting graph:

    - an arena of components addressed by their identifiers
    - a consumer index, mapping every identifier to the identifiers of the
      components that take it as an input

Components only know their inputs. The consumer index is the reverse view, and
it is the one used to rewrite references when two graphs are merged.

Components without an identifier are given one when the model is built. The
identifier is the type name of the component followed by the smallest integer
(starting from 0) that does not clash with an identifier already in the graph.
Identifiers given explicitly anywhere in the graph are reserved before any
identifier is generated, so that generated identifiers never clash with them.

Example:
    >>> from scipathpy.model.components.distributions import Normal
    >>> from scipathpy.model.components.parameters import RealParameter
    >>> from scipathpy.model.model import Model
    >>> mu = RealParameter(value=0.0)
    >>> model = Model(Normal(x=mu, mu=0.0, sigma=1.0))
    >>> sorted(model.ids)
    ['Constant0', 'Constant1', 'Normal0', 'RealParameter0']
"""

from __future__ import annotations

from typing import Iterator

from scipathpy.model.components.abstract_model_component import (
    AbstractModelComponent,
)


class Model:
    """Arena of the components reachable from a set of roots.

    :param root: The root component of the graph
    :type root: AbstractModelComponent
    :param extra_roots: Additional roots whose reachable components are also
        registered
    :type extra_roots: AbstractModelComponent

    :raises ValueError: If two distinct components share an identifier
    """

    def __init__(self, root: AbstractModelComponent, *extra_roots: AbstractModelComponent):
        self._roots: list[AbstractModelComponent] = [root, *extra_roots]
        self._nodes: dict[str, AbstractModelComponent] = {}
        self._consumers: dict[str, list[str]] = {}
        self.rebuild_index()

    def _walk(self) -> list[AbstractModelComponent]:
        """Every reachable component, once, in depth-first order from the roots."""
        seen: set[int] = set()
        ordered = []
        for root in self._roots:
            for component in root.walk_inputs():
                if id(component) not in seen:
                    seen.add(id(component))
                    ordered.append(component)
        return ordered

    def _assign_ids(self, components: list[AbstractModelComponent]) -> None:
        """Give an identifier to every component that lacks one."""
        used = {c.node_id for c in components if c.node_id is not None}
        for component in components:
            if component.node_id is not None:
                continue
            suffix = 0
            while f"{component.type_name}{suffix}" in used:
                suffix += 1
            component.node_id = f"{component.type_name}{suffix}"
            used.add(component.node_id)

    def rebuild_index(self) -> None:
        """Re-enumerate the graph and rebuild the arena and the consumer index.

        :raises ValueError: If two distinct components share an identifier
        """
        components = self._walk()
        self._assign_ids(components)

        # Build the arena
        nodes: dict[str, AbstractModelComponent] = {}
        for component in components:
            if (known := nodes.get(component.node_id)) is not None:
                assert known is not component
                raise ValueError(
                    f"Identifier '{component.node_id}' is shared by {known!r} and "
                    f"another distinct component"
                )
            nodes[component.node_id] = component

        # Build the consumer index
        consumers: dict[str, list[str]] = {node_id: [] for node_id in nodes}
        for node_id, component in nodes.items():
            for consumed in component.input_nodes():
                consumers[consumed.node_id].append(node_id)

        self._nodes = nodes
        self._consumers = consumers

    def consumers_of(self, node_id: str) -> list[str]:
        """Get the identifiers of the components that take a component as input.

        :param node_id: Identifier of the consumed component
        :type node_id: str

        :returns: Identifiers of its consumers, in enumeration order
        :rtype: list[str]

        :raises KeyError: If the identifier is not in the model
        """
        return list(self._consumers[node_id])

    @property
    def ids(self) -> list[str]:
        """Identifiers of all components, in enumeration order."""
        return list(self._nodes)

    @property
    def roots(self) -> list[AbstractModelComponent]:
        """The roots of the graph."""
        return list(self._roots)

    @property
    def nodes(self) -> dict[str, AbstractModelComponent]:
        """Copy of the mapping from identifier to component."""
        return dict(self._nodes)

    def __getitem__(self, node_id: str) -> AbstractModelComponent:
        return self._nodes[node_id]

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[str]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"Model(roots={[root.node_id for root in self._roots]}, size={len(self)})"

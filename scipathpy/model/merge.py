# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Merging of two independently built model graphs.

A paired path sampling run explores the state of two models at once. When both
models were built independently they usually share a large part of their
structure (the same data, the same parameters, the same priors), and that shared
structure must be represented only once in the graph that is sampled.

:py:class:`ModelGraphMerger` deduplicates the second graph into the first:

    1. Every identifier present in both graphs is a merge candidate. Two
       candidates are merged when they have the same type and equal inputs. List
       inputs are equal when they have the same length and hold the same
       elements, in any order. String inputs are compared after trimming,
       scalars by value, and component inputs by identity.
    2. Merging rewrites every consumer of the second-graph component so that it
       references the first-graph component instead, keeping positions within
       list inputs. The consumers of a merged component are then reconsidered,
       since their inputs may have just become identical. This repeats until no
       candidate is left to reconsider.
    3. Every remaining component of the second graph whose identifier clashes
       with one in the first graph is renamed by appending the smallest integer
       suffix, starting from 2, that gives an unused identifier.

The merger mutates the second graph in place. If a component scheduled for
replacement cannot be found among the inputs of one of its consumers, the merge
is aborted with a :py:class:`~scipathpy.exceptions.MergeInvariantViolation`
before either graph is modified.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Optional

from scipathpy.exceptions import MergeInvariantViolation
from scipathpy.model.analysis import Analysis
from scipathpy.model.components.abstract_model_component import (
    AbstractModelComponent,
    InputKind,
)
from scipathpy.model.model import Model


class MergeRecord:
    """Outcome of a merge.

    :ivar merged_ids: Identifiers of the components found equivalent in both
        graphs. Components of the second graph with these identifiers were
        replaced by those of the first graph.
    :ivar renamed: Maps the original identifier of every renamed component of the
        second graph to its new identifier
    :ivar rewritten: One ``(consumer identifier, input name, list position)``
        entry per rewritten reference. The position is None for component inputs.
    """

    def __init__(self):
        self.merged_ids: set[str] = set()
        self.renamed: dict[str, str] = {}
        self.rewritten: list[tuple[str, str, Optional[int]]] = []

    def was_merged(self, node_id: str) -> bool:
        """Whether the component with the given identifier was merged."""
        return node_id in self.merged_ids

    @property
    def n_merged(self) -> int:
        """Number of merged components."""
        return len(self.merged_ids)

    def __repr__(self) -> str:
        return (
            f"MergeRecord(n_merged={self.n_merged}, n_renamed={len(self.renamed)}, "
            f"n_rewritten={len(self.rewritten)})"
        )


def _values_equal(value1: Any, value2: Any) -> bool:
    """Compare two input values, or two elements of list inputs."""
    if value1 is None or value2 is None:
        return value1 is value2
    if isinstance(value1, AbstractModelComponent) or isinstance(
        value2, AbstractModelComponent
    ):
        return value1 is value2
    if isinstance(value1, str) or isinstance(value2, str):
        return (
            isinstance(value1, str)
            and isinstance(value2, str)
            and value1.strip() == value2.strip()
        )
    return bool(value1 == value2)


def _lists_equal(list1: list, list2: list) -> bool:
    """Compare list inputs as sets of equal size."""
    return (
        len(list1) == len(list2)
        and all(any(_values_equal(a, b) for b in list2) for a in list1)
        and all(any(_values_equal(b, a) for a in list1) for b in list2)
    )


def have_common_inputs(
    component1: AbstractModelComponent,
    component2: AbstractModelComponent,
    replacements: Optional[dict[int, AbstractModelComponent]] = None,
) -> bool:
    """Determine whether two components are equivalent.

    :param component1: The first component
    :type component1: AbstractModelComponent
    :param component2: The second component
    :type component2: AbstractModelComponent
    :param replacements: Components already scheduled to replace inputs of
        ``component2``, keyed by the ``id`` of the component they replace.
        Defaults to None.
    :type replacements: Optional[dict[int, AbstractModelComponent]]

    :returns: True if the components have the same type and equal inputs
    :rtype: bool
    """
    if type(component1) is not type(component2):
        return False
    replacements = replacements or {}

    def resolve(value):
        if isinstance(value, AbstractModelComponent):
            return replacements.get(id(value), value)
        return value

    for (_, kind, value1), (_, _, value2) in zip(
        component1.list_inputs(), component2.list_inputs()
    ):
        if kind is InputKind.LIST:
            if not _lists_equal(value1, [resolve(v) for v in value2]):
                return False
        elif not _values_equal(value1, resolve(value2)):
            return False
    return True


class ModelGraphMerger:
    """Deduplicates a second model graph into a first one.

    The merge runs in two phases. The first finds every equivalent component and
    every reference to rewrite without touching either graph; the second applies
    the rewrites. A merge aborted by an invariant violation therefore leaves the
    second graph as it was.

    :param model1: The graph merged into. It is not modified.
    :type model1: Model
    :param model2: The graph merged from. It is modified in place.
    :type model2: Model

    :ivar record: The :py:class:`MergeRecord` of the last call to :py:meth:`merge`
    """

    def __init__(self, model1: Model, model2: Model):
        self.model1 = model1
        self.model2 = model2
        self.record = MergeRecord()

    def _find_references(
        self, node_id: str, old: AbstractModelComponent
    ) -> list[tuple[str, str, Optional[int]]]:
        """Locate every reference to ``old`` among its consumers in the second graph.

        :returns: One ``(consumer identifier, input name, list position)`` entry
            per reference. The position is None for component inputs.

        :raises MergeInvariantViolation: If a consumer does not reference ``old``
        """
        references = []
        for consumer_id in self.model2.consumers_of(node_id):
            found = False
            for name, kind, value in self.model2[consumer_id].list_inputs():

                # Component inputs
                if kind is InputKind.NODE and value is old:
                    references.append((consumer_id, name, None))
                    found = True

                # Elements of list inputs keep their position
                elif kind is InputKind.LIST:
                    for position, element in enumerate(value):
                        if element is old:
                            references.append((consumer_id, name, position))
                            found = True

            if not found:
                raise MergeInvariantViolation(node_id, consumer_id)
        return references

    def _replace(
        self,
        references: list[tuple[str, str, Optional[int]]],
        new: AbstractModelComponent,
    ) -> None:
        """Point every located reference in the second graph at ``new``."""
        for consumer_id, name, position in references:
            consumer = self.model2[consumer_id]
            if position is None:
                consumer.set_input(name, new)
            else:
                updated = list(consumer.get_input(name))
                updated[position] = new
                consumer.set_input(name, updated)
            self.record.rewritten.append((consumer_id, name, position))

    def _rename_collisions(self, remaining: dict[str, AbstractModelComponent]) -> None:
        """Give every remaining second-graph component a unique identifier."""
        used = set(self.model1.ids) | set(self.model2.ids)
        for node_id, component in remaining.items():
            if node_id not in self.model1 or self.model1[node_id] is component:
                continue
            suffix = 2
            while f"{node_id}{suffix}" in used:
                suffix += 1
            component.node_id = f"{node_id}{suffix}"
            used.add(component.node_id)
            self.record.renamed[node_id] = component.node_id

    def merge(self, silent: bool = True) -> Model:
        """Merge the second graph into the first.

        :param silent: Whether to suppress the report of every merged and renamed
            component. Defaults to True.
        :type silent: bool

        :returns: A model holding the unified graph. Its roots are the roots of the
            first graph, followed by those of the second graph that were not merged.
        :rtype: Model

        :raises MergeInvariantViolation: If a component scheduled for replacement
            cannot be found among the inputs of one of its consumers. Neither
            graph is modified in that case.
        """
        self.record = MergeRecord()
        remaining = self.model2.nodes
        replacements: dict[int, AbstractModelComponent] = {}
        planned: list[tuple[list, AbstractModelComponent]] = []
        merged_ids: list[str] = []

        # Every shared identifier is a candidate, in the order of the first graph
        queue = deque(node_id for node_id in self.model1.ids if node_id in remaining)
        queued = set(queue)
        while queue:
            node_id = queue.popleft()
            queued.discard(node_id)
            if node_id not in remaining:
                continue

            # Plan the merge if equivalent
            component1 = self.model1[node_id]
            component2 = remaining[node_id]
            if component1 is not component2:
                if not have_common_inputs(component1, component2, replacements):
                    continue
                planned.append((self._find_references(node_id, component2), component1))
                replacements[id(component2)] = component1
            del remaining[node_id]
            merged_ids.append(node_id)

            # Consumers may have become equivalent
            for consumer_id in self.model2.consumers_of(node_id):
                if (
                    consumer_id in remaining
                    and consumer_id in self.model1
                    and consumer_id not in queued
                ):
                    queue.append(consumer_id)
                    queued.add(consumer_id)

        # Apply the plan
        for references, component1 in planned:
            self._replace(references, component1)
        self.record.merged_ids.update(merged_ids)
        if not silent:
            for node_id in merged_ids:
                print(f"Merging {node_id}")

        # Make identifiers unique
        self._rename_collisions(remaining)
        if not silent:
            for old_id, new_id in self.record.renamed.items():
                print(f"Renaming {old_id} to {new_id}")

        # Refresh the bookkeeping of the second graph and build the unified graph
        self.model2.rebuild_index()
        roots = self.model1.roots + [
            root
            for root in self.model2.roots
            if not any(root is known for known in self.model1.roots)
            and not (
                root.node_id in self.record.merged_ids and root.node_id in self.model1
            )
        ]
        return Model(*roots)


def merge_analyses(
    analysis1: Analysis, analysis2: Analysis, silent: bool = True
) -> tuple[Model, MergeRecord]:
    """Merge two analyses ahead of a paired run.

    The graph of the second analysis is merged into the graph of the first. Then
    every operator and state parameter of the second analysis that was not merged
    is appended to the first analysis, so that sampling the first analysis
    explores the state of both models.

    :param analysis1: The first analysis. Receives the operators and state
        parameters of the second.
    :type analysis1: Analysis
    :param analysis2: The second analysis. Modified in place by the merge.
    :type analysis2: Analysis
    :param silent: Whether to suppress the merge report. Defaults to True.
    :type silent: bool

    :returns: The unified graph and the record of the merge
    :rtype: tuple[Model, MergeRecord]
    """
    merger = ModelGraphMerger(Model(analysis1), Model(analysis2))
    unified = merger.merge(silent=silent)
    record = merger.record

    # Operators and state parameters of the second model join the first
    for operator in analysis2.operators:
        if not record.was_merged(operator.node_id):
            analysis1.add_operator(operator)
    for node in analysis2.state.state_nodes:
        if not record.was_merged(node.node_id):
            analysis1.state.add_state_node(node)

    unified.rebuild_index()
    return unified, record

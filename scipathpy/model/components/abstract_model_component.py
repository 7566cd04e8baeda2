# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Abstract base class for SciPathPy model components.

This module defines the foundational class from which every node of a SciPathPy
model graph derives: constants, state parameters, distributions, operators, the
state container, and the analysis root. Users typically do not interact with this
module directly; instead, they use the concrete implementations provided in the
sibling submodules.

Every component declares its inputs through an explicit schema, the ``INPUTS``
class variable. Each entry of the schema names the input, gives its kind (a
scalar, a string, another node, or an ordered list of any of these), and gives
its default value. The schema is the only contract other parts of the package
rely on when they need to inspect or rewrite the inputs of a node, for example
when two model graphs are merged.

Components only hold their forward edges (their inputs). The reverse edges (which
components consume a given component) are indexed by
:py:class:`~scipathpy.model.model.Model`.
"""

from __future__ import annotations

from abc import ABC
from enum import Enum
from typing import Any, Iterator, NamedTuple, Optional, TYPE_CHECKING

import numpy as np

from scipathpy import utils

# Lazy imports to avoid circular imports
constants_module = utils.lazy_import("scipathpy.model.components.constants")

if TYPE_CHECKING:
    from scipathpy import custom_types


class InputKind(str, Enum):
    """Kinds of values that a component input can hold."""

    SCALAR = "scalar"
    STRING = "string"
    NODE = "node"
    LIST = "list"


class InputSpec(NamedTuple):
    """Declaration of a single component input.

    :param name: Name of the input
    :type name: str
    :param kind: Kind of value the input holds
    :type kind: InputKind
    :param default: Value used when the input is not provided. Defaults to None.
    """

    name: str
    kind: InputKind
    default: Any = None


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (bool, int, float, np.integer, np.floating, np.bool_))


class AbstractModelComponent(ABC):
    """Abstract base class for all SciPathPy model components.

    :param node_id: Identifier of the component. When not given, an identifier
        derived from the type name is assigned once the component becomes part of
        a :py:class:`~scipathpy.model.model.Model`. Defaults to None.
    :type node_id: Optional[str]
    :param inputs: Values of the inputs declared in ``INPUTS``

    :cvar INPUTS: Schema of the inputs of this component type

    :raises TypeError: If an input is not declared in the schema
    :raises TypeError: If an input value does not match its declared kind

    Inputs of the ``node`` kind that are given a plain number, a list of numbers,
    or a NumPy array are converted to a
    :py:class:`~scipathpy.model.components.constants.Constant` automatically.
    Inputs of the ``list`` kind accept any sequence, or a single element which is
    wrapped in a one-element list.
    """

    INPUTS: tuple[InputSpec, ...] = ()
    """Class variable giving the schema of the inputs of this component type."""

    def __init__(self, *, node_id: Optional[str] = None, **inputs):
        # Inputs must be declared
        if unknown := set(inputs) - {spec.name for spec in self.INPUTS}:
            raise TypeError(
                f"{self.type_name} got unexpected inputs: {', '.join(sorted(unknown))}"
            )

        # Set the identifier and inputs
        self._node_id: Optional[str] = node_id
        self._inputs: dict[str, "custom_types.InputValue"] = {}
        for spec in self.INPUTS:
            self._inputs[spec.name] = self._coerce_input(
                spec, inputs.get(spec.name, spec.default)
            )

    def _coerce_input(self, spec: InputSpec, value: Any) -> "custom_types.InputValue":
        """Check a value against the kind of an input and normalize it.

        :param spec: Declaration of the input
        :type spec: InputSpec
        :param value: The value to check

        :returns: The normalized value

        :raises TypeError: If the value does not match the declared kind
        """
        # Lists are never None
        if value is None:
            return [] if spec.kind is InputKind.LIST else None

        if spec.kind is InputKind.SCALAR:
            if not _is_scalar(value):
                raise TypeError(
                    f"Input '{spec.name}' of {self.type_name} must be a scalar, "
                    f"got {type(value).__name__}"
                )
            return value

        if spec.kind is InputKind.STRING:
            if not isinstance(value, str):
                raise TypeError(
                    f"Input '{spec.name}' of {self.type_name} must be a string, "
                    f"got {type(value).__name__}"
                )
            return value

        if spec.kind is InputKind.NODE:
            if isinstance(value, AbstractModelComponent):
                return value
            if _is_scalar(value) or isinstance(value, (list, tuple, np.ndarray)):
                return constants_module.Constant(value=value)
            raise TypeError(
                f"Input '{spec.name}' of {self.type_name} must be a model component, "
                f"got {type(value).__name__}"
            )

        # Everything else is a list
        assert spec.kind is InputKind.LIST
        if isinstance(value, np.ndarray):
            value = value.ravel().tolist()
        elif not isinstance(value, (list, tuple)):
            value = [value]
        for element in value:
            if not (
                _is_scalar(element)
                or isinstance(element, (str, AbstractModelComponent))
            ):
                raise TypeError(
                    f"Elements of input '{spec.name}' of {self.type_name} must be "
                    f"scalars, strings, or model components, got "
                    f"{type(element).__name__}"
                )
        return list(value)

    def _get_spec(self, name: str) -> InputSpec:
        for spec in self.INPUTS:
            if spec.name == name:
                return spec
        raise KeyError(f"{self.type_name} has no input named '{name}'")

    def list_inputs(self) -> list[tuple[str, InputKind, "custom_types.InputValue"]]:
        """List the inputs of the component in declaration order.

        :returns: One ``(name, kind, current value)`` triple per declared input
        :rtype: list[tuple[str, InputKind, custom_types.InputValue]]
        """
        return [(spec.name, spec.kind, self._inputs[spec.name]) for spec in self.INPUTS]

    def get_input(self, name: str) -> "custom_types.InputValue":
        """Get the current value of an input.

        :param name: Name of the input
        :type name: str

        :returns: The current value of the input

        :raises KeyError: If no input of that name is declared
        """
        self._get_spec(name)
        return self._inputs[name]

    def set_input(self, name: str, value: Any) -> None:
        """Set the value of an input, applying the same checks as at construction.

        :param name: Name of the input
        :type name: str
        :param value: New value of the input

        :raises KeyError: If no input of that name is declared
        :raises TypeError: If the value does not match the declared kind
        """
        self._inputs[name] = self._coerce_input(self._get_spec(name), value)

    def input_nodes(self) -> list["AbstractModelComponent"]:
        """Get the components this component consumes.

        Components are listed in input declaration order, with the elements of list
        inputs in list order. A component referenced more than once is listed once.

        :returns: The directly consumed components
        :rtype: list[AbstractModelComponent]
        """
        found = []
        for _, kind, value in self.list_inputs():
            if kind is InputKind.NODE:
                candidates = [] if value is None else [value]
            elif kind is InputKind.LIST:
                candidates = value
            else:
                continue
            for candidate in candidates:
                if isinstance(candidate, AbstractModelComponent) and not any(
                    candidate is node for node in found
                ):
                    found.append(candidate)
        return found

    def walk_inputs(self) -> Iterator["AbstractModelComponent"]:
        """Traverse every component reachable from this one, depth first.

        The traversal starts with this component and follows inputs in declaration
        order. Every reachable component is yielded exactly once.

        :returns: An iterator over the reachable components
        :rtype: Iterator[AbstractModelComponent]
        """
        seen: set[int] = set()
        stack: list[AbstractModelComponent] = [self]
        while stack:
            component = stack.pop()
            if id(component) in seen:
                continue
            seen.add(id(component))
            yield component

            # Reverse so that the first input is visited first
            stack.extend(reversed(component.input_nodes()))

    @property
    def node_id(self) -> Optional[str]:
        """Identifier of the component, or None if not yet assigned."""
        return self._node_id

    @node_id.setter
    def node_id(self, node_id: str) -> None:
        if not node_id:
            raise ValueError("Identifiers must be non-empty strings")
        self._node_id = node_id

    @property
    def type_name(self) -> str:
        """Name of the type of the component, used to derive identifiers."""
        return type(self).__name__

    def __repr__(self) -> str:
        return f"{self.type_name}(node_id={self._node_id!r})"

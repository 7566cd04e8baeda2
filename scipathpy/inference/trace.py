# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Diagnostic traces produced by the steps of a path sampling run.

A :py:class:`Trace` is the ordered sequence of ``(iteration, diagnostic value)``
records of one step. The diagnostic value is the difference between the log
densities of the two models for paired runs, or the log-likelihood for
single-model runs. A :py:class:`TraceWriter` additionally appends every record to
a tab-separated file as it is produced.
"""

from __future__ import annotations

import os
import os.path

from typing import Optional, TextIO, TYPE_CHECKING

import numpy as np
import numpy.typing as npt

if TYPE_CHECKING:
    from scipathpy import custom_types


class Trace:
    """Records of one step.

    :param step_index: Index of the step that produced the trace
    :type step_index: custom_types.Integer
    :param beta: Coefficient of the step
    :type beta: custom_types.Float
    :param label: Name of the diagnostic value
    :type label: str
    """

    def __init__(
        self,
        step_index: "custom_types.Integer",
        beta: "custom_types.Float",
        label: str,
    ):
        self.step_index = step_index
        self.beta = beta
        self.label = label
        self._iterations: list[int] = []
        self._values: list[float] = []

    def append(
        self, iteration: "custom_types.Integer", value: "custom_types.Float"
    ) -> None:
        """Add a record to the end of the trace."""
        self._iterations.append(int(iteration))
        self._values.append(float(value))

    @property
    def iterations(self) -> npt.NDArray[np.int64]:
        """Iterations of the records, burn-in included."""
        return np.array(self._iterations, dtype=np.int64)

    @property
    def values(self) -> npt.NDArray[np.floating]:
        """Diagnostic values of the records, burn-in included."""
        return np.array(self._values, dtype=np.float64)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return (
            f"Trace(step_index={self.step_index}, beta={self.beta}, "
            f"label={self.label!r}, n_records={len(self)})"
        )


class TraceWriter:
    """Appends trace records to a tab-separated file.

    The file starts with a ``Sample<TAB><label>`` header line; every record is
    written and flushed as soon as it is produced.

    :param path: Path of the trace file. Missing directories are created.
    :type path: str
    :param label: Name of the diagnostic value, used as column header
    :type label: str
    """

    def __init__(self, path: str, label: str):
        self.path = path
        self.label = label
        self._handle: Optional[TextIO] = None

    def open(self) -> "TraceWriter":
        """Create the file and write the header."""
        if dirname := os.path.dirname(self.path):
            os.makedirs(dirname, exist_ok=True)
        self._handle = open(self.path, "w", encoding="utf-8")
        self._handle.write(f"Sample\t{self.label}\n")
        self._handle.flush()
        return self

    def write(
        self, iteration: "custom_types.Integer", value: "custom_types.Float"
    ) -> None:
        """Append a record to the file."""
        assert self._handle is not None, "Writer is not open"
        self._handle.write(f"{iteration}\t{value}\n")
        self._handle.flush()

    def close(self) -> None:
        """Close the file."""
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "TraceWriter":
        return self.open()

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


def read_trace(
    path: str,
    step_index: "custom_types.Integer" = 0,
    beta: "custom_types.Float" = float("nan"),
) -> Trace:
    """Read a trace file written by :py:class:`TraceWriter`.

    :param path: Path of the trace file
    :type path: str
    :param step_index: Index of the step that produced the trace. Defaults to 0.
    :type step_index: custom_types.Integer
    :param beta: Coefficient of the step. Defaults to NaN.
    :type beta: custom_types.Float

    :returns: The trace held in the file
    :rtype: Trace
    """
    with open(path, "r", encoding="utf-8") as f:
        header = f.readline().rstrip("\n").split("\t")
        trace = Trace(step_index, beta, header[1] if len(header) > 1 else "")
        for line in f:
            if line := line.strip():
                iteration, value = line.split("\t")
                trace.append(int(iteration), float(value))
    return trace

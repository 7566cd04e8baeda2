# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Durable checkpoints of the state of a running step.

The sampler hands a snapshot of the state to a :py:class:`CheckpointStore` every
``checkpoint_interval`` iterations. The last completed checkpoint is the only
artifact from which an aborted step can be resumed.
"""

from __future__ import annotations

import os
import os.path
import pickle

from abc import ABC, abstractmethod
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from scipathpy import custom_types


class CheckpointStore(ABC):
    """Interface of the durable storage of state snapshots."""

    @abstractmethod
    def save(
        self, iteration: "custom_types.Integer", snapshot: "custom_types.Snapshot"
    ) -> None:
        """Persist the snapshot taken at an iteration.

        :param iteration: The iteration the snapshot was taken at
        :type iteration: custom_types.Integer
        :param snapshot: The snapshot to persist
        :type snapshot: custom_types.Snapshot
        """

    @abstractmethod
    def load(
        self,
    ) -> Optional[tuple["custom_types.Integer", "custom_types.Snapshot"]]:
        """Load the last persisted snapshot.

        :returns: The iteration and the snapshot, or None if nothing was persisted
        :rtype: Optional[tuple[custom_types.Integer, custom_types.Snapshot]]
        """


class PickleCheckpointStore(CheckpointStore):
    """Persists snapshots to a pickle file, overwriting the previous one.

    The file is first written under a temporary name and then moved into place,
    so that an interrupted write never replaces the last completed checkpoint.

    :param path: Path of the checkpoint file. Missing directories are created.
    :type path: str
    """

    def __init__(self, path: str):
        self.path = path

    def save(self, iteration, snapshot):
        if dirname := os.path.dirname(self.path):
            os.makedirs(dirname, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "wb") as f:
            pickle.dump({"iteration": iteration, "snapshot": snapshot}, f)
        os.replace(tmp_path, self.path)

    def load(self):
        if not os.path.exists(self.path):
            return None
        with open(self.path, "rb") as f:
            checkpoint = pickle.load(f)
        return checkpoint["iteration"], checkpoint["snapshot"]


class MemoryCheckpointStore(CheckpointStore):
    """Keeps every snapshot in memory. Useful for inspecting a run.

    :ivar checkpoints: ``(iteration, snapshot)`` pairs in the order they were saved
    """

    def __init__(self):
        self.checkpoints: list[tuple["custom_types.Integer", "custom_types.Snapshot"]] = []

    def save(self, iteration, snapshot):
        self.checkpoints.append((iteration, {k: v.copy() for k, v in snapshot.items()}))

    def load(self):
        return self.checkpoints[-1] if self.checkpoints else None

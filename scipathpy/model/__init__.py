# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Model graphs for SciPathPy.

This submodule holds the typed components that make up a model graph, the
state explored by the sampler, the registry of components reachable from a root
(:py:class:`~scipathpy.model.model.Model`), and the merging of two graphs ahead
of a paired run.
"""

# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Core model components for SciPathPy model graphs.

This submodule contains the building blocks of a model graph: constants, state
parameters, distributions, and proposal operators. Every component declares its
inputs through an explicit schema so that graphs can be inspected and rewritten
without introspection.
"""

# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Sampling and estimation for SciPathPy.

This submodule runs the annealed chain of every step of a path sampling run,
records and persists its trace and checkpoints, and combines the traces into a
log Bayes factor estimate.
"""

"""
Lifecycle states and execution modes.

apply
Render the manifest and create the cluster through the client.

generate_only
Render the manifest and write it to the output sink. The client is never
called.
"""

from __future__ import annotations

from enum import StrEnum


class ExecutionMode(StrEnum):
    apply = "apply"
    generate_only = "generate_only"


class LifecycleState(StrEnum):
    """
    States of one lifecycle call.

    Every call starts at idle. failed is terminal and is entered from any
    state when the call aborts.
    """

    idle = "idle"
    classifying = "classifying"
    gate_checking = "gate_checking"
    rendering = "rendering"
    dry_run_emit = "dry_run_emit"
    applying = "applying"
    applied = "applied"
    deleting = "deleting"
    deleted = "deleted"
    failed = "failed"

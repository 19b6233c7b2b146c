"""
cluster_orchestrator

Lifecycle orchestration for workload clusters on a Tanzu style management plane.

We keep modules small and well separated:
core contains shared data structures, constants and errors
spec contains spec sources and the shape classifier
features contains the feature gate registry, its sources and the gate guard
render contains the manifest renderer and the dry run output sink
client contains the management plane client interface and implementations
lifecycle contains the create and delete state machine
"""

__version__ = "0.1.0"

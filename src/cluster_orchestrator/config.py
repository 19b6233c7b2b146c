"""
Orchestrator configuration.

Loads the optional YAML configuration file used by the command line.

Lookup order
1  an explicit path
2  the CLUSTER_ORCHESTRATOR_CONFIG environment variable
3  ~/.config/cluster-orchestrator/config.yaml when it exists
4  built in defaults

Schema example
kubeconfig: ~/.kube/config
context: supervisor
namespace: default
plan: dev
featureGatesFile: gates.yaml
timeoutSeconds: 900
waitForDelete: true
logLevel: INFO
render:
  controlPlaneVmClass: best-effort-small
  workerVmClass: best-effort-medium
  storageClass: vsan-default
  plans:
    prod: {controlPlaneReplicas: 3, workerReplicas: 5}
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from cluster_orchestrator.core.constants import DEFAULT_NAMESPACE
from cluster_orchestrator.core.errors import ConfigError
from cluster_orchestrator.core.types import Plan
from cluster_orchestrator.render.renderer import DEFAULT_PLAN_PROFILES, PlanProfile, RenderDefaults

CONFIG_ENV_VAR = "CLUSTER_ORCHESTRATOR_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "cluster-orchestrator" / "config.yaml"


@dataclass(frozen=True)
class OrchestratorConfig:
    """
    Orchestrator configuration.

    feature_gates_file
    When set, feature gates are read from this file instead of the
    management plane.

    timeout_seconds
    Default caller timeout for client calls. None means wait forever.
    """

    kubeconfig: str = ""
    kube_context: str = ""
    namespace: str = DEFAULT_NAMESPACE
    plan: Plan = Plan.dev
    feature_gates_file: str = ""
    timeout_seconds: float | None = None
    wait_for_delete: bool = True
    log_level: str = "INFO"
    render: RenderDefaults = field(default_factory=RenderDefaults)


def _get_str(data: Mapping[str, Any], key: str, default: str) -> str:
    value = data.get(key, default)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a string")
    return value


def _get_bool(data: Mapping[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false")
    return value


def _get_non_negative_int(data: Mapping[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"{key} must be a non negative integer")
    return value


def _render_defaults_from_dict(data: Mapping[str, Any]) -> RenderDefaults:
    base = RenderDefaults()

    profiles: dict[Plan, PlanProfile] = dict(DEFAULT_PLAN_PROFILES)
    plans = data.get("plans") or {}
    if not isinstance(plans, dict):
        raise ConfigError("render.plans must be a mapping")
    for plan_name, raw in plans.items():
        try:
            plan = Plan(str(plan_name))
        except ValueError as exc:
            raise ConfigError(f"render.plans has unknown plan {plan_name!r}") from exc
        if not isinstance(raw, dict):
            raise ConfigError(f"render.plans.{plan_name} must be a mapping")
        current = profiles[plan]
        profiles[plan] = PlanProfile(
            control_plane_replicas=_get_non_negative_int(raw, "controlPlaneReplicas", current.control_plane_replicas),
            worker_replicas=_get_non_negative_int(raw, "workerReplicas", current.worker_replicas),
        )

    return RenderDefaults(
        control_plane_vm_class=_get_str(data, "controlPlaneVmClass", base.control_plane_vm_class),
        worker_vm_class=_get_str(data, "workerVmClass", base.worker_vm_class),
        storage_class=_get_str(data, "storageClass", base.storage_class),
        node_pool_name=_get_str(data, "nodePoolName", base.node_pool_name),
        worker_class=_get_str(data, "workerClass", base.worker_class),
        plan_profiles=profiles,
    )


def config_from_dict(data: Mapping[str, Any]) -> OrchestratorConfig:
    """Convert a parsed configuration mapping into OrchestratorConfig."""
    base = OrchestratorConfig()

    plan_raw = _get_str(data, "plan", base.plan.value)
    try:
        plan = Plan(plan_raw)
    except ValueError as exc:
        raise ConfigError(f"plan must be one of: dev, prod (got {plan_raw!r})") from exc

    timeout = data.get("timeoutSeconds", base.timeout_seconds)
    if timeout is not None:
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ConfigError("timeoutSeconds must be a positive number")
        timeout = float(timeout)

    render_raw = data.get("render") or {}
    if not isinstance(render_raw, dict):
        raise ConfigError("render must be a mapping")

    kubeconfig = _get_str(data, "kubeconfig", base.kubeconfig)

    return OrchestratorConfig(
        kubeconfig=os.path.expanduser(kubeconfig) if kubeconfig else "",
        kube_context=_get_str(data, "context", base.kube_context),
        namespace=_get_str(data, "namespace", base.namespace),
        plan=plan,
        feature_gates_file=_get_str(data, "featureGatesFile", base.feature_gates_file),
        timeout_seconds=timeout,
        wait_for_delete=_get_bool(data, "waitForDelete", base.wait_for_delete),
        log_level=_get_str(data, "logLevel", base.log_level).upper(),
        render=_render_defaults_from_dict(render_raw),
    )


def load_config(config_path: Path | str | None = None) -> OrchestratorConfig:
    """
    Load orchestrator configuration.

    Args:
        config_path: Path to a YAML file. See the module docstring for the
            lookup order when omitted.

    Returns:
        OrchestratorConfig instance

    Raises:
        ConfigError: If an explicitly named file is missing or invalid
    """
    explicit = config_path is not None or bool(os.environ.get(CONFIG_ENV_VAR))
    if config_path is None:
        config_path = os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH
    path = Path(config_path).expanduser()

    if not path.exists():
        if explicit:
            raise ConfigError(f"configuration file not found: {path}")
        return OrchestratorConfig()

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc

    if data is None:
        return OrchestratorConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"configuration file {path} must contain a mapping")

    return config_from_dict(data)

"""
Command line interface.

This is the composition layer of the system.
It wires configuration, the feature gate registry, the Kubernetes API client and the
lifecycle orchestrator. The orchestrator itself stays free of any environment
handling.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import click

from cluster_orchestrator import __version__
from cluster_orchestrator.client.kube import KubeCapabilitySource, KubeClusterClient, LazyCustomObjectsApi
from cluster_orchestrator.config import OrchestratorConfig, load_config
from cluster_orchestrator.core.errors import OrchestratorError
from cluster_orchestrator.core.serialization import dump_yaml, to_plain_dict
from cluster_orchestrator.core.types import ClassBasedShape, DeleteClusterOptions, Plan, RequestContext
from cluster_orchestrator.features.registry import FeatureGateRegistry
from cluster_orchestrator.features.sources import CapabilitySource, StaticCapabilitySource
from cluster_orchestrator.lifecycle.orchestrator import LifecycleOrchestrator, LifecycleResult
from cluster_orchestrator.logging_config import configure_logging
from cluster_orchestrator.render.renderer import ManifestRenderer
from cluster_orchestrator.spec.classifier import SpecClassifier
from cluster_orchestrator.spec.options import CreateOptions, resolve_create_request
from cluster_orchestrator.spec.source import FileSpecSource


def _custom_objects_api(config: OrchestratorConfig) -> LazyCustomObjectsApi:
    return LazyCustomObjectsApi(config.kubeconfig, config.kube_context)


def _cluster_client(config: OrchestratorConfig) -> KubeClusterClient:
    return KubeClusterClient(api=_custom_objects_api(config), wait_for_delete=config.wait_for_delete)


def _capability_source(config: OrchestratorConfig) -> CapabilitySource:
    if config.feature_gates_file:
        return StaticCapabilitySource(path=Path(config.feature_gates_file))
    return KubeCapabilitySource(api=_custom_objects_api(config))


def _build_orchestrator(config: OrchestratorConfig) -> LifecycleOrchestrator:
    registry = FeatureGateRegistry.from_source(_capability_source(config))
    client = _cluster_client(config)
    return LifecycleOrchestrator(
        client=client,
        registry=registry,
        renderer=ManifestRenderer(config.render),
    )


def _context(config: OrchestratorConfig, timeout: float | None) -> RequestContext:
    return RequestContext(timeout_seconds=timeout if timeout is not None else config.timeout_seconds)


def _finish(result: LifecycleResult) -> None:
    if result.error is not None:
        raise click.ClickException(str(result.error))


@click.group()
@click.version_option(version=__version__, prog_name="cluster-orchestrator")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Orchestrator config file.")
@click.option("--feature-gates", type=click.Path(dir_okay=False), help="Read feature gates from this file.")
@click.option("--kubeconfig", help="kubeconfig used to reach the management plane.")
@click.option("--context", "kube_context", help="kubeconfig context to use.")
@click.option("--log-level", help="Logging level, for example DEBUG or INFO.")
@click.pass_context
def main(ctx, config_path, feature_gates, kubeconfig, kube_context, log_level):
    """
    cluster-orchestrator - Workload cluster lifecycle against a management plane.
    """
    try:
        config = load_config(config_path)
    except OrchestratorError as exc:
        raise click.ClickException(str(exc)) from exc

    overrides = {}
    if feature_gates:
        overrides["feature_gates_file"] = feature_gates
    if kubeconfig:
        overrides["kubeconfig"] = kubeconfig
    if kube_context:
        overrides["kube_context"] = kube_context
    if log_level:
        overrides["log_level"] = log_level.upper()
    config = replace(config, **overrides)

    configure_logging(config.log_level)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@main.command()
@click.option("-f", "--file", "spec_file", required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--name", default="", help="Cluster name. Defaults to the name in the spec.")
@click.option("-n", "--namespace", default="", help="Namespace. Defaults to the spec, then the config.")
@click.option("--plan", type=click.Choice([p.value for p in Plan]), default=None, help="Topology plan.")
@click.option("--tkr", "tkr_version", default="", help="Runtime version for legacy specs.")
@click.option("--dry-run", "generate_only", is_flag=True, help="Print the manifest instead of creating it.")
@click.option("--timeout", type=float, default=None, help="Timeout in seconds for management plane calls.")
@click.pass_context
def create(ctx, spec_file, name, namespace, plan, tkr_version, generate_only, timeout):
    """Create a workload cluster from a spec file."""
    config: OrchestratorConfig = ctx.obj["config"]

    source = FileSpecSource(path=Path(spec_file)).read()
    options = CreateOptions(
        cluster_name=name,
        namespace=namespace,
        plan=plan or "",
        tkr_version=tkr_version,
        generate_only=generate_only,
    )

    try:
        request = resolve_create_request(source, options, config.namespace, config.plan)
        orchestrator = _build_orchestrator(config)
    except OrchestratorError as exc:
        raise click.ClickException(str(exc)) from exc

    result = orchestrator.create_cluster(request, _context(config, timeout))
    _finish(result)

    if not generate_only:
        click.echo(f"Created {result.manifest.kind} {request.cluster_name} in namespace {request.namespace}", err=True)


@main.command()
@click.argument("name")
@click.option("-n", "--namespace", default="", help="Namespace. Defaults to the config.")
@click.option("--timeout", type=float, default=None, help="Timeout in seconds for management plane calls.")
@click.pass_context
def delete(ctx, name, namespace, timeout):
    """Delete a workload cluster."""
    config: OrchestratorConfig = ctx.obj["config"]
    options = DeleteClusterOptions(cluster_name=name, namespace=namespace or config.namespace)

    client = _cluster_client(config)
    orchestrator = LifecycleOrchestrator(client=client, registry=FeatureGateRegistry())

    result = orchestrator.delete_cluster(options, _context(config, timeout))
    _finish(result)
    click.echo(f"Deleted cluster {options.cluster_name} in namespace {options.namespace}", err=True)


@main.command()
@click.option("-f", "--file", "spec_file", required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--tkr", "tkr_version", default="", help="Runtime version for legacy specs.")
def classify(spec_file, tkr_version):
    """Print the shape of a spec file."""
    source = FileSpecSource(path=Path(spec_file)).read()
    try:
        shape = SpecClassifier().classify(source, tkr_version)
    except OrchestratorError as exc:
        raise click.ClickException(str(exc)) from exc

    payload = {"shape": "ClassBased" if isinstance(shape, ClassBasedShape) else "Legacy"}
    payload.update(to_plain_dict(shape))
    click.echo(dump_yaml(payload), nl=False)


@main.command()
@click.option("-n", "--namespace", default="", help="Only show gates for this namespace.")
@click.pass_context
def features(ctx, namespace):
    """List feature gates known to the management plane."""
    config: OrchestratorConfig = ctx.obj["config"]
    try:
        registry = FeatureGateRegistry.from_source(_capability_source(config))
    except OrchestratorError as exc:
        raise click.ClickException(str(exc)) from exc

    for gate in registry.snapshot():
        if namespace and gate.namespace != namespace:
            continue
        state = "activated" if gate.activated else "deactivated"
        click.echo(f"{gate.namespace}\t{gate.name}\t{state}")


if __name__ == "__main__":
    main()

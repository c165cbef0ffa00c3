"""
Kubernetes access for the garbage collector: client setup, listing Terraform
resources and tearing down their Jobs.
"""

import os
from dataclasses import dataclass
from typing import List, Optional

from kubernetes import client, config as k8s_config
from kubernetes.client.rest import ApiException

from .config import (
    CRD_GROUP,
    CRD_VERSION,
    IN_CLUSTER_NAMESPACE_PATH,
    LABEL_JOB_RESOURCE_NAME,
)
from .errors import QueryError, SetupError
from .resources import TerraformResource


@dataclass
class KubeContext:
    """Everything the collector needs to talk to one namespace of a cluster."""
    custom_api: client.CustomObjectsApi
    batch_api: client.BatchV1Api
    namespace: str
    request_timeout: Optional[float] = None


def _in_cluster_namespace() -> Optional[str]:
    if not os.path.exists(IN_CLUSTER_NAMESPACE_PATH):
        return None
    with open(IN_CLUSTER_NAMESPACE_PATH, 'r') as f:
        return f.read().strip() or None


def _kubeconfig_namespace() -> Optional[str]:
    try:
        _, active = k8s_config.list_kube_config_contexts()
    except (k8s_config.ConfigException, FileNotFoundError):
        return None
    if not active:
        return None
    return (active.get('context') or {}).get('namespace')


def connect(namespace: str = '', request_timeout: Optional[float] = None) -> KubeContext:
    """Load cluster configuration and build the API clients.

    Tries in-cluster config first, then the local kubeconfig. When no
    namespace is given the ambient one is used: the pod's service account
    namespace in-cluster, otherwise the current kubeconfig context's.
    """
    in_cluster = True
    try:
        try:
            k8s_config.load_incluster_config()
        except k8s_config.ConfigException:
            in_cluster = False
            k8s_config.load_kube_config()
    except Exception as e:
        raise SetupError(f'failed to create kube client: {e}') from e

    if not namespace:
        ambient = _in_cluster_namespace() if in_cluster else _kubeconfig_namespace()
        namespace = ambient or 'default'

    return KubeContext(
        custom_api=client.CustomObjectsApi(),
        batch_api=client.BatchV1Api(),
        namespace=namespace,
        request_timeout=request_timeout,
    )


def list_terraforms(ctx: KubeContext, plural: str, selector: str) -> List[TerraformResource]:
    """List the custom resources matching a label selector.

    A 404 means the resource scope does not exist and yields an empty list.
    """
    try:
        result = ctx.custom_api.list_namespaced_custom_object(
            group=CRD_GROUP,
            version=CRD_VERSION,
            namespace=ctx.namespace,
            plural=plural,
            label_selector=selector,
            _request_timeout=ctx.request_timeout,
        )
    except ApiException as e:
        if e.status == 404:
            return []
        raise QueryError(
            f'failed to list {plural} in namespace {ctx.namespace} with selector {selector}: {e.reason}',
            namespace=ctx.namespace,
        ) from e
    except Exception as e:
        raise QueryError(
            f'failed to list {plural} in namespace {ctx.namespace} with selector {selector}: {e}',
            namespace=ctx.namespace,
        ) from e

    resources = []
    for item in result.get('items', []):
        try:
            resources.append(TerraformResource.from_dict(item))
        except ValueError as e:
            raise QueryError(f'invalid {plural} item in namespace {ctx.namespace}: {e}',
                             namespace=ctx.namespace) from e
    return resources


def delete_active_terraform_jobs(ctx: KubeContext, name: str) -> List[str]:
    """Delete the still running Jobs of a Terraform resource.

    Completed and failed Jobs are left alone. A Job that disappears between
    listing and deleting counts as deleted. Returns the names of the Jobs
    that were removed; ApiException propagates on any other failure.
    """
    jobs = ctx.batch_api.list_namespaced_job(
        namespace=ctx.namespace,
        label_selector=f'{LABEL_JOB_RESOURCE_NAME}={name}',
        _request_timeout=ctx.request_timeout,
    )

    deleted = []
    for job in jobs.items:
        if not (job.status and job.status.active):
            continue
        job_name = job.metadata.name
        print(f'deleting active Job {job_name} of Terraform {name}', flush=True)
        try:
            ctx.batch_api.delete_namespaced_job(
                name=job_name,
                namespace=ctx.namespace,
                propagation_policy='Background',
                _request_timeout=ctx.request_timeout,
            )
        except ApiException as e:
            if e.status != 404:
                raise
            print(f'Job {job_name} not found (already deleted)', flush=True)
        deleted.append(job_name)
    return deleted

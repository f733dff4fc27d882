# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Builders for the Kubernetes resource bodies of rendered objects.
"""
import logging
from typing import Dict, Any, List, Optional

from ..MODELS.topology import (
    TopologySpec, Service, StorageClaim, SecretRef, ConfigMapRef, ResourceSpec, WorkloadKind,
)

logger = logging.getLogger(__name__)

SELECTOR_LABEL = "app"
PART_OF_LABEL = "app.kubernetes.io/part-of"


def metadata(spec: TopologySpec, name: str, labels: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Builds object metadata carrying the topology's namespace and common labels.
    """
    meta: Dict[str, Any] = {'name': name}
    if spec.namespace:
        meta['namespace'] = spec.namespace
    merged = {PART_OF_LABEL: spec.name, **spec.labels, **(labels or {})}
    meta['labels'] = merged
    return meta


def secret_manifest(spec: TopologySpec, secret: SecretRef) -> Dict[str, Any]:
    missing = [k for k in secret.keys if k not in secret.values]
    if missing:
        logger.warning("Secret %s has no value for %s, rendering empty strings", secret.name, ", ".join(missing))
    return {
        'apiVersion': 'v1',
        'kind': 'Secret',
        'metadata': metadata(spec, secret.name),
        'type': 'Opaque',
        'stringData': {k: secret.values.get(k, '') for k in secret.keys},
    }


def config_map_manifest(spec: TopologySpec, config_map: ConfigMapRef) -> Dict[str, Any]:
    return {
        'apiVersion': 'v1',
        'kind': 'ConfigMap',
        'metadata': metadata(spec, config_map.name),
        'data': dict(config_map.data),
    }


def claim_manifest(spec: TopologySpec, claim: StorageClaim) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        'accessModes': [claim.access_mode.value],
        'resources': {'requests': {'storage': claim.size}},
    }
    if claim.storage_class:
        body['storageClassName'] = claim.storage_class
    return {
        'apiVersion': 'v1',
        'kind': 'PersistentVolumeClaim',
        'metadata': metadata(spec, claim.name),
        'spec': body,
    }


def _quantities(resources: ResourceSpec) -> Dict[str, str]:
    return resources.model_dump(exclude_none=True)


def container(svc: Service) -> Dict[str, Any]:
    """
    Builds the single container of a service's pod.
    """
    body: Dict[str, Any] = {'name': svc.name, 'image': svc.image}
    if svc.command:
        body['command'] = list(svc.command)
    if svc.args:
        body['args'] = list(svc.args)

    env: List[Dict[str, Any]] = []
    for variable, binding in svc.env.items():
        if binding.is_secret:
            ref = {'secretKeyRef': {'name': binding.secret, 'key': binding.resolved_key(variable)}}
            env.append({'name': variable, 'valueFrom': ref})
        elif binding.is_config_map:
            ref = {'configMapKeyRef': {'name': binding.config_map, 'key': binding.resolved_key(variable)}}
            env.append({'name': variable, 'valueFrom': ref})
        else:
            env.append({'name': variable, 'value': binding.value})
    if env:
        body['env'] = env

    if svc.ports:
        ports = []
        for p in svc.ports:
            port: Dict[str, Any] = {'containerPort': p.container_port}
            if p.name:
                port['name'] = p.name
            ports.append(port)
        body['ports'] = ports

    resources = {}
    requests, limits = _quantities(svc.resources.requests), _quantities(svc.resources.limits)
    if requests:
        resources['requests'] = requests
    if limits:
        resources['limits'] = limits
    if resources:
        body['resources'] = resources

    if svc.volumes:
        mounts = []
        for v in svc.volumes:
            mount: Dict[str, Any] = {'name': v.claim, 'mountPath': v.mount_path}
            if v.read_only:
                mount['readOnly'] = True
            mounts.append(mount)
        body['volumeMounts'] = mounts
    return body


def pod_spec(svc: Service) -> Dict[str, Any]:
    body: Dict[str, Any] = {'containers': [container(svc)]}
    claims = list(dict.fromkeys(svc.claim_names))
    if claims:
        body['volumes'] = [{'name': c, 'persistentVolumeClaim': {'claimName': c}} for c in claims]
    if svc.kind == WorkloadKind.JOB:
        body['restartPolicy'] = 'OnFailure'
    return body


def workload_manifest(spec: TopologySpec, svc: Service) -> Dict[str, Any]:
    """
    Builds the Deployment or Job running a service.
    """
    selector = {SELECTOR_LABEL: svc.name}
    labels = {**svc.labels, **selector}
    template = {
        'metadata': {'labels': {**spec.labels, **labels}},
        'spec': pod_spec(svc),
    }
    if svc.kind == WorkloadKind.JOB:
        return {
            'apiVersion': 'batch/v1',
            'kind': 'Job',
            'metadata': metadata(spec, svc.name, labels),
            'spec': {'parallelism': svc.replicas, 'template': template},
        }
    return {
        'apiVersion': 'apps/v1',
        'kind': 'Deployment',
        'metadata': metadata(spec, svc.name, labels),
        'spec': {
            'replicas': svc.replicas,
            'selector': {'matchLabels': selector},
            'template': template,
        },
    }


def endpoint_manifest(spec: TopologySpec, svc: Service) -> Dict[str, Any]:
    """
    Builds the Service exposing a workload's ports inside the cluster.
    """
    ports = []
    for p in svc.ports:
        port: Dict[str, Any] = {'port': p.port, 'targetPort': p.container_port}
        if p.name:
            port['name'] = p.name
        ports.append(port)
    return {
        'apiVersion': 'v1',
        'kind': 'Service',
        'metadata': metadata(spec, svc.name, {**svc.labels, SELECTOR_LABEL: svc.name}),
        'spec': {
            'selector': {SELECTOR_LABEL: svc.name},
            'ports': ports,
        },
    }

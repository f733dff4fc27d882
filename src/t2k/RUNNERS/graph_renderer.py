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
Expansion of a resolved topology into a dependency-ordered list of infrastructure objects.
"""
import logging
from typing import Dict, List

from ..MODELS.topology import TopologySpec, Service, WorkloadKind
from ..MODELS.infra_object import InfraObject, ObjectKind, Layer
from ..CONVERTERS import manifest_builder as build
from .dependency_resolver import DependencyResolver
from ..exceptions import CyclicDependencyError

logger = logging.getLogger(__name__)


def object_key(kind: ObjectKind, name: str) -> str:
    return f"{kind.value}/{name}"


class GraphRenderer:
    """
    Renders a topology into infrastructure objects.

    Objects are declared layer by layer (config, storage, compute, network),
    each layer in the topology's order, and then sorted so that every object
    follows the objects it depends on.
    """
    def __init__(self):
        self.resolver = DependencyResolver()

    def render(self, spec: TopologySpec) -> List[InfraObject]:
        """
        Renders a topology.

        :param spec: The resolved topology, normally validated beforehand.
        :return: Objects in apply order.
        :raises CyclicDependencyError: If services depend on each other in a cycle.
        """
        objects: Dict[str, InfraObject] = {}

        for secret in spec.secrets.values():
            if secret.external:
                continue
            self._add(objects, InfraObject(
                kind=ObjectKind.SECRET, name=secret.name, layer=Layer.CONFIG,
                manifest=build.secret_manifest(spec, secret),
            ))
        for config_map in spec.config_maps.values():
            self._add(objects, InfraObject(
                kind=ObjectKind.CONFIG_MAP, name=config_map.name, layer=Layer.CONFIG,
                manifest=build.config_map_manifest(spec, config_map),
            ))
        for claim in spec.storage.values():
            self._add(objects, InfraObject(
                kind=ObjectKind.PERSISTENT_VOLUME_CLAIM, name=claim.name, layer=Layer.STORAGE,
                manifest=build.claim_manifest(spec, claim),
            ))
        for svc in spec.services.values():
            self._add(objects, InfraObject(
                kind=self._workload_kind(svc), name=svc.name, layer=Layer.COMPUTE,
                depends_on=self._workload_dependencies(spec, svc),
                manifest=build.workload_manifest(spec, svc),
            ))
        for svc in spec.services.values():
            if not svc.exposed:
                continue
            self._add(objects, InfraObject(
                kind=ObjectKind.SERVICE, name=svc.name, layer=Layer.NETWORK,
                depends_on=[object_key(self._workload_kind(svc), svc.name)],
                manifest=build.endpoint_manifest(spec, svc),
            ))

        try:
            order = self.resolver.resolve_order({key: obj.depends_on for key, obj in objects.items()})
        except CyclicDependencyError as e:
            raise CyclicDependencyError(objects[e.name].name, e.cycle) from e
        logger.debug("Rendered %d object(s) for topology %s", len(order), spec.name)
        return [objects[key] for key in order]

    @staticmethod
    def _add(objects: Dict[str, InfraObject], obj: InfraObject):
        objects[obj.key] = obj

    @staticmethod
    def _workload_kind(svc: Service) -> ObjectKind:
        return ObjectKind.JOB if svc.kind == WorkloadKind.JOB else ObjectKind.DEPLOYMENT

    def _workload_dependencies(self, spec: TopologySpec, svc: Service) -> List[str]:
        """
        Collects the objects a workload needs: its claims, secrets, config maps
        and the workloads it depends on. Undeclared references are skipped.
        """
        deps: List[str] = []

        def add(key):
            if key not in deps:
                deps.append(key)

        for claim in svc.claim_names:
            if claim in spec.storage:
                add(object_key(ObjectKind.PERSISTENT_VOLUME_CLAIM, claim))
            else:
                logger.warning("Service %s mounts undeclared storage claim %s", svc.name, claim)

        for variable, binding in svc.env.items():
            if binding.is_secret:
                secret = spec.secrets.get(binding.secret)
                if secret is None:
                    logger.warning("Service %s references undeclared secret %s", svc.name, binding.secret)
                elif not secret.external:
                    add(object_key(ObjectKind.SECRET, secret.name))
            elif binding.is_config_map:
                if binding.config_map in spec.config_maps:
                    add(object_key(ObjectKind.CONFIG_MAP, binding.config_map))
                else:
                    logger.warning("Service %s references undeclared config map %s", svc.name, binding.config_map)

        for dep in svc.depends_on:
            other = spec.services.get(dep)
            if other is None:
                logger.warning("Service %s depends on undeclared service %s", svc.name, dep)
                continue
            add(object_key(self._workload_kind(other), other.name))

        return deps

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
Merging of environment overlays onto a base topology.
"""
import logging
from typing import Any, Iterable, Mapping, Union

from ..MODELS.topology import TopologySpec, Service, Resources, ResourceSpec
from ..MODELS.overlay import Overlay, ServiceOverride
from ..exceptions import UnknownServiceError, UnknownConfigMapError

logger = logging.getLogger(__name__)

OverlayLike = Union[Overlay, Mapping[str, Any], None]


class OverlayMerger:
    """
    Applies overlays to a topology. Inputs are never modified; every merge
    returns a new resolved spec.
    """
    def merge(self, base: TopologySpec, overlay: OverlayLike) -> TopologySpec:
        """
        Applies one overlay onto a base topology.

        :param base: The base topology.
        :param overlay: The overlay, or a mapping in the overlay document format.
        :return: The resolved topology. Services the overlay does not mention are unchanged.
        :raises UnknownServiceError: If the overlay overrides a service absent from base.
        :raises UnknownConfigMapError: If the overlay patches a config map absent from base.
        """
        if not isinstance(overlay, Overlay):
            overlay = Overlay.model_validate(dict(overlay or {}))

        for name in overlay.services:
            if name not in base.services:
                raise UnknownServiceError(name)
        for name in overlay.config_maps:
            if name not in base.config_maps:
                raise UnknownConfigMapError(name)

        if overlay.is_empty:
            return base

        logger.debug("Applying overlay %s to topology %s", overlay.name, base.name)

        services = {
            name: self._merge_service(svc, overlay.services[name]) if name in overlay.services else svc
            for name, svc in base.services.items()
        }
        config_maps = {
            name: cm.model_copy(update={'data': {**cm.data, **overlay.config_maps[name]}})
            if name in overlay.config_maps else cm
            for name, cm in base.config_maps.items()
        }

        update = {'services': services, 'config_maps': config_maps}
        if overlay.namespace:
            update['namespace'] = overlay.namespace
        if overlay.labels:
            update['labels'] = {**base.labels, **overlay.labels}
        return base.model_copy(update=update)

    def merge_all(self, base: TopologySpec, overlays: Iterable[OverlayLike]) -> TopologySpec:
        """
        Applies overlays left to right; later overlays win.
        """
        spec = base
        for overlay in overlays:
            spec = self.merge(spec, overlay)
        return spec

    def _merge_service(self, svc: Service, override: ServiceOverride) -> Service:
        update = {}
        if override.replicas is not None:
            update['replicas'] = override.replicas
        if override.image is not None:
            update['image'] = override.image
        if override.resources is not None:
            update['resources'] = Resources(
                requests=self._merge_resource(svc.resources.requests, override.resources.requests),
                limits=self._merge_resource(svc.resources.limits, override.resources.limits),
            )
        if override.env:
            update['env'] = {**svc.env, **override.env}
        if override.labels:
            update['labels'] = {**svc.labels, **override.labels}
        return svc.model_copy(update=update)

    @staticmethod
    def _merge_resource(base: ResourceSpec, override: ResourceSpec) -> ResourceSpec:
        return base.model_copy(update=override.model_dump(exclude_none=True))

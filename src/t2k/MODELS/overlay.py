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
Models for environment overlays applied on top of a base topology.
"""
from typing import Dict, Optional, Any
from pydantic import Field, field_validator

from .topology import FrozenModel, ResourceSpec, EnvBinding, scalar_values_to_str


class ResourcesOverride(FrozenModel):
    """
    Partial resource override. Unset quantities keep the base value.
    """
    requests: ResourceSpec = Field(default_factory=ResourceSpec)
    limits: ResourceSpec = Field(default_factory=ResourceSpec)


class ServiceOverride(FrozenModel):
    """
    Field-level overrides for one service. ``None`` means "keep the base value".
    """
    replicas: Optional[int] = None
    image: Optional[str] = None
    resources: Optional[ResourcesOverride] = None
    env: Dict[str, EnvBinding] = {}
    labels: Dict[str, str] = {}

    @field_validator('labels', mode='before')
    @classmethod
    def _label_values(cls, v: Any) -> Any:
        return scalar_values_to_str(v)


class Overlay(FrozenModel):
    """
    An environment-specific set of overrides, keyed by service name.
    """
    name: str = "overlay"
    namespace: Optional[str] = None
    labels: Dict[str, str] = {}
    services: Dict[str, ServiceOverride] = {}
    config_maps: Dict[str, Dict[str, str]] = {}

    @field_validator('labels', mode='before')
    @classmethod
    def _label_values(cls, v: Any) -> Any:
        return scalar_values_to_str(v)

    @field_validator('services', mode='before')
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, dict):
            return {k: ({} if val is None else val) for k, val in v.items()}
        return v

    @field_validator('config_maps', mode='before')
    @classmethod
    def _scalars_to_str(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, dict):
            return {
                name: {k: ('' if val is None else str(val)) for k, val in (data or {}).items()}
                if isinstance(data, dict) or data is None else data
                for name, data in v.items()
            }
        return v

    @property
    def is_empty(self) -> bool:
        return not (self.namespace or self.labels or self.services or self.config_maps)

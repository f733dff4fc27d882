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
Models for a deployment topology: services, storage claims, secrets and config maps.
"""
from typing import List, Dict, Optional, Any
from enum import Enum

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def scalar_to_str(v: Any) -> Any:
    """
    Converts YAML numbers and booleans to the strings Kubernetes expects.
    """
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, (int, float)):
        return str(v)
    return v


def scalar_values_to_str(v: Any) -> Any:
    if isinstance(v, dict):
        return {k: scalar_to_str(val) for k, val in v.items()}
    return v


class FrozenModel(BaseModel):
    """
    Base for all topology models. Instances are never mutated in place.
    """
    model_config = ConfigDict(frozen=True, extra='forbid')


class WorkloadKind(str, Enum):
    """
    Kubernetes workload a service is rendered as.
    """
    DEPLOYMENT = "Deployment"
    JOB = "Job"


class AccessMode(str, Enum):
    """
    Access modes for persistent volume claims.
    """
    READ_WRITE_ONCE = "ReadWriteOnce"
    READ_ONLY_MANY = "ReadOnlyMany"
    READ_WRITE_MANY = "ReadWriteMany"
    READ_WRITE_ONCE_POD = "ReadWriteOncePod"


class ResourceSpec(FrozenModel):
    """
    CPU and memory quantities, e.g. cpu="500m", memory="1Gi".
    """
    cpu: Optional[str] = None
    memory: Optional[str] = None

    @field_validator('cpu', 'memory', mode='before')
    @classmethod
    def _quantity_to_str(cls, v: Any) -> Any:
        # YAML turns `cpu: 1` into an int
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class Resources(FrozenModel):
    """
    Resource requests and limits of a service's container.
    """
    requests: ResourceSpec = Field(default_factory=ResourceSpec)
    limits: ResourceSpec = Field(default_factory=ResourceSpec)


class EnvBinding(FrozenModel):
    """
    Value of one environment variable: a literal, a secret key or a config map key.

    A plain scalar is accepted as shorthand for a literal value.
    """
    value: Optional[str] = None
    secret: Optional[str] = None
    config_map: Optional[str] = None
    key: Optional[str] = None

    @model_validator(mode='before')
    @classmethod
    def _from_scalar(cls, data: Any) -> Any:
        if data is None:
            return {'value': ''}
        if isinstance(data, (str, int, float)):
            return {'value': scalar_to_str(data)}
        return data

    @field_validator('value', 'key', mode='before')
    @classmethod
    def _scalar_to_str(cls, v: Any) -> Any:
        return scalar_to_str(v)

    @model_validator(mode='after')
    def _single_source(self) -> 'EnvBinding':
        sources = [s for s in (self.value, self.secret, self.config_map) if s is not None]
        if len(sources) != 1:
            raise ValueError("an environment binding needs exactly one of value, secret or config_map")
        if self.key is not None and self.value is not None:
            raise ValueError("'key' only applies to secret and config_map bindings")
        return self

    @property
    def is_secret(self) -> bool:
        return self.secret is not None

    @property
    def is_config_map(self) -> bool:
        return self.config_map is not None

    def resolved_key(self, variable: str) -> str:
        """
        Key looked up in the secret or config map, defaulting to the variable name.
        """
        return self.key or variable


class VolumeMount(FrozenModel):
    """
    Mounts a declared storage claim into a service.
    """
    claim: str
    mount_path: str
    read_only: bool = False


class ServicePort(FrozenModel):
    """
    A port the service listens on and exposes through its network endpoint.
    """
    port: int
    target_port: Optional[int] = None
    name: Optional[str] = None

    @model_validator(mode='before')
    @classmethod
    def _from_int(cls, data: Any) -> Any:
        if isinstance(data, int) and not isinstance(data, bool):
            return {'port': data}
        if isinstance(data, str) and ':' in data:
            port, target = data.split(':', 1)
            return {'port': int(port), 'target_port': int(target)}
        if isinstance(data, str):
            return {'port': int(data)}
        return data

    @property
    def container_port(self) -> int:
        return self.target_port if self.target_port is not None else self.port


class Service(FrozenModel):
    """
    The full definition of a single service of the topology.
    """
    name: str
    image: str
    kind: WorkloadKind = WorkloadKind.DEPLOYMENT
    replicas: int = 1

    # Execution
    command: List[str] = []
    args: List[str] = []

    # Resources
    resources: Resources = Field(default_factory=Resources)

    # Environment
    env: Dict[str, EnvBinding] = {}

    # Storage
    volumes: List[VolumeMount] = []

    # Networking
    ports: List[ServicePort] = []

    # Ordering
    depends_on: List[str] = []

    # Metadata
    labels: Dict[str, str] = {}

    @field_validator('labels', mode='before')
    @classmethod
    def _label_values(cls, v: Any) -> Any:
        return scalar_values_to_str(v)

    @field_validator('command', 'args', mode='before')
    @classmethod
    def _to_list(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    @property
    def claim_names(self) -> List[str]:
        return [v.claim for v in self.volumes]

    @property
    def exposed(self) -> bool:
        return bool(self.ports)


class StorageClaim(FrozenModel):
    """
    A persistent volume claim.
    """
    name: str
    size: str
    access_mode: AccessMode = AccessMode.READ_WRITE_ONCE
    storage_class: Optional[str] = None

    @field_validator('size', mode='before')
    @classmethod
    def _size_to_str(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class SecretRef(FrozenModel):
    """
    A secret and the keys it must provide.

    ``values`` holds the contents loaded from ``env_file``; it is left out of
    reprs and dumps.
    """
    name: str
    keys: List[str] = []
    env_file: Optional[str] = None
    external: bool = False
    values: Dict[str, str] = Field(default={}, repr=False, exclude=True)

    def has_key(self, key: str) -> bool:
        return key in self.keys or key in self.values


class ConfigMapRef(FrozenModel):
    """
    A config map with literal data entries.
    """
    name: str
    data: Dict[str, str] = {}
    env_file: Optional[str] = None

    @field_validator('data', mode='before')
    @classmethod
    def _values_to_str(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {k: ('' if val is None else str(val)) for k, val in v.items()}
        return v


def _with_names(section: Any) -> Any:
    """
    Fills in ``name`` for mapping entries declared without one.
    """
    if not isinstance(section, dict):
        return section
    named = {}
    for key, entry in section.items():
        if isinstance(entry, dict) and 'name' not in entry:
            entry = dict(entry)
            entry['name'] = key
        elif entry is None:
            entry = {'name': key}
        named[key] = entry
    return named


class TopologySpec(FrozenModel):
    """
    Complete declaration of a deployment: every service, storage claim,
    secret and config map it is composed of. Mappings keep declaration order.
    """
    name: str = "default"
    namespace: Optional[str] = None
    labels: Dict[str, str] = {}
    services: Dict[str, Service] = {}
    storage: Dict[str, StorageClaim] = {}
    secrets: Dict[str, SecretRef] = {}
    config_maps: Dict[str, ConfigMapRef] = {}

    @field_validator('labels', mode='before')
    @classmethod
    def _label_values(cls, v: Any) -> Any:
        return scalar_values_to_str(v)

    @model_validator(mode='before')
    @classmethod
    def _fill_names(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            for section in ('services', 'storage', 'secrets', 'config_maps'):
                if data.get(section) is None:
                    data.pop(section, None)
                else:
                    data[section] = _with_names(data[section])
        return data

    @model_validator(mode='after')
    def _keys_match_names(self) -> 'TopologySpec':
        for section in ('services', 'storage', 'secrets', 'config_maps'):
            for key, entry in getattr(self, section).items():
                if key != entry.name:
                    raise ValueError(f"{section} entry '{key}' is named '{entry.name}'")
        return self

    def dump(self) -> str:
        """
        Serializes the spec to YAML with stable key ordering.

        :return: YAML text; identical specs always produce identical text.
        """
        data = self.model_dump(mode='json', exclude_defaults=True)
        return yaml.safe_dump(data, sort_keys=False, default_flow_style=False)

"""
Models for rendered infrastructure objects.
"""
from typing import List, Dict, Any
from enum import Enum
from pydantic import BaseModel, ConfigDict


class ObjectKind(str, Enum):
    """
    Kubernetes kinds t2k renders.
    """
    SECRET = "Secret"
    CONFIG_MAP = "ConfigMap"
    PERSISTENT_VOLUME_CLAIM = "PersistentVolumeClaim"
    DEPLOYMENT = "Deployment"
    JOB = "Job"
    SERVICE = "Service"


class Layer(int, Enum):
    """
    Coarse ordering of objects: configuration, storage, compute, network.
    """
    CONFIG = 0
    STORAGE = 1
    COMPUTE = 2
    NETWORK = 3


class InfraObject(BaseModel):
    """
    One deployable unit of configuration, ready to be handed to `kubectl apply`.
    """
    model_config = ConfigDict(frozen=True)

    kind: ObjectKind
    name: str
    layer: Layer
    depends_on: List[str] = []
    manifest: Dict[str, Any] = {}

    @property
    def key(self) -> str:
        return f"{self.kind.value}/{self.name}"

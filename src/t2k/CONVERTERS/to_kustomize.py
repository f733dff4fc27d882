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
Converters for writing rendered objects as manifests and a Kustomize directory.
"""
import logging
import os
from typing import List, Optional, Sequence

import yaml
from jinja2 import Template

from ..MODELS.infra_object import InfraObject

logger = logging.getLogger(__name__)

KUSTOMIZATION_TEMPLATE = """\
# Generated by t2k from topology {{ topology }}. Do not edit.
apiVersion: kustomize.config.k8s.io/v1beta1
kind: Kustomization
{% if namespace %}
namespace: {{ namespace }}
{% endif %}
resources:
{% for file in resources %}
  - {{ file }}
{% endfor %}
"""


def manifest_to_yaml(obj: InfraObject) -> str:
    """
    Dumps one object's manifest, keeping the builder's key order.
    """
    return yaml.safe_dump(obj.manifest, sort_keys=False, default_flow_style=False)


def to_stream(objects: Sequence[InfraObject]) -> str:
    """
    Joins manifests into one multi-document YAML stream in apply order.
    """
    return "---\n".join(manifest_to_yaml(obj) for obj in objects)


def manifest_filename(index: int, obj: InfraObject) -> str:
    return f"{index:03d}-{obj.kind.value.lower()}-{obj.name}.yaml"


class KustomizeConverter:
    """
    Writes rendered objects to a directory consumable by `kubectl apply -k`.
    """

    def __init__(self, objects: Sequence[InfraObject], topology: str = "default",
                 namespace: Optional[str] = None):
        """
        Initializes the Kustomize converter.

        :param objects: Rendered objects in apply order.
        :param topology: Name of the topology, recorded in the generated header.
        :param namespace: Namespace written to kustomization.yaml, if any.
        """
        self.objects = list(objects)
        self.topology = topology
        self.namespace = namespace
        self.template = Template(KUSTOMIZATION_TEMPLATE, trim_blocks=True, lstrip_blocks=True)

    def convert(self, output_dir: str = "dist") -> List[str]:
        """
        Generates one numbered manifest per object plus kustomization.yaml.

        :param output_dir: The directory where files will be created.
        :return: The manifest file names, in apply order.
        """
        os.makedirs(output_dir, exist_ok=True)

        files = []
        for index, obj in enumerate(self.objects):
            filename = manifest_filename(index, obj)
            with open(os.path.join(output_dir, filename), "w") as f:
                f.write(manifest_to_yaml(obj))
            files.append(filename)

        content = self.template.render(
            topology=self.topology,
            namespace=self.namespace,
            resources=files,
        )
        with open(os.path.join(output_dir, "kustomization.yaml"), "w") as f:
            f.write(content)

        logger.info("Wrote %d manifest(s) to %s", len(files), output_dir)
        return files

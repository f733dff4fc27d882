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
Parsers for topology and overlay YAML documents.
"""
import logging
import os
from typing import Dict, Any, List, Optional

import yaml
from pydantic import ValidationError

from ..MODELS.topology import TopologySpec
from ..MODELS.overlay import Overlay
from ..UTILS.string_interpolation import EnvironmentInterpolator
from ..exceptions import DuplicateNameError, TopologyParseError
from ..config import get_settings
from .env_parser import EnvParser

logger = logging.getLogger(__name__)


class _UniqueKeyLoader(yaml.SafeLoader):
    """
    Safe loader that rejects mappings with repeated keys instead of keeping the last one.
    """
    def construct_mapping(self, node, deep=False):
        seen = set()
        for key_node, _ in node.value:
            if key_node.tag == 'tag:yaml.org,2002:merge':
                # `<<` entries are flattened by SafeLoader; explicit keys may override them
                continue
            key = self.construct_object(key_node, deep=deep)
            try:
                hash(key)
            except TypeError:
                # SafeLoader reports unhashable keys itself
                continue
            if key in seen:
                raise DuplicateNameError(str(key), f"line {key_node.start_mark.line + 1}")
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


class DocumentParser:
    """
    Shared loading logic: interpolation, YAML parsing and model validation.
    """
    document = "document"

    def __init__(self, context: Optional[Dict[str, str]] = None, strict: Optional[bool] = None):
        """
        Initializes the parser with an optional environment context for interpolation.

        :param context: A dictionary of environment variables for interpolation.
        :param strict: Fail on unset variables, defaults to the T2K_STRICT_INTERPOLATION setting.
        """
        self.context = context if context is not None else dict(os.environ)
        self.strict = get_settings().strict_interpolation if strict is None else strict

    def _load(self, content: str, source: str) -> Dict[str, Any]:
        """
        Interpolates and loads a YAML document.

        :param content: YAML content.
        :param source: Name used in error messages.
        :return: The top-level mapping.
        """
        if self.strict:
            missing = EnvironmentInterpolator.missing_variables(content, self.context)
            if missing:
                raise TopologyParseError(source, f"Variables not found in context: {', '.join(missing)}")
        content = EnvironmentInterpolator.interpolate(content, self.context, strict=self.strict)

        try:
            data = yaml.load(content, Loader=_UniqueKeyLoader)
        except yaml.YAMLError as e:
            raise TopologyParseError(source, f"Invalid YAML in {self.document}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise TopologyParseError(source, f"A {self.document} must be a mapping, got {type(data).__name__}")
        return data

    def _validate(self, model, data: Dict[str, Any], source: str):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise TopologyParseError(source, f"Invalid {self.document} '{source}':\n{e}") from e


class TopologyParser(DocumentParser):
    """
    Parser for topology.yml files.
    """
    document = "topology"

    def parse(self, topology_path: str) -> TopologySpec:
        """
        Parses a topology file from a path. `env_file` entries resolve relative to it.

        :param topology_path: Path to the topology file.
        :return: Parsed topology.
        """
        with open(topology_path, 'r') as f:
            content = f.read()
        return self.parse_from_string(content, base_dir=os.path.dirname(os.path.abspath(topology_path)))

    def parse_from_string(self, content: str, base_dir: Optional[str] = None) -> TopologySpec:
        """
        Parses a topology from a string.

        :param content: YAML content of the topology.
        :param base_dir: Directory `env_file` paths are relative to, defaults to the cwd.
        :return: Parsed topology.
        """
        data = self._load(content, "topology")
        name = str(data.get('name') or 'default')
        base_dir = base_dir or os.getcwd()

        if not data.get('namespace') and get_settings().default_namespace:
            data['namespace'] = get_settings().default_namespace

        secrets = data.get('secrets') or {}
        if isinstance(secrets, dict):
            data['secrets'] = {k: self._load_secret(k, v, base_dir) for k, v in secrets.items()}

        config_maps = data.get('config_maps') or {}
        if isinstance(config_maps, dict):
            data['config_maps'] = {k: self._load_config_map(k, v, base_dir) for k, v in config_maps.items()}

        spec = self._validate(TopologySpec, data, name)
        logger.debug("Parsed topology %s with %d service(s)", spec.name, len(spec.services))
        return spec

    def _load_secret(self, name: str, spec: Any, base_dir: str) -> Any:
        """
        Loads the values of a secret backed by an env file and merges its keys
        with the explicitly declared ones.
        """
        if spec is None:
            spec = {}
        if not isinstance(spec, dict):
            return spec
        spec = dict(spec)
        if isinstance(spec.get('keys'), str):
            spec['keys'] = [spec['keys']]
        if not spec.get('env_file'):
            return spec

        values = self._read_env_file(name, spec['env_file'], base_dir)
        keys: List[str] = list(spec['keys']) if isinstance(spec.get('keys'), list) else []
        keys.extend(k for k in values if k not in keys)
        spec['keys'] = keys
        spec['values'] = values
        return spec

    def _load_config_map(self, name: str, spec: Any, base_dir: str) -> Any:
        if spec is None:
            spec = {}
        if not isinstance(spec, dict) or not spec.get('env_file'):
            return spec
        spec = dict(spec)
        data = self._read_env_file(name, spec['env_file'], base_dir)
        if isinstance(spec.get('data'), dict):
            data.update(spec['data'])
        spec['data'] = data
        return spec

    def _read_env_file(self, name: str, env_file: str, base_dir: str) -> Dict[str, str]:
        path = os.path.join(base_dir, str(env_file))
        try:
            return EnvParser.parse(path)
        except OSError as e:
            raise TopologyParseError(name, f"Cannot read env file {path} for '{name}': {e}") from e


class OverlayParser(DocumentParser):
    """
    Parser for overlay files.
    """
    document = "overlay"

    def parse(self, overlay_path: str) -> Overlay:
        """
        Parses an overlay file. Its name defaults to the file name without extension.

        :param overlay_path: Path to the overlay file.
        :return: Parsed overlay.
        """
        with open(overlay_path, 'r') as f:
            content = f.read()
        default_name = os.path.splitext(os.path.basename(overlay_path))[0]
        return self.parse_from_string(content, default_name=default_name)

    def parse_from_string(self, content: str, default_name: str = "overlay") -> Overlay:
        """
        Parses an overlay from a string.

        :param content: YAML content of the overlay.
        :param default_name: Name used when the document declares none.
        :return: Parsed overlay.
        """
        data = self._load(content, default_name)
        data.setdefault('name', default_name)
        return self._validate(Overlay, data, str(data['name']))

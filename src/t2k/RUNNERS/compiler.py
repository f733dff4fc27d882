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
The compile pipeline: merge overlays, validate, render.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from ..MODELS.topology import TopologySpec
from ..MODELS.infra_object import InfraObject
from ..MODELS.validation import ValidationIssue, has_errors
from ..MANAGERS.overlay_merger import OverlayMerger, OverlayLike
from ..VALIDATORS.topology_validator import Validator
from ..PARSERS.topology_parser import TopologyParser, OverlayParser
from ..exceptions import TopologyValidationError
from .graph_renderer import GraphRenderer

logger = logging.getLogger(__name__)


@dataclass
class CompileResult:
    """
    Output of a successful compilation.
    """
    spec: TopologySpec
    issues: List[ValidationIssue] = field(default_factory=list)
    objects: List[InfraObject] = field(default_factory=list)


class TopologyCompiler:
    """
    Runs the merge, validate and render stages in order.
    """
    def __init__(self):
        self.merger = OverlayMerger()
        self.validator = Validator()
        self.renderer = GraphRenderer()

    def compile(self, base: TopologySpec, overlays: Iterable[OverlayLike] = ()) -> CompileResult:
        """
        Compiles a topology and its overlays.

        :param base: The base topology.
        :param overlays: Overlays applied left to right.
        :return: The resolved spec, its warnings and the ordered objects.
        :raises TopologyValidationError: If validation reports errors; nothing is rendered.
        """
        spec = self.merger.merge_all(base, overlays)
        issues = self.validator.validate(spec)
        if has_errors(issues):
            raise TopologyValidationError(spec.name, issues)
        for issue in issues:
            logger.warning("%s", issue)
        return CompileResult(spec=spec, issues=issues, objects=self.renderer.render(spec))

    def compile_files(self, topology_path: str, overlay_paths: Sequence[str] = (),
                      parser: Optional[TopologyParser] = None) -> CompileResult:
        """
        Parses a topology file and overlay files, then compiles them.
        """
        parser = parser or TopologyParser()
        overlay_parser = OverlayParser(context=parser.context, strict=parser.strict)
        base = parser.parse(topology_path)
        overlays = [overlay_parser.parse(p) for p in overlay_paths]
        return self.compile(base, overlays)


def compile_topology(base: TopologySpec, overlays: Iterable[OverlayLike] = ()) -> CompileResult:
    """
    Convenience wrapper around TopologyCompiler.compile.
    """
    return TopologyCompiler().compile(base, overlays)

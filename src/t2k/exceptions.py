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
Errors raised while parsing, merging and rendering topologies.

Every error carries the name of the offending entity in ``name``.
"""
from typing import List, Optional, Sequence


class TopologyError(Exception):
    """
    Base class for all t2k errors.
    """
    def __init__(self, name: str, message: Optional[str] = None):
        self.name = name
        super().__init__(message or name)


class UnknownServiceError(TopologyError):
    """
    Raised when an overlay overrides a service the base topology does not declare.
    """
    def __init__(self, name: str):
        super().__init__(name, f"Overlay references unknown service '{name}'")


class UnknownConfigMapError(TopologyError):
    """
    Raised when an overlay patches a config map the base topology does not declare.
    """
    def __init__(self, name: str):
        super().__init__(name, f"Overlay references unknown config map '{name}'")


class CyclicDependencyError(TopologyError):
    """
    Raised when the infrastructure graph contains a dependency cycle.
    """
    def __init__(self, name: str, cycle: Sequence[str] = ()):
        self.cycle = list(cycle)
        path = " -> ".join(self.cycle) if self.cycle else name
        super().__init__(name, f"Circular dependency detected involving {name}: {path}")


class DuplicateNameError(TopologyError):
    """
    Raised when a document declares the same entity name twice.
    """
    def __init__(self, name: str, location: str = ""):
        self.location = location
        where = f" at {location}" if location else ""
        super().__init__(name, f"Duplicate name '{name}'{where}")


class TopologyParseError(TopologyError):
    """
    Raised when a topology or overlay document cannot be parsed.
    """


class TopologyValidationError(TopologyError):
    """
    Raised by the compiler when validation reports error-severity issues.
    """
    def __init__(self, name: str, issues: List):
        self.issues = list(issues)
        errors = [i for i in self.issues if i.severity == "error"]
        super().__init__(name, f"Topology '{name}' failed validation with {len(errors)} error(s)")

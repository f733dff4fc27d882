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
Consistency checks for resolved topologies.
"""
import logging
from decimal import Decimal
from typing import List, Optional

from ..MODELS.topology import TopologySpec, Service
from ..MODELS.validation import ValidationIssue, IssueCode, Severity
from ..UTILS.quantity import parse_quantity

logger = logging.getLogger(__name__)


class Validator:
    """
    Checks a topology for dangling references and out-of-range values.

    Every check runs; the caller gets all issues at once.
    """
    def validate(self, spec: TopologySpec) -> List[ValidationIssue]:
        """
        Validates a topology.

        Checks run in this order: storage references, secret and config map
        references, replica and resource values, service dependencies,
        requests against limits, unused storage claims.

        :param spec: The topology to check.
        :return: All issues found, empty if the topology is consistent.
        """
        issues: List[ValidationIssue] = []
        issues.extend(self.check_storage_references(spec))
        issues.extend(self.check_env_references(spec))
        issues.extend(self.check_values(spec))
        issues.extend(self.check_dependencies(spec))
        issues.extend(self.check_requests_within_limits(spec))
        issues.extend(self.check_unused_storage(spec))
        if issues:
            logger.debug("Topology %s has %d issue(s)", spec.name, len(issues))
        return issues

    def check_storage_references(self, spec: TopologySpec) -> List[ValidationIssue]:
        issues = []
        for svc in spec.services.values():
            for claim in svc.claim_names:
                if claim not in spec.storage:
                    issues.append(ValidationIssue(
                        code=IssueCode.UNKNOWN_STORAGE,
                        entity=svc.name,
                        message=f"mounts undeclared storage claim '{claim}'",
                    ))
        return issues

    def check_env_references(self, spec: TopologySpec) -> List[ValidationIssue]:
        issues = []
        for svc in spec.services.values():
            for variable, binding in svc.env.items():
                key = binding.resolved_key(variable)
                if binding.is_secret:
                    secret = spec.secrets.get(binding.secret)
                    if secret is None:
                        issues.append(ValidationIssue(
                            code=IssueCode.UNKNOWN_SECRET,
                            entity=svc.name,
                            message=f"{variable} references undeclared secret '{binding.secret}'",
                        ))
                    elif not secret.has_key(key):
                        issues.append(ValidationIssue(
                            code=IssueCode.UNKNOWN_SECRET_KEY,
                            entity=svc.name,
                            message=f"{variable} references key '{key}' missing from secret '{secret.name}'",
                        ))
                elif binding.is_config_map:
                    config_map = spec.config_maps.get(binding.config_map)
                    if config_map is None:
                        issues.append(ValidationIssue(
                            code=IssueCode.UNKNOWN_CONFIG_MAP,
                            entity=svc.name,
                            message=f"{variable} references undeclared config map '{binding.config_map}'",
                        ))
                    elif key not in config_map.data:
                        issues.append(ValidationIssue(
                            code=IssueCode.UNKNOWN_CONFIG_MAP_KEY,
                            entity=svc.name,
                            message=f"{variable} references key '{key}' missing from config map '{config_map.name}'",
                        ))
        return issues

    def check_values(self, spec: TopologySpec) -> List[ValidationIssue]:
        issues = []
        for svc in spec.services.values():
            if svc.replicas < 0:
                issues.append(ValidationIssue(
                    code=IssueCode.NEGATIVE_REPLICAS,
                    entity=svc.name,
                    message=f"replicas must be >= 0, got {svc.replicas}",
                ))
            for bound in ('requests', 'limits'):
                quantities = getattr(svc.resources, bound)
                for resource in ('cpu', 'memory'):
                    issue = self._check_quantity(svc.name, f"{bound}.{resource}", getattr(quantities, resource))
                    if issue:
                        issues.append(issue)
        for claim in spec.storage.values():
            issue = self._check_quantity(claim.name, "size", claim.size)
            if issue:
                issues.append(issue)
        return issues

    def check_dependencies(self, spec: TopologySpec) -> List[ValidationIssue]:
        issues = []
        for svc in spec.services.values():
            for dep in svc.depends_on:
                if dep == svc.name:
                    issues.append(ValidationIssue(
                        code=IssueCode.SELF_DEPENDENCY,
                        entity=svc.name,
                        message="depends on itself",
                    ))
                elif dep not in spec.services:
                    issues.append(ValidationIssue(
                        code=IssueCode.UNKNOWN_DEPENDENCY,
                        entity=svc.name,
                        message=f"depends on undeclared service '{dep}'",
                    ))
        return issues

    def check_requests_within_limits(self, spec: TopologySpec) -> List[ValidationIssue]:
        issues = []
        for svc in spec.services.values():
            for resource in ('cpu', 'memory'):
                request = self._quantity(getattr(svc.resources.requests, resource))
                limit = self._quantity(getattr(svc.resources.limits, resource))
                if request is not None and limit is not None and request > limit:
                    issues.append(ValidationIssue(
                        code=IssueCode.REQUEST_EXCEEDS_LIMIT,
                        entity=svc.name,
                        message=f"{resource} request exceeds its limit",
                        severity=Severity.WARNING,
                    ))
        return issues

    def check_unused_storage(self, spec: TopologySpec) -> List[ValidationIssue]:
        used = {claim for svc in spec.services.values() for claim in svc.claim_names}
        return [
            ValidationIssue(
                code=IssueCode.UNUSED_STORAGE,
                entity=name,
                message="storage claim is not mounted by any service",
                severity=Severity.WARNING,
            )
            for name in spec.storage
            if name not in used
        ]

    def _check_quantity(self, entity: str, field: str, value: Optional[str]) -> Optional[ValidationIssue]:
        if value is None:
            return None
        try:
            quantity = parse_quantity(value)
        except ValueError:
            return ValidationIssue(
                code=IssueCode.INVALID_QUANTITY,
                entity=entity,
                message=f"{field} is not a valid quantity: {value!r}",
            )
        if quantity < 0:
            return ValidationIssue(
                code=IssueCode.NEGATIVE_RESOURCE,
                entity=entity,
                message=f"{field} must be >= 0, got {value}",
            )
        return None

    @staticmethod
    def _quantity(value: Optional[str]) -> Optional[Decimal]:
        if value is None:
            return None
        try:
            return parse_quantity(value)
        except ValueError:
            return None

"""
Dependency resolution for infrastructure objects to determine apply order.
"""
import logging
from typing import List, Mapping, Sequence

from ..exceptions import CyclicDependencyError

logger = logging.getLogger(__name__)


class DependencyResolver:
    """
    Resolves the order in which objects must be applied based on their dependencies.
    """
    def resolve_order(self, dependencies: Mapping[str, Sequence[str]]) -> List[str]:
        """
        Determines the apply order using a depth-first topological sort.

        Nodes are visited in mapping order and each node's dependencies in
        mapping order too, so ties always fall back to declaration order.

        :param dependencies: Node name -> names it depends on, in declaration order.
        :return: Node names, every node after all of its dependencies.
        :raises CyclicDependencyError: If a circular dependency is detected.
        """
        position = {name: i for i, name in enumerate(dependencies)}

        ordered = []
        visited = set()
        path: List[str] = []

        def visit(name):
            """
            Recursive function for topological sort.
            """
            if name in visited:
                return
            if name in path:
                cycle = path[path.index(name):] + [name]
                raise CyclicDependencyError(name, cycle)
            path.append(name)
            for dep in sorted(set(dependencies[name]), key=lambda d: position.get(d, -1)):
                if dep in position:  # Only depend on declared nodes
                    visit(dep)
                else:
                    logger.warning("%s depends on undeclared %s, ignoring", name, dep)
            path.pop()
            visited.add(name)
            ordered.append(name)

        for name in dependencies:
            visit(name)

        return ordered

"""
Table dependency graph and import ordering
"""

from collections import deque
from typing import List

import networkx as nx

from ..database.models import SchemaModel
from ..errors import CycleError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class DependencyGraph:
    """Foreign key graph with edges pointing parent -> child.

    A MultiDiGraph is used so that every foreign key contributes its own
    edge; a table referencing the same parent twice has an in-degree of 2.
    """

    def __init__(self):
        self.graph = nx.MultiDiGraph()

    def add_table(self, name: str):
        self.graph.add_node(name)

    def add_dependency(self, parent: str, child: str, constraint_name: str = ''):
        self.graph.add_edge(parent, child, constraint=constraint_name)

    def __len__(self) -> int:
        return self.graph.number_of_nodes()

    def __contains__(self, name: str) -> bool:
        return name in self.graph

    @property
    def table_names(self) -> List[str]:
        return list(self.graph.nodes)

    def in_degree(self, name: str) -> int:
        return self.graph.in_degree(name)

    def children(self, name: str) -> List[str]:
        """Child tables, one entry per foreign key edge, in insertion order"""
        return [child for _, child in self.graph.out_edges(name)]


def build_graph(schema: SchemaModel) -> DependencyGraph:
    """Build the dependency graph of every table in the schema model"""
    dependency_graph = DependencyGraph()
    for table_name in sorted(schema):
        dependency_graph.add_table(table_name)

    for table_name in sorted(schema):
        for fk in schema[table_name].foreign_keys:
            if fk.table_name not in dependency_graph or fk.foreign_table_name not in dependency_graph:
                logger.warning(
                    f"Foreign key references non-existent table. "
                    f"Child: {fk.table_name}, Parent: {fk.foreign_table_name}"
                )
                continue
            dependency_graph.add_dependency(fk.foreign_table_name, fk.table_name,
                                            fk.constraint_name)

    return dependency_graph


def topological_sort(dependency_graph: DependencyGraph) -> List[str]:
    """Order tables so that every parent precedes its children (Kahn's algorithm).

    Tables without dependencies are seeded in lexicographic order and tables
    freed by the same dequeue are enqueued sorted, so an identical schema
    always yields an identical order. Raises CycleError if any table is left
    undrained.
    """
    in_degrees = {name: dependency_graph.in_degree(name) for name in dependency_graph.table_names}
    queue = deque(sorted(name for name, degree in in_degrees.items() if degree == 0))
    order: List[str] = []

    while queue:
        table_name = queue.popleft()
        order.append(table_name)

        freed = []
        for child in dependency_graph.children(table_name):
            in_degrees[child] -= 1
            if in_degrees[child] == 0:
                freed.append(child)
        queue.extend(sorted(freed))

    if len(order) != len(dependency_graph):
        raise CycleError(
            "cycle detected in table dependencies. Cannot determine a valid import order."
        )

    return order


def import_order(schema: SchemaModel) -> List[str]:
    """Tables of the schema in an order safe for inserting"""
    return topological_sort(build_graph(schema))

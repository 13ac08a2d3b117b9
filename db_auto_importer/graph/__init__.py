"""
Foreign key dependency graph
"""

from .dependency_graph import DependencyGraph, build_graph, topological_sort, import_order

__all__ = [
    'DependencyGraph',
    'build_graph',
    'topological_sort',
    'import_order'
]

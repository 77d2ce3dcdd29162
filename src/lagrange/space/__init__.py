"""Continuous Lagrange spaces on unstructured meshes.

Example
-------
>>> from lagrange.space import LagrangeMesh, sparsity_pattern
>>>
>>> mesh = LagrangeMesh.from_meshio("mesh.msh", polynomial_order=3)
>>> pattern = sparsity_pattern(mesh)
"""

from .mesh import LagrangeMesh, EntityLayout, reference_layout, weight_matrix
from .assembly import sparsity_pattern, dof_layout, interpolate
from .io import nodes_to_meshio, write_nodes

__all__ = [
    "LagrangeMesh",
    "EntityLayout",
    "reference_layout",
    "weight_matrix",
    "sparsity_pattern",
    "dof_layout",
    "interpolate",
    "nodes_to_meshio",
    "write_nodes",
]

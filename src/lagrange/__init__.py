"""Generic Lagrange points on reference elements.

Reference elements are built from three combinators (Point, Cone, Product);
for any such shape and polynomial order this package enumerates the Lagrange
points and maps each one to the sub-entity that owns it.

Main components:
- topology: Point/Cone/Product shapes, named reference elements
- points: point counts, lattice coordinates, classification, dof numbering
- space: continuous Lagrange spaces on meshio meshes (global dof numbering)
"""

from .errors import LagrangeError, InvalidIndex, MalformedTopology, CountOverflow
from .topology import (
    Topology,
    Point,
    Cone,
    Product,
    VERTEX,
    LINE,
    TRIANGLE,
    QUADRILATERAL,
    TETRAHEDRON,
    PYRAMID,
    PRISM,
    HEXAHEDRON,
    simplex,
    cube,
    topology_from_name,
    topology_name,
    reference_vertices,
    sub_entity_vertices,
    vertex_weights,
)
from .points import (
    LagrangePoint,
    LagrangePointSet,
    lagrange_point_set,
    point_count,
    point_coordinate,
    classify,
    entity_dof_number,
    num_dofs,
    max_dofs,
    height,
    reference_coordinate,
)

__all__ = [
    # Errors
    "LagrangeError",
    "InvalidIndex",
    "MalformedTopology",
    "CountOverflow",
    # Topology
    "Topology",
    "Point",
    "Cone",
    "Product",
    "VERTEX",
    "LINE",
    "TRIANGLE",
    "QUADRILATERAL",
    "TETRAHEDRON",
    "PYRAMID",
    "PRISM",
    "HEXAHEDRON",
    "simplex",
    "cube",
    "topology_from_name",
    "topology_name",
    "reference_vertices",
    "sub_entity_vertices",
    "vertex_weights",
    # Point sets
    "LagrangePoint",
    "LagrangePointSet",
    "lagrange_point_set",
    "point_count",
    "point_coordinate",
    "classify",
    "entity_dof_number",
    "num_dofs",
    "max_dofs",
    "height",
    "reference_coordinate",
]

"""Reference-element topologies built from Point, Cone and Product.

Every reference element is a finite composition of three combinators:

- ``Point()``: a single vertex (dimension 0)
- ``Cone(base)``: ``base`` extended by one apex vertex (iterating from a
  point gives the simplices)
- ``Product(first, second)``: the tensor product of two shapes (hypercubes
  and prisms)

Vertices and sub-entities are numbered recursively. A cone lists the
sub-entities of its base first, then the cones over the base sub-entities,
then the apex. A product of codimension ``c`` lists the blocks
``first(c - j) x second(j)`` for ``j = 0, 1, ...`` and, inside a block,
``i_first + i_second * n_first``.

Lattice coordinates are flat tuples: a cone stores ``(height, *base)``, a
product stores ``(*first, *second)``.
"""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from functools import lru_cache

import numpy as np
from numpy.typing import NDArray

from .errors import InvalidIndex, MalformedTopology


class Topology:
    """Common base of the three combinators."""

    @property
    def dimension(self) -> int:
        return _dimension(self)

    def num_sub_entities(self, codim: int) -> int:
        """Number of sub-entities of the given codimension (0 outside ``[0, dim]``)."""
        return _num_sub_entities(self, codim)

    @property
    def num_vertices(self) -> int:
        return _num_sub_entities(self, self.dimension)


@dataclass(frozen=True)
class Point(Topology):
    def __repr__(self) -> str:
        return "Point()"


@dataclass(frozen=True)
class Cone(Topology):
    base: Topology

    def __post_init__(self) -> None:
        check_topology(self.base)

    def __repr__(self) -> str:
        return f"Cone({self.base!r})"


@dataclass(frozen=True)
class Product(Topology):
    first: Topology
    second: Topology

    def __post_init__(self) -> None:
        check_topology(self.first)
        check_topology(self.second)

    def __repr__(self) -> str:
        return f"Product({self.first!r}, {self.second!r})"


def check_topology(topology) -> Topology:
    if not isinstance(topology, (Point, Cone, Product)):
        raise MalformedTopology(
            f"expected Point, Cone or Product, got {type(topology).__name__}"
        )
    return topology


@lru_cache(maxsize=None)
def _dimension(topology: Topology) -> int:
    if isinstance(topology, Point):
        return 0
    if isinstance(topology, Cone):
        return _dimension(topology.base) + 1
    if isinstance(topology, Product):
        return _dimension(topology.first) + _dimension(topology.second)
    raise MalformedTopology(f"unknown topology {topology!r}")


@lru_cache(maxsize=None)
def _num_sub_entities(topology: Topology, codim: int) -> int:
    dim = _dimension(topology)
    if codim < 0 or codim > dim:
        return 0
    if isinstance(topology, Point):
        return 1
    if isinstance(topology, Cone):
        base = topology.base
        apex = 1 if codim == dim else 0
        return _num_sub_entities(base, codim - 1) + _num_sub_entities(base, codim) + apex
    if isinstance(topology, Product):
        return sum(
            _num_sub_entities(topology.first, codim - j) * _num_sub_entities(topology.second, j)
            for j in range(codim + 1)
        )
    raise MalformedTopology(f"unknown topology {topology!r}")


# Named reference elements
VERTEX = Point()
LINE = Cone(VERTEX)
TRIANGLE = Cone(LINE)
QUADRILATERAL = Product(LINE, LINE)
TETRAHEDRON = Cone(TRIANGLE)
PYRAMID = Cone(QUADRILATERAL)
PRISM = Product(TRIANGLE, LINE)
HEXAHEDRON = Product(QUADRILATERAL, LINE)

TOPOLOGIES = {
    "vertex": VERTEX,
    "line": LINE,
    "triangle": TRIANGLE,
    "quadrilateral": QUADRILATERAL,
    "tetrahedron": TETRAHEDRON,
    "pyramid": PYRAMID,
    "prism": PRISM,
    "hexahedron": HEXAHEDRON,
}

# meshio cell type -> (reference element name, meshio-to-generic vertex permutation)
MESHIO_CELL_TYPES = {
    "vertex": ("vertex", [0]),
    "line": ("line", [0, 1]),
    "triangle": ("triangle", [0, 1, 2]),
    "quad": ("quadrilateral", [0, 1, 3, 2]),
    "tetra": ("tetrahedron", [0, 1, 2, 3]),
    "pyramid": ("pyramid", [0, 1, 3, 2, 4]),
    "wedge": ("prism", [0, 1, 2, 3, 4, 5]),
    "hexahedron": ("hexahedron", [0, 1, 3, 2, 4, 5, 7, 6]),
}


def simplex(dim: int) -> Topology:
    """The ``dim``-simplex as an iterated cone over a point."""
    if dim < 0:
        raise ValueError(f"dimension must be non-negative, got {dim}")
    topology: Topology = VERTEX
    for _ in range(dim):
        topology = Cone(topology)
    return topology


def cube(dim: int) -> Topology:
    """The ``dim``-cube as an iterated product of lines."""
    if dim < 0:
        raise ValueError(f"dimension must be non-negative, got {dim}")
    if dim == 0:
        return VERTEX
    topology: Topology = LINE
    for _ in range(dim - 1):
        topology = Product(topology, LINE)
    return topology


def topology_from_name(name: str) -> Topology:
    """Look up a reference element by name (meshio cell type names accepted)."""
    key = name.lower()
    if key in MESHIO_CELL_TYPES:
        key = MESHIO_CELL_TYPES[key][0]
    if key not in TOPOLOGIES:
        raise ValueError(f"Unknown reference element: {name}")
    return TOPOLOGIES[key]


def topology_name(topology: Topology) -> str:
    """Name of a reference element, or its structural repr if unnamed."""
    for name, known in TOPOLOGIES.items():
        if known == topology:
            return name
    return repr(topology)


@lru_cache(maxsize=None)
def _vertex_lattice(topology: Topology) -> tuple[tuple[int, ...], ...]:
    if isinstance(topology, Point):
        return ((),)
    if isinstance(topology, Cone):
        base = _vertex_lattice(topology.base)
        apex = (1,) + (0,) * _dimension(topology.base)
        return tuple((0,) + v for v in base) + (apex,)
    if isinstance(topology, Product):
        first = _vertex_lattice(topology.first)
        second = _vertex_lattice(topology.second)
        return tuple(a + b for b in second for a in first)
    raise MalformedTopology(f"unknown topology {topology!r}")


def reference_vertices(topology: Topology) -> NDArray[np.float64]:
    """Vertex coordinates of the unit reference element, shape ``(n_vertices, dim)``."""
    check_topology(topology)
    vertices = _vertex_lattice(topology)
    return np.array(vertices, dtype=np.float64).reshape(len(vertices), _dimension(topology))


@lru_cache(maxsize=None)
def _sub_entity_vertices(topology: Topology, codim: int, sub_entity: int) -> tuple[int, ...]:
    if isinstance(topology, Point):
        return (0,)
    if isinstance(topology, Cone):
        base = topology.base
        n_base = _num_sub_entities(base, _dimension(base))
        if codim == 0:
            return tuple(range(n_base + 1))
        on_base = _num_sub_entities(base, codim - 1)
        if sub_entity < on_base:
            return _sub_entity_vertices(base, codim - 1, sub_entity)
        sub_entity -= on_base
        if codim == _dimension(topology):
            return (n_base,)
        return _sub_entity_vertices(base, codim, sub_entity) + (n_base,)
    if isinstance(topology, Product):
        first, second = topology.first, topology.second
        for j in range(codim + 1):
            block = _num_sub_entities(first, codim - j) * _num_sub_entities(second, j)
            if sub_entity < block:
                break
            sub_entity -= block
        n = _num_sub_entities(first, codim - j)
        n_first = _num_sub_entities(first, _dimension(first))
        first_vertices = _sub_entity_vertices(first, codim - j, sub_entity % n)
        second_vertices = _sub_entity_vertices(second, j, sub_entity // n)
        return tuple(a + b * n_first for b in second_vertices for a in first_vertices)
    raise MalformedTopology(f"unknown topology {topology!r}")


def sub_entity_vertices(topology: Topology, codim: int, sub_entity: int) -> tuple[int, ...]:
    """Local vertex indices spanning sub-entity ``(codim, sub_entity)``."""
    check_topology(topology)
    if not 0 <= codim <= topology.dimension:
        raise InvalidIndex(f"codim {codim} out of range for {topology!r}")
    if not 0 <= sub_entity < topology.num_sub_entities(codim):
        raise InvalidIndex(f"sub-entity {sub_entity} out of range for codim {codim}")
    return _sub_entity_vertices(topology, codim, sub_entity)


def _vertex_weights(topology: Topology, x: tuple[Fraction, ...]) -> list[Fraction]:
    if isinstance(topology, Point):
        return [Fraction(1)]
    if isinstance(topology, Cone):
        base = topology.base
        t = x[0]
        if t == 1:
            return [Fraction(0)] * _num_sub_entities(base, _dimension(base)) + [Fraction(1)]
        scale = 1 - t
        base_weights = _vertex_weights(base, tuple(xi / scale for xi in x[1:]))
        return [scale * w for w in base_weights] + [t]
    if isinstance(topology, Product):
        n = _dimension(topology.first)
        first = _vertex_weights(topology.first, x[:n])
        second = _vertex_weights(topology.second, x[n:])
        return [a * b for b in second for a in first]
    raise MalformedTopology(f"unknown topology {topology!r}")


def vertex_weights(topology: Topology, coordinate) -> list[Fraction]:
    """Exact weights of each vertex at a reference coordinate.

    Barycentric on simplices, multilinear on cubes and their products. The
    weights sum to one and restrict to the weights of any sub-entity the
    coordinate lies on.
    """
    check_topology(topology)
    x = tuple(Fraction(c) for c in coordinate)
    if len(x) != topology.dimension:
        raise InvalidIndex(f"coordinate {coordinate} has wrong length for {topology!r}")
    return _vertex_weights(topology, x)

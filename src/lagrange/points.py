"""Lagrange points of generic reference elements.

For a topology and a polynomial order ``p`` the Lagrange points are the
lattice points of the reference element with spacing ``1/p``. Each point is
owned by exactly one sub-entity (vertex, edge, face, cell) and gets a local
dof number inside that sub-entity.

The point set of ``Cone(base)`` at order ``p`` is built from layers: the base
points at order ``p`` (height 0), then the points of ``Cone(base)`` at order
``p - 1`` lifted by one. Inside that lifted set, which is an internal part of
the element rather than an element of its own, layer ``k`` holds the base
points at order ``p - k`` and the last layer is the apex. The ``bottom``
flag marks the outermost cone; a base shape embedded in a cone is always
classified as an element of its own.

A product lays its points out tensor-wise, ``index = i1 + i2 * n1``.
"""

from __future__ import annotations

import logging
import operator
from dataclasses import dataclass, field
from fractions import Fraction
from functools import cached_property, lru_cache

import numpy as np
from numpy.typing import NDArray

from .errors import InvalidIndex, MalformedTopology, check_count
from .topology import Cone, Point, Product, Topology, check_topology

log = logging.getLogger(__name__)

Coordinate = tuple[int, ...]


def _malformed(topology) -> MalformedTopology:
    return MalformedTopology(f"unknown topology {topology!r}")


# ---------------------------------------------------------------------------
# Recursive kernels (arguments are trusted)
# ---------------------------------------------------------------------------


@lru_cache(maxsize=None)
def _count(topology: Topology, order: int) -> int:
    if isinstance(topology, Point):
        return 1
    if isinstance(topology, Cone):
        # one base layer per order 1..p, plus the apex
        return 1 + sum(_count(topology.base, q) for q in range(1, order + 1))
    if isinstance(topology, Product):
        return _count(topology.first, order) * _count(topology.second, order)
    raise _malformed(topology)


def _coordinate(topology: Topology, order: int, index: int) -> Coordinate:
    if isinstance(topology, Point):
        return ()
    if isinstance(topology, Cone):
        base = topology.base
        height = 0
        for q in range(order, 0, -1):
            n = _count(base, q)
            if index < n:
                return (height,) + _coordinate(base, q, index)
            index -= n
            height += 1
        return (height,) + (0,) * base.dimension
    if isinstance(topology, Product):
        n = _count(topology.first, order)
        return _coordinate(topology.first, order, index % n) + _coordinate(
            topology.second, order, index // n
        )
    raise _malformed(topology)


def _classify(
    topology: Topology, order: int, x: Coordinate, bottom: bool = True
) -> tuple[int, int, int]:
    if isinstance(topology, Point):
        return 0, 0, 0
    if isinstance(topology, Cone):
        base = topology.base
        dim = topology.dimension
        if order == 0:
            return (0 if bottom else dim), 0, 0

        height = x[0]
        layer = order - height
        if layer == 0:
            codim, sub_entity, dof = dim, 0, 0
        else:
            codim, sub_entity, dof = _classify(base, layer, x[1:])

        if height == 0:
            return (codim + 1 if bottom else codim), sub_entity, dof

        # every internal layer below this one holds base dofs of the same entity
        top = order if bottom else order + 1
        for q in range(layer + 1, top):
            dof += _entity_dofs(base, q, codim, sub_entity)
        if bottom and codim > 0:
            sub_entity += base.num_sub_entities(codim - 1)
        return codim, sub_entity, dof
    if isinstance(topology, Product):
        first, second = topology.first, topology.second
        n = first.dimension
        c1, s1, d1 = _classify(first, order, x[:n])
        c2, s2, d2 = _classify(second, order, x[n:])
        codim = c1 + c2
        sub_entity = sum(
            first.num_sub_entities(codim - j) * second.num_sub_entities(j) for j in range(c2)
        )
        sub_entity += s1 + s2 * first.num_sub_entities(c1)
        dof = d1 + d2 * _entity_dofs(first, order, c1, s1)
        return codim, sub_entity, dof
    raise _malformed(topology)


def _product_split(topology: Product, codim: int, sub_entity: int):
    """Locate ``(codim, sub_entity)`` of a product in its factor-codim blocks.

    Returns ``(first_codim, first_sub, second_codim, second_sub)`` or ``None``
    when the sub-entity does not exist.
    """
    first, second = topology.first, topology.second
    for j in range(codim + 1):
        n = first.num_sub_entities(codim - j)
        block = n * second.num_sub_entities(j)
        if sub_entity < block:
            return codim - j, sub_entity % n, j, sub_entity // n
        sub_entity -= block
    return None


@lru_cache(maxsize=None)
def _entity_dofs(
    topology: Topology, order: int, codim: int, sub_entity: int, bottom: bool = True
) -> int:
    """Number of dofs on sub-entity ``(codim, sub_entity)``; 0 if it does not exist."""
    if codim < 0 or codim > topology.dimension:
        return 0
    if isinstance(topology, Point):
        return 1 if codim == 0 else 0
    if isinstance(topology, Cone):
        base = topology.base
        dim = topology.dimension
        if order == 0:
            return 1 if codim == (0 if bottom else dim) else 0
        if bottom:
            on_base = base.num_sub_entities(codim - 1) if codim > 0 else 0
            if sub_entity < on_base:
                return _entity_dofs(base, order, codim - 1, sub_entity)
            return _entity_dofs(topology, order - 1, codim, sub_entity - on_base, False)
        count = 1 if codim == dim else 0
        for q in range(1, order + 1):
            count += _entity_dofs(base, q, codim, sub_entity)
        return count
    if isinstance(topology, Product):
        split = _product_split(topology, codim, sub_entity)
        if split is None:
            return 0
        c1, s1, c2, s2 = split
        return _entity_dofs(topology.first, order, c1, s1) * _entity_dofs(
            topology.second, order, c2, s2
        )
    raise _malformed(topology)


@lru_cache(maxsize=None)
def _codim_dofs(topology: Topology, order: int, codim: int, bottom: bool = True) -> int:
    """Total number of dofs on all sub-entities of one codimension."""
    if codim < 0 or codim > topology.dimension:
        return 0
    if isinstance(topology, Point):
        return 1 if codim == 0 else 0
    if isinstance(topology, Cone):
        base = topology.base
        dim = topology.dimension
        if order == 0:
            return 1 if codim == (0 if bottom else dim) else 0
        if bottom:
            count = _codim_dofs(topology, order - 1, codim, False)
            if codim > 0:
                count += _codim_dofs(base, order, codim - 1)
            return count
        count = 1 if codim == dim else 0
        for q in range(1, order + 1):
            count += _codim_dofs(base, q, codim)
        return count
    if isinstance(topology, Product):
        return sum(
            _codim_dofs(topology.first, order, codim - j) * _codim_dofs(topology.second, order, j)
            for j in range(codim + 1)
        )
    raise _malformed(topology)


@lru_cache(maxsize=None)
def _max_dofs(topology: Topology, order: int, codim: int, bottom: bool = True) -> int:
    """Largest number of dofs carried by a single sub-entity of one codimension."""
    if codim < 0 or codim > topology.dimension:
        return 0
    if isinstance(topology, Point):
        return 1 if codim == 0 else 0
    if isinstance(topology, Cone):
        base = topology.base
        dim = topology.dimension
        if order == 0:
            return 1 if codim == (0 if bottom else dim) else 0
        if bottom:
            lifted = _max_dofs(topology, order - 1, codim, False)
            if codim == 0:
                return lifted
            return max(_max_dofs(base, order, codim - 1), lifted)
        count = 1 if codim == dim else 0
        for q in range(1, order + 1):
            count += _max_dofs(base, q, codim)
        return count
    if isinstance(topology, Product):
        return max(
            _max_dofs(topology.first, order, codim - j) * _max_dofs(topology.second, order, j)
            for j in range(codim + 1)
        )
    raise _malformed(topology)


def _entity_dof_number(
    topology: Topology, order: int, codim: int, sub_entity: int, dof: int, bottom: bool = True
) -> int:
    if isinstance(topology, Point):
        return 0
    if isinstance(topology, Cone):
        base = topology.base
        if order == 0:
            return 0
        offset = 0
        if bottom:
            on_base = base.num_sub_entities(codim - 1) if codim > 0 else 0
            if sub_entity < on_base:
                return _entity_dof_number(base, order, codim - 1, sub_entity, dof)
            sub_entity -= on_base
            offset = _count(base, order)
            order -= 1
        # walk the internal layers, each holding a slice of the entity's dofs
        for q in range(order, 0, -1):
            n = _entity_dofs(base, q, codim, sub_entity)
            if dof < n:
                return offset + _entity_dof_number(base, q, codim, sub_entity, dof)
            dof -= n
            offset += _count(base, q)
        return offset
    if isinstance(topology, Product):
        first, second = topology.first, topology.second
        c1, s1, c2, s2 = _product_split(topology, codim, sub_entity)
        m = _entity_dofs(first, order, c1, s1)
        i1 = _entity_dof_number(first, order, c1, s1, dof % m)
        i2 = _entity_dof_number(second, order, c2, s2, dof // m)
        return i1 + i2 * _count(first, order)
    raise _malformed(topology)


def _height(topology: Topology, order: int, x: Coordinate) -> int:
    if isinstance(topology, Point):
        return order
    if isinstance(topology, Cone):
        if order == 0:
            return 0
        return _height(topology.base, order - x[0], x[1:])
    if isinstance(topology, Product):
        n = topology.first.dimension
        return min(_height(topology.first, order, x[:n]), _height(topology.second, order, x[n:]))
    raise _malformed(topology)


def _is_lattice_point(topology: Topology, order: int, x: Coordinate) -> bool:
    if isinstance(topology, Point):
        return len(x) == 0
    if isinstance(topology, Cone):
        return len(x) > 0 and 0 <= x[0] <= order and _is_lattice_point(
            topology.base, order - x[0], x[1:]
        )
    if isinstance(topology, Product):
        n = topology.first.dimension
        return _is_lattice_point(topology.first, order, x[:n]) and _is_lattice_point(
            topology.second, order, x[n:]
        )
    raise _malformed(topology)


# ---------------------------------------------------------------------------
# Argument checks
# ---------------------------------------------------------------------------


def _check_order(order) -> int:
    order = operator.index(order)
    if order < 0:
        raise ValueError(f"polynomial order must be non-negative, got {order}")
    return order


def _check_index(topology: Topology, order: int, index) -> int:
    index = operator.index(index)
    n = _count(topology, order)
    if not 0 <= index < n:
        raise InvalidIndex(f"point index {index} out of range [0, {n})")
    return index


def _check_codim(topology: Topology, codim) -> int:
    codim = operator.index(codim)
    if not 0 <= codim <= topology.dimension:
        raise InvalidIndex(f"codim {codim} out of range [0, {topology.dimension}]")
    return codim


def _check_sub_entity(topology: Topology, codim: int, sub_entity) -> int:
    sub_entity = operator.index(sub_entity)
    n = topology.num_sub_entities(codim)
    if not 0 <= sub_entity < n:
        raise InvalidIndex(f"sub-entity {sub_entity} out of range [0, {n}) for codim {codim}")
    return sub_entity


def _check_coordinate(topology: Topology, order: int, coordinate) -> Coordinate:
    x = tuple(operator.index(c) for c in coordinate)
    if len(x) != topology.dimension or not _is_lattice_point(topology, order, x):
        raise InvalidIndex(f"{coordinate} is not a lattice point of order {order}")
    return x


# ---------------------------------------------------------------------------
# Public functions
# ---------------------------------------------------------------------------


def point_count(topology: Topology, order: int) -> int:
    """Number of Lagrange points of ``topology`` at ``order``."""
    check_topology(topology)
    return _count(topology, _check_order(order))


def point_coordinate(topology: Topology, order: int, index: int) -> Coordinate:
    """Integer lattice coordinate of point ``index``."""
    check_topology(topology)
    order = _check_order(order)
    return _coordinate(topology, order, _check_index(topology, order, index))


def classify(
    topology: Topology, order: int, coordinate, outermost: bool = True
) -> tuple[int, int, int]:
    """Owning sub-entity of a lattice point.

    Returns ``(codim, sub_entity, local_dof)``. With ``outermost=False`` a cone
    is treated as the lifted interior part of a larger cone: its apex is a
    vertex, and its base points stay on the sub-entities through which they
    are lifted.
    """
    check_topology(topology)
    order = _check_order(order)
    x = _check_coordinate(topology, order, coordinate)
    return _classify(topology, order, x, bool(outermost))


def entity_dof_number(
    topology: Topology, order: int, codim: int, sub_entity: int, local_dof: int
) -> int:
    """Point index of local dof ``local_dof`` on sub-entity ``(codim, sub_entity)``."""
    check_topology(topology)
    order = _check_order(order)
    codim = _check_codim(topology, codim)
    sub_entity = _check_sub_entity(topology, codim, sub_entity)
    local_dof = operator.index(local_dof)
    n = _entity_dofs(topology, order, codim, sub_entity)
    if not 0 <= local_dof < n:
        raise InvalidIndex(
            f"local dof {local_dof} out of range [0, {n}) on ({codim}, {sub_entity})"
        )
    return _entity_dof_number(topology, order, codim, sub_entity, local_dof)


def num_dofs(topology: Topology, order: int, codim: int, sub_entity: int | None = None) -> int:
    """Dofs on one sub-entity, or on all sub-entities of ``codim`` if ``sub_entity`` is None."""
    check_topology(topology)
    order = _check_order(order)
    codim = _check_codim(topology, codim)
    if sub_entity is None:
        return _codim_dofs(topology, order, codim)
    sub_entity = _check_sub_entity(topology, codim, sub_entity)
    return _entity_dofs(topology, order, codim, sub_entity)


def max_dofs(topology: Topology, order: int, codim: int) -> int:
    """Upper bound on the dofs of any single sub-entity of ``codim``."""
    check_topology(topology)
    return _max_dofs(topology, _check_order(order), _check_codim(topology, codim))


def height(topology: Topology, order: int, coordinate) -> int:
    """Order of the base layer a point was generated on (min over product factors)."""
    check_topology(topology)
    order = _check_order(order)
    return _height(topology, order, _check_coordinate(topology, order, coordinate))


def reference_coordinate(topology: Topology, order: int, coordinate) -> tuple[Fraction, ...]:
    """Lattice coordinate scaled into the unit reference element.

    At order 0 the single point sits at the origin.
    """
    check_topology(topology)
    order = _check_order(order)
    x = _check_coordinate(topology, order, coordinate)
    if order == 0:
        return tuple(Fraction(0) for _ in x)
    return tuple(Fraction(c, order) for c in x)


# ---------------------------------------------------------------------------
# Point set value
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LagrangePoint:
    """One Lagrange point together with its owning sub-entity."""

    index: int
    coordinate: Coordinate
    codim: int
    sub_entity: int
    local_dof: int
    height: int
    reference_coordinate: tuple[Fraction, ...] = field(repr=False)


@dataclass(frozen=True)
class LagrangePointSet:
    """All Lagrange points of one reference element and polynomial order.

    Parameters
    ----------
    topology : reference element shape
    order : polynomial order p >= 0
    """

    topology: Topology
    order: int

    def __post_init__(self) -> None:
        check_topology(self.topology)
        object.__setattr__(self, "order", _check_order(self.order))
        check_count(_count(self.topology, self.order), "number of Lagrange points")

    @property
    def dimension(self) -> int:
        return self.topology.dimension

    @property
    def num_points(self) -> int:
        return _count(self.topology, self.order)

    def __len__(self) -> int:
        return self.num_points

    def __iter__(self):
        return iter(self.points)

    def __getitem__(self, index: int) -> LagrangePoint:
        return self.points[_check_index(self.topology, self.order, index)]

    @cached_property
    def points(self) -> tuple[LagrangePoint, ...]:
        log.debug(f"Building {self.num_points} Lagrange points for {self.topology!r}, p={self.order}")
        points = []
        for i in range(self.num_points):
            x = _coordinate(self.topology, self.order, i)
            codim, sub_entity, dof = _classify(self.topology, self.order, x)
            points.append(
                LagrangePoint(
                    index=i,
                    coordinate=x,
                    codim=codim,
                    sub_entity=sub_entity,
                    local_dof=dof,
                    height=_height(self.topology, self.order, x),
                    reference_coordinate=reference_coordinate(self.topology, self.order, x),
                )
            )
        return tuple(points)

    @cached_property
    def coordinates(self) -> NDArray[np.int64]:
        """Lattice coordinates, shape ``(num_points, dimension)``."""
        data = [p.coordinate for p in self.points]
        return np.array(data, dtype=np.int64).reshape(self.num_points, self.dimension)

    @cached_property
    def reference_coordinates(self) -> NDArray[np.float64]:
        """Reference coordinates, shape ``(num_points, dimension)``."""
        scale = 1.0 / self.order if self.order > 0 else 0.0
        return self.coordinates.astype(np.float64) * scale

    def coordinate(self, index: int) -> Coordinate:
        return point_coordinate(self.topology, self.order, index)

    def classify(self, coordinate, outermost: bool = True) -> tuple[int, int, int]:
        return classify(self.topology, self.order, coordinate, outermost)

    def entity_dof_number(self, codim: int, sub_entity: int, local_dof: int) -> int:
        return entity_dof_number(self.topology, self.order, codim, sub_entity, local_dof)

    def num_dofs(self, codim: int, sub_entity: int | None = None) -> int:
        return num_dofs(self.topology, self.order, codim, sub_entity)

    def max_dofs(self, codim: int) -> int:
        return max_dofs(self.topology, self.order, codim)

    def height(self, index: int) -> int:
        return self[index].height

    def reference_coordinate(self, index: int) -> tuple[Fraction, ...]:
        return self[index].reference_coordinate

    def entity_dofs(self, codim: int, sub_entity: int) -> list[int]:
        """Point indices on one sub-entity, in local dof order."""
        n = self.num_dofs(codim, sub_entity)
        return [
            _entity_dof_number(self.topology, self.order, codim, sub_entity, k) for k in range(n)
        ]

    def layout(self) -> dict[int, int]:
        """Total dofs per codimension."""
        return {c: self.num_dofs(c) for c in range(self.dimension + 1)}


@lru_cache(maxsize=None)
def lagrange_point_set(topology: Topology, order: int) -> LagrangePointSet:
    """Shared, memoised point set for ``(topology, order)``."""
    log.debug(f"Caching Lagrange point set for {topology!r}, p={order}")
    return LagrangePointSet(topology, order)

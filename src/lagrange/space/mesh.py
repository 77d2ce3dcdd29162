"""Lagrange finite-element space on unstructured meshes.

Loads meshes via meshio, converts cell vertex orderings to the generic
reference numbering, and builds a C⁰-continuous local-to-global dof mapping
by walking every element's sub-entities.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from fractions import Fraction
from pathlib import Path

import meshio
import numpy as np
from numpy.typing import NDArray

from ..errors import check_count
from ..points import lagrange_point_set
from ..topology import (
    MESHIO_CELL_TYPES,
    sub_entity_vertices,
    topology_from_name,
    vertex_weights,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntityLayout:
    """Local dofs of one reference sub-entity.

    ``weights[k]`` holds the vertex weights of local dof ``k`` restricted to
    ``vertices``; two elements sharing the entity agree on a dof exactly when
    they agree on these weights per global vertex.
    """

    codim: int
    sub_entity: int
    vertices: tuple[int, ...]
    points: tuple[int, ...]
    weights: tuple[tuple[Fraction, ...], ...]


def reference_layout(name: str, order: int) -> list[EntityLayout]:
    """Sub-entity dof layout of one reference element, vertices first, cell last."""
    topology = topology_from_name(name)
    point_set = lagrange_point_set(topology, order)
    layout = []
    for codim in range(topology.dimension, -1, -1):
        for sub_entity in range(topology.num_sub_entities(codim)):
            vertices = sub_entity_vertices(topology, codim, sub_entity)
            points = tuple(point_set.entity_dofs(codim, sub_entity))
            weights = []
            for i in points:
                w = vertex_weights(topology, point_set.reference_coordinate(i))
                weights.append(tuple(w[v] for v in vertices))
            layout.append(EntityLayout(codim, sub_entity, vertices, points, tuple(weights)))
    return layout


def weight_matrix(name: str, order: int) -> NDArray[np.float64]:
    """Vertex weights of every Lagrange point, shape ``(n_points, n_vertices)``."""
    topology = topology_from_name(name)
    point_set = lagrange_point_set(topology, order)
    return np.array(
        [
            [float(w) for w in vertex_weights(topology, p.reference_coordinate)]
            for p in point_set.points
        ],
        dtype=np.float64,
    ).reshape(point_set.num_points, topology.num_vertices)


@dataclass
class LagrangeMesh:
    """Continuous Lagrange space of order p on a mixed-element mesh.

    Parameters
    ----------
    vertices : (n_vertices, gdim) vertex coordinates
    cells : reference element name -> (n_cells, n_cell_vertices) vertex indices,
        in the generic reference vertex order
    polynomial_order : p
    """

    vertices: NDArray[np.float64]
    cells: dict[str, NDArray[np.int64]]
    polynomial_order: int

    # Computed attributes
    loc2glb: dict[str, NDArray[np.int64]] = field(init=False, repr=False)
    coordinates: NDArray[np.float64] = field(init=False, repr=False)
    dof_codim: NDArray[np.int64] = field(init=False, repr=False)
    nloc: dict[str, int] = field(init=False)
    noelms: int = field(init=False)
    nonodes: int = field(init=False)

    def __post_init__(self):
        p = self.polynomial_order
        if p < 0:
            raise ValueError(f"polynomial_order must be non-negative, got {p}")
        self.vertices = np.asarray(self.vertices, dtype=np.float64)
        cells = {}
        for name, c in self.cells.items():
            topology = topology_from_name(name)
            c = np.asarray(c, dtype=np.int64).reshape(-1, topology.num_vertices)
            cells[name] = c
        self.cells = cells
        self.nloc = {name: lagrange_point_set(topology_from_name(name), p).num_points
                     for name in self.cells}
        self.noelms = sum(len(c) for c in self.cells.values())

        self.loc2glb, self.nonodes, self.dof_codim = self._build_c0_mapping(p)
        check_count(self.nonodes, "number of global dofs")

        # Physical node coordinates from the vertex weights
        self.coordinates = np.zeros((self.nonodes, self.vertices.shape[1]))
        for name, cells in self.cells.items():
            W = weight_matrix(name, p)
            self.coordinates[self.loc2glb[name]] = np.einsum(
                "lv,evd->eld", W, self.vertices[cells]
            )

        log.info(f"Lagrange space P{p}: {self.noelms} elements, {self.nonodes} dofs")

    def _build_c0_mapping(self, p: int) -> tuple[dict[str, NDArray[np.int64]], int, NDArray[np.int64]]:
        """Build local-to-global dof maps ensuring C⁰ continuity."""
        next_dof = 0
        codims: list[int] = []
        # sorted global vertex tuple -> {dof signature -> global dof}
        entity_to_dof: dict[tuple[int, ...], dict[tuple, int]] = {}
        loc2glb = {}

        for name, cells in self.cells.items():
            layout = reference_layout(name, p)
            glb = -np.ones((len(cells), self.nloc[name]), dtype=np.int64)

            for e, cell in enumerate(cells):
                for entity in layout:
                    if not entity.points:
                        continue
                    global_vertices = [int(cell[v]) for v in entity.vertices]
                    known = entity_to_dof.setdefault(tuple(sorted(global_vertices)), {})
                    for i, weights in zip(entity.points, entity.weights):
                        signature = tuple(sorted(zip(global_vertices, weights)))
                        if signature not in known:
                            known[signature] = next_dof
                            codims.append(entity.codim)
                            next_dof += 1
                        glb[e, i] = known[signature]

            loc2glb[name] = glb
            log.debug(f"{name}: {len(cells)} cells mapped, {next_dof} dofs so far")

        return loc2glb, next_dof, np.array(codims, dtype=np.int64)

    @property
    def dimension(self) -> int:
        return max((topology_from_name(name).dimension for name in self.cells), default=0)

    def element_coordinates(self, name: str, e: int) -> NDArray[np.float64]:
        """Physical coordinates of the Lagrange nodes of one element."""
        return self.coordinates[self.loc2glb[name][e]]

    @classmethod
    def from_meshio(cls, mesh: meshio.Mesh | str | Path, polynomial_order: int) -> "LagrangeMesh":
        """Create a Lagrange space from a meshio mesh or mesh file.

        Only the cells of the highest topological dimension are kept; lower
        dimensional cells (boundary lines, facets) are ignored.
        """
        if isinstance(mesh, (str, Path)):
            mesh = meshio.read(mesh)

        blocks = [c for c in mesh.cells if c.type in MESHIO_CELL_TYPES]
        if not blocks:
            raise ValueError("No supported cells found in mesh")
        tdim = max(topology_from_name(c.type).dimension for c in blocks)

        cells: dict[str, list[NDArray[np.int64]]] = {}
        for block in blocks:
            name, perm = MESHIO_CELL_TYPES[block.type]
            if topology_from_name(name).dimension != tdim:
                continue
            cells.setdefault(name, []).append(np.asarray(block.data, dtype=np.int64)[:, perm])

        return cls(
            vertices=np.asarray(mesh.points, dtype=np.float64),
            cells={name: np.concatenate(data) for name, data in cells.items()},
            polynomial_order=polynomial_order,
        )

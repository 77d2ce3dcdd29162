"""Visualisation export of Lagrange nodes."""

from __future__ import annotations

import logging
from pathlib import Path

import meshio
import numpy as np

from .mesh import LagrangeMesh

log = logging.getLogger(__name__)


def nodes_to_meshio(mesh: LagrangeMesh) -> meshio.Mesh:
    """Global Lagrange nodes as a point cloud with the owning codimension attached."""
    points = mesh.coordinates
    if points.shape[1] < 3:
        points = np.hstack([points, np.zeros((mesh.nonodes, 3 - points.shape[1]))])
    return meshio.Mesh(
        points=points,
        cells=[("vertex", np.arange(mesh.nonodes, dtype=np.int64).reshape(-1, 1))],
        point_data={"codim": mesh.dof_codim.astype(np.int32)},
    )


def write_nodes(mesh: LagrangeMesh, filename: str | Path) -> Path:
    """Write the Lagrange nodes to any meshio format (e.g. ``.vtu``)."""
    filepath = Path(filename)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    meshio.write(filepath, nodes_to_meshio(mesh))
    log.info(f"Saved: {filepath}")
    return filepath

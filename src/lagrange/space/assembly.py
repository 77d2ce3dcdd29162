"""Global structures sized by the Lagrange dof map."""

from __future__ import annotations

from typing import Callable

import numpy as np
from numpy.typing import NDArray
from scipy import sparse

from .mesh import LagrangeMesh


def sparsity_pattern(mesh: LagrangeMesh) -> sparse.csr_matrix:
    """Boolean CSR pattern with an entry for every pair of dofs sharing an element."""
    rows, cols = [], []
    for glb in mesh.loc2glb.values():
        noelms, nloc = glb.shape
        rows.append(np.broadcast_to(glb[:, :, np.newaxis], (noelms, nloc, nloc)).ravel())
        cols.append(np.broadcast_to(glb[:, np.newaxis, :], (noelms, nloc, nloc)).ravel())

    rows = np.concatenate(rows) if rows else np.empty(0, dtype=np.int64)
    cols = np.concatenate(cols) if cols else np.empty(0, dtype=np.int64)
    pattern = sparse.csr_matrix(
        (np.ones(len(rows), dtype=bool), (rows, cols)),
        shape=(mesh.nonodes, mesh.nonodes),
    )
    pattern.sum_duplicates()
    return pattern


def dof_layout(mesh: LagrangeMesh) -> dict[int, int]:
    """Number of global dofs per owning codimension (counted in the cell dimension)."""
    codims, counts = np.unique(mesh.dof_codim, return_counts=True)
    return {int(c): int(n) for c, n in zip(codims, counts)}


def interpolate(
    mesh: LagrangeMesh,
    func: Callable[[NDArray[np.float64]], NDArray[np.float64]],
) -> NDArray[np.float64]:
    """Nodal interpolant: ``func`` evaluated at every global Lagrange node.

    ``func`` receives an ``(nonodes, gdim)`` array and returns one value per row.
    """
    values = np.asarray(func(mesh.coordinates), dtype=np.float64)
    if values.shape[0] != mesh.nonodes:
        raise ValueError(f"func returned {values.shape[0]} values, expected {mesh.nonodes}")
    return values

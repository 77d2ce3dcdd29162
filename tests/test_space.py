"""Tests for the continuous Lagrange space on meshio meshes.

Run with: uv run pytest tests/test_space.py -v
"""

import numpy as np
import pytest

meshio = pytest.importorskip("meshio")

from lagrange.space import (
    LagrangeMesh,
    dof_layout,
    interpolate,
    reference_layout,
    sparsity_pattern,
    weight_matrix,
    write_nodes,
)


def unit_square_quads(n: int) -> meshio.Mesh:
    """n x n quads on [0,1]², counterclockwise vertex order."""
    x = np.linspace(0.0, 1.0, n + 1)
    X, Y = np.meshgrid(x, x, indexing="xy")
    points = np.column_stack([X.ravel(), Y.ravel()])

    def v(i, j):
        return i + j * (n + 1)

    quads = [[v(i, j), v(i + 1, j), v(i + 1, j + 1), v(i, j + 1)] for j in range(n) for i in range(n)]
    return meshio.Mesh(points, [("quad", np.array(quads))])


def unit_square_triangles(n: int) -> meshio.Mesh:
    """Each quad of the n x n grid split along alternating diagonals."""
    quads = unit_square_quads(n)
    tris = []
    for k, (a, b, c, d) in enumerate(quads.cells_dict["quad"]):
        if k % 2 == 0:
            tris += [[a, b, c], [a, c, d]]
        else:
            tris += [[b, d, a], [d, b, c]]
    return meshio.Mesh(quads.points, [("triangle", np.array(tris))])


def assert_nodes_unique(mesh: LagrangeMesh):
    unique = np.unique(np.round(mesh.coordinates, 12), axis=0)
    assert len(unique) == mesh.nonodes


def assert_elements_consistent(mesh: LagrangeMesh):
    """Every element maps its reference nodes onto the shared global nodes."""
    for name, cells in mesh.cells.items():
        W = weight_matrix(name, mesh.polynomial_order)
        for e, cell in enumerate(cells):
            np.testing.assert_allclose(
                mesh.element_coordinates(name, e), W @ mesh.vertices[cell], atol=1e-12
            )


class TestReferenceLayout:
    """Test the per-entity reference layout used by the dof map."""

    def test_triangle_cubic(self):
        layout = reference_layout("triangle", 3)
        assert [e.codim for e in layout] == [2, 2, 2, 1, 1, 1, 0]
        assert [len(e.points) for e in layout] == [1, 1, 1, 2, 2, 2, 1]
        assert sorted(i for e in layout for i in e.points) == list(range(10))

    def test_weights_restricted_to_entity(self):
        for entity in reference_layout("tetrahedron", 3):
            for w in entity.weights:
                assert len(w) == len(entity.vertices)
                assert sum(w) == 1

    def test_weight_matrix_rows_sum_to_one(self):
        for name in ("line", "triangle", "quadrilateral", "tetrahedron", "pyramid", "prism", "hexahedron"):
            W = weight_matrix(name, 2)
            np.testing.assert_allclose(W.sum(axis=1), 1.0)


class TestDofMap:
    """Test C0 global numbering."""

    @pytest.mark.parametrize("order, nonodes", [(1, 9), (2, 25), (3, 49)])
    def test_quad_grid(self, order, nonodes):
        mesh = LagrangeMesh.from_meshio(unit_square_quads(2), polynomial_order=order)
        assert mesh.noelms == 4
        assert mesh.nloc == {"quadrilateral": (order + 1) ** 2}
        assert mesh.nonodes == nonodes
        assert_nodes_unique(mesh)
        assert_elements_consistent(mesh)

    @pytest.mark.parametrize("order, nonodes", [(1, 9), (2, 25), (3, 49)])
    def test_triangle_grid(self, order, nonodes):
        """Split grid has the same nodes as the quad grid of the same order."""
        mesh = LagrangeMesh.from_meshio(unit_square_triangles(2), polynomial_order=order)
        assert mesh.noelms == 8
        assert mesh.nonodes == nonodes
        assert_nodes_unique(mesh)
        assert_elements_consistent(mesh)

    def test_quad_grid_nodes(self):
        mesh = LagrangeMesh.from_meshio(unit_square_quads(2), polynomial_order=2)
        grid = np.linspace(0.0, 1.0, 5)
        expected = np.array([[x, y] for x in grid for y in grid])
        got = np.unique(np.round(mesh.coordinates, 12), axis=0)
        np.testing.assert_allclose(got, expected)

    def test_dof_layout(self):
        mesh = LagrangeMesh.from_meshio(unit_square_quads(2), polynomial_order=2)
        assert dof_layout(mesh) == {0: 4, 1: 12, 2: 9}

    def test_order_zero(self):
        mesh = LagrangeMesh.from_meshio(unit_square_quads(2), polynomial_order=0)
        assert mesh.nonodes == 4
        assert dof_layout(mesh) == {0: 4}

    def test_mixed_quad_triangle(self):
        points = np.array([[0, 0], [1, 0], [1, 1], [0, 1], [2, 0.5]], dtype=float)
        m = meshio.Mesh(points, [("quad", np.array([[0, 1, 2, 3]])), ("triangle", np.array([[1, 4, 2]]))])
        mesh = LagrangeMesh.from_meshio(m, polynomial_order=3)
        assert mesh.nonodes == 16 + 10 - 4
        assert_nodes_unique(mesh)
        assert_elements_consistent(mesh)

    def test_hexahedra_sharing_face(self):
        points = np.array(
            [[i, j, k] for k in range(2) for j in range(2) for i in range(3)], dtype=float
        )

        def v(i, j, k):
            return i + 3 * j + 6 * k

        hexes = [
            [v(i, 0, 0), v(i + 1, 0, 0), v(i + 1, 1, 0), v(i, 1, 0),
             v(i, 0, 1), v(i + 1, 0, 1), v(i + 1, 1, 1), v(i, 1, 1)]
            for i in range(2)
        ]
        mesh = LagrangeMesh.from_meshio(meshio.Mesh(points, [("hexahedron", np.array(hexes))]), 2)
        assert mesh.nonodes == 2 * 27 - 9
        assert_nodes_unique(mesh)
        assert_elements_consistent(mesh)

    def test_tetrahedra_sharing_face(self):
        points = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0], [0, 0, 1], [1, 1, 1]], dtype=float)
        tets = np.array([[0, 1, 2, 3], [1, 2, 3, 4]])
        mesh = LagrangeMesh.from_meshio(meshio.Mesh(points, [("tetra", tets)]), 3)
        assert mesh.nonodes == 2 * 20 - 10
        assert_nodes_unique(mesh)
        assert_elements_consistent(mesh)

    def test_prism_on_tetrahedron(self):
        """Prism and tetrahedron sharing a triangular face."""
        points = np.array(
            [[0, 0, 0], [1, 0, 0], [0, 1, 0], [0, 0, 1], [1, 0, 1], [0, 1, 1], [0, 0, -1]],
            dtype=float,
        )
        m = meshio.Mesh(points, [("wedge", np.array([[0, 1, 2, 3, 4, 5]])), ("tetra", np.array([[0, 1, 2, 6]]))])
        mesh = LagrangeMesh.from_meshio(m, 2)
        assert mesh.nonodes == 18 + 10 - 6
        assert_nodes_unique(mesh)
        assert_elements_consistent(mesh)

    def test_lower_dimensional_cells_ignored(self):
        m = unit_square_quads(2)
        m = meshio.Mesh(m.points, m.cells + [meshio.CellBlock("line", np.array([[0, 1], [1, 2]]))])
        mesh = LagrangeMesh.from_meshio(m, polynomial_order=2)
        assert set(mesh.cells) == {"quadrilateral"}
        assert mesh.nonodes == 25

    def test_no_supported_cells(self):
        m = meshio.Mesh(np.zeros((3, 2)), [("polygon", np.array([[0, 1, 2]]))])
        with pytest.raises(ValueError):
            LagrangeMesh.from_meshio(m, polynomial_order=1)

    def test_negative_order(self):
        with pytest.raises(ValueError):
            LagrangeMesh.from_meshio(unit_square_quads(1), polynomial_order=-1)


class TestAssembly:
    """Test global structures built on the dof map."""

    def test_sparsity_single_element(self):
        mesh = LagrangeMesh.from_meshio(unit_square_quads(1), polynomial_order=2)
        pattern = sparsity_pattern(mesh)
        assert pattern.shape == (9, 9)
        assert pattern.nnz == 81

    def test_sparsity_symmetric(self):
        mesh = LagrangeMesh.from_meshio(unit_square_triangles(2), polynomial_order=2)
        pattern = sparsity_pattern(mesh).toarray()
        assert np.array_equal(pattern, pattern.T)
        assert np.all(np.diag(pattern))

    def test_interpolate_linear(self):
        mesh = LagrangeMesh.from_meshio(unit_square_quads(2), polynomial_order=3)
        u = interpolate(mesh, lambda x: 2 * x[:, 0] - x[:, 1])
        np.testing.assert_allclose(u, 2 * mesh.coordinates[:, 0] - mesh.coordinates[:, 1])

    def test_interpolate_wrong_shape(self):
        mesh = LagrangeMesh.from_meshio(unit_square_quads(1), polynomial_order=1)
        with pytest.raises(ValueError):
            interpolate(mesh, lambda x: np.zeros(3))


class TestExport:
    """Test visualisation export."""

    def test_write_nodes(self, tmp_path):
        mesh = LagrangeMesh.from_meshio(unit_square_quads(2), polynomial_order=2)
        path = write_nodes(mesh, tmp_path / "out" / "nodes.vtu")
        assert path.exists()
        back = meshio.read(path)
        assert len(back.points) == mesh.nonodes
        np.testing.assert_array_equal(back.point_data["codim"], mesh.dof_codim)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""
Lagrange point layout driver using Hydra for configuration.

Usage:
    uv run python main.py shape=tetrahedron order=3
    uv run python main.py shape=quad order=2 output.figure=figures/quad_p2.pdf
    uv run python main.py order=3 mesh.path=meshes/cube.msh output.nodes=nodes.vtu
"""

import logging
from pathlib import Path

import hydra
import pandas as pd
from omegaconf import DictConfig, OmegaConf

from lagrange import LagrangePointSet, lagrange_point_set, topology_from_name, topology_name
from lagrange.space import LagrangeMesh, dof_layout, sparsity_pattern, write_nodes

log = logging.getLogger(__name__)


def point_table(point_set: LagrangePointSet) -> pd.DataFrame:
    """One row per Lagrange point: lattice/reference coordinate and owning sub-entity."""
    rows = []
    for p in point_set.points:
        rows.append(
            {
                "index": p.index,
                "coordinate": p.coordinate,
                "reference": tuple(str(x) for x in p.reference_coordinate),
                "codim": p.codim,
                "sub_entity": p.sub_entity,
                "local_dof": p.local_dof,
                "height": p.height,
            }
        )
    return pd.DataFrame(rows).set_index("index")


def layout_table(point_set: LagrangePointSet) -> pd.DataFrame:
    """Per-codimension sub-entity and dof counts."""
    topology = point_set.topology
    return pd.DataFrame(
        [
            {
                "codim": c,
                "sub_entities": topology.num_sub_entities(c),
                "dofs": point_set.num_dofs(c),
                "max_dofs": point_set.max_dofs(c),
            }
            for c in range(topology.dimension + 1)
        ]
    ).set_index("codim")


def run_reference(cfg: DictConfig) -> LagrangePointSet:
    topology = topology_from_name(cfg.shape)
    point_set = lagrange_point_set(topology, int(cfg.order))
    log.info(f"{topology_name(topology)} p={point_set.order}: {point_set.num_points} points")
    print(layout_table(point_set).to_string())

    table = point_table(point_set)
    if cfg.output.get("table"):
        path = Path(hydra.utils.to_absolute_path(cfg.output.table))
        path.parent.mkdir(parents=True, exist_ok=True)
        table.to_csv(path)
        log.info(f"Saved: {path}")
    else:
        print(table.to_string())

    if cfg.output.get("figure"):
        from lagrange.plot_style import plot_reference_points, save_figure, setup_style
        import matplotlib.pyplot as plt

        setup_style()
        fig, ax = plt.subplots()
        plot_reference_points(point_set, ax)
        save_figure(fig, hydra.utils.to_absolute_path(cfg.output.figure))
        plt.close(fig)

    return point_set


def run_mesh(cfg: DictConfig) -> LagrangeMesh:
    path = hydra.utils.to_absolute_path(cfg.mesh.path)
    mesh = LagrangeMesh.from_meshio(path, polynomial_order=int(cfg.order))
    pattern = sparsity_pattern(mesh)
    log.info(f"Mesh: {mesh.noelms} elements, {mesh.nonodes} dofs, {pattern.nnz} couplings")
    for codim, count in dof_layout(mesh).items():
        log.info(f"  codim {codim}: {count} dofs")

    if cfg.output.get("nodes"):
        write_nodes(mesh, hydra.utils.to_absolute_path(cfg.output.nodes))
    return mesh


@hydra.main(version_base=None, config_path="conf", config_name="config")
def main(cfg: DictConfig):
    log.info(f"Config:\n{OmegaConf.to_yaml(cfg)}")
    if int(cfg.order) < 0:
        raise ValueError(f"order must be non-negative, got {cfg.order}")

    if cfg.mesh.get("path"):
        run_mesh(cfg)
    else:
        run_reference(cfg)


if __name__ == "__main__":
    main()

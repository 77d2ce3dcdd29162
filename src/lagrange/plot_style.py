import logging
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

from .points import LagrangePointSet
from .topology import reference_vertices, sub_entity_vertices

log = logging.getLogger(__name__)

FIGURES_DIR = Path("figures")
STYLE_PATH = Path(__file__).resolve().parent / "lagrange.mplstyle"
CODIM_COLORS = ["tab:green", "tab:orange", "tab:blue", "tab:red"]


def setup_style():
    """Apply shared matplotlib style."""
    if STYLE_PATH.exists():
        plt.style.use(STYLE_PATH)
    plt.rcParams.setdefault("savefig.bbox", "tight")


def save_figure(fig, filename: str | Path):
    """
    Save figure to the specified path.
    """
    filepath = Path(filename)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(filepath, bbox_inches="tight")
    log.info(f"Saved: {filepath}")
    return filepath


def plot_reference_points(point_set: LagrangePointSet, ax=None):
    """Draw the Lagrange points of a 1D or 2D reference element, coloured by codim."""
    topology = point_set.topology
    if topology.dimension not in (1, 2):
        raise ValueError(f"Can only plot 1D or 2D reference elements, got dim={topology.dimension}")
    if ax is None:
        _, ax = plt.subplots()

    vertices = reference_vertices(topology)
    if topology.dimension == 1:
        ax.plot(vertices[:, 0], np.zeros(len(vertices)), color="k", lw=1)
    else:
        for edge in range(topology.num_sub_entities(1)):
            v = list(sub_entity_vertices(topology, 1, edge))
            ax.plot(vertices[v, 0], vertices[v, 1], color="k", lw=1)

    X = point_set.reference_coordinates
    if topology.dimension == 1:
        X = np.hstack([X, np.zeros((len(X), 1))])
    for p in point_set.points:
        x, y = X[p.index]
        ax.scatter(x, y, color=CODIM_COLORS[p.codim % len(CODIM_COLORS)], zorder=3)
        ax.annotate(str(p.index), (x, y), textcoords="offset points", xytext=(4, 4))

    ax.set_aspect("equal")
    ax.set_title(f"{topology!r}, p={point_set.order}")
    return ax

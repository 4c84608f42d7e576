"""pyfemx.io.visualization"""
import matplotlib.pyplot as plt
import numpy as np
from matplotlib.collections import LineCollection, PolyCollection

from pyfemx.core.cell_types import CellType, num_cell_vertices
from pyfemx.core.mesh import entities_to_geometry

_FACET_COLOR = {
    "interior": "black",
    "exterior": "dimgray",
    "marked": "red",
}

# vertex cycle of the cell outline in the reference ordering
_OUTLINE = {
    CellType.triangle: [0, 1, 2],
    CellType.quadrilateral: [0, 1, 3, 2],
}


def plot_mesh(mesh, *, marked_facets=None, cell_values=None, plot_nodes=True,
              cell_labels=False, show=False, ax=None):
    """
    Plots a 2D mesh of triangles or quadrilaterals.

    Args:
        mesh (Mesh): The mesh to plot. Facet connectivity is created if missing.
        marked_facets (array-like, optional): Facets drawn in the "marked" colour.
        cell_values (np.ndarray, optional): One value per local cell, used as fill colour.
        plot_nodes (bool, optional): If True, plots the mesh vertices.
        cell_labels (bool, optional): If True, writes the local cell index at each centroid.
        show (bool, optional): If True, calls plt.show() at the end.
        ax (matplotlib.axes.Axes, optional): An existing axes object to plot on.
    Returns:
        matplotlib.axes.Axes: The axes object containing the plot.
    """
    topology = mesh.topology
    ct = topology.cell_type
    if ct not in _OUTLINE or mesh.geometry.dim != 2:
        raise ValueError(f"plot_mesh draws 2D triangle/quadrilateral meshes, got {ct} "
                         f"in {mesh.geometry.dim}D.")
    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 8))

    x = mesh.geometry.x[:, :2]
    nv = num_cell_vertices(ct)
    cell_nodes = mesh.geometry.dofmap.as_2d()[:, :nv]
    polys = x[cell_nodes[:, _OUTLINE[ct]]]

    # --- Cells ---
    if cell_values is not None:
        cells = PolyCollection(polys, array=np.asarray(cell_values), cmap="viridis",
                               edgecolors="none", zorder=1, alpha=0.8)
        ax.add_collection(cells)
        plt.colorbar(cells, ax=ax, label="Cell value")
    else:
        ax.add_collection(PolyCollection(polys, facecolors=(0.9, 0.9, 0.9, 0.5),
                                         edgecolors="none", zorder=1))

    # --- Facets ---
    tdim = topology.dim
    topology.create_connectivity(tdim - 1, tdim)
    interior = topology.interior_facets()
    colors = np.where(interior, _FACET_COLOR["interior"], _FACET_COLOR["exterior"]).astype(object)
    if marked_facets is not None:
        colors[np.asarray(marked_facets, dtype=np.int64)] = _FACET_COLOR["marked"]
    segments = x[entities_to_geometry(mesh, tdim - 1, np.arange(interior.size))]
    ax.add_collection(LineCollection(segments, colors=list(colors), linewidths=0.9, zorder=2))

    # --- Nodes ---
    if plot_nodes:
        vertices = np.unique(cell_nodes)
        ax.plot(x[vertices, 0], x[vertices, 1], "o", color="navy", markersize=3,
                zorder=3, linestyle="None")

    if cell_labels:
        centroids = polys.mean(axis=1)
        for c, (cx, cy) in enumerate(centroids):
            ax.text(cx, cy, str(c), ha="center", va="center", fontsize=7, zorder=4)

    # --- Finalize Plot ---
    ax.set_aspect("equal", "box")
    xmin, ymin = x.min(axis=0) if x.size else (0.0, 0.0)
    xmax, ymax = x.max(axis=0) if x.size else (1.0, 1.0)
    xpad = (xmax - xmin) * 0.05 or 0.1
    ypad = (ymax - ymin) * 0.05 or 0.1
    ax.set_xlim(xmin - xpad, xmax + xpad)
    ax.set_ylim(ymin - ypad, ymax + ypad)
    ax.set_title(f"Mesh '{mesh.name}'")
    ax.set_xlabel("X-coordinate")
    ax.set_ylabel("Y-coordinate")

    if show:
        plt.show()

    return ax

from .adjacency import AdjacencyList
from .cell_types import CellType
from .geometry import Geometry
from .index_map import IndexMap
from .mesh import Mesh, create_mesh, entities_to_geometry, h, inradius
from .topology import Topology
__all__=['AdjacencyList','CellType','Geometry','IndexMap','Mesh','create_mesh',
         'entities_to_geometry','h','inradius','Topology']

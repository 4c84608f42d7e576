"""pyfemx: lazily built mesh topology and a scalar form assembler."""
from pyfemx.core import CellType, IndexMap, AdjacencyList, Mesh, Topology, create_mesh
from pyfemx.errors import (EmptyMesh, InconsistentTopology, NotInitialized, PyfemxError,
                           TopologyFrozen, UnsetConstant)
from pyfemx.fem import (Constant, Form, Function, FunctionSpace, IntegralType, assemble_scalar,
                        functionspace)
from pyfemx.parameters import PARAMETERS, Parameters

__version__ = "0.1.0"

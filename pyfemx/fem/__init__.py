from .assemble_scalar import assemble_scalar
from .coordinate_element import CoordinateElement
from .dofmap import DofMap
from .element import FiniteElement, MixedElement
from .form import Form, Integral, IntegralType
from .function import Constant, Function, FunctionSpace, functionspace
from .kernels import Kernel
from .packing import pack_coefficients, pack_constants
__all__=['assemble_scalar','CoordinateElement','DofMap','FiniteElement','MixedElement',
         'Form','Integral','IntegralType','Constant','Function','FunctionSpace',
         'functionspace','Kernel','pack_coefficients','pack_constants']

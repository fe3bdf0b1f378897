from heatdistance.fea.analysis.assembly import Assembler, ParallelMatrix
from heatdistance.fea.analysis.field import DistributedField
from heatdistance.fea.analysis.forms import LinearSystem, form_linear_system, recover_solution
from heatdistance.fea.analysis.space import DofLayout, FiniteElementSpace

__all__ = [
    "Assembler",
    "DistributedField",
    "DofLayout",
    "FiniteElementSpace",
    "LinearSystem",
    "ParallelMatrix",
    "form_linear_system",
    "recover_solution",
]

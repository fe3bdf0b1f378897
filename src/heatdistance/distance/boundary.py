from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    import numpy.typing as npt

    from heatdistance.fea.analysis.space import FiniteElementSpace


def select_boundary_dofs(space: FiniteElementSpace) -> npt.NDArray[np.int64]:
    """
    Owned dofs on every tagged boundary of the mesh.

    All declared boundary attributes are marked. A mesh without boundary attributes gives
    an empty constraint set.
    """
    attributes = space.pmesh.bdr_attributes
    if attributes.size == 0:
        return np.empty(0, dtype=np.int64)

    marker = np.ones(int(attributes.max()), dtype=np.int64)
    return space.essential_true_dofs(marker)

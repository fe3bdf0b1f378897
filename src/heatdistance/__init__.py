"""
heatdistance
============
Distance fields on distributed unstructured meshes with the heat method.
"""
from heatdistance.distance import DistanceFunction
from heatdistance.errors import (
    BackendUnavailableError,
    ConfigurationError,
    HeatDistanceError,
    UnsupportedGeometryError,
)

__version__ = "0.1.0"

__all__ = [
    "BackendUnavailableError",
    "ConfigurationError",
    "DistanceFunction",
    "HeatDistanceError",
    "UnsupportedGeometryError",
]

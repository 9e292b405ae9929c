"""
PaleoLatitude Engine

Apparent polar wander path interpolation, reference frame rotation and
paleolatitude computation. Pure computation over in-memory data: no file
or console I/O.
"""

from .calculator import (
    PaleolatitudeCalculator,
    PaleolatitudeRequest,
    PaleolatitudeResult,
    Site,
    compute_paleolatitude,
)
from .catalog import APWPCatalog
from .errors import (
    DataIntegrityError,
    OutOfRangeError,
    PaleolatitudeError,
    UnknownFrameError,
)
from .interpolation import SphericalInterpolator, interpolate_pole
from .poles import APWPDataset, PoleRecord
from .rotation import FiniteRotation, ReferenceFrameRotator, RotationTable

__version__ = "3.0.0a1"

__all__ = [
    "APWPCatalog",
    "APWPDataset",
    "DataIntegrityError",
    "FiniteRotation",
    "OutOfRangeError",
    "PaleolatitudeCalculator",
    "PaleolatitudeError",
    "PaleolatitudeRequest",
    "PaleolatitudeResult",
    "PoleRecord",
    "ReferenceFrameRotator",
    "RotationTable",
    "Site",
    "SphericalInterpolator",
    "UnknownFrameError",
    "compute_paleolatitude",
    "interpolate_pole",
]

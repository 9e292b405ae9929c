"""
Paleolatitude Calculator

Combines an APWP catalog, the spherical interpolator and the frame rotator to
answer "at which latitude was this site at this age?".

The paleolatitude follows from the great-circle distance p between the
present-day site and the contemporaneous paleomagnetic pole: λ = 90° - p,
positive in the hemisphere of the pole. Its uncertainty comes from the pole's
A95 through the error in the expected field inclination,

    ΔI = 2·A95 / (1 + 3cos²p),    tan I = 2·tan λ,

with the bounds λ_min/max = atan(½·tan(I ∓ ΔI)).
"""

import logging
import math
import numbers
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from .catalog import APWPCatalog
from .interpolation import SphericalInterpolator
from .poles import MAX_RAW_LONGITUDE, PoleRecord
from .rotation import ReferenceFrameRotator
from .spherical import normalize_longitude, to_unit_vector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Site:
    """Present-day site location and the age to reconstruct it at"""
    latitude: float
    longitude: float
    age: float  # Ma

    def __post_init__(self):
        for name in ("latitude", "longitude", "age"):
            value = getattr(self, name)
            if not isinstance(value, numbers.Real) or not math.isfinite(value):
                raise ValueError(f"Site {name} must be a finite number, got {value!r}")
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Site latitude {self.latitude} outside [-90, 90]")
        if abs(self.longitude) > MAX_RAW_LONGITUDE:
            raise ValueError(f"Site longitude {self.longitude} outside [-360, 360]")
        if self.age < 0:
            raise ValueError(f"Site age {self.age} must be non-negative (Ma before present)")
        object.__setattr__(self, "longitude", normalize_longitude(self.longitude))


@dataclass(frozen=True)
class PaleolatitudeRequest:
    """One paleolatitude query"""
    site: Site
    reference_frame_id: str
    target_frame_id: Optional[str] = None  # rotate the pole into this frame first
    allow_extrapolation: bool = False


@dataclass(frozen=True)
class PaleolatitudeResult:
    """Paleolatitude of a site with its confidence envelope"""
    site: Site
    paleolatitude: float
    confidence_interval_degrees: float  # half-width of [lower, upper]
    paleolatitude_lower: float
    paleolatitude_upper: float
    pole_used: PoleRecord
    reference_frame_id: str  # frame whose APWP was interpolated
    pole_frame_id: str  # frame pole_used is expressed in
    extrapolated: bool = False  # pole or a rotation on its path lay outside the dated window

    @property
    def age(self) -> float:
        return self.site.age

    def to_dict(self) -> Dict:
        """Convert to dictionary"""
        return {
            "site": {
                "latitude": self.site.latitude,
                "longitude": self.site.longitude,
                "age": self.site.age,
            },
            "paleolatitude": self.paleolatitude,
            "confidence_interval_degrees": self.confidence_interval_degrees,
            "paleolatitude_lower": self.paleolatitude_lower,
            "paleolatitude_upper": self.paleolatitude_upper,
            "pole_used": self.pole_used.to_dict(),
            "reference_frame_id": self.reference_frame_id,
            "pole_frame_id": self.pole_frame_id,
            "extrapolated": self.extrapolated,
        }


def _latitude_from_inclination(inclination: float) -> float:
    # A bound pushed past a geographic pole saturates there
    if inclination >= 90.0:
        return 90.0
    if inclination <= -90.0:
        return -90.0
    return math.degrees(math.atan(0.5 * math.tan(math.radians(inclination))))


def paleolatitude_from_pole(latitude: float, longitude: float, pole: PoleRecord) -> Tuple[float, float, float]:
    """
    Paleolatitude of a site relative to a paleomagnetic pole.

    Args:
        latitude: Present-day site latitude in degrees
        longitude: Present-day site longitude in degrees
        pole: Paleomagnetic pole with its A95

    Returns:
        Tuple of (paleolatitude, lower bound, upper bound) in degrees
    """
    dot = float(np.clip(np.dot(to_unit_vector(latitude, longitude), pole.unit_vector), -1.0, 1.0))
    palat = math.degrees(math.asin(dot))
    if pole.angular_uncertainty == 0:
        return palat, palat, palat

    colatitude = math.radians(90.0 - palat)
    delta_i = 2.0 * pole.angular_uncertainty / (1.0 + 3.0 * math.cos(colatitude) ** 2)
    inclination = math.degrees(math.atan2(2.0 * math.sin(math.radians(palat)), math.cos(math.radians(palat))))

    lower = min(_latitude_from_inclination(inclination - delta_i), palat)
    upper = max(_latitude_from_inclination(inclination + delta_i), palat)
    logger.debug(
        f"λ = {palat:.5f}, A95 = {pole.angular_uncertainty}, ΔI = {delta_i:.5f}, "
        f"I = {inclination:.5f}, [{lower:.5f}, {upper:.5f}]"
    )
    return palat, lower, upper


class PaleolatitudeCalculator:
    """Computes paleolatitudes against the datasets of a catalog"""

    def __init__(self, catalog: APWPCatalog, rotator: Optional[ReferenceFrameRotator] = None):
        self.catalog = catalog
        self.rotator = rotator if rotator is not None else ReferenceFrameRotator(catalog.rotations)

    def compute(self, request: PaleolatitudeRequest) -> PaleolatitudeResult:
        """
        Compute the paleolatitude for one request.

        Args:
            request: Site, frame selection and extrapolation policy

        Returns:
            PaleolatitudeResult

        Raises:
            UnknownFrameError: reference frame or rotation path unknown
            OutOfRangeError: age outside the frame's dated window, or outside
                the tabulated window of a rotation on the path, and
                extrapolation not allowed
        """
        site = request.site
        dataset = self.catalog.get(request.reference_frame_id)
        interpolator = SphericalInterpolator(dataset)

        extrapolated = False
        if request.allow_extrapolation and not dataset.covers(site.age):
            pole = interpolator.extrapolated_pole_at(site.age)
            extrapolated = True
        else:
            pole = interpolator.pole_at(site.age)

        pole_frame_id = request.reference_frame_id
        if request.target_frame_id is not None and request.target_frame_id != request.reference_frame_id:
            pole = self.rotator.rotate(pole, request.reference_frame_id, request.target_frame_id,
                                       request.allow_extrapolation)
            pole_frame_id = request.target_frame_id
            if request.allow_extrapolation and not self.rotator.covers(
                    request.reference_frame_id, request.target_frame_id, site.age):
                extrapolated = True

        palat, lower, upper = paleolatitude_from_pole(site.latitude, site.longitude, pole)
        logger.debug(
            f"Site ({site.latitude}, {site.longitude}) at {site.age} Ma in {pole_frame_id}: "
            f"paleolatitude {palat:.3f} [{lower:.3f}, {upper:.3f}]"
            f"{' (extrapolated)' if extrapolated else ''}"
        )
        return PaleolatitudeResult(
            site=site,
            paleolatitude=palat,
            confidence_interval_degrees=(upper - lower) / 2.0,
            paleolatitude_lower=lower,
            paleolatitude_upper=upper,
            pole_used=pole,
            reference_frame_id=request.reference_frame_id,
            pole_frame_id=pole_frame_id,
            extrapolated=extrapolated,
        )


def compute_paleolatitude(
    catalog: APWPCatalog,
    site: Site,
    reference_frame_id: str,
    target_frame_id: Optional[str] = None,
    allow_extrapolation: bool = False,
) -> PaleolatitudeResult:
    """
    Convenience function to compute a single paleolatitude.

    Args:
        catalog: Loaded APWP catalog
        site: Site location and age
        reference_frame_id: Frame whose APWP to use
        target_frame_id: Optional frame to rotate the pole into
        allow_extrapolation: Permit ages outside the dated window

    Returns:
        PaleolatitudeResult
    """
    request = PaleolatitudeRequest(site, reference_frame_id, target_frame_id, allow_extrapolation)
    return PaleolatitudeCalculator(catalog).compute(request)

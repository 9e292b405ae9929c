"""
Pole Interpolation Module

Estimates the paleomagnetic pole of a reference frame at an arbitrary age
from the dated poles of its apparent polar wander path. Positions are
interpolated along great circles (slerp), never component-wise in
latitude/longitude, so paths crossing the antimeridian or passing close to
the geographic pole stay geometrically correct.
"""

import logging
import math

from .errors import OutOfRangeError
from .poles import APWPDataset, PoleRecord
from .spherical import slerp, to_lat_lon

logger = logging.getLogger(__name__)

# Slack allowed on the interpolation fraction before it is clamped to [0, 1]
FRACTION_TOLERANCE = 1e-9


def _blend(lower: PoleRecord, upper: PoleRecord, age: float, t: float) -> PoleRecord:
    latitude, longitude = to_lat_lon(slerp(lower.unit_vector, upper.unit_vector, t))
    # A95 is blended linearly in t; a modelling approximation
    uncertainty = lower.angular_uncertainty + t * (upper.angular_uncertainty - lower.angular_uncertainty)
    return PoleRecord(age, latitude, longitude, uncertainty)


class SphericalInterpolator:
    """
    Great-circle interpolator over one APWP dataset.

    Stateless apart from the (read-only) dataset, so a single instance can be
    shared between threads.
    """

    def __init__(self, dataset: APWPDataset):
        """
        Initialize interpolator.

        Args:
            dataset: Validated APWP dataset of one reference frame
        """
        self.dataset = dataset

    def pole_at(self, age: float) -> PoleRecord:
        """
        Interpolate the pole at a given age.

        Args:
            age: Age in Ma, within the dataset's dated window

        Returns:
            PoleRecord at the requested age. An exact age match returns the
            stored record unchanged.

        Raises:
            OutOfRangeError: age outside the dataset's dated window
        """
        lower, upper = self.dataset.records_bracketing(age)
        if lower is upper:
            return lower

        t = (age - lower.age) / (upper.age - lower.age)
        assert -FRACTION_TOLERANCE <= t <= 1.0 + FRACTION_TOLERANCE, \
            f"interpolation fraction {t} outside [0, 1] for age {age}"
        t = max(0.0, min(1.0, t))

        logger.debug(
            f"{self.dataset.reference_frame_id}: age {age} between {lower.age} and {upper.age} (t={t:.4f})"
        )
        return _blend(lower, upper, age, t)

    def extrapolated_pole_at(self, age: float) -> PoleRecord:
        """
        Estimate the pole at an age that may lie outside the dated window.

        Ages inside the window are interpolated as usual. Outside it, the
        great circle through the two records nearest the boundary is followed
        linearly in arc length. The extrapolated uncertainty grows linearly
        in the same fraction and never drops below that of the boundary
        record. A single-record dataset returns its only pole.

        Args:
            age: Age in Ma

        Returns:
            PoleRecord at the requested age

        Raises:
            OutOfRangeError: age is not a finite number
        """
        if not math.isfinite(age):
            raise OutOfRangeError(self.dataset.reference_frame_id, age, self.dataset.min_age, self.dataset.max_age)
        if self.dataset.covers(age):
            return self.pole_at(age)

        far, boundary = self.dataset.boundary_records(age)
        logger.debug(
            f"{self.dataset.reference_frame_id}: extrapolating to age {age} "
            f"from records at {far.age} and {boundary.age} Ma"
        )
        if far is boundary:
            return PoleRecord(age, boundary.pole_latitude, boundary.pole_longitude,
                              boundary.angular_uncertainty)

        t = (age - far.age) / (boundary.age - far.age)
        pole = _blend(far, boundary, age, t)
        if pole.angular_uncertainty < boundary.angular_uncertainty:
            pole = PoleRecord(age, pole.pole_latitude, pole.pole_longitude, boundary.angular_uncertainty)
        return pole


def interpolate_pole(age: float, dataset: APWPDataset, allow_extrapolation: bool = False) -> PoleRecord:
    """
    Convenience function to estimate a dataset's pole at one age.

    Args:
        age: Target age in Ma
        dataset: APWP dataset to interpolate
        allow_extrapolation: Permit ages outside the dated window

    Returns:
        Interpolated (or extrapolated) PoleRecord
    """
    interpolator = SphericalInterpolator(dataset)
    if allow_extrapolation:
        return interpolator.extrapolated_pole_at(age)
    return interpolator.pole_at(age)

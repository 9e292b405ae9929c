"""
Reference Frame Rotation

Moves paleomagnetic poles between named reference frames by applying finite
rotations (Euler pole + angle). Rotations are supplied as configuration data
in a RotationTable; they may be age-independent or tabulated by age, in which
case intermediate ages are interpolated by quaternion slerp.
"""

import bisect
import logging
import math
import numbers
from collections import deque
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from .errors import DataIntegrityError, OutOfRangeError, UnknownFrameError
from .poles import PoleRecord, wrap_raw_longitude
from .spherical import (
    quaternion_slerp,
    quaternion_to_rotation,
    rotation_matrix,
    rotation_to_quaternion,
    to_lat_lon,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FiniteRotation:
    """Rotation taking poles expressed in from_frame to to_frame"""
    from_frame: str
    to_frame: str
    pole_latitude: float
    pole_longitude: float
    angle: float  # degrees, right-hand rule about the rotation pole
    age: Optional[float] = None  # None: valid at every age

    def __post_init__(self):
        object.__setattr__(self, "pole_longitude",
                           wrap_raw_longitude(self.pole_longitude, "rotation pole longitude"))

    def inverse(self) -> "FiniteRotation":
        return FiniteRotation(self.to_frame, self.from_frame, self.pole_latitude,
                              self.pole_longitude, -self.angle, self.age)

    def matrix(self) -> np.ndarray:
        return rotation_matrix(self.pole_latitude, self.pole_longitude, self.angle)

    def apply(self, pole: PoleRecord) -> PoleRecord:
        """
        Rotate a pole. The A95 cone is carried through unchanged, since a
        rigid rotation maps a cone onto a cone of the same half-angle.
        """
        latitude, longitude = to_lat_lon(self.matrix() @ pole.unit_vector)
        return PoleRecord(pole.age, latitude, longitude, pole.angular_uncertainty)


def _check_rotation(rotation: FiniteRotation) -> None:
    values = [rotation.pole_latitude, rotation.pole_longitude, rotation.angle]
    if rotation.age is not None:
        values.append(rotation.age)
    if not all(isinstance(v, numbers.Real) for v in values):
        raise DataIntegrityError("non-numeric value")
    if not all(math.isfinite(v) for v in values):
        raise DataIntegrityError("non-finite value")
    if not rotation.from_frame or not rotation.to_frame:
        raise DataIntegrityError("empty frame id")
    if rotation.from_frame == rotation.to_frame:
        raise DataIntegrityError("rotation from a frame to itself")
    if not -90.0 <= rotation.pole_latitude <= 90.0:
        raise DataIntegrityError("rotation pole latitude outside [-90, 90]")
    if rotation.age is not None and rotation.age < 0:
        raise DataIntegrityError("negative age")


def _interpolate_rotations(lower: FiniteRotation, upper: FiniteRotation, age: float) -> FiniteRotation:
    t = (age - lower.age) / (upper.age - lower.age)
    q = quaternion_slerp(
        rotation_to_quaternion(lower.pole_latitude, lower.pole_longitude, lower.angle),
        rotation_to_quaternion(upper.pole_latitude, upper.pole_longitude, upper.angle),
        t,
    )
    latitude, longitude, angle = quaternion_to_rotation(q)
    return FiniteRotation(lower.from_frame, lower.to_frame, latitude, longitude, angle, age)


class RotationTable:
    """
    Finite rotations between reference frames.

    Each directed pair (from_frame, to_frame) holds either one age-independent
    rotation or a series of age-tagged rotations. The reverse direction is
    always available as the inverse rotation, and rotations can be chained
    through intermediate frames.
    """

    def __init__(self, rotations: Iterable[FiniteRotation] = ()):
        self._static: Dict[Tuple[str, str], FiniteRotation] = {}
        self._dated: Dict[Tuple[str, str], List[FiniteRotation]] = {}
        self._adjacent: Dict[str, set] = {}
        count = 0

        for index, rotation in enumerate(rotations):
            try:
                _check_rotation(rotation)
            except DataIntegrityError as e:
                raise DataIntegrityError(e.reason, record=rotation, index=index) from None

            key = (rotation.from_frame, rotation.to_frame)
            if rotation.age is None:
                if key in self._static:
                    raise DataIntegrityError("duplicate rotation", record=rotation, index=index)
                self._static[key] = rotation
            else:
                series = self._dated.setdefault(key, [])
                if any(r.age == rotation.age for r in series):
                    raise DataIntegrityError("duplicate rotation age", record=rotation, index=index)
                series.append(rotation)

            self._adjacent.setdefault(rotation.from_frame, set()).add(rotation.to_frame)
            self._adjacent.setdefault(rotation.to_frame, set()).add(rotation.from_frame)
            count += 1

        for series in self._dated.values():
            series.sort(key=lambda r: r.age)
        self._count = count

    def __len__(self) -> int:
        return self._count

    @property
    def frame_ids(self) -> List[str]:
        return sorted(self._adjacent)

    def find_path(self, from_frame: str, to_frame: str) -> List[str]:
        """
        Shortest chain of frames connecting two frames.

        Returns:
            Frame ids from from_frame to to_frame inclusive

        Raises:
            UnknownFrameError: the frames are not connected by any rotation
        """
        if from_frame == to_frame:
            return [from_frame]
        if from_frame not in self._adjacent or to_frame not in self._adjacent:
            raise UnknownFrameError(from_frame, to_frame)

        previous: Dict[str, Optional[str]] = {from_frame: None}
        queue = deque([from_frame])
        while queue:
            frame = queue.popleft()
            if frame == to_frame:
                break
            for neighbour in sorted(self._adjacent[frame]):
                if neighbour not in previous:
                    previous[neighbour] = frame
                    queue.append(neighbour)

        if to_frame not in previous:
            raise UnknownFrameError(from_frame, to_frame)

        path = [to_frame]
        while previous[path[-1]] is not None:
            path.append(previous[path[-1]])
        return path[::-1]

    def rotation_for(self, from_frame: str, to_frame: str, age: float,
                     allow_extrapolation: bool = False) -> FiniteRotation:
        """
        Rotation between two directly connected frames at a given age.

        Args:
            from_frame: Frame to rotate from
            to_frame: Directly connected frame to rotate into
            age: Age in Ma selecting among age-tagged rotations
            allow_extrapolation: Extend age-tagged rotations beyond their
                tabulated window instead of failing

        Raises:
            UnknownFrameError: no rotation is tabulated for the pair
            OutOfRangeError: the pair only has age-tagged rotations and age
                lies outside them (or is not finite)
        """
        try:
            return self._directed(from_frame, to_frame, age, allow_extrapolation)
        except UnknownFrameError:
            pass
        try:
            return self._directed(to_frame, from_frame, age, allow_extrapolation).inverse()
        except UnknownFrameError:
            raise UnknownFrameError(from_frame, to_frame) from None

    def covers(self, from_frame: str, to_frame: str, age: float) -> bool:
        """Whether the rotation between two directly connected frames is tabulated at age"""
        for key in ((from_frame, to_frame), (to_frame, from_frame)):
            if key in self._static:
                return True
            if key in self._dated:
                series = self._dated[key]
                return series[0].age <= age <= series[-1].age
        raise UnknownFrameError(from_frame, to_frame)

    def _directed(self, from_frame: str, to_frame: str, age: float,
                  allow_extrapolation: bool = False) -> FiniteRotation:
        key = (from_frame, to_frame)
        if key in self._static:
            return self._static[key]
        if key not in self._dated:
            raise UnknownFrameError(from_frame, to_frame)

        series = self._dated[key]
        ages = [r.age for r in series]
        if not math.isfinite(age) or not (ages[0] <= age <= ages[-1] or allow_extrapolation):
            raise OutOfRangeError(f"{from_frame}->{to_frame}", age, ages[0], ages[-1])

        if age < ages[0] or age > ages[-1]:
            return _extrapolate_rotations(series, age)
        i = bisect.bisect_left(ages, age)
        if ages[i] == age:
            return series[i]
        return _interpolate_rotations(series[i - 1], series[i], age)


def _extrapolate_rotations(series: List[FiniteRotation], age: float) -> FiniteRotation:
    # Continue the quaternion arc through the two entries nearest the boundary
    if len(series) == 1:
        only = series[0]
        return FiniteRotation(only.from_frame, only.to_frame, only.pole_latitude,
                              only.pole_longitude, only.angle, age)
    if age < series[0].age:
        far, boundary = series[1], series[0]
    else:
        far, boundary = series[-2], series[-1]
    logger.debug(
        f"Extrapolating {boundary.from_frame}->{boundary.to_frame} rotation to {age} Ma "
        f"from entries at {far.age} and {boundary.age} Ma"
    )
    return _interpolate_rotations(far, boundary, age)


class ReferenceFrameRotator:
    """Rotates poles from one reference frame to another"""

    def __init__(self, rotations: Optional[RotationTable] = None):
        self.rotations = rotations if rotations is not None else RotationTable()

    def rotate(self, pole: PoleRecord, from_frame: str, to_frame: str,
               allow_extrapolation: bool = False) -> PoleRecord:
        """
        Express a pole in another reference frame.

        Args:
            pole: Pole in from_frame; its age selects age-tagged rotations
            from_frame: Frame the pole is expressed in
            to_frame: Frame to express the pole in
            allow_extrapolation: Extend age-tagged rotations beyond their
                tabulated window

        Returns:
            Rotated PoleRecord with the same age and angular uncertainty

        Raises:
            UnknownFrameError: no rotation path connects the frames
            OutOfRangeError: a rotation on the path is not defined at pole.age
                and extrapolation is not allowed
        """
        if from_frame == to_frame:
            return pole

        path = self.rotations.find_path(from_frame, to_frame)
        logger.debug(f"Rotating pole at {pole.age} Ma along {' -> '.join(path)}")
        for source, target in zip(path, path[1:]):
            rotation = self.rotations.rotation_for(source, target, pole.age, allow_extrapolation)
            pole = rotation.apply(pole)
        return pole

    def covers(self, from_frame: str, to_frame: str, age: float) -> bool:
        """Whether every rotation on the path between two frames is tabulated at age"""
        if from_frame == to_frame:
            return True
        path = self.rotations.find_path(from_frame, to_frame)
        return all(self.rotations.covers(source, target, age) for source, target in zip(path, path[1:]))

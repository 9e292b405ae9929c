"""
Spherical Geometry Utilities

Unit-vector conversions, great-circle distance and interpolation, and finite
rotations on the unit sphere. Angles at the public interface are in degrees;
vectors are numpy arrays of shape (3,) in an Earth-centred frame with the
z axis through the geographic north pole and x through (0°N, 0°E).
"""

import math
from typing import Tuple

import numpy as np

# Below this separation (radians) two unit vectors are treated as identical
COINCIDENT_TOLERANCE = 1e-12
# Below this sine of separation, opposite unit vectors are treated as antipodal
ANTIPODAL_TOLERANCE = 1e-9


def normalize_longitude(longitude: float) -> float:
    """
    Wrap a longitude into [-180, 180).

    Args:
        longitude: Longitude in degrees

    Returns:
        Equivalent longitude in [-180, 180)
    """
    wrapped = (float(longitude) + 180.0) % 360.0 - 180.0
    # Float modulo can round -180 - epsilon up to exactly 180
    if wrapped >= 180.0:
        wrapped -= 360.0
    return wrapped


def to_unit_vector(latitude: float, longitude: float) -> np.ndarray:
    """Convert latitude/longitude (degrees) to a Cartesian unit vector."""
    lat = math.radians(latitude)
    lon = math.radians(longitude)
    return np.array([
        math.cos(lat) * math.cos(lon),
        math.cos(lat) * math.sin(lon),
        math.sin(lat),
    ])


def to_lat_lon(vector: np.ndarray) -> Tuple[float, float]:
    """
    Convert a Cartesian vector back to latitude/longitude.

    The vector need not be normalized. Longitude is returned in [-180, 180);
    at either geographic pole it is reported as 0.

    Returns:
        Tuple of (latitude, longitude) in degrees
    """
    x, y, z = (float(c) for c in vector)
    horizontal = math.hypot(x, y)
    latitude = math.degrees(math.atan2(z, horizontal))
    if horizontal < COINCIDENT_TOLERANCE:
        return latitude, 0.0
    return latitude, normalize_longitude(math.degrees(math.atan2(y, x)))


def angle_between(u: np.ndarray, v: np.ndarray) -> float:
    """
    Angle between two vectors in radians.

    Uses atan2 of the cross and dot products, which stays accurate for
    nearly coincident and nearly opposite vectors where arccos does not.
    """
    return math.atan2(float(np.linalg.norm(np.cross(u, v))), float(np.dot(u, v)))


def angular_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in degrees between two points given in degrees."""
    return math.degrees(angle_between(to_unit_vector(lat1, lon1), to_unit_vector(lat2, lon2)))


def is_antipodal(u: np.ndarray, v: np.ndarray) -> bool:
    """Whether two unit vectors point in (numerically) opposite directions."""
    return float(np.dot(u, v)) < 0 and float(np.linalg.norm(np.cross(u, v))) < ANTIPODAL_TOLERANCE


def slerp(u: np.ndarray, v: np.ndarray, t: float) -> np.ndarray:
    """
    Spherical linear interpolation between unit vectors u and v.

    For t in [0, 1] the result lies on the shorter great-circle arc from u to v,
    at fraction t of the arc length. Values of t outside [0, 1] continue along
    the same great circle, which is used for extrapolation.

    Args:
        u: Unit vector at t=0
        v: Unit vector at t=1
        t: Fraction of the arc

    Returns:
        Unit vector on the great circle through u and v
    """
    omega = angle_between(u, v)
    if omega < COINCIDENT_TOLERANCE:
        return np.array(u, dtype=float)
    if is_antipodal(u, v):
        raise ValueError("Great circle between antipodal vectors is undefined")

    sin_omega = math.sin(omega)
    result = (math.sin((1.0 - t) * omega) / sin_omega) * u + (math.sin(t * omega) / sin_omega) * v
    return result / np.linalg.norm(result)


def rotation_matrix(pole_latitude: float, pole_longitude: float, angle: float) -> np.ndarray:
    """
    Rotation matrix for a finite rotation about an Euler pole.

    Rodrigues' formula R = I + sin(w)K + (1 - cos(w))K^2, with K the
    cross-product matrix of the rotation axis. A positive angle rotates
    counter-clockwise when viewed from above the pole (right-hand rule).

    Args:
        pole_latitude: Latitude of the rotation pole in degrees
        pole_longitude: Longitude of the rotation pole in degrees
        angle: Rotation angle in degrees

    Returns:
        3x3 orthonormal matrix
    """
    kx, ky, kz = to_unit_vector(pole_latitude, pole_longitude)
    K = np.array([
        [0.0, -kz, ky],
        [kz, 0.0, -kx],
        [-ky, kx, 0.0],
    ])
    w = math.radians(angle)
    return np.eye(3) + math.sin(w) * K + (1.0 - math.cos(w)) * (K @ K)


def rotation_to_quaternion(pole_latitude: float, pole_longitude: float, angle: float) -> np.ndarray:
    """Unit quaternion (w, x, y, z) for a rotation of `angle` degrees about a pole."""
    half = math.radians(angle) / 2.0
    axis = to_unit_vector(pole_latitude, pole_longitude)
    return np.concatenate(([math.cos(half)], math.sin(half) * axis))


def quaternion_to_rotation(quaternion: np.ndarray) -> Tuple[float, float, float]:
    """
    Convert a unit quaternion back to pole latitude, longitude and angle.

    The angle is returned in (-180, 180]. The identity rotation is reported
    as a zero-degree rotation about the north pole.
    """
    q = quaternion / np.linalg.norm(quaternion)
    w = float(q[0])
    axis = q[1:]
    sin_half = float(np.linalg.norm(axis))
    if sin_half < COINCIDENT_TOLERANCE:
        return 90.0, 0.0, 0.0

    angle = math.degrees(2.0 * math.atan2(sin_half, w))
    if angle > 180.0:
        angle -= 360.0
    latitude, longitude = to_lat_lon(axis)
    return latitude, longitude, angle


def quaternion_slerp(q1: np.ndarray, q2: np.ndarray, t: float) -> np.ndarray:
    """Shortest-path spherical interpolation between two unit quaternions."""
    dot = float(np.dot(q1, q2))
    if dot < 0.0:
        # q and -q are the same rotation; take the nearer representative
        q2 = -q2
        dot = -dot

    if dot > 1.0 - COINCIDENT_TOLERANCE:
        blended = q1 + t * (q2 - q1)
        return blended / np.linalg.norm(blended)

    theta = math.acos(dot)
    sin_theta = math.sin(theta)
    blended = (math.sin((1.0 - t) * theta) / sin_theta) * q1 + (math.sin(t * theta) / sin_theta) * q2
    return blended / np.linalg.norm(blended)

"""
Apparent Polar Wander Path Data

In-memory representation of one reference frame's time series of
paleomagnetic pole estimates.
"""

import math
import numbers
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Mapping, Tuple

import numpy as np

from .errors import DataIntegrityError, OutOfRangeError
from .spherical import is_antipodal, normalize_longitude, to_unit_vector

# Accepted raw longitude magnitude before normalization to [-180, 180)
MAX_RAW_LONGITUDE = 360.0


def wrap_raw_longitude(longitude, label: str = "pole longitude"):
    """
    Normalize a longitude as read from input data.

    Values whose magnitude exceeds MAX_RAW_LONGITUDE are rejected rather than
    wrapped. Non-numeric and non-finite values are returned unchanged and left
    to the record validation.

    Raises:
        DataIntegrityError: finite longitude outside [-360, 360]
    """
    if not isinstance(longitude, numbers.Real) or not math.isfinite(longitude):
        return longitude
    if abs(longitude) > MAX_RAW_LONGITUDE:
        raise DataIntegrityError(f"{label} {longitude} outside [-{MAX_RAW_LONGITUDE}, {MAX_RAW_LONGITUDE}]")
    return normalize_longitude(longitude)


@dataclass(frozen=True)
class PoleRecord:
    """One dated paleomagnetic pole estimate"""
    age: float  # Ma before present
    pole_latitude: float
    pole_longitude: float
    angular_uncertainty: float = 0.0  # A95 half-angle in degrees

    def __post_init__(self):
        object.__setattr__(self, "pole_longitude", wrap_raw_longitude(self.pole_longitude))

    @property
    def unit_vector(self) -> np.ndarray:
        return to_unit_vector(self.pole_latitude, self.pole_longitude)

    def to_dict(self) -> Dict:
        """Convert to dictionary"""
        return {
            "age": self.age,
            "pole_latitude": self.pole_latitude,
            "pole_longitude": self.pole_longitude,
            "angular_uncertainty": self.angular_uncertainty,
        }


def _check_record(record: PoleRecord) -> None:
    values = (record.age, record.pole_latitude, record.pole_longitude, record.angular_uncertainty)
    if not all(isinstance(v, numbers.Real) for v in values):
        raise DataIntegrityError("non-numeric value", record=record)
    if not all(math.isfinite(v) for v in values):
        raise DataIntegrityError("non-finite value", record=record)
    if record.age < 0:
        raise DataIntegrityError("negative age", record=record)
    if not -90.0 <= record.pole_latitude <= 90.0:
        raise DataIntegrityError("pole latitude outside [-90, 90]", record=record)
    if record.angular_uncertainty < 0:
        raise DataIntegrityError("negative angular uncertainty", record=record)


class APWPDataset:
    """
    Apparent polar wander path for one named reference frame.

    Records are validated on construction: coordinates in range, ages finite,
    non-negative and strictly increasing, and no two neighbouring poles
    antipodal. The dataset is read-only afterwards.
    """

    def __init__(self, reference_frame_id: str, records: Iterable[PoleRecord]):
        records = tuple(records)
        if not reference_frame_id:
            raise DataIntegrityError("empty reference frame id")
        if not records:
            raise DataIntegrityError("dataset has no records", source=reference_frame_id)

        for index, record in enumerate(records):
            try:
                _check_record(record)
            except DataIntegrityError as e:
                raise DataIntegrityError(e.reason, record=record, index=index,
                                         source=reference_frame_id) from None
            if index == 0:
                continue
            previous = records[index - 1]
            if record.age <= previous.age:
                raise DataIntegrityError(
                    "ages not strictly increasing", record=record, index=index,
                    source=reference_frame_id,
                )
            if is_antipodal(previous.unit_vector, record.unit_vector):
                raise DataIntegrityError(
                    "antipodal neighbouring poles", record=record, index=index,
                    source=reference_frame_id,
                )

        self._reference_frame_id = reference_frame_id
        self._records = records
        self._ages = np.array([r.age for r in records], dtype=float)
        self._ages.setflags(write=False)

    @classmethod
    def from_rows(cls, reference_frame_id: str, rows: Iterable[Mapping[str, float]]) -> "APWPDataset":
        """
        Build a dataset from parsed tabular rows.

        Args:
            reference_frame_id: Frame identifier, e.g. "torsvik-2012-vandervoo-2015"
            rows: Mappings with keys age, pole_latitude, pole_longitude and
                optionally angular_uncertainty

        Returns:
            Validated APWPDataset
        """
        records: List[PoleRecord] = []
        for index, row in enumerate(rows):
            try:
                records.append(PoleRecord(
                    row["age"],
                    row["pole_latitude"],
                    row["pole_longitude"],
                    row.get("angular_uncertainty", 0.0),
                ))
            except KeyError as e:
                raise DataIntegrityError(f"missing field {e.args[0]}", record=dict(row), index=index,
                                         source=reference_frame_id) from None
            except DataIntegrityError as e:
                raise DataIntegrityError(e.reason, record=dict(row), index=index,
                                         source=reference_frame_id) from None
        return cls(reference_frame_id, records)

    @property
    def reference_frame_id(self) -> str:
        return self._reference_frame_id

    @property
    def records(self) -> Tuple[PoleRecord, ...]:
        return self._records

    @property
    def min_age(self) -> float:
        return self.records[0].age

    @property
    def max_age(self) -> float:
        return self.records[-1].age

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[PoleRecord]:
        return iter(self.records)

    def __repr__(self) -> str:
        return (f"APWPDataset({self.reference_frame_id!r}, {len(self)} records, "
                f"{self.min_age}-{self.max_age} Ma)")

    def covers(self, age: float) -> bool:
        """Whether age lies within the dated window [min_age, max_age]"""
        return self.min_age <= age <= self.max_age

    def records_bracketing(self, age: float) -> Tuple[PoleRecord, PoleRecord]:
        """
        Find the records whose ages straddle the given age.

        Args:
            age: Query age in Ma

        Returns:
            (lower, upper) adjacent records with lower.age <= age <= upper.age.
            On an exact match both elements are the matching record.

        Raises:
            OutOfRangeError: age outside [min_age, max_age]
        """
        if not (math.isfinite(age) and self.covers(age)):
            raise OutOfRangeError(self.reference_frame_id, age, self.min_age, self.max_age)

        i = int(np.searchsorted(self._ages, age, side="left"))
        if self._ages[i] == age:
            return self.records[i], self.records[i]
        return self.records[i - 1], self.records[i]

    def boundary_records(self, age: float) -> Tuple[PoleRecord, PoleRecord]:
        """
        The two records nearest the series boundary on the side of an
        out-of-window age, ordered (older-side first, boundary second) so that
        the boundary record is the one closest to the query age.
        """
        if len(self.records) == 1:
            return self.records[0], self.records[0]
        if age < self.min_age:
            return self.records[1], self.records[0]
        return self.records[-2], self.records[-1]

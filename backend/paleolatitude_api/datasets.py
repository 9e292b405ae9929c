"""
APWP Data Loading Module

Discovers and parses the CSV files backing the paleolatitude engine:

- apwp-<frame-id>.csv: one apparent polar wander path per reference frame,
  columns age, a95, lat (or latitude), lon (or longitude), optional plate_id
- rotations.csv: optional finite rotations between frames, columns
  from_frame, to_frame, age (blank for age-independent), lat, lon, angle

Header names are case-insensitive. Malformed values are never defaulted:
they raise DataIntegrityError naming the file and line.
"""

import csv
import logging
import math
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from paleolatitude import APWPCatalog, APWPDataset, FiniteRotation, RotationTable
from paleolatitude.errors import DataIntegrityError
from paleolatitude.poles import PoleRecord

logger = logging.getLogger(__name__)

APWP_FILE_PREFIX = "apwp-"
APWP_FILE_SUFFIX = ".csv"
ROTATIONS_FILENAME = "rotations.csv"

AGE_COLUMNS = ("age",)
A95_COLUMNS = ("a95",)
LATITUDE_COLUMNS = ("lat", "latitude")
LONGITUDE_COLUMNS = ("lon", "longitude")
PLATE_COLUMNS = ("plate_id", "plate")

PathLike = Union[str, Path]


def parse_number(value: Optional[str], field: str, source: str) -> float:
    """
    Parse a numeric CSV field.

    Args:
        value: Raw string value
        field: Column name, for error reporting
        source: "file:line", for error reporting

    Returns:
        Parsed finite float

    Raises:
        DataIntegrityError: value missing, unparseable or not finite
    """
    try:
        result = float(str(value).strip())
    except (ValueError, TypeError):
        raise DataIntegrityError(f"invalid {field} value {value!r}", source=source) from None
    if not math.isfinite(result):
        raise DataIntegrityError(f"non-finite {field} value {value!r}", source=source)
    return result


def _lowercase_keys(row: Dict[str, str], source: str) -> Dict[str, str]:
    # DictReader files surplus values under the key None
    if None in row:
        raise DataIntegrityError("too many fields", record=row, source=source)
    return {k.strip().lower(): (v or "").strip() for k, v in row.items()}


def _pick(row: Dict[str, str], aliases: Sequence[str]) -> Optional[str]:
    for name in aliases:
        if name in row:
            return row[name]
    return None


def _require_columns(fieldnames: Optional[Sequence[str]], required: Dict[str, Sequence[str]], source: str) -> None:
    if not fieldnames:
        raise DataIntegrityError("missing header row", source=source)
    present = {(f or "").strip().lower() for f in fieldnames}
    for label, aliases in required.items():
        if not present.intersection(aliases):
            raise DataIntegrityError(f"missing column '{label}'", source=source)


def frame_id_from_filename(filename: str) -> Optional[str]:
    """Frame id encoded in an APWP filename, or None if the name does not match"""
    if filename.startswith(APWP_FILE_PREFIX) and filename.endswith(APWP_FILE_SUFFIX):
        frame_id = filename[len(APWP_FILE_PREFIX):-len(APWP_FILE_SUFFIX)]
        return frame_id or None
    return None


def discover_apwp_files(data_dir: PathLike) -> Dict[str, str]:
    """
    Find all APWP data files in a directory.

    Returns:
        Mapping of frame id to filename, e.g.
        {"torsvik-2012-vandervoo-2015": "apwp-torsvik-2012-vandervoo-2015.csv"}
    """
    data_dir = Path(data_dir)
    if not data_dir.is_dir():
        logger.warning(f"APWP data directory not found: {data_dir}")
        return {}

    result = {}
    for path in sorted(data_dir.iterdir()):
        frame_id = frame_id_from_filename(path.name)
        if frame_id is not None and path.is_file():
            result[frame_id] = path.name
    return result


def load_apwp_dataset(path: PathLike, frame_id: Optional[str] = None, plate_id: Optional[int] = None) -> APWPDataset:
    """
    Load one APWP CSV file.

    Args:
        path: CSV file path
        frame_id: Reference frame id; derived from the filename if omitted
        plate_id: If given and the file has a plate column, keep only rows of
            this plate

    Returns:
        Validated APWPDataset
    """
    path = Path(path)
    if frame_id is None:
        frame_id = frame_id_from_filename(path.name) or path.stem

    records: List[PoleRecord] = []
    with open(path, "r", newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        _require_columns(
            reader.fieldnames,
            {"age": AGE_COLUMNS, "lat": LATITUDE_COLUMNS, "lon": LONGITUDE_COLUMNS},
            str(path),
        )
        for raw_row in reader:
            source = f"{path}:{reader.line_num}"
            row = _lowercase_keys(raw_row, source)
            if not any(row.values()):
                continue

            plate = _pick(row, PLATE_COLUMNS)
            if plate_id is not None and plate:
                if int(parse_number(plate, "plate_id", source)) != plate_id:
                    continue

            a95 = _pick(row, A95_COLUMNS)
            try:
                records.append(PoleRecord(
                    parse_number(_pick(row, AGE_COLUMNS), "age", source),
                    parse_number(_pick(row, LATITUDE_COLUMNS), "lat", source),
                    parse_number(_pick(row, LONGITUDE_COLUMNS), "lon", source),
                    parse_number(a95, "a95", source) if a95 else 0.0,
                ))
            except DataIntegrityError as e:
                raise DataIntegrityError(e.reason, record=raw_row, source=source) from None

    dataset = APWPDataset(frame_id, records)
    logger.info(f"Loaded {len(dataset)} poles for '{frame_id}' ({dataset.min_age}-{dataset.max_age} Ma) from {path}")
    return dataset


def load_rotation_table(path: PathLike) -> RotationTable:
    """Load finite rotations between reference frames from a CSV file"""
    path = Path(path)
    rotations: List[FiniteRotation] = []
    with open(path, "r", newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        _require_columns(
            reader.fieldnames,
            {
                "from_frame": ("from_frame",),
                "to_frame": ("to_frame",),
                "lat": LATITUDE_COLUMNS,
                "lon": LONGITUDE_COLUMNS,
                "angle": ("angle",),
            },
            str(path),
        )
        for raw_row in reader:
            source = f"{path}:{reader.line_num}"
            row = _lowercase_keys(raw_row, source)
            if not any(row.values()):
                continue
            age = _pick(row, AGE_COLUMNS)
            try:
                rotations.append(FiniteRotation(
                    from_frame=row["from_frame"],
                    to_frame=row["to_frame"],
                    pole_latitude=parse_number(_pick(row, LATITUDE_COLUMNS), "lat", source),
                    pole_longitude=parse_number(_pick(row, LONGITUDE_COLUMNS), "lon", source),
                    angle=parse_number(row["angle"], "angle", source),
                    age=parse_number(age, "age", source) if age else None,
                ))
            except DataIntegrityError as e:
                raise DataIntegrityError(e.reason, record=raw_row, source=source) from None

    table = RotationTable(rotations)
    logger.info(f"Loaded {len(table)} finite rotations from {path}")
    return table


def load_catalog(data_dir: PathLike, plate_id: Optional[int] = None) -> APWPCatalog:
    """
    Load every APWP file in a directory, plus rotations.csv if present.

    Args:
        data_dir: Directory holding apwp-*.csv files
        plate_id: Optional plate filter passed to load_apwp_dataset

    Returns:
        APWPCatalog with one dataset per discovered frame
    """
    data_dir = Path(data_dir)
    datasets = [
        load_apwp_dataset(data_dir / filename, frame_id, plate_id)
        for frame_id, filename in discover_apwp_files(data_dir).items()
    ]

    rotations = None
    rotations_path = data_dir / ROTATIONS_FILENAME
    if rotations_path.is_file():
        rotations = load_rotation_table(rotations_path)

    catalog = APWPCatalog(datasets, rotations)
    logger.info(f"APWP catalog ready: {', '.join(catalog.frame_ids) or 'no frames'}")
    return catalog

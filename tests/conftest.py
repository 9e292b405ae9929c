import pytest

from paleolatitude import APWPCatalog, APWPDataset, FiniteRotation, PoleRecord, RotationTable


@pytest.fixture
def simple_dataset():
    """Pole moving from the geographic north pole to 80°N along the 0° meridian"""
    return APWPDataset("test-frame", [
        PoleRecord(0, 90, 0, 0),
        PoleRecord(10, 80, 0, 2),
    ])


@pytest.fixture
def dateline_dataset():
    """Path crossing the antimeridian"""
    return APWPDataset("dateline-frame", [
        PoleRecord(20, 70, 170, 1),
        PoleRecord(30, 70, -170, 3),
    ])


@pytest.fixture
def rotations():
    """test-frame -> other-frame: 90° about (0°N, 0°E)"""
    return RotationTable([FiniteRotation("test-frame", "other-frame", 0, 0, 90)])


@pytest.fixture
def catalog(simple_dataset, dateline_dataset, rotations):
    return APWPCatalog([simple_dataset, dateline_dataset], rotations)


@pytest.fixture
def write_csv(tmp_path):
    """Write a CSV file into tmp_path and return its path"""
    def _write(name, lines):
        path = tmp_path / name
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path
    return _write

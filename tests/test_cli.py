import argparse
import importlib.util
from pathlib import Path

import pytest

SCRIPT = Path(__file__).parent.parent / "scripts" / "paleolatitude_cli.py"


@pytest.fixture(scope="module")
def cli():
    spec = importlib.util.spec_from_file_location("paleolatitude_cli", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def data_dir(write_csv, tmp_path):
    write_csv("apwp-test.csv", ["age,a95,lat,lon", "0,0,90,0", "10,2,80,0"])
    write_csv("rotations.csv", ["from_frame,to_frame,lat,lon,angle", "test,other,0,0,90"])
    return tmp_path


class TestParseSite:
    def test_valid(self, cli):
        assert cli.parse_site("52.1,5.1") == (52.1, 5.1)
        assert cli.parse_site("-30,-60.5") == (-30, -60.5)

    @pytest.mark.parametrize("value", ["52.1", "a,b", "1,2,3"])
    def test_invalid(self, cli, value):
        with pytest.raises(argparse.ArgumentTypeError):
            cli.parse_site(value)


class TestMain:
    def test_frames(self, cli, data_dir, capsys):
        assert cli.main(["--data-dir", str(data_dir), "frames"]) == 0
        assert "test: 0.0-10.0 Ma (2 poles)" in capsys.readouterr().out

    def test_frames_empty_directory(self, cli, tmp_path):
        assert cli.main(["--data-dir", str(tmp_path), "frames"]) == 1

    def test_compute(self, cli, data_dir, capsys):
        code = cli.main(["--data-dir", str(data_dir), "compute", "45,0", "--age", "0", "--pm-ref-frame", "test"])
        assert code == 0
        out = capsys.readouterr().out
        assert "paleolatitude:     45.00 ± 0.00" in out
        assert "Please cite" in out

    def test_compute_with_rotation(self, cli, data_dir, capsys):
        code = cli.main([
            "--data-dir", str(data_dir), "compute", "0,-90", "--age", "0",
            "--pm-ref-frame", "test", "--target-frame", "other",
        ])
        assert code == 0
        out = capsys.readouterr().out
        assert "rotated into:      other" in out
        assert "paleolatitude:     90.00" in out

    def test_compute_extrapolated(self, cli, data_dir, capsys):
        args = ["--data-dir", str(data_dir), "compute", "0,0", "--age", "15", "--pm-ref-frame", "test"]
        assert cli.main(args) == 1
        assert cli.main(args + ["--allow-extrapolation"]) == 0
        assert "extrapolated" in capsys.readouterr().out

    def test_unknown_frame(self, cli, data_dir):
        assert cli.main(["--data-dir", str(data_dir), "compute", "0,0", "--age", "5", "--pm-ref-frame", "nope"]) == 1

    def test_invalid_site(self, cli, data_dir):
        assert cli.main(["--data-dir", str(data_dir), "compute", "95,0", "--age", "5", "--pm-ref-frame", "test"]) == 1

import math
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from paleolatitude import (
    APWPCatalog,
    APWPDataset,
    FiniteRotation,
    PaleolatitudeCalculator,
    PaleolatitudeRequest,
    PoleRecord,
    RotationTable,
    Site,
    compute_paleolatitude,
)
from paleolatitude.calculator import paleolatitude_from_pole
from paleolatitude.errors import OutOfRangeError, UnknownFrameError


class TestSite:
    def test_longitude_normalized(self):
        assert Site(10, 190, 5).longitude == pytest.approx(-170)

    def test_numpy_scalars_accepted(self):
        site = Site(np.int64(10), np.float32(190), np.int64(5))
        assert site.longitude == pytest.approx(-170)
        assert site.age == 5

    @pytest.mark.parametrize("lat, lon, age", [
        (91, 0, 0),
        (-90.5, 0, 0),
        (0, 400, 0),
        (0, 0, -1),
        (math.nan, 0, 0),
        (0, math.inf, 0),
        (0, 0, "10"),
    ])
    def test_invalid_sites_rejected(self, lat, lon, age):
        with pytest.raises(ValueError):
            Site(lat, lon, age)


class TestPaleolatitudeFromPole:
    def test_site_on_paleo_equator(self):
        palat, lower, upper = paleolatitude_from_pole(0, 0, PoleRecord(0, 90, 0, 0))
        assert palat == pytest.approx(0, abs=1e-12)
        assert lower == upper == palat

    def test_sign_follows_pole_hemisphere(self):
        palat, _, _ = paleolatitude_from_pole(45, 30, PoleRecord(0, 90, 0))
        assert palat == pytest.approx(45)
        palat, _, _ = paleolatitude_from_pole(-30, 30, PoleRecord(0, 90, 0))
        assert palat == pytest.approx(-30)
        palat, _, _ = paleolatitude_from_pole(0, 0, PoleRecord(0, 0, 0))
        assert palat == pytest.approx(90)

    def test_bounds_on_equator(self):
        # p = 90°, so ΔI = 2·A95 and the field inclination is 0
        palat, lower, upper = paleolatitude_from_pole(0, 0, PoleRecord(0, 90, 0, 5))
        expected = math.degrees(math.atan(0.5 * math.tan(math.radians(10))))
        assert palat == pytest.approx(0, abs=1e-12)
        assert upper == pytest.approx(expected)
        assert lower == pytest.approx(-expected)

    def test_bounds_near_pole(self):
        # p = 0°, so ΔI = A95 / 2 and the inclination is 90°
        palat, lower, upper = paleolatitude_from_pole(90, 0, PoleRecord(0, 90, 0, 8))
        assert palat == pytest.approx(90)
        assert upper == 90
        assert lower == pytest.approx(math.degrees(math.atan(0.5 * math.tan(math.radians(86)))))

    def test_bound_saturates_over_pole(self):
        _, lower, upper = paleolatitude_from_pole(80, 0, PoleRecord(0, 90, 0, 30))
        assert upper == 90
        assert lower < 80

    @pytest.mark.parametrize("site_lat", [-75, -20, 0, 10, 55, 89])
    def test_interval_grows_with_uncertainty(self, site_lat):
        previous = -1.0
        for a95 in (0, 0.5, 1, 2, 5, 10, 20, 40, 90):
            palat, lower, upper = paleolatitude_from_pole(site_lat, 15, PoleRecord(0, 90, 0, a95))
            interval = (upper - lower) / 2
            assert lower <= palat <= upper
            assert interval >= 0
            assert interval >= previous
            previous = interval


class TestPaleolatitudeCalculator:
    def test_site_on_paleo_equator_with_zero_uncertainty(self, catalog):
        result = PaleolatitudeCalculator(catalog).compute(
            PaleolatitudeRequest(Site(0, 0, 0), "test-frame")
        )
        assert result.paleolatitude == pytest.approx(0, abs=1e-12)
        assert result.confidence_interval_degrees == 0
        assert result.pole_used == catalog.get("test-frame").records[0]
        assert result.reference_frame_id == "test-frame"
        assert result.pole_frame_id == "test-frame"
        assert result.extrapolated is False
        assert result.age == 0

    def test_interpolated_age(self, catalog):
        result = PaleolatitudeCalculator(catalog).compute(
            PaleolatitudeRequest(Site(85, 0, 5), "test-frame")
        )
        assert result.pole_used.pole_latitude == pytest.approx(85)
        # Site sits on the interpolated pole
        assert result.paleolatitude == pytest.approx(90)
        assert result.confidence_interval_degrees > 0

    def test_unknown_frame(self, catalog):
        with pytest.raises(UnknownFrameError):
            PaleolatitudeCalculator(catalog).compute(PaleolatitudeRequest(Site(0, 0, 5), "made-up-frame"))

    def test_out_of_range_without_extrapolation(self, catalog):
        with pytest.raises(OutOfRangeError):
            PaleolatitudeCalculator(catalog).compute(PaleolatitudeRequest(Site(0, 0, 50), "test-frame"))

    def test_out_of_range_with_extrapolation(self, catalog):
        result = PaleolatitudeCalculator(catalog).compute(
            PaleolatitudeRequest(Site(0, 0, 15), "test-frame", allow_extrapolation=True)
        )
        assert result.extrapolated is True
        assert result.pole_used.pole_latitude == pytest.approx(75)
        assert result.paleolatitude == pytest.approx(15)

    def test_in_range_with_extrapolation_flag(self, catalog):
        result = PaleolatitudeCalculator(catalog).compute(
            PaleolatitudeRequest(Site(0, 0, 5), "test-frame", allow_extrapolation=True)
        )
        assert result.extrapolated is False

    def test_rotation_into_target_frame(self, catalog):
        # 90° about (0°N, 0°E) carries the north pole to (0°N, 90°W)
        result = PaleolatitudeCalculator(catalog).compute(
            PaleolatitudeRequest(Site(0, -90, 0), "test-frame", target_frame_id="other-frame")
        )
        assert result.pole_used.pole_latitude == pytest.approx(0, abs=1e-9)
        assert result.pole_used.pole_longitude == pytest.approx(-90)
        assert result.paleolatitude == pytest.approx(90)
        assert result.reference_frame_id == "test-frame"
        assert result.pole_frame_id == "other-frame"

    def test_target_equal_to_reference_does_not_rotate(self, catalog):
        result = PaleolatitudeCalculator(catalog).compute(
            PaleolatitudeRequest(Site(0, -90, 0), "test-frame", target_frame_id="test-frame")
        )
        assert result.paleolatitude == pytest.approx(0, abs=1e-9)
        assert result.pole_frame_id == "test-frame"

    def test_unknown_target_frame(self, catalog):
        with pytest.raises(UnknownFrameError):
            PaleolatitudeCalculator(catalog).compute(
                PaleolatitudeRequest(Site(0, 0, 5), "test-frame", target_frame_id="made-up-frame")
            )

    @pytest.fixture
    def dated_rotation_catalog(self):
        dataset = APWPDataset("a", [PoleRecord(0, 90, 0, 0), PoleRecord(10, 80, 0, 2), PoleRecord(20, 70, 0, 2)])
        rotations = RotationTable([
            FiniteRotation("a", "b", 0, 0, 0, age=0),
            FiniteRotation("a", "b", 0, 0, 20, age=10),
        ])
        return APWPCatalog([dataset], rotations)

    def test_extrapolated_age_rotated_with_dated_rotations(self):
        dataset = APWPDataset("a", [PoleRecord(0, 90, 0, 0), PoleRecord(10, 80, 0, 2)])
        catalog = APWPCatalog([dataset], RotationTable([
            FiniteRotation("a", "b", 0, 0, 0, age=0),
            FiniteRotation("a", "b", 0, 0, 20, age=10),
        ]))
        request = PaleolatitudeRequest(Site(0, 0, 15), "a", target_frame_id="b", allow_extrapolation=True)

        result = PaleolatitudeCalculator(catalog).compute(request)
        expected = FiniteRotation("a", "b", 0, 0, 30).apply(PoleRecord(15, 75, 0, 3))
        assert result.extrapolated is True
        assert result.pole_frame_id == "b"
        assert result.pole_used.pole_latitude == pytest.approx(expected.pole_latitude)
        assert result.pole_used.pole_longitude == pytest.approx(expected.pole_longitude)
        assert result.pole_used.angular_uncertainty == pytest.approx(3)

    def test_rotation_window_shorter_than_dataset(self, dated_rotation_catalog):
        calculator = PaleolatitudeCalculator(dated_rotation_catalog)
        with pytest.raises(OutOfRangeError):
            calculator.compute(PaleolatitudeRequest(Site(0, 0, 15), "a", target_frame_id="b"))

        result = calculator.compute(
            PaleolatitudeRequest(Site(0, 0, 15), "a", target_frame_id="b", allow_extrapolation=True)
        )
        assert result.extrapolated is True

    def test_rotation_inside_window_not_flagged(self, dated_rotation_catalog):
        result = PaleolatitudeCalculator(dated_rotation_catalog).compute(
            PaleolatitudeRequest(Site(0, 0, 5), "a", target_frame_id="b", allow_extrapolation=True)
        )
        assert result.extrapolated is False

    def test_concurrent_requests_match_sequential(self):
        dataset = APWPDataset("f", [PoleRecord(age, 90 - age / 4, age * 3, age / 10) for age in range(0, 101, 10)])
        calculator = PaleolatitudeCalculator(APWPCatalog([dataset]))
        requests = [PaleolatitudeRequest(Site(lat, lat * 2, lat + 50), "f") for lat in range(-45, 46, 5)]

        sequential = [calculator.compute(r) for r in requests]
        with ThreadPoolExecutor(max_workers=4) as pool:
            parallel = list(pool.map(calculator.compute, requests))
        assert parallel == sequential


class TestComputePaleolatitude:
    def test_convenience_function(self, catalog):
        result = compute_paleolatitude(catalog, Site(45, 0, 0), "test-frame")
        assert result.paleolatitude == pytest.approx(45)

    def test_to_dict(self, catalog):
        data = compute_paleolatitude(catalog, Site(45, 0, 5), "test-frame").to_dict()
        assert data["site"] == {"latitude": 45, "longitude": 0, "age": 5}
        assert data["reference_frame_id"] == "test-frame"
        assert data["extrapolated"] is False
        assert set(data["pole_used"]) == {"age", "pole_latitude", "pole_longitude", "angular_uncertainty"}
        assert data["paleolatitude_lower"] <= data["paleolatitude"] <= data["paleolatitude_upper"]

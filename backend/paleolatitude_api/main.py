"""
PaleoLatitude API
FastAPI backend serving paleolatitude computations

Features:
- Great-circle interpolation of apparent polar wander paths
- Optional rotation of poles between paleomagnetic reference frames
- Paleolatitude with A95-derived confidence bounds
- Consistent JSON error envelope for all failures
"""

import logging
import os
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Path, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from paleolatitude import (
    APWPCatalog,
    PaleolatitudeCalculator,
    PaleolatitudeRequest,
    Site,
    SphericalInterpolator,
    __version__,
)
from paleolatitude.errors import DataIntegrityError, OutOfRangeError, UnknownFrameError

from .datasets import load_catalog

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

# ============================================================================
# Configuration
# ============================================================================

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.getenv("PALEOLATITUDE_DATA_DIR", os.path.join(BASE_DIR, "data"))
DEFAULT_FRAME = os.getenv("PALEOLATITUDE_DEFAULT_FRAME", "torsvik-2012-vandervoo-2015")
PLATE_ID = int(os.getenv("PALEOLATITUDE_PLATE_ID")) if os.getenv("PALEOLATITUDE_PLATE_ID") else None

# Get allowed origins from environment, with safe defaults for development
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "").split(",") if os.getenv("ALLOWED_ORIGINS") else [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:8080",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]

CITATION = (
    "Douwe J.J. van Hinsbergen, Lennart V. de Groot, Sebastiaan J. van Schaik, "
    "Appy Sluijs, Peter K. Bijl, Wim Spakman, Cor G. Langereis, Henk Brinkhuis: "
    "A Paleolatitude Calculator for Paleoclimate Studies. "
    "PLoS ONE, 2015 (http://doi.org/10.1371/journal.pone.0126946)"
)

app = FastAPI(
    title="PaleoLatitude API",
    description="Paleolatitude of a present-day site at a geologic age, from apparent polar wander paths",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# ============================================================================
# Pydantic Models
# ============================================================================

class PoleModel(BaseModel):
    """Paleomagnetic pole estimate"""
    age: float = Field(..., description="Age in Ma before present")
    pole_latitude: float = Field(..., description="Pole latitude in degrees")
    pole_longitude: float = Field(..., description="Pole longitude in degrees, [-180, 180)")
    angular_uncertainty: float = Field(..., description="A95 half-angle in degrees")


class FrameSummary(BaseModel):
    """Reference frame with its dated window"""
    reference_frame_id: str
    min_age: float
    max_age: float
    records_count: int


class FrameDetail(FrameSummary):
    """Reference frame with all of its poles"""
    records: List[PoleModel]


class PoleResponse(BaseModel):
    """Pole of a frame at a requested age"""
    reference_frame_id: str
    pole: PoleModel
    extrapolated: bool = False


class SiteModel(BaseModel):
    """Query site"""
    latitude: float
    longitude: float
    age: float


class PaleolatitudeResponse(BaseModel):
    """Paleolatitude of a site with its confidence envelope"""
    site: SiteModel
    paleolatitude: float = Field(..., description="Paleolatitude in degrees, positive in the pole's hemisphere")
    confidence_interval_degrees: float = Field(..., description="Half-width of [lower, upper] in degrees")
    paleolatitude_lower: float
    paleolatitude_upper: float
    pole_used: PoleModel
    reference_frame_id: str = Field(..., description="Frame whose APWP was interpolated")
    pole_frame_id: str = Field(..., description="Frame the applied pole is expressed in")
    extrapolated: bool = Field(False, description="Age lay outside the frame's dated window")


class ErrorResponse(BaseModel):
    """Standard error response"""
    error: str
    detail: str
    status_code: int


# ============================================================================
# Data Loading
# ============================================================================

_catalog: Optional[APWPCatalog] = None


def get_catalog() -> APWPCatalog:
    """Get the APWP catalog, loading it on first use"""
    global _catalog
    if _catalog is None:
        _catalog = load_catalog(DATA_DIR, PLATE_ID)
    return _catalog


def _summary(catalog: APWPCatalog, frame_id: str) -> Dict:
    dataset = catalog.get(frame_id)
    return {
        "reference_frame_id": frame_id,
        "min_age": dataset.min_age,
        "max_age": dataset.max_age,
        "records_count": len(dataset),
    }


# ============================================================================
# Exception Handlers
# ============================================================================

def _error(status_code: int, error: str, detail) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "detail": detail,
            "status_code": status_code,
        }
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """Custom HTTP exception handler with consistent format"""
    return _error(exc.status_code, "HTTPException", exc.detail)


@app.exception_handler(UnknownFrameError)
async def unknown_frame_handler(request, exc: UnknownFrameError):
    """Unknown reference frame or rotation path"""
    return _error(404, "UnknownFrameError", str(exc))


@app.exception_handler(OutOfRangeError)
async def out_of_range_handler(request, exc: OutOfRangeError):
    """Age outside the dated window"""
    return _error(422, "OutOfRangeError", str(exc))


@app.exception_handler(DataIntegrityError)
async def data_integrity_handler(request, exc: DataIntegrityError):
    """Server-side APWP data is malformed"""
    logger.error(f"Data integrity error: {exc}")
    return _error(500, "DataIntegrityError", "APWP data on the server is invalid")


@app.exception_handler(ValueError)
async def value_error_handler(request, exc: ValueError):
    """Handle value errors"""
    logger.warning(f"Value error: {str(exc)}")
    return _error(400, "ValueError", str(exc))


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    """Handle unexpected errors"""
    logger.exception("Unhandled error")
    return _error(500, "InternalServerError", "An unexpected error occurred. Please try again later.")


# ============================================================================
# API Endpoints
# ============================================================================

@app.get("/", tags=["General"])
async def root():
    """API root endpoint"""
    return {
        "message": "PaleoLatitude API (http://www.paleolatitude.org)",
        "version": __version__,
        "citation": CITATION,
        "documentation": "/docs",
        "endpoints": {
            "health": "/api/health",
            "frames": "/api/frames",
            "frame": "/api/frames/{frame_id}",
            "pole": "/api/frames/{frame_id}/pole/{age}",
            "paleolatitude": "/api/paleolatitude",
        }
    }


@app.get("/api/health", tags=["General"])
async def health(catalog: APWPCatalog = Depends(get_catalog)):
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": __version__,
        "data_loaded": len(catalog) > 0,
        "frames": catalog.frame_ids,
        "default_frame": DEFAULT_FRAME,
        "rotations_count": len(catalog.rotations),
    }


@app.get("/api/frames", response_model=Dict[str, List[FrameSummary]], tags=["Reference Frames"])
async def get_frames(catalog: APWPCatalog = Depends(get_catalog)):
    """
    List the loaded paleomagnetic reference frames.

    Each frame is one apparent polar wander path, with the age window it covers.
    """
    return {
        "frames": [FrameSummary(**_summary(catalog, frame_id)) for frame_id in catalog.frame_ids]
    }


@app.get("/api/frames/{frame_id}", response_model=FrameDetail, tags=["Reference Frames"])
async def get_frame(
    frame_id: str = Path(..., description="Reference frame id, e.g. torsvik-2012-vandervoo-2015"),
    catalog: APWPCatalog = Depends(get_catalog),
):
    """Get all dated poles of a reference frame."""
    dataset = catalog.get(frame_id)
    return FrameDetail(
        **_summary(catalog, frame_id),
        records=[PoleModel(**record.to_dict()) for record in dataset],
    )


@app.get("/api/frames/{frame_id}/pole/{age}", response_model=PoleResponse, tags=["Reference Frames"])
async def get_pole(
    frame_id: str = Path(..., description="Reference frame id"),
    age: float = Path(..., ge=0, description="Age in Ma before present"),
    allow_extrapolation: bool = Query(False, description="Permit ages outside the dated window"),
    catalog: APWPCatalog = Depends(get_catalog),
):
    """
    Get the paleomagnetic pole of a frame at any age.

    Poles between dated records are interpolated along the great circle
    connecting them; the A95 is interpolated linearly.
    """
    dataset = catalog.get(frame_id)
    interpolator = SphericalInterpolator(dataset)
    extrapolated = allow_extrapolation and not dataset.covers(age)
    pole = interpolator.extrapolated_pole_at(age) if extrapolated else interpolator.pole_at(age)
    return PoleResponse(
        reference_frame_id=frame_id,
        pole=PoleModel(**pole.to_dict()),
        extrapolated=extrapolated,
    )


@app.get("/api/paleolatitude", response_model=PaleolatitudeResponse, tags=["Paleolatitude"])
async def get_paleolatitude(
    lat: float = Query(..., ge=-90, le=90, description="Present-day site latitude in degrees"),
    lon: float = Query(..., ge=-360, le=360, description="Present-day site longitude in degrees"),
    age: float = Query(..., ge=0, description="Age in Ma before present"),
    frame: Optional[str] = Query(None, description="Paleomagnetic reference frame (default: server setting)"),
    target_frame: Optional[str] = Query(None, description="Rotate the pole into this frame first"),
    allow_extrapolation: bool = Query(False, description="Permit ages outside the dated window"),
    catalog: APWPCatalog = Depends(get_catalog),
):
    """
    Compute the paleolatitude of a site at a given age.

    **Example:**
    `/api/paleolatitude?lat=52.1&lon=5.1&age=100&frame=torsvik-2012-vandervoo-2015`
    """
    request = PaleolatitudeRequest(
        site=Site(lat, lon, age),
        reference_frame_id=frame or DEFAULT_FRAME,
        target_frame_id=target_frame,
        allow_extrapolation=allow_extrapolation,
    )
    result = PaleolatitudeCalculator(catalog).compute(request)
    return PaleolatitudeResponse(**result.to_dict())


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

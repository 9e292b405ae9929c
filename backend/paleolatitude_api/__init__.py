"""
PaleoLatitude API Module

Data loading and the FastAPI application serving the paleolatitude engine.
"""

from .datasets import (
    discover_apwp_files,
    load_apwp_dataset,
    load_catalog,
    load_rotation_table,
)

__all__ = [
    "discover_apwp_files",
    "load_apwp_dataset",
    "load_catalog",
    "load_rotation_table",
]

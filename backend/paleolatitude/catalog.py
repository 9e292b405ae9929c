"""
Registry of APWP datasets keyed by reference frame id.
"""

from typing import Dict, Iterable, Iterator, List, Optional

from .errors import DataIntegrityError, UnknownFrameError
from .poles import APWPDataset
from .rotation import RotationTable


class APWPCatalog:
    """
    Read-only mapping from reference frame id to its APWP dataset.

    Several frames may be loaded side by side (for rotation between them),
    but every paleolatitude query names exactly one frame to evaluate.
    """

    def __init__(self, datasets: Iterable[APWPDataset] = (), rotations: Optional[RotationTable] = None):
        self._datasets: Dict[str, APWPDataset] = {}
        for dataset in datasets:
            if dataset.reference_frame_id in self._datasets:
                raise DataIntegrityError("duplicate reference frame", source=dataset.reference_frame_id)
            self._datasets[dataset.reference_frame_id] = dataset
        self.rotations = rotations if rotations is not None else RotationTable()

    def get(self, reference_frame_id: str) -> APWPDataset:
        """
        Look up the dataset of a frame.

        Raises:
            UnknownFrameError: no dataset is registered under that id
        """
        try:
            return self._datasets[reference_frame_id]
        except KeyError:
            raise UnknownFrameError(reference_frame_id) from None

    @property
    def frame_ids(self) -> List[str]:
        return sorted(self._datasets)

    def __contains__(self, reference_frame_id: str) -> bool:
        return reference_frame_id in self._datasets

    def __iter__(self) -> Iterator[APWPDataset]:
        return (self._datasets[frame_id] for frame_id in self.frame_ids)

    def __len__(self) -> int:
        return len(self._datasets)

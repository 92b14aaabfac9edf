import copy
import logging
from typing import Dict, List

from .base import Record, RecordStore

logger = logging.getLogger(__name__)


class InMemoryRecordStore(RecordStore):
    """
    Process-local store. Records are deep-copied on the way in and out,
    so callers never share mutable state with the store.
    """

    def __init__(self) -> None:
        self._collections: Dict[str, List[Record]] = {}

    def read_collection(self, name: str) -> List[Record]:
        if name not in self._collections:
            logger.debug(f"Collection initialized empty: name={name}")
            self._collections[name] = []
        return copy.deepcopy(self._collections[name])

    def write_collection(self, name: str, records: List[Record]) -> None:
        self._collections[name] = copy.deepcopy(list(records))
        logger.debug(f"Collection written: name={name}, records={len(records)}")

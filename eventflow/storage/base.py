"""
Collection-oriented persistence used by the core.

A store holds named collections ("events", "participants"), each an
ordered list of JSON-safe dicts read and written as a whole.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List

EVENTS = "events"
PARTICIPANTS = "participants"

Record = Dict[str, Any]


class RecordStore(ABC):
    """
    Opaque key-value persistence. No schema enforcement at this layer;
    every collection reads as an empty list until first written.
    """

    @abstractmethod
    def read_collection(self, name: str) -> List[Record]:
        ...

    @abstractmethod
    def write_collection(self, name: str, records: List[Record]) -> None:
        ...

    def ping(self) -> bool:
        return True

from abc import ABC, abstractmethod
from typing import Optional
from .types import BodyFrame


class ICamera(ABC):
    @abstractmethod
    def open(self) -> bool:
        pass

    @abstractmethod
    def read_frame(self):
        pass

    @abstractmethod
    def close(self):
        pass


class IBodySource(ABC):
    # Live sources never finish; replay sources set this once exhausted.
    finished: bool = False

    @abstractmethod
    def open(self) -> bool:
        pass

    @abstractmethod
    def read_frame(self) -> Optional[BodyFrame]:
        """Next tracked body, or None when no body is available for this capture."""
        pass

    @abstractmethod
    def close(self):
        pass

"""
Progress event types delivered to a pipeline's progress callback.

Events for one pipeline construction arrive in emission order:
every InitiateEvent for a resource file precedes the ReadyEvent.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Union


class LoadingStatus(str, Enum):
    """Progress event status values"""
    INITIATE = "initiate"
    READY = "ready"


@dataclass(frozen=True)
class InitiateEvent:
    """A resource file is about to be resolved"""
    name: str
    file: str

    @property
    def status(self) -> LoadingStatus:
        return LoadingStatus.INITIATE

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status.value, "name": self.name, "file": self.file}


@dataclass(frozen=True)
class ReadyEvent:
    """A pipeline finished loading and can be called"""
    task: str
    model: str

    @property
    def status(self) -> LoadingStatus:
        return LoadingStatus.READY

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status.value, "task": self.task, "model": self.model}


ProgressEvent = Union[InitiateEvent, ReadyEvent]
ProgressCallback = Callable[[ProgressEvent], None]

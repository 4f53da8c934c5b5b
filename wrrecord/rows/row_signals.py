import logging

from dataclasses import dataclass
from enum import Enum, auto

logger = logging.getLogger(__name__)

class SessionState(Enum):
    INIT = auto()
    CONNECTED = auto()
    RUNNING = auto()
    FINISHED = auto()

@dataclass
class RowSignal:
    timestamp: float

@dataclass
class HardwareDetected(RowSignal):
    pass

@dataclass
class StrokeStarted(RowSignal):
    pass

@dataclass
class WorkoutCompleted(RowSignal):
    elapsed_time: int = 0

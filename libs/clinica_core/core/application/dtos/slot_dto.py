from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class SlotDTO:
    start: datetime
    end: datetime
    available: bool

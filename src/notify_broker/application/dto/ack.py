from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class AckRecord:
    connection_id: str
    subject_id: str
    message_id: str
    acked_at: datetime

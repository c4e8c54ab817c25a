from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from .base import WireModel


class LogStatus(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    RUNNING = "running"


class AutomationLog(WireModel):
    id: str
    task: str
    status: LogStatus
    message: str
    timestamp: datetime


DatabaseStatus = Literal["unknown", "healthy", "warning", "error"]


class SystemHealth(WireModel):
    database_status: DatabaseStatus = "unknown"
    broken_links: int = 0
    missing_translations: int = 0
    storage_usage: float = 0.0
    last_scan: Optional[datetime] = None

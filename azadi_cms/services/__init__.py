"""Service helpers used by the maintenance engine and the API."""

from .dashboard import DashboardStats, compute_dashboard
from .image_probe import BaseImageProbe, HttpImageProbe, inline_image_is_valid
from .log_broadcast import LOG_CAPACITY, LogBroadcast
from .text_service import (
    BaseTextService,
    GeminiTextService,
    NoopTextService,
    TextServiceConfig,
    build_text_service,
    get_text_service,
    reset_text_service_for_tests,
)

__all__ = [
    "DashboardStats",
    "compute_dashboard",
    "BaseImageProbe",
    "HttpImageProbe",
    "inline_image_is_valid",
    "LOG_CAPACITY",
    "LogBroadcast",
    "BaseTextService",
    "GeminiTextService",
    "NoopTextService",
    "TextServiceConfig",
    "build_text_service",
    "get_text_service",
    "reset_text_service_for_tests",
]

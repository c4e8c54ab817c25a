"""
App assembly entry point.

Re-exports the FastAPI `app` from `azadi_cms.api.main` so servers can be
pointed at `app:app`.
"""

from azadi_cms.api.main import app  # noqa: F401

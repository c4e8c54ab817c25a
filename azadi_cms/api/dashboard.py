"""Admin dashboard endpoint."""
from fastapi import APIRouter, Depends

from azadi_cms.api.deps import get_repositories, require_admin
from azadi_cms.db.repositories import ContentRepositories
from azadi_cms.services.dashboard import compute_dashboard

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard")
async def get_dashboard(
    repositories: ContentRepositories = Depends(get_repositories),
    _admin: str = Depends(require_admin),
):
    stats = await compute_dashboard(repositories)
    return stats.to_dict()

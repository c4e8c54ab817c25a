"""Site settings endpoints. The admin credential hash is never returned."""
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from azadi_cms.api.deps import get_repositories, require_admin, store_errors
from azadi_cms.db.repositories import ContentRepositories
from azadi_cms.db.schemas import PasswordChange, PublicSettings, SettingsUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("")
async def get_settings(repositories: ContentRepositories = Depends(get_repositories)):
    result = await repositories.settings.load()
    body = PublicSettings.from_settings(result.settings).to_wire()
    body.update({"source": result.source, "degraded": result.degraded, "error": result.error})
    return body


@router.put("")
async def update_settings(
    update: SettingsUpdate,
    repositories: ContentRepositories = Depends(get_repositories),
    admin_user: str = Depends(require_admin),
):
    changes = {
        name: getattr(update, name)
        for name in update.model_fields_set
        if getattr(update, name) is not None
    }
    if "social_links" in changes:
        changes["social_links"] = update.social_links.model_dump(exclude_unset=True)
    with store_errors():
        saved = await repositories.settings.apply(changes)
    logger.info("settings_updated by=%s fields=%s", admin_user, sorted(changes))
    return PublicSettings.from_settings(saved).to_wire()


@router.put("/admin-password", status_code=status.HTTP_204_NO_CONTENT)
async def change_admin_password(
    payload: PasswordChange,
    repositories: ContentRepositories = Depends(get_repositories),
    admin_user: str = Depends(require_admin),
):
    with store_errors():
        if not await repositories.settings.verify_admin(admin_user, payload.current_password):
            raise HTTPException(status_code=403, detail="Current password is incorrect")
        try:
            await repositories.settings.change_admin_password(payload.new_password)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
    logger.info("admin_password_changed by=%s", admin_user)

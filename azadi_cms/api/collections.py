"""
Collection API endpoints.

Generic list/save/delete over every record collection, leader/member
reordering, and the donation submission and review flow.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, HTTPException, Response, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

from azadi_cms.api.deps import get_repositories, require_admin, store_errors
from azadi_cms.db.repositories import CollectionRepository, ContentRepositories, OrderedCollectionRepository
from azadi_cms.db.schemas import DonationStatusUpdate, DonationSubmission

router = APIRouter(prefix="/collections", tags=["collections"])
donations_router = APIRouter(prefix="/donations", tags=["donations"])


class ReorderRequest(BaseModel):
    ids: List[str]


def _repository(kind: str, repositories: ContentRepositories) -> CollectionRepository:
    repo = repositories.by_kind(kind)
    if repo is None:
        raise HTTPException(status_code=404, detail=f"Unknown collection '{kind}'")
    return repo


@router.get("/{kind}")
async def list_collection(kind: str, repositories: ContentRepositories = Depends(get_repositories)):
    repo = _repository(kind, repositories)
    if isinstance(repo, OrderedCollectionRepository):
        result = await repo.list_sorted()
    else:
        result = await repo.list()
    return {
        "items": [record.to_wire() for record in result.records],
        "source": result.source,
        "degraded": result.degraded,
        "error": result.error,
        "warnings": result.warnings,
    }


@router.put("/{kind}/{record_id}")
async def save_record(
    kind: str,
    record_id: str,
    payload: Dict[str, Any] = Body(...),
    repositories: ContentRepositories = Depends(get_repositories),
    _admin: str = Depends(require_admin),
):
    repo = _repository(kind, repositories)
    if payload.get("id", record_id) != record_id:
        raise HTTPException(status_code=422, detail="Body id must match the id in the path")
    try:
        record = repo.model.model_validate({**payload, "id": record_id})
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc
    with store_errors():
        saved = await repo.save(record)
    return saved.to_wire()


@router.delete("/{kind}/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_record(
    kind: str,
    record_id: str,
    repositories: ContentRepositories = Depends(get_repositories),
    _admin: str = Depends(require_admin),
):
    repo = _repository(kind, repositories)
    with store_errors():
        await repo.remove(record_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{kind}/reorder")
async def reorder_collection(
    kind: str,
    payload: ReorderRequest,
    repositories: ContentRepositories = Depends(get_repositories),
    _admin: str = Depends(require_admin),
):
    repo = _repository(kind, repositories)
    if not isinstance(repo, OrderedCollectionRepository):
        raise HTTPException(status_code=422, detail=f"'{kind}' has no display order")
    result = await repo.reorder(payload.ids)
    return {"ok": result.ok, "succeeded": result.succeeded, "failed": result.failed}


@donations_router.post("", status_code=status.HTTP_201_CREATED)
async def submit_donation(
    submission: DonationSubmission,
    repositories: ContentRepositories = Depends(get_repositories),
):
    with store_errors():
        donation = await repositories.donations.submit(
            donor_name=submission.donor_name,
            mobile=submission.mobile,
            amount=submission.amount,
            method=submission.method,
            trx_id=submission.trx_id,
            note=submission.note,
            is_anonymous=submission.is_anonymous,
        )
    return donation.to_wire()


@donations_router.patch("/{donation_id}/status")
async def update_donation_status(
    donation_id: str,
    update: DonationStatusUpdate,
    repositories: ContentRepositories = Depends(get_repositories),
    _admin: str = Depends(require_admin),
):
    with store_errors():
        donation = await repositories.donations.update_status(donation_id, update.status)
    return donation.to_wire()

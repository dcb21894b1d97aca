"""
Canister API routes.
"""
from fastapi import APIRouter

from app.api.responses import success
from app.domains.canisters.service import canister_service
from app.schemas.canister import CanisterCreate

router = APIRouter()


@router.post("/")
async def register_canister(payload: CanisterCreate):
    """
    Register a canister to a kitchen.

    Args:
        payload: Kitchen userId, status, scan type and location

    Returns:
        Envelope with the stored canister and its scan id
    """
    canister = await canister_service.register_canister(
        payload.user_id,
        payload.status,
        payload.scan_type,
        payload.latitude,
        payload.longitude,
    )
    return success("Canister registered successfully", canister)


@router.get("/kitchen/{user_id}")
async def get_kitchen_canisters(user_id: str):
    """Active canisters of a kitchen."""
    canisters = await canister_service.get_kitchen_canisters(user_id)
    return success("Canisters fetched", canisters)

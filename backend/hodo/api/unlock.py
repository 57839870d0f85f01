"""API endpoints for redeeming unlock codes and reporting unlock status."""

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from .deps import gated, get_request_context, get_services
from ..licensing import Identity, Operation

router = APIRouter(tags=["unlock"])


# --- Request/Response Models ---

class DecryptRequest(BaseModel):
    """An unlock code, already split into its two base64 parts."""
    model_config = ConfigDict(populate_by_name=True)

    encrypted_aes_key_and_iv: str = Field(default="", alias="encryptedAesKeyAndIv")
    encrypted_data: str = Field(default="", alias="encryptedData")


class DecryptResponse(BaseModel):
    """Response after a successful unlock."""
    decryptedData: str
    unlocked: bool
    success: bool


class UnlockStatusResponse(BaseModel):
    """Trial and unlock state for the caller."""
    unlocked: bool
    trialPeriod: bool
    hasUnlockRecord: bool
    remainingDays: int
    message: str


# --- Endpoints ---

# WRITE, but exempt from the unlock check: it is how a locked account unlocks
@router.post("/decrypt", response_model=DecryptResponse)
async def redeem_unlock_code(
    body: DecryptRequest,
    request: Request,
    identity: Identity = Depends(gated(Operation.WRITE, exempt=True)),
):
    """
    Redeem an unlock code for the calling account.

    Errors: 400 if the code does not decrypt or its content is malformed,
    401 without a valid credential, 403 if the code names another account
    or a day other than today, 500 if the private key is unusable.
    """
    services = get_services(request)
    result = await services.unlocker.unlock(
        identity,
        body.encrypted_aes_key_and_iv,
        body.encrypted_data,
        context=get_request_context(request),
    )
    return DecryptResponse(decryptedData=result.decrypted_data, unlocked=True, success=True)


@router.get("/unlock-status", response_model=UnlockStatusResponse)
async def unlock_status(
    request: Request,
    identity: Identity = Depends(gated(Operation.READ)),
):
    """Trial window and unlock record state for the caller. Never gated."""
    status = await get_services(request).unlocker.status(identity)
    return UnlockStatusResponse(**status.to_dict())

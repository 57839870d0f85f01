"""API endpoints for accounts and session credentials."""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel, Field

from .deps import gated, get_request_context, get_services
from ..db import UsernameTaken
from ..licensing import Identity, Operation
from ..logging import bind_context, get_logger

logger = get_logger("api.auth")

router = APIRouter(tags=["auth"])

ph = PasswordHasher()


# --- Request/Response Models ---

class LoginRequest(BaseModel):
    """Request to log in with a username and password."""
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class CreateUserRequest(BaseModel):
    """Request to create a local account."""
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)


def _set_session_cookie(response: Response, name: str, credential: str) -> None:
    response.set_cookie(
        key=name,
        value=credential,
        httponly=True,
        samesite="lax",
        path="/",
    )


# --- Endpoints ---

@router.post("/auth/login")
async def login(body: LoginRequest, request: Request, response: Response):
    """
    Verify a username and password and issue a session credential.

    The credential is returned in the body and also set as the session
    cookie, so either transport works for later requests.
    """
    services = get_services(request)
    log = bind_context(logger, get_request_context(request))

    user = await services.users.get_by_username(body.username)
    if not user:
        log.warning(f"Login failed: unknown username {body.username}")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    try:
        ph.verify(user.password_hash, body.password)
    except (VerificationError, InvalidHashError):
        log.warning(f"Login failed: invalid password for username {body.username}")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    # Check if password needs rehash (Argon2 params upgraded)
    if ph.check_needs_rehash(user.password_hash):
        await services.users.update_password_hash(user.id, ph.hash(body.password))
        log.info("Rehashed password with updated parameters")

    credential = services.codec.issue(Identity(user_id=str(user.id), username=user.username))
    _set_session_cookie(response, services.settings.cookie_name, credential)

    log.info(f"User login successful: {user.username}")
    return {
        "user": user.to_dict(),
        "credential": credential,
        "token": credential,
        "message": "Login successful",
        "success": True,
    }


@router.get("/auth/verify")
async def verify(identity: Identity = Depends(gated(Operation.READ))):
    """Check the caller's credential and echo the identity it carries."""
    return {
        "user": identity.to_dict(),
        "message": "Token is valid",
        "success": True,
    }


@router.post("/auth/logout")
async def logout(request: Request, response: Response):
    """Clear the session cookie. Credentials themselves cannot be revoked."""
    response.delete_cookie(get_services(request).settings.cookie_name, path="/")
    return {"message": "Logout successful", "success": True}


@router.post("/users", status_code=201)
async def create_user(body: CreateUserRequest, request: Request, response: Response):
    """Create a local account and log it in."""
    services = get_services(request)
    log = bind_context(logger, get_request_context(request))

    username = body.username.strip()
    if not username or "," in username:
        raise HTTPException(status_code=400, detail="Username must be non-empty and must not contain commas")

    try:
        user = await services.users.create(username, ph.hash(body.password))
    except UsernameTaken:
        log.warning(f"User with username {username} already exists")
        raise HTTPException(status_code=409, detail="User with this username already exists")

    credential = services.codec.issue(Identity(user_id=str(user.id), username=user.username))
    _set_session_cookie(response, services.settings.cookie_name, credential)

    log.info(f"User created: {user.username}")
    return {
        "user": user.to_dict(),
        "credential": credential,
        "token": credential,
        "message": "User created successfully",
        "success": True,
    }

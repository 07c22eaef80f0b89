from __future__ import annotations

import asyncio
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError as PydanticValidationError

from chirpy.api.schemas import (
    ChirpListResponse,
    ChirpRequest,
    ChirpResponse,
    CreateUserRequest,
    Envelope,
    LoginRequest,
    LoginResponse,
    TokenResponse,
    UpdateUserRequest,
    UserResponse,
    WebhookEvent,
)
from chirpy.auth.credentials import get_bearer_token
from chirpy.logging import current_request_id
from chirpy.service.errors import ValidationError
from chirpy.service.runtime import get_runtime

router = APIRouter(prefix="/api")


def _ok(data: object) -> Envelope:
    envelope = Envelope(status="ok", data=data)
    request_id = current_request_id()
    if request_id:
        envelope.request_id = request_id
    return envelope


async def get_current_user_id(request: Request) -> UUID:
    """Resolve the caller from ``Authorization: Bearer <access token>``."""
    return get_runtime().auth.authenticate(request.headers)


@router.get("/healthz", response_class=PlainTextResponse, tags=["health"])
async def healthz() -> str:
    return "OK"


@router.post("/users", response_model=Envelope, status_code=201, tags=["users"])
async def create_user(body: CreateUserRequest):
    """Register a new account.

    Raises:
        400: If the email is malformed or the password is empty
        409: If the email is already registered
    """
    runtime = get_runtime()
    user = await runtime.auth.signup(body.email, body.password)
    return _ok(UserResponse.from_model(user))


@router.put("/users", response_model=Envelope, tags=["users"])
async def update_user(
    body: UpdateUserRequest, user_id: UUID = Depends(get_current_user_id)
):
    runtime = get_runtime()
    user = await runtime.auth.update_user(
        user_id, email=body.email, password=body.password
    )
    return _ok(UserResponse.from_model(user))


@router.post("/login", response_model=Envelope, tags=["auth"])
async def login(body: LoginRequest):
    """Exchange email and password for an access token and a refresh token.

    ``expires_in_seconds`` shortens or lengthens the access token; zero or
    absent means the configured default.
    """
    runtime = get_runtime()
    user, access_token, refresh_token = await runtime.auth.login(
        body.email,
        body.password,
        expires_in_seconds=body.expires_in_seconds,
    )
    base = UserResponse.from_model(user)
    return _ok(
        LoginResponse(
            **base.model_dump(), token=access_token, refresh_token=refresh_token
        )
    )


@router.post("/refresh", response_model=Envelope, tags=["auth"])
async def refresh(request: Request):
    runtime = get_runtime()
    token = await runtime.auth.refresh(get_bearer_token(request.headers))
    return _ok(TokenResponse(token=token))


@router.post("/revoke", status_code=204, tags=["auth"])
async def revoke(request: Request):
    runtime = get_runtime()
    await runtime.auth.revoke(get_bearer_token(request.headers))
    return Response(status_code=204)


@router.get("/chirps", response_model=Envelope, tags=["chirps"])
def list_chirps():
    runtime = get_runtime()
    items = [ChirpResponse.from_model(chirp) for chirp in runtime.chirps.list()]
    return _ok(ChirpListResponse(items=items))


@router.get("/chirps/{chirp_id}", response_model=Envelope, tags=["chirps"])
def get_chirp(chirp_id: UUID):
    runtime = get_runtime()
    return _ok(ChirpResponse.from_model(runtime.chirps.get(chirp_id)))


@router.post("/chirps", response_model=Envelope, status_code=201, tags=["chirps"])
def create_chirp(
    body: ChirpRequest, user_id: UUID = Depends(get_current_user_id)
):
    """Post a chirp as the authenticated user.

    Bodies over 140 characters or holding a NUL character are rejected with
    ``details.valid = false``;
    taboo words are masked before the chirp is stored.
    """
    runtime = get_runtime()
    chirp = runtime.chirps.create(body.body, user_id)
    return _ok(ChirpResponse.from_model(chirp, valid=True))


@router.post("/polka/webhooks", status_code=204, tags=["payments"])
async def polka_webhook(request: Request):
    """Payment provider callback, authenticated with ``ApiKey <POLKA_KEY>``.

    The key is checked before the body is read.
    """
    runtime = get_runtime()
    runtime.payments.verify_api_key(request.headers)
    raw = await request.body()
    try:
        event = WebhookEvent.model_validate_json(raw)
    except PydanticValidationError as exc:
        raise ValidationError(
            "invalid payment event",
            detail={"errors": jsonable_encoder(exc.errors(include_url=False))},
        ) from exc
    await asyncio.to_thread(
        runtime.payments.handle_event, event.event, event.data.model_dump()
    )
    return Response(status_code=204)

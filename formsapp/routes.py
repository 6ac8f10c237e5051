"""
HTTP routes for the forms API.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from formsapp.config import Settings, get_settings
from formsapp.db import DbClient, FormRecord
from formsapp.dependencies import get_db_client
from formsapp.schemas import (
    CredentialsPayload,
    FormCreateRequest,
    FormListResponse,
    FormResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    SignupRequest,
    UserSummary,
)
from formsapp.security import (
    TokenData,
    create_access_token,
    hash_password,
    require_token,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
# Keeps (page - 1) * limit inside a signed 64-bit OFFSET.
MAX_PAGE = (2**63 - 1) // MAX_PAGE_SIZE


def _parse_credentials(
    payload: dict, settings: Settings, model: type[SignupRequest]
) -> CredentialsPayload:
    if settings.validate_requests:
        parsed = model.model_validate(payload)
        return CredentialsPayload(email=str(parsed.email), password=parsed.password)
    return CredentialsPayload.model_validate(payload)


def _optional_str(value) -> Optional[str]:
    return None if value is None else str(value)


def _form_response(record: FormRecord) -> FormResponse:
    return FormResponse(**record.as_dict())


@router.post("/signup", response_model=MessageResponse, status_code=201)
def signup(
    payload: dict = Body(...),
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    credentials = _parse_credentials(payload, settings, SignupRequest)
    if db.get_user_by_email(credentials.email):
        raise HTTPException(status_code=400, detail="Email already in use")

    # A concurrent signup can still win the race; the store raises
    # DuplicateEmailError, which the app maps to the same 400.
    user = db.create_user(credentials.email, hash_password(credentials.password))
    logger.info("Registered user %s", user.user_id)
    return MessageResponse(message="User registered successfully")


@router.post(
    "/login", response_model=LoginResponse, response_model_exclude_none=True
)
def login(
    payload: dict = Body(...),
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    credentials = _parse_credentials(payload, settings, LoginRequest)
    user = db.get_user_by_email(credentials.email)
    if not user:
        logger.info("Login failed: unknown email")
        raise HTTPException(status_code=404, detail="User not found")

    if not verify_password(credentials.password, user.password_hash):
        logger.info("Login failed: bad password for user %s", user.user_id)
        raise HTTPException(status_code=400, detail="Invalid credentials")

    response = LoginResponse(
        message="Login successful", user=UserSummary(**user.as_dict())
    )
    if settings.auth_mode == "jwt":
        response.token = create_access_token(user.user_id, user.email, settings)
    logger.info("User %s logged in", user.user_id)
    return response


@router.get("/forms", response_model=Union[FormListResponse, list[FormResponse]])
def list_forms(
    page: Optional[int] = Query(None, ge=1, le=MAX_PAGE),
    limit: Optional[int] = Query(None, ge=1, le=MAX_PAGE_SIZE),
    db: DbClient = Depends(get_db_client),
    token: Optional[TokenData] = Depends(require_token),
):
    """
    Without paging params every form is returned as a plain array.
    With either param the response is a page envelope.
    """
    if page is None and limit is None:
        return [_form_response(form) for form in db.list_forms()]

    page = page or 1
    limit = limit or DEFAULT_PAGE_SIZE
    offset = (page - 1) * limit
    forms = db.list_forms(offset=offset, limit=limit)
    return FormListResponse(
        total=db.count_forms(),
        page=page,
        limit=limit,
        forms=[_form_response(form) for form in forms],
    )


@router.post("/forms", response_model=FormResponse, status_code=201)
def create_form(
    payload: dict = Body(...),
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    if settings.validate_requests:
        form = FormCreateRequest.model_validate(payload)
        record = db.create_form(
            title=form.title,
            header_image=_optional_str(form.headerImage),
            questions=[question.to_document() for question in form.questions],
        )
    else:
        questions = payload.get("questions") or []
        if not isinstance(questions, list):
            questions = [questions]
        record = db.create_form(
            title=_optional_str(payload.get("title")),
            header_image=_optional_str(payload.get("headerImage")),
            questions=questions,
        )
    logger.info("Created form %s with %d questions", record.form_id, len(record.questions))
    return _form_response(record)

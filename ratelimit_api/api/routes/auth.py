from __future__ import annotations

import json
from typing import Any, Type, TypeVar

from fastapi import APIRouter, Depends, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

from ratelimit_api.core.policies import CREATE_ACCOUNT, STRICT
from ratelimit_api.core.rate_limit import rate_limit
from ratelimit_api.schemas.auth import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
)
from ratelimit_api.schemas.rate_limit import RateLimitInfo
from ratelimit_api.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])

_auth_service = AuthService()

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

PayloadT = TypeVar("PayloadT", bound=BaseModel)


def _body_docs(model: Type[BaseModel]) -> dict[str, Any]:
    schema = model.model_json_schema()
    return {
        "requestBody": {
            "content": {
                "application/json": {"schema": schema},
                "application/x-www-form-urlencoded": {"schema": schema},
            }
        }
    }


def _payload(model: Type[PayloadT]):
    """Dependency parsing ``model`` from a JSON or form-encoded body.

    A missing body yields an empty model so the service reports the missing
    fields. Unparseable JSON or ill-typed fields raise RequestValidationError.
    """

    async def parse(request: Request) -> PayloadT:
        content_type = request.headers.get("content-type", "")
        if content_type.startswith(FORM_CONTENT_TYPES):
            form = await request.form()
            data: Any = {key: value for key, value in form.items() if isinstance(value, str)}
        else:
            raw = await request.body()
            if not raw.strip():
                return model()
            try:
                data = json.loads(raw)
            except ValueError:
                raise RequestValidationError(
                    [{"loc": ("body",), "msg": "Malformed JSON body", "type": "json_invalid"}]
                ) from None

        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise RequestValidationError(
                [{**err, "loc": ("body", *err["loc"])} for err in exc.errors()]
            ) from None

    return parse


@router.post(
    "/login",
    response_model=LoginResponse,
    dependencies=[Depends(rate_limit(STRICT))],
    openapi_extra=_body_docs(LoginRequest),
)
async def login(
    request: Request,
    payload: LoginRequest = Depends(_payload(LoginRequest)),
) -> LoginResponse:
    """Mock login against the demo account.

    Accepts JSON or form-encoded credentials. Every attempt, successful or
    not, counts against the strict tier.

    Raises:
        ValidationAppError: 400 when email or password is missing.
        AuthenticationAppError: 401 on wrong credentials.
    """
    token = _auth_service.login(payload.email, payload.password)
    return LoginResponse(token=token, rate_limit=RateLimitInfo.from_request(request))


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit(STRICT, CREATE_ACCOUNT))],
    openapi_extra=_body_docs(RegisterRequest),
)
async def register(
    request: Request,
    payload: RegisterRequest = Depends(_payload(RegisterRequest)),
) -> RegisterResponse:
    """Mock account creation.

    Counted against the strict tier and the account creation tier; the
    latter only keeps failed attempts, successful creations are refunded.
    The ``rateLimit`` body field is rendered before that refund, the
    ``RateLimit-Remaining`` header after it.

    Raises:
        ValidationAppError: 400 when a field is missing.
    """
    account = _auth_service.register(payload.email, payload.password, payload.name)
    return RegisterResponse(data=account, rate_limit=RateLimitInfo.from_request(request))

"""FastAPI application exposing the user collection as a JSON API."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import anyio
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from starlette.exceptions import HTTPException as StarletteHTTPException

from .models import UserRecord
from .users import UserService, UserServiceError, UserValidationError

logger = logging.getLogger("user_registry.api")

INVALID_BODY_MESSAGE = "Invalid request body"

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


class UserFields(BaseModel):
    """Fields accepted by the create and update endpoints."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    email: Optional[str] = Field(default=None)
    phone: Optional[str] = Field(default=None)
    address: Optional[str] = Field(default=None)
    date_of_birth: Optional[str] = Field(default=None, alias="dateOfBirth")

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_to_text(cls, value: object) -> object:
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, bool):
            raise ValueError("must be a string")
        if isinstance(value, (int, float)):
            return str(value)
        raise ValueError("must be a string")

    def submitted(self) -> Dict[str, Any]:
        """Return only the fields present in the request body."""

        return self.model_dump(exclude_unset=True)


def envelope(data: Any = None, *, error: Optional[str] = None) -> Dict[str, Any]:
    """Wrap a payload in the ``{success, data, error}`` response shape."""

    if error is not None:
        return {"success": False, "error": error}
    return {"success": True, "data": data}


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=envelope(error=message))


def user_to_response(user: UserRecord) -> Dict[str, Any]:
    return user.to_dict()


def _describe_validation_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return INVALID_BODY_MESSAGE
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = str(first.get("msg", "invalid value"))
    return f"{location}: {message}" if location else message


async def _read_payload(request: Request) -> Dict[str, Any]:
    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith(_FORM_CONTENT_TYPES):
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}

    body = await request.body()
    if not body.strip():
        return {}
    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise UserValidationError(INVALID_BODY_MESSAGE) from exc
    if not isinstance(payload, dict):
        raise UserValidationError(INVALID_BODY_MESSAGE)
    return payload


async def _parse_fields(request: Request) -> UserFields:
    payload = await _read_payload(request)
    try:
        return UserFields.model_validate(payload)
    except ValidationError as exc:
        raise UserValidationError(_describe_validation_error(exc)) from exc


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure inside the response envelope."""

    @app.exception_handler(UserServiceError)
    async def _service_error_handler(request: Request, exc: UserServiceError) -> JSONResponse:
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def _request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        message = str(errors[0].get("msg")) if errors else INVALID_BODY_MESSAGE
        return _error_response(status.HTTP_400_BAD_REQUEST, message)

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return _error_response(exc.status_code, str(exc.detail))

    # Unexpected errors stop here; nothing propagates past the API app.
    @app.middleware("http")
    async def _unhandled_error_middleware(request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            logger.exception("Unhandled error while serving %s %s", request.method, request.url.path)
            return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


def create_app(*, service: UserService) -> FastAPI:
    """Create the JSON API application, normally mounted under ``/api``."""

    app = FastAPI(
        title="User Registry API",
        description="Register, search, edit and delete user records",
        version="1.0.0",
    )
    app.state.service = service
    register_exception_handlers(app)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return envelope({"status": "ok"})

    @app.get("/users")
    async def list_users() -> Dict[str, Any]:
        users: List[UserRecord] = await anyio.to_thread.run_sync(service.list_users)
        return envelope([user_to_response(user) for user in users])

    @app.get("/users/{user_id}")
    async def get_user(user_id: str) -> Dict[str, Any]:
        user = await anyio.to_thread.run_sync(service.get_user, user_id)
        return envelope(user_to_response(user))

    @app.post("/users", status_code=status.HTTP_201_CREATED)
    async def create_user(request: Request) -> Dict[str, Any]:
        fields = await _parse_fields(request)
        user = await anyio.to_thread.run_sync(service.create_user, fields.model_dump())
        return envelope(user_to_response(user))

    @app.put("/users/{user_id}")
    async def update_user(user_id: str, request: Request) -> Dict[str, Any]:
        fields = await _parse_fields(request)
        user = await anyio.to_thread.run_sync(service.update_user, user_id, fields.submitted())
        return envelope(user_to_response(user))

    @app.delete("/users/{user_id}")
    async def delete_user(user_id: str) -> Dict[str, Any]:
        user = await anyio.to_thread.run_sync(service.delete_user, user_id)
        return envelope(user_to_response(user))

    return app


__all__ = ["create_app", "envelope", "register_exception_handlers", "UserFields"]

"""
Client for the phone authentication API.

Talks to the /auth/phone endpoints over HTTP and feeds a successful
verification into the local SessionFacade, so callers get a live phone
session (persisted, kept alive, focus-revalidated) from one call.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

import httpx

from errors import AuthErrorCode
from infrastructure.http_client import HttpClient
from schemas.models.user import UserProfileDoc
from services.session.facade import SessionFacade
from shared.logging import get_logger
from shared.result import Err, Ok, Result

log = get_logger(__name__)


def _profile_from_user(user: dict[str, Any]) -> UserProfileDoc:
    return UserProfileDoc(
        uid=user["uid"],
        email=user.get("email") or "",
        display_name=user.get("displayName") or "",
        phone_number=user.get("phoneNumber") or "",
        photo_url=user.get("photoURL") or "",
        user_type=user.get("userType") or "user",
    )


# Request fields the server validates, by wire name and by model name
_FIELD_ERRORS = {
    "phoneNumber": AuthErrorCode.INVALID_PHONE_FORMAT,
    "phone_number": AuthErrorCode.INVALID_PHONE_FORMAT,
    "otp": AuthErrorCode.INVALID_CODE,
    "displayName": AuthErrorCode.INVALID_PROFILE,
    "display_name": AuthErrorCode.INVALID_PROFILE,
    "email": AuthErrorCode.INVALID_PROFILE,
}


def _offending_fields(body: dict) -> list[str]:
    """Field names from an AppError ``field`` or FastAPI's 422 ``detail[].loc``."""
    fields = [body["field"]] if isinstance(body.get("field"), str) else []
    detail = body.get("detail")
    if isinstance(detail, list):
        for item in detail:
            loc = item.get("loc") if isinstance(item, dict) else None
            if loc:
                fields.append(str(loc[-1]))
    return fields


def _error_from_response(response: httpx.Response) -> Err:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get("error") or ""
    try:
        return Err(AuthErrorCode(body.get("code")), message)
    except ValueError:
        pass

    # Request validation (422) and internal errors carry no AuthErrorCode
    fields = _offending_fields(body)
    log.warning(
        "phone_auth_unexpected_error", status_code=response.status_code, fields=fields
    )
    if response.status_code >= 500:
        return Err(AuthErrorCode.DELIVERY_FAILED, message)
    for name in fields:
        if name in _FIELD_ERRORS:
            return Err(_FIELD_ERRORS[name], message)
    return Err(AuthErrorCode.INVALID_REQUEST, message)


class PhoneAuthClient:
    def __init__(self, http: HttpClient, facade: SessionFacade) -> None:
        self._http = http
        self._facade = facade

    async def _post(self, path: str, payload: dict) -> Result[dict]:
        try:
            response = await self._http.post(path, json=payload)
        except httpx.HTTPError as e:
            log.error(
                "phone_auth_request_failed",
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            return Err(AuthErrorCode.DELIVERY_FAILED, "Could not reach the server.")
        if response.status_code >= 400:
            return _error_from_response(response)
        return Ok(response.json())

    async def send_otp(
        self,
        phone_number: str,
        intent: Literal["login", "register"] = "login",
        name: str = "User",
    ) -> Result[str]:
        """Request a code. Returns the canonical phone number the code went to."""
        result = await self._post(
            "/auth/phone/send-otp",
            {"phoneNumber": phone_number, "intent": intent, "name": name},
        )
        if isinstance(result, Err):
            return result
        return Ok(result.value["phoneNumber"])

    async def verify_otp(self, phone_number: str, code: str) -> Result[dict]:
        """Verify the code and, on success, start a phone session.

        The returned value is the server body; ``profileComplete`` tells the
        caller whether to collect a display name next.
        """
        result = await self._post(
            "/auth/phone/verify-otp", {"phoneNumber": phone_number, "otp": code}
        )
        if isinstance(result, Err):
            return result
        body = result.value
        await self._facade.login_with_phone(_profile_from_user(body["user"]))
        return Ok(body)

    async def complete_profile(
        self, phone_number: str, display_name: str, email: Optional[str] = None
    ) -> Result[UserProfileDoc]:
        payload = {"phoneNumber": phone_number, "displayName": display_name}
        if email:
            payload["email"] = email
        result = await self._post("/auth/phone/complete-profile", payload)
        if isinstance(result, Err):
            return result
        profile = _profile_from_user(result.value["user"])
        await self._facade.update_profile(profile)
        return Ok(profile)

    async def sign_out(self) -> None:
        await self._facade.sign_out()

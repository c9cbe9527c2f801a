"""API routes exposing dollar credit balances and purchases."""
from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Callable, Optional, Union

from fastapi import APIRouter, Cookie, Depends, HTTPException, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import RedirectResponse
from pydantic import ValidationError

from ..credits import PurchaseRedirect, build_user_menu
from ..credits.menu import DEFAULT_USER_MENU
from ..schemas.credits import (
    CreditHistoryResponse,
    CreditPurchaseRequest,
    CreditSettings,
    CreditSettingsUpdate,
    MenuEntryResponse,
    MenuResponse,
    PurchaseFormResponse,
    ReadmeResponse,
)
from ..services import credits as credits_service


def _resolve_get_current_user() -> Callable[..., Any]:  # pragma: no cover
    try:
        from backend.app_context import get_current_user as resolved
    except ModuleNotFoundError as exc:
        if exc.name != "backend":
            raise
        from ...app_context import get_current_user as resolved  # type: ignore[no-redef]
    return resolved


@lru_cache(maxsize=1)
def _get_current_user_callable() -> Callable[..., Any]:
    return _resolve_get_current_user()


_SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "session")
_SITE_ADMIN_ROLES = {"admin"}


def _get_current_user(
    session_token: Optional[str] = Cookie(None, alias=_SESSION_COOKIE_NAME),
):
    resolved = _get_current_user_callable()
    return resolved(session_token=session_token)


def _require_admin(current_user: Any) -> None:
    if getattr(current_user, "role", None) not in _SITE_ADMIN_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Administrator access required")


router = APIRouter(prefix="/api/credits", tags=["credits"])
admin_router = APIRouter(prefix="/api/admin/credits", tags=["credits"])


@router.get("", response_model=CreditHistoryResponse)
def view_history(
    page: int = Query(default=1, ge=1),
    *,
    current_user=Depends(_get_current_user),
) -> CreditHistoryResponse:
    controller = credits_service.get_credit_controller()
    history = controller.view_history(int(current_user.id), page=page)
    return CreditHistoryResponse.from_history(history)


@router.get("/add", response_model=PurchaseFormResponse)
def purchase_form(*, current_user=Depends(_get_current_user)) -> PurchaseFormResponse:
    controller = credits_service.get_credit_controller()
    return PurchaseFormResponse.from_form(controller.purchase_form(int(current_user.id)))


_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def _read_purchase_request(request: Request) -> CreditPurchaseRequest:
    """Read ``amount`` from a form post or a JSON body."""

    content_type = request.headers.get("content-type", "")
    try:
        if content_type.startswith(_FORM_CONTENT_TYPES):
            form = await request.form()
            return CreditPurchaseRequest.model_validate({"amount": form.get("amount")})
        body = await request.body()
        if not body:
            return CreditPurchaseRequest()
        return CreditPurchaseRequest.model_validate_json(body)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="amount must be a string or a number",
        ) from exc


@router.post("/add", response_model=None)
async def submit_purchase(
    request: Request,
    *,
    current_user=Depends(_get_current_user),
) -> Union[PurchaseFormResponse, RedirectResponse]:
    payload = await _read_purchase_request(request)
    controller = credits_service.get_credit_controller()
    # NoEligibleProductError and InvoiceValidationError propagate: they mean
    # billing is misconfigured and must surface as a server error.
    result = await run_in_threadpool(controller.submit_purchase, int(current_user.id), payload.amount)
    if isinstance(result, PurchaseRedirect):
        return RedirectResponse(url=result.redirect_url, status_code=status.HTTP_303_SEE_OTHER)

    response = PurchaseFormResponse.from_form(result)
    if result.validation_error:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=response.model_dump(mode="json", by_alias=True),
        )
    return response


@router.get("/menu", response_model=MenuResponse)
def user_menu(*, current_user=Depends(_get_current_user)) -> MenuResponse:
    service = credits_service.get_credit_service()
    entries = build_user_menu(DEFAULT_USER_MENU, service)
    return MenuResponse(items=[MenuEntryResponse.from_entry(entry) for entry in entries])


@admin_router.get("/settings", response_model=CreditSettings)
def get_settings(*, current_user=Depends(_get_current_user)) -> CreditSettings:
    _require_admin(current_user)
    service = credits_service.get_credit_service()
    return CreditSettings(
        credits_per_dollar=service.credits_per_dollar,
        configured=service.is_configured(),
    )


@admin_router.put("/settings", response_model=CreditSettings)
def update_settings(
    payload: CreditSettingsUpdate,
    *,
    current_user=Depends(_get_current_user),
) -> CreditSettings:
    _require_admin(current_user)
    try:
        credits_service.save_credits_per_dollar(payload.credits_per_dollar)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    service = credits_service.get_credit_service()
    return CreditSettings(
        credits_per_dollar=service.credits_per_dollar,
        configured=service.is_configured(),
    )


@admin_router.get("/readme", response_model=ReadmeResponse)
def readme(*, current_user=Depends(_get_current_user)) -> ReadmeResponse:
    _require_admin(current_user)
    return ReadmeResponse(title="Dollar Credits", text=credits_service.README)

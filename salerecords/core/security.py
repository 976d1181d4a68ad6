from __future__ import annotations

from typing import Literal

from fastapi import Header, HTTPException
from pydantic import BaseModel

from salerecords.core.config import get_settings


ActorType = Literal["service", "operator"]


class Claims(BaseModel):
    actor_type: ActorType
    actor_id: str
    tenant_code: str


def _auth_error(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def _extract_api_key(authorization: str | None, x_api_key: str | None) -> str | None:
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise _auth_error("invalid authorization header")
        return token.strip()
    if x_api_key and x_api_key.strip():
        return x_api_key.strip()
    return None


def _claims_from_api_key(api_key: str) -> Claims | None:
    settings = get_settings()
    key_map = {
        settings.service_api_key: Claims(
            actor_type="service", actor_id=settings.service_actor_id, tenant_code=settings.tenant_code
        ),
        settings.operator_api_key: Claims(
            actor_type="operator", actor_id=settings.operator_actor_id, tenant_code=settings.tenant_code
        ),
    }
    return key_map.get(api_key)


def service_claims() -> Claims:
    settings = get_settings()
    return Claims(actor_type="service", actor_id=settings.service_actor_id, tenant_code=settings.tenant_code)


def get_claims(
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None),
) -> Claims:
    settings = get_settings()
    if not settings.auth_enabled:
        return service_claims()

    api_key = _extract_api_key(authorization, x_api_key)
    if not api_key:
        raise _auth_error("missing api key")

    claims = _claims_from_api_key(api_key)
    if claims is None:
        raise _auth_error("invalid api key")
    return claims


def require_operator(claims: Claims) -> None:
    if claims.actor_type != "operator":
        raise HTTPException(status_code=403, detail="operator role required")

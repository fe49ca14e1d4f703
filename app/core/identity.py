"""
Identity seam.

Session verification lives outside this service; the gateway in front of it
forwards the verified user id in `X-User-Id`. The core only ever sees
"current owner id or none" and receives it as an explicit parameter.
"""
from __future__ import annotations

import hmac
from typing import Optional

from fastapi import Depends, Header

from app.core.config import settings
from app.core.errors import AuthorizationError


def current_owner_id_or_none(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> Optional[str]:
    if x_user_id is None:
        return None
    owner_id = x_user_id.strip()
    return owner_id or None


def require_owner(
    owner_id: Optional[str] = Depends(current_owner_id_or_none),
) -> str:
    if owner_id is None:
        raise AuthorizationError()
    return owner_id


def require_admin(
    owner_id: str = Depends(require_owner),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
) -> str:
    """Return the elevated principal's id, or deny."""
    if not x_admin_token or not hmac.compare_digest(x_admin_token, settings.ADMIN_TOKEN):
        raise AuthorizationError()
    return owner_id

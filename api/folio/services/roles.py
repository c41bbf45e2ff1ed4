"""Role lookup against the identity mirror."""

from __future__ import annotations

import logging

from ..errors import InternalError, StoreError, UnknownColumnError
from ..store import RowStore
from .profiles import IDENTITY_TABLE

logger = logging.getLogger(__name__)

ADMIN_ROLES = {"admin", "super_admin", "superadmin", "owner"}
ROLE_KEY_COLUMNS = ("userID", "id")


def is_admin_role(role: str | None) -> bool:
    if not role:
        return False
    return role.lower() in ADMIN_ROLES


def fetch_role(store: RowStore, user_id: str) -> str | None:
    """Read the identity's role, trying the owner key column before the primary key."""
    if not user_id:
        return None
    for column in ROLE_KEY_COLUMNS:
        try:
            row = store.select_one(IDENTITY_TABLE, columns=["role"], where={column: user_id})
        except UnknownColumnError:
            continue
        except StoreError as e:
            logger.error(f"Failed to fetch role for {user_id}: {e}")
            raise InternalError("Failed to fetch user role") from e
        if row is not None:
            return row.get("role")
    return None

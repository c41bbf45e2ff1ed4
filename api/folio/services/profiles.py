"""
Profile reconciliation and profile edits.

Every successful authentication runs ``reconcile``: it mirrors the identity
into the ``users`` table and makes sure a Profile row exists and carries the
current display name. The whole thing is best effort; nothing here may fail
the login that triggered it.

Explicit edits (``update_profile``) are the opposite: a profile that cannot
be saved is reported to the caller.

Avatar precedence: any non-null avatar already stored on the Profile wins
over the one supplied by an OAuth provider. There is no provenance column.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from .. import settings
from ..blob import VaultBlobStore
from ..clock import Clock, epoch_millis, utcnow
from ..data_urls import parse_data_url
from ..errors import DuplicateKeyError, ErrorPolicy, InternalError, UnknownColumnError, guarded
from ..identity import Identity
from ..store import Row, RowStore
from .column_resolver import AVATAR_COLUMNS, PROFILE_KEY_COLUMNS, ColumnResolver, read_field
from .signing import signed_url_or_reference

logger = logging.getLogger(__name__)

IDENTITY_TABLE = "users"
PROFILE_TABLE = "Profile"

# The owner key column is absent on legacy schemas keyed by "id" alone
OWNER_CANDIDATES = ("userID", None)


class MetadataSink(Protocol):
    def update_user_metadata(self, user_id: str, metadata: dict[str, Any]) -> None: ...


@dataclass
class ProfileChanges:
    display_name: str | None = None
    contact: str | None = None
    bio: str | None = None
    avatar_ref: str | None = None
    avatar_data_url: str | None = None


class ProfileService:
    def __init__(
        self,
        store: RowStore,
        blob: VaultBlobStore,
        metadata_sink: MetadataSink | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self.store = store
        self.blob = blob
        self.metadata_sink = metadata_sink
        self.clock = clock
        self.resolver = ColumnResolver(store)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find_profile(self, user_id: str) -> tuple[Row | None, str]:
        """
        Find a profile by owner key, canonical column first, then legacy.

        Returns the row (or None) and the key column to address it by: the
        column it was found under, else the first key column the table has.
        Store errors other than a missing key column propagate.
        """
        for column in PROFILE_KEY_COLUMNS:
            try:
                row = self.store.select_one(PROFILE_TABLE, where={column: user_id})
            except UnknownColumnError:
                continue
            if row is not None:
                return row, column
        column = self.resolver.resolve_column(PROFILE_TABLE, PROFILE_KEY_COLUMNS)
        return None, column or PROFILE_KEY_COLUMNS[-1]

    # ------------------------------------------------------------------
    # Reconciliation (best effort)
    # ------------------------------------------------------------------

    def reconcile(self, identity: Identity) -> None:
        policy = ErrorPolicy.BEST_EFFORT
        display_name = identity.display_name
        oauth_avatar = identity.avatar
        now = self.clock()

        with guarded("mirror identity", policy, logger):
            self.store.upsert(
                IDENTITY_TABLE,
                {
                    "id": identity.id,
                    "email": identity.email,
                    "full_name": display_name,
                    "avatar_url": oauth_avatar,
                },
                conflict="id",
            )

        existing: Row | None = None
        key_column = PROFILE_KEY_COLUMNS[0]
        with guarded("look up profile", policy, logger):
            existing, key_column = self.find_profile(identity.id)

        avatar = read_field(existing, AVATAR_COLUMNS) or oauth_avatar

        with guarded("reconcile profile", policy, logger):
            updated = self.store.update(
                PROFILE_TABLE,
                {"displayName": display_name, "updatedAt": now},
                {key_column: identity.id},
            )
            if updated is None:
                try:
                    self.resolver.write_with_fallback(
                        PROFILE_TABLE,
                        {
                            "id": identity.id,
                            "owner": identity.id,
                            "displayName": display_name,
                            "avatar": avatar,
                            "updatedAt": now,
                        },
                        {"owner": OWNER_CANDIDATES, "avatar": AVATAR_COLUMNS + (None,)},
                    )
                except DuplicateKeyError:
                    # Another login for the same identity inserted first
                    logger.warning(f"Profile for {identity.id} was created concurrently; keeping it")

    # ------------------------------------------------------------------
    # Reads and explicit edits (fatal)
    # ------------------------------------------------------------------

    def get_profile(self, user_id: str) -> Row | None:
        row: Row | None = None
        with guarded("load profile", ErrorPolicy.FATAL, logger):
            row, _ = self.find_profile(user_id)
        if row is None:
            return None
        profile = dict(row)
        raw_avatar = read_field(row, AVATAR_COLUMNS)
        if raw_avatar:
            profile["avatarUrl"] = signed_url_or_reference(
                self.blob, settings.AVATAR_BUCKET, str(raw_avatar), settings.AVATAR_SIGNED_URL_TTL
            )
        return profile

    def upload_avatar(self, user_id: str, data_url: str) -> str:
        """Store an avatar image and return its storage key."""
        image = parse_data_url(data_url)
        key = f"{user_id}-{epoch_millis(self.clock())}.{image.extension}"
        with guarded("upload avatar", ErrorPolicy.FATAL, logger):
            self.blob.upload(settings.AVATAR_BUCKET, key, image.content, image.mime_type)
        return key

    def update_profile(self, identity: Identity, changes: ProfileChanges) -> Row | None:
        policy = ErrorPolicy.FATAL
        avatar = changes.avatar_ref
        if changes.avatar_data_url and changes.avatar_data_url.startswith("data:image"):
            # Only the storage key is persisted; reads sign it
            avatar = self.upload_avatar(identity.id, changes.avatar_data_url)

        payload: dict[str, Any] = {
            "displayName": changes.display_name,
            "contact": changes.contact,
            "bio": changes.bio,
            "avatar": avatar,
        }
        payload = {k: v for k, v in payload.items() if v is not None}
        payload["updatedAt"] = self.clock()
        fields = {"avatar": AVATAR_COLUMNS}

        with guarded("save profile", policy, logger):
            existing, key_column = self.find_profile(identity.id)
            saved = None
            if existing is not None:
                saved = self.resolver.write_with_fallback(
                    PROFILE_TABLE, payload, fields, key_column=key_column, key_value=identity.id
                )
            else:
                saved = self.resolver.write_with_fallback(
                    PROFILE_TABLE,
                    {"id": identity.id, "owner": identity.id, **payload},
                    {"owner": OWNER_CANDIDATES, **fields},
                )
            if saved is None:
                raise InternalError("Could not save profile.")

        mirror = {"full_name": changes.display_name, "avatar_url": avatar}
        mirror = {k: v for k, v in mirror.items() if v is not None}
        if mirror:
            with guarded("sync identity mirror", ErrorPolicy.BEST_EFFORT, logger):
                self.store.update(IDENTITY_TABLE, mirror, {"id": identity.id})
            if self.metadata_sink is not None:
                with guarded("sync provider metadata", ErrorPolicy.BEST_EFFORT, logger):
                    self.metadata_sink.update_user_metadata(identity.id, mirror)

        return self.get_profile(identity.id)

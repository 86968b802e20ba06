"""
User records.

Credential issuance lives outside this service; callers hand over an
already-hashed password. Usernames and emails are normalised to lower case
so their uniqueness is case-insensitive.
"""

import logging
from typing import Any, Optional

from engine.result import EngineError, ErrorKind, as_result
from services.common import load_record, optional_text, public_user, require_text
from store.base import Collection, ContentStore, DuplicateRecordError, Filter, Record

logger = logging.getLogger(__name__)


class UserService:
    """Create, look up and update users (channels)."""

    def __init__(self, store: ContentStore) -> None:
        self.store = store

    @as_result
    def create_user(
        self,
        username: str,
        email: str,
        full_name: str,
        avatar: str,
        password_hash: str,
        cover_image: Optional[str] = None,
    ) -> Record:
        """
        Register a user record.

        Returns:
            Result wrapping the public user record; CONFLICT when the
            username or email is taken.
        """
        fields = {
            "username": require_text(username, "username").lower(),
            "email": require_text(email, "email").lower(),
            "full_name": require_text(full_name, "full name"),
            "avatar": require_text(avatar, "avatar"),
            "password_hash": require_text(password_hash, "password"),
            "cover_image": optional_text(cover_image) or None,
        }

        for field_name in ("username", "email"):
            if self.store.find_one(Collection.USERS, Filter().eq(field_name, fields[field_name])):
                raise EngineError(
                    ErrorKind.CONFLICT, "User with email or username already exists")

        try:
            user = self.store.create_one(Collection.USERS, fields)
        except DuplicateRecordError:
            raise EngineError(
                ErrorKind.CONFLICT, "User with email or username already exists")

        logger.info(f"Created user {user['id']} ({user['username']})")
        return public_user(user)

    @as_result
    def get_user(self, user_id: Any) -> Record:
        return public_user(load_record(self.store, Collection.USERS, user_id, "user"))

    @as_result
    def get_by_username(self, username: str) -> Record:
        normalized = require_text(username, "username").lower()
        user = self.store.find_one(Collection.USERS, Filter().eq("username", normalized))
        if user is None:
            raise EngineError(ErrorKind.NOT_FOUND, "User not found")
        return public_user(user)

    @as_result
    def get_current_user(self, principal_id: Any) -> Record:
        """The authenticated user's own record, minus credentials."""
        return public_user(load_record(self.store, Collection.USERS, principal_id, "user"))

    @as_result
    def update_account_details(
        self,
        principal_id: Any,
        full_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Record:
        """
        Change the principal's full name and/or email.

        Returns:
            Result wrapping the public user record; CONFLICT when the new
            email belongs to another user.
        """
        if full_name is None and email is None:
            raise EngineError(ErrorKind.VALIDATION_FAILURE, "Full name or email is required")

        user = load_record(self.store, Collection.USERS, principal_id, "user")
        patch: Record = {}
        if full_name is not None:
            patch["full_name"] = require_text(full_name, "full name")
        if email is not None:
            normalized = require_text(email, "email").lower()
            if normalized != user["email"]:
                if self.store.find_one(Collection.USERS, Filter().eq("email", normalized)):
                    raise EngineError(ErrorKind.CONFLICT, "Email is already in use")
                patch["email"] = normalized

        if not patch or all(user[k] == v for k, v in patch.items()):
            return public_user(user)

        try:
            updated = self.store.update_one(Collection.USERS, user["id"], patch)
        except DuplicateRecordError:
            raise EngineError(ErrorKind.CONFLICT, "Email is already in use")
        if updated is None:
            raise EngineError(ErrorKind.NOT_FOUND, "User not found")

        logger.info(f"Updated account {user['id']}: {', '.join(sorted(patch))}")
        return public_user(updated)

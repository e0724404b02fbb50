from __future__ import annotations

import logging
import secrets
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from errors import DuplicateAccountError, InvalidCredentialsError
from kv_store import KeyValueStore
from records import UserAccount, UserProfile

logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class AccountRegistry:
    """Accounts keyed by email, with an id index and opaque session tokens."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def _save(self, account: UserAccount) -> None:
        self.store.set(("account", account.email), account.model_dump(mode="json"))
        self.store.set(("account_index", account.id), {"email": account.email})

    def find_by_email(self, email: str) -> Optional[UserAccount]:
        raw = self.store.get(("account", _normalize_email(email)))
        if raw is None:
            return None
        return UserAccount.model_validate(raw)

    def get(self, account_id: str) -> Optional[UserAccount]:
        index = self.store.get(("account_index", account_id))
        if not index:
            return None
        return self.find_by_email(index["email"])

    def sign_up(self, email: str, password: str) -> UserAccount:
        email = _normalize_email(email)
        if self.find_by_email(email) is not None:
            raise DuplicateAccountError(f"An account already exists for {email}")
        account = UserAccount(email=email, password_hash=generate_password_hash(password))
        self._save(account)
        logger.info("Created account %s", account.id)
        return account

    def log_in(self, email: str, password: str) -> UserAccount:
        account = self.find_by_email(email)
        if account is None or not check_password_hash(account.password_hash, password):
            raise InvalidCredentialsError("Incorrect email or password.")
        return account

    def attach_profile(self, account_id: str, profile: UserProfile) -> UserAccount:
        account = self.get(account_id)
        if account is None:
            raise KeyError(f"Unknown account '{account_id}'")
        account = account.model_copy(update={"profile": profile})
        self._save(account)
        return account

    def open_session(self, account_id: str) -> str:
        token = secrets.token_urlsafe(32)
        self.store.set(("session", token), {"account_id": account_id})
        return token

    def account_for_session(self, token: str) -> Optional[UserAccount]:
        record = self.store.get(("session", token))
        if not record:
            return None
        return self.get(record["account_id"])

    def close_session(self, token: str) -> None:
        self.store.delete(("session", token))

"""Signed-in user session on top of an external identity provider."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from .observable import Observable, Subscription
from .store import Store

logger = logging.getLogger(__name__)


class NotSignedInError(RuntimeError):
    pass


@dataclass(frozen=True)
class Identity:
    uid: str
    display_name: str = ""
    email: str = ""
    avatar_url: str = ""


class IdentityProvider(Protocol):
    def sign_in(self) -> Identity:
        ...

    def sign_out(self) -> None:
        ...


class StaticIdentityProvider:
    def __init__(self, identity: Identity) -> None:
        self.identity = identity

    def sign_in(self) -> Identity:
        return self.identity

    def sign_out(self) -> None:
        return None


class AuthSession:
    def __init__(self, provider: Optional[IdentityProvider], store: Optional[Store] = None) -> None:
        self.provider = provider
        self.store = store
        self.on_auth_state_changed: Observable[Optional[Identity]] = Observable("auth_state")
        self.on_auth_state_changed.publish(None)

    @property
    def current_user(self) -> Optional[Identity]:
        return self.on_auth_state_changed.value

    def sign_in(self) -> Identity:
        if self.provider is None:
            raise NotSignedInError("No identity provider configured")
        identity = self.provider.sign_in()
        if not identity.uid:
            raise NotSignedInError("Identity provider returned no user id")
        if self.store is not None:
            self.store.upsert_profile(
                identity.uid,
                identity.display_name,
                email=identity.email,
                avatar_url=identity.avatar_url,
            )
        logger.info("Signed in: uid=%s", identity.uid)
        self.on_auth_state_changed.publish(identity)
        return identity

    def sign_out(self) -> None:
        if self.provider is not None:
            self.provider.sign_out()
        if self.current_user is not None:
            logger.info("Signed out: uid=%s", self.current_user.uid)
        self.on_auth_state_changed.publish(None)

    def require_user(self) -> Identity:
        user = self.current_user
        if user is None:
            raise NotSignedInError("Sign in required")
        return user

    def observe(self, callback: Callable[[Optional[Identity]], None]) -> Subscription:
        return self.on_auth_state_changed.subscribe(callback)

"""Allow-list gate for externally authenticated identities.

The OAuth handshake itself happens upstream. This module decides whether a
verified provider identity may use the tracker, issues the session token,
and re-checks the allow-list whenever a token is presented, so revoking a
user takes effect on their next request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from experiment_tracker.config.settings import settings
from experiment_tracker.core.errors import AccessDenied, AuthenticationRequired
from experiment_tracker.core.logger import get_logger
from experiment_tracker.core.security import create_access_token, decode_token
from experiment_tracker.db.repository import UserRepository

logger = get_logger(__name__)


@dataclass
class AccessDecision:
    allowed: bool
    reason: str
    user: dict[str, Any] | None = None


class AccessGate:
    def __init__(self, users: Any = UserRepository, provider: str | None = None):
        self._users = users
        self._provider = provider

    @property
    def provider(self) -> str:
        return (self._provider or settings.oauth_provider_normalized).strip().lower()

    async def evaluate(self, provider: str, login: str) -> AccessDecision:
        if str(provider or "").strip().lower() != self.provider:
            return AccessDecision(False, "unsupported_provider")
        username = str(login or "").strip()
        if not username:
            return AccessDecision(False, "missing_username")
        user = await self._users.find(github_username=username)
        if user is None:
            return AccessDecision(False, "not_on_allow_list")
        if not user["isAuthorized"]:
            return AccessDecision(False, "not_authorized", user)
        return AccessDecision(True, "authorized", user)

    async def sign_in(
        self,
        provider: str,
        login: str,
        name: str | None = None,
        email: str | None = None,
    ) -> tuple[dict[str, Any], str]:
        decision = await self.evaluate(provider, login)
        if not decision.allowed or decision.user is None:
            logger.warning("auth.sign_in.denied", provider=provider, login=login, reason=decision.reason)
            raise AccessDenied(
                "This account is not authorized to access the experiment tracker.",
                details={"reason": decision.reason},
            )
        user = await self._users.record_sign_in(decision.user["id"], name=name, email=email) or decision.user
        token = create_access_token(user)
        logger.info("auth.sign_in.allowed", provider=provider, login=login, user_id=user["id"])
        return user, token

    async def resolve_session(self, token: str | None) -> dict[str, Any]:
        if not token:
            raise AuthenticationRequired("Missing bearer token")
        try:
            payload = decode_token(token)
        except ValueError as exc:
            raise AuthenticationRequired(str(exc)) from exc
        user = await self._users.get(str(payload["sub"]))
        if user is None:
            raise AuthenticationRequired("User not found")
        if not user["isAuthorized"]:
            logger.warning("auth.session.revoked", user_id=user["id"])
            raise AccessDenied("User is no longer authorized", details={"reason": "not_authorized"})
        return user

    async def set_authorization(
        self,
        github_username: str | None,
        email: str | None,
        authorize: bool = True,
    ) -> dict[str, Any]:
        user = await self._users.upsert_authorization(github_username, email, authorize)
        logger.info(
            "auth.allow_list.update",
            user_id=user["id"],
            github_username=github_username,
            email=email,
            authorized=authorize,
        )
        return user

    @staticmethod
    def is_admin(user: dict[str, Any]) -> bool:
        # With no admin list configured every authorized user may manage the allow-list.
        admins = settings.admin_usernames
        if not admins:
            return True
        login = str(user.get("githubUsername") or "").lower()
        email = str(user.get("email") or "").lower()
        return login in admins or email in admins


access_gate = AccessGate()

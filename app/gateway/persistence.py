"""Social Hub – Domain stores.

Thin typed wrappers over ``KeyValueStore``: credentials, automation rules,
redeemed OAuth codes and the AI configuration. All state is process-local;
pass a different ``KeyValueStore`` to move it elsewhere.
"""

from __future__ import annotations

from typing import Iterator

import structlog

from app.core.exceptions import NotFoundError
from app.core.store import InMemoryStore, KeyValueStore
from app.gateway.schemas import AccountPlatform, AIConfig, AutomationRule, PlatformUser

logger = structlog.get_logger()


class CredentialStore:
    """Authorized platform accounts keyed by platform user id."""

    def __init__(self, store: KeyValueStore[PlatformUser] | None = None) -> None:
        self._store: KeyValueStore[PlatformUser] = store if store is not None else InMemoryStore()

    def save(self, user: PlatformUser) -> None:
        self._store.set(user.platform_user_id, user)
        logger.info(
            "credentials.saved",
            platform=user.platform.value,
            user_id=user.platform_user_id,
        )

    def get(self, user_id: str) -> PlatformUser | None:
        return self._store.get(user_id)

    def require(self, user_id: str, platform: AccountPlatform | None = None) -> PlatformUser:
        """Return the stored user or raise NotFoundError."""
        user = self._store.get(user_id) if user_id else None
        if user is None or (platform is not None and user.platform != platform):
            raise NotFoundError("User not found")
        return user

    def find_by_code(self, code: str) -> PlatformUser | None:
        for _, user in self._store.items():
            if user.authorization_code == code:
                return user
        return None

    def clear(self) -> None:
        self._store.clear()

    def count(self, platform: AccountPlatform | None = None) -> int:
        if platform is None:
            return len(self._store)
        return sum(1 for _, user in self._store.items() if user.platform == platform)


class RuleStore:
    """One automation rule per owner; saving again overwrites."""

    def __init__(self, store: KeyValueStore[AutomationRule] | None = None) -> None:
        self._store: KeyValueStore[AutomationRule] = store if store is not None else InMemoryStore()

    def save(self, rule: AutomationRule) -> None:
        self._store.set(rule.owner_id, rule)
        logger.info(
            "rules.saved",
            owner_id=rule.owner_id,
            post_id=rule.target_post_id,
            keyword=rule.keyword,
        )

    def get(self, owner_id: str) -> AutomationRule | None:
        return self._store.get(owner_id)

    def clear(self) -> None:
        self._store.clear()

    def all(self) -> list[AutomationRule]:
        return [rule for _, rule in self._store.items()]

    def __iter__(self) -> Iterator[AutomationRule]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._store)


class UsedCodeRegistry:
    """OAuth authorization codes that have already been redeemed."""

    def __init__(self, store: KeyValueStore[bool] | None = None) -> None:
        self._store: KeyValueStore[bool] = store if store is not None else InMemoryStore()

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and code in self._store

    def add(self, code: str) -> None:
        self._store.set(code, True)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)


class AIConfigHolder:
    """Holds the single AI configuration, replaced wholesale on update."""

    def __init__(self, config: AIConfig | None = None) -> None:
        self._config = config or AIConfig()

    def get(self) -> AIConfig:
        return self._config

    def replace(self, config: AIConfig) -> AIConfig:
        self._config = config
        logger.info(
            "ai_config.updated",
            has_api_key=bool(config.api_key),
            has_whatsapp_token=bool(config.whatsapp_token),
            system_prompt_chars=len(config.system_prompt),
        )
        return config

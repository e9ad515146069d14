"""Social Hub – OAuth code redemption.

Authorization codes are single-use upstream. A code is marked used before
the exchange starts, and a replayed code resolves to the account it already
produced instead of triggering a second exchange.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog

from app.core.exceptions import ValidationFailure
from app.gateway.persistence import CredentialStore, UsedCodeRegistry
from app.gateway.schemas import AccountPlatform, PlatformUser
from app.integrations.facebook.client import FacebookMessengerClient
from app.integrations.instagram.client import InstagramClient

logger = structlog.get_logger()


class OAuthService:
    def __init__(
        self,
        credentials: CredentialStore,
        used_codes: UsedCodeRegistry,
        instagram: InstagramClient,
        facebook: FacebookMessengerClient,
    ) -> None:
        self._credentials = credentials
        self._used_codes = used_codes
        self._instagram = instagram
        self._facebook = facebook

    def _replay(self, code: str, platform: AccountPlatform) -> PlatformUser | None:
        if code not in self._used_codes:
            return None
        user = self._credentials.find_by_code(code)
        if user is None or user.platform != platform:
            logger.warning("oauth.code_reused", platform=platform.value)
            raise ValidationFailure("Authorization code has already been used")
        logger.info("oauth.code_replayed", platform=platform.value, user_id=user.platform_user_id)
        return user

    async def redeem_instagram_code(self, code: str) -> PlatformUser:
        """Exchange ``code`` for an Instagram account and store it."""
        if not code:
            raise ValidationFailure("Authorization code missing")
        existing = self._replay(code, AccountPlatform.INSTAGRAM)
        if existing is not None:
            return existing

        self._used_codes.add(code)
        token_data = await self._instagram.exchange_code(code)
        access_token = token_data.get("access_token")
        if not access_token:
            raise ValidationFailure("Token exchange returned no access token")
        profile = await self._instagram.fetch_profile(access_token)
        user_id = str(profile.get("id") or token_data.get("user_id") or "")
        if not user_id:
            raise ValidationFailure("Instagram profile has no id")

        user = PlatformUser(
            platform_user_id=user_id,
            access_token=access_token,
            display_name=profile.get("username", ""),
            profile_picture_url=profile.get("profile_picture_url"),
            platform=AccountPlatform.INSTAGRAM,
            last_login_at=datetime.now(timezone.utc),
            authorization_code=code,
        )
        self._credentials.save(user)
        return user

    async def redeem_facebook_code(self, code: str) -> PlatformUser:
        """Exchange ``code`` for a Facebook (page owner) account and store it."""
        if not code:
            raise ValidationFailure("Authorization code missing")
        existing = self._replay(code, AccountPlatform.FACEBOOK)
        if existing is not None:
            return existing

        self._used_codes.add(code)
        token_data = await self._facebook.exchange_code(code)
        access_token = token_data.get("access_token")
        if not access_token:
            raise ValidationFailure("Token exchange returned no access token")
        profile = await self._facebook.fetch_profile(access_token)
        if not profile.get("id"):
            raise ValidationFailure("Facebook profile has no id")

        user = PlatformUser(
            platform_user_id=str(profile["id"]),
            access_token=access_token,
            display_name=profile.get("name", ""),
            profile_picture_url=((profile.get("picture") or {}).get("data") or {}).get("url"),
            platform=AccountPlatform.FACEBOOK,
            last_login_at=datetime.now(timezone.utc),
            authorization_code=code,
        )
        self._credentials.save(user)
        return user

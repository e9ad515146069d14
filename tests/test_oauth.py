"""Social Hub – OAuth Redemption Tests."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.core.exceptions import UpstreamCallFailure, ValidationFailure
from app.gateway import dependencies
from app.gateway.oauth import OAuthService
from app.gateway.persistence import CredentialStore, UsedCodeRegistry
from app.gateway.schemas import AccountPlatform


class TestOAuthService:

    def setup_method(self) -> None:
        self.credentials = CredentialStore()
        self.used_codes = UsedCodeRegistry()
        self.instagram = MagicMock()
        self.instagram.exchange_code = AsyncMock(return_value={"access_token": "ig-token", "user_id": 17841})
        self.instagram.fetch_profile = AsyncMock(return_value={
            "id": "17841", "username": "shopowner", "profile_picture_url": "https://pic/1",
        })
        self.facebook = MagicMock()
        self.facebook.exchange_code = AsyncMock(return_value={"access_token": "fb-token"})
        self.facebook.fetch_profile = AsyncMock(return_value={
            "id": "10001", "name": "Page Owner", "picture": {"data": {"url": "https://pic/2"}},
        })
        self.service = OAuthService(self.credentials, self.used_codes, self.instagram, self.facebook)

    @pytest.mark.anyio
    async def test_instagram_code_creates_account(self) -> None:
        user = await self.service.redeem_instagram_code("code-a")
        assert user.platform_user_id == "17841"
        assert user.display_name == "shopowner"
        assert user.platform == AccountPlatform.INSTAGRAM
        assert self.credentials.get("17841").access_token == "ig-token"
        assert "code-a" in self.used_codes

    @pytest.mark.anyio
    async def test_replayed_code_is_not_exchanged_twice(self) -> None:
        first = await self.service.redeem_instagram_code("code-a")
        second = await self.service.redeem_instagram_code("code-a")
        assert second.platform_user_id == first.platform_user_id
        self.instagram.exchange_code.assert_awaited_once_with("code-a")

    @pytest.mark.anyio
    async def test_reused_code_without_account_is_rejected(self) -> None:
        self.instagram.exchange_code = AsyncMock(side_effect=UpstreamCallFailure("Code has expired"))
        with pytest.raises(UpstreamCallFailure):
            await self.service.redeem_instagram_code("code-b")
        with pytest.raises(ValidationFailure, match="already been used"):
            await self.service.redeem_instagram_code("code-b")
        assert self.instagram.exchange_code.await_count == 1

    @pytest.mark.anyio
    async def test_missing_token_rejected(self) -> None:
        self.instagram.exchange_code = AsyncMock(return_value={"error_message": "nope"})
        with pytest.raises(ValidationFailure):
            await self.service.redeem_instagram_code("code-c")
        self.instagram.fetch_profile.assert_not_called()

    @pytest.mark.anyio
    async def test_empty_code_rejected(self) -> None:
        with pytest.raises(ValidationFailure):
            await self.service.redeem_facebook_code("")

    @pytest.mark.anyio
    async def test_facebook_code_creates_account(self) -> None:
        user = await self.service.redeem_facebook_code("fb-code")
        assert user.platform_user_id == "10001"
        assert user.platform == AccountPlatform.FACEBOOK
        assert user.profile_picture_url == "https://pic/2"

    @pytest.mark.anyio
    async def test_code_from_other_platform_is_rejected(self) -> None:
        await self.service.redeem_facebook_code("shared-code")
        with pytest.raises(ValidationFailure):
            await self.service.redeem_instagram_code("shared-code")


class TestOAuthCallbacks:

    @pytest.mark.anyio
    async def test_instagram_login_redirects_to_authorize(self, client) -> None:
        resp = await client.get("/auth/instagram")
        assert resp.status_code == 302
        assert resp.headers["location"].startswith("https://www.instagram.com/oauth/authorize?")

    @pytest.mark.anyio
    async def test_instagram_callback_opens_dashboard(self, client) -> None:
        with patch.object(
            dependencies.instagram_client, "exchange_code",
            AsyncMock(return_value={"access_token": "tok", "user_id": 5}),
        ), patch.object(
            dependencies.instagram_client, "fetch_profile",
            AsyncMock(return_value={"id": "5", "username": "me"}),
        ):
            resp = await client.get("/auth/instagram/callback", params={"code": "abc"})

        assert resp.status_code == 302
        assert resp.headers["location"] == "/instagram-dashboard?user_id=5"
        assert dependencies.credential_store.get("5").display_name == "me"

    @pytest.mark.anyio
    async def test_instagram_callback_without_code(self, client) -> None:
        resp = await client.get("/auth/instagram/callback")
        assert resp.headers["location"] == "/?error=no_code"

    @pytest.mark.anyio
    async def test_instagram_callback_denied(self, client) -> None:
        resp = await client.get(
            "/auth/instagram/callback",
            params={"error": "access_denied", "error_reason": "user_denied"},
        )
        assert resp.headers["location"] == "/?error=instagram_auth_failed&message=user_denied"

    @pytest.mark.anyio
    async def test_instagram_callback_exchange_failure(self, client) -> None:
        with patch.object(
            dependencies.instagram_client, "exchange_code",
            AsyncMock(side_effect=UpstreamCallFailure("Code has expired")),
        ):
            resp = await client.get("/auth/instagram/callback", params={"code": "old"})
        assert resp.status_code == 302
        assert resp.headers["location"].startswith("/?error=instagram_auth_failed")

    @pytest.mark.anyio
    async def test_facebook_callback_opens_messenger_dashboard(self, client) -> None:
        with patch.object(
            dependencies.messenger_client, "exchange_code",
            AsyncMock(return_value={"access_token": "fb-tok"}),
        ), patch.object(
            dependencies.messenger_client, "fetch_profile",
            AsyncMock(return_value={"id": "77", "name": "Owner"}),
        ):
            resp = await client.get("/auth/facebook/callback", params={"code": "fb"})
        assert resp.headers["location"] == "/messenger-dashboard?user_id=77"

    @pytest.mark.anyio
    async def test_facebook_callback_without_code(self, client) -> None:
        resp = await client.get("/auth/facebook/callback")
        assert resp.headers["location"] == "/?error=facebook_auth_failed"

"""Social Hub – Gateway Schemas.

Domain records held in the stores, live-sink events and the request bodies
accepted by the REST surface. Request bodies use the camelCase field names
the dashboard sends.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Platform(str, Enum):
    """Webhook source platforms."""

    INSTAGRAM = "instagram"
    WHATSAPP = "whatsapp"
    MESSENGER = "messenger"


class AccountPlatform(str, Enum):
    """Platforms a PlatformUser can be authorized on."""

    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"


class RouteOutcome(str, Enum):
    """Terminal state of a routed webhook event."""

    DISPATCHED = "dispatched"
    IGNORED = "ignored"
    FAILED = "failed"


class Direction(str, Enum):
    IN = "in"
    OUT = "out"


# ──────────────────────────────────────────
# Stored records
# ──────────────────────────────────────────


class PlatformUser(BaseModel):
    """An authorized account on Instagram or Facebook."""

    platform_user_id: str
    access_token: str = Field(..., repr=False)
    display_name: str = ""
    profile_picture_url: str | None = None
    platform: AccountPlatform
    last_login_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    authorization_code: str = Field(default="", repr=False)

    @field_validator("access_token")
    @classmethod
    def _token_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("access_token must not be empty")
        return value

    def public_profile(self) -> dict[str, Any]:
        """Profile fields safe to hand to the dashboard (no token)."""
        return {
            "id": self.platform_user_id,
            "username": self.display_name,
            "profile_picture_url": self.profile_picture_url,
            "platform": self.platform.value,
            "last_login": self.last_login_at.isoformat(),
        }


class AutomationRule(BaseModel):
    """Keyword-triggered DM reply for comments on one post."""

    owner_id: str
    target_post_id: str
    keyword: str
    response_template: str


class AIConfig(BaseModel):
    """Process-wide WhatsApp AI configuration."""

    model_config = ConfigDict(frozen=True)

    api_key: str = Field(default="", repr=False)
    system_prompt: str = ""
    whatsapp_token: str = Field(default="", repr=False)

    @property
    def is_ready(self) -> bool:
        return bool(self.api_key and self.whatsapp_token)


class RouteResult(BaseModel):
    """What the event router did with one delivery."""

    platform: Platform
    outcome: RouteOutcome
    sent: int = 0
    failures: int = 0
    reason: str = ""


# ──────────────────────────────────────────
# Live sink events
# ──────────────────────────────────────────


class MirroredMessage(BaseModel):
    """A message mirrored to the dashboard."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["whatsapp-message", "instagram-message", "messenger-message"]
    sender: str = Field(..., alias="from")
    text: str
    direction: Direction
    to: str | None = None

    def to_event(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ──────────────────────────────────────────
# REST request bodies
# ──────────────────────────────────────────


class _CamelBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class ConfigureRuleRequest(_CamelBody):
    user_id: str = Field(..., alias="userId", min_length=1)
    post_id: str = Field(..., alias="postId", min_length=1)
    keyword: str = Field(..., min_length=1)
    response: str = Field(..., min_length=1)


class InstagramDMRequest(_CamelBody):
    user_id: str = Field(..., alias="userId", min_length=1)
    username: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)


class MessengerSendRequest(_CamelBody):
    user_id: str = Field(..., alias="userId", min_length=1)
    conversation_id: str = Field(..., alias="id", min_length=1)
    message: str = Field(..., min_length=1)


class AIConfigRequest(_CamelBody):
    api_key: str = Field(default="", validation_alias=AliasChoices("geminiKey", "apiKey"))
    system_prompt: str = Field(default="", validation_alias=AliasChoices("systemPrompt", "system_prompt"))
    whatsapp_token: str = Field(default="", validation_alias=AliasChoices("waToken", "whatsappToken"))


class WhatsAppSendRequest(_CamelBody):
    token: str = Field(..., min_length=1)
    to: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)


class WhatsAppManualSendRequest(_CamelBody):
    to: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)

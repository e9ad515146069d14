"""Social Hub – Application Configuration.

Pydantic Settings, loaded from a .env file or environment variables.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Gateway ---
    environment: str = "development"
    log_level: str = "info"
    gateway_host: str = "0.0.0.0"
    gateway_port: int = 3000
    gateway_public_url: str = ""  # Base URL registered as webhook callback
    cors_allowed_origins: str = "*"

    # --- Dashboard redirects ---
    instagram_dashboard_path: str = "/instagram-dashboard"
    messenger_dashboard_path: str = "/messenger-dashboard"

    # --- Meta webhooks ---
    meta_verify_token: str = ""  # Instagram + Messenger subscription handshake
    whatsapp_verify_token: str = ""
    meta_app_secret: str = ""  # Optional HMAC-SHA256 delivery signature check

    # --- Instagram Login ---
    instagram_app_id: str = ""
    instagram_app_secret: str = ""
    instagram_redirect_uri: str = ""
    instagram_scopes: str = (
        "instagram_business_basic,instagram_business_manage_messages,"
        "instagram_business_manage_comments,instagram_business_content_publish"
    )

    # --- Facebook Login (Messenger) ---
    facebook_app_id: str = ""
    facebook_app_secret: str = ""
    facebook_callback_url: str = ""
    facebook_scopes: str = "pages_show_list,pages_messaging,pages_read_engagement"

    # --- Graph API ---
    graph_api_version: str = "v19.0"
    whatsapp_api_version: str = "v17.0"
    whatsapp_phone_number_id: str = ""

    # --- Gemini ---
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model: str = "gemini-2.0-flash"

    # --- Outbound timeouts (seconds) ---
    instagram_timeout: float = 15.0
    ai_timeout: float = 10.0
    default_http_timeout: float = 30.0

    # --- Conversation memory ---
    memory_max_turns: int = 40

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]


def get_settings() -> Settings:
    """Return a fresh Settings instance (reads env on every call)."""
    return Settings()

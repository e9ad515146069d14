"""Shared dependencies for the Gateway routers.

Avoids circular imports by centralizing singleton initialization. All hub
state lives in these process-wide objects; ``reset_state`` clears it.
"""
import structlog

from app.assistant.llm import GeminiClient
from app.assistant.responder import AIResponder
from app.gateway.event_router import EventRouter
from app.gateway.live_sink import LiveSink
from app.gateway.oauth import OAuthService
from app.gateway.persistence import (
    AIConfigHolder,
    CredentialStore,
    RuleStore,
    UsedCodeRegistry,
)
from app.gateway.schemas import AIConfig
from app.gateway.verifier import WebhookVerifier
from app.integrations.facebook.client import FacebookMessengerClient
from app.integrations.instagram.client import InstagramClient
from app.integrations.send_gateway import SendGateway
from app.integrations.whatsapp import WhatsAppClient
from app.memory.context import ConversationMemory
from config.settings import get_settings

logger = structlog.get_logger()
settings = get_settings()

# Stores
credential_store = CredentialStore()
rule_store = RuleStore()
used_codes = UsedCodeRegistry()
ai_config = AIConfigHolder()
conversation_memory = ConversationMemory(max_turns=settings.memory_max_turns)

# Platform clients
instagram_client = InstagramClient(
    app_id=settings.instagram_app_id,
    app_secret=settings.instagram_app_secret,
    redirect_uri=settings.instagram_redirect_uri,
    graph_version=settings.graph_api_version,
    timeout=settings.instagram_timeout,
    scopes=settings.instagram_scopes,
)
messenger_client = FacebookMessengerClient(
    app_id=settings.facebook_app_id,
    app_secret=settings.facebook_app_secret,
    callback_url=settings.facebook_callback_url,
    graph_version=settings.graph_api_version,
    timeout=settings.default_http_timeout,
    scopes=settings.facebook_scopes,
)
whatsapp_client = WhatsAppClient(
    phone_number_id=settings.whatsapp_phone_number_id,
    api_version=settings.whatsapp_api_version,
    timeout=settings.default_http_timeout,
)
llm_client = GeminiClient(
    base_url=settings.gemini_base_url,
    model=settings.gemini_model,
    timeout=settings.ai_timeout,
)

# Pipeline
send_gateway = SendGateway(
    instagram=instagram_client,
    messenger=messenger_client,
    whatsapp=whatsapp_client,
    llm=llm_client,
)
live_sink = LiveSink()
webhook_verifier = WebhookVerifier(app_secret=settings.meta_app_secret)
ai_responder = AIResponder(send_gateway)
event_router = EventRouter(
    rules=rule_store,
    credentials=credential_store,
    ai_config=ai_config,
    memory=conversation_memory,
    responder=ai_responder,
    gateway=send_gateway,
    sink=live_sink,
)
oauth_service = OAuthService(
    credentials=credential_store,
    used_codes=used_codes,
    instagram=instagram_client,
    facebook=messenger_client,
)


def reset_state() -> None:
    """Drop all in-memory hub state (stores, memory, subscriber)."""
    credential_store.clear()
    rule_store.clear()
    used_codes.clear()
    conversation_memory.reset()
    ai_config.replace(AIConfig())
    live_sink.detach()
    send_gateway.messages_sent = 0
    logger.info("state.reset")

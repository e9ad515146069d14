"""Social Hub – Webhook Verifier Tests."""

import json

import pytest

from app.core.exceptions import Forbidden, ValidationFailure
from app.gateway.schemas import Platform
from app.gateway.verifier import WebhookVerifier, compute_signature, verify_handshake


class TestHandshake:

    def test_returns_challenge_verbatim(self) -> None:
        assert verify_handshake("subscribe", "T", "C-123", "T") == "C-123"

    def test_mismatched_token_raises_forbidden(self) -> None:
        with pytest.raises(Forbidden):
            verify_handshake("subscribe", "nope", "C", "T")

    def test_wrong_mode_raises_forbidden(self) -> None:
        with pytest.raises(Forbidden):
            verify_handshake("unsubscribe", "T", "C", "T")

    def test_unconfigured_token_never_verifies(self) -> None:
        with pytest.raises(Forbidden):
            verify_handshake("subscribe", "", "C", "")

    def test_forbidden_is_a_validation_failure(self) -> None:
        assert issubclass(Forbidden, ValidationFailure)


class TestDeliveryValidation:

    def setup_method(self) -> None:
        self.verifier = WebhookVerifier()

    def test_instagram_shape_accepted(self) -> None:
        payload = {"object": "instagram", "entry": []}
        assert self.verifier.validate_delivery(Platform.INSTAGRAM, payload) is payload

    def test_missing_entry_rejected(self) -> None:
        with pytest.raises(ValidationFailure):
            self.verifier.validate_delivery(Platform.WHATSAPP, {"object": "whatsapp_business_account"})

    def test_non_object_body_rejected(self) -> None:
        with pytest.raises(ValidationFailure):
            self.verifier.validate_delivery(Platform.WHATSAPP, ["entry"])

    def test_messenger_requires_signature_header(self) -> None:
        with pytest.raises(ValidationFailure, match="X-Hub-Signature-256"):
            self.verifier.validate_delivery(Platform.MESSENGER, {"object": "page", "entry": []})

    def test_messenger_requires_page_object(self) -> None:
        with pytest.raises(ValidationFailure):
            self.verifier.validate_delivery(
                Platform.MESSENGER, {"object": "user", "entry": []}, signature="sha256=x"
            )

    def test_whatsapp_needs_no_signature_without_secret(self) -> None:
        payload = {"entry": []}
        assert self.verifier.validate_delivery(Platform.WHATSAPP, payload) == payload


class TestSignature:

    def setup_method(self) -> None:
        self.verifier = WebhookVerifier(app_secret="app-secret")
        self.payload = {"object": "instagram", "entry": []}
        self.body = json.dumps(self.payload).encode("utf-8")

    def test_valid_signature_accepted(self) -> None:
        signature = compute_signature("app-secret", self.body)
        result = self.verifier.validate_delivery(
            Platform.INSTAGRAM, self.payload, raw_body=self.body, signature=signature
        )
        assert result == self.payload

    def test_tampered_body_rejected(self) -> None:
        signature = compute_signature("app-secret", self.body)
        with pytest.raises(ValidationFailure, match="Invalid webhook signature"):
            self.verifier.validate_delivery(
                Platform.INSTAGRAM, self.payload, raw_body=self.body + b" ", signature=signature
            )

    def test_missing_signature_rejected_when_secret_set(self) -> None:
        with pytest.raises(ValidationFailure):
            self.verifier.validate_delivery(Platform.WHATSAPP, {"entry": []}, raw_body=b"{}")

    def test_signature_format(self) -> None:
        assert compute_signature("s", b"body").startswith("sha256=")

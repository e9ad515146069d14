"""Social Hub – Store Tests."""

import pytest
from pydantic import ValidationError

from app.core.exceptions import NotFoundError
from app.core.store import InMemoryStore
from app.gateway.persistence import AIConfigHolder, CredentialStore, RuleStore, UsedCodeRegistry
from app.gateway.schemas import AccountPlatform, AIConfig, AutomationRule, PlatformUser


def _user(user_id: str = "u1", platform: AccountPlatform = AccountPlatform.INSTAGRAM, code: str = "c1") -> PlatformUser:
    return PlatformUser(
        platform_user_id=user_id,
        access_token=f"token-{user_id}",
        display_name=user_id,
        platform=platform,
        authorization_code=code,
    )


class TestInMemoryStore:

    def test_get_set_delete(self) -> None:
        store: InMemoryStore[int] = InMemoryStore()
        store.set("a", 1)
        assert store.get("a") == 1
        assert "a" in store
        assert store.delete("a") is True
        assert store.get("a") is None
        assert store.delete("a") is False

    def test_iteration_keeps_insertion_order_on_overwrite(self) -> None:
        store: InMemoryStore[int] = InMemoryStore()
        store.set("a", 1)
        store.set("b", 2)
        store.set("a", 3)
        assert list(store.items()) == [("a", 3), ("b", 2)]

    def test_items_is_a_snapshot(self) -> None:
        store: InMemoryStore[int] = InMemoryStore()
        store.set("a", 1)
        items = store.items()
        store.set("b", 2)
        assert list(items) == [("a", 1)]


class TestCredentialStore:

    def test_relogin_overwrites_record(self) -> None:
        store = CredentialStore()
        store.save(_user(code="c1"))
        store.save(_user(code="c2"))
        assert store.count() == 1
        assert store.get("u1").authorization_code == "c2"

    def test_require_missing_user_raises_not_found(self) -> None:
        with pytest.raises(NotFoundError):
            CredentialStore().require("ghost")

    def test_require_checks_platform(self) -> None:
        store = CredentialStore()
        store.save(_user(platform=AccountPlatform.FACEBOOK))
        with pytest.raises(NotFoundError):
            store.require("u1", AccountPlatform.INSTAGRAM)

    def test_find_by_code(self) -> None:
        store = CredentialStore()
        store.save(_user("u1", code="c1"))
        store.save(_user("u2", code="c2"))
        assert store.find_by_code("c2").platform_user_id == "u2"
        assert store.find_by_code("c3") is None

    def test_empty_token_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PlatformUser(platform_user_id="u", access_token="", platform=AccountPlatform.INSTAGRAM)

    def test_public_profile_has_no_token(self) -> None:
        assert "token-u1" not in str(_user().public_profile())


class TestRuleStore:

    def test_one_rule_per_owner(self) -> None:
        rules = RuleStore()
        rules.save(AutomationRule(owner_id="u1", target_post_id="P1", keyword="a", response_template="x"))
        rules.save(AutomationRule(owner_id="u1", target_post_id="P2", keyword="b", response_template="y"))
        assert len(rules) == 1
        assert rules.get("u1").target_post_id == "P2"

    def test_all_in_insertion_order(self) -> None:
        rules = RuleStore()
        for owner in ("u1", "u2", "u3"):
            rules.save(AutomationRule(owner_id=owner, target_post_id="P", keyword="k", response_template="r"))
        assert [r.owner_id for r in rules.all()] == ["u1", "u2", "u3"]


class TestUsedCodesAndConfig:

    def test_used_code_membership(self) -> None:
        codes = UsedCodeRegistry()
        assert "abc" not in codes
        codes.add("abc")
        assert "abc" in codes

    def test_ai_config_replaced_wholesale(self) -> None:
        holder = AIConfigHolder()
        assert holder.get().is_ready is False
        holder.replace(AIConfig(api_key="k", whatsapp_token="t", system_prompt="Be nice"))
        assert holder.get().is_ready is True
        holder.replace(AIConfig(api_key="k"))
        assert holder.get().system_prompt == ""
        assert holder.get().is_ready is False

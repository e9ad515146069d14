"""Social Hub – Keyword Matcher Tests."""

from app.gateway.keyword_matcher import match_rules, render_reply
from app.gateway.schemas import AutomationRule


def _rule(owner: str, post: str, keyword: str, template: str = "Hi {username}") -> AutomationRule:
    return AutomationRule(owner_id=owner, target_post_id=post, keyword=keyword, response_template=template)


class TestMatchRules:

    def test_case_insensitive_substring(self) -> None:
        rule = _rule("u1", "P1", "price")
        assert match_rules("P1", "what's the Price?", [rule]) == [rule]

    def test_uppercase_keyword_matches_lowercase_text(self) -> None:
        rule = _rule("u1", "P1", "LINK")
        assert match_rules("P1", "send me the link pls", [rule]) == [rule]

    def test_other_post_never_matches(self) -> None:
        assert match_rules("P2", "price", [_rule("u1", "P1", "price")]) == []

    def test_missing_keyword_does_not_match(self) -> None:
        assert match_rules("P1", "nice photo", [_rule("u1", "P1", "price")]) == []

    def test_all_matches_fire_in_rule_order(self) -> None:
        first = _rule("u1", "P1", "price")
        second = _rule("u2", "P1", "pri")
        other = _rule("u3", "P9", "price")
        assert match_rules("P1", "PRICE?", [first, other, second]) == [first, second]

    def test_empty_text_matches_nothing(self) -> None:
        assert match_rules("P1", "", [_rule("u1", "P1", "price")]) == []


class TestRenderReply:

    def test_substitutes_username(self) -> None:
        rule = _rule("u1", "P1", "price", "Hi {username}, price is $10")
        assert render_reply(rule, "alice") == "Hi alice, price is $10"

    def test_substitutes_every_occurrence(self) -> None:
        rule = _rule("u1", "P1", "x", "{username}! {username}!")
        assert render_reply(rule, "bob") == "bob! bob!"

    def test_template_without_placeholder(self) -> None:
        rule = _rule("u1", "P1", "x", "Check your DMs")
        assert render_reply(rule, "bob") == "Check your DMs"

"""Social Hub – Comment keyword matching.

Pure functions; no I/O.
"""

from typing import Iterable

from app.gateway.schemas import AutomationRule

USERNAME_PLACEHOLDER = "{username}"


def match_rules(media_id: str, text: str, rules: Iterable[AutomationRule]) -> list[AutomationRule]:
    """Every rule targeting ``media_id`` whose keyword occurs in ``text``.

    Matching is a case-insensitive substring test. Results keep the order
    of ``rules``; all matches fire.
    """
    if not media_id or not text:
        return []
    haystack = text.lower()
    return [
        rule
        for rule in rules
        if rule.target_post_id == media_id
        and rule.keyword
        and rule.keyword.lower() in haystack
    ]


def render_reply(rule: AutomationRule, username: str) -> str:
    return rule.response_template.replace(USERNAME_PLACEHOLDER, username)

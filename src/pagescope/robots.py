"""robots.txt policy resolution.

Parsing is a two-state machine over non-blank, comment-stripped lines:

    state           line            action
    --------------  --------------  ----------------------------------------
    NO_GROUP        user-agent      open group with this agent -> IN_GROUP
    NO_GROUP        allow/disallow  open implicit "*" group, add rule -> IN_GROUP
    IN_GROUP        user-agent      group has rules: close it, open new group
                                    group has no rules: add agent to it
    IN_GROUP        allow/disallow  add rule to current group
    any             other key       ignored

Only Allow and Disallow are honored, with plain prefix matching. The longest
matching prefix wins; among equally long matches the first declared rule
wins. Among groups naming the same agent the first declared group wins.

``RobotsResolver.is_allowed`` never raises: when the policy cannot be
obtained or read, the answer is "allowed".
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

import structlog

from pagescope.errors import PageScopeError
from pagescope.guard import parse_target
from pagescope.models.robots import RobotsGroup, RobotsRule, RobotsRuleSet, RuleKind

if TYPE_CHECKING:
    from pagescope.config import RobotsSettings
    from pagescope.models.analysis import URLTarget
    from pagescope.protocols import FetcherProtocol

log = structlog.get_logger()

ROBOTS_ACCEPT = "text/plain,*/*;q=0.1"


class _ParserState(Enum):
    NO_GROUP = "no_group"
    IN_GROUP = "in_group"


def _clean_lines(text: str) -> list[tuple[str, str]]:
    """Return (key, value) pairs with comments and blank lines removed."""
    pairs: list[tuple[str, str]] = []
    for raw in text.splitlines():
        line = raw.split("#", 1)[0].strip()
        if not line or ":" not in line:
            continue
        key, value = line.split(":", 1)
        pairs.append((key.strip().lower(), value.strip()))
    return pairs


def parse_robots(text: str) -> RobotsRuleSet:
    """Parse robots.txt *text* into an immutable rule set."""
    groups: list[RobotsGroup] = []
    state = _ParserState.NO_GROUP
    agents: set[str] = set()
    rules: list[RobotsRule] = []

    def close_group() -> None:
        groups.append(RobotsGroup(agent_names=frozenset(agents), rules=tuple(rules)))

    for key, value in _clean_lines(text):
        if key == "user-agent":
            if state is _ParserState.IN_GROUP and rules:
                close_group()
                agents, rules = set(), []
            agents.add(value.lower())
            state = _ParserState.IN_GROUP
        elif key in ("allow", "disallow"):
            if state is _ParserState.NO_GROUP:
                agents, rules = {"*"}, []
                state = _ParserState.IN_GROUP
            rules.append(RobotsRule(kind=RuleKind(key), path_prefix=value))

    if state is _ParserState.IN_GROUP:
        close_group()

    return RobotsRuleSet(groups=tuple(groups))


def select_group(rule_set: RobotsRuleSet, user_agent: str) -> RobotsGroup | None:
    """Return the group for *user_agent*, falling back to the ``*`` group."""
    agent = user_agent.lower()
    for group in rule_set.groups:
        if agent in group.agent_names:
            return group
    for group in rule_set.groups:
        if "*" in group.agent_names:
            return group
    return None


def is_path_allowed(rule_set: RobotsRuleSet, path: str, user_agent: str) -> bool:
    """Decide whether *path* may be fetched by *user_agent* under *rule_set*."""
    group = select_group(rule_set, user_agent)
    if group is None:
        return True

    winner: RobotsRule | None = None
    for rule in group.rules:
        if not rule.path_prefix or not path.startswith(rule.path_prefix):
            continue
        # Strictly longer only, so the first declared rule keeps ties
        if winner is None or len(rule.path_prefix) > len(winner.path_prefix):
            winner = rule

    if winner is None:
        return True
    return winner.kind is RuleKind.ALLOW


class RobotsResolver:
    """Fetches a site's robots.txt and answers allow/deny for one path.

    A fresh rule set is built for every check; nothing is cached.
    """

    def __init__(self, fetcher: FetcherProtocol, settings: RobotsSettings) -> None:
        self._fetcher = fetcher
        self._settings = settings

    async def is_allowed(self, target: URLTarget, user_agent: str | None = None) -> bool:
        """Return whether *target* may be fetched. Never raises.

        Any failure to obtain or read the policy (network error, timeout,
        non-2xx status, blocked redirect, malformed body) yields True.
        """
        agent = user_agent or self._settings.agent_token
        robots_url = f"{target.origin}/robots.txt"

        try:
            response = await self._fetcher.fetch(
                parse_target(robots_url),
                accept=ROBOTS_ACCEPT,
                max_bytes=self._settings.max_bytes,
                timeout_seconds=self._settings.timeout_seconds,
            )
            rule_set = parse_robots(response.body)
        except PageScopeError as exc:
            log.info(
                "robots_fetch_failed",
                robots_url=robots_url,
                code=exc.code,
                reason=exc.message,
                outcome="allowed",
            )
            return True
        except Exception:
            log.warning(
                "robots_fetch_failed",
                robots_url=robots_url,
                outcome="allowed",
                exc_info=True,
            )
            return True

        allowed = is_path_allowed(rule_set, target.path, agent)
        log.debug(
            "robots_checked",
            robots_url=robots_url,
            path=target.path,
            agent=agent,
            allowed=allowed,
        )
        return allowed

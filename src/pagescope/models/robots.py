from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class RuleKind(StrEnum):
    ALLOW = "allow"
    DISALLOW = "disallow"


class RobotsRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: RuleKind
    path_prefix: str


class RobotsGroup(BaseModel):
    """One User-agent block: the agents it names and its rules in file order."""

    model_config = ConfigDict(frozen=True)

    agent_names: frozenset[str]  # Lower-cased
    rules: tuple[RobotsRule, ...] = ()


class RobotsRuleSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    groups: tuple[RobotsGroup, ...] = ()

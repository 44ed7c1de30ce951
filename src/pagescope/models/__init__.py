from __future__ import annotations

from pagescope.models.analysis import (
    ExtractedContent,
    FetchResponse,
    Heading,
    Link,
    PageAnalysis,
    PageMetadata,
    Passage,
    URLTarget,
)
from pagescope.models.cache import CacheEntry
from pagescope.models.robots import RobotsGroup, RobotsRule, RobotsRuleSet, RuleKind
from pagescope.models.tools import FetchAndAnalyzeInput

__all__ = [
    # analysis
    "URLTarget",
    "FetchResponse",
    "Heading",
    "Link",
    "Passage",
    "PageMetadata",
    "ExtractedContent",
    "PageAnalysis",
    # robots
    "RuleKind",
    "RobotsRule",
    "RobotsGroup",
    "RobotsRuleSet",
    # cache
    "CacheEntry",
    # tools
    "FetchAndAnalyzeInput",
]

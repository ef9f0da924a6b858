"""Keyword rule tables used to infer capabilities, categories and safety.

Parsers call these when a dialect has no field for the information. The tables
are plain data so each ruleset can be tested on its own and shared by agents.
"""

import re
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Tuple

from agent_convert.models import Capabilities, SafetyLevel


@dataclass(frozen=True)
class KeywordRule:
    """Sets ``target`` when any keyword occurs in the scanned text."""

    target: str
    keywords: Tuple[str, ...]
    whole_word: bool = False

    def matches(self, text: str) -> bool:
        if self.whole_word:
            return any(
                re.search(rf"\b{re.escape(k)}\b", text) is not None
                for k in self.keywords
            )
        return any(k in text for k in self.keywords)


@dataclass(frozen=True)
class RuleSet:
    capability_rules: Tuple[KeywordRule, ...]
    tool_rules: Tuple[KeywordRule, ...] = ()
    category_rules: Tuple[KeywordRule, ...] = ()
    dangerous_keywords: Tuple[str, ...] = ()
    dangerous_flags: Tuple[str, ...] = ("needs_shell",)
    sensitive_keywords: Tuple[str, ...] = ()
    sensitive_flags: Tuple[str, ...] = ("needs_network", "needs_git")
    always_set: Tuple[str, ...] = ("needs_filesystem",)
    default_category: str = "general"

    def extend(self, *capability_rules: KeywordRule, **changes) -> "RuleSet":
        return replace(
            self,
            capability_rules=self.capability_rules + tuple(capability_rules),
            **changes,
        )


CAPABILITY_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule("needs_shell", ("terminal", "command", "shell")),
    KeywordRule("needs_git", ("git", "commit", "branch")),
    KeywordRule("needs_network", ("http", "api", "fetch")),
    KeywordRule("needs_browser", ("browser", "screenshot")),
    KeywordRule("needs_code_search", ("search", "find", "grep")),
    KeywordRule("needs_mcp", ("mcp",), whole_word=True),
    KeywordRule("provides_analysis", ("analyz", "review", "audit")),
    KeywordRule("provides_code_generation", ("implement", "create", "generate")),
    KeywordRule("provides_refactoring", ("refactor", "restructure")),
    KeywordRule("provides_documentation", ("document", "readme", "spec")),
)

# Matched against tool names from allow-lists, not against prose.
TOOL_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule("needs_shell", ("bash", "shell", "run_command", "exec")),
    KeywordRule("needs_git", ("git",)),
    KeywordRule("needs_browser", ("browser",)),
    KeywordRule("needs_network", ("webfetch", "websearch", "fetch", "read_url")),
    KeywordRule("needs_code_search", ("search", "grep", "glob")),
    KeywordRule("needs_mcp", ("mcp__", "mcp_")),
)

CATEGORY_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule("architecture", ("architect",)),
    KeywordRule("design", ("design",)),
    KeywordRule("testing", ("test",)),
    KeywordRule("debugging", ("debug",)),
    KeywordRule("refactoring", ("refactor",)),
    KeywordRule("documentation", ("document",)),
    KeywordRule("security", ("security",)),
    KeywordRule("performance", ("performance", "optimi")),
)

DEFAULT_RULES = RuleSet(
    capability_rules=CAPABILITY_RULES,
    tool_rules=TOOL_RULES,
    category_rules=CATEGORY_RULES,
    dangerous_keywords=("delete", "remove", "drop", "destroy"),
    sensitive_keywords=("modify", "update"),
)

# Windsurf bodies name Cascade tools directly.
WINDSURF_RULES = DEFAULT_RULES.extend(
    KeywordRule("needs_shell", ("run_command",)),
    KeywordRule("needs_network", ("read_url",)),
    KeywordRule("needs_browser", ("browser_preview",)),
    KeywordRule(
        "needs_code_search", ("code_search", "grep_search", "find_by_name")
    ),
    KeywordRule("provides_analysis", ("investigate",)),
    category_rules=CATEGORY_RULES
    + (
        KeywordRule("iteration", ("iterate",)),
        KeywordRule("reasoning", ("think", "reason")),
    ),
    sensitive_keywords=("modify", "edit"),
)

# AGENTS.md files are long prose; only whole words count.
UNIVERSAL_RULES = RuleSet(
    capability_rules=(
        KeywordRule(
            "needs_shell",
            ("npm", "yarn", "pnpm", "pip", "cargo", "make", "bash", "shell", "terminal"),
            whole_word=True,
        ),
        KeywordRule("needs_git", ("git", "commit", "branch", "merge"), whole_word=True),
        KeywordRule(
            "needs_network", ("http", "https", "api", "fetch", "curl"), whole_word=True
        ),
        KeywordRule("needs_browser", ("browser", "playwright"), whole_word=True),
        KeywordRule("needs_code_search", ("search", "grep", "find"), whole_word=True),
        KeywordRule("provides_analysis", ("review", "lint", "audit"), whole_word=True),
        KeywordRule(
            "provides_code_generation", ("implement", "generate", "scaffold"), whole_word=True
        ),
        KeywordRule("provides_refactoring", ("refactor",), whole_word=True),
        KeywordRule(
            "provides_documentation", ("docs", "documentation", "readme"), whole_word=True
        ),
    ),
    tool_rules=TOOL_RULES,
    category_rules=CATEGORY_RULES,
    default_category="project-instructions",
)


def _hits(rules: Iterable[KeywordRule], text: str) -> List[str]:
    return [rule.target for rule in rules if rule.matches(text)]


def infer_capabilities(
    text: str,
    tools: Optional[Iterable[str]] = None,
    rules: RuleSet = DEFAULT_RULES,
) -> Capabilities:
    """Derive capability flags from prose and an optional tool allow-list."""
    lowered = text.lower()
    flags = {name: False for name in Capabilities.model_fields}
    for name in rules.always_set:
        flags[name] = True
    for target in _hits(rules.capability_rules, lowered):
        flags[target] = True
    for tool in tools or ():
        for target in _hits(rules.tool_rules, tool.lower()):
            flags[target] = True
    return Capabilities(**flags)


def infer_categories(text: str, rules: RuleSet = DEFAULT_RULES) -> List[str]:
    categories: List[str] = []
    for target in _hits(rules.category_rules, text.lower()):
        if target not in categories:
            categories.append(target)
    return categories or [rules.default_category]


def infer_safety_level(
    text: str, capabilities: Capabilities, rules: RuleSet = DEFAULT_RULES
) -> SafetyLevel:
    lowered = text.lower()
    if any(k in lowered for k in rules.dangerous_keywords) or any(
        getattr(capabilities, f) for f in rules.dangerous_flags
    ):
        return "dangerous"
    if any(k in lowered for k in rules.sensitive_keywords) or any(
        getattr(capabilities, f) for f in rules.sensitive_flags
    ):
        return "sensitive"
    return "safe"


def merge_capabilities(base: Capabilities, **updates: bool) -> Capabilities:
    """Return ``base`` with the given flags forced on or off."""
    return base.model_copy(update=updates)

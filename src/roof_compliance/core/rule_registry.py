"""
Rule Registry for the Roof Compliance Engine.
Holds the business rule definitions, their execution order and the
progress marks the worker reports for each stage.
"""

from dataclasses import dataclass, replace
from typing import Any

from .results import RuleType


@dataclass
class RuleDefinition:
    """Definition of a business rule."""

    rule_type: RuleType
    slug: str
    name: str
    short_name: str
    description: str
    category: str  # "coverage" or "compliance"
    result_key: str  # Attribute on BusinessRuleResults
    stage: str  # Stage name used in progress events
    stage_order: int
    priority: int  # Display order, 1 = highest
    running_progress: int
    completed_progress: int
    enabled: bool = True


DATA_LOADING_STAGE = "data_loading"
DATA_LOADING_RUNNING = 10
DATA_LOADING_COMPLETED = 20

DEFAULT_RULES: tuple[RuleDefinition, ...] = (
    RuleDefinition(
        rule_type=RuleType.HIP_RIDGE_CAP,
        slug="hip-ridge-cap",
        name="Hip & Ridge Cap Analysis",
        short_name="Ridge Cap",
        description="Ridge cap material quality and coverage analysis for ASTM compliance",
        category="compliance",
        result_key="ridge_cap",
        stage="ridge_cap",
        stage_order=1,
        priority=1,
        running_progress=30,
        completed_progress=50,
    ),
    RuleDefinition(
        rule_type=RuleType.STARTER_STRIP,
        slug="starter-strip",
        name="Starter Strip Coverage",
        short_name="Starter Strip",
        description="Universal starter course analysis and coverage calculation",
        category="coverage",
        result_key="starter_strip",
        stage="starter_strip",
        stage_order=2,
        priority=3,
        running_progress=60,
        completed_progress=70,
    ),
    RuleDefinition(
        rule_type=RuleType.DRIP_EDGE,
        slug="drip-edge-gutter-apron",
        name="Drip Edge & Gutter Apron",
        short_name="Edge Protection",
        description="Edge protection analysis for rakes and eaves water management",
        category="coverage",
        result_key="drip_edge",
        stage="drip_edge",
        stage_order=3,
        priority=2,
        running_progress=80,
        completed_progress=90,
    ),
    RuleDefinition(
        rule_type=RuleType.ICE_WATER_BARRIER,
        slug="ice-water-barrier",
        name="Ice & Water Barrier",
        short_name="Ice & Water",
        description="Code-compliant ice and water barrier coverage calculation",
        category="coverage",
        result_key="ice_and_water",
        stage="ice_water",
        stage_order=4,
        priority=4,
        running_progress=95,
        completed_progress=100,
    ),
)


class RuleRegistry:
    """
    Registry for business rule definitions.

    Rules are keyed by rule type and indexed by slug so they can be
    reordered or disabled without touching the worker.
    """

    def __init__(self, rules: tuple[RuleDefinition, ...] | list[RuleDefinition] = ()) -> None:
        self._rules: dict[RuleType, RuleDefinition] = {}
        self._slug_index: dict[str, RuleType] = {}
        for rule in rules:
            self.add_rule(rule)

    def add_rule(self, rule: RuleDefinition) -> None:
        """Add or replace a rule definition."""
        existing = self._rules.get(rule.rule_type)
        if existing is not None:
            del self._slug_index[existing.slug]
        self._rules[rule.rule_type] = rule
        self._slug_index[rule.slug] = rule.rule_type

    def remove_rule(self, rule_type: RuleType) -> bool:
        """Remove a rule from the registry."""
        rule = self._rules.pop(rule_type, None)
        if rule is None:
            return False
        del self._slug_index[rule.slug]
        return True

    def get_rule(self, rule_type: RuleType) -> RuleDefinition | None:
        """Get a specific rule by type."""
        return self._rules.get(rule_type)

    def get_rule_by_slug(self, slug: str) -> RuleDefinition | None:
        """Get a specific rule by its URL slug."""
        rule_type = self._slug_index.get(slug)
        return self._rules.get(rule_type) if rule_type else None

    def enable_rule(self, rule_type: RuleType) -> bool:
        """Enable a specific rule."""
        if rule_type in self._rules:
            self._rules[rule_type].enabled = True
            return True
        return False

    def disable_rule(self, rule_type: RuleType) -> bool:
        """Disable a specific rule."""
        if rule_type in self._rules:
            self._rules[rule_type].enabled = False
            return True
        return False

    def available_rules(self) -> list[RuleDefinition]:
        """Enabled rules in display priority order."""
        return sorted(
            (rule for rule in self._rules.values() if rule.enabled),
            key=lambda rule: rule.priority,
        )

    def execution_order(self) -> list[RuleDefinition]:
        """Enabled rules in the order the worker runs them."""
        return sorted(
            (rule for rule in self._rules.values() if rule.enabled),
            key=lambda rule: rule.stage_order,
        )

    def next_rule(self, slug: str) -> RuleDefinition | None:
        """The available rule displayed after the given one."""
        rules = self.available_rules()
        index = self._index_of(rules, slug)
        if index is not None and index < len(rules) - 1:
            return rules[index + 1]
        return None

    def previous_rule(self, slug: str) -> RuleDefinition | None:
        """The available rule displayed before the given one."""
        rules = self.available_rules()
        index = self._index_of(rules, slug)
        if index is not None and index > 0:
            return rules[index - 1]
        return None

    def rule_progress(self, slug: str) -> tuple[int, int]:
        """(current position, total) of a rule among available rules; 0 if absent."""
        rules = self.available_rules()
        index = self._index_of(rules, slug)
        return ((index + 1) if index is not None else 0, len(rules))

    def list_rules(self) -> list[dict[str, Any]]:
        """List all rules with their status."""
        return [
            {
                "rule_type": rule.rule_type.value,
                "slug": rule.slug,
                "name": rule.name,
                "category": rule.category,
                "priority": rule.priority,
                "enabled": rule.enabled,
                "description": rule.description,
            }
            for rule in sorted(self._rules.values(), key=lambda r: r.priority)
        ]

    @staticmethod
    def _index_of(rules: list[RuleDefinition], slug: str) -> int | None:
        for index, rule in enumerate(rules):
            if rule.slug == slug:
                return index
        return None


def create_default_registry() -> RuleRegistry:
    """Build a registry holding the four standard rules."""
    # Copies; DEFAULT_RULES must stay unmodified
    return RuleRegistry([replace(rule) for rule in DEFAULT_RULES])

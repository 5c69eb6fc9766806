"""
Rule matching - selects the rule and activity a snapshot maps to.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from .errors import FilterEvaluationError, TemplateEvaluationError
from .evaluators import TemplateEvaluator, build_bindings, parse_bool
from .models import Activity, EvaluationContext, PresenceSnapshot, TitleRule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleMatch:
    """The winning rule and the activity entry it bound to."""

    rule: TitleRule
    activity: Activity


class RuleMatcher:
    """
    Matches presence snapshots against a rule set.

    Rules are tried by descending priority, ties keeping rule set order.
    The first rule with a kind-compatible activity whose filter passes wins;
    lower-priority rules are not evaluated after that.
    """

    def __init__(self, evaluator: TemplateEvaluator) -> None:
        self._evaluator = evaluator

    def match(
        self,
        snapshot: PresenceSnapshot,
        rules: List[TitleRule],
        context: EvaluationContext,
    ) -> Optional[RuleMatch]:
        """
        Select at most one rule for a snapshot.

        Args:
            snapshot: Presence snapshot to match
            rules: Rule set, in declaration order
            context: Current evaluation context (filters may read it)

        Returns:
            The winning match, or None if no rule applies
        """
        candidates = sorted(
            (r for r in rules if r.enabled),
            key=lambda r: r.priority,
            reverse=True,
        )

        for rule in candidates:
            activity = self._find_activity(rule, snapshot)
            if activity is None:
                continue

            try:
                if not self._filter_passes(rule, activity, context):
                    continue
            except FilterEvaluationError as e:
                logger.warning(f"{e}, skipping rule '{rule.name}'")
                continue

            logger.debug(f"Rule '{rule.name}' matched activity '{activity.name}'")
            return RuleMatch(rule=rule, activity=activity)

        return None

    def _find_activity(self, rule: TitleRule, snapshot: PresenceSnapshot) -> Optional[Activity]:
        """First activity whose kind satisfies the rule's kind."""
        if rule.activity_kind is None:
            return None

        for activity in snapshot.activities:
            if activity.kind.is_assignable_to(rule.activity_kind):
                return activity
        return None

    def _filter_passes(
        self,
        rule: TitleRule,
        activity: Activity,
        context: EvaluationContext,
    ) -> bool:
        """
        Evaluate the rule's filter template.

        Raises:
            FilterEvaluationError: If the filter errors or isn't a boolean
        """
        if not rule.filter_template.strip():
            return True

        bindings = build_bindings(activity, context)
        try:
            output = self._evaluator.evaluate(rule.filter_template, bindings)
        except TemplateEvaluationError as e:
            raise FilterEvaluationError(rule.name, None, f"Filter failed: {e}") from e

        try:
            return parse_bool(output)
        except ValueError as e:
            raise FilterEvaluationError(rule.name, output, str(e)) from e

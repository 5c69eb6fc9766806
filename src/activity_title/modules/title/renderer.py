"""
Title rendering - turns a matched rule into a sink payload.
"""

import logging
from dataclasses import dataclass

from .errors import OutputTooLongError
from .evaluators import TemplateEvaluator, build_bindings
from .models import (
    MAX_TITLE_LENGTH,
    Activity,
    EvaluationContext,
    TitleData,
    TitleRule,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedTitle:
    """A rendered title ready for dispatch."""

    text: str
    payload: TitleData

    def serialize(self) -> str:
        return self.payload.serialize()


class TitleRenderer:
    """
    Renders a rule's title template and applies output constraints.

    Raises the errors from ``errors.py`` rather than logging them; the
    scheduler decides how each failure is surfaced.
    """

    def __init__(
        self,
        evaluator: TemplateEvaluator,
        max_title_length: int = MAX_TITLE_LENGTH,
    ) -> None:
        self._evaluator = evaluator
        self._max_title_length = max_title_length

    @property
    def max_title_length(self) -> int:
        return self._max_title_length

    def render(
        self,
        rule: TitleRule,
        activity: Activity,
        context: EvaluationContext,
        is_supporter: bool = False,
    ) -> RenderedTitle:
        """
        Render the title for a matched rule.

        Args:
            rule: The matched rule
            activity: The activity entry the rule matched
            context: Evaluation context for this render
            is_supporter: Whether gradient fields are granted

        Returns:
            Rendered text and payload

        Raises:
            TemplateEvaluationError: If the title template fails
            OutputTooLongError: If the text exceeds the maximum length
            ValueError: If the rule has no title data (it clears instead)
        """
        if rule.title_data is None:
            raise ValueError(f"Rule '{rule.name}' has no title data to render")

        text = self._evaluator.evaluate(rule.title_template, build_bindings(activity, context))

        if len(text) > self._max_title_length:
            raise OutputTooLongError(text, self._max_title_length)

        return RenderedTitle(text=text, payload=rule.title_data.to_title_data(text, is_supporter))

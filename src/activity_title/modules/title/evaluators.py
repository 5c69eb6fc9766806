"""
Template evaluation for title and filter templates.

Templates are user content, so they run in a Jinja2 sandbox. Each template
sees two variables: ``Activity`` (the matched activity) and ``Context``
(the running evaluation context).
"""

import logging
from functools import lru_cache
from typing import Any, Dict, List

from jinja2 import TemplateSyntaxError
from jinja2.sandbox import SandboxedEnvironment

from .errors import TemplateEvaluationError
from .models import Activity, EvaluationContext

logger = logging.getLogger(__name__)

_TRUE_STRINGS = frozenset({"true"})
_FALSE_STRINGS = frozenset({"false"})


def parse_bool(text: str) -> bool:
    """
    Parse template output as a boolean.

    Accepts ``true``/``false`` in any case, surrounded by whitespace.

    Raises:
        ValueError: If the text is not a boolean literal
    """
    value = text.strip().lower()
    if value in _TRUE_STRINGS:
        return True
    if value in _FALSE_STRINGS:
        return False
    raise ValueError(f"Unable to parse '{text}' as boolean")


def build_bindings(activity: Activity, context: EvaluationContext) -> Dict[str, Any]:
    """Build the variables a rule's templates are rendered with."""
    return {"Activity": activity, "Context": context}


class TemplateEvaluator:
    """
    Renders templates against named variables.

    Compiled templates are cached by source text, so editing a rule's
    template simply compiles the new text on next use.
    """

    def __init__(self, cache_size: int = 128) -> None:
        self._env = SandboxedEnvironment(autoescape=False)
        # Exact truncation; the default leeway lets titles overshoot
        self._env.policies["truncate.leeway"] = 0
        self._compile = lru_cache(maxsize=cache_size)(self._env.from_string)

    def evaluate(self, template: str, bindings: Dict[str, Any]) -> str:
        """
        Render a template.

        Args:
            template: Template source; blank renders ""
            bindings: Variables visible to the template

        Returns:
            Rendered text

        Raises:
            TemplateEvaluationError: On syntax or runtime errors
        """
        if not template.strip():
            return ""

        try:
            compiled = self._compile(template)
        except TemplateSyntaxError as e:
            raise TemplateEvaluationError(
                template, f"Syntax error on line {e.lineno}: {e.message}"
            ) from e

        try:
            return compiled.render(**bindings)
        except Exception as e:
            raise TemplateEvaluationError(template, f"Render error: {e}") from e

    def evaluate_bool(self, template: str, bindings: Dict[str, Any]) -> bool:
        """
        Render a template and parse its output as a boolean.

        Raises:
            TemplateEvaluationError: On syntax or runtime errors
            ValueError: If the output is not a boolean literal
        """
        return parse_bool(self.evaluate(template, bindings))

    def validate(self, template: str) -> List[str]:
        """
        Check a template for syntax errors without rendering it.

        Returns:
            Error messages (empty if the template parses)
        """
        try:
            self._env.parse(template)
        except TemplateSyntaxError as e:
            return [f"line {e.lineno}: {e.message}"]
        return []

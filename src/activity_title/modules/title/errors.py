"""
Errors raised while turning presence into titles.

None of these are fatal to the engine; each one degrades to
"no update this tick".
"""

from typing import Optional


class TitleError(Exception):
    """Base class for title module errors."""


class TemplateEvaluationError(TitleError):
    """A template failed to parse or render."""

    def __init__(self, template: str, message: str) -> None:
        super().__init__(message)
        self.template = template


class FilterEvaluationError(TitleError):
    """A filter template errored or did not produce a boolean."""

    def __init__(self, rule_name: str, output: Optional[str], message: str) -> None:
        super().__init__(message)
        self.rule_name = rule_name
        self.output = output


class OutputTooLongError(TitleError):
    """A rendered title exceeds the sink's maximum length."""

    def __init__(self, title: str, max_length: int) -> None:
        super().__init__(
            f"Title '{title}' is longer than {max_length} characters, it won't be applied. "
            "Trim whitespaces or truncate variables to reduce the length."
        )
        self.title = title
        self.max_length = max_length


class FeedMismatchError(TitleError):
    """A presence event came from an account other than the configured one."""

    def __init__(self, account_id: str, expected: str) -> None:
        super().__init__(
            f"Ignored presence for '{account_id}' since it doesn't match "
            f"configured account '{expected}'"
        )
        self.account_id = account_id
        self.expected = expected

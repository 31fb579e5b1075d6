"""Verification action tags and their default email templates.

The action tag doubles as the first path segment of a verification link
(``http://<host>/<action>?id=...&t=...``) and as part of the verification
table key, so it is a closed set validated at the API boundary.
"""

from dataclasses import dataclass
from enum import Enum

from feedback.core.errors import ValidationError


class ActionType(str, Enum):
    """Actions that can be confirmed through an emailed link."""

    VERIFY = "verify"
    RESET_PASSWORD = "reset-password"
    CONFIRM_EMAIL = "confirm-email"

    @classmethod
    def parse(cls, value: "str | ActionType") -> "ActionType":
        """Convert a raw action tag into an ActionType.

        Args:
            value: Action tag, e.g. ``"verify"``.

        Returns:
            Matching ActionType.

        Raises:
            ValidationError: If the tag is not a known action.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError as exc:
            allowed = ", ".join(a.value for a in cls)
            raise ValidationError(
                f"Unknown action type '{value}'",
                details=[{"field": "action_type", "allowed": allowed}],
            ) from exc


@dataclass(frozen=True)
class MessageTemplate:
    """Default subject and body for an action's email."""

    subject: str
    message: str


ACTION_TEMPLATES: dict[ActionType, MessageTemplate] = {
    ActionType.VERIFY: MessageTemplate(
        subject="Verify your Immediate Feedback account",
        message=(
            "Please verify your account by following the link below."
        ),
    ),
    ActionType.RESET_PASSWORD: MessageTemplate(
        subject="Reset your Immediate Feedback password",
        message=(
            "A password reset was requested for your account. "
            "Follow the link below to choose a new password.\n"
            "If you did not request this, you can ignore this message."
        ),
    ),
    ActionType.CONFIRM_EMAIL: MessageTemplate(
        subject="Confirm your email address",
        message="Please confirm your new email address by following the link below.",
    ),
}

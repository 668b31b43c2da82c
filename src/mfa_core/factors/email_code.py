"""Built-in factor: a numeric code sent by email."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..codes import mask_email
from ..exceptions import FactorError
from ..notifications import NotificationChannel, RenderedNotification
from .base import CodeFactorProvider

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..notifications import INotificationSender
    from ..rate_limit import RateLimiter
    from .base import PreparationContext

logger = logging.getLogger("mfa_core.factors.email_code")

EMAIL_CODE_FACTOR = "email_code"
CODE_PLACEHOLDER = "{{CODE}}"

DEFAULT_SUBJECTS: dict[str, str] = {
    "en": "Your verification code",
    "fr": "Votre code de vérification",
    "de": "Ihr Bestätigungscode",
}
DEFAULT_BODY_TEMPLATE = (
    "Your verification code is: {{CODE}}\n\n"
    "If you did not try to sign in, you can ignore this message."
)


class EmailCodeFactorProvider(CodeFactorProvider):
    """Sends the one-time code to the email address found in the user directory.

    Example:
        ```python
        provider = EmailCodeFactorProvider(
            rate_limiter,
            sender=SmtpSender(...),
            body_template="<p>Code: {{CODE}}</p>",
        )
        registry.register(provider)
        ```
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        sender: INotificationSender,
        *,
        subjects: Mapping[str, str] | None = None,
        body_template: str = DEFAULT_BODY_TEMPLATE,
        html_template: str | None = None,
        default_locale: str = "en",
    ) -> None:
        """Initialize the provider.

        Args:
            rate_limiter: Shared resend cooldown.
            sender: Notification sender used for delivery.
            subjects: Mail subject per language code.
            body_template: Plain text body; must contain ``{{CODE}}``.
            html_template: Optional HTML body; must contain ``{{CODE}}``.
            default_locale: Subject language used when the user's is unknown.

        Raises:
            ValueError: If a template lacks the code placeholder.
        """
        super().__init__(rate_limiter)
        for template in (body_template, html_template):
            if template is not None and CODE_PLACEHOLDER not in template:
                raise ValueError(f"Mail template must contain {CODE_PLACEHOLDER}")
        self._sender = sender
        self._subjects = dict(subjects or DEFAULT_SUBJECTS)
        self._body_template = body_template
        self._html_template = html_template
        self._default_locale = default_locale

    @property
    def factor_type(self) -> str:
        return EMAIL_CODE_FACTOR

    def subject_for(self, locale: str | None) -> str:
        """Pick the subject for ``locale``, falling back to its language, then the default."""
        if locale:
            normalized = locale.replace("-", "_")
            for key in (normalized, normalized.split("_")[0]):
                if key in self._subjects:
                    return self._subjects[key]
        return self._subjects.get(self._default_locale) or DEFAULT_SUBJECTS["en"]

    def render(self, code: str, locale: str | None) -> RenderedNotification:
        return RenderedNotification(
            subject=self.subject_for(locale),
            body_text=self._body_template.replace(CODE_PLACEHOLDER, code),
            body_html=(
                self._html_template.replace(CODE_PLACEHOLDER, code)
                if self._html_template
                else None
            ),
        )

    def validate(self, context: PreparationContext) -> None:
        if not context.user.email:
            raise FactorError(
                f"factor.{EMAIL_CODE_FACTOR}.email_not_configured_for_user",
                {"user": context.principal},
            )

    async def deliver(self, context: PreparationContext, code: str) -> dict[str, str]:
        email = context.user.email or ""
        record = await self._sender.send(
            email,
            self.render(code, context.locale),
            NotificationChannel.EMAIL,
            metadata={"principal": context.principal, "factor_type": EMAIL_CODE_FACTOR},
        )
        if not record.succeeded:
            logger.warning(
                "Unable to send verification code to %s: %s",
                context.principal,
                record.error,
            )
            raise FactorError(
                f"factor.{EMAIL_CODE_FACTOR}.sending_validation_code_failed",
                {"user": context.principal},
            )
        return {"maskedDeliveryAddress": mask_email(email)}


__all__: list[str] = [
    "EMAIL_CODE_FACTOR",
    "CODE_PLACEHOLDER",
    "DEFAULT_SUBJECTS",
    "DEFAULT_BODY_TEMPLATE",
    "EmailCodeFactorProvider",
]

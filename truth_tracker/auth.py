"""
Authorization policy for admin operations.

The admin API never hard-codes who may trigger a sync or review incidents;
it asks the policy stored on app.state. The default policy allows the
addresses listed in ADMIN_EMAILS.
"""

import logging
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


class AuthorizationPolicy:
    """Email allow-list. Comparison is case-insensitive; empty list denies everyone."""

    def __init__(self, admin_emails: Iterable[str] = ()):
        self.admin_emails = frozenset(e.strip().lower() for e in admin_emails if e and e.strip())
        if not self.admin_emails:
            logger.warning("No ADMIN_EMAILS configured: admin routes will reject every request")

    @classmethod
    def from_settings(cls, settings) -> "AuthorizationPolicy":
        return cls(settings.admin_email_list())

    def is_authorized(self, principal: Optional[str]) -> bool:
        if not principal:
            return False
        return principal.strip().lower() in self.admin_emails

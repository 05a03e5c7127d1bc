"""Test data factories using polyfactory.

Usage:
    from tests.factories import TenantFactory, UserFactory

    tenant = TenantFactory.build()
    invitation, token = InvitationFactory.build_with_token(tenant_id=tenant.id, ...)
"""

from tests.factories.invitation import InvitationFactory
from tests.factories.tenant import TenantFactory
from tests.factories.user import (
    DEFAULT_TEST_PASSWORD,
    STRONG_PASSWORD,
    MembershipFactory,
    UserFactory,
)

__all__ = [
    "DEFAULT_TEST_PASSWORD",
    "InvitationFactory",
    "MembershipFactory",
    "STRONG_PASSWORD",
    "TenantFactory",
    "UserFactory",
]

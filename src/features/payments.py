"""Payments feature: exam fees, manual payment slips and approvals."""

from enum import Enum

from rbac.features import FeatureDefinition
from rbac.roles import Role


class PaymentPermission(str, Enum):
    SUBMIT = "payment:submit"
    VIEW_OWN = "payment:view"


class PaymentApprovalPermission(str, Enum):
    VIEW_PENDING = "payment:pending:view"
    APPROVE = "payment:approve"
    REJECT = "payment:reject"
    VIEW_HISTORY = "payment:history:view"


class PaymentFlag(str, Enum):
    MANUAL_PAYMENTS = "manual_payments"
    ONLINE_PAYMENTS = "online_payments"


PAYMENTS_FEATURE = FeatureDefinition.build(
    id="payments",
    name="Payments",
    description="Pay for exams and track payment status",
    permissions=PaymentPermission,
    required_roles=[Role.USER],
    flags=PaymentFlag,
    flag_defaults={
        PaymentFlag.MANUAL_PAYMENTS.value: {
            "name": "Manual payments",
            "description": "Upload a bank slip for manual verification",
        },
        PaymentFlag.ONLINE_PAYMENTS.value: {
            "name": "Online payments",
            "description": "Card payments through the payment gateway",
            "default_enabled": False,
        },
    },
)

PAYMENT_APPROVALS_FEATURE = FeatureDefinition.build(
    id="payment_approvals",
    name="Payment approvals",
    description="Review and approve manual payments",
    permissions=PaymentApprovalPermission,
    required_roles=[Role.PROPRIETOR],
)

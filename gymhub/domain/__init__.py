from .errors import DomainError, InvalidFormError, UnknownPackageError
from .lifecycle import (
    PaymentCategory,
    SubscriptionPlan,
    classify_payment,
    create_subscription,
    days_remaining,
    renew_subscription,
    sweep_expirations,
)
from .packages import PACKAGES, Package, find_package

__all__ = [
    "DomainError",
    "InvalidFormError",
    "PACKAGES",
    "Package",
    "PaymentCategory",
    "SubscriptionPlan",
    "UnknownPackageError",
    "classify_payment",
    "create_subscription",
    "days_remaining",
    "find_package",
    "renew_subscription",
    "sweep_expirations",
]

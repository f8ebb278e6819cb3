from __future__ import annotations

from typing import Sequence


class DomainError(ValueError):
    """Business rule violation; the operation must be rejected before any write."""


class UnknownPackageError(DomainError):
    def __init__(self, package_name: str, choices: Sequence[str] = ()) -> None:
        message = f"Unknown membership package: {package_name!r}"
        if choices:
            message += f" (expected one of {', '.join(choices)})"
        super().__init__(message)
        self.package_name = package_name
        self.choices = list(choices)


class InvalidFormError(DomainError):
    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors

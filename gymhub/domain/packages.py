from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class Package(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    months: int
    price: Decimal


# Fixed catalog offered on the public site and in the admin forms
PACKAGES: tuple[Package, ...] = (
    Package(name="Silver", months=1, price=Decimal("2000")),
    Package(name="Gold", months=3, price=Decimal("5000")),
    Package(name="Diamond", months=12, price=Decimal("20000")),
)

_BY_NAME = {package.name: package for package in PACKAGES}


def find_package(name: str) -> Package | None:
    return _BY_NAME.get(name)


def package_names() -> list[str]:
    return [package.name for package in PACKAGES]

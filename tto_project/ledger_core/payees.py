from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .exceptions import InvalidPayee


@dataclass(frozen=True)
class UserPayee:
    """An application user (academician, staff) receiving payments."""

    id: int

    @property
    def kind(self) -> str:
        return "user"

    def lookup(self) -> dict:
        return {"user_id": self.id, "personnel_id": None}


@dataclass(frozen=True)
class PersonnelPayee:
    """A personnel record without a login."""

    id: int

    @property
    def kind(self) -> str:
        return "personnel"

    def lookup(self) -> dict:
        return {"user_id": None, "personnel_id": self.id}


Payee = Union[UserPayee, PersonnelPayee]


def payee_from_ids(user_id=None, personnel_id=None) -> Payee:
    # user XOR personnel
    if (user_id is None) == (personnel_id is None):
        raise InvalidPayee(user_id=user_id, personnel_id=personnel_id)
    if user_id is not None:
        return UserPayee(user_id)
    return PersonnelPayee(personnel_id)


def payee_of(instance) -> Payee:
    """Read the payee off any row carrying user_id / personnel_id."""
    return payee_from_ids(
        user_id=getattr(instance, "user_id", None),
        personnel_id=getattr(instance, "personnel_id", None),
    )

"""Caller identity as handed to the core by the authentication layer."""

from dataclasses import dataclass

from .exceptions import NotAuthorizedError


@dataclass(frozen=True)
class Caller:
    user_id: str
    is_admin: bool = False


def require_admin(caller: Caller) -> None:
    if not caller.is_admin:
        raise NotAuthorizedError("Not authorized as admin.")

"""User directory port: resolves user ids to contact details."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class UserContact:
    user_id: str
    name: str
    email: str


class UserDirectoryPort(ABC):
    @abstractmethod
    def find_by_id(self, user_id: str) -> UserContact | None:
        """Return the user's contact details, or None if unknown."""
        ...

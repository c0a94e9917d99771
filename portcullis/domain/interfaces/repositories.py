"""Repository interfaces for abstracting credential lookup in the domain layer.

The authentication guard only needs to find a stored password hash by email.
The host application adapts its own user store to ``ICredentialsRepository``;
this package ships an in-memory implementation for tests and the reference
application.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class UserCredentials:
    """The minimal view of a user needed to verify a password."""

    id: str
    email: str
    hashed_password: Optional[str]


class ICredentialsRepository(ABC):
    """An interface defining the contract for credential lookup."""

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[UserCredentials]:
        """Retrieves credentials by email address (case-insensitively).

        Args:
            email: The email address to search for.

        Returns:
            An optional `UserCredentials`. Returns `None` if no user is found.
        """
        raise NotImplementedError

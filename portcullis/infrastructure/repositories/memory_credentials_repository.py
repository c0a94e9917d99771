"""In-memory credentials store for tests and the reference application."""

from typing import Dict, Iterable, Optional

from portcullis.domain.interfaces.repositories import ICredentialsRepository, UserCredentials


class InMemoryCredentialsRepository(ICredentialsRepository):
    def __init__(self, users: Iterable[UserCredentials] = ()):
        self._by_email: Dict[str, UserCredentials] = {}
        for user in users:
            self.add(user)

    def add(self, user: UserCredentials) -> None:
        self._by_email[user.email.strip().lower()] = user

    async def get_by_email(self, email: str) -> Optional[UserCredentials]:
        return self._by_email.get(email.strip().lower())

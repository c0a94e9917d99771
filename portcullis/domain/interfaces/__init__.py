from .repositories import ICredentialsRepository, UserCredentials

__all__ = ["ICredentialsRepository", "UserCredentials"]

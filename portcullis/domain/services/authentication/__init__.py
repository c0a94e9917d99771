from .auth_guard import AuthGuard, AuthOutcome, AuthStatus

__all__ = ["AuthGuard", "AuthOutcome", "AuthStatus"]

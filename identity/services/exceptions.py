"""Exceptions raised by the identity services."""


class IdentityError(RuntimeError):
    """Base class for all identity service failures."""


class Unavailable(IdentityError):
    """The credential store could not be reached."""


class Conflict(IdentityError):
    """An account with the requested e-mail address already exists."""


class NoSuchUser(IdentityError):
    """User does not exist."""


class AuthenticationFailed(IdentityError):
    """Failed to authenticate user with provided credentials."""


class AccountDisabled(AuthenticationFailed):
    """The account exists but is not active."""


class InvalidCredentials(IdentityError):
    """The current password supplied for a password change is wrong."""


class InvalidOrExpiredCode(IdentityError):
    """
    No unused, unexpired one-time code matched.

    Does not say whether the code was wrong, expired or already used.
    """


class AlreadyVerified(IdentityError):
    """The user's e-mail address is already verified."""


class NotificationFailed(IdentityError):
    """An outbound message could not be delivered."""


class TokenError(IdentityError):
    """Base class for refresh and access token failures."""


class InvalidToken(TokenError):
    """Token is malformed, has a bad signature, or is the wrong type."""


class TokenNotFound(TokenError):
    """No such refresh token in the credential store."""


class TokenRevoked(TokenError):
    """Refresh token has been revoked."""


class TokenExpired(TokenError):
    """Token has expired."""

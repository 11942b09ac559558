"""Exceptions for the referral activation service."""


class ReferralServiceError(Exception):
    """Base error for the referral activation pipeline."""

    def __init__(self, message: str, operation: str | None = None):
        self.message = message
        self.operation = operation  # Store/grant call that failed, for logs
        super().__init__(message)


class StorageError(ReferralServiceError):
    """Reading or writing the referral store failed.

    Raised before any state mutation when it happens during guard
    evaluation. Safe to retry: the pending lookup re-derives where to start.
    """


class GrantError(ReferralServiceError):
    """The reward subsystem failed to grant a benefit.

    The surrounding transition is rolled back, so the referral stays pending
    and a retry can win the transition and grant again.
    """

    def __init__(self, message: str, account_id: object = None, operation: str | None = None):
        self.account_id = account_id
        super().__init__(message, operation=operation)

class JaipurHelpError(Exception):
    """Base exception for the JaipurHelp backend."""

    pass


class PlanNotFoundError(JaipurHelpError):
    """Raised when a tier or plan id is not in the plan catalog."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Subscription plan not found: {key}")


class WorkerNotFoundError(JaipurHelpError):
    """Raised when the worker directory has no record for an id."""

    def __init__(self, worker_id: str):
        self.worker_id = worker_id
        super().__init__(f"Worker not found: {worker_id}")


class WorkerNotPublicError(JaipurHelpError):
    """Raised when a worker exists but is not approved or has been deactivated."""

    def __init__(self, worker_id: str, status: str | None, is_active: bool):
        self.worker_id = worker_id
        self.status = status
        self.is_active = is_active
        super().__init__(f"Worker {worker_id} is not publicly visible (status={status}, active={is_active})")


class NoActiveSubscriptionError(JaipurHelpError):
    """Raised when a user has no active subscription and none can be provisioned."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"No active subscription for user {user_id}")


class ConcurrencyConflictError(JaipurHelpError):
    """Raised when an atomic counter update finds the row changed since it was read.

    Transient. Safe to retry after re-reading state.
    """

    def __init__(self, subscription_id: str):
        self.subscription_id = subscription_id
        super().__init__(f"Concurrent update conflict on subscription {subscription_id}")


class StorageFailureError(JaipurHelpError):
    """Raised when the database or its driver fails underneath a contact reveal.

    The underlying error is chained as ``__cause__``.
    """

    pass

class SplitError(Exception):
    """Base class for allocation and settlement failures.

    The message is a short error code that the HTTP layer returns as-is.
    """


class InvalidInputError(SplitError, ValueError):
    pass


class AlreadyPaidError(SplitError):
    def __init__(self, message: str = "already_paid") -> None:
        super().__init__(message)


class PaymentMismatchError(SplitError):
    pass

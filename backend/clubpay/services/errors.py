class CompensationError(Exception):
    """Base exception for compensation engine errors"""
    pass


class DataSourceError(CompensationError):
    """A store or upstream service could not answer. Fatal for the request."""
    pass


class SchemeConfigurationError(CompensationError):
    """No usable compensation scheme where one is required."""
    pass


class RecordNotFoundError(CompensationError):
    pass


class PayoutError(CompensationError):
    pass


class StalePayoutError(PayoutError):
    """A shift changed after its salary was computed."""
    pass

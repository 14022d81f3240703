class RateProviderException(Exception):
    pass


class ProviderError(RateProviderException):
    """A rate source failed to deliver rates (network, parsing, auth...)"""

    def __init__(self, exchange_name: str, message: str):
        self.exchange_name = exchange_name
        super().__init__(f"{exchange_name}: {message}")


class ConfigurationError(RateProviderException):
    pass


class InvalidCacheSpanError(RateProviderException):
    pass


class CacheError(RateProviderException):
    pass

class ProviderException(Exception):
    def __init__(self, message: str, provider: str | None = None):
        self.message = message
        self.provider = provider
        super().__init__(self.message)


class TransientProviderError(ProviderException):
    """Network failure, timeout, 5xx or 429. Worth retrying."""


class PermanentProviderError(ProviderException):
    """4xx response or a provider that cannot serve the request."""

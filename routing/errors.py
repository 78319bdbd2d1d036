class ProviderError(Exception):
    """
    A routing provider could not produce a route (unconfigured, timeout,
    quota, unreachable, or a malformed response).
    """

    def __init__(self, message: str, provider: str = "unknown"):
        super().__init__(message)
        self.provider = provider

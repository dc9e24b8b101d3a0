class LookupFailed(LookupError):
    """A single allowance lookup could not produce a response."""

    def __init__(self, key, reason: str):
        super().__init__(f"lookup failed for {key.group}/{key.category}: {reason}")
        self.key = key
        self.reason = reason

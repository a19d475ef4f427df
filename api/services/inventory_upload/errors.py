class PhaseError(Exception):
    """A pipeline phase failed for infrastructure reasons; the request aborts."""

    def __init__(self, phase: str, message: str):
        super().__init__(message)
        self.phase = phase
        self.message = message

class SignLiveError(Exception):
    pass


class InitializationError(SignLiveError):
    """The landmark extractor or the sequence classifier failed to load."""


class TransientDetectionError(SignLiveError):
    """A single frame could not be processed. The frame is dropped."""

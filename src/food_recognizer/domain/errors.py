"""Error taxonomy for recognition collaborators and the orchestrator."""


class RecognitionAdapterError(Exception):
    """Base class for failures raised by an inference or lookup adapter."""


class ModelUnavailableError(RecognitionAdapterError):
    """The on-device model could not be loaded."""


class ClassificationFailedError(RecognitionAdapterError):
    """The on-device model ran but failed to classify the image."""


class InvalidImageError(RecognitionAdapterError):
    """The image was rejected before or by the remote service."""


class NetworkError(RecognitionAdapterError):
    """The remote service could not be reached or returned an error status."""


class ParseError(RecognitionAdapterError):
    """The remote service returned a payload that could not be understood."""


class RecognitionError(Exception):
    """Base class for errors surfaced by the recognition orchestrator."""


class NoUsablePathError(RecognitionError):
    """Neither the local nor the remote inference path produced predictions."""

    def __init__(
        self,
        local_error: BaseException | None,
        remote_error: BaseException | None,
    ) -> None:
        self.local_error = local_error
        self.remote_error = remote_error
        super().__init__(
            "No usable recognition path "
            f"(local: {_describe(local_error)}, remote: {_describe(remote_error)})"
        )


def _describe(error: BaseException | None) -> str:
    if error is None:
        return "not attempted"
    return f"{type(error).__name__}: {error}" if str(error) else type(error).__name__

class ProcessorError(Exception):
    """Base exception for all processor-related errors.

    ``retryable`` tells the job runner whether running the same job again
    can succeed without a change to the input or the prompt.
    """

    retryable: bool = False


class StorageError(ProcessorError):
    """Raised when a file is missing from storage or a key is invalid."""


class NoTextExtractedError(ProcessorError):
    """Raised when extraction produced no usable text for the prompt."""


def is_retryable(exc: BaseException) -> bool:
    """Whether a job that failed with this exception may be run again.

    Domain errors declare it through their ``retryable`` attribute. Anything
    else (database hiccups, unexpected bugs) is retried until the attempt
    limit is reached.
    """
    return bool(getattr(exc, "retryable", True))

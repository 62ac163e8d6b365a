class EvaluatorError(Exception):
    """Base class for every error raised by the evaluation pipeline."""


class NotFoundError(EvaluatorError):
    """A referenced job, document or piece of reference material is missing."""


class ExtractionFailedError(EvaluatorError):
    """Text could not be obtained from a stored document."""


class RetrievalError(EvaluatorError):
    """The vector store or embedding backend failed while retrieving context."""


class GatewayExhaustedError(EvaluatorError):
    def __init__(self, attempts: int, last_error: Exception | str):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"all {attempts} LLM attempts failed: {last_error}")


class GatewayResponseError(EvaluatorError):
    """The model endpoint answered successfully but the body was unusable."""


class ParseFailedError(EvaluatorError):
    def __init__(self, message: str, raw_text: str):
        self.raw_text = raw_text
        super().__init__(f"{message}: {raw_text}")


class PersistenceError(EvaluatorError):
    """The job store could not be read or written."""


class InvalidTransitionError(EvaluatorError):
    def __init__(self, job_id: str, current: str, target: str):
        self.job_id = job_id
        self.current = current
        self.target = target
        super().__init__(
            f"job {job_id} cannot move from {current} to {target}")


class WorkerPoolStoppedError(EvaluatorError):
    """A job was submitted after the worker pool was stopped."""

"""
Label Print Service Errors
==========================

Validation errors are raised before a job is admitted and are never retried.
Delivery failures are not exceptions: they come back from the bridge as
``{'success': False, 'error': ...}`` results and are retried by the queue.
"""

from typing import Iterable


class PrintServiceError(Exception):
    """Base class for all print service errors."""


class ValidationError(PrintServiceError):
    """Input rejected before it reaches the queue."""


class TemplateNotFoundError(ValidationError):
    def __init__(self, key: str):
        super().__init__(f'Label template not found: {key}')
        self.key = key


class EmptyTemplateError(ValidationError):
    def __init__(self, name: str):
        super().__init__(f'Label template has an empty body: {name}')
        self.name = name


class MissingFieldsError(ValidationError):
    def __init__(self, fields: Iterable[str]):
        self.fields = list(fields)
        super().__init__(f"Missing required field(s): {', '.join(self.fields)}")


class DeviceCodeError(ValidationError):
    """Device program is empty, unframed or truncated."""


class DuplicateJobError(ValidationError):
    def __init__(self, job_id: str):
        super().__init__(f'Job {job_id} is already queued')
        self.job_id = job_id


class BridgeError(PrintServiceError):
    """Bridge transport problem surfaced to the caller."""


class BridgeUnavailableError(BridgeError):
    def __init__(self, detail: str = ''):
        message = 'Print bridge is not reachable'
        if detail:
            message = f'{message}: {detail}'
        super().__init__(message)


class BatchAlreadyRunningError(PrintServiceError):
    def __init__(self):
        super().__init__('A batch print is already running')


class DeadLetterNotFoundError(PrintServiceError):
    def __init__(self, entry_id: str):
        super().__init__(f'Dead-letter entry not found: {entry_id}')
        self.entry_id = entry_id

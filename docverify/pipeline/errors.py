"""
Pipeline error taxonomy.

PipelineError   fatal: aborts the request, one FAILED outcome is published
ProcessingError isolated: fails one applicant's document, the request goes on
"""


class PipelineError(Exception):
    """Fatal pipeline error."""
    def __init__(self, message: str, error_code: str = "ERR_PIPELINE"):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class ProcessingError(Exception):
    """A single document could not be processed."""
    def __init__(self, message: str, error_code: str = "ERR_PROCESSING"):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class OcrProcessingError(ProcessingError):
    def __init__(self, message: str):
        super().__init__(message, "ERR_OCR")

from typing import Optional


class AppError(Exception):
    """
    Base class for errors that are reported to the client as {"message": ...}

    Subclasses set status_code to the HTTP status the API responds with.
    """
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Bad or missing request fields"""
    status_code = 400


class InvalidInputError(ValidationError):
    """Empty resume text or job description handed to the analyzer"""


class UnsupportedFormatError(AppError):
    status_code = 400

    def __init__(self, extension: str):
        super().__init__(
            f"Unsupported file type: {extension or '(none)'}. "
            "Only PDF, DOC, and DOCX files are allowed."
        )
        self.extension = extension


class ExtractionError(AppError):
    """The uploaded document could not be read"""
    status_code = 500


class ConfigurationError(AppError):
    """A required setting (the OpenAI API key) is missing"""
    status_code = 500


class UpstreamError(AppError):
    """The OpenAI request failed at the transport or HTTP level"""
    status_code = 500

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class AnalysisParseError(AppError):
    """The model answered with something that is not a valid analysis"""
    status_code = 500


class RenderError(AppError):
    """The PDF report could not be built"""
    status_code = 500

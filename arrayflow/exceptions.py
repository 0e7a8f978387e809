"""
Exception hierarchy for ArrayFlow
"""


class ArrayFlowError(Exception):
    """Base class for all ArrayFlow errors"""


class DataShapeError(ArrayFlowError):
    """Input table or metadata does not have the expected shape"""

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field


class RIntegrationError(ArrayFlowError):
    """R is missing or an R script exited with an error"""

    def __init__(self, message: str, stderr: str = None):
        super().__init__(message)
        self.stderr = stderr


class ServiceError(ArrayFlowError):
    """A remote web service could not be reached or returned garbage"""


class EnrichmentServiceError(ServiceError):
    """g:Profiler query failed"""


class RevigoServiceError(ServiceError):
    """REVIGO submission or download failed"""

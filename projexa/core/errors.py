"""
Service-level exceptions. Routes translate these into HTTP errors.
"""


class PDFExtractionError(Exception):
    """Raised when a PDF cannot be read."""


class SimilarityCheckError(Exception):
    """Raised when the similarity model call fails."""


class ReferenceDocumentsMissing(Exception):
    """Raised when there is nothing to compare a submission against."""

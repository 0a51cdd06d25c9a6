"""
Error taxonomy for the PCA core.

All errors derive from ValueError so callers that already guard the
pipeline with `except ValueError` keep working.
"""


class ProteoPCAError(ValueError):
    """Base class for every error raised by the PCA core."""


class InvalidInputError(ProteoPCAError):
    """Matrix or annotation table is malformed (shape, dtype, NaN/inf, missing columns)."""


class DegenerateInputError(ProteoPCAError):
    """Zero-variance feature under scaling, or no variance at all to decompose."""


class InsufficientSamplesError(ProteoPCAError):
    """Fewer than two samples: PCA is undefined."""


class AxisOutOfRangeError(ProteoPCAError):
    """Requested component index is not in 1..n_components."""


class AnnotationCountMismatchError(ProteoPCAError):
    """Annotation row count differs from the sample count."""


class SampleIdentityMismatchError(ProteoPCAError):
    """Identifier join: annotation sample keys do not match the matrix samples."""

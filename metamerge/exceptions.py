# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Exception classes for metamerge

This module defines the exceptions raised while reading and merging
image metadata containers.

Copyright 2025 DNAi inc.
"""


class MetaMergeError(Exception):
    """
    Base exception for all metamerge errors.
    
    All metamerge exceptions inherit from this class, allowing
    catch-all error handling around a merge call.
    """
    def __init__(self, message: str = ""):
        """
        Initialize the exception with an optional error message.
        
        Args:
            message: Descriptive error message explaining what went wrong
        """
        self.message = message
        super().__init__(message)


class FormatMismatchError(MetaMergeError):
    """
    Raised when a buffer does not start with the magic bytes of the
    container type it is claimed to be.
    
    This exception is raised when:
    - A JPEG input is missing the SOI marker (FF D8)
    - A PNG input is missing the 8-byte PNG signature
    """
    pass


class TruncatedDataError(MetaMergeError):
    """
    Raised when a declared length or offset runs past the end of a buffer.
    
    Parsers catch this internally and keep whatever they decoded
    before the truncation point.
    """
    pass


class MetadataWriteError(MetaMergeError):
    """
    Raised when a merged container cannot be assembled.
    
    This exception is raised when the rendered PNG does not start
    with an IHDR chunk.
    """
    pass


class FeatureDisabledError(MetaMergeError):
    """
    Raised when an export path is requested that the active
    configuration has turned off (for example AVIF export).
    """
    pass

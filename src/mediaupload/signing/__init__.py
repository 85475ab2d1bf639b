"""
Request signing for direct-to-storage uploads.

Exports the Signature V4 presigner and its value types.
"""

from .sigv4 import (
    EndpointParts,
    PresignedUrlSigner,
    SignedURL,
    SigningCredentials,
)

__all__ = [
    "EndpointParts",
    "PresignedUrlSigner",
    "SignedURL",
    "SigningCredentials",
]

"""Envelope module: authenticated encryption of payloads in transit."""

from toolgate.kernel.envelope.secure_envelope import (
    AuthenticationFailedError,
    DecryptionFailedError,
    EnvelopeError,
    InvalidInputError,
    InvalidKeyError,
    SecuredPayload,
    secure,
    validate_and_open,
)

__all__ = [
    "secure",
    "validate_and_open",
    "SecuredPayload",
    "EnvelopeError",
    "InvalidInputError",
    "InvalidKeyError",
    "AuthenticationFailedError",
    "DecryptionFailedError",
]

"""Authenticated encryption envelope for shipping payloads over untrusted channels.

Provides:
- AES-256-GCM for content encryption, fresh 12-byte nonce per message
- HMAC-SHA256 over nonce || ciphertext for authentication

Opening always verifies the HMAC before attempting decryption.

Wire format is a JSON object ``{"n": nonce, "c": ciphertext, "s": signature}``
with each value base64-encoded.
"""

import base64
import binascii
import hashlib
import hmac
import json
import os
from dataclasses import dataclass
from typing import Any, TypeVar

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import TypeAdapter, ValidationError

AES_KEY_SIZE = 32
NONCE_SIZE = 12

T = TypeVar("T")

_any_adapter = TypeAdapter(Any)


class EnvelopeError(Exception):
    """Base class for envelope failures."""


class InvalidInputError(EnvelopeError):
    """Secured data is empty, not JSON, or structurally incomplete."""


class InvalidKeyError(EnvelopeError):
    """Encryption key is not 32 bytes or signing key is empty."""


class AuthenticationFailedError(EnvelopeError):
    """HMAC signature does not match nonce and ciphertext."""


class DecryptionFailedError(EnvelopeError):
    """AES-GCM decryption failed: tampered data or wrong key."""


@dataclass(frozen=True)
class SecuredPayload:
    nonce: bytes
    ciphertext: bytes
    signature: bytes

    def to_json(self) -> bytes:
        return json.dumps(
            {
                "n": base64.b64encode(self.nonce).decode("ascii"),
                "c": base64.b64encode(self.ciphertext).decode("ascii"),
                "s": base64.b64encode(self.signature).decode("ascii"),
            }
        ).encode("utf-8")

    @classmethod
    def from_json(cls, data: bytes | str) -> "SecuredPayload":
        """Parse and structurally validate a secured payload.

        Raises:
            InvalidInputError: If the payload is malformed or incomplete
        """
        try:
            raw = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidInputError(f"failed to unmarshal secured payload: {e}") from e
        if not isinstance(raw, dict):
            raise InvalidInputError("secured payload must be a JSON object")

        fields: dict[str, bytes] = {}
        for key in ("n", "c", "s"):
            value = raw.get(key)
            if value is None:
                raise InvalidInputError("incomplete secured payload structure")
            if not isinstance(value, str):
                raise InvalidInputError(f"field '{key}' must be a base64 string")
            try:
                fields[key] = base64.b64decode(value, validate=True)
            except (binascii.Error, ValueError) as e:
                raise InvalidInputError(f"field '{key}' is not valid base64") from e

        if len(fields["n"]) != NONCE_SIZE:
            raise InvalidInputError("incomplete secured payload structure")
        return cls(nonce=fields["n"], ciphertext=fields["c"], signature=fields["s"])


def _check_keys(encryption_key: bytes, signing_key: bytes) -> None:
    if len(encryption_key) != AES_KEY_SIZE:
        raise InvalidKeyError(f"expected {AES_KEY_SIZE} bytes for AES key")
    if not signing_key:
        raise InvalidKeyError("HMAC key cannot be empty")


def _sign(data: bytes, key: bytes) -> bytes:
    return hmac.new(key, data, hashlib.sha256).digest()


def secure(data: Any, encryption_key: bytes, signing_key: bytes) -> bytes:
    """Serialize, encrypt and sign ``data``.

    Args:
        data: JSON-serializable value or pydantic model
        encryption_key: 32-byte AES-256 key
        signing_key: Non-empty HMAC key

    Returns:
        JSON-encoded secured payload

    Raises:
        InvalidKeyError: On a bad key size, before any crypto runs
        EnvelopeError: If ``data`` cannot be serialized
    """
    _check_keys(encryption_key, signing_key)

    try:
        plaintext = _any_adapter.dump_json(data, by_alias=True)
    except ValueError as e:
        raise EnvelopeError(f"failed to marshal input data: {e}") from e

    nonce = os.urandom(NONCE_SIZE)
    ciphertext = AESGCM(encryption_key).encrypt(nonce, plaintext, None)
    signature = _sign(nonce + ciphertext, signing_key)
    return SecuredPayload(nonce=nonce, ciphertext=ciphertext, signature=signature).to_json()


def validate_and_open(
    secured_data: bytes | str,
    encryption_key: bytes,
    signing_key: bytes,
    target: type[T] | None = None,
) -> T | Any:
    """Verify, decrypt and decode a secured payload.

    Args:
        secured_data: Output of :func:`secure`
        encryption_key: 32-byte AES-256 key
        signing_key: HMAC key used when sealing
        target: Type to validate the decoded value into; raw JSON value if omitted

    Returns:
        The original payload

    Raises:
        InvalidInputError: Empty, malformed or incomplete payload
        InvalidKeyError: Bad key size
        AuthenticationFailedError: HMAC mismatch; decryption is not attempted
        DecryptionFailedError: AES-GCM authentication failed
        EnvelopeError: Plaintext does not decode into ``target``
    """
    if not secured_data:
        raise InvalidInputError("secured data cannot be empty")
    _check_keys(encryption_key, signing_key)

    payload = SecuredPayload.from_json(secured_data)

    expected = _sign(payload.nonce + payload.ciphertext, signing_key)
    if not hmac.compare_digest(expected, payload.signature):
        raise AuthenticationFailedError("message authentication failed")

    try:
        plaintext = AESGCM(encryption_key).decrypt(payload.nonce, payload.ciphertext, None)
    except InvalidTag as e:
        raise DecryptionFailedError("message decryption failed") from e

    try:
        value = json.loads(plaintext)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise EnvelopeError(f"failed to unmarshal decrypted data: {e}") from e
    if target is None:
        return value
    try:
        return TypeAdapter(target).validate_python(value)
    except ValidationError as e:
        raise EnvelopeError(f"failed to unmarshal decrypted data into target: {e}") from e

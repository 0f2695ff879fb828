"""Submission signing.

A device signs every submission with HMAC-SHA256 over the canonical string::

    {project_id}:{device_id}:{timestamp}:{category}:{key}:{value}

Field order and separators are protocol.  ``value`` is the flat string the
device put on the wire; it is never re-encoded (no JSON quoting).
"""

from __future__ import annotations

import re

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac

from pydevlog._constants import SIGN_SEPARATOR

_HEX_DIGEST = re.compile(r"[0-9a-fA-F]{64}")


def build_sign_string(
    project_id: int | str,
    device_id: str,
    timestamp: int,
    category: str,
    key: str,
    value: str,
) -> str:
    """Build the canonical signing string.

    Parameters
    ----------
    project_id : int or str
        Project identifier as sent by the device.
    device_id : str
        Device identifier.
    timestamp : int
        Submission timestamp, epoch milliseconds.
    category : str
        ``record``, ``warning`` or ``error``.
    key : str
        Observation key.
    value : str
        Flat on-wire value.

    Returns
    -------
    str
        The colon-joined canonical string.
    """
    fields = (str(project_id), device_id, str(int(timestamp)), str(category), key, value)
    return SIGN_SEPARATOR.join(fields)


def _hmac_sha256(secret: str) -> hmac.HMAC:
    return hmac.HMAC(secret.encode("utf-8"), hashes.SHA256())


def compute_signature(secret: str, sign_string: str) -> str:
    """HMAC-SHA256 of *sign_string* keyed with *secret*, as lowercase hex."""
    mac = _hmac_sha256(secret)
    mac.update(sign_string.encode("utf-8"))
    return mac.finalize().hex()


def signature_matches(secret: str, sign_string: str, signature: str) -> bool:
    """Constant-time check of a hex *signature*, ignoring hex letter case.

    Anything but exactly 64 hex digits does not match.
    """
    if _HEX_DIGEST.fullmatch(signature) is None:
        return False
    mac = _hmac_sha256(secret)
    mac.update(sign_string.encode("utf-8"))
    try:
        mac.verify(bytes.fromhex(signature))
    except InvalidSignature:
        return False
    return True

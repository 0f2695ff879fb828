"""Cryptographic primitives for submission authentication."""

from __future__ import annotations

from pydevlog._crypto.signing import build_sign_string, compute_signature, signature_matches

__all__ = [
    "build_sign_string",
    "compute_signature",
    "signature_matches",
]

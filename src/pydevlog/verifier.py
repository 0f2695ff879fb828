"""Submission signature verification.

Freshness is bounded by a time window only; there is no nonce tracking, so a
captured valid submission can be replayed verbatim until the window closes.
That keeps the verifier stateless between calls.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from pydevlog._constants import MAX_TIMESTAMP_SKEW_MS
from pydevlog._crypto.signing import build_sign_string, compute_signature, signature_matches
from pydevlog._redact import submission_log_fields
from pydevlog.backends.protocols import SecretLookup
from pydevlog.exceptions import ProjectNotFoundError, SignatureError, TimestampError
from pydevlog.models import Event, SigningPrincipal

_logger = logging.getLogger(__name__)


def _now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


def _event_sign_string(event: Event, timestamp: int) -> str:
    return build_sign_string(
        event.project_id,
        event.device_id,
        timestamp,
        event.category,
        event.key,
        event.value,
    )


def sign_event(secret: str, event: Event, timestamp: int) -> str:
    """Signature a device would send for *event* at *timestamp*."""
    return compute_signature(secret, _event_sign_string(event, timestamp))


class SignatureVerifier:
    """Check authenticity and freshness of a submitted event.

    Parameters
    ----------
    secrets : SecretLookup
        Resolves a project id to its shared signing secret.
    max_skew_ms : int
        Largest accepted ``|now - timestamp|``; the boundary is accepted.
    clock : callable
        Returns the server clock in epoch milliseconds.
    """

    def __init__(
        self,
        secrets: SecretLookup,
        *,
        max_skew_ms: int = MAX_TIMESTAMP_SKEW_MS,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._secrets = secrets
        self._max_skew_ms = max_skew_ms
        self._clock = clock

    async def verify(self, event: Event, timestamp: int, signature: str) -> SigningPrincipal:
        """Return the signing principal or raise a ``SubmissionRejectedError``.

        Raises
        ------
        TimestampError
            ``timestamp`` is more than ``max_skew_ms`` away from the server clock.
        ProjectNotFoundError
            No secret is registered for ``event.project_id``.
        SignatureError
            The signature is not the HMAC of the canonical string.
        """
        project_id = event.project_id
        now = self._clock()
        if abs(now - timestamp) > self._max_skew_ms:
            _logger.warning(
                "Signature verification failed: timestamp outside window project=%s client=%d server=%d",
                project_id,
                timestamp,
                now,
            )
            raise TimestampError(
                "timestamp is invalid or expired",
                project_id=project_id,
                client_timestamp=timestamp,
                server_time=now,
            )

        secret = await self._secrets.find_secret(project_id)
        if secret is None:
            _logger.warning("Signature verification failed: project %s not found", project_id)
            raise ProjectNotFoundError(f"project {project_id} not found", project_id=project_id)

        sign_string = _event_sign_string(event, timestamp)
        if not signature_matches(secret, sign_string, signature):
            _logger.warning(
                "Signature verification failed: mismatch %s",
                submission_log_fields(event, timestamp),
            )
            raise SignatureError("signature verification failed", project_id=project_id)

        _logger.debug("Signature verified project=%s device=%s", project_id, event.device_id)
        return SigningPrincipal(project_id=project_id)

"""
Resilient client for the MSign signing gateway.

Composes the pieces of the network layer: every logical operation is one
RetryExecutor run, and every attempt asks the ChannelHealthMonitor for a
healthy channel just before using it.

Usage::

    with SigningClient.from_settings() as client:
        started = client.start_signing_process(SigningRequest(pdf, "contract.pdf"))
        response = client.get_sign_response(started.identifier)
"""

from __future__ import annotations

__all__ = ["SigningClient"]

import logging
from typing import TYPE_CHECKING, TypeVar

from .config import load_settings
from .constants import DEFAULT_LANGUAGE, DEFAULT_REDIRECT_BASE_URL
from .core.certificate import load_client_certificate
from .errors import DisposalError, MSignError
from .models import SignInitiateResult, build_redirect_url
from .network.channel import ChannelFactory, ChannelState
from .network.health import ChannelHealthMonitor
from .network.retry import RetryExecutor
from .network.soap import (
    OPERATION_GET_SIGN_RESPONSE,
    OPERATION_POST_SIGN_REQUEST,
    build_get_sign_response_envelope,
    build_post_sign_request_envelope,
    parse_get_sign_response,
    parse_post_sign_request_response,
    send_soap,
)

if TYPE_CHECKING:
    import types
    from collections.abc import Callable

    from .config import GatewaySettings
    from .models import SigningRequest, SignResponse

_T = TypeVar("_T")

_logger = logging.getLogger(__name__)


class SigningClient:
    """Facade exposing the two gateway operations.

    Safe to share between threads.  Construction builds the first channel,
    so a bad certificate or configuration fails here and no half-built
    client is ever returned.
    """

    def __init__(
        self,
        factory: ChannelFactory,
        *,
        executor: RetryExecutor | None = None,
        redirect_base_url: str = DEFAULT_REDIRECT_BASE_URL,
        language: str = DEFAULT_LANGUAGE,
    ) -> None:
        self._monitor = ChannelHealthMonitor(factory)
        self._executor = executor or RetryExecutor()
        self.redirect_base_url = redirect_base_url
        self.language = language

    @classmethod
    def from_settings(
        cls,
        settings: GatewaySettings | None = None,
        *,
        executor: RetryExecutor | None = None,
    ) -> SigningClient:
        """Build a client from resolved settings (loaded from the environment if omitted).

        Raises:
            ConfigurationError: CertPath or CertPassword missing.
            CertificateNotFoundError, CertificateLoadError: Unusable certificate.
        """
        settings = settings or load_settings()
        certificate = load_client_certificate(
            settings.cert_path, settings.cert_password, settings.content_root
        )
        factory = ChannelFactory(
            settings.endpoint_url,
            certificate,
            verify_server=not settings.insecure_skip_verify,
        )
        return cls(
            factory,
            executor=executor,
            redirect_base_url=settings.redirect_base_url,
            language=settings.language,
        )

    def __enter__(self) -> SigningClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        self.close()

    @property
    def channel_state(self) -> ChannelState:
        return self._monitor.current.state

    def _invoke(self, operation: str, envelope: str, parse: Callable[[str], _T]) -> _T:
        def attempt() -> _T:
            channel = self._monitor.get_healthy_channel()
            return parse(send_soap(channel, operation, envelope))

        return self._executor.execute(attempt, name=operation)

    def start_signing_process(self, request: SigningRequest) -> SignInitiateResult:
        """
        Submit a document and return where to send the user to sign it.

        Every retry resends the same payload.  The gateway offers no
        idempotency key, so a timeout after the gateway accepted the
        document can leave an orphaned request behind (at-least-once).

        Raises:
            MSignError: Empty document.
            GatewayFault: The gateway rejected the request.
            ServiceUnavailableError: Transient failures exhausted all retries.
            CommunicationError: Any other non-retryable communication failure.
        """
        if not request.content:
            raise MSignError("Cannot submit an empty document.")

        _logger.info("Submitting %s for signing (%d bytes)", request.file_name, len(request.content))
        envelope = build_post_sign_request_envelope(
            request.content, request.file_name, request.description, request.content_type
        )
        identifier = self._invoke(
            OPERATION_POST_SIGN_REQUEST, envelope, parse_post_sign_request_response
        )
        return SignInitiateResult(
            identifier=identifier,
            redirect_url=build_redirect_url(self.redirect_base_url, identifier, request.return_url),
        )

    def get_sign_response(self, request_id: str, language: str | None = None) -> SignResponse:
        """Query a signing request; the gateway's answer is returned unchanged."""
        if not request_id:
            raise MSignError("Signing request id must not be empty.")
        envelope = build_get_sign_response_envelope(request_id, language or self.language)
        response = self._invoke(OPERATION_GET_SIGN_RESPONSE, envelope, parse_get_sign_response)
        _logger.info("Signing request %s: %s", request_id, response.status.value)
        return response

    def close(self) -> None:
        """Release the shared channel. Idempotent and never raises.

        An open channel is closed gracefully; if that fails, or the channel
        is already faulted, it is aborted.
        """
        channel = self._monitor.shutdown()
        if channel is None:
            return

        if channel.state in (ChannelState.CREATED, ChannelState.OPEN):
            try:
                channel.close()
            except (DisposalError, OSError) as e:
                _logger.warning("Graceful close failed, aborting channel: %s", e)
            else:
                return
        channel.abort()

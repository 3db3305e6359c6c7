"""Identity provider metadata, incoming request decoding and ACS selection."""

from __future__ import annotations

import base64
import binascii
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from samlkit.duration import HOUR
from samlkit.flate import inflate_limited
from samlkit.metadata import (
    HTTP_POST_BINDING,
    HTTP_REDIRECT_BINDING,
    EncryptionMethod,
    Endpoint,
    EntityDescriptor,
    IDPSSODescriptor,
    IndexedEndpoint,
    KeyDescriptor,
    SPSSODescriptor,
    X509Certificate,
)

__all__ = [
    "DEFAULT_VALID_DURATION",
    "PROTOCOL_SAML2",
    "NAMEID_FORMAT_TRANSIENT",
    "ENCRYPTION_ALGORITHMS",
    "RequestError",
    "ServiceProviderNotFound",
    "IdentityProvider",
    "IdpAuthnRequest",
    "parse_authn_request",
    "select_acs_endpoint",
    "find_post_acs_endpoint",
]

DEFAULT_VALID_DURATION = 48 * HOUR
PROTOCOL_SAML2 = "urn:oasis:names:tc:SAML:2.0:protocol"
NAMEID_FORMAT_TRANSIENT = "urn:oasis:names:tc:SAML:2.0:nameid-format:transient"
ENCRYPTION_ALGORITHMS = (
    "http://www.w3.org/2001/04/xmlenc#aes128-cbc",
    "http://www.w3.org/2001/04/xmlenc#aes192-cbc",
    "http://www.w3.org/2001/04/xmlenc#aes256-cbc",
    "http://www.w3.org/2001/04/xmlenc#rsa-oaep-mgf1p",
)

_USABLE_BINDINGS = (HTTP_POST_BINDING, HTTP_REDIRECT_BINDING)


class RequestError(ValueError):
    """Raised when an incoming SAML request cannot be handled."""


class ServiceProviderNotFound(LookupError):
    """Raised when a service provider is not known to the identity provider."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class IdentityProvider:
    """The identity provider role: its certificate and its URLs."""

    certificate: bytes
    metadata_url: str
    sso_url: str
    logout_url: str = ""
    valid_duration: int | None = None

    def metadata(self, now: datetime | None = None) -> EntityDescriptor:
        """Describe this identity provider as SAML metadata."""
        if now is None:
            now = _utcnow()
        duration = (
            self.valid_duration if self.valid_duration is not None else DEFAULT_VALID_DURATION
        )
        cert_text = base64.b64encode(self.certificate).decode("ascii")

        descriptor = IDPSSODescriptor(
            protocol_support_enumeration=PROTOCOL_SAML2,
            key_descriptors=[
                KeyDescriptor(use="signing", certificates=[X509Certificate(cert_text)]),
                KeyDescriptor(
                    use="encryption",
                    certificates=[X509Certificate(cert_text)],
                    encryption_methods=[EncryptionMethod(a) for a in ENCRYPTION_ALGORITHMS],
                ),
            ],
            name_id_formats=[NAMEID_FORMAT_TRANSIENT],
            single_sign_on_services=[
                Endpoint(binding=HTTP_REDIRECT_BINDING, location=self.sso_url),
                Endpoint(binding=HTTP_POST_BINDING, location=self.sso_url),
            ],
        )
        if self.logout_url:
            descriptor.single_logout_services = [
                Endpoint(binding=HTTP_REDIRECT_BINDING, location=self.logout_url)
            ]

        return EntityDescriptor(
            entity_id=self.metadata_url,
            valid_until=now + timedelta(microseconds=duration // 1000),
            cache_duration=duration,
            idp_sso_descriptors=[descriptor],
        )


@dataclass
class IdpAuthnRequest:
    """State of a single authentication request handled by the identity provider."""

    idp: IdentityProvider
    now: datetime = field(default_factory=_utcnow)
    relay_state: str = ""
    request_buffer: bytes = b""
    service_provider_metadata: EntityDescriptor | None = None
    sp_sso_descriptor: SPSSODescriptor | None = None
    acs_endpoint: IndexedEndpoint | None = None


def _first(params: Mapping | None, name: str) -> str:
    if not params:
        return ""
    value = params.get(name, "")
    if isinstance(value, (str, bytes)):
        return value.decode("utf-8") if isinstance(value, bytes) else value
    if isinstance(value, Sequence):
        return str(value[0]) if value else ""
    return str(value)


def _b64decode(text: str) -> bytes:
    cleaned = text.replace("\r", "").replace("\n", "")
    return base64.b64decode(cleaned, validate=True)


def parse_authn_request(
    idp: IdentityProvider,
    method: str,
    query: Mapping | None = None,
    form: Mapping | None = None,
) -> IdpAuthnRequest:
    """Decode the SAMLRequest and RelayState of an incoming HTTP request.

    GET requests carry a deflated request in the query; POST requests carry
    a plain base64 request in the form body.
    """
    request = IdpAuthnRequest(idp=idp)
    if method == "GET":
        try:
            compressed = _b64decode(_first(query, "SAMLRequest"))
        except (binascii.Error, ValueError) as exc:
            raise RequestError(f"cannot decode request: {exc}") from exc
        try:
            request.request_buffer = inflate_limited(compressed)
        except ValueError as exc:
            raise RequestError(f"cannot decompress request: {exc}") from exc
        request.relay_state = _first(query, "RelayState")
    elif method == "POST":
        try:
            request.request_buffer = _b64decode(_first(form, "SAMLRequest"))
        except (binascii.Error, ValueError) as exc:
            raise RequestError(f"cannot decode request: {exc}") from exc
        request.relay_state = _first(form, "RelayState")
    else:
        raise RequestError("method not allowed")
    return request


def _services(sp_metadata: EntityDescriptor):
    for descriptor in sp_metadata.sp_sso_descriptors:
        for endpoint in descriptor.assertion_consumer_services:
            yield descriptor, endpoint


def select_acs_endpoint(
    sp_metadata: EntityDescriptor,
    acs_url: str | None = "",
    acs_index: str | int | None = "",
) -> tuple[SPSSODescriptor, IndexedEndpoint]:
    """Choose the assertion consumer service a response is sent to.

    An explicit index wins, then an explicit URL. When neither is given, a
    default POST or Redirect endpoint is used, else any such endpoint.
    """
    index = "" if acs_index is None else str(acs_index)
    url = acs_url or ""

    if index:
        for descriptor, endpoint in _services(sp_metadata):
            if str(endpoint.index) == index:
                return descriptor, endpoint

    if url:
        for descriptor, endpoint in _services(sp_metadata):
            if endpoint.location == url:
                return descriptor, endpoint

    if not url and not index:
        usable = [
            (descriptor, endpoint)
            for descriptor, endpoint in _services(sp_metadata)
            if endpoint.binding in _USABLE_BINDINGS
        ]
        for descriptor, endpoint in usable:
            if endpoint.is_default:
                return descriptor, endpoint
        if usable:
            return usable[0]

    raise RequestError("cannot find assertion consumer service")


def find_post_acs_endpoint(
    sp_metadata: EntityDescriptor,
) -> tuple[SPSSODescriptor, IndexedEndpoint]:
    """Find the first assertion consumer service using the HTTP-POST binding."""
    for descriptor, endpoint in _services(sp_metadata):
        if endpoint.binding == HTTP_POST_BINDING:
            return descriptor, endpoint
    raise RequestError("saml metadata does not contain an Assertion Customer Service url")
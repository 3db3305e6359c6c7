"""SAML 2.0 metadata objects with XML parsing and serialisation."""

from __future__ import annotations

import copy
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import ClassVar
from urllib.parse import urlsplit

from defusedxml import ElementTree as SafeET

from samlkit.duration import InvalidDurationError, format_duration, parse_duration

__all__ = [
    "MD_NS",
    "DS_NS",
    "SAML_NS",
    "XSI_NS",
    "HTTP_POST_BINDING",
    "HTTP_REDIRECT_BINDING",
    "HTTP_ARTIFACT_BINDING",
    "SOAP_BINDING",
    "SOAP_BINDING_V1",
    "MetadataError",
    "AttributeValue",
    "Attribute",
    "LocalizedName",
    "LocalizedURI",
    "Organization",
    "ContactPerson",
    "EncryptionMethod",
    "X509Certificate",
    "KeyDescriptor",
    "Endpoint",
    "IndexedEndpoint",
    "RoleDescriptor",
    "SSODescriptor",
    "IDPSSODescriptor",
    "SPSSODescriptor",
    "AttributeConsumingService",
    "RequestedAttribute",
    "AuthnAuthorityDescriptor",
    "PDPDescriptor",
    "AttributeAuthorityDescriptor",
    "AffiliationDescriptor",
    "EntityDescriptor",
    "EntitiesDescriptor",
    "check_endpoint_location",
    "parse_entity_descriptor",
    "parse_entities_descriptor",
]

MD_NS = "urn:oasis:names:tc:SAML:2.0:metadata"
DS_NS = "http://www.w3.org/2000/09/xmldsig#"
SAML_NS = "urn:oasis:names:tc:SAML:2.0:assertion"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
XML_NS = "http://www.w3.org/XML/1998/namespace"

HTTP_POST_BINDING = "urn:oasis:names:tc:SAML:2.0:bindings:HTTP-POST"
HTTP_REDIRECT_BINDING = "urn:oasis:names:tc:SAML:2.0:bindings:HTTP-Redirect"
HTTP_ARTIFACT_BINDING = "urn:oasis:names:tc:SAML:2.0:bindings:HTTP-Artifact"
SOAP_BINDING = "urn:oasis:names:tc:SAML:2.0:bindings:SOAP"
SOAP_BINDING_V1 = "urn:oasis:names:tc:SAML:1.0:bindings:SOAP-binding"

_URL_BINDINGS = frozenset(
    {
        HTTP_POST_BINDING,
        HTTP_REDIRECT_BINDING,
        HTTP_ARTIFACT_BINDING,
        SOAP_BINDING,
        SOAP_BINDING_V1,
    }
)

ET.register_namespace("md", MD_NS)
ET.register_namespace("ds", DS_NS)
ET.register_namespace("saml", SAML_NS)
ET.register_namespace("xsi", XSI_NS)

_LANG = f"{{{XML_NS}}}lang"
_XSI_TYPE = f"{{{XSI_NS}}}type"

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}

_TIME_RE = re.compile(
    r"(\d{4})-(\d\d)-(\d\d)T(\d\d):(\d\d):(\d\d)(?:\.(\d+))?(Z|[+-]\d\d:\d\d)",
    re.ASCII,
)


class MetadataError(ValueError):
    """Raised when metadata XML is malformed or invalid."""


# --- low-level helpers -----------------------------------------------------


def _q(local: str, ns: str = MD_NS) -> str:
    return f"{{{ns}}}{local}"


def _local(tag: object) -> str:
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


def _children(el: ET.Element, local: str) -> list[ET.Element]:
    return [child for child in el if _local(child.tag) == local]


def _child(el: ET.Element, local: str) -> ET.Element | None:
    found = _children(el, local)
    return found[0] if found else None


def _texts(el: ET.Element, local: str) -> list[str]:
    return [child.text or "" for child in _children(el, local)]


def _child_text(el: ET.Element, local: str) -> str:
    found = _child(el, local)
    return (found.text or "") if found is not None else ""


def _parse_bool(value: str | None) -> bool | None:
    if value is None:
        return None
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise MetadataError(f"invalid boolean {value!r}")


def _parse_int(value: str | None) -> int:
    if value is None:
        return 0
    try:
        return int(value.strip())
    except ValueError as exc:
        raise MetadataError(f"invalid integer {value!r}") from exc


def _parse_time(value: str | None) -> datetime | None:
    if value is None:
        return None
    match = _TIME_RE.fullmatch(value.strip())
    if match is None:
        raise MetadataError(f"invalid time {value!r}")
    year, month, day, hour, minute, second, frac, zone = match.groups()
    try:
        base = datetime(
            int(year), int(month), int(day), int(hour), int(minute), int(second),
            tzinfo=timezone.utc,
        )
    except ValueError as exc:
        raise MetadataError(f"invalid time {value!r}") from exc
    if frac:
        nanos = int(frac[:9].ljust(9, "0"))
        base += timedelta(milliseconds=(nanos + 500_000) // 1_000_000)
    if zone != "Z":
        sign = 1 if zone[0] == "+" else -1
        base -= sign * timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6]))
    return base


def _format_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    ms = (value.microsecond + 500) // 1000
    value = value.replace(microsecond=0) + timedelta(milliseconds=ms)
    text = value.strftime("%Y-%m-%dT%H:%M:%S")
    ms = value.microsecond // 1000
    if ms:
        text += f".{ms:03d}".rstrip("0")
    return text + "Z"


def _parse_dur(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return parse_duration(value)
    except InvalidDurationError as exc:
        raise MetadataError(str(exc)) from exc


def _set(el: ET.Element, name: str, value: object) -> None:
    """Set an attribute, skipping empty values."""
    if value is None or value == "":
        return
    if isinstance(value, bool):
        value = "true" if value else "false"
    el.set(name, str(value))


def _set_duration(el: ET.Element, name: str, value: int | None) -> None:
    if value:
        text = format_duration(value)
        if text:
            el.set(name, text)


def _sub(parent: ET.Element, local: str, ns: str = MD_NS, text: str | None = None) -> ET.Element:
    child = ET.SubElement(parent, _q(local, ns))
    if text is not None:
        child.text = text
    return child


def _signature(el: ET.Element) -> ET.Element | None:
    found = _child(el, "Signature")
    return copy.deepcopy(found) if found is not None else None


def _append_signature(el: ET.Element, signature: ET.Element | None) -> None:
    if signature is not None:
        el.append(copy.deepcopy(signature))


# --- endpoints -------------------------------------------------------------


def check_endpoint_location(binding: str, location: str) -> str:
    """Validate an endpoint location for its binding.

    Known URL bindings require an http or https URL; for other bindings the
    location cannot be checked and is replaced with an empty string.
    """
    if binding not in _URL_BINDINGS:
        return ""
    try:
        scheme = urlsplit(location).scheme
    except ValueError as exc:
        raise MetadataError(f'invalid url "{location}": {exc}') from exc
    if scheme not in ("http", "https"):
        raise MetadataError(f'invalid url scheme "{scheme}" for binding "{binding}"')
    return location


@dataclass
class Endpoint:
    """SAML EndpointType."""

    binding: str = ""
    location: str = ""
    response_location: str = ""

    @classmethod
    def from_element(cls, el: ET.Element) -> Endpoint:
        binding = el.get("Binding", "")
        location = check_endpoint_location(binding, el.get("Location", ""))
        response_location = el.get("ResponseLocation", "")
        if response_location:
            response_location = check_endpoint_location(binding, response_location)
        return cls(binding, location, response_location)

    def to_element(self, tag: str) -> ET.Element:
        el = ET.Element(tag)
        el.set("Binding", self.binding)
        el.set("Location", self.location)
        _set(el, "ResponseLocation", self.response_location)
        return el


@dataclass
class IndexedEndpoint:
    """SAML IndexedEndpointType."""

    binding: str = ""
    location: str = ""
    response_location: str | None = None
    index: int = 0
    is_default: bool | None = None

    @classmethod
    def from_element(cls, el: ET.Element) -> IndexedEndpoint:
        binding = el.get("Binding", "")
        location = check_endpoint_location(binding, el.get("Location", ""))
        response_location = el.get("ResponseLocation")
        if response_location is not None:
            response_location = check_endpoint_location(binding, response_location) or None
        return cls(
            binding=binding,
            location=location,
            response_location=response_location,
            index=_parse_int(el.get("index")),
            is_default=_parse_bool(el.get("isDefault")),
        )

    def to_element(self, tag: str) -> ET.Element:
        el = ET.Element(tag)
        el.set("Binding", self.binding)
        el.set("Location", self.location)
        _set(el, "ResponseLocation", self.response_location)
        el.set("index", str(self.index))
        _set(el, "isDefault", self.is_default)
        return el


def _endpoints(el: ET.Element, local: str) -> list[Endpoint]:
    return [Endpoint.from_element(c) for c in _children(el, local)]


def _write_endpoints(parent: ET.Element, local: str, endpoints: list) -> None:
    for endpoint in endpoints:
        parent.append(endpoint.to_element(_q(local)))


# --- attributes ------------------------------------------------------------


@dataclass
class AttributeValue:
    """A typed SAML attribute value."""

    type: str = ""
    value: str = ""


@dataclass
class Attribute:
    """A SAML attribute with its values."""

    friendly_name: str = ""
    name: str = ""
    name_format: str = ""
    values: list[AttributeValue] = field(default_factory=list)

    @classmethod
    def _fields_from(cls, el: ET.Element) -> dict:
        return {
            "friendly_name": el.get("FriendlyName", ""),
            "name": el.get("Name", ""),
            "name_format": el.get("NameFormat", ""),
            "values": [
                AttributeValue(c.get(_XSI_TYPE, ""), c.text or "")
                for c in _children(el, "AttributeValue")
            ],
        }

    @classmethod
    def from_element(cls, el: ET.Element):
        return cls(**cls._fields_from(el))

    def to_element(self, tag: str) -> ET.Element:
        el = ET.Element(tag)
        _set(el, "FriendlyName", self.friendly_name)
        _set(el, "Name", self.name)
        _set(el, "NameFormat", self.name_format)
        for value in self.values:
            value_el = _sub(el, "AttributeValue", SAML_NS, value.value)
            _set(value_el, _XSI_TYPE, value.type)
        return el


@dataclass
class RequestedAttribute(Attribute):
    """An attribute requested by a service provider."""

    is_required: bool | None = None

    @classmethod
    def _fields_from(cls, el: ET.Element) -> dict:
        fields = super()._fields_from(el)
        fields["is_required"] = _parse_bool(el.get("isRequired"))
        return fields

    def to_element(self, tag: str) -> ET.Element:
        el = super().to_element(tag)
        _set(el, "isRequired", self.is_required)
        return el


# --- organisation and contacts ---------------------------------------------


@dataclass
class LocalizedName:
    """A name with its language."""

    lang: str = ""
    value: str = ""


@dataclass
class LocalizedURI:
    """A URI with its language."""

    lang: str = ""
    value: str = ""


def _localized(el: ET.Element, local: str, cls):
    return [cls(c.get(_LANG, ""), c.text or "") for c in _children(el, local)]


def _write_localized(parent: ET.Element, local: str, items: list) -> None:
    for item in items:
        child = _sub(parent, local, MD_NS, item.value)
        child.set(_LANG, item.lang)


@dataclass
class Organization:
    """The organisation responsible for an entity."""

    names: list[LocalizedName] = field(default_factory=list)
    display_names: list[LocalizedName] = field(default_factory=list)
    urls: list[LocalizedURI] = field(default_factory=list)

    @classmethod
    def from_element(cls, el: ET.Element) -> Organization:
        return cls(
            names=_localized(el, "OrganizationName", LocalizedName),
            display_names=_localized(el, "OrganizationDisplayName", LocalizedName),
            urls=_localized(el, "OrganizationURL", LocalizedURI),
        )

    def to_element(self) -> ET.Element:
        el = ET.Element(_q("Organization"))
        _write_localized(el, "OrganizationName", self.names)
        _write_localized(el, "OrganizationDisplayName", self.display_names)
        _write_localized(el, "OrganizationURL", self.urls)
        return el


@dataclass
class ContactPerson:
    """A contact for an entity."""

    contact_type: str = ""
    company: str = ""
    given_name: str = ""
    sur_name: str = ""
    email_addresses: list[str] = field(default_factory=list)
    telephone_numbers: list[str] = field(default_factory=list)

    @classmethod
    def from_element(cls, el: ET.Element) -> ContactPerson:
        return cls(
            contact_type=el.get("contactType", ""),
            company=_child_text(el, "Company"),
            given_name=_child_text(el, "GivenName"),
            sur_name=_child_text(el, "SurName"),
            email_addresses=_texts(el, "EmailAddress"),
            telephone_numbers=_texts(el, "TelephoneNumber"),
        )

    def to_element(self) -> ET.Element:
        el = ET.Element(_q("ContactPerson"))
        el.set("contactType", self.contact_type)
        for local, value in (
            ("Company", self.company),
            ("GivenName", self.given_name),
            ("SurName", self.sur_name),
        ):
            if value:
                _sub(el, local, MD_NS, value)
        for email in self.email_addresses:
            _sub(el, "EmailAddress", MD_NS, email)
        for phone in self.telephone_numbers:
            _sub(el, "TelephoneNumber", MD_NS, phone)
        return el


# --- keys ------------------------------------------------------------------


@dataclass
class EncryptionMethod:
    """An encryption algorithm supported by a key."""

    algorithm: str = ""


@dataclass
class X509Certificate:
    """Base64 certificate data."""

    data: str = ""


@dataclass
class KeyDescriptor:
    """A key with its use and supported encryption methods."""

    use: str = ""
    certificates: list[X509Certificate] = field(default_factory=list)
    encryption_methods: list[EncryptionMethod] = field(default_factory=list)

    @classmethod
    def from_element(cls, el: ET.Element) -> KeyDescriptor:
        certificates: list[X509Certificate] = []
        key_info = _child(el, "KeyInfo")
        if key_info is not None:
            x509_data = _child(key_info, "X509Data")
            if x509_data is not None:
                certificates = [
                    X509Certificate(text) for text in _texts(x509_data, "X509Certificate")
                ]
        return cls(
            use=el.get("use", ""),
            certificates=certificates,
            encryption_methods=[
                EncryptionMethod(c.get("Algorithm", ""))
                for c in _children(el, "EncryptionMethod")
            ],
        )

    def to_element(self) -> ET.Element:
        el = ET.Element(_q("KeyDescriptor"))
        el.set("use", self.use)
        key_info = _sub(el, "KeyInfo", DS_NS)
        x509_data = _sub(key_info, "X509Data", DS_NS)
        for cert in self.certificates:
            _sub(x509_data, "X509Certificate", DS_NS, cert.data)
        for method in self.encryption_methods:
            _sub(el, "EncryptionMethod").set("Algorithm", method.algorithm)
        return el


# --- role descriptors ------------------------------------------------------


@dataclass
class RoleDescriptor:
    """Common content of every role descriptor."""

    TAG: ClassVar[str] = "RoleDescriptor"

    id: str = ""
    valid_until: datetime | None = None
    cache_duration: int = 0
    protocol_support_enumeration: str = ""
    error_url: str = ""
    signature: ET.Element | None = field(default=None, compare=False)
    key_descriptors: list[KeyDescriptor] = field(default_factory=list)
    organization: Organization | None = None
    contact_people: list[ContactPerson] = field(default_factory=list)

    @classmethod
    def _fields_from(cls, el: ET.Element) -> dict:
        org = _child(el, "Organization")
        return {
            "id": el.get("ID", ""),
            "valid_until": _parse_time(el.get("validUntil")),
            "cache_duration": _parse_dur(el.get("cacheDuration")) or 0,
            "protocol_support_enumeration": el.get("protocolSupportEnumeration", ""),
            "error_url": el.get("errorURL", ""),
            "signature": _signature(el),
            "key_descriptors": [
                KeyDescriptor.from_element(c) for c in _children(el, "KeyDescriptor")
            ],
            "organization": Organization.from_element(org) if org is not None else None,
            "contact_people": [
                ContactPerson.from_element(c) for c in _children(el, "ContactPerson")
            ],
        }

    @classmethod
    def from_element(cls, el: ET.Element):
        return cls(**cls._fields_from(el))

    def _write_attrs(self, el: ET.Element) -> None:
        _set(el, "ID", self.id)
        if self.valid_until is not None:
            el.set("validUntil", _format_time(self.valid_until))
        _set_duration(el, "cacheDuration", self.cache_duration)
        el.set("protocolSupportEnumeration", self.protocol_support_enumeration)
        _set(el, "errorURL", self.error_url)

    def _write_children(self, el: ET.Element) -> None:
        _append_signature(el, self.signature)
        for key in self.key_descriptors:
            el.append(key.to_element())
        if self.organization is not None:
            el.append(self.organization.to_element())
        for contact in self.contact_people:
            el.append(contact.to_element())

    def to_element(self) -> ET.Element:
        el = ET.Element(_q(self.TAG))
        self._write_attrs(el)
        self._write_children(el)
        return el


@dataclass
class SSODescriptor(RoleDescriptor):
    """Content shared by IDP and SP single sign-on descriptors."""

    ARTIFACT_TYPE: ClassVar[type] = IndexedEndpoint

    artifact_resolution_services: list = field(default_factory=list)
    single_logout_services: list[Endpoint] = field(default_factory=list)
    manage_name_id_services: list[Endpoint] = field(default_factory=list)
    name_id_formats: list[str] = field(default_factory=list)

    @classmethod
    def _fields_from(cls, el: ET.Element) -> dict:
        fields = super()._fields_from(el)
        fields.update(
            artifact_resolution_services=[
                cls.ARTIFACT_TYPE.from_element(c)
                for c in _children(el, "ArtifactResolutionService")
            ],
            single_logout_services=_endpoints(el, "SingleLogoutService"),
            manage_name_id_services=_endpoints(el, "ManageNameIDService"),
            name_id_formats=_texts(el, "NameIDFormat"),
        )
        return fields

    def _write_children(self, el: ET.Element) -> None:
        super()._write_children(el)
        _write_endpoints(el, "ArtifactResolutionService", self.artifact_resolution_services)
        _write_endpoints(el, "SingleLogoutService", self.single_logout_services)
        _write_endpoints(el, "ManageNameIDService", self.manage_name_id_services)
        for fmt in self.name_id_formats:
            _sub(el, "NameIDFormat", MD_NS, fmt)


@dataclass
class IDPSSODescriptor(SSODescriptor):
    """An identity provider's single sign-on descriptor."""

    TAG: ClassVar[str] = "IDPSSODescriptor"
    ARTIFACT_TYPE: ClassVar[type] = Endpoint

    want_authn_requests_signed: bool | None = None
    single_sign_on_services: list[Endpoint] = field(default_factory=list)
    name_id_mapping_services: list[Endpoint] = field(default_factory=list)
    assertion_id_request_services: list[Endpoint] = field(default_factory=list)
    attribute_profiles: list[str] = field(default_factory=list)
    attributes: list[Attribute] = field(default_factory=list)

    @classmethod
    def _fields_from(cls, el: ET.Element) -> dict:
        fields = super()._fields_from(el)
        fields.update(
            want_authn_requests_signed=_parse_bool(el.get("WantAuthnRequestsSigned")),
            single_sign_on_services=_endpoints(el, "SingleSignOnService"),
            name_id_mapping_services=_endpoints(el, "NameIDMappingService"),
            assertion_id_request_services=_endpoints(el, "AssertionIDRequestService"),
            attribute_profiles=_texts(el, "AttributeProfile"),
            attributes=[Attribute.from_element(c) for c in _children(el, "Attribute")],
        )
        return fields

    def _write_attrs(self, el: ET.Element) -> None:
        super()._write_attrs(el)
        _set(el, "WantAuthnRequestsSigned", self.want_authn_requests_signed)

    def _write_children(self, el: ET.Element) -> None:
        super()._write_children(el)
        _write_endpoints(el, "SingleSignOnService", self.single_sign_on_services)
        _write_endpoints(el, "NameIDMappingService", self.name_id_mapping_services)
        _write_endpoints(el, "AssertionIDRequestService", self.assertion_id_request_services)
        for profile in self.attribute_profiles:
            _sub(el, "AttributeProfile", MD_NS, profile)
        for attribute in self.attributes:
            el.append(attribute.to_element(_q("Attribute", SAML_NS)))


@dataclass
class AttributeConsumingService:
    """Attributes a service provider asks for."""

    index: int = 0
    is_default: bool | None = None
    service_names: list[LocalizedName] = field(default_factory=list)
    service_descriptions: list[LocalizedName] = field(default_factory=list)
    requested_attributes: list[RequestedAttribute] = field(default_factory=list)

    @classmethod
    def from_element(cls, el: ET.Element) -> AttributeConsumingService:
        return cls(
            index=_parse_int(el.get("index")),
            is_default=_parse_bool(el.get("isDefault")),
            service_names=_localized(el, "ServiceName", LocalizedName),
            service_descriptions=_localized(el, "ServiceDescription", LocalizedName),
            requested_attributes=[
                RequestedAttribute.from_element(c)
                for c in _children(el, "RequestedAttribute")
            ],
        )

    def to_element(self) -> ET.Element:
        el = ET.Element(_q("AttributeConsumingService"))
        el.set("index", str(self.index))
        _set(el, "isDefault", self.is_default)
        _write_localized(el, "ServiceName", self.service_names)
        _write_localized(el, "ServiceDescription", self.service_descriptions)
        for attribute in self.requested_attributes:
            el.append(attribute.to_element(_q("RequestedAttribute")))
        return el


@dataclass
class SPSSODescriptor(SSODescriptor):
    """A service provider's single sign-on descriptor."""

    TAG: ClassVar[str] = "SPSSODescriptor"

    authn_requests_signed: bool | None = None
    want_assertions_signed: bool | None = None
    assertion_consumer_services: list[IndexedEndpoint] = field(default_factory=list)
    attribute_consuming_services: list[AttributeConsumingService] = field(
        default_factory=list
    )

    @classmethod
    def _fields_from(cls, el: ET.Element) -> dict:
        fields = super()._fields_from(el)
        fields.update(
            authn_requests_signed=_parse_bool(el.get("AuthnRequestsSigned")),
            want_assertions_signed=_parse_bool(el.get("WantAssertionsSigned")),
            assertion_consumer_services=[
                IndexedEndpoint.from_element(c)
                for c in _children(el, "AssertionConsumerService")
            ],
            attribute_consuming_services=[
                AttributeConsumingService.from_element(c)
                for c in _children(el, "AttributeConsumingService")
            ],
        )
        return fields

    def _write_attrs(self, el: ET.Element) -> None:
        super()._write_attrs(el)
        _set(el, "AuthnRequestsSigned", self.authn_requests_signed)
        _set(el, "WantAssertionsSigned", self.want_assertions_signed)

    def _write_children(self, el: ET.Element) -> None:
        super()._write_children(el)
        _write_endpoints(el, "AssertionConsumerService", self.assertion_consumer_services)
        for service in self.attribute_consuming_services:
            el.append(service.to_element())


@dataclass
class AuthnAuthorityDescriptor(RoleDescriptor):
    """An authentication authority's descriptor."""

    TAG: ClassVar[str] = "AuthnAuthorityDescriptor"

    authn_query_services: list[Endpoint] = field(default_factory=list)
    assertion_id_request_services: list[Endpoint] = field(default_factory=list)
    name_id_formats: list[str] = field(default_factory=list)

    @classmethod
    def _fields_from(cls, el: ET.Element) -> dict:
        fields = super()._fields_from(el)
        fields.update(
            authn_query_services=_endpoints(el, "AuthnQueryService"),
            assertion_id_request_services=_endpoints(el, "AssertionIDRequestService"),
            name_id_formats=_texts(el, "NameIDFormat"),
        )
        return fields

    def _write_children(self, el: ET.Element) -> None:
        super()._write_children(el)
        _write_endpoints(el, "AuthnQueryService", self.authn_query_services)
        _write_endpoints(el, "AssertionIDRequestService", self.assertion_id_request_services)
        for fmt in self.name_id_formats:
            _sub(el, "NameIDFormat", MD_NS, fmt)


@dataclass
class PDPDescriptor(RoleDescriptor):
    """A policy decision point's descriptor."""

    TAG: ClassVar[str] = "PDPDescriptor"

    authz_services: list[Endpoint] = field(default_factory=list)
    assertion_id_request_services: list[Endpoint] = field(default_factory=list)
    name_id_formats: list[str] = field(default_factory=list)

    @classmethod
    def _fields_from(cls, el: ET.Element) -> dict:
        fields = super()._fields_from(el)
        fields.update(
            authz_services=_endpoints(el, "AuthzService"),
            assertion_id_request_services=_endpoints(el, "AssertionIDRequestService"),
            name_id_formats=_texts(el, "NameIDFormat"),
        )
        return fields

    def _write_children(self, el: ET.Element) -> None:
        super()._write_children(el)
        _write_endpoints(el, "AuthzService", self.authz_services)
        _write_endpoints(el, "AssertionIDRequestService", self.assertion_id_request_services)
        for fmt in self.name_id_formats:
            _sub(el, "NameIDFormat", MD_NS, fmt)


@dataclass
class AttributeAuthorityDescriptor(RoleDescriptor):
    """An attribute authority's descriptor."""

    TAG: ClassVar[str] = "AttributeAuthorityDescriptor"

    attribute_services: list[Endpoint] = field(default_factory=list)
    assertion_id_request_services: list[Endpoint] = field(default_factory=list)
    name_id_formats: list[str] = field(default_factory=list)
    attribute_profiles: list[str] = field(default_factory=list)
    attributes: list[Attribute] = field(default_factory=list)

    @classmethod
    def _fields_from(cls, el: ET.Element) -> dict:
        fields = super()._fields_from(el)
        fields.update(
            attribute_services=_endpoints(el, "AttributeService"),
            assertion_id_request_services=_endpoints(el, "AssertionIDRequestService"),
            name_id_formats=_texts(el, "NameIDFormat"),
            attribute_profiles=_texts(el, "AttributeProfile"),
            attributes=[Attribute.from_element(c) for c in _children(el, "Attribute")],
        )
        return fields

    def _write_children(self, el: ET.Element) -> None:
        super()._write_children(el)
        _write_endpoints(el, "AttributeService", self.attribute_services)
        _write_endpoints(el, "AssertionIDRequestService", self.assertion_id_request_services)
        for fmt in self.name_id_formats:
            _sub(el, "NameIDFormat", MD_NS, fmt)
        for profile in self.attribute_profiles:
            _sub(el, "AttributeProfile", MD_NS, profile)
        for attribute in self.attributes:
            el.append(attribute.to_element(_q("Attribute", SAML_NS)))


@dataclass
class AffiliationDescriptor:
    """A group of entities acting together."""

    affiliation_owner_id: str = ""
    id: str = ""
    valid_until: datetime | None = None
    cache_duration: int = 0
    signature: ET.Element | None = field(default=None, compare=False)
    affiliate_members: list[str] = field(default_factory=list)
    key_descriptors: list[KeyDescriptor] = field(default_factory=list)

    @classmethod
    def from_element(cls, el: ET.Element) -> AffiliationDescriptor:
        return cls(
            affiliation_owner_id=el.get("affiliationOwnerID", ""),
            id=el.get("ID", ""),
            valid_until=_parse_time(el.get("validUntil")),
            cache_duration=_parse_dur(el.get("cacheDuration")) or 0,
            signature=_signature(el),
            affiliate_members=_texts(el, "AffiliateMember"),
            key_descriptors=[
                KeyDescriptor.from_element(c) for c in _children(el, "KeyDescriptor")
            ],
        )

    def to_element(self) -> ET.Element:
        el = ET.Element(_q("AffiliationDescriptor"))
        el.set("affiliationOwnerID", self.affiliation_owner_id)
        el.set("ID", self.id)
        if self.valid_until is not None:
            el.set("validUntil", _format_time(self.valid_until))
        _set_duration(el, "cacheDuration", self.cache_duration)
        _append_signature(el, self.signature)
        for member in self.affiliate_members:
            _sub(el, "AffiliateMember", MD_NS, member)
        for key in self.key_descriptors:
            el.append(key.to_element())
        return el


# --- entities --------------------------------------------------------------


def _to_bytes(root: ET.Element) -> bytes:
    ET.indent(root, space="  ")
    return ET.tostring(root, encoding="utf-8", xml_declaration=False)


@dataclass
class EntityDescriptor:
    """A SAML entity and its roles."""

    entity_id: str = ""
    id: str = ""
    valid_until: datetime | None = None
    cache_duration: int = 0
    signature: ET.Element | None = field(default=None, compare=False)
    role_descriptors: list[RoleDescriptor] = field(default_factory=list)
    idp_sso_descriptors: list[IDPSSODescriptor] = field(default_factory=list)
    sp_sso_descriptors: list[SPSSODescriptor] = field(default_factory=list)
    authn_authority_descriptors: list[AuthnAuthorityDescriptor] = field(
        default_factory=list
    )
    attribute_authority_descriptors: list[AttributeAuthorityDescriptor] = field(
        default_factory=list
    )
    pdp_descriptors: list[PDPDescriptor] = field(default_factory=list)
    affiliation_descriptor: AffiliationDescriptor | None = None
    organization: Organization | None = None
    contact_person: ContactPerson | None = None
    additional_metadata_locations: list[str] = field(default_factory=list)

    @classmethod
    def from_element(cls, el: ET.Element) -> EntityDescriptor:
        if el.tag != _q("EntityDescriptor"):
            raise MetadataError(
                f"expected element type <EntityDescriptor> but have <{_local(el.tag)}>"
            )
        affiliation = _child(el, "AffiliationDescriptor")
        org = _child(el, "Organization")
        contact = _child(el, "ContactPerson")

        def roles(role_cls):
            return [role_cls.from_element(c) for c in _children(el, role_cls.TAG)]

        return cls(
            entity_id=el.get("entityID", ""),
            id=el.get("ID", ""),
            valid_until=_parse_time(el.get("validUntil")),
            cache_duration=_parse_dur(el.get("cacheDuration")) or 0,
            signature=_signature(el),
            role_descriptors=roles(RoleDescriptor),
            idp_sso_descriptors=roles(IDPSSODescriptor),
            sp_sso_descriptors=roles(SPSSODescriptor),
            authn_authority_descriptors=roles(AuthnAuthorityDescriptor),
            attribute_authority_descriptors=roles(AttributeAuthorityDescriptor),
            pdp_descriptors=roles(PDPDescriptor),
            affiliation_descriptor=(
                AffiliationDescriptor.from_element(affiliation)
                if affiliation is not None
                else None
            ),
            organization=Organization.from_element(org) if org is not None else None,
            contact_person=(
                ContactPerson.from_element(contact) if contact is not None else None
            ),
            additional_metadata_locations=_texts(el, "AdditionalMetadataLocation"),
        )

    def to_element(self) -> ET.Element:
        """Build the XML element for this entity."""
        el = ET.Element(_q("EntityDescriptor"))
        el.set("entityID", self.entity_id)
        _set(el, "ID", self.id)
        if self.valid_until is not None:
            el.set("validUntil", _format_time(self.valid_until))
        _set_duration(el, "cacheDuration", self.cache_duration)
        _append_signature(el, self.signature)
        for group in (
            self.role_descriptors,
            self.idp_sso_descriptors,
            self.sp_sso_descriptors,
            self.authn_authority_descriptors,
            self.attribute_authority_descriptors,
            self.pdp_descriptors,
        ):
            for role in group:
                el.append(role.to_element())
        if self.affiliation_descriptor is not None:
            el.append(self.affiliation_descriptor.to_element())
        if self.organization is not None:
            el.append(self.organization.to_element())
        if self.contact_person is not None:
            el.append(self.contact_person.to_element())
        for location in self.additional_metadata_locations:
            _sub(el, "AdditionalMetadataLocation", MD_NS, location)
        return el

    def to_xml(self) -> bytes:
        """Serialise as indented XML."""
        return _to_bytes(self.to_element())


@dataclass
class EntitiesDescriptor:
    """A group of entity descriptors."""

    id: str | None = None
    valid_until: datetime | None = None
    cache_duration: int | None = None
    name: str | None = None
    signature: ET.Element | None = field(default=None, compare=False)
    entities_descriptors: list[EntitiesDescriptor] = field(default_factory=list)
    entity_descriptors: list[EntityDescriptor] = field(default_factory=list)

    @classmethod
    def from_element(cls, el: ET.Element) -> EntitiesDescriptor:
        if el.tag != _q("EntitiesDescriptor"):
            raise MetadataError(
                f"expected element type <EntitiesDescriptor> but have <{_local(el.tag)}>"
            )
        return cls(
            id=el.get("ID"),
            valid_until=_parse_time(el.get("validUntil")),
            cache_duration=_parse_dur(el.get("cacheDuration")),
            name=el.get("Name"),
            signature=_signature(el),
            entities_descriptors=[
                cls.from_element(c) for c in _children(el, "EntitiesDescriptor")
            ],
            entity_descriptors=[
                EntityDescriptor.from_element(c) for c in _children(el, "EntityDescriptor")
            ],
        )

    def to_element(self) -> ET.Element:
        """Build the XML element for this group."""
        el = ET.Element(_q("EntitiesDescriptor"))
        _set(el, "ID", self.id)
        if self.valid_until is not None:
            el.set("validUntil", _format_time(self.valid_until))
        _set_duration(el, "cacheDuration", self.cache_duration)
        _set(el, "Name", self.name)
        _append_signature(el, self.signature)
        for child in self.entities_descriptors:
            el.append(child.to_element())
        for entity in self.entity_descriptors:
            el.append(entity.to_element())
        return el

    def to_xml(self) -> bytes:
        """Serialise as indented XML."""
        return _to_bytes(self.to_element())


def _parse_root(data: bytes | str) -> ET.Element:
    if isinstance(data, str):
        data = data.encode("utf-8")
    try:
        return SafeET.fromstring(data)
    except ET.ParseError as exc:
        raise MetadataError(f"malformed XML: {exc}") from exc


def parse_entity_descriptor(data: bytes | str) -> EntityDescriptor:
    """Parse an EntityDescriptor document."""
    return EntityDescriptor.from_element(_parse_root(data))


def parse_entities_descriptor(data: bytes | str) -> EntitiesDescriptor:
    """Parse an EntitiesDescriptor document."""
    return EntitiesDescriptor.from_element(_parse_root(data))
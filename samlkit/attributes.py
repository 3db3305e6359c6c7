"""User sessions and the SAML attributes asserted for them."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime

from samlkit.metadata import (
    Attribute,
    AttributeConsumingService,
    AttributeValue,
    SPSSODescriptor,
)

__all__ = [
    "ATTRNAME_FORMAT_BASIC",
    "ATTRNAME_FORMAT_UNSPECIFIED",
    "ATTRNAME_FORMAT_URI",
    "Session",
    "select_attribute_consuming_service",
    "make_attributes",
]

ATTRNAME_FORMAT_BASIC = "urn:oasis:names:tc:SAML:2.0:attrname-format:basic"
ATTRNAME_FORMAT_UNSPECIFIED = "urn:oasis:names:tc:SAML:2.0:attrname-format:unspecified"
ATTRNAME_FORMAT_URI = "urn:oasis:names:tc:SAML:2.0:attrname-format:uri"

_XS_STRING = "xs:string"
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")


@dataclass
class Session:
    """An authenticated user session; its fields feed the SAML assertion."""

    id: str = ""
    create_time: datetime | None = None
    expire_time: datetime | None = None
    index: str = ""

    name_id: str = ""
    name_id_format: str = ""
    subject_id: str = ""

    groups: list[str] = field(default_factory=list)
    user_name: str = ""
    user_email: str = ""
    user_common_name: str = ""
    user_surname: str = ""
    user_given_name: str = ""
    user_scoped_affiliation: str = ""
    edu_person_principal_name: str = ""

    custom_attributes: list[Attribute] = field(default_factory=list)


def select_attribute_consuming_service(
    sp_descriptor: SPSSODescriptor | None,
) -> AttributeConsumingService:
    """Pick the default attribute consuming service, else the first, else an empty one."""
    services = sp_descriptor.attribute_consuming_services if sp_descriptor else []
    for service in services:
        if service.is_default:
            return service
    if services:
        return services[0]
    return AttributeConsumingService()


def _string_attribute(
    friendly_name: str, name: str, name_format: str, *values: str
) -> Attribute:
    return Attribute(
        friendly_name=friendly_name,
        name=name,
        name_format=name_format,
        values=[AttributeValue(type=_XS_STRING, value=v) for v in values],
    )


def _requested_value(normalised_name: str, session: Session) -> str | None:
    if normalised_name in ("email", "emailaddress"):
        return session.user_email
    if normalised_name in ("name", "fullname", "cn", "commonname"):
        return session.user_common_name
    if normalised_name in ("givenname", "firstname"):
        return session.user_given_name
    if normalised_name in ("surname", "lastname", "familyname"):
        return session.user_surname
    if normalised_name in ("uid", "user", "userid"):
        return session.user_name
    return None


def make_attributes(
    session: Session, sp_descriptor: SPSSODescriptor | None
) -> list[Attribute]:
    """Build the attributes asserted for ``session`` to the given service provider.

    Attributes the service provider requests by basic or unspecified name come
    first, followed by the standard URI-named attributes, custom attributes,
    group membership and the subject identifier.
    """
    attributes: list[Attribute] = []

    service = select_attribute_consuming_service(sp_descriptor)
    for requested in service.requested_attributes:
        if requested.name_format not in (ATTRNAME_FORMAT_BASIC, ATTRNAME_FORMAT_UNSPECIFIED):
            continue
        value = _requested_value(_NON_ALNUM.sub("", requested.name), session)
        if value is not None:
            attributes.append(
                _string_attribute(
                    requested.friendly_name, requested.name, requested.name_format, value
                )
            )

    if session.user_name:
        attributes.append(
            _string_attribute(
                "uid", "urn:oid:0.9.2342.19200300.100.1.1", ATTRNAME_FORMAT_URI,
                session.user_name,
            )
        )
    if session.user_email:
        attributes.append(
            _string_attribute(
                "mail", "urn:oid:0.9.2342.19200300.100.1.3", ATTRNAME_FORMAT_URI,
                session.user_email,
            )
        )
    if session.edu_person_principal_name or session.user_email:
        # Falls back to the e-mail address, which earlier releases always used.
        attributes.append(
            _string_attribute(
                "eduPersonPrincipalName", "urn:oid:1.3.6.1.4.1.5923.1.1.1.6",
                ATTRNAME_FORMAT_URI,
                session.edu_person_principal_name or session.user_email,
            )
        )
    if session.user_surname:
        attributes.append(
            _string_attribute(
                "sn", "urn:oid:2.5.4.4", ATTRNAME_FORMAT_URI, session.user_surname
            )
        )
    if session.user_given_name:
        attributes.append(
            _string_attribute(
                "givenName", "urn:oid:2.5.4.42", ATTRNAME_FORMAT_URI,
                session.user_given_name,
            )
        )
    if session.user_common_name:
        attributes.append(
            _string_attribute(
                "cn", "urn:oid:2.5.4.3", ATTRNAME_FORMAT_URI, session.user_common_name
            )
        )
    if session.user_scoped_affiliation:
        attributes.append(
            _string_attribute(
                "scopedAffiliation", "urn:oid:1.3.6.1.4.1.5923.1.1.1.9",
                ATTRNAME_FORMAT_URI, session.user_scoped_affiliation,
            )
        )

    attributes.extend(session.custom_attributes)

    if session.groups:
        attributes.append(
            _string_attribute(
                "eduPersonAffiliation", "urn:oid:1.3.6.1.4.1.5923.1.1.1.1",
                ATTRNAME_FORMAT_URI, *session.groups,
            )
        )
    if session.subject_id:
        attributes.append(
            _string_attribute(
                "", "urn:oasis:names:tc:SAML:attribute:subject-id",
                ATTRNAME_FORMAT_URI, session.subject_id,
            )
        )

    return attributes
import pytest

from samlkit.attributes import (
    ATTRNAME_FORMAT_BASIC,
    ATTRNAME_FORMAT_URI,
    Session,
    make_attributes,
    select_attribute_consuming_service,
)
from samlkit.metadata import (
    Attribute,
    AttributeConsumingService,
    AttributeValue,
    RequestedAttribute,
    SPSSODescriptor,
)


def _requested(friendly, name, fmt=ATTRNAME_FORMAT_BASIC):
    return RequestedAttribute(friendly_name=friendly, name=name, name_format=fmt)


@pytest.fixture
def sp_descriptor():
    return SPSSODescriptor(
        attribute_consuming_services=[
            AttributeConsumingService(
                index=1,
                is_default=True,
                requested_attributes=[
                    _requested("Email address", "email"),
                    _requested("Full name", "name"),
                    _requested("Given name", "first_name"),
                    _requested("Family name", "last_name"),
                ],
            )
        ]
    )


def _values(attribute):
    return [v.value for v in attribute.values]


def test_select_prefers_default_service():
    first = AttributeConsumingService(index=0)
    second = AttributeConsumingService(index=1, is_default=True)
    sp = SPSSODescriptor(attribute_consuming_services=[first, second])
    assert select_attribute_consuming_service(sp) is second


def test_select_falls_back_to_first_service():
    first = AttributeConsumingService(index=0, is_default=False)
    second = AttributeConsumingService(index=1)
    sp = SPSSODescriptor(attribute_consuming_services=[first, second])
    assert select_attribute_consuming_service(sp) is first


def test_select_without_services_gives_empty_service():
    assert select_attribute_consuming_service(SPSSODescriptor()) == AttributeConsumingService()
    assert select_attribute_consuming_service(None) == AttributeConsumingService()


def test_requested_attributes_come_first(sp_descriptor):
    session = Session(
        user_email="alice@example.com",
        user_common_name="Alice Example",
        user_given_name="Alice",
        user_surname="Example",
    )
    attributes = make_attributes(session, sp_descriptor)
    requested = attributes[:4]
    assert [a.name for a in requested] == ["email", "name", "first_name", "last_name"]
    assert [a.friendly_name for a in requested] == [
        "Email address", "Full name", "Given name", "Family name",
    ]
    assert [_values(a) for a in requested] == [
        ["alice@example.com"], ["Alice Example"], ["Alice"], ["Example"],
    ]
    assert all(a.name_format == ATTRNAME_FORMAT_BASIC for a in requested)
    assert all(v.type == "xs:string" for a in attributes for v in a.values)


def test_standard_attribute_order(sp_descriptor):
    session = Session(
        user_name="alice",
        user_email="alice@example.com",
        user_common_name="Alice Example",
        user_given_name="Alice",
        user_surname="Example",
        user_scoped_affiliation="member@example.com",
    )
    standard = make_attributes(session, sp_descriptor)[4:]
    assert [a.friendly_name for a in standard] == [
        "uid", "mail", "eduPersonPrincipalName", "sn", "givenName", "cn",
        "scopedAffiliation",
    ]
    assert all(a.name_format == ATTRNAME_FORMAT_URI for a in standard)
    assert standard[0].name == "urn:oid:0.9.2342.19200300.100.1.1"
    assert _values(standard[0]) == ["alice"]


def test_principal_name_falls_back_to_email():
    session = Session(user_email="bob@example.com")
    attributes = make_attributes(session, None)
    by_name = {a.friendly_name: a for a in attributes}
    assert _values(by_name["eduPersonPrincipalName"]) == ["bob@example.com"]
    assert by_name["eduPersonPrincipalName"].name == "urn:oid:1.3.6.1.4.1.5923.1.1.1.6"


def test_explicit_principal_name_wins():
    session = Session(
        user_email="bob@example.com", edu_person_principal_name="bob@idp.example.com"
    )
    by_name = {a.friendly_name: a for a in make_attributes(session, None)}
    assert _values(by_name["eduPersonPrincipalName"]) == ["bob@idp.example.com"]
    assert _values(by_name["mail"]) == ["bob@example.com"]


def test_groups_custom_and_subject_id_order():
    custom = Attribute(
        name="custom", values=[AttributeValue(type="xs:string", value="x")]
    )
    session = Session(
        user_scoped_affiliation="staff@example.com",
        groups=["staff", "admins"],
        custom_attributes=[custom],
        subject_id="subject-1",
    )
    attributes = make_attributes(session, None)
    assert [a.name for a in attributes] == [
        "urn:oid:1.3.6.1.4.1.5923.1.1.1.9",
        "custom",
        "urn:oid:1.3.6.1.4.1.5923.1.1.1.1",
        "urn:oasis:names:tc:SAML:attribute:subject-id",
    ]
    assert _values(attributes[2]) == ["staff", "admins"]
    assert attributes[2].friendly_name == "eduPersonAffiliation"
    assert attributes[3].friendly_name == ""
    assert _values(attributes[3]) == ["subject-1"]


def test_uri_format_requests_are_ignored():
    sp = SPSSODescriptor(
        attribute_consuming_services=[
            AttributeConsumingService(
                requested_attributes=[_requested("Email", "email", ATTRNAME_FORMAT_URI)]
            )
        ]
    )
    session = Session(user_name="carol")
    attributes = make_attributes(session, sp)
    assert [a.friendly_name for a in attributes] == ["uid"]


def test_unknown_requested_name_is_ignored():
    sp = SPSSODescriptor(
        attribute_consuming_services=[
            AttributeConsumingService(requested_attributes=[_requested("Color", "color")])
        ]
    )
    assert make_attributes(Session(), sp) == []


def test_requested_name_matching_is_case_sensitive():
    sp = SPSSODescriptor(
        attribute_consuming_services=[
            AttributeConsumingService(
                requested_attributes=[
                    _requested("Mail", "emailAddress"),
                    _requested("User", "user-id"),
                ]
            )
        ]
    )
    attributes = make_attributes(Session(user_name="dave"), sp)
    assert attributes[0].name == "user-id"
    assert _values(attributes[0]) == ["dave"]
    assert [a.name for a in attributes][1:] == ["urn:oid:0.9.2342.19200300.100.1.1"]


def test_requested_attribute_present_even_with_empty_session(sp_descriptor):
    attributes = make_attributes(Session(), sp_descriptor)
    assert [a.name for a in attributes] == ["email", "name", "first_name", "last_name"]
    assert all(_values(a) == [""] for a in attributes)
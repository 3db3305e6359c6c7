import base64
import zlib
from datetime import datetime, timedelta, timezone

import pytest

from samlkit.identity_provider import (
    DEFAULT_VALID_DURATION,
    ENCRYPTION_ALGORITHMS,
    NAMEID_FORMAT_TRANSIENT,
    PROTOCOL_SAML2,
    IdentityProvider,
    RequestError,
    find_post_acs_endpoint,
    parse_authn_request,
    select_acs_endpoint,
)
from samlkit.metadata import (
    HTTP_ARTIFACT_BINDING,
    HTTP_POST_BINDING,
    HTTP_REDIRECT_BINDING,
    EntityDescriptor,
    IndexedEndpoint,
    SPSSODescriptor,
    parse_entity_descriptor,
)

NOW = datetime(2015, 12, 1, 1, 57, 9, tzinfo=timezone.utc)
CERT = b"made-up certificate bytes"


@pytest.fixture
def idp():
    return IdentityProvider(
        certificate=CERT,
        metadata_url="https://idp.example.com/saml/metadata",
        sso_url="https://idp.example.com/saml/sso",
    )


def _deflate(data: bytes) -> bytes:
    compressor = zlib.compressobj(wbits=-zlib.MAX_WBITS)
    return compressor.compress(data) + compressor.flush()


def _sp(*endpoints):
    return EntityDescriptor(
        entity_id="https://sp.example.com/saml/metadata",
        sp_sso_descriptors=[SPSSODescriptor(assertion_consumer_services=list(endpoints))],
    )


def test_metadata_describes_idp(idp):
    md = idp.metadata(NOW)
    assert md.entity_id == "https://idp.example.com/saml/metadata"
    assert md.cache_duration == DEFAULT_VALID_DURATION
    assert md.valid_until == NOW + timedelta(microseconds=DEFAULT_VALID_DURATION // 1000)
    assert len(md.idp_sso_descriptors) == 1
    desc = md.idp_sso_descriptors[0]
    assert desc.protocol_support_enumeration == PROTOCOL_SAML2
    assert desc.name_id_formats == [NAMEID_FORMAT_TRANSIENT]
    assert [e.binding for e in desc.single_sign_on_services] == [
        HTTP_REDIRECT_BINDING,
        HTTP_POST_BINDING,
    ]
    assert all(e.location == idp.sso_url for e in desc.single_sign_on_services)
    assert desc.single_logout_services == []


def test_metadata_keys_carry_certificate(idp):
    desc = idp.metadata(NOW).idp_sso_descriptors[0]
    assert [k.use for k in desc.key_descriptors] == ["signing", "encryption"]
    encoded = base64.b64encode(CERT).decode()
    for key in desc.key_descriptors:
        assert key.certificates[0].data == encoded
    assert [m.algorithm for m in desc.key_descriptors[1].encryption_methods] == list(
        ENCRYPTION_ALGORITHMS
    )
    assert desc.key_descriptors[0].encryption_methods == []


def test_metadata_logout_and_custom_duration(idp):
    idp.logout_url = "https://idp.example.com/saml/logout"
    idp.valid_duration = 3_600_000_000_000
    md = idp.metadata(NOW)
    assert md.cache_duration == 3_600_000_000_000
    assert md.valid_until == NOW + timedelta(hours=1)
    slo = md.idp_sso_descriptors[0].single_logout_services
    assert [(e.binding, e.location) for e in slo] == [
        (HTTP_REDIRECT_BINDING, "https://idp.example.com/saml/logout")
    ]


def test_metadata_xml_round_trip(idp):
    md = idp.metadata(NOW)
    parsed = parse_entity_descriptor(md.to_xml())
    assert parsed == md


def test_parse_get_request(idp):
    payload = b"<samlp:AuthnRequest/>"
    encoded = base64.b64encode(_deflate(payload)).decode()
    req = parse_authn_request(idp, "GET", {"SAMLRequest": encoded, "RelayState": "state"})
    assert req.request_buffer == payload
    assert req.relay_state == "state"
    assert req.idp is idp


def test_parse_get_request_list_values(idp):
    payload = b"<x/>"
    encoded = base64.b64encode(_deflate(payload)).decode()
    req = parse_authn_request(idp, "GET", {"SAMLRequest": [encoded], "RelayState": ["a", "b"]})
    assert req.request_buffer == payload
    assert req.relay_state == "a"


def test_parse_post_request(idp):
    payload = b"<samlp:AuthnRequest ID='x'/>"
    form = {"SAMLRequest": base64.b64encode(payload).decode(), "RelayState": "rs"}
    req = parse_authn_request(idp, "POST", form=form)
    assert req.request_buffer == payload
    assert req.relay_state == "rs"


def test_parse_rejects_other_methods(idp):
    with pytest.raises(RequestError, match="method not allowed"):
        parse_authn_request(idp, "PUT")


def test_parse_rejects_bad_base64(idp):
    with pytest.raises(RequestError, match="cannot decode request"):
        parse_authn_request(idp, "GET", {"SAMLRequest": "!!!not base64"})


def test_parse_rejects_bad_compression(idp):
    encoded = base64.b64encode(b"\xff\xff\xff not deflate").decode()
    with pytest.raises(RequestError, match="cannot decompress request"):
        parse_authn_request(idp, "GET", {"SAMLRequest": encoded})


def test_parse_rejects_empty_get(idp):
    with pytest.raises(RequestError, match="cannot decompress request"):
        parse_authn_request(idp, "GET", {})


def test_select_by_index():
    first = IndexedEndpoint(HTTP_POST_BINDING, "https://sp.example.com/a", index=1)
    second = IndexedEndpoint(HTTP_POST_BINDING, "https://sp.example.com/b", index=2)
    sp = _sp(first, second)
    _, endpoint = select_acs_endpoint(sp, "https://sp.example.com/a", "2")
    assert endpoint is second
    _, endpoint = select_acs_endpoint(sp, "", 1)
    assert endpoint is first


def test_select_by_url_when_index_misses():
    first = IndexedEndpoint(HTTP_POST_BINDING, "https://sp.example.com/a", index=1)
    second = IndexedEndpoint(HTTP_POST_BINDING, "https://sp.example.com/b", index=2)
    descriptor, endpoint = select_acs_endpoint(_sp(first, second), "https://sp.example.com/b", "9")
    assert endpoint is second
    assert second in descriptor.assertion_consumer_services


def test_select_prefers_default():
    plain = IndexedEndpoint(HTTP_POST_BINDING, "https://sp.example.com/a", index=1)
    default = IndexedEndpoint(
        HTTP_REDIRECT_BINDING, "https://sp.example.com/b", index=2, is_default=True
    )
    _, endpoint = select_acs_endpoint(_sp(plain, default))
    assert endpoint is default


def test_select_falls_back_to_usable_binding():
    artifact = IndexedEndpoint(
        HTTP_ARTIFACT_BINDING, "https://sp.example.com/art", index=0, is_default=True
    )
    post = IndexedEndpoint(HTTP_POST_BINDING, "https://sp.example.com/post", index=1)
    _, endpoint = select_acs_endpoint(_sp(artifact, post), None, None)
    assert endpoint is post


def test_select_without_match_raises():
    post = IndexedEndpoint(HTTP_POST_BINDING, "https://sp.example.com/post", index=1)
    with pytest.raises(RequestError):
        select_acs_endpoint(_sp(post), "https://sp.example.com/other", "")
    with pytest.raises(RequestError):
        select_acs_endpoint(_sp(post), "", "5")
    with pytest.raises(RequestError):
        select_acs_endpoint(_sp())


def test_find_post_acs_endpoint():
    redirect = IndexedEndpoint(HTTP_REDIRECT_BINDING, "https://sp.example.com/r", index=0)
    post = IndexedEndpoint(HTTP_POST_BINDING, "https://sp.example.com/p", index=1)
    _, endpoint = find_post_acs_endpoint(_sp(redirect, post))
    assert endpoint is post
    with pytest.raises(RequestError, match="Assertion Customer Service"):
        find_post_acs_endpoint(_sp(redirect))
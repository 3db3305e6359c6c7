# samlkit

Building blocks for SAML 2.0 identity providers: parsing and producing
metadata, handling `xsd:duration` values, safely inflating HTTP-Redirect
payloads, choosing the assertion consumer service to answer, and building the
attribute list for a user.

## Installation

```
pip install samlkit
```

## Durations (`samlkit.duration`)

`xsd:duration` text is converted to and from a whole number of nanoseconds.
A month is taken as 30 days and a year as 365 days. Constants such as
`SECOND`, `HOUR` and `DAY` are provided in nanoseconds.

```python
from samlkit.duration import format_duration, parse_duration, InvalidDurationError

format_duration(3_600_000_000_000)   # "PT1H"
format_duration(0)                   # None
parse_duration("P1D")                # 86_400_000_000_000

try:
    parse_duration("P1.5Y")
except InvalidDurationError as exc:
    print(exc)                       # invalid duration (P1.5Y)
```

`InvalidDurationError` is a subclass of `ValueError`.

## Inflating redirect payloads (`samlkit.flate`)

Requests sent with the HTTP-Redirect binding are raw-deflated. `inflate_limited`
refuses output beyond a size limit (by default `FLATE_UNCOMPRESS_LIMIT`,
10 MiB) instead of exhausting memory:

```python
from samlkit.flate import inflate_limited, FlateLimitExceeded

xml_bytes = inflate_limited(compressed, 10 * 1024 * 1024)
```

Too much output raises `FlateLimitExceeded`; a corrupt or truncated stream
raises `ValueError`.

## Metadata (`samlkit.metadata`)

Metadata elements are dataclasses (`EntityDescriptor`, `SPSSODescriptor`,
`IDPSSODescriptor`, `KeyDescriptor`, `IndexedEndpoint`, …). XML is read with
`defusedxml`.

```python
from samlkit.metadata import parse_entity_descriptor, MetadataError

descriptor = parse_entity_descriptor(xml_bytes)
for sp in descriptor.sp_sso_descriptors:
    for acs in sp.assertion_consumer_services:
        print(acs.binding, acs.location, acs.index, acs.is_default)

print(descriptor.to_xml().decode())
```

`parse_entities_descriptor` reads an `EntitiesDescriptor` document in the same
way, and both `EntityDescriptor` and `EntitiesDescriptor` offer `to_element()`
and `to_xml()`. Times are `datetime` values in UTC; cache durations are
nanoseconds.

Endpoint locations for the well-known bindings (HTTP-POST, HTTP-Redirect,
HTTP-Artifact, SOAP) must use `http` or `https`; anything else, such as a
`javascript:` URL, raises `MetadataError`. For other bindings the location
cannot be checked and is read as an empty string.
`check_endpoint_location(binding, location)` applies the same rule on its own.
Malformed XML, a wrong root element, or bad booleans, integers, times and
durations also raise `MetadataError`.

## Identity provider (`samlkit.identity_provider`)

```python
from samlkit.identity_provider import (
    IdentityProvider, parse_authn_request, select_acs_endpoint, RequestError,
)

idp = IdentityProvider(
    certificate=cert_der_bytes,
    metadata_url="https://idp.example.com/metadata",
    sso_url="https://idp.example.com/sso",
)
metadata = idp.metadata()           # an EntityDescriptor, valid for 48 hours by default

request = parse_authn_request(idp, "GET", query={"SAMLRequest": [encoded], "RelayState": ["abc"]})
print(request.request_buffer, request.relay_state)

descriptor, endpoint = select_acs_endpoint(sp_metadata, acs_url="", acs_index="")
```

- `parse_authn_request(idp, method, query, form)` decodes a deflated request
  from the query for `GET` and a plain base64 request from the form for
  `POST`; other methods, and undecodable input, raise `RequestError`.
  Parameter values may be strings or lists of strings.
- `select_acs_endpoint` prefers a matching index, then a matching URL; with
  neither given it takes a default POST or Redirect endpoint, else the first
  such endpoint. If nothing fits it raises `RequestError`.
- `find_post_acs_endpoint` returns the first HTTP-POST assertion consumer
  service, or raises `RequestError`.
- `ServiceProviderNotFound` is an exception class for code that looks up
  service providers; the package itself does not raise it.

## Attributes (`samlkit.attributes`)

`make_attributes(session, sp_descriptor)` builds the attribute list for an
assertion from a `Session`. Attributes the service provider requests by basic
or unspecified name (e-mail, name, given name, surname, user id) come first,
followed by the standard URI-named attributes, the session's custom
attributes, group membership and the subject identifier.
`select_attribute_consuming_service` picks the service provider's default
attribute consuming service, else its first, else an empty one.

## What the package does not do

There is no HTTP server or request handler, and no command-line program. The
package does not validate the XML of an `AuthnRequest`, look up service
providers, check request expiry or destination, build, sign or encrypt
assertions and responses, or render the auto-submitting POST form. These are
left to the application using it.

## Running the tests

```
pip install -e .[test]
pytest
```
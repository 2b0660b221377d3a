"""SAML assertion scraping and parsing.

The IdP hands the assertion to the browser as a self-posting HTML form; the
``SAMLResponse`` input holds the base64-encoded XML document.
"""

import base64
import binascii
import logging
import xml.etree.ElementTree as ET

from bs4 import BeautifulSoup

from okta_broker.errors import AssertionMalformed, AssertionNotFound, RoleAttributeMalformed
from okta_broker.models import SamlRole

log = logging.getLogger(__name__)

SAML_ROLE_ATTRIBUTE = "https://aws.amazon.com/SAML/Attributes/Role"

ASSERTION_NS = "urn:oasis:names:tc:SAML:2.0:assertion"
PROTOCOL_NS = "urn:oasis:names:tc:SAML:2.0:protocol"


class SamlAssertion:
    """A SAML response as found in an HTML form.

    ``raw`` keeps the still-encoded value, which is what AWS expects back;
    ``xml`` is the decoded document and ``root`` its parsed element tree.
    """

    def __init__(self, raw, xml):
        self.raw = raw
        self.xml = xml
        try:
            self.root = ET.fromstring(xml)
        except ET.ParseError as exc:
            raise AssertionMalformed(f"SAMLResponse is not valid XML: {exc}") from exc


def parse_assertion(html):
    """Locate the ``SAMLResponse`` input in *html* and decode it.

    Raises AssertionNotFound when the page has no such field and
    AssertionMalformed when its value is not base64 encoded XML.
    """
    soup = BeautifulSoup(html, "lxml")
    tag = soup.find("input", {"name": "SAMLResponse"})
    if not tag or not tag.get("value"):
        raise AssertionNotFound(
            "Could not find SAMLResponse in the IdP response. "
            "Verify that the app URL is the embed link of the AWS app."
        )

    raw = tag["value"]
    try:
        xml = base64.b64decode("".join(raw.split()), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise AssertionMalformed(f"SAMLResponse is not base64 encoded XML: {exc}") from exc
    return SamlAssertion(raw, xml)


def extract_roles(assertion):
    """Return the ``principal,role`` pairs of the AWS Role attribute, in document order.

    A value that is not exactly two comma separated ARNs fails the whole
    parse instead of being skipped.
    """
    roles = []
    for attr in assertion.root.iter():
        if _local_name(attr.tag) != "Attribute" or attr.get("Name") != SAML_ROLE_ATTRIBUTE:
            continue
        for value_el in attr:
            if _local_name(value_el.tag) == "AttributeValue":
                roles.append(_parse_role_value((value_el.text or "").strip()))
    log.debug("SAML assertion grants %d role(s)", len(roles))
    return roles


def extract_destination(assertion):
    """Return the ``Destination`` of the ``Response`` element, or None."""
    for el in assertion.root.iter():
        if _local_name(el.tag) == "Response":
            return el.get("Destination")
    return None


def _local_name(tag):
    return tag.rsplit("}", 1)[-1]


def _parse_role_value(text):
    principal_arn, sep, role_arn = text.partition(",")
    principal_arn = principal_arn.strip()
    role_arn = role_arn.strip()
    if not sep or not principal_arn or not role_arn or "," in role_arn:
        raise RoleAttributeMalformed(f"Role attribute value is not 'principal,role': {text!r}")
    return SamlRole(principal_arn=principal_arn, role_arn=role_arn)

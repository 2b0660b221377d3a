"""Okta session token -> AWS IAM Identity Center portal bearer token.

The exchange mirrors what a browser does when opening the Okta "AWS IAM
Identity Center" tile:

1. the Okta app page posts a SAML assertion to the portal's ACS endpoint,
2. the portal redirects to ``https://{org-id}.awsapps.com/...`` with a
   ``workflowResultHandle`` query parameter,
3. the handle and org id are traded for a bearer token at ``/auth/sso-token``.
"""

import logging
from urllib.parse import parse_qs, urlparse

from okta_broker.errors import MissingField
from okta_broker.http import AcceptType, decode_json, ensure_ok
from okta_broker.saml import extract_destination, parse_assertion

log = logging.getLogger(__name__)


class SsoPortalLogin:
    def __init__(self, client):
        self.client = client

    def run(self, app_url, session_token, portal_url):
        """Return the portal bearer token for *session_token*."""
        saml, destination = self.try_saml(app_url, session_token)
        org_id, auth_code = self.workflow_start(saml, destination)
        return self.token(portal_url, auth_code, org_id)

    def try_saml(self, app_url, session_token):
        response = self.client.get(
            app_url, params={"sessionToken": session_token}, accept=AcceptType.HTML
        )
        ensure_ok(response, app_url)

        assertion = parse_assertion(response.text)
        destination = extract_destination(assertion)
        if not destination:
            raise MissingField("saml", "Destination")
        log.debug("SAML destination: %s", destination)
        return assertion.raw, destination

    def workflow_start(self, saml, destination):
        response = self.client.post_form(
            destination, {"SAMLResponse": saml, "RelayState": ""}, accept=AcceptType.HTML
        )
        ensure_ok(response, destination)

        # the redirect lands on "{org-id}.awsapps.com"
        final_url = urlparse(response.url)
        host = final_url.hostname
        if not host:
            raise MissingField("workflow", "host")
        org_id = host.split(".")[0]

        handles = parse_qs(final_url.query).get("workflowResultHandle")
        if not handles:
            raise MissingField("workflow", "workflowResultHandle")
        log.debug("Workflow started for org %s", org_id)
        return org_id, handles[0]

    def token(self, portal_url, auth_code, org_id):
        parsed = urlparse(portal_url)
        token_url = f"{parsed.scheme}://{parsed.netloc}/auth/sso-token"

        response = self.client.post_form(
            token_url, {"authCode": auth_code, "orgId": org_id}, accept=AcceptType.JSON
        )
        ensure_ok(response, token_url)

        token = decode_json(response, token_url).get("token")
        if not token:
            raise MissingField("token", "token")
        return token

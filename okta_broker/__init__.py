"""okta-broker: temporary AWS credentials from an Okta login with MFA.

Authenticates to Okta (including MFA), retrieves the SAML assertion of the
AWS app and exchanges it either directly with STS or through the AWS IAM
Identity Center portal.
"""

__version__ = "0.1.0"

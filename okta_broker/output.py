"""Credential output formats."""

import configparser
import enum
import json
import os

from okta_broker.errors import OktaBrokerError

AWS_CREDENTIALS_PATH = os.path.expanduser("~/.aws/credentials")
DEFAULT_PROFILE = "okta"


class OutputFormat(enum.Enum):
    ENV = "env"
    AWS_PROFILE = "aws-profile"
    CREDENTIALS_FILE = "credentials-file"


def _single(credentials):
    if len(credentials) != 1:
        raise OktaBrokerError(
            f"command should return 1 credential, but got {len(credentials)}"
        )
    return credentials[0]


def format_env(credentials):
    """Shell ``export`` statements, one block per credential."""
    blocks = []
    for credential in credentials:
        if not credential.role_arn:
            raise OktaBrokerError("role arn missing for credential")
        blocks.append(
            f'export AWS_ROLE_ARN="{credential.role_arn}"\n'
            f'export AWS_ACCESS_KEY_ID="{credential.access_key_id}"\n'
            f'export AWS_SECRET_ACCESS_KEY="{credential.secret_access_key}"\n'
            f'export AWS_SESSION_TOKEN="{credential.session_token}"\n'
        )
    return "\n".join(blocks)


def format_credential_process(credentials):
    """JSON understood by the AWS CLI ``credential_process`` setting."""
    credential = _single(credentials)
    return json.dumps(
        {
            "Version": 1,
            "AccessKeyId": credential.access_key_id,
            "SecretAccessKey": credential.secret_access_key,
            "SessionToken": credential.session_token,
            "Expiration": credential.expiration,
        }
    )


def write_aws_credentials(credentials, profile, path=AWS_CREDENTIALS_PATH):
    """Write one credential to the shared credentials file under *profile*.

    The file is rewritten with mode 0o600; other profiles are kept.
    """
    credential = _single(credentials)
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    creds_config = configparser.ConfigParser(interpolation=None)
    if os.path.exists(path):
        creds_config.read(path)

    if not creds_config.has_section(profile):
        creds_config.add_section(profile)

    creds_config.set(profile, "aws_access_key_id", credential.access_key_id)
    creds_config.set(profile, "aws_secret_access_key", credential.secret_access_key)
    creds_config.set(profile, "aws_session_token", credential.session_token)

    with open(path, "w") as fh:
        creds_config.write(fh)
    os.chmod(path, 0o600)

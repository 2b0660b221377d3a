import configparser
import json
import os
import stat

import pytest

from okta_broker.errors import OktaBrokerError
from okta_broker.models import Credential
from okta_broker.output import format_credential_process, format_env, write_aws_credentials

from .conftest import ADMIN_ROLE_ARN, DEV_ROLE_ARN


def credential(role_arn=DEV_ROLE_ARN, key="ASIADEV"):
    return Credential(key, "secret", "token", "2030-01-01T00:00:00+00:00", role_arn=role_arn)


def test_env_blocks():
    out = format_env([credential(), credential(ADMIN_ROLE_ARN, "ASIAADMIN")])

    assert out.count("export AWS_ACCESS_KEY_ID=") == 2
    assert f'export AWS_ROLE_ARN="{DEV_ROLE_ARN}"' in out
    assert 'export AWS_ACCESS_KEY_ID="ASIAADMIN"' in out


def test_env_needs_role_arn():
    with pytest.raises(OktaBrokerError):
        format_env([credential(role_arn=None)])


def test_credential_process():
    data = json.loads(format_credential_process([credential()]))

    assert data == {
        "Version": 1,
        "AccessKeyId": "ASIADEV",
        "SecretAccessKey": "secret",
        "SessionToken": "token",
        "Expiration": "2030-01-01T00:00:00+00:00",
    }


def test_credential_process_needs_exactly_one():
    with pytest.raises(OktaBrokerError, match="command should return 1 credential, but got 2"):
        format_credential_process([credential(), credential(ADMIN_ROLE_ARN)])


def test_write_credentials_file_keeps_other_profiles(tmp_path):
    path = str(tmp_path / ".aws" / "credentials")
    os.makedirs(os.path.dirname(path))
    with open(path, "w") as fh:
        fh.write("[default]\naws_access_key_id = AKIAKEEP\n")

    write_aws_credentials([credential()], "okta", path=path)

    written = configparser.ConfigParser()
    written.read(path)
    assert written["default"]["aws_access_key_id"] == "AKIAKEEP"
    assert written["okta"]["aws_access_key_id"] == "ASIADEV"
    assert written["okta"]["aws_session_token"] == "token"
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

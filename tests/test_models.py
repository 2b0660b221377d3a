"""Tests for the value types."""

import datetime

import pytest

from okta_broker.errors import ArnMalformed
from okta_broker.models import Credential, Role, rfc3339_from_millis


class TestRole:
    def test_parse_role_arn(self):
        role = Role.from_arn("arn:aws:iam::000222111000:role/the arn")

        assert role.account_id == "000222111000"
        assert role.role_name == "the arn"

    @pytest.mark.parametrize(
        "role",
        [
            Role("123456789012", "Admin"),
            Role("000000000001", "team/ReadOnly"),
            Role("999999999999", "with space"),
        ],
    )
    def test_arn_round_trip(self, role):
        assert role.arn.startswith("arn:aws:iam::")
        assert Role.from_arn(role.arn) == role

    @pytest.mark.parametrize(
        "arn",
        [
            "",
            None,
            "Admin",
            "arn:aws:iam::123456789012:user/Admin",
            "arn:aws:iam::12345:role/Admin",
            "arn:aws:iam::123456789012:role/",
            "arn:aws:sts::123456789012:assumed-role/Admin/jane",
            "arn:aws:iam::123456789012:saml-provider/Okta",
            "xarn:aws:iam::123456789012:role/Admin",
            "arn:aws:iam::123456789012:role/Admin\n",
        ],
    )
    def test_malformed_arn(self, arn):
        with pytest.raises(ArnMalformed):
            Role.from_arn(arn)


class TestCredential:
    def _credential(self, expiration):
        return Credential(
            access_key_id="ASIAEXAMPLE",
            secret_access_key="secret",
            session_token="token",
            role_arn="arn:aws:iam::123456789012:role/Dev",
            expiration=expiration,
        )

    def test_dict_keys_are_camel_case(self):
        data = self._credential("2030-01-01T00:00:00+00:00").to_dict()

        assert data == {
            "accessKeyId": "ASIAEXAMPLE",
            "secretAccessKey": "secret",
            "sessionToken": "token",
            "roleArn": "arn:aws:iam::123456789012:role/Dev",
            "expiration": "2030-01-01T00:00:00+00:00",
        }
        assert Credential.from_dict(data) == self._credential("2030-01-01T00:00:00+00:00")

    def test_expiry(self):
        now = datetime.datetime(2024, 6, 1, 12, 0, tzinfo=datetime.timezone.utc)

        assert self._credential("2024-06-01T11:59:59+00:00").is_expired(now)
        assert not self._credential("2024-06-01T13:00:00Z").is_expired(now)


def test_rfc3339_from_millis():
    assert rfc3339_from_millis(1700000000000) == "2023-11-14T22:13:20+00:00"

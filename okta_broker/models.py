"""Value types passed between the IdP and AWS halves of the pipeline."""

import datetime
import re
from dataclasses import dataclass
from typing import Optional

from okta_broker.errors import ArnMalformed

ROLE_ARN_PATTERN = re.compile(r"arn:aws:iam::(\d{12}):role/(.+)")


@dataclass(frozen=True)
class Role:
    """An assumable role, identified by account and role name."""

    account_id: str
    role_name: str

    @property
    def arn(self):
        return f"arn:aws:iam::{self.account_id}:role/{self.role_name}"

    @classmethod
    def from_arn(cls, arn):
        """Parse ``arn:aws:iam::{account}:role/{name}``; raise ArnMalformed otherwise."""
        match = ROLE_ARN_PATTERN.fullmatch(arn or "")
        if not match:
            raise ArnMalformed(f"not an IAM role ARN: {arn!r}")
        return cls(account_id=match.group(1), role_name=match.group(2))


@dataclass(frozen=True)
class SamlRole:
    """A ``principal,role`` pair granted by a SAML assertion."""

    principal_arn: str
    role_arn: str


@dataclass(frozen=True)
class Account:
    account_id: str
    account_name: str
    email_address: str

    @classmethod
    def from_api(cls, data):
        return cls(
            account_id=data["accountId"],
            account_name=data.get("accountName", data["accountId"]),
            email_address=data.get("emailAddress", ""),
        )


@dataclass(frozen=True)
class Credential:
    """Temporary AWS credentials for one role."""

    access_key_id: str
    secret_access_key: str
    session_token: str
    expiration: str
    role_arn: Optional[str] = None

    def expires_at(self):
        return datetime.datetime.fromisoformat(self.expiration.replace("Z", "+00:00"))

    def is_expired(self, now=None):
        now = now or datetime.datetime.now(datetime.timezone.utc)
        return now >= self.expires_at()

    def to_dict(self):
        return {
            "accessKeyId": self.access_key_id,
            "secretAccessKey": self.secret_access_key,
            "sessionToken": self.session_token,
            "roleArn": self.role_arn,
            "expiration": self.expiration,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            access_key_id=data["accessKeyId"],
            secret_access_key=data["secretAccessKey"],
            session_token=data["sessionToken"],
            role_arn=data.get("roleArn"),
            expiration=data["expiration"],
        )


def rfc3339_from_millis(millis):
    """Convert a millisecond epoch timestamp to an RFC 3339 UTC string."""
    moment = datetime.datetime.fromtimestamp(millis / 1000, tz=datetime.timezone.utc)
    return moment.isoformat()

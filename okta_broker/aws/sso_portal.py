"""AWS IAM Identity Center portal API.

The portal is reached through boto3's ``sso`` client, which needs no AWS
credentials: every call is authorised by the bearer token obtained from
:class:`okta_broker.aws.sso_login.SsoPortalLogin`, passed as ``accessToken``.
"""

import logging
import time

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from okta_broker.errors import AwsApiError, ProtocolViolation
from okta_broker.fanout import map_ordered
from okta_broker.http import paginate, retry
from okta_broker.models import Account, Credential, Role, rfc3339_from_millis

log = logging.getLogger(__name__)

PAGE_SIZE = 100


def portal_url(region):
    return f"https://portal.sso.{region}.amazonaws.com"


def sso_client(region):
    # retries are done by okta_broker.http.retry, not by botocore
    return boto3.client("sso", region_name=region, config=Config(retries={"max_attempts": 1}))


class SsoPortal:
    """Raw portal calls: listings are paginated, every call is retried.

    *sleep* paces the retries and can be replaced in tests.
    """

    def __init__(self, client, sleep=time.sleep):
        self.client = client
        self.sleep = sleep

    def _call(self, operation, **params):
        method = getattr(self.client, operation)

        def attempt():
            try:
                return method(**params)
            except (BotoCoreError, ClientError) as exc:
                raise AwsApiError(f"sso {operation} failed: {exc}") from exc

        return retry(attempt, AwsApiError, self.sleep)

    def _list(self, operation, item_key, **params):
        def fetch_page(next_token):
            page_params = dict(params, maxResults=PAGE_SIZE)
            if next_token:
                page_params["nextToken"] = next_token
            return self._call(operation, **page_params)

        return paginate(fetch_page, item_key)

    def list_accounts(self, token):
        items = self._list("list_accounts", "accountList", accessToken=token)
        return [Account.from_api(item) for item in items]

    def list_roles(self, token, account_id):
        items = self._list(
            "list_account_roles", "roleList", accessToken=token, accountId=account_id
        )
        return [
            Role(account_id=item.get("accountId", account_id), role_name=item["roleName"])
            for item in items
        ]

    def generate_credentials(self, token, role):
        response = self._call(
            "get_role_credentials",
            accessToken=token,
            accountId=role.account_id,
            roleName=role.role_name,
        )
        creds = response.get("roleCredentials")
        if not creds:
            raise ProtocolViolation("required key 'roleCredentials' not in response")

        try:
            return Credential(
                access_key_id=creds["accessKeyId"],
                secret_access_key=creds["secretAccessKey"],
                session_token=creds["sessionToken"],
                role_arn=role.arn,
                expiration=rfc3339_from_millis(creds["expiration"]),
            )
        except KeyError as exc:
            raise ProtocolViolation(f"required key {exc.args[0]!r} not in roleCredentials") from exc


class SsoPortalClient:
    """Fans portal calls out across accounts and roles."""

    def __init__(self, api):
        self.api = api

    def list_role_arns(self, token):
        """List every role of every account; accounts are queried concurrently."""
        accounts = self.api.list_accounts(token)
        log.debug("Portal lists %d account(s)", len(accounts))

        per_account = map_ordered(
            lambda account: self.api.list_roles(token, account.account_id), accounts
        )
        return [role for roles in per_account for role in roles]

    def list_credentials(self, token, roles):
        return map_ordered(lambda role: self.api.generate_credentials(token, role), roles)

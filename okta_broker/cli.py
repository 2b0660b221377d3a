"""okta-broker command line."""

import argparse
import logging
import sys

from okta_broker import __version__
from okta_broker.aws.sts import DEFAULT_REGION
from okta_broker.config import AppConfig, Host
from okta_broker.errors import OktaBrokerError
from okta_broker.keystore import (
    SecretStore,
    get_cached_credential,
    get_password,
    set_cached_credential,
)
from okta_broker.okta.client import OktaClient, SsoProvider
from okta_broker.okta.transaction import MfaSelection
from okta_broker.output import (
    DEFAULT_PROFILE,
    AWS_CREDENTIALS_PATH,
    OutputFormat,
    format_credential_process,
    format_env,
    write_aws_credentials,
)
from okta_broker.prompt import ConsolePrompt
from okta_broker.webauthn import Fido2Signer

log = logging.getLogger(__name__)


def _build_parser():
    parser = argparse.ArgumentParser(
        prog="okta-broker",
        description="Exchange Okta credentials (with MFA) for temporary AWS credentials.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  okta-broker config add aws --app-url https://corp.okta.com/home/amazon_aws/0oa1/272 -u jane
  okta-broker creds aws                                 All roles, shell exports
  okta-broker creds aws -r arn:aws:iam::123456789012:role/Dev --output aws-profile
  okta-broker creds aws --sso-provider okta-aws-sso --region eu-central-1
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="Path to config file (default: ~/.okta-broker)")
    parser.add_argument("--debug", action="store_true",
                        help="Log requests and protocol steps to stderr")
    commands = parser.add_subparsers(dest="command", required=True)

    # config add aws|aws-sso
    config_cmd = commands.add_parser("config", help="Manage configured Okta apps")
    config_sub = config_cmd.add_subparsers(dest="config_command", required=True)
    add_cmd = config_sub.add_parser("add", help="Add or update an Okta app")
    add_sub = add_cmd.add_subparsers(dest="provider", required=True)
    for name, needs_region in (("aws", False), ("aws-sso", True)):
        p = add_sub.add_parser(name, help=f"Okta {name} app")
        p.add_argument("--app-url", required=True, help="Okta AWS app embed link URL")
        p.add_argument("-u", "--username", required=True, help="Okta username")
        p.add_argument("-r", "--region", required=needs_region,
                       help="IAM Identity Center region" if needs_region else argparse.SUPPRESS)
        p.add_argument("-m", "--mfa", help="Preferred MFA: webauthn, totp, push")
        p.add_argument("--mfa-provider", help="TOTP provider, e.g. google or okta")

    # creds aws
    creds_cmd = commands.add_parser("creds", help="Print temporary credentials")
    creds_sub = creds_cmd.add_subparsers(dest="creds_command", required=True)
    aws = creds_sub.add_parser("aws", help="AWS credentials")
    aws.add_argument("--app-url", help="Okta AWS app embed link URL (overrides config)")
    aws.add_argument("-u", "--username", help="Okta username (overrides config)")
    aws.add_argument("-w", "--with-password", action="store_true",
                     help="Prompt for the password even if one is stored")
    aws.add_argument("-r", "--role-arn", help="Only fetch credentials for this role")
    aws.add_argument("--region",
                     help="IAM Identity Center region (okta-aws-sso) or STS region (okta-aws)")
    aws.add_argument("-m", "--mfa", help="MFA to use: webauthn, totp, push")
    aws.add_argument("--mfa-provider", help="TOTP provider, e.g. google or okta")
    aws.add_argument("--output", choices=[f.value for f in OutputFormat],
                     default=OutputFormat.ENV.value, help="Output format (default: env)")
    aws.add_argument("--profile", default=DEFAULT_PROFILE,
                     help=f"Profile for --output credentials-file (default: {DEFAULT_PROFILE})")
    aws.add_argument("--cached", action="store_true",
                     help="Reuse an unexpired cached credential for --role-arn")
    aws.add_argument("--sso-provider", choices=[p.value for p in SsoProvider],
                     help="Which Okta AWS integration to use (overrides config)")
    return parser


def _configure_logging(debug):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="[%(levelname)s] %(message)s",
        stream=sys.stderr,
    )
    if debug:
        # botocore is very chatty at DEBUG
        logging.getLogger("botocore").setLevel(logging.INFO)
        logging.getLogger("urllib3").setLevel(logging.INFO)


def config_add(args, settings):
    provider = SsoProvider.OKTA_AWS if args.provider == "aws" else SsoProvider.OKTA_AWS_SSO
    if args.mfa:
        MfaSelection.from_string(args.mfa)
    host = Host(
        provider,
        args.app_url,
        args.username,
        region=getattr(args, "region", None),
        mfa=args.mfa,
        mfa_provider=args.mfa_provider,
    )
    settings.add_host(host)
    settings.write()
    print(f"Saved {args.provider} app {host.app_url} to {settings.path}", file=sys.stderr)


def _resolve(args, settings):
    """Merge command line and config values; the command line wins."""
    provider = SsoProvider(args.sso_provider) if args.sso_provider else settings.provider()
    host = settings.find_host(provider, args.app_url)

    def cf(arg_val, attr):
        if arg_val is not None:
            return arg_val
        return getattr(host, attr) if host else None

    app_url = cf(args.app_url, "app_url")
    username = cf(args.username, "username")
    if not app_url:
        raise OktaBrokerError("please supply an app-url")
    if not username:
        raise OktaBrokerError("please supply a username")

    mfa = cf(args.mfa, "mfa")
    resolved = {
        "provider": provider,
        "app_url": app_url,
        "username": username,
        "mfa": MfaSelection.from_string(mfa) if mfa else None,
        "mfa_provider": cf(args.mfa_provider, "mfa_provider"),
        "region": cf(args.region, "region"),
    }
    if provider == SsoProvider.OKTA_AWS_SSO and not resolved["region"]:
        raise OktaBrokerError("please supply a region")
    return resolved


def _emit(credentials, args):
    output = OutputFormat(args.output)
    if output == OutputFormat.ENV:
        print(format_env(credentials))
    elif output == OutputFormat.AWS_PROFILE:
        print(format_credential_process(credentials))
    else:
        write_aws_credentials(credentials, args.profile)
        print(f"Credentials written to profile '{args.profile}' ({AWS_CREDENTIALS_PATH})",
              file=sys.stderr)


def creds_aws(args, settings, prompt, okta_client_factory=None):
    store = SecretStore(enabled=settings.keyring_enabled())

    if args.cached and args.role_arn:
        cached = get_cached_credential(store, args.role_arn)
        if cached:
            log.debug("Using cached credential for %s", args.role_arn)
            _emit([cached], args)
            return

    resolved = _resolve(args, settings)
    password = get_password(
        store, prompt, resolved["app_url"], resolved["username"], args.with_password
    )

    if okta_client_factory is None:
        sts_region = settings.region() or DEFAULT_REGION
        if resolved["provider"] == SsoProvider.OKTA_AWS and resolved["region"]:
            sts_region = resolved["region"]
        client = OktaClient(prompt, Fido2Signer(prompt), region=sts_region)
    else:
        client = okta_client_factory(prompt)

    if resolved["provider"] == SsoProvider.OKTA_AWS:
        credentials = client.aws_credentials(
            resolved["username"], password, resolved["app_url"], args.role_arn,
            resolved["mfa"], resolved["mfa_provider"],
        )
    else:
        credentials = client.aws_sso_credentials(
            resolved["username"], password, resolved["app_url"], resolved["region"],
            args.role_arn, resolved["mfa"], resolved["mfa_provider"],
        )

    _emit(credentials, args)
    if args.role_arn and len(credentials) == 1:
        set_cached_credential(store, args.role_arn, credentials[0])


def main(argv=None, prompt=None, okta_client_factory=None):
    args = _build_parser().parse_args(argv)
    _configure_logging(args.debug)
    prompt = prompt or ConsolePrompt()

    try:
        settings = AppConfig(args.config)
        if args.command == "config":
            config_add(args, settings)
        else:
            creds_aws(args, settings, prompt, okta_client_factory)
    except OktaBrokerError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

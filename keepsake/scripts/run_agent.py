#!/usr/bin/env python3
"""Run the keepsake agent: keep a Vault PKI certificate and its token renewed forever."""

import argparse
import sys
import time
from collections.abc import Callable, Mapping, Sequence
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from keepsake.lib.agent import Agent
from keepsake.lib.bootstrap import resolve_credential
from keepsake.lib.config import (
    ENVIRONMENT_VARIABLES,
    AgentConfig,
    VaultConfig,
    read_token,
)
from keepsake.lib.credential import CredentialHolder
from keepsake.lib.errors import ConfigurationError, KeepsakeError
from keepsake.lib.issuance import CertificateIssuanceCycle
from keepsake.lib.logging_config import LOGGER, set_log_level
from keepsake.lib.models import Credential, IssuanceRequest, OutputPaths
from keepsake.lib.token_renewal import TokenRenewalCycle
from keepsake.lib.vault_gateway import VaultGateway

PROJECT_URL = "https://github.com/freman/keepsake"


def get_version() -> str:
    try:
        return version("keepsake")
    except PackageNotFoundError:
        return "Undefined"


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser; the epilog lists the Vault environment variables."""
    epilog = "Environment variables:\n" + "\n".join(f"  {e}" for e in ENVIRONMENT_VARIABLES)
    parser = argparse.ArgumentParser(
        prog="keepsake",
        description="Automatic PKI key/cert management with Vault",
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--vault-path", default="pki", help="Path for pki (default: pki)")
    parser.add_argument("--vault-role", default="server", help="Role for pki (default: server)")
    parser.add_argument("--cn", default="", help="Certificate common name (required)")
    parser.add_argument("--alt-names", default="", help="Comma separated list of alt-names")
    parser.add_argument(
        "--ip-sans",
        default="127.0.0.1",
        help="Comma separated list of alternate ips (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--cert-ttl",
        default="",
        help="TTL of the certificate issued, passed to Vault as-is (e.g. 72h)",
    )
    parser.add_argument("--cert-file", type=Path, help="Output certificate file (required)")
    parser.add_argument("--key-file", type=Path, help="Output key file (required)")
    parser.add_argument("--ca-file", type=Path, help="Output ca file (required)")
    parser.add_argument("--cmd", default="", help="Command to execute after each issuance")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    return parser


def config_from_args(args: argparse.Namespace) -> AgentConfig:
    """Build AgentConfig from parsed arguments.

    Raises:
        ConfigurationError: If a required value is missing
    """
    return AgentConfig(
        request=IssuanceRequest(
            mount=args.vault_path,
            role=args.vault_role,
            common_name=args.cn,
            ip_sans=args.ip_sans,
            alt_names=args.alt_names,
            ttl=args.cert_ttl,
        ),
        outputs=OutputPaths(
            cert_file=args.cert_file or Path(""),
            key_file=args.key_file or Path(""),
            ca_file=args.ca_file or Path(""),
        ),
        hook_command=args.cmd,
    )


def run_agent(
    config: AgentConfig,
    vault_config: VaultConfig,
    token: str,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Bootstrap the credential, then run both renewal cycles until one fails.

    Only returns by raising.
    """
    holder = CredentialHolder(Credential(token=token, lease_seconds=0))
    gateway = VaultGateway.from_config(vault_config, holder)

    # The first renewal is scheduled from the lease seen here, without
    # subtracting time spent before the cycle starts.
    resolve_credential(gateway, holder, token)

    agent = Agent(
        token_cycle=TokenRenewalCycle(gateway, holder, sleep=sleep),
        issuance_cycle=CertificateIssuanceCycle(
            gateway,
            config.request,
            config.outputs,
            hook_command=config.hook_command,
            sleep=sleep,
        ),
    )
    agent.run()


def main(argv: Sequence[str] | None = None, environ: Mapping[str, str] | None = None) -> int:
    """Run the agent.

    Returns:
        Exit code (0 for --version, 1 for any fatal failure)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"keepsake - {get_version()}")
        print(PROJECT_URL)
        return 0

    set_log_level(args.log_level)

    try:
        config = config_from_args(args)
    except ConfigurationError as e:
        parser.print_usage(sys.stderr)
        LOGGER.error("%s: %s", type(e).__name__, e, extra=e.context)
        return 1

    try:
        vault_config = VaultConfig.from_env(environ)
        token = read_token(environ)

        LOGGER.info(
            "Starting keepsake",
            extra={"path": config.request.path, "common_name": config.request.common_name},
        )
        run_agent(config, vault_config, token)
        return 1

    except KeepsakeError as e:
        LOGGER.error("%s: %s", type(e).__name__, e, extra=e.context)
        return 1
    except Exception as e:
        LOGGER.error("Agent failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())

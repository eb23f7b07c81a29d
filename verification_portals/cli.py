"""CLI entry point for the verification service."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import uvicorn

from verification_portals.core.settings import get_settings
from verification_portals.core.utils import setup_logging
from verification_portals.enums import ProviderKind
from verification_portals.models import VerificationResponse
from verification_portals.services import PROFILES, VerificationService


def main() -> int:
    """
    Main CLI entry point.

        int: Exit code (0 for success).
    """
    parser = argparse.ArgumentParser(
        description="Verification Portals Service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Server command
    server_parser = subparsers.add_parser("server", help="Start the API server")
    server_parser.add_argument("--host", default=None, help="Server host")
    server_parser.add_argument("--port", type=int, default=None, help="Server port")
    server_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    # Verify command
    verify_parser = subparsers.add_parser("verify", help="Run one verification and print it")
    verify_parser.add_argument(
        "provider", choices=[kind.value for kind in ProviderKind], help="Provider to check"
    )
    verify_parser.add_argument(
        "--identifier",
        required=True,
        help="Certificate number, share code or registration number",
    )
    verify_parser.add_argument("--first-name", default=None, help="Person's first name")
    verify_parser.add_argument("--last-name", default=None, help="Person's surname")
    verify_parser.add_argument("--dob", default=None, help="Date of birth (YYYY-MM-DD)")
    verify_parser.add_argument("--profession", default=None, help="Profession (HCPC)")
    verify_parser.add_argument(
        "--evidence-dir", default=None, help="Directory to write snapshot.png and document.pdf"
    )

    # Providers command
    subparsers.add_parser("providers", help="List supported providers")

    args = parser.parse_args()

    if args.command == "server":
        return run_server(args)
    elif args.command == "verify":
        return run_verify(args)
    elif args.command == "providers":
        return list_providers()
    else:
        parser.print_help()
        return 0


def run_server(args: argparse.Namespace) -> int:
    """
    Run the API server.

    Args:
        args (argparse.Namespace): Parsed command line arguments.

        int: Exit code (0 for success).
    """
    settings = get_settings()

    host = args.host or settings.api_server.host
    port = args.port or settings.api_server.port

    uvicorn.run(
        app="verification_portals.api.server:app",
        host=host,
        port=port,
        reload=args.reload,
    )
    return 0


def build_request(args: argparse.Namespace) -> dict[str, Any]:
    """
    Build a request body from command line arguments.

    Args:
        args (argparse.Namespace): Parsed command line arguments.

    Returns:
        dict[str, Any]: Request body with unset options left out.
    """
    body = {
        "identifier": args.identifier,
        "first_name": args.first_name,
        "last_name": args.last_name,
        "date_of_birth": args.dob,
        "profession": args.profession,
    }
    return {key: value for key, value in body.items() if value is not None}


def run_verify(args: argparse.Namespace) -> int:
    """
    Run one verification and print the result as JSON.

    Args:
        args (argparse.Namespace): Parsed command line arguments.

    Returns:
        int: 0 if the provider confirmed the credential, 1 otherwise.
    """
    settings = get_settings()
    setup_logging(settings=settings.logging)

    service = VerificationService(settings)
    result = asyncio.run(service.verify(args.provider, build_request(args)))

    if args.evidence_dir:
        evidence_dir = Path(args.evidence_dir)
        evidence_dir.mkdir(parents=True, exist_ok=True)
        if result.evidence.snapshot is not None:
            (evidence_dir / "snapshot.png").write_bytes(result.evidence.snapshot)
        if result.evidence.document is not None:
            (evidence_dir / "document.pdf").write_bytes(result.evidence.document)

    response = VerificationResponse.from_result(result)
    print(
        json.dumps(
            response.model_dump(mode="json", by_alias=True, exclude={"screenshot", "pdf"}),
            indent=2,
        )
    )
    return 0 if result.success else 1


def list_providers() -> int:
    """
    Print the supported providers.

        int: Exit code (0 for success).
    """
    for profile in PROFILES.values():
        required = ", ".join(field.value for field in profile.required_fields)
        print(f"{profile.kind.value:<6} {profile.name:<28} requires: {required}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

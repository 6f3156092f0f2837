# Credential Vault - Main Entry Point
#
# Starts the local vault API server. Settings are read from the environment,
# optionally from a .env file in the working directory.

import argparse
import sys

from dotenv import load_dotenv


def main():
    """Main entry point for the credential vault API server."""
    # Load .env before importing modules that read configuration
    load_dotenv()

    from . import __version__
    from .core import EventSeverity, EventType, config, log_security_event

    parser = argparse.ArgumentParser(
        description="Credential Vault - PIN-protected local vault for provider API keys",
    )
    parser.add_argument(
        "--host",
        default=config.API_HOST,
        help=f"Backend host (default: {config.API_HOST})"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=config.API_PORT,
        help=f"Backend port (default: {config.API_PORT})"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Credential Vault v{__version__}"
    )
    args = parser.parse_args()

    from .api.main import start_api_server

    print(f"  Starting Credential Vault API on {args.host}:{args.port}...")
    print("  Press Ctrl+C to stop")

    try:
        start_api_server(host=args.host, port=args.port)
    except KeyboardInterrupt:
        print("\n\nShutting down backend...")
        log_security_event(
            EventType.SYSTEM_STOP,
            EventSeverity.INFO,
            "Credential Vault backend stopped (user interrupt)"
        )
    except Exception as e:
        print(f"\n\nError: {str(e)}")
        log_security_event(
            EventType.SYSTEM_STOP,
            EventSeverity.CRITICAL,
            f"Credential Vault backend crashed: {str(e)}"
        )
        sys.exit(1)


if __name__ == "__main__":
    main()

"""Command line entrypoint for running and inspecting the gateway."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Sequence

from llmgate.config import Settings, get_settings
from llmgate.metrics.observability import configure_logging, get_logger
from llmgate.providers.registry import CredentialSource, build_registry


def provider_table(settings: Settings, credentials: CredentialSource | None = None) -> dict:
    registry = build_registry(settings, credentials)
    return {
        "defaultId": registry.default_id(),
        "degraded": registry.degraded,
        "providers": [
            {
                "id": descriptor.id,
                "displayName": descriptor.display_name,
                "model": descriptor.model_id,
                "credentialKey": descriptor.credential_key,
                "configured": registry.credential_for(descriptor) is not None,
            }
            for descriptor in registry.all()
        ],
    }


def log_startup(settings: Settings, host: str, port: int) -> None:
    logger = get_logger("startup")
    table = provider_table(settings)
    logger.info(
        "server.starting",
        host=host,
        port=port,
        environment=settings.environment,
        allowed_origins=list(settings.allowed_origins),
        rate_limit=f"{settings.rate_limit_requests} requests per {settings.rate_limit_window_seconds}s",
        default_provider=table["defaultId"],
    )
    for provider in table["providers"]:
        logger.info(
            "provider.status",
            provider_id=provider["id"],
            name=provider["displayName"],
            configured=provider["configured"],
        )
    if table["degraded"]:
        logger.warning("server.degraded", default_provider=table["defaultId"])


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="LLMGate analysis gateway.")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", default="0.0.0.0", help="Interface to bind")
    serve.add_argument("--port", type=int, default=3001, help="Port to listen on")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")

    sub.add_parser("providers", help="Print the provider table and credential status as JSON")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    if args.command == "providers":
        print(json.dumps(provider_table(settings), indent=2))
        return 0

    import uvicorn

    log_startup(settings, args.host, args.port)
    uvicorn.run("llmgate.api.app:app", host=args.host, port=args.port, reload=args.reload)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    sys.exit(main())

"""Command-line entry point.

Tracks one or more references against the configured refresh endpoint and
keeps them valid until interrupted. Useful for checking a deployment's
refresh-url endpoint and the proactive schedule end to end.

    python -m presigned_media.main images/logo.png --entity-type gallery --entity-id 42
"""

import argparse
import asyncio
import logging
import signal
import sys

from presigned_media.config import MediaConfig
from presigned_media.errors import SignedUrlError
from presigned_media.logging_filters import configure_logging
from presigned_media.models.references import EntityAssociation, SignedResourceReference
from presigned_media.models.refresh import RefreshedUrl
from presigned_media.observability.redaction import redact_signed_url
from presigned_media.services.signed_url_service import SignedUrlService

logger = logging.getLogger(__name__)


class Application:
    """Owns the service and the trackers started from the command line."""

    def __init__(self, config: MediaConfig) -> None:
        self.config = config
        self.service: SignedUrlService | None = None
        self._shutdown_event = asyncio.Event()
        self._failed = False

    def _on_error(self, error: SignedUrlError) -> None:
        self._failed = True
        logger.error("%s", error)

    def _on_refreshed(self, reference: SignedResourceReference, refreshed: RefreshedUrl) -> None:
        logger.info(
            "%s -> %s (expires_in=%s)",
            reference.storage_key,
            redact_signed_url(refreshed.url),
            refreshed.expires_in,
        )

    async def run(
        self,
        references: list[str],
        association: EntityAssociation | None = None,
        *,
        once: bool = False,
    ) -> int:
        """Track references until shutdown (or until the first refresh with ``once``).

        Returns:
            Process exit code.
        """
        self.service = SignedUrlService(self.config)
        try:
            trackers = [
                self.service.track(
                    ref,
                    association,
                    on_error=self._on_error,
                    on_refreshed=self._on_refreshed,
                )
                for ref in references
            ]
            if once:
                for tracker in trackers:
                    await tracker.wait_idle()
                    snap = tracker.snapshot
                    logger.info(
                        "%s: phase=%s expires_at=%s",
                        snap.storage_key,
                        snap.phase,
                        snap.expires_at,
                    )
            else:
                self.setup_signal_handlers()
                await self._shutdown_event.wait()
        finally:
            await self.shutdown()

        return 1 if self._failed else 0

    async def shutdown(self) -> None:
        self._shutdown_event.set()
        if self.service is not None:
            await self.service.aclose()
            self.service = None
            logger.info("Graceful shutdown complete")

    def setup_signal_handlers(self) -> None:
        """Register SIGINT/SIGTERM handlers that stop run()."""
        loop = asyncio.get_running_loop()

        def signal_handler(sig: signal.Signals) -> None:
            logger.info("Received signal %s, initiating shutdown...", sig.name)
            self._shutdown_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Keep signed storage URLs fresh")
    parser.add_argument("references", nargs="+", help="Storage keys or signed URLs")
    parser.add_argument("--entity-type", help="Owning record type (e.g. gallery, album)")
    parser.add_argument("--entity-id", help="Owning record id")
    parser.add_argument("--config", default="config.json", help="Path to JSON config")
    parser.add_argument("--secrets", default="secrets.yml", help="Path to secrets YAML")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Exit after the initial resolution instead of running until interrupted",
    )
    return parser


async def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    config = MediaConfig.from_json_file(args.config, args.secrets)
    configure_logging(config)

    association = None
    if args.entity_type and args.entity_id:
        association = EntityAssociation(entity_type=args.entity_type, entity_id=args.entity_id)
    elif args.entity_type or args.entity_id:
        logger.error("--entity-type and --entity-id must be given together")
        return 2

    app = Application(config)
    try:
        return await app.run(args.references, association, once=args.once)
    except Exception as e:
        logger.exception("Application error: %s", e)
        raise


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()

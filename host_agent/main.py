"""Main application entry point for the host telemetry agent."""

import argparse
import asyncio
import logging
import os
import signal
import sys
from typing import Optional

from .agent import HostAgent
from .config.loader import ConfigLoader
from .config.models import AgentConfig
from .utils.logger import setup_logger


class AgentApp:
    """
    Host agent application.

    Loads configuration, runs the agent until SIGTERM/SIGINT, and persists
    the resource id assigned at first registration back into the
    configuration file.
    """

    def __init__(self, config_path: str = "config/config.yaml", log_level: Optional[str] = None):
        """
        Initialize host agent application.

        Args:
            config_path: Path to configuration file
            log_level: Overrides the configured log level when given
        """
        self.config_path = config_path
        self.logger = setup_logger("host_agent", log_level or "INFO")

        self.logger.info("=" * 60)
        self.logger.info("Host Telemetry Agent")
        self.logger.info("=" * 60)

        self.config = self._load_config()
        self.logger = setup_logger(
            "host_agent",
            log_level or self.config.log_level,
            static_fields={"tenant_id": self.config.tenant_id},
        )

        self.agent = HostAgent(self.config, self.logger)
        self.agent.on_registered = self._persist_resource_id
        self._shutdown_requested: Optional[asyncio.Event] = None

    def _load_config(self) -> AgentConfig:
        """
        Load and validate configuration.

        Returns:
            AgentConfig: Loaded configuration

        Raises:
            SystemExit: If configuration is missing or invalid
        """
        try:
            self.logger.info(f"Loading configuration from {self.config_path}")
            config = ConfigLoader.load_from_file(self.config_path)
            self.logger.info("Configuration loaded successfully")
            return config

        except FileNotFoundError:
            self.logger.error(f"Configuration file not found: {self.config_path}")
            sys.exit(1)

        except Exception as e:
            self.logger.error(f"Failed to load configuration: {e}", exc_info=True)
            sys.exit(1)

    def _persist_resource_id(self, resource_id: str) -> None:
        """Write the newly assigned resource id back to the config file."""
        try:
            ConfigLoader.save(self.config, self.config_path)
            self.logger.info(f"Saved resource ID to {self.config_path}")
        except OSError as e:
            self.logger.error(f"Failed to save resource ID {resource_id}: {e}")

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(signum, self._request_shutdown, signum)
            except NotImplementedError:
                # Windows event loops have no add_signal_handler
                signal.signal(
                    signum,
                    lambda s, frame: loop.call_soon_threadsafe(self._request_shutdown, s),
                )

    def _request_shutdown(self, signum: int) -> None:
        signal_name = signal.Signals(signum).name
        if self._shutdown_requested.is_set():
            return
        self.logger.info(f"Received {signal_name}, initiating graceful shutdown...")
        self._shutdown_requested.set()

    async def run(self) -> None:
        """
        Start the agent and block until a shutdown signal arrives.

        Raises:
            DeliveryError: If host registration fails
        """
        self._shutdown_requested = asyncio.Event()
        self._install_signal_handlers()

        try:
            await self.agent.start()
            self.logger.info("Agent is running. Press Ctrl+C to stop.")
            await self._shutdown_requested.wait()
            await self.agent.stop()
        finally:
            await self.agent.api_client.aclose()

        self.logger.info("Shutdown complete")

    async def run_once(self) -> bool:
        """
        Collect and deliver a single snapshot.

        Returns:
            bool: True if the snapshot was delivered
        """
        try:
            return await self.agent.run_once()
        finally:
            await self.agent.api_client.aclose()


def main():
    """
    CLI entry point.

    Parses command-line arguments and runs the agent.
    """
    parser = argparse.ArgumentParser(
        description='Host telemetry agent: collects system metrics and ships them to the collection API',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run continuously
  host-agent --config /etc/host-agent/config.yaml

  # Collect and deliver one snapshot, then exit
  host-agent --config config/config.yaml --run-once
        """
    )

    parser.add_argument(
        '--config', '-c',
        default='config/config.yaml',
        help='Path to configuration file, YAML or JSON (default: config/config.yaml)'
    )

    parser.add_argument(
        '--run-once',
        action='store_true',
        help='Register, collect one snapshot, deliver it and exit'
    )

    parser.add_argument(
        '--log-level',
        default=os.getenv('LOG_LEVEL'),
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: config log_level or LOG_LEVEL env var)'
    )

    args = parser.parse_args()

    try:
        app = AgentApp(config_path=args.config, log_level=args.log_level)

        if args.run_once:
            delivered = asyncio.run(app.run_once())
            sys.exit(0 if delivered else 1)

        asyncio.run(app.run())

    except Exception as e:
        logging.getLogger("host_agent").error(f"Failed to start agent: {e}", exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()

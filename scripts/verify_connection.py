#!/usr/bin/env python3
"""
Connection Verification Script

This script verifies that the Grafana server in your metrics configuration is
reachable and that the data source of every enabled metric's region resolves.
Run it before a long export to catch typos in server, key or region names.

Usage:
    python scripts/verify_connection.py [path/to/metrics.yaml]

Expected output:
    - One line per distinct region with its data source id
    - Error details for regions that do not resolve
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sdn_metrics.adapters.grafana import GrafanaAdapter  # noqa: E402
from sdn_metrics.config.models import (  # noqa: E402
    ConfigError,
    EnvSettings,
    MetricsConfig,
)

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


async def verify_regions(config: MetricsConfig) -> bool:
    """Resolve the data source of each enabled metric's region."""
    regions = sorted({m.region for m in config.enabled_metrics})
    if not regions:
        logger.warning("No enabled metrics; nothing to verify.")
        return True

    adapter = GrafanaAdapter(config.grafana, config.labels)
    results = []
    try:
        for region in regions:
            try:
                ds = await adapter.get_datasource(region)
            except Exception as e:
                logger.error(f"Region '{region}': FAILED ({e})")
                results.append(False)
                continue
            logger.info(f"Region '{region}': datasource id={ds.id} uid={ds.uid}")
            results.append(True)
    finally:
        await adapter.aclose()
    return all(results)


def main() -> int:
    """Main entry point."""
    settings = EnvSettings()
    config_path = Path(sys.argv[1] if len(sys.argv) > 1 else settings.config_file)
    logger.info(f"Loading configuration from {config_path}...")
    try:
        config = MetricsConfig.load(config_path, api_key=settings.grafana_api_key)
    except ConfigError as e:
        logger.error(f"{e}")
        return 1

    logger.info(f"Target: {config.grafana.base_url}")
    ok = asyncio.run(verify_regions(config))
    if ok:
        logger.info("Grafana configuration is working correctly.")
    else:
        logger.error("Some regions failed verification. See logs above.")
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())

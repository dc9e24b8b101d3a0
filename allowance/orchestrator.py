import argparse
import asyncio
import uuid
from typing import Any, Dict, Optional

import yaml

from allowance.calculator import Calculator
from allowance.items import load_items
from allowance.lookup import build_lookup
from allowance.stages.mapper import TOLERANCE
from allowance.utils import get_logger, to_decimal, validate_config, wait_for_service, write_output

logger = get_logger(__name__)


def _wait_infra(lookup_cfg: Dict[str, Any]) -> None:
    """Wait for the allowance service when a health endpoint is configured."""
    if lookup_cfg.get("type") != "http":
        return
    health_path = lookup_cfg.get("health_path")
    if not health_path:
        return
    wait_for_service(lookup_cfg["base_url"].rstrip("/") + health_path)


def _apply_overrides(cfg: Dict[str, Any], overrides: Optional[Dict[str, Any]]) -> None:
    if not overrides:
        return

    if overrides.get("tolerance") is not None:
        cfg.setdefault("calculation", {})["tolerance"] = overrides["tolerance"]

    if overrides.get("base_url") is not None:
        lk = cfg.setdefault("lookup", {})
        lk["type"] = "http"
        lk["base_url"] = overrides["base_url"]

    if overrides.get("out_dir") is not None:
        cfg.setdefault("output", {})["dir"] = overrides["out_dir"]


def _execute(cfg: Dict[str, Any], items_path: str, run_id: str) -> list:
    lookup_cfg = cfg["lookup"]
    logger.info("config loaded run=%s lookup=%s", run_id, lookup_cfg.get("type"))

    _wait_infra(lookup_cfg)

    items = load_items(items_path)
    tolerance = to_decimal(cfg.get("calculation", {}).get("tolerance", TOLERANCE))
    lookup = build_lookup(lookup_cfg)
    try:
        results = asyncio.run(Calculator(lookup, tolerance=tolerance).calculate(items))
    finally:
        close = getattr(lookup, "close", None)
        if close is not None:
            close()

    generated_files = write_output(results, cfg["output"])
    logger.info("output written dir=%s files=%d", cfg["output"]["dir"], len(generated_files))
    return generated_files


def run_once(
    config_path: str,
    items_path: str,
    *,
    overrides: Optional[Dict[str, Any]] = None,
) -> list:
    """Run one batch with the given config and items files; returns written paths."""
    run_id = uuid.uuid4().hex[:8]
    logger.info("=== run start id=%s ===", run_id)

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f)
        _apply_overrides(cfg, overrides)
        validate_config(cfg)
        return _execute(cfg, items_path, run_id)

    except Exception as e:
        logger.error("Calculation run failed: %s", e)
        raise
    finally:
        logger.info("=== run end id=%s ===", run_id)


def main():
    """Main entry point for CLI usage."""
    parser = argparse.ArgumentParser(description="Flag items above their weight allowance.")
    parser.add_argument('--config', type=str, required=True, help="Path to the calculator config YAML file.")
    parser.add_argument('--items', type=str, required=True, help="Path to the items YAML/JSON file.")
    parser.add_argument('--tolerance', type=str, help="Margin above the allowance before an item is flagged")
    parser.add_argument('--base-url', dest='base_url', type=str, help="Use the HTTP allowance service at this URL")
    parser.add_argument('--out-dir', dest='out_dir', type=str, help="Output directory")
    args = parser.parse_args()

    run_once(
        args.config,
        args.items,
        overrides={"tolerance": args.tolerance, "base_url": args.base_url, "out_dir": args.out_dir},
    )


if __name__ == "__main__":
    main()

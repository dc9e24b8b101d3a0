#!/usr/bin/env python3
import argparse

from allowance.orchestrator import run_once


def main():
    parser = argparse.ArgumentParser(description="Excess weight CLI")
    parser.add_argument("--config", required=True, help="Path to YAML config")
    parser.add_argument("--items", required=True, help="Path to YAML/JSON items file")
    parser.add_argument("--tolerance", dest="tolerance", type=str, help="Margin above the allowance (default 5)")
    parser.add_argument("--base-url", dest="base_url", type=str, help="Allowance service base URL (forces lookup.type=http)")
    parser.add_argument("--out-dir", dest="out_dir", type=str, help="Output directory")
    args = parser.parse_args()

    overrides = {
        "tolerance": args.tolerance,
        "base_url": args.base_url,
        "out_dir": args.out_dir,
    }

    paths = run_once(args.config, args.items, overrides=overrides)
    for p in paths:
        print(p)


if __name__ == "__main__":
    main()

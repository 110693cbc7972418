"""Build weekly CFD tables from an exported history file."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from flow_engine.adapters import config_adapter, dataset_adapter
from flow_engine.report import build_report


def main() -> None:
    parser = argparse.ArgumentParser(description="Build cumulative flow tables per configured project")
    parser.add_argument("--config", required=True, help="Path to the JSON report config")
    parser.add_argument("--data", required=True, help="Path to the exported history JSON file")
    parser.add_argument("--output", default="outputs/cfd_report.json", help="Where to write the report JSON")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, ...)")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    config = config_adapter.parse(args.config)
    dataset = dataset_adapter.parse(args.data)
    report = build_report(config, dataset)
    payload = report.to_dict()

    print(json.dumps(payload, indent=2))

    out_path = Path(args.output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    print(f"Saved CFD report to {out_path}")


if __name__ == "__main__":
    main()

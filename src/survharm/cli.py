"""
Command line entry point.

    survharm document  FILE [FILE ...]
    survharm metadata  FILE [FILE ...] [--out metadata.csv]
    survharm trust     FILE [FILE ...] [--config casestudy.yaml] [--export-dir DIR] [--format csv]
"""

import argparse
import logging
import sys
from typing import List, Optional

from survharm.backends import ExportFormat
from survharm.casestudy import run_trust_casestudy
from survharm.config import CaseStudyConfig, load_casestudy_config
from survharm.io import read_surveys
from survharm.metadata import document_waves, metadata_waves_create
from survharm.model import SurveyWave


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="survharm", description="Survey wave harmonization")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    sub = parser.add_subparsers(dest="command", required=True)

    doc = sub.add_parser("document", help="Summarize wave files (rows, columns, size)")
    doc.add_argument("files", nargs="+")

    meta = sub.add_parser("metadata", help="Variable metadata of wave files")
    meta.add_argument("files", nargs="+")
    meta.add_argument("--out", help="Write the table to this CSV file instead of stdout")

    trust = sub.add_parser("trust", help="Run the trust-in-institutions case study")
    trust.add_argument("files", nargs="+")
    trust.add_argument("--config", help="YAML case study configuration")
    trust.add_argument("--export-dir", help="Directory for harmonized data and summary")
    trust.add_argument(
        "--format",
        choices=[f.value for f in ExportFormat],
        help="Format of the exported harmonized data",
    )
    return parser


def _run_trust(args: argparse.Namespace, waves: List[SurveyWave]) -> int:
    config = load_casestudy_config(args.config) if args.config else CaseStudyConfig()
    if args.export_dir:
        config.export_dir = args.export_dir
    if args.format:
        config.export_format = ExportFormat(args.format)

    result = run_trust_casestudy(waves, config)
    print(result.documentation.to_string(index=False))
    print()
    print(result.summary.to_string(index=False))
    for path in result.exported:
        print(f"Saved {path}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    waves = read_surveys(args.files)
    if not waves:
        logger.error("No readable survey files")
        return 1

    if args.command == "trust":
        return _run_trust(args, waves)
    if args.command == "document":
        print(document_waves(waves).to_string(index=False))
    elif args.command == "metadata":
        table = metadata_waves_create(waves)
        if args.out:
            table.to_csv(args.out, index=False)
            logger.info("Wrote metadata of %d variables to %s", len(table), args.out)
        else:
            print(table.drop(columns=["labels"]).to_string(index=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())

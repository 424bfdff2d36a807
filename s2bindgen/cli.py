from __future__ import annotations

import argparse
import logging
import time
from typing import List, Optional

from s2bindgen.config import (
    DEFAULT_GAMEEVENTS_PATH,
    DEFAULT_NATIVES_PATH,
    DEFAULT_OUTPUT_ROOT,
    DEFAULT_PROTOBUFS_PATH,
    GENERATOR_NAMES,
    GeneratorOptions,
    build_generators,
)
from s2bindgen.generators import run_generators

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="s2bindgen",
        description=(
            "Generate C# bindings for engine natives, game events and protobuf "
            "messages from their schema sources."
        ),
    )
    parser.add_argument(
        "-n",
        "--natives-path",
        default=str(DEFAULT_NATIVES_PATH),
        help="Directory searched recursively for *.native files.",
    )
    parser.add_argument(
        "-g",
        "--gameevents-path",
        default=str(DEFAULT_GAMEEVENTS_PATH),
        help="Directory holding the cached *.gameevents files.",
    )
    parser.add_argument(
        "-p",
        "--protobufs-path",
        default=str(DEFAULT_PROTOBUFS_PATH),
        help="Directory holding the *.proto files.",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=str(DEFAULT_OUTPUT_ROOT),
        help="Output root; files land under <output>/src/SwiftlyS2.Generated.",
    )
    parser.add_argument(
        "--only",
        action="append",
        choices=GENERATOR_NAMES,
        default=None,
        help="Run only this generator (repeatable). Runs all of them by default.",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Do not download event sources, use the cached copies.",
    )
    parser.add_argument(
        "--wordlist",
        default=None,
        help="Gzipped word list (most frequent first) for splitting glued field names.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    return parser.parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )
    logging.captureWarnings(True)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)

    options = GeneratorOptions.from_args(args)
    generators = build_generators(options)

    started = time.monotonic()
    results = run_generators(generators)
    elapsed = time.monotonic() - started

    failed = 0
    for generator, result in results:
        if result.success:
            print(f"[ok]     {generator.name}")
        else:
            failed += 1
            print(f"[failed] {generator.name}: {result.error_message}")
    print(f"Finished {len(results)} generator(s) in {elapsed:.2f}s, {failed} failed.")
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())

"""
Command line entry point: decode spectrometer files and report what was found.
"""
import argparse
import json
import os
import sys
from typing import List, Optional
from pydantic import ValidationError
from specdecode.config.logging import get_logger, init_logging
from specdecode.config.settings import get_settings
from specdecode.core.dependencies import get_batch_decoding_service, get_file_spectrum_repo
from specdecode.domain.repositories.spectrum_repository import SpectrumRepository
from specdecode.domain.models.decode_result import DecodeResult
from specdecode.infrastructure.decoders.factory import DecoderFactory
from specdecode.shared.schemas.spectrum import DecodeResultSchema

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Decode OPUS, SPC, SPA, CAL and ASC spectrometer files.")
    parser.add_argument("files", nargs="+", metavar="FILE", help="Files or directories to decode")
    parser.add_argument(
        "--format",
        choices=DecoderFactory.supported_formats(),
        help="Decoder to use for every file (detected per file by default)",
    )
    parser.add_argument("--sample-id", help="OPUS text block key holding the sample ID (default: SNM)")
    parser.add_argument("--start", type=int, help="CAL: spectrum number to start loading from (1-based)")
    parser.add_argument("--max", type=int, help="CAL: maximum spectra to load, -1 for all")
    parser.add_argument("--trace", action="store_true", help="Include resolved block offsets in the output")
    parser.add_argument("--json", action="store_true", help="Print a JSON array of results")
    parser.add_argument("--points", action="store_true", help="With --json, include every point")
    parser.add_argument("--log-level", help="Log level (default from SPECDECODE_LOG_LEVEL or INFO)")
    return parser.parse_args(argv)


def expand_paths(files: List[str], repo: SpectrumRepository) -> List[str]:
    """Replace directories by the files they contain; other arguments are kept as given."""
    paths = []
    for path in files:
        if os.path.isdir(path):
            paths.extend(repo.list_files(path))
        else:
            paths.append(path)
    return paths


def format_result(result: DecodeResult, show_trace: bool = False) -> List[str]:
    if result.ok:
        ids = ", ".join(s.id or "<no id>" for s in result.spectra)
        lines = [f"{result.source}: OK, {len(result.spectra)} spectra [{ids}]"]
    else:
        lines = [f"{result.source}: FAILED, {result.error.message}"]
    for diagnostic in result.diagnostics:
        lines.append(f"  {diagnostic}")
    if show_trace:
        for key, value in result.trace.items():
            lines.append(f"  {key}={value}")
    return lines


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        settings = get_settings(
            log_level=args.log_level,
            opus_sample_id_key=args.sample_id,
            start=args.start,
            max_spectra=args.max,
        )
    except ValidationError as e:
        print(f"Invalid option: {e}", file=sys.stderr)
        return 2

    init_logging(settings)
    service = get_batch_decoding_service(settings)
    paths = expand_paths(args.files, get_file_spectrum_repo(settings))
    results = service.process_batch_sync(paths, args.format)

    if args.json:
        payload = [
            DecodeResultSchema.from_domain(r, include_points=args.points, include_trace=args.trace).model_dump()
            for r in results
        ]
        print(json.dumps(payload, indent=2))
    else:
        for result in results:
            for line in format_result(result, args.trace):
                print(line)

    failed = [r.source for r in results if not r.ok]
    if failed:
        logger.error(f"{len(failed)} of {len(results)} files failed to decode")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

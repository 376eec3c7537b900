"""
Command-line entry point for novel analysis.

Usage:
    longread analyze novel.txt --kind outline
    longread analyze novel.txt --kind theme --with-digest
    longread analyze novel.txt --kind relationships --digest-file novel.digest.txt
    longread digest novel.txt --output novel.digest.txt

Analysis output is streamed to stdout as it arrives. Progress and errors
go to the module log files under LONGREAD_LOG_DIR.
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from langchain_core.tracers.langchain import wait_for_all_tracers

from core.config import AnalysisSettings, configure_langsmith, configure_logging
from core.logging import end_run
from workflows.novel_analysis.digest import DigestSession
from workflows.novel_analysis.errors import AnalysisError
from workflows.novel_analysis.graph import analyze_document
from workflows.novel_analysis.nodes import DIGEST_EXCLUDED_KINDS
from workflows.novel_analysis.state import AnalysisKind, Chunk, Document
from workflows.shared.llm_utils import GenerationError

logger = logging.getLogger(__name__)


class _StdoutStream:
    """Print only the new suffix of a cumulative text stream."""

    def __init__(self) -> None:
        self._printed = 0

    def __call__(self, text: str) -> None:
        sys.stdout.write(text[self._printed:])
        sys.stdout.flush()
        self._printed = len(text)


def _print_chunk_status(chunk: Chunk) -> None:
    print(f"  part {chunk.position}: {chunk.status.value}", file=sys.stderr)


async def _build_digest(document: Document, settings: AnalysisSettings) -> Optional[str]:
    session = DigestSession(document, settings=settings, on_chunk_status=_print_chunk_status)
    session.split()
    print(f"Condensing {len(session.chunks)} parts of {document.name}...", file=sys.stderr)

    failed = await session.condense_pending()
    if failed:
        positions = ", ".join(str(index + 1) for index in failed)
        print(f"Digest incomplete, failed parts: {positions}", file=sys.stderr)
        return None
    return session.usable_digest()


async def run_analyze(args: argparse.Namespace) -> int:
    settings = AnalysisSettings()
    document = Document.from_path(args.file)
    kind = AnalysisKind(args.kind)

    digest = ""
    if args.digest_file:
        digest = Path(args.digest_file).read_text(encoding="utf-8")
    elif args.with_digest and kind in DIGEST_EXCLUDED_KINDS:
        print(f"{kind.value} analysis reads the full text, skipping the digest", file=sys.stderr)
    elif args.with_digest:
        digest = await _build_digest(document, settings) or ""

    stream = _StdoutStream()
    run = await analyze_document(
        document,
        kind,
        digest=digest,
        settings=settings,
        on_stream=stream,
    )
    print()

    if args.output:
        Path(args.output).write_text(run.content, encoding="utf-8")
        print(f"Saved {kind.value} analysis to {args.output}", file=sys.stderr)
    return 0


async def run_digest(args: argparse.Namespace) -> int:
    settings = AnalysisSettings()
    document = Document.from_path(args.file)

    digest = await _build_digest(document, settings)
    if digest is None:
        return 1

    output = Path(args.output or f"{Path(args.file).stem}.digest.txt")
    output.write_text(digest, encoding="utf-8")
    print(f"Saved digest ({len(digest):,} chars) to {output}", file=sys.stderr)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="longread",
        description="Stream long-form literary analyses of plain-text novels",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Run one analysis and stream it to stdout")
    analyze.add_argument("file", help="UTF-8 text file to analyze")
    analyze.add_argument(
        "-k", "--kind",
        choices=[kind.value for kind in AnalysisKind],
        default=AnalysisKind.SUMMARY.value,
        help="Analysis to perform (default: summary)",
    )
    digest_source = analyze.add_mutually_exclusive_group()
    digest_source.add_argument(
        "--with-digest",
        action="store_true",
        help="Condense the document first and analyze the digest where applicable",
    )
    digest_source.add_argument(
        "--digest-file",
        help="Use a digest saved earlier with the digest command",
    )
    analyze.add_argument("-o", "--output", help="Also write the analysis to this file")
    analyze.set_defaults(handler=run_analyze)

    digest = subparsers.add_parser("digest", help="Condense a document chunk by chunk")
    digest.add_argument("file", help="UTF-8 text file to condense")
    digest.add_argument("-o", "--output", help="Digest file (default: <name>.digest.txt)")
    digest.set_defaults(handler=run_digest)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    configure_langsmith()
    configure_logging(f"cli-{args.command}-{datetime.now().strftime('%Y%m%d-%H%M%S')}")

    try:
        return asyncio.run(args.handler(args))
    except (AnalysisError, GenerationError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"\nError: {e}", file=sys.stderr)
        return 1
    except UnicodeDecodeError as e:
        logger.error(f"Input is not valid UTF-8 text: {e}")
        print(f"\nError: input is not valid UTF-8 text ({e})", file=sys.stderr)
        return 1
    except OSError as e:
        logger.error(f"Could not read or write file: {e}")
        print(f"\nError: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        # Missing API key or invalid LONGREAD_* settings
        logger.error(f"{args.command} could not start: {e}")
        print(f"\nError: {e}", file=sys.stderr)
        return 1
    finally:
        wait_for_all_tracers()
        end_run()


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
pipeline.py

Main processing pipeline: text in, blocklist out.

Usage:
    blocksieve [-f plain|unbound|rpz] [SOURCE ...]
    python -m blocksieve.pipeline [-f plain|unbound|rpz] [SOURCE ...]

Pipeline stages:
1. Validate the output format (before touching any input)
2. Download URL sources into the cache
3. Restrict the process (pledge/unveil where available)
4. Read every source line by line, in argument order ("-" or nothing = stdin)
5. Extract the domain of each line into the unique domain set
6. Reduce covered subdomains (rpz only)
7. Sort, format, write to stdout

Stdout carries the result, so every diagnostic goes to stderr.
"""
from __future__ import annotations

import argparse
import io
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Iterable, Iterator, TextIO

from blocksieve import fetcher, sandbox
from blocksieve.errors import BlocksieveError, SourceReadError
from blocksieve.formats import DEFAULT_FORMAT, FORMATS, OutputFormat, format_domains, get_format
from blocksieve.matcher import extract_domain, has_known_suffix, is_local_hostname, iter_domains
from blocksieve.reducer import reduce_domains

STDIN: Final[str] = "-"


@dataclass
class RunStats:
    """Statistics from one run."""
    sources: int = 0
    lines_raw: int = 0
    lines_matched: int = 0
    domains_unique: int = 0
    duplicate_pruned: int = 0
    local_hostname_pruned: int = 0
    unknown_suffix_pruned: int = 0
    subdomain_pruned: int = 0
    domains_output: int = 0
    lines_output: int = 0


# =============================================================================
# INPUT
# =============================================================================

def read_stdin() -> Iterator[str]:
    """Yield stdin lines, decoded like files (invalid bytes become U+FFFD)."""
    stream = io.TextIOWrapper(sys.stdin.buffer, encoding="utf-8-sig", errors="replace")
    try:
        yield from stream
    finally:
        # Leave sys.stdin usable
        stream.detach()


def read_lines(sources: Iterable[str], stdin: TextIO | None = None,
               stats: RunStats | None = None) -> Iterator[str]:
    """
    Yield the lines of every source in order.

    Args:
        sources: File paths; "-" or an empty list means stdin
        stdin: Text stream used for "-" (defaults to the bytes of sys.stdin)
        stats: Optional counters to update

    Raises:
        SourceReadError: if a source cannot be opened or decoded
    """
    sources = list(sources) or [STDIN]
    for source in sources:
        if stats is not None:
            stats.sources += 1

        if source == STDIN:
            try:
                yield from (stdin if stdin is not None else read_stdin())
            except (OSError, UnicodeDecodeError) as e:
                raise SourceReadError("<stdin>", str(e)) from e
            continue

        try:
            with open(source, encoding="utf-8-sig", errors="replace") as f:
                yield from f
        except OSError as e:
            raise SourceReadError(source, e.strerror or str(e)) from e


# =============================================================================
# EXTRACTION
# =============================================================================

def collect_domains(
    lines: Iterable[str],
    *,
    all_matches: bool = False,
    strict_suffix: bool = False,
    skip_local: bool = False,
    stats: RunStats | None = None,
) -> dict[str, int]:
    """
    Build the unique domain set from text lines.

    Args:
        lines: Any text lines
        all_matches: Take every domain of a line instead of the first one
        strict_suffix: Drop domains whose suffix is not a public suffix
        skip_local: Drop localhost-style names
        stats: Optional counters to update

    Returns:
        Mapping domain -> number of occurrences
    """
    stats = stats if stats is not None else RunStats()
    domains: dict[str, int] = {}

    for line in lines:
        stats.lines_raw += 1

        if all_matches:
            found = list(iter_domains(line))
        else:
            first = extract_domain(line)
            found = [first] if first else []

        if found:
            stats.lines_matched += 1

        for domain in found:
            if skip_local and is_local_hostname(domain):
                stats.local_hostname_pruned += 1
                continue
            if strict_suffix and not has_known_suffix(domain):
                stats.unknown_suffix_pruned += 1
                continue

            if domain in domains:
                stats.duplicate_pruned += 1
                domains[domain] += 1
            else:
                domains[domain] = 1

    stats.domains_unique = len(domains)
    return domains


# =============================================================================
# OUTPUT
# =============================================================================

def render(domains: dict[str, int], fmt: OutputFormat,
           stats: RunStats | None = None) -> list[str]:
    """
    Reduce (if the format wants it), sort and format the domain set.

    The set is reduced in place.
    """
    stats = stats if stats is not None else RunStats()

    if fmt.reduce:
        stats.subdomain_pruned = reduce_domains(domains)

    lines = format_domains(domains, fmt)
    stats.domains_output = len(domains)
    stats.lines_output = len(lines)
    return lines


def run(
    sources: list[str],
    fmt: str = DEFAULT_FORMAT,
    *,
    out: TextIO | None = None,
    stdin: TextIO | None = None,
    all_matches: bool = False,
    strict_suffix: bool = False,
    skip_local: bool = False,
    use_sandbox: bool = True,
    cache_dir: Path | None = None,
    timeout: int = fetcher.DEFAULT_TIMEOUT,
    retries: int = fetcher.DEFAULT_RETRIES,
    verbose: bool = False,
    quiet: bool = False,
) -> RunStats:
    """
    Run the full pipeline and write the result.

    Nothing is written unless every source was read successfully.

    Raises:
        InvalidFormatError: unknown format name, before any input is read
        SourceReadError: unreadable file or failed download
        SandboxError: pledge/unveil failure
    """
    output_format = get_format(fmt)
    out = out or sys.stdout
    stats = RunStats()

    sources = fetcher.resolve_sources(
        sources,
        cache_dir or fetcher.default_cache_dir(),
        timeout=timeout,
        retries=retries,
        verbose=verbose,
        quiet=quiet,
    )

    if use_sandbox:
        if strict_suffix:
            # Load the suffix list while the filesystem is still visible
            has_known_suffix("example.com")
        sandbox.restrict(s for s in sources if s != STDIN)

    # =========================================================================
    # Stage 1: Read and extract
    # =========================================================================
    if verbose:
        print("📖 Stage 1: Reading and extracting domains...", file=sys.stderr)
    stage1_start = time.time()

    domains = collect_domains(
        read_lines(sources, stdin=stdin, stats=stats),
        all_matches=all_matches,
        strict_suffix=strict_suffix,
        skip_local=skip_local,
        stats=stats,
    )

    if verbose:
        print(f"   Read {stats.lines_raw:,} lines from {stats.sources} sources, "
              f"{stats.domains_unique:,} unique domains ({time.time() - stage1_start:.1f}s)",
              file=sys.stderr)

    # =========================================================================
    # Stage 2: Reduce and format
    # =========================================================================
    if verbose:
        print(f"⚙️  Stage 2: Formatting as {output_format.name}...", file=sys.stderr)

    lines = render(domains, output_format, stats)
    for line in lines:
        out.write(line + "\n")
    out.flush()

    return stats


def print_summary(stats: RunStats) -> None:
    """Print formatted summary to stderr."""
    def emit(text: str = "") -> None:
        print(text, file=sys.stderr)

    emit("\n" + "=" * 60)
    emit("📊 PIPELINE SUMMARY")
    emit("=" * 60)
    emit(f"\n📁 Sources:  {stats.sources}")
    emit(f"\n📈 Lines:")
    emit(f"   Raw input:       {stats.lines_raw:>12,}")
    emit(f"   With a domain:   {stats.lines_matched:>12,}")
    emit(f"\n🔧 Pruned:")
    emit(f"   Duplicates:      {stats.duplicate_pruned:>12,}")
    emit(f"   Local hostnames: {stats.local_hostname_pruned:>12,}")
    emit(f"   Unknown suffix:  {stats.unknown_suffix_pruned:>12,}")
    emit(f"   Subdomains:      {stats.subdomain_pruned:>12,}")
    emit(f"\n📦 Output:")
    emit(f"   Domains:         {stats.domains_output:>12,}")
    emit(f"   Lines:           {stats.lines_output:>12,}")


# =============================================================================
# CLI INTERFACE
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blocksieve",
        description="Extract domains from text and emit a DNS blocklist",
    )
    parser.add_argument("sources", nargs="*", metavar="SOURCE",
                        help="Files or http(s) URLs to read, '-' for stdin (default: stdin)")
    parser.add_argument("-f", "--format", dest="fmt", default=DEFAULT_FORMAT, choices=list(FORMATS),
                        help=f"Output format (default: {DEFAULT_FORMAT})")
    parser.add_argument("--all", dest="all_matches", action="store_true",
                        help="Take every domain of a line, not only the first")
    parser.add_argument("--strict-suffix", action="store_true",
                        help="Drop domains that do not end in a public suffix")
    parser.add_argument("--skip-local", action="store_true",
                        help="Drop localhost-style names")
    parser.add_argument("--cache", type=Path, default=None,
                        help="Cache directory for downloaded sources")
    parser.add_argument("--timeout", type=int, default=fetcher.DEFAULT_TIMEOUT,
                        help="Download timeout in seconds")
    parser.add_argument("--retries", type=int, default=fetcher.DEFAULT_RETRIES,
                        help="Download attempts per URL")
    parser.add_argument("--no-sandbox", dest="use_sandbox", action="store_false",
                        help="Do not pledge/unveil the process")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Print progress and a summary")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Print errors only")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        start_time = time.time()
        stats = run(
            args.sources,
            args.fmt,
            all_matches=args.all_matches,
            strict_suffix=args.strict_suffix,
            skip_local=args.skip_local,
            use_sandbox=args.use_sandbox,
            cache_dir=args.cache,
            timeout=args.timeout,
            retries=args.retries,
            verbose=args.verbose,
            quiet=args.quiet,
        )
    except BlocksieveError as e:
        print(f"❌ ERROR: {e}", file=sys.stderr)
        return 1

    if args.verbose:
        print_summary(stats)
        print(f"\n⏱️  Total time: {time.time() - start_time:.1f}s", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())

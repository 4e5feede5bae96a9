import argparse
import cProfile
import contextlib
import logging
import pstats
import sys
import time

from byte_tokenizer import open_byte_source
from composition import COUNTER_NAMES, run_comp
from quality_check import DEFAULT_QTHRES, PHRED_OFFSET, run_fqchk
from region_index import load_regions

logger = logging.getLogger("seqstat")

VERSION = "1.3"


class ArgumentParser(argparse.ArgumentParser):
    """argparse with exit status 1 on usage errors"""

    def error(self, message):
        self.print_usage(sys.stderr)
        sys.stderr.write(f"{self.prog}: error: {message}\n")
        sys.exit(1)


def setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def cmd_comp(args) -> int:
    if args.input is None:
        if sys.stdin.isatty():
            args.parser.print_usage(sys.stderr)
            sys.stderr.write("Output format: chr, length, " + ", ".join(COUNTER_NAMES) + "\n")
            return 1
        args.input = "-"

    regions = None
    if args.regions:
        regions = load_regions(args.regions)
        if regions is None:
            logger.error("[E::comp] failed to open the region file.")
            return 1

    with contextlib.ExitStack() as stack:
        try:
            source = stack.enter_context(open_byte_source(args.input))
        except OSError as e:
            logger.error(f"[E::comp] failed to open the input file/stream. ({e})")
            return 1
        try:
            n_rows = run_comp(source, sys.stdout, regions, upper_only=args.upper_only,
                              both_strands=args.both_strands)
        except (OSError, EOFError) as e:
            logger.error(f"[E::comp] failed to read the input or write the output. ({e})")
            return 1

    logger.debug(f"comp finished: {n_rows:,} rows")
    return 0


def cmd_fqchk(args) -> int:
    with contextlib.ExitStack() as stack:
        try:
            source = stack.enter_context(open_byte_source(args.input))
        except OSError as e:
            logger.error(f"[E::fqchk] failed to open the input file/stream. ({e})")
            return 1
        try:
            acc = run_fqchk(source, sys.stdout, qthres=args.qthres, phred_offset=args.phred_off)
        except (OSError, EOFError) as e:
            logger.error(f"[E::fqchk] failed to read the input or write the output. ({e})")
            return 1

    logger.debug(f"fqchk finished: {acc.n_records:,} records")
    return 0


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="seqstat",
        description="Streaming composition and quality statistics for FASTA/FASTQ files.",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")

    run_group = parser.add_argument_group("LOGGING & PROFILING")
    run_group.add_argument("--verbose", action="store_true",
                           help="Enable debug logging on stderr")
    run_group.add_argument("--profile", type=int, default=0, metavar="INT",
                           help="Enable profiling (0/1) [0]")

    subparsers = parser.add_subparsers(dest="command", metavar="<command>")
    subparsers.required = True

    comp = subparsers.add_parser(
        "comp",
        help="get the nucleotide composition of FASTA/Q",
        description="Output format: chr, length, " + ", ".join(COUNTER_NAMES) + "\n"
                    "With -r, length is replaced by begin and end of each region.",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    comp.add_argument("input", nargs="?", metavar="FILE",
                      help="FASTA/FASTQ file, optionally gzipped; '-' for stdin [stdin]")
    comp.add_argument("-u", dest="upper_only", action="store_true",
                      help="Count upper-case bases only")
    comp.add_argument("-r", dest="regions", metavar="FILE", default=None,
                      help="Region list: 'name', 'name pos' (1-based) or 'name begin end' (0-based, BED)")
    comp.add_argument("--both_strands", action="store_true",
                      help="Count the G of each CpG as well as the C")
    comp.set_defaults(func=cmd_comp, parser=comp)

    fqchk = subparsers.add_parser(
        "fqchk",
        help="fastq QC (base/quality summary)",
        description="Note: use -q0 to get the distribution of all quality values",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    fqchk.add_argument("input", metavar="FILE",
                       help="FASTQ file, optionally gzipped; '-' for stdin")
    fqchk.add_argument("-q", dest="qthres", type=int, default=DEFAULT_QTHRES, metavar="INT",
                       help=f"Quality threshold for %%low/%%high; 0 prints all quality values [{DEFAULT_QTHRES}]")
    fqchk.add_argument("--phred_off", type=int, default=PHRED_OFFSET, metavar="INT",
                       help=f"Phred quality offset [{PHRED_OFFSET}]")
    fqchk.set_defaults(func=cmd_fqchk, parser=fqchk)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    start_time = time.perf_counter()

    profiler = None
    if args.profile == 1:
        profiler = cProfile.Profile()
        profiler.enable()
        logger.info("Profiling enabled...")

    status = args.func(args)

    elapsed_time = time.perf_counter() - start_time
    logger.debug(f"{args.command} completed in {elapsed_time:.4f} seconds")

    if profiler is not None:
        profiler.disable()
        stats = pstats.Stats(profiler, stream=sys.stderr)
        stats.sort_stats("cumulative")
        stats.print_stats(30)
        stats.sort_stats("tottime")
        stats.print_stats(30)

    return status


if __name__ == "__main__":
    sys.exit(main())

import argparse
import re
import sys
from enum import IntEnum
from typing import List, Optional

from .config import CHECKS, DocCheckConfig
from .errors import BadArgs, ContractViolation
from .runner import DocChecker
from .utils.logger import logger, set_level


class ExitCode(IntEnum):
    OK = 0
    WARNS = 1
    ERRS = 2
    BADARGS = 3
    SYSERR = 4


def build_config(args) -> DocCheckConfig:
    """Defaults, then the --config file, then command line flags."""
    cfg = DocCheckConfig.read(args.config) if args.config else DocCheckConfig()

    if args.files:
        cfg.files = list(args.files)
    if args.check:
        cfg.checks = list(args.check)
    if args.base_directory:
        cfg.base_dir = args.base_directory
    if args.exclude:
        cfg.exclude = list(args.exclude)
    if args.skip_subdirs:
        cfg.skip_subdirs = True
    if args.report:
        cfg.report = args.report
    if args.title:
        cfg.title = args.title
    if args.telemetry:
        cfg.telemetry_enabled = True
    if args.verbose:
        cfg.log_level = "DEBUG"

    ext = cfg.extlinks
    if args.ignore_urls:
        ext.ignore_urls = [p for value in args.ignore_urls for p in value.split()]
    if args.ignore_url_redirects:
        ext.ignore_url_redirects = True
    if args.workers is not None:
        if args.workers < 1:
            raise BadArgs("--workers must be at least 1")
        ext.workers = args.workers
    if args.timeout is not None:
        ext.timeout = args.timeout
    if args.run_timeout is not None:
        ext.run_timeout = args.run_timeout

    for pattern in ext.ignore_urls:
        try:
            re.compile(pattern)
        except re.error as e:
            raise BadArgs(f"--ignore-urls: bad pattern {pattern!r}: {e}") from e
    return cfg


def cmd_check(args) -> ExitCode:
    """Check a documentation tree."""
    cfg = build_config(args)
    set_level(cfg.log_level)
    logger.info(f"Checking {', '.join(cfg.files)} ({', '.join(cfg.checks)})")

    result = DocChecker(cfg).run()
    if not result.ok:
        logger.error(f"Check failed: {result.errors} errors, {result.warnings} warnings")
        return ExitCode.ERRS
    if result.warnings:
        logger.warning(f"Check passed with {result.warnings} warnings")
        return ExitCode.WARNS
    logger.success("Check passed")
    return ExitCode.OK


def cmd_init_config(args) -> ExitCode:
    """Write the default configuration."""
    DocCheckConfig.write(args.out, DocCheckConfig())
    logger.success(f"Default configuration saved to: {args.out}")
    return ExitCode.OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="doccheck",
        description="DocCheck: anchor, link and external URL checks for HTML documentation",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    chk_p = subparsers.add_parser("check", help="Check HTML files and directories")
    chk_p.add_argument("files", nargs="*", help="Files or directories to check")
    chk_p.add_argument("--check", action="append",
                       help=f"Checks to run: {', '.join(CHECKS)}, all, none, or -name to remove one (repeatable)")
    chk_p.add_argument("--base-directory", help="Directory that reported paths and relative arguments are based on")
    chk_p.add_argument("--exclude", action="append", help="File or directory to skip (repeatable)")
    chk_p.add_argument("--ignore-urls", action="append",
                       help="Whitespace separated regexes of URLs not to check (repeatable)")
    chk_p.add_argument("--ignore-url-redirects", action="store_true", help="Do not warn about redirected URLs")
    chk_p.add_argument("--report", help="Report file (.html, .json or text), or a directory for report.html and logs")
    chk_p.add_argument("--title", help="Report title")
    chk_p.add_argument("--skip-subdirs", action="store_true", help="Do not descend into sub-directories")
    chk_p.add_argument("--workers", type=int, help="Concurrent external URL checks")
    chk_p.add_argument("--timeout", type=float, help="Timeout in seconds for each HTTP request")
    chk_p.add_argument("--run-timeout", type=float, help="Stop starting URL checks after this many seconds")
    chk_p.add_argument("--config", help="YAML configuration file")
    chk_p.add_argument("--telemetry", action="store_true", help="Export OpenTelemetry traces")
    chk_p.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    cfg_p = subparsers.add_parser("init-config", help="Write the default configuration as YAML")
    cfg_p.add_argument("--out", default="doccheck.yaml", help="Output path for the configuration")
    return parser


def main(argv: Optional[List[str]] = None) -> ExitCode:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "check":
            return cmd_check(args)
        elif args.command == "init-config":
            return cmd_init_config(args)
        parser.print_help()
        return ExitCode.BADARGS
    except BadArgs as e:
        logger.error(f"Bad arguments: {e}")
        return ExitCode.BADARGS
    except ContractViolation as e:
        logger.opt(exception=e).critical(f"Internal error: {e}")
        return ExitCode.SYSERR


if __name__ == "__main__":
    sys.exit(main())

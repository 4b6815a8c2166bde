#!/usr/bin/env python3
"""
KUBEPIPE CLI - Config Function Entry Point
------------------------------------------
Reads a YAML stream (or a kustomize ResourceList) from stdin, runs the
field-injection stage over every document and writes the result to
stdout. Any failure leaves stdout empty, prints the error to stderr and
exits with status 1.

    kustomize config run DIR/ -- kubepipe
    kubepipe --config scaler.yaml < app.yaml > app.out.yaml

Author: KubePipe Team
Date: 2026-10-18
"""

import io
import sys
import logging
import argparse
from typing import IO, List, Optional

from rich.logging import RichHandler

from kubepipe.cli.formatter import PipeFormatter, console
from kubepipe.core.errors import KubePipeError, StreamError
from kubepipe.core.models import INDEX_ANNOTATION
from kubepipe.pipeline.runner import Pipeline
from kubepipe.rules.config import InjectorConfig, load_config
from kubepipe.rules.injector import FieldInjector
from kubepipe.streams.readwriter import ByteReadWriter

VERSION = "kubepipe v0.1.0"


class KubePipeCLI:
    """
    CLI wrapper: parses flags, wires stdin/stdout into a Pipeline and
    maps the outcome to an exit status.
    """

    def __init__(self, stdin: Optional[IO] = None, stdout: Optional[IO] = None):
        self.stdin = stdin
        self.stdout = stdout
        self.formatter = PipeFormatter()
        self.parser = argparse.ArgumentParser(
            prog="kubepipe",
            description="KubePipe - comment-preserving YAML transformation for Kubernetes configs",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="Reads stdin, writes stdout. Errors go to stderr."
        )
        self._setup_args()

    def _setup_args(self):
        """Configures the command-line flags."""
        self.parser.add_argument("--version", action="version", version=VERSION)
        self.parser.add_argument("--config", metavar="FILE",
                                 help="YAML file configuring the injection rule (default: OAM scaler)")
        self.parser.add_argument("--keep-annotations", action="store_true",
                                 help=f"Write the {INDEX_ANNOTATION} annotation onto every document")
        self.parser.add_argument("--diff", action="store_true",
                                 help="Show a diff of input versus output on stderr")
        self.parser.add_argument("-v", "--verbose", action="count", default=0,
                                 help="Log progress to stderr (-vv for debug detail)")

    def _configure_logging(self, verbosity: int):
        level = logging.WARNING
        if verbosity == 1:
            level = logging.INFO
        elif verbosity > 1:
            level = logging.DEBUG

        logger = logging.getLogger("kubepipe")
        logger.setLevel(level)
        if not any(isinstance(h, RichHandler) for h in logger.handlers):
            logger.addHandler(RichHandler(console=console, show_time=False, show_path=False))

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Executes one pipeline run and returns the process exit status."""
        args = self.parser.parse_args(argv)
        self._configure_logging(args.verbose)

        stdin = self.stdin or sys.stdin
        stdout = self.stdout or sys.stdout

        try:
            config = load_config(args.config) if args.config else InjectorConfig()

            try:
                original = stdin.read()
            except OSError as e:
                raise StreamError(f"cannot read stdin: {e}") from e

            # Buffer the output so that a failed run writes nothing at all
            buffer = io.StringIO()
            rw = ByteReadWriter(io.StringIO(original), buffer,
                                keep_reader_annotations=args.keep_annotations)
            context = Pipeline(
                inputs=[rw],
                stages=[FieldInjector(config)],
                outputs=[rw],
            ).execute()

            result = buffer.getvalue()
            try:
                stdout.write(result)
                stdout.flush()
            except OSError as e:
                raise StreamError(f"cannot write stdout: {e}") from e

        except KubePipeError as e:
            self.formatter.print_error(e)
            return 1

        if args.diff:
            self.formatter.display_diff(original, result)
        if args.verbose:
            self.formatter.print_report(context)
        return 0


def main():
    """Application entry point with interrupt handling."""
    try:
        sys.exit(KubePipeCLI().run())
    except KeyboardInterrupt:
        console.print("\n[bold red]Terminated by user.[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()

import argparse
import logging
import os
import sys

import cli.config
import cli.library
import cli.project
from cli.helpers import print_error
from infra.errors import WorkflowError


def create_parser():
    parser = argparse.ArgumentParser(
        prog='scriptorium',
        description='Scriptorium - Turn scanned documents into edited transcriptions',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Configuration
  scriptorium init                              # Initialize library config
  scriptorium config show
  scriptorium config set defaults.max_workers 8
  scriptorium config set enhancer.model mistral

  # Library management
  scriptorium library create "Parish Register 1820" --author "St. Mary's"
  scriptorium library list
  scriptorium library stats
  scriptorium library delete <id> --yes

  # Project workflow
  scriptorium project <id> import ~/Scans/register.pdf
  scriptorium project <id> stage next
  scriptorium project <id> preprocess --preset "Scanned Document"
  scriptorium project <id> ocr --engine tesseract
  scriptorium project <id> ocr --pages 3
  scriptorium project <id> select 3 tesseract
  scriptorium project <id> enhance 3 --save
  scriptorium project <id> transcribe 3 --file page3.md
  scriptorium project <id> stage show
  scriptorium project <id> export

  # Project overrides
  scriptorium project <id> config set language deu
"""
    )
    parser.add_argument('--root', help='Library root (default: $SCRIPTORIUM_ROOT or ~/Documents/scriptorium)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose logging')

    subparsers = parser.add_subparsers(dest='command', help='Command namespace')
    subparsers.required = True

    cli.config.setup_parser(subparsers)
    cli.library.setup_parser(subparsers)
    cli.project.setup_parser(subparsers)

    return parser


def main(argv=None):
    parser = create_parser()
    args = parser.parse_args(argv)

    verbose = args.verbose or os.getenv('DEBUG', '').lower() in ('1', 'true', 'yes')
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        args.func(args)
    except WorkflowError as e:
        print_error(e)
        sys.exit(1)
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)

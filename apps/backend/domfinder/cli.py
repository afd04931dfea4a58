"""
Command line front end.

    domfinder spec.yaml page.html [page2.html ...]
    cat page.html | domfinder spec.yaml --path root.links.#
    domfinder spec.yaml --check

Prints one JSON document per input page. Exit codes: 0 on success, 1 when
a `--path` query finds nothing, 2 when the specification, an input file or
the HTML parser cannot be used.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from bs4.builder import builder_registry

from .errors import FinderError
from .finder import Finder
from .settings import get_settings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='domfinder',
        description='Extract structured data from HTML with a YAML/JSON field specification'
    )
    parser.add_argument('config', type=str,
                        help='Specification file (.yaml, .yml or .json)')
    parser.add_argument('html', nargs='*', type=str,
                        help='HTML files to parse (reads stdin when omitted)')
    parser.add_argument('--path', type=str, default=None,
                        help='Print only the value at this path (e.g. root.links.#)')
    parser.add_argument('--check', action='store_true',
                        help='Only compile the specification')
    parser.add_argument('--parser', type=str, default=None,
                        help='BeautifulSoup parser (default: DOMFINDER_HTML_PARSER or lxml)')
    parser.add_argument('--indent', type=int, default=None,
                        help='Indent JSON output')
    parser.add_argument('--log-level', type=str, default=None,
                        help='Logging level (default: DOMFINDER_LOG_LEVEL or WARNING)')
    return parser


def load_finder(config_path: Path) -> Finder:
    """Compile the specification stored in `config_path`."""
    text = config_path.read_text(encoding='utf-8')
    if config_path.suffix.lower() == '.json':
        return Finder.from_json(text)
    return Finder.from_yaml(text)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    level = (args.log_level or get_settings().log_level).upper()
    logging.basicConfig(level=getattr(logging, level, logging.WARNING),
                        format='%(levelname)s: %(name)s: %(message)s')

    try:
        finder = load_finder(Path(args.config))
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error: cannot read specification: {e}", file=sys.stderr)
        return 2
    except FinderError as e:
        print(f"Error: invalid specification: {e}", file=sys.stderr)
        return 2

    if args.check:
        print(f"OK: {finder.name}")
        return 0

    pages = []
    try:
        if args.html:
            for name in args.html:
                pages.append(Path(name).read_text(encoding='utf-8'))
        else:
            pages.append(sys.stdin.read())
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error: cannot read HTML: {e}", file=sys.stderr)
        return 2

    parser_name = args.parser or get_settings().html_parser
    if builder_registry.lookup(parser_name) is None:
        print(f"Error: unknown HTML parser: {parser_name!r}", file=sys.stderr)
        return 2

    exit_code = 0
    for page in pages:
        result = finder.parse(page, parser_name)
        if args.path:
            found = result.from_path(args.path)
            if found is None:
                logger.warning(f"Path {args.path!r} not found")
                print("null")
                exit_code = 1
                continue
            result = found
        print(result.to_json(indent=args.indent))

    return exit_code


if __name__ == '__main__':
    sys.exit(main())

"""
Clean up a downloaded HTML page before packaging it as an EPUB.

Usage: html-cleanup HTML_INPUT_FILE HTML_OUTPUT_FILE [RULESET]

RULESET is the name of a bundled rule set or a path to a YAML rule set file.
Cleaning is kept separate from downloading so pages only need fetching once,
and so the output can go to any packager, e.g.

    pandoc -o title.epub file.html
    percollate epub -o title.epub *.html
"""

import logging
import sys
from pathlib import Path

from .errors import ConfigurationError, HtmlCleanupError
from .pipeline import clean_html
from .rules import DEFAULT_RULESET, bundled_rulesets, load_ruleset

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(filename)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: int = logging.INFO):
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def usage(prog: str) -> str:
    return (
        f"Usage: {prog} HTML_INPUT_FILE HTML_OUTPUT_FILE [RULESET]\n"
        f"  RULESET: bundled name ({', '.join(bundled_rulesets())}) or path to a YAML file"
        f" (default: {DEFAULT_RULESET})"
    )


def parse_args(argv: list[str]) -> tuple[Path, Path, str]:
    if len(argv) not in (2, 3):
        raise ConfigurationError(f"Expected 2 or 3 arguments, got {len(argv)}")
    input_path, output_path = Path(argv[0]), Path(argv[1])
    ruleset = argv[2] if len(argv) == 3 else DEFAULT_RULESET
    return input_path, output_path, ruleset


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    try:
        input_path, output_path, ruleset_name = parse_args(argv)
    except ConfigurationError:
        print(usage(Path(sys.argv[0]).name))
        return 1

    setup_logging()
    try:
        rules = load_ruleset(ruleset_name)
        html_input = input_path.read_bytes()
        html_output = clean_html(html_input, rules)
        with output_path.open("w", encoding="utf-8") as f:
            f.write(html_output)
    except HtmlCleanupError as e:
        logging.error(f"Cleanup failed for {input_path}: {e}")
        return 1
    except OSError as e:
        logging.error(f"File error: {e}")
        return 1

    logging.info(f"Cleaned {input_path} -> {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
bra-detect command line entry point

Runs one detection pass over a saved HTML file or a live URL (Playwright
Chromium) and prints the JSON result or its UI projection.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from playwright.async_api import async_playwright

from utils.env import is_ci_environment, is_debug_enabled
from .engine import FieldDetectionEngine
from .errors import DetectionError
from .models import DetectionResult

logger = logging.getLogger(__name__)

LIVE_NAVIGATION_TIMEOUT_MS = 30000


class SummaryOnlyFilter(logging.Filter):
    """Quiet-mode filter: errors, warnings and ``summary``-tagged records pass.

    Per-field detection warnings are suppressed as noise unless they are
    tagged as a summary.
    """

    def __init__(self, quiet: bool = True):
        super().__init__()
        self.quiet = quiet

    def _is_internal_field_warning(self, record: logging.LogRecord) -> bool:
        msg = str(getattr(record, "msg", "")).lower()
        return msg.startswith("skipping unreadable control") or msg.startswith(
            "skipping invalid regex"
        )

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not self.quiet:
            return True
        if record.levelno >= logging.ERROR:
            return True
        if bool(getattr(record, "summary", False)):
            return True
        if record.levelno == logging.WARNING:
            return not self._is_internal_field_warning(record)
        return False


def configure_logging(verbose: bool = False, debug: bool = False) -> None:
    """Reconfigure the root logger: quiet (default), verbose or debug.

    CI runs are never quiet so job logs keep the per-field warnings.
    """
    level = logging.DEBUG if debug else logging.INFO
    quiet = not (verbose or debug or is_ci_environment())

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)

    # stdout carries the JSON result
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
    if quiet:
        handler.addFilter(SummaryOnlyFilter(quiet=True))

    root.addHandler(handler)
    root.setLevel(level)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bra-detect",
        description="Detect and classify business-registration form fields",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  bra-detect form.html --url https://corponline.dcra.dc.gov/register
  bra-detect form.html --state CA --ui
  bra-detect --live https://bizfileonline.sos.ca.gov/
""",
    )
    parser.add_argument("file", nargs="?", help="Saved HTML file to analyse")
    parser.add_argument("--live", metavar="URL", help="Open URL in headless Chromium and analyse it")
    parser.add_argument("--url", help="Page URL of the saved file (state detection, URL analysis)")
    parser.add_argument("--state", help="Two-letter jurisdiction code; skips state detection")
    parser.add_argument("--overrides", metavar="JSON", help="JSON file with knowledge overrides")
    parser.add_argument("--ui", action="store_true", help="Print the UI projection instead of the full result")
    parser.add_argument("--verbose", action="store_true", help="Show normal logs (summary filter off)")
    parser.add_argument("--debug", action="store_true", help="Show debug logs")
    return parser


def _load_overrides(path: Optional[str]) -> Optional[Dict[str, Any]]:
    if not path:
        return None
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


async def detect_live(
    engine: FieldDetectionEngine,
    url: str,
    state_code: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> DetectionResult:
    """Navigate headless Chromium to ``url`` and run a pass over the loaded page."""
    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(headless=True)
        try:
            page = await browser.new_page()
            await page.goto(url, wait_until="domcontentloaded", timeout=LIVE_NAVIGATION_TIMEOUT_MS)
            return await engine.detect_page(page, state_code, overrides)
        finally:
            await browser.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.file and not args.live:
        parser.error("either FILE or --live URL is required")
    if args.file and args.live:
        parser.error("FILE and --live are mutually exclusive")

    configure_logging(verbose=args.verbose, debug=args.debug or is_debug_enabled())

    try:
        overrides = _load_overrides(args.overrides)
        engine = FieldDetectionEngine()
        if args.live:
            result = asyncio.run(detect_live(engine, args.live, args.state, overrides))
        else:
            html = Path(args.file).read_text(encoding="utf-8")
            result = engine.detect_html(html, url=args.url, state_code=args.state, knowledge_overrides=overrides)
    except (OSError, ValueError, DetectionError) as e:
        logger.error(f"Detection failed: {e}", exc_info=args.debug)
        return 1
    except Exception as e:
        logger.error(f"Unexpected failure: {e}", exc_info=True)
        return 1

    payload = engine.project(result, args.state) if args.ui else result.to_dict()
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


def run_main():
    sys.exit(main())


if __name__ == "__main__":
    run_main()

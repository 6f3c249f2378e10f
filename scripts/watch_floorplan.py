#!/usr/bin/env python3
"""Mirror live Home Assistant states onto a floorplan.

Without a floorplan the script prints every class change to stdout, which
is handy for checking a token and alias table against a live instance.
With ``--floorplan`` the SVG is tagged in place and written to
``--output`` once per batch of changes, styled by the bundled stylesheet
unless ``--css`` names another.

Usage
-----
Set environment variables and run::

    export FLOORPLAN_URL="http://homeassistant.local:8123"
    export FLOORPLAN_TOKEN="long-lived-token"
    python scripts/watch_floorplan.py

Options::

    --floorplan FILE     SVG floorplan (default: FLOORPLAN_FLOORPLAN)
    --css FILE           Stylesheet for the HTML output (default: bundled style.css)
    --output FILE        Write the tagged SVG after each batch of changes
    --html FILE          Also write the wrapped HTML on exit
    --map ID=ELEMENT     Alias an entity to an element (repeatable)
    --domains a,b        Only track these domains
    --reconnect-delay S  Seconds between stream attempts
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyfloorplan import FloorplanConfig, FloorplanEngine, FloorplanError, MemoryRenderer, SvgRenderer  # noqa: E402
from pyfloorplan.render.base import element_selector  # noqa: E402


def _print_change(element_id: str, classes: frozenset[str]) -> None:
    print(f"{element_selector(element_id)} -> {' '.join(sorted(classes))}", flush=True)


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.floorplan:
        overrides["floorplan"] = args.floorplan
    if args.css:
        overrides["custom_css"] = args.css
    if args.domains:
        overrides["domains"] = args.domains
    if args.reconnect_delay is not None:
        overrides["reconnect_delay"] = args.reconnect_delay
    if args.map:
        mapping: dict[str, str] = {}
        for item in args.map:
            entity_id, sep, element_id = item.partition("=")
            if not sep:
                raise SystemExit(f"--map expects ENTITY_ID=ELEMENT_ID, got {item!r}")
            mapping[entity_id.strip()] = element_id.strip()
        overrides["mapping"] = mapping
    return overrides


async def main() -> None:
    parser = argparse.ArgumentParser(description="Mirror Home Assistant entity states onto a floorplan.")
    parser.add_argument("--floorplan", help="SVG floorplan (default: FLOORPLAN_FLOORPLAN)")
    parser.add_argument("--css", help="Stylesheet for the HTML output (default: bundled style.css)")
    parser.add_argument("--output", "-o", help="Write the tagged SVG to FILE after each batch of changes")
    parser.add_argument("--html", help="Write the wrapped HTML to FILE on exit")
    parser.add_argument("--map", action="append", metavar="ID=ELEMENT", help="Alias an entity to an element")
    parser.add_argument("--domains", help="Comma separated domains to track")
    parser.add_argument("--reconnect-delay", type=float, help="Seconds between stream attempts")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        config = FloorplanConfig.from_env(**_overrides(args))
        if config.floorplan:
            renderer: Any = SvgRenderer.from_files(config.floorplan, css=config.custom_css, output=args.output)
            if args.output:
                renderer.save(args.output)
        else:
            renderer = MemoryRenderer(auto_create=True, on_change=_print_change)
    except FloorplanError as exc:
        raise SystemExit(str(exc)) from exc

    loop = asyncio.get_running_loop()
    async with FloorplanEngine(config, renderer) as engine:
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, engine.stop)
        await engine.wait()

    if args.html and isinstance(renderer, SvgRenderer):
        Path(args.html).write_text(renderer.to_html(), encoding="utf-8")
        print(f"HTML written to {args.html}", file=sys.stderr)


if __name__ == "__main__":
    asyncio.run(main())

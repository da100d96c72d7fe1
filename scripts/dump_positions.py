#!/usr/bin/env python3
"""Dump the canonical positions of one tracking source.

This script logs in to the provider (when it needs a login), fetches the
latest positions and prints both the mapped canonical records **and**,
with ``--raw``, the provider JSON. The ERP is never contacted.

Usage
-----
Set the SANKHYA_* and provider environment variables and run::

    python scripts/dump_positions.py atualcargo

Options::

    --raw               Also print the raw provider records
    --json              Output as machine-readable JSON
    --limit N           Print at most N records (default: all)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import aiohttp

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from trackhub._logging import configure_logging  # noqa: E402
from trackhub._redact import redact_for_log  # noqa: E402
from trackhub._transport import HttpTransport  # noqa: E402
from trackhub.app import build_adapter  # noqa: E402
from trackhub.config import HubConfig  # noqa: E402
from trackhub.exceptions import TrackHubError  # noqa: E402
from trackhub.session import CredentialManager  # noqa: E402


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("source", help="Source name: atualcargo, sitrax or positron")
    parser.add_argument("--raw", action="store_true", help="Also print raw provider records")
    parser.add_argument("--json", action="store_true", help="Output JSON")
    parser.add_argument("--limit", type=int, default=None, help="Print at most N records")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


async def _dump(args: argparse.Namespace) -> int:
    config = HubConfig.from_env()
    matches = [source for source in config.sources if source.name.lower() == args.source.lower()]
    if not matches:
        print(f"Unknown source {args.source!r}", file=sys.stderr)
        return 2
    source = matches[0]

    async with aiohttp.ClientSession() as http_session:
        transport = HttpTransport(http_session, default_timeout=config.request_timeout)
        adapter = build_adapter(source, config, transport)
        token = None
        if adapter.requires_login:
            token = await CredentialManager(source.name, adapter.login).ensure_token()
        raw = await adapter.fetch_positions(token)
        positions = adapter.map_to_canonical(raw)

    limit = args.limit if args.limit is not None else len(positions)
    output: dict[str, Any] = {
        "source": source.name,
        "received": len(raw),
        "mapped": len(positions),
        "positions": [position.model_dump(mode="json") for position in positions[:limit]],
    }
    if args.raw:
        output["raw"] = redact_for_log(raw[:limit], max_items=limit or 1)

    if args.json:
        print(json.dumps(output, indent=2, ensure_ascii=False, default=str))
        return 0

    print(f"{source.name}: {output['received']} received, {output['mapped']} mapped")
    for position in positions[:limit]:
        print(
            f"  {position.kind.value:<7} {position.identifier:<12} {position.observed_at:%d/%m/%Y %H:%M:%S} "
            f"({position.latitude:.5f}, {position.longitude:.5f}) {position.speed:>5.0f} km/h "
            f"ign={'S' if position.ignition_on else 'N'} {position.location_label}"
        )
    if args.raw:
        print(json.dumps(output["raw"], indent=2, ensure_ascii=False, default=str))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)
    try:
        return asyncio.run(_dump(args))
    except TrackHubError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

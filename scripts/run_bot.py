from __future__ import annotations

import argparse
from pathlib import Path
import sys

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from pydantic import ValidationError

from market_bot.errors import MarketDataUnavailableError
from market_bot.main import BotRuntime, app, load_settings_or_report
from market_bot.services.status import format_status


def _serve(settings) -> int:
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
    return 0


def _report(runtime: BotRuntime) -> int:
    return 0 if runtime.reporting.send_report(with_ai=True) else 1


def _test(runtime: BotRuntime) -> int:
    for name, ok in runtime.advice.provider_status().items():
        print(f"[AI][probe] provider={name} available={int(ok)}", flush=True)
    try:
        snapshot = runtime.market_data.get_market_data()
    except MarketDataUnavailableError as exc:
        print(f"[AI][probe_no_data] error={exc}", flush=True)
        return 1
    print(runtime.advice.get_advice(snapshot), flush=True)
    return 0


def _status(runtime: BotRuntime) -> int:
    print(format_status(runtime.collect_status()), flush=True)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Crypto market bot")
    parser.add_argument(
        "command",
        nargs="?",
        default="serve",
        choices=["serve", "report", "test", "status"],
        help="serve: scheduler + HTTP endpoint; report: send one full report; "
        "test: probe AI providers; status: probe external services",
    )
    args = parser.parse_args(argv)

    try:
        settings = load_settings_or_report()
    except ValidationError:
        print("[BOOT][exit] set TG_BOT_TOKEN and TG_CHAT_ID", flush=True)
        return 1

    if args.command == "serve":
        return _serve(settings)

    runtime = BotRuntime(settings)
    handlers = {"report": _report, "test": _test, "status": _status}
    return handlers[args.command](runtime)


if __name__ == "__main__":
    sys.exit(main())

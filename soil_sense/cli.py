"""CLI for the SoilSense sensor simulator and recommendation engine."""
import argparse
import json
import logging
import sys
import time
from pathlib import Path

from .config import STORAGE, LIVE_FEED, LOG_LEVEL, LOG_FORMAT
from .chat import AgroBot, ChatSettings
from .profiles import UnknownCropError
from .recommendations import format_value, npk_level, ph_category
from .service import SoilDataService
from .simulator import SensorReading
from .storage import JsonFileStore, MemoryStore


def _print_reading(r: SensorReading) -> None:
    print(f"{r.timestamp:%Y-%m-%d %H:%M:%S} | {r.crop} | "
          f"moisture {format_value(r.moisture, 1, '%')} | pH {format_value(r.ph, 2)} | "
          f"N {format_value(r.n)} P {format_value(r.p)} K {format_value(r.k)} | "
          f"{format_value(r.temperature, 1, '°C')} | RH {format_value(r.humidity, 0, '%')} | "
          f"pump {'ON' if r.pump_on else 'off'}")


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="SoilSense soil monitoring")
    p.add_argument("--store", default=str(STORAGE.path), help="Key-value store JSON path")
    p.add_argument("--json", action="store_true", help="Print JSON instead of text")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("reading", help="Show the latest reading")
    h = sub.add_parser("history", help="List stored readings")
    h.add_argument("--range", default="daily", choices=["daily", "weekly", "monthly", "all"])
    r = sub.add_parser("recommend", help="Recommendations for the latest reading")
    r.add_argument("--crop")
    c = sub.add_parser("crop", help="Show or set the monitored crop")
    c.add_argument("key", nargs="?")
    l = sub.add_parser("live", help="Run the live feed")
    l.add_argument("--interval-ms", type=int, default=LIVE_FEED.interval_ms)
    l.add_argument("--ticks", type=int, default=0, help="Stop after N readings (0 = until Ctrl+C)")
    sub.add_parser("seed", help="Backfill 60h of history if it is nearly empty")
    a = sub.add_parser("ask", help="Ask AgroBot a question")
    a.add_argument("question")
    a.add_argument("--demo", action="store_true", help="Answer offline from built-in guides")
    args = p.parse_args(argv)

    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
    store = JsonFileStore(Path(args.store).expanduser())
    service = SoilDataService(store)

    if args.command == "reading":
        reading = service.latest_reading() or service.get_reading()
        if args.json:
            print(json.dumps(reading.to_dict(), indent=2, ensure_ascii=False))
        else:
            _print_reading(reading)
            if reading.ph is not None:
                print(f"pH category: {ph_category(reading.ph).label}")
            for name in ("n", "p", "k"):
                value = getattr(reading, name)
                if value is not None:
                    print(f"{name.upper()} level: {npk_level(value).label}")

    elif args.command == "history":
        readings = service.get_filtered_history(args.range)
        if args.json:
            print(json.dumps([r.to_dict() for r in readings], indent=2, ensure_ascii=False))
        else:
            for reading in readings:
                _print_reading(reading)
            print(f"{len(readings)} readings ({args.range})")

    elif args.command == "recommend":
        reading = service.latest_reading() or service.get_reading()
        recs = service.get_recommendations(reading, args.crop)
        if args.json:
            print(json.dumps([x.to_dict() for x in recs], indent=2, ensure_ascii=False))
        else:
            for rec in recs:
                print(f"[{rec.severity.value.upper():8}] {rec.icon} {rec.category}: {rec.message}")

    elif args.command == "crop":
        if args.key:
            try:
                service.set_current_crop(args.key)
            except UnknownCropError as e:
                sys.exit(str(e))
        print(service.get_current_crop())

    elif args.command == "seed":
        added = service.seed_history()
        print(f"Seeded {added} readings" if added else "History already populated; nothing seeded")

    elif args.command == "live":
        seen = []
        service.on_live_data(_print_reading)
        service.on_live_data(seen.append)
        service.start_live_data(args.interval_ms)
        try:
            while not args.ticks or len(seen) < args.ticks:
                time.sleep(0.05)
        except KeyboardInterrupt:
            pass
        finally:
            service.stop_live_data()

    elif args.command == "ask":
        settings = ChatSettings(MemoryStore() if args.demo else store)
        if args.demo:
            settings.enable_demo()
        bot = AgroBot(store, settings)
        result = bot.chat(args.question)
        if not result["success"]:
            sys.exit(f"Error: {result['error']}")
        print(result["response"])

    return 0


if __name__ == "__main__":
    sys.exit(main())

# scripts/run_benchmark.py

import argparse
import sys
import threading

from cache_benchmark.benchmark import Benchmark
from cache_benchmark.config import Settings
from cache_benchmark.logger import setup_logging, get_logger

logger = get_logger(__name__)

PROMPT = "Type 'p' to print stats, 'q' to quit."


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Бенчмарк кеш-бэкендов поверх ненадёжного хранилища"
    )
    parser.add_argument(
        "-c", "--config",
        metavar="PATH",
        type=str,
        default=None,
        help="Путь до YAML-конфига (по умолчанию: CONFIG_PATH или config/default.yaml)"
    )
    parser.add_argument(
        "--no-export",
        action="store_true",
        help="Не экспортировать метрики в файл"
    )
    parser.add_argument(
        "-i", "--interactive",
        action="store_true",
        help="Прогон в реальном времени с консолью: p — статистика, q — выход"
    )
    parser.add_argument(
        "--plot",
        action="store_true",
        help="Показать графики после прогона"
    )
    return parser.parse_args(argv)


def run_interactive(bench: Benchmark, stdin=sys.stdin) -> None:
    """Бенчмарк крутится в отдельном потоке, консоль в основном."""
    worker = threading.Thread(target=bench.run, name="benchmark", daemon=True)
    worker.start()
    print(f"Benchmark started. {PROMPT}")

    for line in stdin:
        command = line.strip()
        if command == "q":
            break
        if command == "p":
            print(bench.metrics.info())
            print("\n".join(bench.store_states()))
        elif command:
            print("Unknown command")
        if not worker.is_alive():
            print("Benchmark finished.")
            break
        print(PROMPT)

    bench.stop()
    worker.join()


def main(argv=None):
    args = parse_args(argv)

    # Загрузка конфига
    settings = Settings.load(path=args.config)
    if args.no_export:
        settings.output = None
    if args.interactive:
        # консоль имеет смысл только при ходе времени по часам
        if settings.benchmark.realtime_factor is None:
            settings.benchmark.realtime_factor = 1.0
        settings.benchmark.rounds = None

    setup_logging(settings)
    logger.info("Loaded settings and configured logging")

    bench = Benchmark(settings)

    if args.interactive:
        run_interactive(bench)
    else:
        bench.run()

    # Печать сводки по метрикам
    summary = bench.metrics.summary()
    print("\n=== Benchmark Metrics Summary ===")
    for name, data in summary["scenarios"].items():
        print(f"--- {name}")
        for k, v in data.items():
            print(f"{k:20}: {v}")
    for store, outages in summary["store_outages"].items():
        print(f"{store:20}: {outages} outage(s)")

    if args.no_export:
        logger.info("Skipping metrics export (--no-export)")
    elif settings.output is None:
        logger.warning("No output.path in config; nothing was exported")

    if args.plot:
        from cache_benchmark.visualizer import BenchmarkVisualizer
        BenchmarkVisualizer(bench.metrics, t_end=bench.env.now).show_all()

    return 0


if __name__ == "__main__":
    sys.exit(main())

# region Imports
import argparse
import logging
import sys

from .config import load_config
# endregion

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="geomarketing",
        description="Find promising bike-shop locations from census and OpenStreetMap data.",
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = ap.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="run the full location analysis")
    run.add_argument("--config", help="JSON file overriding PipelineConfig fields")
    run.add_argument("--census-csv", help="local census CSV instead of downloading")
    run.add_argument("--data-dir", help="where the census archive is cached")
    run.add_argument("--output-dir", help="where results are written")

    serve = sub.add_parser("serve", help="preview a written layer stack over HTTP")
    serve.add_argument("--stack", required=True, help="GeoTIFF written by 'run'")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8081)
    return ap


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)

    if args.command == "run":
        from .pipeline import run
        try:
            cfg = load_config(
                args.config,
                census_csv=args.census_csv,
                data_dir=args.data_dir,
                output_dir=args.output_dir,
            )
        except ValueError as e:
            logger.error("%s", e)
            return 2
        result = run(cfg)
        for kind, path in result.outputs.items():
            print(f"{kind}: {path}")
        return 0

    from .app import create_app
    app = create_app(args.stack)
    app.run(host=args.host, port=args.port, threaded=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())

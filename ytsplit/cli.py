"""Thin CLI entry point: builds a SplitJob and calls the engine."""

import argparse
import logging
import sys
from dataclasses import asdict
from pathlib import Path

import tomli_w

from ytsplit.chapters.refine import format_refinement_report
from ytsplit.config import ConfigError, config_path, load_config, save_config, set_config_value
from ytsplit.downloader import DownloadError, ToolNotFoundError
from ytsplit.editors.split import SplitError
from ytsplit.engine import SplitJob, process
from ytsplit.timestamps import format_timestamp
from ytsplit.titles import format_duration


def setup_logging(verbose: bool = False) -> None:
    """Configure the root logger with a standard format."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="[%(asctime)s] %(levelname)s - %(name)s - %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ytsplit",
        description="ytsplit: download a video's audio and split it into tagged MP3 tracks.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    split = sub.add_parser("split", help="Download and split a video")
    split.add_argument("url", help="Video URL")
    split.add_argument("--output", "-o", type=Path, help="Base output directory")
    split.add_argument("--artist", "-a", help="Force the artist name")
    split.add_argument("--album", "-A", help="Force the album name")
    split.add_argument("--no-refine", action="store_true", help="Keep declared chapter boundaries as-is")
    split.add_argument("--no-cover", action="store_true", help="Skip cover art download")
    split.add_argument("--keep-audio", action="store_true", help="Keep the full downloaded audio file")
    split.add_argument("--silence-threshold", type=float, help="Silence threshold in dB")
    split.add_argument("--silence-min-duration", type=float, help="Minimum silence duration (seconds)")
    split.add_argument("--refine-window", type=float, help="Refinement search window (± seconds)")
    split.add_argument("--timeout", type=float, help="Per-attempt yt-dlp timeout (seconds)")

    cfg = sub.add_parser("config", help="Show or change the configuration")
    cfg_sub = cfg.add_subparsers(dest="config_command")
    cfg_sub.add_parser("show", help="Print the effective configuration")
    cfg_sub.add_parser("path", help="Print the configuration file path")
    cfg_sub.add_parser("init", help="Write the default configuration file")
    cfg_set = cfg_sub.add_parser("set", help="Set a value, e.g. 'refine.window 3.5'")
    cfg_set.add_argument("key")
    cfg_set.add_argument("value")

    serve = sub.add_parser("serve", help="Launch the web UI")
    serve.add_argument("--port", type=int, default=8321, help="Port to listen on")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")

    return parser


def _run_config(args, parser: argparse.ArgumentParser) -> None:
    if args.config_command == "path":
        print(config_path())
        return
    if args.config_command == "init":
        print(f"Wrote {save_config(load_config())}")
        return
    if args.config_command == "set":
        config = load_config()
        set_config_value(config, args.key, args.value)
        save_config(config)
        print(f"{args.key} = {args.value}")
        return
    if args.config_command in (None, "show"):
        print(tomli_w.dumps(asdict(load_config())), end="")
        return
    parser.error(f"unknown config command {args.config_command}")


def _run_split(args) -> None:
    config = load_config()
    if args.no_refine:
        config.refine.enabled = False
    if args.no_cover:
        config.download_cover = False
    if args.keep_audio:
        config.keep_audio = True
    if args.silence_threshold is not None:
        config.silence.threshold_db = args.silence_threshold
    if args.silence_min_duration is not None:
        config.silence.min_duration = args.silence_min_duration
    if args.refine_window is not None:
        config.refine.window = args.refine_window
    if args.timeout is not None:
        config.download.timeout = args.timeout

    job = SplitJob(
        url=args.url,
        config=config,
        output_dir=args.output,
        artist=args.artist,
        album=args.album,
    )

    def on_progress(stage: str, frac: float) -> None:
        print(f"  [{frac:3.0%}] {stage}")

    result = process(job, on_progress=on_progress)

    print()
    print(f"Done! Output: {result.output_dir}")
    print(f"  Title: {result.title} ({format_duration(result.duration)})")
    print(f"  Artist: {result.artist} | Album: {result.album}")
    print(f"  Chapters from: {result.chapter_source}")
    for n, chapter in enumerate(result.chapters, 1):
        print(f"  {n:02d}. {format_timestamp(chapter.start_time)}  {chapter.title}")
    if result.download_failures:
        print(f"  Download needed {len(result.download_failures) + 1} format attempts")
    if result.refinement and any(abs(e.delta) >= 0.1 for e in result.refinement):
        print()
        print(format_refinement_report(result.refinement))
    if result.audio_path:
        print(f"  Full audio kept at: {result.audio_path}")


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        if args.command == "serve":
            from ytsplit.web import create_app
            app = create_app()
            print(f"ytsplit web UI: http://{args.host}:{args.port}")
            app.run(host=args.host, port=args.port, debug=False)
        elif args.command == "config":
            _run_config(args, parser)
        else:
            _run_split(args)
    except (ConfigError, DownloadError, ToolNotFoundError, SplitError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

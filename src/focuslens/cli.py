"""Command-line interface for focuslens.

Provides the main entry point for recording a tracking session,
scoring a single image, testing screen capture, and running the
analysis server.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="focuslens",
        description="Screenshot-driven productivity tracker",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/focuslens.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    track_parser = subparsers.add_parser("track", help="Record a tracking session")
    track_parser.add_argument(
        "--goal", type=str, default=None,
        help="What you intend to work on (default: tracker.goal from config)",
    )
    track_parser.add_argument(
        "--duration", type=float, default=None,
        help="Stop automatically after this many minutes",
    )
    track_parser.add_argument(
        "--mode", choices=["client", "server", "fake"], default=None,
        help="Analysis mode override (default: analysis.mode from config)",
    )

    analyze_parser = subparsers.add_parser("analyze", help="Score a single image file")
    analyze_parser.add_argument("image", type=Path, help="Screenshot to analyze")
    analyze_parser.add_argument("--goal", type=str, default=None, help="Goal to score against")
    analyze_parser.add_argument(
        "--mode", choices=["client", "server", "fake"], default=None,
        help="Analysis mode override",
    )

    subparsers.add_parser("capture-test", help="Capture one screenshot and save it")
    subparsers.add_parser("serve", help="Start the analysis proxy server")

    return parser.parse_args(argv)


def build_analyzer(settings):
    """Build the analysis client selected by ``analysis.mode``.

    Raises:
        ValueError: If client mode is selected without a usable API key.
    """
    from focuslens.analysis.fake import FakeAnalysisClient

    cfg = settings.analysis
    if cfg.mode == "fake":
        return FakeAnalysisClient(delay=cfg.fake_delay)
    if cfg.mode == "server":
        from focuslens.analysis.proxy import ProxyAnalysisClient
        return ProxyAnalysisClient(base_url=cfg.proxy_url, timeout=cfg.timeout)

    from focuslens.analysis.openai import validate_api_key

    if not validate_api_key(settings.openai_api_key.get_secret_value()):
        raise ValueError(
            "Please set a valid OpenAI API key (starts with sk-) "
            "or use the server key option (--mode server)"
        )
    return build_openai_client(settings)


def build_openai_client(settings):
    """Live vision client using the configured key, model and endpoint."""
    from focuslens.analysis.openai import OpenAIAnalysisClient

    cfg = settings.analysis
    return OpenAIAnalysisClient(
        api_key=settings.openai_api_key.get_secret_value(),
        model=cfg.model,
        base_url=cfg.base_url,
        max_tokens=cfg.max_tokens,
        timeout=cfg.timeout,
        prompt_template=cfg.prompt_override,
    )


def build_input_sources(settings) -> list:
    from focuslens.triggers.focus import WindowFocusSource
    from focuslens.triggers.keyboard_mouse import PynputInputSource

    cfg = settings.triggers
    sources = []
    if cfg.clicks_enabled or cfg.keystrokes_enabled:
        sources.append(PynputInputSource(clicks=cfg.clicks_enabled, keystrokes=cfg.keystrokes_enabled))
    if cfg.focus_enabled:
        sources.append(WindowFocusSource(poll_interval=cfg.focus_poll_interval))
    return sources


def build_telemetry(settings):
    from focuslens.tracker.telemetry import HttpTelemetrySink, LoggingTelemetrySink

    if settings.telemetry.backend == "http":
        return HttpTelemetrySink(url=settings.telemetry.url, timeout=settings.telemetry.timeout)
    return LoggingTelemetrySink()


def build_capture(settings):
    from focuslens.capture.screen import ScreenCapture

    return ScreenCapture(
        monitor=settings.capture.monitor,
        jpeg_quality=settings.capture.jpeg_quality,
        max_dimension=settings.capture.max_dimension,
    )


def format_entry(entry) -> str:
    """One feed line for an analysis log entry."""
    ts = entry.timestamp.strftime("%H:%M:%S")
    return (
        f"[{ts}] {entry.activity} ({entry.trigger.value}) "
        f"{entry.productivity}% [{entry.band.value}] - {entry.headline}"
    )


def _format_duration(seconds: int) -> str:
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


async def _track(settings, args) -> int:
    """Record a session until stopped, the stream ends or time runs out."""
    from focuslens.capture.base import CaptureError
    from focuslens.tracker.controller import ProductivityTracker

    try:
        analyzer = build_analyzer(settings)
    except ValueError as e:
        print(f"Error: {e}")
        return 2

    tracker = ProductivityTracker(
        capture=build_capture(settings),
        analyzer=analyzer,
        input_sources=build_input_sources(settings),
        goal=settings.tracker.goal,
        telemetry=build_telemetry(settings),
        periodic_interval=settings.triggers.periodic_interval,
        keystroke_threshold=settings.triggers.keystroke_threshold,
        log_display_limit=settings.tracker.log_display_limit,
        metrics_mode=settings.tracker.metrics_mode,
        metrics_window=settings.tracker.metrics_window,
        screenshot_dir=settings.tracker.screenshot_dir,
        on_entry=lambda entry: print(format_entry(entry)),
    )

    async with tracker:
        try:
            await tracker.start()
        except CaptureError as e:
            print(f"Screen capture permission required for progress tracking: {e}")
            return 1

        print(f"Tracking session started. Goal: {tracker.goal}")
        print("Press Ctrl+C to stop.\n")
        try:
            if args.duration:
                await asyncio.wait_for(tracker.wait_stopped(), timeout=args.duration * 60)
            else:
                await tracker.wait_stopped()
        except asyncio.TimeoutError:
            pass
        finally:
            # Ctrl+C arrives as cancellation of this task
            tracker.stop()
            print_summary(tracker.last_session)
    return 0


def print_summary(session) -> None:
    """Print the end-of-session report for a stopped session."""
    summary = session.summary()
    print("\nSession ended")
    print(f"  Duration:     {_format_duration(summary.duration_seconds)}")
    print(f"  Screenshots:  {summary.screenshot_count} ({summary.analysis_count} analyzed)")
    print(f"  Clicks:       {summary.counters.clicks}")
    print(f"  Keystrokes:   {summary.counters.keystrokes}")
    print(f"  Window changes: {summary.counters.window_changes}")
    print(f"  Goal progress: {summary.progress.goal_completion}%")
    print(f"  Efficiency:   {summary.progress.efficiency}%")
    recent = session.recent_entries()
    if recent:
        print("\nRecent analyses:")
        for entry in recent:
            print(f"  {format_entry(entry)}")


async def _analyze_file(settings, args) -> int:
    """Score a single image file and print the result as JSON."""
    from focuslens.analysis.base import UpstreamError
    from focuslens.utils.imaging import decode_image, encode_jpeg

    try:
        analyzer = build_analyzer(settings)
    except ValueError as e:
        print(f"Error: {e}")
        return 2

    jpeg = encode_jpeg(decode_image(args.image.read_bytes()), quality=settings.capture.jpeg_quality)
    async with analyzer:
        try:
            result = await analyzer.analyze(jpeg, args.goal or settings.tracker.goal)
        except UpstreamError as e:
            print(f"Analysis failed: {e}")
            return 1
    print(json.dumps(result.model_dump(by_alias=True), indent=2))
    return 0


async def _capture_test(settings) -> int:
    """Capture a single screenshot and save it to file."""
    from focuslens.capture.base import CaptureError

    try:
        async with build_capture(settings) as capture:
            frame = await capture.capture_frame()
    except CaptureError as e:
        print(f"Capture failed: {e}")
        return 1
    outfile = Path("capture_test.jpg")
    outfile.write_bytes(frame.jpeg)
    print(f"Saved frame to {outfile} ({frame.width}x{frame.height}, {len(frame.jpeg)} bytes)")
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the focuslens CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from focuslens.config.settings import load_settings
    from focuslens.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"
    if getattr(args, "mode", None):
        settings.analysis.mode = args.mode
    if getattr(args, "goal", None) and args.command == "track":
        settings.tracker.goal = args.goal

    setup_logging(settings.logging)

    exit_code = 0
    if args.command == "track":
        logger.info("Starting tracking session")
        try:
            exit_code = asyncio.run(_track(settings, args))
        except KeyboardInterrupt:
            logger.info("Tracking interrupted")

    elif args.command == "analyze":
        exit_code = asyncio.run(_analyze_file(settings, args))

    elif args.command == "capture-test":
        logger.info("Running capture test")
        exit_code = asyncio.run(_capture_test(settings))

    elif args.command == "serve":
        logger.info("Starting analysis server")
        import uvicorn
        from focuslens.server.app import create_app

        analyzer = None
        if settings.openai_api_key.get_secret_value():
            analyzer = build_openai_client(settings)
        else:
            logger.warning("No OpenAI API key configured, /api/analyze will answer 500")
        app = create_app(analyzer=analyzer)
        uvicorn.run(app, host=settings.server.host, port=settings.server.port)

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()

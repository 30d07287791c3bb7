"""
Ink Preview CLI - Command-line interface for the preview.

Usage:
    inkpreview serve [--host HOST] [--port PORT]   Run the HTTP API
    inkpreview play <script_file>                  Play a story in the terminal

Both commands read settings from INKPREVIEW_* environment variables;
play needs INKPREVIEW_COMPILER.
"""

import argparse
import logging
import sys

from .config import PreviewConfig


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Ink Preview - Interactive narrative script preview",
        prog="inkpreview",
    )
    parser.add_argument("--log-level", help="Override INKPREVIEW_LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")

    # Play command
    play_parser = subparsers.add_parser("play", help="Play a story in the terminal")
    play_parser.add_argument("script_file", help="Path to the script file")

    args = parser.parse_args(argv)

    config = PreviewConfig.from_env()
    logging.basicConfig(
        level=(args.log_level or config.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        cmd_serve(args, config)
    elif args.command == "play":
        cmd_play(args, config)
    else:
        parser.print_help()
        sys.exit(1)


def cmd_serve(args, config):
    """Run the HTTP API with uvicorn."""
    import uvicorn
    from .api.app import create_app

    uvicorn.run(create_app(config=config), host=args.host, port=args.port)


def cmd_play(args, config):
    """Play a story in the terminal."""
    from pathlib import Path
    from .engine_core.story_actions import SelectChoice
    from .session import PreviewController, PreviewDocument

    compiler = config.load_compiler()
    if compiler is None:
        print("Error: INKPREVIEW_COMPILER is not set")
        sys.exit(1)

    path = Path(args.script_file)
    try:
        source = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: File not found: {args.script_file}")
        sys.exit(1)

    controller = PreviewController(compiler=compiler, config=config)
    controller.preview(PreviewDocument(uri=path.resolve().as_uri(), version=1, source=source))
    print(controller.title)

    shown_events = 0
    shown_errors = 0
    try:
        while True:
            story = controller.store.get_story_state()

            for event in story.events[shown_events:]:
                if event.event_type == "text":
                    print(event.text.rstrip("\n"))
                else:
                    print(f"  [{event.function_name}({', '.join(map(repr, event.args))}) -> {event.result!r}]")
            shown_events = len(story.events)

            for error in story.errors[shown_errors:]:
                print(f"{error.severity.value.upper()}: {error.message}")
            shown_errors = len(story.errors)

            if story.is_ended or not story.current_choices or not controller.has_story:
                break

            for choice in story.current_choices:
                print(f"  {choice.index + 1}. {choice.text}")

            answer = input("> ").strip()
            if answer in {"q", "quit"}:
                break
            if not answer.isdigit():
                print("Enter a choice number, or q to quit")
                continue
            controller.store.dispatch(SelectChoice(int(answer) - 1))
    except (EOFError, KeyboardInterrupt):
        print()
    finally:
        controller.dispose()


if __name__ == "__main__":
    main()

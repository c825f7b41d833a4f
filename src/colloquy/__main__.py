"""Colloquy entry point.

Usage:
    python -m colloquy [OPTIONS]

Options:
    --config PATH    Path to YAML config file
    --profile NAME   Profile name (dev, prod, test)
    --mode MODE      dialog, single, dictate, wake or read
    --note PATH      Markdown note for single-shot turns, dictation and reading
    --text TEXT      Text to read aloud in read mode
    --mock-audio     Use mock components (no hardware needed)
    --dry-run        Load config and exit
"""

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Awaitable
from pathlib import Path

from dotenv import load_dotenv

from . import __version__
from .assistant import VoiceAssistant
from .config import ColloquyConfig
from .config.loader import load_config
from .config.profiles import detect_profile
from .errors import ConfigError
from .notes.editor import MarkdownNoteEditor

MODES = ("dialog", "single", "dictate", "wake", "read")


def setup_logging(level: str) -> None:
    """Configure logging based on config."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def load_environment() -> None:
    """Load .env from the project root, or the current directory."""
    env_file = Path(__file__).parent.parent.parent / ".env"
    if env_file.exists():
        load_dotenv(env_file)
    else:
        load_dotenv()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="colloquy",
        description="Colloquy - voice conversation and dictation engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m colloquy                          # Continuous dialog, auto-detected profile
  python -m colloquy --mode wake              # Wait for a wake phrase
  python -m colloquy --mode dictate --note a.md
  python -m colloquy --mode read --text "Hello there"

Environment:
  COLLOQUY_PROFILE    Set profile (dev, prod, test)
""",
    )
    parser.add_argument("--config", type=Path, help="Path to YAML config file", metavar="PATH")
    parser.add_argument("--profile", choices=["dev", "prod", "test"], help="Configuration profile to use")
    parser.add_argument("--mode", choices=MODES, default="dialog", help="What to run (default: dialog)")
    parser.add_argument("--note", type=Path, metavar="PATH", help="Markdown note to write into or read")
    parser.add_argument("--text", help="Text to read aloud in read mode")
    parser.add_argument("--version", action="version", version=f"Colloquy v{__version__}")
    parser.add_argument("--dry-run", action="store_true", help="Load config and exit (for testing)")
    parser.add_argument(
        "--mock-audio",
        action="store_true",
        help="Use mock components (for testing without hardware)",
    )
    return parser.parse_args(argv)


def load(args: argparse.Namespace) -> ColloquyConfig:
    """Load configuration for the parsed arguments."""
    if args.config:
        return load_config(path=args.config)
    if args.profile:
        return load_config(profile=args.profile)
    return load_config(profile=detect_profile().value)


async def _until_either(stop: asyncio.Event, done: Awaitable[None]) -> None:
    waiters = [asyncio.ensure_future(stop.wait()), asyncio.ensure_future(done)]
    try:
        await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for waiter in waiters:
            waiter.cancel()


async def run(assistant: VoiceAssistant, editor: MarkdownNoteEditor, args: argparse.Namespace) -> int:
    """Run the selected mode until it finishes or a signal arrives.

    Returns:
        Exit code
    """
    logger = logging.getLogger("colloquy")
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    exit_code = 0
    try:
        if args.mode == "read":
            text = args.text if args.text is not None else editor.text
            exit_code = 0 if await assistant.read_aloud(text) else 1
        elif args.mode == "single":
            exit_code = 0 if await assistant.start_conversation() else 1
        elif args.mode == "dialog":
            if await assistant.start_conversation():
                await _until_either(stop, assistant.dialog.wait_closed())
            else:
                exit_code = 1
        elif args.mode == "dictate":
            if await assistant.toggle_dictation():
                await _until_either(stop, assistant.dictation.wait_closed())
            else:
                exit_code = 1
        elif args.mode == "wake":
            assistant.start_wake_listening()
            print("Press Ctrl+C to stop.\n")
            await stop.wait()
    finally:
        if stop.is_set():
            logger.info("Shutdown requested, cleaning up...")
        await assistant.shutdown()
        editor.save()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
    return exit_code


def main(argv: list[str] | None = None) -> int:
    """Main entry point for Colloquy.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    load_environment()
    args = parse_args(argv)

    try:
        config = load(args)
    except FileNotFoundError as e:
        print(f"Error: Config file not found: {e}", file=sys.stderr)
        return 1
    except ConfigError as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    setup_logging("DEBUG" if config.logging.debug else config.logging.level)
    logger = logging.getLogger("colloquy")
    logger.info(f"Colloquy v{__version__}")
    logger.info(f"Profile: {args.profile or detect_profile().value}")

    if args.dry_run:
        logger.info("Dry run mode - exiting after config load")
        logger.info(f"STT model: {config.stt.model}")
        logger.info(f"LLM: {config.llm.provider}:{config.llm.model}")
        logger.info(f"TTS voice: {config.tts.voice} (enabled: {config.tts.enabled})")
        logger.info(f"Wake phrases: {', '.join(config.wake.phrases)}")
        return 0

    if args.mode == "single":
        config.dialog.continuous = False
    elif args.mode == "dialog":
        config.dialog.continuous = True

    editor = MarkdownNoteEditor.open(args.note) if args.note else MarkdownNoteEditor()
    use_mocks = config.testing.mock_audio_enabled or args.mock_audio

    try:
        assistant = VoiceAssistant.from_config(config, use_mocks=use_mocks, editor=editor)
    except RuntimeError as e:
        logger.error(f"Failed to initialize components: {e}")
        print(f"\nError: Failed to initialize voice assistant: {e}")
        print("\nInstall the extras for your providers, e.g. pip install 'colloquy[audio,whisper,ollama,piper]'")
        return 1

    print("\n" + "=" * 50)
    print("  Colloquy")
    print("=" * 50)
    print(f"  Version: {__version__}")
    print(f"  Mode: {args.mode}")
    print(f"  STT: {config.stt.model} ({config.stt.device})")
    print(f"  LLM: {config.llm.provider}:{config.llm.model}")
    print(f"  TTS: {config.tts.voice}")
    print("=" * 50 + "\n")

    try:
        return asyncio.run(run(assistant, editor, args))
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        return 130


if __name__ == "__main__":
    sys.exit(main())

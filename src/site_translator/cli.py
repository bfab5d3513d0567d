# SPDX-License-Identifier: Apache-2.0
"""
Site Translator - CLI Tool

Translates website UI strings and blog posts with AI providers.

Usage:
    translate-site <command> [options]

Examples:
    translate-site translate de                      # Missing keys of one language
    translate-site translate-all --parallel-mode full-parallel
    translate-site translate-blog pl --include-outdated
    translate-site models -p groq
    translate-site sync --keys-file keys.json
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import signal
import sys
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import NoReturn

from site_translator.llm.client import LLMClient
from site_translator.pipeline.blog import BlogTranslator
from site_translator.pipeline.chunk_translator import ChunkTranslator
from site_translator.pipeline.config import ParallelMode, RunConfig
from site_translator.pipeline.language_info import describe_language
from site_translator.pipeline.planner import BatchPlanner
from site_translator.pipeline.progress import ActiveTask, ProgressCallback
from site_translator.pipeline.state import RunState, RunStatus, RunSummary
from site_translator.providers import PROVIDER_IDS, ModelListingProvider
from site_translator.providers.base import TranslatorError
from site_translator.storage import (
    BlogStore,
    SettingsStore,
    StorageError,
    TranslationStore,
)

logger = logging.getLogger(__name__)

# Default locations (relative to the site root)
DEFAULT_TRANSLATIONS_DIR = "./public/translations"
DEFAULT_POSTS_DIR = "./data/blog/posts"
DEFAULT_SETTINGS_FILE = "./translate-settings.json"

# Exit code for a run stopped with Ctrl+C
EXIT_CANCELLED = 130


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed argument Namespace.
    """
    parser = argparse.ArgumentParser(
        prog="translate-site",
        description="Website translation tool - localizes UI strings and blog posts with AI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s translate de                          # OpenCode Zen (default)
  %(prog)s -p groq translate fr                  # Groq
  %(prog)s -p ollama -m llama3.2 translate-all   # Local Ollama server
  %(prog)s --chunk-size 50 translate-all         # 50 keys per request
  %(prog)s translate-blog pl --slug hello-world  # One blog post

Environment Variables:
  GOOGLE_API_KEY        Google AI Studio API key (-p google)
  GROQ_API_KEY          Groq API key (-p groq)
  OPENCODE_API_KEY      OpenCode Zen API key (-p opencode, optional)
  OPENAI_API_KEY        API key for -p custom-openai
  TRANSLATE_PROXY_URL   Outbound HTTP proxy
  GOOGLE_CLOUD_PROJECT  Project id (required for -p gemini-cli)
""",
    )

    # Locations
    parser.add_argument(
        "--translations-dir",
        type=Path,
        default=Path(DEFAULT_TRANSLATIONS_DIR),
        help=f"Directory of <lang>.json files (default: {DEFAULT_TRANSLATIONS_DIR})",
    )
    parser.add_argument(
        "--posts-dir",
        type=Path,
        default=Path(DEFAULT_POSTS_DIR),
        help=f"Directory of blog posts (default: {DEFAULT_POSTS_DIR})",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        default=Path(DEFAULT_SETTINGS_FILE),
        help=f"Settings JSON file (default: {DEFAULT_SETTINGS_FILE})",
    )
    parser.add_argument(
        "-s",
        "--source",
        default="en",
        help="Source language code (default: en)",
    )

    # Provider options
    provider_group = parser.add_argument_group("Provider options")
    provider_group.add_argument(
        "-p",
        "--provider",
        choices=PROVIDER_IDS,
        help="AI provider (default: ai-provider setting or opencode)",
    )
    provider_group.add_argument("-m", "--model", help="Model id (default: provider default)")
    provider_group.add_argument("--api-key", help="API key (or set the provider's variable)")
    provider_group.add_argument("--endpoint", help="Endpoint for custom-openai / ollama")
    provider_group.add_argument("--project-id", help="Google Cloud project id for gemini-cli")
    provider_group.add_argument("--proxy-url", help="Outbound HTTP proxy URL")
    provider_group.add_argument(
        "--prompt-file",
        type=Path,
        help="File with a custom prompt ({{targetLang}} is replaced)",
    )

    # Run options
    run_group = parser.add_argument_group("Run options")
    run_group.add_argument(
        "--chunk-size",
        type=int,
        help="Keys per request, 0 = all at once (default: 0)",
    )
    run_group.add_argument(
        "--timeout",
        type=float,
        help="Per-request timeout in seconds (default: 300)",
    )
    run_group.add_argument(
        "--parallel-mode",
        choices=[mode.value for mode in ParallelMode],
        help="How languages and chunks run in parallel (default: sequential)",
    )
    run_group.add_argument(
        "--max-concurrent",
        type=int,
        help="Maximum requests in flight (default: 3)",
    )
    run_group.add_argument(
        "--delay",
        type=int,
        help="Delay in ms before each new request (default: 200)",
    )
    run_group.add_argument(
        "--max-retries",
        type=int,
        help="Retries after HTTP 429 (default: 3)",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    translate = commands.add_parser("translate", help="Translate missing keys of one language")
    translate.add_argument("language", help="Target language code")

    translate_all = commands.add_parser(
        "translate-all", help="Translate missing keys of all (or the given) languages"
    )
    translate_all.add_argument("languages", nargs="*", help="Language codes (default: all)")

    blog = commands.add_parser("translate-blog", help="Translate blog posts")
    blog.add_argument("language", help="Target language code")
    blog.add_argument("--slug", help="Translate only this post")
    blog.add_argument(
        "--include-outdated",
        action="store_true",
        help="Also retranslate posts edited after their translation",
    )

    commands.add_parser("models", help="List models of the selected provider")

    stats = commands.add_parser("stats", help="Show translation coverage")
    stats.add_argument("--keys-file", type=Path, help="Key list to measure against")

    sync = commands.add_parser("sync", help="Add missing and remove obsolete keys")
    sync.add_argument(
        "--keys-file", type=Path, required=True, help="JSON list or text file of keys"
    )

    describe = commands.add_parser(
        "describe-language", help="Ask the model for a language's native name and flag"
    )
    describe.add_argument("code", help="Language code")
    describe.add_argument("--name", default="", help="Current name, as a hint")
    describe.add_argument(
        "--save",
        action="store_true",
        help="Store the result in the language file's metadata",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> RunConfig:
    """Merge settings file, environment and command line (highest priority).

    Raises:
        StorageError: If the settings file cannot be read.
        ConfigurationError: If an option value is invalid.
    """
    settings = SettingsStore(args.settings)
    config = RunConfig.from_settings(settings, provider=args.provider).with_environment()
    prompt_template = None
    if args.prompt_file:
        prompt_template = args.prompt_file.read_text(encoding="utf-8")
    return config.with_overrides(
        model=args.model,
        api_key=args.api_key,
        endpoint=args.endpoint,
        project_id=args.project_id,
        proxy_url=args.proxy_url,
        prompt_template=prompt_template,
        chunk_size=args.chunk_size,
        timeout_sec=args.timeout,
        parallel_mode=args.parallel_mode,
        max_concurrent=args.max_concurrent,
        delay_ms=args.delay,
        max_retries=args.max_retries,
    )


def load_keys(path: Path) -> list[str]:
    """Read keys from a JSON list/object or a text file (one key per line)."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        # A list of keys, or an object whose keys are used
        return [str(key) for key in json.loads(text)]
    return [line.strip() for line in text.splitlines() if line.strip()]


def print_progress(state: RunState) -> ProgressCallback:
    """Return a progress callback that prints one line per finished task."""

    def on_progress(completed: int, active_tasks: Sequence[ActiveTask]) -> None:
        in_flight = ", ".join(task.label() for task in active_tasks) or "-"
        print(
            f"  [{completed}] {state.completed_keys}/{state.total_keys} keys, "
            f"in flight: {in_flight}",
            flush=True,
        )

    return on_progress


def report(summary: RunSummary) -> int:
    """Print a run summary and return the exit code."""
    print()
    if summary.status is RunStatus.FATAL_ERROR:
        print(f"Error: {summary.error}", file=sys.stderr)
        return 1
    print(("Stopped early: " if summary.cancelled else "Complete: ") + summary.describe())
    for failure in summary.failures:
        print(f"  Failed {failure.task_id}: {failure.message}", file=sys.stderr)
    if summary.cancelled:
        return EXIT_CANCELLED
    return 1 if summary.failed else 0


@contextlib.contextmanager
def cancel_on_interrupt(state: RunState) -> Iterator[None]:
    """Turn Ctrl+C into a cooperative cancel for the duration of a run."""
    loop = asyncio.get_running_loop()

    def handle() -> None:
        print("\nStopping after the running requests finish...", file=sys.stderr)
        state.cancel()

    try:
        loop.add_signal_handler(signal.SIGINT, handle)
        installed = True
    except (NotImplementedError, RuntimeError):
        installed = False  # e.g. Windows or a non-main thread
    try:
        yield
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


async def run_translate(args: argparse.Namespace, config: RunConfig, client: LLMClient) -> int:
    store = TranslationStore(args.translations_dir, base_language=args.source)
    state = RunState()
    planner = BatchPlanner(
        store,
        ChunkTranslator(config, client),
        config,
        source_language=args.source,
        state=state,
        on_progress=print_progress(state),
    )
    with cancel_on_interrupt(state):
        if args.command == "translate":
            summary = await planner.translate_language(store.get_language(args.language))
        else:
            languages = (
                [store.get_language(code) for code in args.languages]
                if args.languages
                else None
            )
            summary = await planner.translate_all(languages)
    return report(summary)


async def run_translate_blog(
    args: argparse.Namespace, config: RunConfig, client: LLMClient
) -> int:
    store = TranslationStore(args.translations_dir, base_language=args.source)
    language = store.get_language(args.language)
    state = RunState()
    translator = BlogTranslator(
        BlogStore(args.posts_dir),
        ChunkTranslator(config, client),
        state=state,
        on_progress=print_progress(state),
    )
    if args.slug:
        config.validate()
        post = await translator.translate_post(args.slug, language)
        print(f"Complete: {post.slug} -> {language.code} ({post.title})")
        return 0
    with cancel_on_interrupt(state):
        summary = await translator.translate_missing(language, args.include_outdated)
    return report(summary)


async def run_models(config: RunConfig, client: LLMClient) -> int:
    provider = config.create_provider()
    if not isinstance(provider, ModelListingProvider):
        print(f"{provider.display_name} does not support model listing")
        return 0
    models = await provider.fetch_models(config.api_key, config.proxy_url, client)
    if not models:
        print(f"No models found for {provider.display_name}", file=sys.stderr)
        return 1
    for model in models:
        marker = " (default)" if model == provider.default_model else ""
        print(f"{model}{marker}")
    return 0


def run_stats(args: argparse.Namespace) -> int:
    store = TranslationStore(args.translations_dir, base_language=args.source)
    keys = load_keys(args.keys_file) if args.keys_file else None
    for code, stats in sorted(store.stats(keys).items()):
        print(f"{code:<8} {stats.translated:>5}/{stats.total:<5} {stats.percent:6.1f}%")
    return 0


def run_sync(args: argparse.Namespace) -> int:
    store = TranslationStore(args.translations_dir, base_language=args.source)
    result = store.sync_keys(load_keys(args.keys_file))
    print(f"Synced: +{result.added} added, -{result.removed} removed ({result.total} total keys)")
    for name in result.files:
        print(f"  Updated: {name}")
    return 0


async def run_describe(args: argparse.Namespace, config: RunConfig, client: LLMClient) -> int:
    config.validate()
    info = await describe_language(ChunkTranslator(config, client), args.code, args.name)
    print(f"{info.flag} {info.name}".strip())
    if args.save:
        store = TranslationStore(args.translations_dir, base_language=args.source)
        store.update_language_meta(args.code, name=info.name, flag=info.flag)
        print(f"  Saved to {args.code}.json")
    return 0


async def run(args: argparse.Namespace) -> int:
    """Execute the selected command.

    Args:
        args: Command line arguments.

    Returns:
        Exit code (0: success, 1: failure, 130: stopped early).
    """
    try:
        if args.command == "stats":
            return run_stats(args)
        if args.command == "sync":
            return run_sync(args)

        config = build_config(args)
        print(f"Provider: {config.provider}")
        print(f"Model: {config.effective_model}")
        if args.command in ("translate", "translate-all"):
            print(f"Mode: {config.parallel_mode.value} (max {config.max_concurrent} concurrent)")
        print()

        client = LLMClient()
        try:
            if args.command in ("translate", "translate-all"):
                return await run_translate(args, config, client)
            if args.command == "translate-blog":
                return await run_translate_blog(args, config, client)
            if args.command == "models":
                return await run_models(config, client)
            return await run_describe(args, config, client)
        finally:
            await client.close()
    except (TranslatorError, StorageError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1


def main(argv: Sequence[str] | None = None) -> NoReturn:
    """Main entry point."""
    args = parse_args(argv)

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=log_level, format="%(levelname)s: %(message)s")

    exit_code = asyncio.run(run(args))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()

# SPDX-License-Identifier: Apache-2.0
"""Tests for the command line interface."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from site_translator.cli import (
    EXIT_CANCELLED,
    build_config,
    load_keys,
    main,
    parse_args,
    report,
    run,
)
from site_translator.llm.process import ProcessResult
from site_translator.llm.relay import RelayResponse
from site_translator.pipeline.config import ParallelMode
from site_translator.pipeline.state import RunStatus, RunSummary, TaskFailure


def write_language(directory: Path, code: str, translations: dict[str, str], name: str = "") -> None:
    directory.mkdir(parents=True, exist_ok=True)
    content = {"_meta": {"name": name or code, "flag": ""}, "translations": translations}
    (directory / f"{code}.json").write_text(json.dumps(content), encoding="utf-8")


def chat(content: str) -> RelayResponse:
    body = {"choices": [{"message": {"role": "assistant", "content": content}}]}
    return RelayResponse(200, json.dumps(body))


@pytest.fixture
def site(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    for name in ("GROQ_API_KEY", "OLLAMA_API_KEY", "TRANSLATE_PROXY_URL", "GOOGLE_CLOUD_PROJECT"):
        monkeypatch.delenv(name, raising=False)
    translations = tmp_path / "translations"
    write_language(translations, "en", {"Hello": "Hello", "Bye": "Bye"}, "English")
    write_language(translations, "de", {"Hello": "", "Bye": ""}, "Deutsch")
    return tmp_path


def site_args(site: Path, *argv: str) -> list[str]:
    return [
        "--translations-dir",
        str(site / "translations"),
        "--posts-dir",
        str(site / "posts"),
        "--settings",
        str(site / "settings.json"),
        *argv,
    ]


class TestParseArgs:
    """Test argument parsing."""

    def test_translate(self) -> None:
        args = parse_args(["-p", "groq", "--chunk-size", "50", "translate", "de"])

        assert args.command == "translate"
        assert args.language == "de"
        assert args.provider == "groq"
        assert args.chunk_size == 50
        assert args.source == "en"

    def test_translate_all_languages(self) -> None:
        args = parse_args(["--parallel-mode", "full-parallel", "translate-all", "de", "fr"])

        assert args.languages == ["de", "fr"]
        assert args.parallel_mode == "full-parallel"

    def test_translate_blog(self) -> None:
        args = parse_args(["translate-blog", "pl", "--slug", "hello", "--include-outdated"])

        assert args.slug == "hello"
        assert args.include_outdated

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            parse_args([])

    def test_unknown_provider(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["-p", "nope", "models"])


class TestBuildConfig:
    """Test settings, environment and flag priority."""

    def test_priority(self, site: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (site / "settings.json").write_text(
            json.dumps(
                {
                    "ai-provider": "groq",
                    "ai-api-key-groq": "from-settings",
                    "ai-max-concurrent": "5",
                    "ai-chunk-size": "20",
                }
            ),
            encoding="utf-8",
        )
        monkeypatch.setenv("GROQ_API_KEY", "from-env")

        config = build_config(parse_args(site_args(site, "--chunk-size", "10", "models")))

        assert config.provider == "groq"
        assert config.api_key == "from-env"
        assert config.max_concurrent == 5
        assert config.chunk_size == 10

        config = build_config(
            parse_args(site_args(site, "--api-key", "from-flag", "models"))
        )
        assert config.api_key == "from-flag"

    def test_prompt_file(self, site: Path) -> None:
        prompt = site / "prompt.txt"
        prompt.write_text("Translate to {{targetLang}} casually.", encoding="utf-8")

        config = build_config(
            parse_args(
                site_args(site, "--prompt-file", str(prompt), "--parallel-mode", "parallel-chunks", "models")
            )
        )

        assert config.prompt_template == "Translate to {{targetLang}} casually."
        assert config.parallel_mode is ParallelMode.PARALLEL_CHUNKS


class TestLoadKeys:
    """Test key file loading."""

    def test_json_list(self, tmp_path: Path) -> None:
        path = tmp_path / "keys.json"
        path.write_text('["Hello", "Bye"]', encoding="utf-8")
        assert load_keys(path) == ["Hello", "Bye"]

    def test_json_object(self, tmp_path: Path) -> None:
        path = tmp_path / "keys.json"
        path.write_text('{"Hello": "", "Bye": ""}', encoding="utf-8")
        assert load_keys(path) == ["Hello", "Bye"]

    def test_text_file(self, tmp_path: Path) -> None:
        path = tmp_path / "keys.txt"
        path.write_text("Hello\n\n  Bye  \n", encoding="utf-8")
        assert load_keys(path) == ["Hello", "Bye"]


class TestReport:
    """Test exit codes."""

    def test_exit_codes(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert report(RunSummary(RunStatus.COMPLETED, succeeded=2)) == 0
        assert report(RunSummary(RunStatus.CANCELLED, skipped=3)) == EXIT_CANCELLED
        assert report(RunSummary(RunStatus.FATAL_ERROR, error="[plan] bad")) == 1
        failed = RunSummary(
            RunStatus.COMPLETED,
            failed=1,
            failures=[TaskFailure("de-0", "de", "API error 500")],
        )
        assert report(failed) == 1

        captured = capsys.readouterr()
        assert "Stopped early" in captured.out
        assert "Error: [plan] bad" in captured.err
        assert "Failed de-0: API error 500" in captured.err


class TestRun:
    """Test commands end to end with a mocked client."""

    @pytest.mark.asyncio
    async def test_stats(self, site: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert await run(parse_args(site_args(site, "stats"))) == 0

        out = capsys.readouterr().out
        assert "de" in out
        assert "0/2" in out
        assert "100.0%" in out

    @pytest.mark.asyncio
    async def test_sync(self, site: Path, capsys: pytest.CaptureFixture[str]) -> None:
        keys = site / "keys.txt"
        keys.write_text("Hello\nNew\n", encoding="utf-8")

        assert await run(parse_args(site_args(site, "sync", "--keys-file", str(keys)))) == 0

        content = json.loads((site / "translations" / "de.json").read_text(encoding="utf-8"))
        assert content["translations"] == {"Hello": "", "New": ""}
        assert "+2 added, -2 removed" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_translate(self, site: Path) -> None:
        client = MagicMock()
        client.send = AsyncMock(return_value=chat('{"Hello": "Hallo", "Bye": "Tschüss"}'))
        client.close = AsyncMock()

        with patch("site_translator.cli.LLMClient", return_value=client):
            code = await run(
                parse_args(site_args(site, "-p", "groq", "--api-key", "k", "--delay", "0", "translate", "de"))
            )

        assert code == 0
        content = json.loads((site / "translations" / "de.json").read_text(encoding="utf-8"))
        assert content["translations"] == {"Bye": "Tschüss", "Hello": "Hallo"}
        assert content["_meta"]["name"] == "Deutsch"
        assert "Deutsch" in client.send.await_args.args[1]
        client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_api_key_fails(
        self, site: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        client = MagicMock()
        client.send = AsyncMock()
        client.close = AsyncMock()

        with patch("site_translator.cli.LLMClient", return_value=client):
            code = await run(parse_args(site_args(site, "-p", "groq", "translate", "de")))

        assert code == 1
        assert "API key is required" in capsys.readouterr().err
        client.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_language(self, site: Path, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("site_translator.cli.LLMClient", return_value=MagicMock(close=AsyncMock())):
            code = await run(parse_args(site_args(site, "translate", "xx")))

        assert code == 1
        assert "Language not found: xx" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_models(self, site: Path, capsys: pytest.CaptureFixture[str]) -> None:
        client = MagicMock()
        client.get_json = AsyncMock(
            return_value={"models": [{"name": "qwen2.5"}, {"name": "llama3.2"}]}
        )
        client.close = AsyncMock()

        with patch("site_translator.cli.LLMClient", return_value=client):
            code = await run(parse_args(site_args(site, "-p", "ollama", "models")))

        assert code == 0
        out = capsys.readouterr().out
        assert "llama3.2 (default)" in out
        assert "qwen2.5" in out

    @pytest.mark.asyncio
    async def test_models_not_supported(
        self, site: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with patch("site_translator.cli.LLMClient", return_value=MagicMock(close=AsyncMock())):
            code = await run(
                parse_args(
                    site_args(site, "-p", "custom-openai", "--endpoint", "http://llm/v1", "models")
                )
            )

        assert code == 0
        assert "does not support model listing" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_models_empty_list_fails(
        self, site: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        client = MagicMock()
        client.run_command = AsyncMock(return_value=ProcessResult(1, "", "not installed"))
        client.close = AsyncMock()

        with patch("site_translator.cli.LLMClient", return_value=client):
            code = await run(parse_args(site_args(site, "-p", "opencode-local", "models")))

        assert code == 1
        assert "No models found for" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_describe_language_save(self, site: Path) -> None:
        client = MagicMock()
        client.send = AsyncMock(return_value=chat('{"name": "Deutsch", "flag": "🇩🇪"}'))
        client.close = AsyncMock()

        with patch("site_translator.cli.LLMClient", return_value=client):
            code = await run(
                parse_args(site_args(site, "-p", "ollama", "describe-language", "de", "--save"))
            )

        assert code == 0
        content = json.loads((site / "translations" / "de.json").read_text(encoding="utf-8"))
        assert content["_meta"] == {"name": "Deutsch", "flag": "🇩🇪"}

    def test_main_exits_with_code(self, site: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(site_args(site, "stats"))

        assert exc_info.value.code == 0

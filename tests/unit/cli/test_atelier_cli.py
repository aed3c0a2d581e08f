"""Unit tests for the atelier command-line interface."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from atelier.cli import main as cli
from atelier.core.config.models import AppConfig
from atelier.core.history import JSONFileHistoryStorage
from atelier.core.models import ArtStyle, AspectRatio, GenerationRequest, HistoryEntry
from atelier.core.session import StudioSession
from tests.conftest import FakeBackend, make_png, make_result


@pytest.fixture(autouse=True)
def _no_logging_reconfiguration(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "atelier.json"
    path.write_text(json.dumps({"history": {"storage_dir": str(tmp_path / "gallery")}}), encoding="utf-8")
    return path


def _seed_history(tmp_path: Path, subjects: list[str]) -> None:
    entries = [
        HistoryEntry.from_result(make_result(subject, seed=i), GenerationRequest(subject=subject))
        for i, subject in enumerate(subjects)
    ]
    asyncio.run(JSONFileHistoryStorage(tmp_path / "gallery").save(entries))


def _exit_code(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(argv)
    return int(exc_info.value.code or 0)


class TestArgParser:
    def test_generate_defaults(self) -> None:
        args = cli.build_arg_parser().parse_args(["generate"])
        assert args.subject == ""
        assert args.style == "Watercolor"
        assert args.aspect == "1:1"
        assert args.reference is None
        assert args.config is None

    def test_generate_options(self) -> None:
        args = cli.build_arg_parser().parse_args(
            ["generate", "A sailor", "--style", "oil", "--aspect", "16:9", "--out", "x.png", "--config", "c.yaml"]
        )
        assert args.subject == "A sailor"
        assert args.config == "c.yaml"
        assert args.handler is cli.run_generate

    def test_rejects_unknown_aspect(self) -> None:
        with pytest.raises(SystemExit):
            cli.build_arg_parser().parse_args(["generate", "--aspect", "2:1"])

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            cli.build_arg_parser().parse_args([])


class TestBuildRequest:
    def test_from_arguments(self) -> None:
        args = cli.build_arg_parser().parse_args(["generate", "A sailor", "--style", "ink / pen", "--aspect", "3:4"])
        request = cli.build_request(args)
        assert request.subject == "A sailor"
        assert request.style is ArtStyle.INK_PEN
        assert request.aspect_ratio is AspectRatio.PORTRAIT_3_4

    def test_reference_image(self, tmp_path: Path) -> None:
        ref = tmp_path / "ref.png"
        ref.write_bytes(make_png(9))
        args = cli.build_arg_parser().parse_args(["generate", "--reference", str(ref)])
        request = cli.build_request(args)
        assert request.reference is not None
        assert request.reference.data == make_png(9)

    def test_unknown_style(self) -> None:
        args = cli.build_arg_parser().parse_args(["generate", "--style", "fresco"])
        with pytest.raises(ValueError):
            cli.build_request(args)


class TestCommands:
    def test_styles(self) -> None:
        assert _exit_code(["styles"]) == 0

    def test_missing_explicit_config(self, tmp_path: Path) -> None:
        assert _exit_code(["history", "--config", str(tmp_path / "missing.yaml")]) == 1

    def test_history_json(self, tmp_path: Path, config_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        _seed_history(tmp_path, ["newest", "older"])

        assert _exit_code(["history", "--json", "--config", str(config_path)]) == 0

        payload = json.loads(capsys.readouterr().out)
        assert [item["subject"] for item in payload] == ["newest", "older"]
        assert payload[0]["index"] == 0

    def test_history_empty(self, config_path: Path) -> None:
        assert _exit_code(["history", "--config", str(config_path)]) == 0

    def test_export(self, tmp_path: Path, config_path: Path) -> None:
        _seed_history(tmp_path, ["A sailor"])
        out_dir = tmp_path / "exports"

        assert _exit_code(["export", "0", "--dir", str(out_dir), "--config", str(config_path)]) == 0
        assert (out_dir / "AtelierMuse_a_sailor.png").read_bytes() == make_png(0)

    def test_export_bad_index(self, tmp_path: Path, config_path: Path) -> None:
        _seed_history(tmp_path, ["A sailor"])
        assert _exit_code(["export", "3", "--config", str(config_path)]) == 1

    def test_clear_history(self, tmp_path: Path, config_path: Path) -> None:
        _seed_history(tmp_path, ["A sailor"])
        assert _exit_code(["clear-history", "--config", str(config_path)]) == 0
        assert not (tmp_path / "gallery" / "current_history.json").exists()


class TestGenerateAsync:
    def _session(self, tmp_path: Path, backend: FakeBackend) -> StudioSession:
        config = AppConfig.model_validate({"history": {"storage_dir": str(tmp_path / "gallery")}})
        return StudioSession.from_config(config, backend=backend)

    @pytest.mark.asyncio
    async def test_success_writes_image(self, tmp_path: Path) -> None:
        session = self._session(tmp_path, FakeBackend())
        out = tmp_path / "portrait.png"

        code = await cli.generate_async(session, GenerationRequest(subject="A sailor"), out)

        assert code == 0
        assert out.exists()

    @pytest.mark.asyncio
    async def test_out_directory_uses_export_name(self, tmp_path: Path) -> None:
        session = self._session(tmp_path, FakeBackend())

        await cli.generate_async(session, GenerationRequest(subject="A sailor"), tmp_path)

        assert (tmp_path / "AtelierMuse_a_sailor.png").exists()

    @pytest.mark.asyncio
    async def test_failure_exit_code(self, tmp_path: Path) -> None:
        backend = FakeBackend()
        backend.image_errors = [RuntimeError("content policy violation")]
        session = self._session(tmp_path, backend)

        code = await cli.generate_async(session, GenerationRequest(subject="A sailor"), None)

        assert code == 1

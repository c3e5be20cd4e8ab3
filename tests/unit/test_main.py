import json
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import patch

import pytest

from idscan.main import build_parser, main
from tests.helpers import make_image_bytes


@pytest.fixture(autouse=True)
def _no_log_handlers() -> Iterator[None]:
    with patch("idscan.main.Log.configure"):
        yield


@pytest.fixture
def example_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXTRACTION_PROVIDER", "example")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")


def _write_image(tmp_path: Path, name: str = "id.jpg") -> Path:
    path = tmp_path / name
    path.write_bytes(make_image_bytes(1200, 1600))
    return path


class TestParser:
    def test_flags(self) -> None:
        args = build_parser().parse_args(["a.jpg", "b.jpg", "--flatten", "--report"])

        assert args.images == ["a.jpg", "b.jpg"]
        assert args.flatten is True
        assert args.report is True
        assert args.validate_only is False

    def test_requires_an_image(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestMain:
    @pytest.mark.usefixtures("example_env")
    def test_runs_batch_and_prints_json(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        path = _write_image(tmp_path)

        code = main([str(path), "--flatten", "--report"])

        output = json.loads(capsys.readouterr().out)
        assert code == 0
        assert output["summary"]["successful"] == 1
        assert output["results"][0]["data"]["full_name"] == "JANE DOE"
        assert output["records"][0]["ocr_provider"] == "example"
        assert output["performance"]["totalCalls"] == 1

    @pytest.mark.usefixtures("example_env")
    def test_validate_only(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        good = _write_image(tmp_path)
        bad = tmp_path / "bad.jpg"
        bad.write_bytes(b"not an image")

        code = main([str(good), str(bad), "--validate-only"])

        output = json.loads(capsys.readouterr().out)
        assert code == 1
        assert [r["isValid"] for r in output["validation"]] == [True, False]
        assert output["validation"][0]["fileName"] == "id.jpg"

    @pytest.mark.usefixtures("example_env")
    def test_failed_item_sets_exit_code(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        bad = tmp_path / "bad.jpg"
        bad.write_bytes(b"not an image")

        code = main([str(bad)])

        output = json.loads(capsys.readouterr().out)
        assert code == 1
        assert output["results"][0]["errorKind"] == "image_unreadable"

    @pytest.mark.usefixtures("example_env")
    def test_missing_file(self, tmp_path: Path) -> None:
        assert main([str(tmp_path / "missing.jpg")]) == 1

    def test_bad_provider_configuration(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("EXTRACTION_PROVIDER", "tesseract")
        assert main([str(_write_image(tmp_path))]) == 1

    def test_invalid_settings(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BATCH_GROUP_SIZE", "0")
        assert main([str(_write_image(tmp_path))]) == 1

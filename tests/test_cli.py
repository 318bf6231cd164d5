"""Tests for the command-line runner."""

import io
import zipfile

from posegen import cli
from posegen.core.config import settings

from tests.conftest import SOURCE_BYTES


def test_parse_args_defaults(tmp_path):
    args = cli.parse_args([str(tmp_path / "me.png")])
    
    assert args.theme == settings.DEFAULT_THEME
    assert args.poses == settings.DEFAULT_POSE_COUNT
    assert args.aspect_ratio == "1:1"


async def test_generate_writes_archive(tmp_path, orchestrator, fake_models, capsys):
    fake_models.ideas = ["a", "b", "c"]
    image = tmp_path / "me.png"
    image.write_bytes(SOURCE_BYTES)
    output = tmp_path / "out.zip"
    args = cli.parse_args([str(image), "--poses", "3", "--output", str(output), "--aspect-ratio", "16:9"])
    
    written = await cli.generate(args, orchestrator)
    
    assert written == 3
    with zipfile.ZipFile(io.BytesIO(output.read_bytes())) as zf:
        assert len(zf.namelist()) == 3
    out = capsys.readouterr().out
    assert "Generating creative pose ideas..." in out
    assert "Generating images... (3/3)" in out


def test_main_without_api_key_exits_with_error(tmp_path, monkeypatch, capsys):
    image = tmp_path / "me.png"
    image.write_bytes(SOURCE_BYTES)
    monkeypatch.setattr(settings, "GEMINI_API_KEY", "")
    
    assert cli.main([str(image)]) == 1
    assert "GEMINI_API_KEY" in capsys.readouterr().err


def test_main_rejects_zero_poses(tmp_path):
    assert cli.main([str(tmp_path / "me.png"), "--poses", "0"]) == 2


def test_main_blank_theme_prints_short_message(tmp_path, capsys):
    image = tmp_path / "me.png"
    image.write_bytes(SOURCE_BYTES)
    
    assert cli.main([str(image), "--theme", "   "]) == 2
    
    err = capsys.readouterr().err
    assert err.strip() == "Error: Please enter a prompt describing the scene or theme."
    assert "validation error" not in err


def test_main_rejects_too_many_poses(tmp_path, capsys):
    assert cli.main([str(tmp_path / "me.png"), "--poses", str(settings.MAX_POSE_COUNT + 1)]) == 2
    assert "--poses must be between 1 and" in capsys.readouterr().err

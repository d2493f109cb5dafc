import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest

import main
from receipt_extraction.ocr_engine import OCRLine, OCRWord, RecognitionResult
from receipt_extraction.utils.exceptions import UnsupportedImageError
from receipt_extraction.utils.logger import APP_LOGGER_NAME


def recognized(text):
    lines = []
    for index, line_text in enumerate(text.splitlines()):
        word = OCRWord(line_text, (0, index * 20, 200, index * 20 + 15), 90.0, index)
        lines.append(OCRLine([word], word.bbox, index))
    return RecognitionResult(words=[line.words[0] for line in lines], lines=lines)


@pytest.fixture
def text_file(tmp_path, starbucks_text):
    path = tmp_path / "receipt.txt"
    path.write_text(starbucks_text, encoding="utf-8")
    return path


@pytest.fixture
def image_dir(tmp_path, png_bytes):
    directory = tmp_path / "receipts"
    directory.mkdir()
    (directory / "a.png").write_bytes(png_bytes)
    (directory / "b.PNG").write_bytes(png_bytes)
    (directory / "notes.txt").write_text("ignore me", encoding="utf-8")
    return directory


class TestArguments:
    """Test command-line parsing."""

    def test_source_is_required(self):
        """Test that one of --input and --text must be given."""
        with pytest.raises(SystemExit):
            main.parse_arguments([])

    def test_sources_are_exclusive(self):
        """Test that --input and --text cannot be combined."""
        with pytest.raises(SystemExit):
            main.parse_arguments(["--input", "a.jpg", "--text", "a.txt"])

    def test_repeatable_locale(self):
        """Test that --locale accumulates."""
        args = main.parse_arguments(["-t", "a.txt", "--locale", "en", "--locale", "id"])
        assert args.locale == ["en", "id"]
        assert args.output is None


class TestCollectImages:
    """Test input discovery."""

    def test_directory(self, image_dir):
        """Test that only supported images are collected, sorted."""
        assert [p.name for p in main.collect_images(image_dir)] == ["a.png", "b.PNG"]

    def test_missing_path(self, tmp_path):
        """Test that a missing path raises."""
        with pytest.raises(FileNotFoundError):
            main.collect_images(tmp_path / "missing")

    def test_unsupported_file(self, tmp_path):
        """Test that a single unsupported file raises."""
        path = tmp_path / "receipt.gif"
        path.write_bytes(b"GIF89a")
        with pytest.raises(ValueError):
            main.collect_images(path)


class TestMain:
    """Test the command-line entry point."""

    def test_text_to_stdout(self, text_file, capsys):
        """Test that a text scan prints one JSON outcome."""
        assert main.main(["--text", str(text_file)]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data['success'] is True
        assert data['form']['merchant'] == "STARBUCKS COFFEE"
        assert data['form']['amount'] == 45000.0

    def test_text_to_file(self, text_file, tmp_path):
        """Test that --output writes the JSON file, creating directories."""
        output = tmp_path / "out" / "result.json"

        assert main.main(["--text", str(text_file), "--output", str(output)]) == 0

        data = json.loads(output.read_text(encoding="utf-8"))
        assert data['form']['date'] == "2023-12-25"

    def test_empty_text_file(self, tmp_path, capsys):
        """Test that a scan without text exits with 1."""
        path = tmp_path / "empty.txt"
        path.write_text("\n\n", encoding="utf-8")

        assert main.main(["--text", str(path)]) == 1
        assert json.loads(capsys.readouterr().out)['success'] is False

    def test_locale_option(self, tmp_path, capsys):
        """Test that --locale restricts the keyword tables."""
        path = tmp_path / "receipt.txt"
        path.write_text("TOKO MAJU\nPPN 4.500", encoding="utf-8")

        main.main(["--text", str(path), "--locale", "en"])

        assert json.loads(capsys.readouterr().out)['receipt']['tax_amount'] is None

    def test_missing_input(self, tmp_path, capsys):
        """Test that a missing input path exits with 1."""
        assert main.main(["--input", str(tmp_path / "missing.jpg")]) == 1
        assert "Input path not found" in capsys.readouterr().err

    def test_debug_flag(self, text_file):
        """Test that --debug lowers the log level."""
        main.main(["--text", str(text_file), "--debug"])
        assert logging.getLogger(APP_LOGGER_NAME).level == logging.DEBUG

    def test_custom_config(self, text_file, tmp_path):
        """Test that --config loads another settings file."""
        settings_file = tmp_path / "settings.yaml"
        settings_file.write_text("extraction:\n  confidence:\n    date: 0.5\n", encoding="utf-8")
        output = tmp_path / "result.json"

        main.main(["--text", str(text_file), "--config", str(settings_file), "-o", str(output)])

        data = json.loads(output.read_text(encoding="utf-8"))
        assert data['receipt']['date']['confidence'] == 0.5

    def test_image_directory(self, image_dir, starbucks_text, capsys):
        """Test that a directory scan prints one outcome per image."""
        with patch("receipt_extraction.ocr_engine.RecognitionSession") as session_cls:
            session = session_cls.return_value.__enter__.return_value
            session.recognize.return_value = recognized(starbucks_text)

            assert main.main(["--input", str(image_dir)]) == 0

        data = json.loads(capsys.readouterr().out)
        assert len(data) == 2
        assert all(item['form']['amount'] == 45000.0 for item in data)
        recognized_paths = [call.args[0] for call in session.recognize.call_args_list]
        assert [Path(p).name for p in recognized_paths] == ["a.png", "b.PNG"]

    def test_image_directory_with_failure(self, image_dir, starbucks_text, capsys):
        """Test that one failed image makes the exit code 1."""
        with patch("receipt_extraction.ocr_engine.RecognitionSession") as session_cls:
            session = session_cls.return_value.__enter__.return_value
            session.recognize.side_effect = [
                recognized(starbucks_text),
                UnsupportedImageError("GIF", ["JPEG", "PNG", "WEBP"]),
            ]

            assert main.main(["--input", str(image_dir)]) == 1

        data = json.loads(capsys.readouterr().out)
        assert [item['success'] for item in data] == [True, False]
        assert data[1]['notification']['level'] == "error"

    def test_single_image_prints_object(self, image_dir, starbucks_text, capsys):
        """Test that a single image prints an object, not a list."""
        with patch("receipt_extraction.ocr_engine.RecognitionSession") as session_cls:
            session = session_cls.return_value.__enter__.return_value
            session.recognize.return_value = recognized(starbucks_text)

            assert main.main(["--input", str(image_dir / "a.png")]) == 0

        assert json.loads(capsys.readouterr().out)['success'] is True

"""
Integration tests for the click command line interface.
"""

import logging

import pytest
from click.testing import CliRunner

from cli import cli
from tests.base_test import ExportBuilder, message_html, text_thread_html, vcard

NUMBER = "+15551234567"
TS = "2021-06-01T10_00_00Z"


@pytest.fixture(autouse=True)
def reset_root_logger():
    """Drop the console and file handlers the command installs on the root logger."""
    root_logger = logging.getLogger()
    level = root_logger.level
    yield
    for handler in root_logger.handlers[:]:
        if type(handler) in (logging.StreamHandler, logging.FileHandler):
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(level)


@pytest.fixture
def export(tmp_path):
    builder = ExportBuilder(tmp_path)
    builder.write(
        f"{NUMBER} - Text - {TS}.html",
        text_thread_html([message_html(NUMBER, "Alice", "hello", "2021-06-01T10:00:00.000Z")]),
    )
    return builder


class TestMergeCommand:
    """Test the merge command end to end."""

    def invoke(self, *args):
        runner = CliRunner()
        return runner.invoke(cli, list(args), catch_exceptions=False)

    def test_merge_succeeds(self, export, tmp_path):
        output_dir = tmp_path / "output"

        result = self.invoke("merge", "-i", str(export.calls_dir), "-o", str(output_dir), "--no-progress")

        assert result.exit_code == 0, f"CLI failed: {result.output}"
        assert "Merge Summary" in result.output
        assert "Merge completed successfully" in result.output
        assert (output_dir / NUMBER / f"{TS} {NUMBER}.html").exists()
        assert (output_dir / "logs" / "gvoice_merger.log").exists()

    def test_merge_with_contacts_and_exports(self, export, tmp_path):
        output_dir = tmp_path / "output"
        contacts = export.write_contacts(vcard("Alice", "+1 555 123 4567"))

        result = self.invoke(
            "merge", "-i", str(export.calls_dir), "-o", str(output_dir), "--no-progress",
            "--contacts", str(contacts), "--strategy", "suffix", "--suffix-length", "8",
            "--generate-csv", "--generate-xml", "--own-number", "+15550000000",
        )

        assert result.exit_code == 0, f"CLI failed: {result.output}"
        assert (output_dir / "sms.xml").exists()
        assert (output_dir / "logs" / "index.csv").exists()
        assert 'contact_name="Alice"' in (output_dir / "sms.xml").read_text(encoding="utf-8")

    def test_existing_output_directory_fails(self, export, tmp_path):
        output_dir = tmp_path / "output"
        output_dir.mkdir()

        result = self.invoke("merge", "-i", str(export.calls_dir), "-o", str(output_dir), "--no-progress")

        assert result.exit_code == 1
        assert "already exists" in result.output
        assert list(output_dir.iterdir()) == []

    def test_force_overwrites_output_directory(self, export, tmp_path):
        output_dir = tmp_path / "output"
        output_dir.mkdir()

        result = self.invoke(
            "merge", "-i", str(export.calls_dir), "-o", str(output_dir), "--no-progress", "--force"
        )

        assert result.exit_code == 0, f"CLI failed: {result.output}"
        assert (output_dir / NUMBER).is_dir()

    def test_suffix_strategy_without_length(self, export, tmp_path):
        result = self.invoke(
            "merge", "-i", str(export.calls_dir), "-o", str(tmp_path / "output"), "--strategy", "suffix"
        )

        assert result.exit_code == 1
        assert "Configuration error" in result.output
        assert not (tmp_path / "output").exists()

    def test_force_keeps_export_inside_output_directory(self, export):
        output_dir = export.calls_dir.parent

        result = self.invoke(
            "merge", "-i", str(export.calls_dir), "-o", str(output_dir), "--no-progress", "--force"
        )

        assert result.exit_code == 1
        assert "Configuration error" in result.output
        assert (export.calls_dir / f"{NUMBER} - Text - {TS}.html").exists()

    def test_verbose_and_debug_conflict(self, export, tmp_path):
        result = self.invoke(
            "--verbose", "--debug", "merge", "-i", str(export.calls_dir), "-o", str(tmp_path / "output")
        )

        assert result.exit_code == 1
        assert "--verbose and --debug" in result.output

    def test_classification_error_fails_the_run(self, export, tmp_path):
        export.write(f"{NUMBER} - Faxed - {TS}.html", "<html></html>")

        result = self.invoke(
            "merge", "-i", str(export.calls_dir), "-o", str(tmp_path / "output"), "--no-progress"
        )

        assert result.exit_code == 1
        assert "Merge failed" in result.output
        assert "Unknown action" in result.output

    def test_missing_input_directory(self, tmp_path):
        result = self.invoke("merge", "-i", str(tmp_path / "missing"), "-o", str(tmp_path / "output"))

        assert result.exit_code == 2

    def test_help(self):
        result = self.invoke("merge", "--help")

        assert result.exit_code == 0
        assert "--ignore-orphan-call-logs" in result.output
        assert "--suffix-length" in result.output

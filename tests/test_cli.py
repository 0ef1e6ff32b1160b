"""Unit tests for CLI module."""

import json
from pathlib import Path

import yaml
from typer.testing import CliRunner

from lighterceptor.cli import app

runner = CliRunner()


class TestVersionCommand:
    """Tests for --version flag."""

    def test_version_flag(self) -> None:
        """Test --version displays version and exits."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "Lighterceptor version" in result.stdout

    def test_version_short_flag(self) -> None:
        """Test -V displays version and exits."""
        result = runner.invoke(app, ["-V"])

        assert result.exit_code == 0
        assert "Lighterceptor version" in result.stdout


class TestDiscoverCommand:
    """Tests for 'lighterceptor discover' command."""

    def test_discover_writes_json(self, tmp_path: Path) -> None:
        """Test requests are printed and written to --output."""
        source = tmp_path / "page.html"
        source.write_text(
            "<html><head><title>Demo</title></head>"
            '<body><img src="https://example.com/a.png"></body></html>'
        )
        output = tmp_path / "out" / "requests.json"

        result = runner.invoke(
            app, ["discover", str(source), "--settle-ms", "0", "-o", str(output)]
        )

        assert result.exit_code == 0
        assert "https://example.com/a.png" in result.stdout
        assert "Demo" in result.stdout
        data = json.loads(output.read_text())
        assert data["inputType"] == "html"
        assert data["title"] == "Demo"
        assert [(r["url"], r["source"]) for r in data["requests"]] == [
            ("https://example.com/a.png", "img")
        ]

    def test_discover_no_write(self, tmp_path: Path) -> None:
        """Test --no-write skips the result file."""
        source = tmp_path / "app.js"
        source.write_text('fetch("https://example.com/api")')

        result = runner.invoke(app, ["discover", str(source), "--settle-ms", "0", "--no-write"])

        assert result.exit_code == 0
        assert "fetch" in result.stdout
        assert "Wrote" not in result.stdout
        assert list(tmp_path.iterdir()) == [source]

    def test_discover_stdin(self, tmp_path: Path) -> None:
        """Test '-' reads the input from stdin."""
        output = tmp_path / "requests.json"

        result = runner.invoke(
            app,
            ["discover", "-", "--settle-ms", "0", "-o", str(output)],
            input='.a { background: url("https://example.com/bg.png") }',
        )

        assert result.exit_code == 0
        assert json.loads(output.read_text())["inputType"] == "css"

    def test_discover_options_override_config(self, tmp_path: Path) -> None:
        """Test command-line options take precedence over the config file."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({"input_type": "js", "settle_time_ms": 0}))
        source = tmp_path / "input.txt"
        source.write_text('<img src="a.png">')
        output = tmp_path / "requests.json"

        result = runner.invoke(
            app,
            [
                "discover",
                str(source),
                "-c",
                str(config_file),
                "--type",
                "html",
                "--base-url",
                "https://example.com/",
                "-o",
                str(output),
            ],
        )

        assert result.exit_code == 0
        data = json.loads(output.read_text())
        assert data["inputType"] == "html"
        assert data["requests"][0]["url"] == "https://example.com/a.png"

    def test_discover_missing_input(self, tmp_path: Path) -> None:
        """Test a missing input file exits with an error."""
        result = runner.invoke(app, ["discover", str(tmp_path / "missing.html"), "--no-write"])

        assert result.exit_code == 1
        assert "Input file not found" in result.stdout

    def test_discover_invalid_type(self, tmp_path: Path) -> None:
        """Test an unknown input type is a configuration error."""
        source = tmp_path / "page.html"
        source.write_text("<p></p>")

        result = runner.invoke(app, ["discover", str(source), "--type", "xml", "--no-write"])

        assert result.exit_code == 1
        assert "Configuration error" in result.stdout

    def test_discover_invalid_base_url(self, tmp_path: Path) -> None:
        """Test a relative base URL is rejected."""
        source = tmp_path / "page.html"
        source.write_text("<p></p>")

        result = runner.invoke(
            app, ["discover", str(source), "--base-url", "example.com", "--no-write"]
        )

        assert result.exit_code == 1
        assert "Configuration error" in result.stdout

    def test_discover_invalid_environment(self, tmp_path: Path) -> None:
        """Test an unknown environment backend is rejected."""
        source = tmp_path / "page.html"
        source.write_text("<p></p>")

        result = runner.invoke(app, ["discover", str(source), "-e", "firefox", "--no-write"])

        assert result.exit_code == 1
        assert "Unknown environment" in result.stdout


class TestValidateCommand:
    """Tests for 'lighterceptor validate' command."""

    def test_validate_valid_config(self, tmp_path: Path) -> None:
        """Test validate with valid config file."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            yaml.dump({"recursion": True, "base_url": "https://example.com/"})
        )

        result = runner.invoke(app, ["validate", str(config_file)])

        assert result.exit_code == 0
        assert "Configuration is valid" in result.stdout
        assert "https://example.com/" in result.stdout

    def test_validate_invalid_config(self, tmp_path: Path) -> None:
        """Test validate reports schema violations."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({"settle_time_ms": -5}))

        result = runner.invoke(app, ["validate", str(config_file)])

        assert result.exit_code == 1
        assert "Configuration validation failed" in result.stdout

    def test_validate_missing_file(self, tmp_path: Path) -> None:
        """Test validate rejects a missing path."""
        result = runner.invoke(app, ["validate", str(tmp_path / "nope.yaml")])

        assert result.exit_code != 0

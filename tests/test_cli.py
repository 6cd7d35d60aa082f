"""Tests for CLI interface."""

import json
import logging
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from listingwatch.cli import main, setup_logging

ML_URL = "https://produto.mercadolivre.com.br/MLB-1234567890-fone"


def _main(*argv: str) -> int:
    with patch.object(sys, "argv", ["listingwatch", *argv]):
        return main()


class TestCLI:
    """Tests for CLI commands."""

    def test_main_no_command(self) -> None:
        """Test that main prints help with no command."""
        assert _main() == 1

    def test_main_help(self, capsys) -> None:
        """Test help output."""
        with pytest.raises(SystemExit) as exc:
            _main("--help")
        assert exc.value.code == 0

        captured = capsys.readouterr()
        assert "Listing Watch" in captured.out
        assert "resolve" in captured.out
        assert "ingest-callback" in captured.out

    def test_setup_logging_verbose(self) -> None:
        """Test verbose logging setup."""
        for handler in logging.root.handlers[:]:
            logging.root.removeHandler(handler)
        setup_logging(verbose=True)
        assert len(logging.root.handlers) > 0
        assert logging.root.level == logging.DEBUG

    def test_missing_config(self, tmp_path: Path, capsys) -> None:
        """Test commands with a missing config file."""
        result = _main("--config", str(tmp_path / "nonexistent.yaml"), "report")

        assert result == 1
        assert "Config file not found" in capsys.readouterr().err

    def test_resolve(self, sample_config: Path, capsys) -> None:
        """Test resolving a listing URL."""
        result = _main("--config", str(sample_config), "resolve", ML_URL)

        out = capsys.readouterr().out
        assert result == 0
        assert "Mercado Livre" in out
        assert "MLB-1234567890" in out

    def test_resolve_invalid_url(self, sample_config: Path, capsys) -> None:
        """Test that an invalid URL exits non-zero."""
        result = _main("--config", str(sample_config), "resolve", "not a url")

        assert result == 1
        assert "http" in capsys.readouterr().out

    def test_add_listing(self, sample_config: Path, capsys) -> None:
        """Test adding a listing with an explicit price."""
        result = _main("--config", str(sample_config), "add-listing", ML_URL, "--product", "FBX1", "--price", "150")

        assert result == 0
        assert "below-minimum" in capsys.readouterr().out

    def test_add_listing_without_price(self, sample_config: Path, capsys) -> None:
        """Test that a missing price without enrichment is an error."""
        result = _main("--config", str(sample_config), "add-listing", ML_URL, "--product", "FBX1")

        assert result == 1
        assert "--price" in capsys.readouterr().err

    def test_unknown_product(self, sample_config: Path, capsys) -> None:
        """Test that an unknown product is reported."""
        result = _main("--config", str(sample_config), "add-listing", ML_URL, "--product", "NOPE", "--price", "1")

        assert result == 1
        assert "Product not found" in capsys.readouterr().err

    def test_complain(self, sample_config: Path, capsys) -> None:
        """Test registering a complaint."""
        result = _main(
            "--config",
            str(sample_config),
            "complain",
            ML_URL,
            "--client",
            "client-1",
            "--product",
            "FBX1",
            "--price",
            "120",
        )

        assert result == 0
        assert "requested" in capsys.readouterr().out

    def test_ingest_unknown_code(self, sample_config: Path, tmp_path: Path, capsys) -> None:
        """Test a callback for a listing that is not monitored."""
        payload = tmp_path / "payload.json"
        payload.write_text(json.dumps({"mlb": "MLB-1234567890", "preco": 99.9}))

        result = _main("--config", str(sample_config), "ingest-callback", str(payload))

        assert result == 1
        assert "Listing not found" in capsys.readouterr().err

    def test_ingest_invalid_json(self, sample_config: Path, tmp_path: Path, capsys) -> None:
        """Test that a broken payload file is an input error."""
        payload = tmp_path / "payload.json"
        payload.write_text("{not json")

        result = _main("--config", str(sample_config), "ingest-callback", str(payload))

        assert result == 1
        assert "Invalid JSON" in capsys.readouterr().err

    def test_report(self, sample_config: Path, capsys) -> None:
        """Test writing the compliance summary."""
        result = _main("--config", str(sample_config), "report")

        out = capsys.readouterr().out
        assert result == 0
        assert "# Compliance Summary" in out
        assert "Export written" in out

    def test_add_duplicate_listing_reports_duplicate(self, tmp_path: Path, capsys) -> None:
        """Test that a monitored code is reported instead of a missing price."""
        config = tmp_path / "config.yaml"
        config.write_text(
            f"""
database:
  url: sqlite+aiosqlite:///{tmp_path / 'watch.db'}
marketplaces:
  - name: Mercado Livre
    base_url: https://www.mercadolivre.com.br
products:
  - name: Fone Bluetooth X1
    sku: FBX1
    minimum_price: 199.90
output:
  base_dir: {tmp_path / 'output'}
"""
        )
        assert _main("--config", str(config), "add-listing", ML_URL, "--product", "FBX1", "--price", "150") == 0
        capsys.readouterr()

        result = _main("--config", str(config), "add-listing", ML_URL, "--product", "FBX1")

        err = capsys.readouterr().err
        assert result == 1
        assert "MLB-1234567890 is already monitored" in err
        assert "--price" not in err

"""Tests for the freelance-tax CLI.

Tax commands get an in-memory calculator through the click context object;
profile, settings and records commands run against isolated directories.
"""

import json
from datetime import date

import pytest
import yaml
from click.testing import CliRunner

from freelancetax.cli.__main__ import cli
from freelancetax.sdk import (
    IncomeEvent,
    InMemoryLedger,
    InMemorySettingsProvider,
    ProfileSettingsProvider,
    StaticRateProvider,
    TaxCalculator,
    records,
)

TAXPAYER = "jan"


@pytest.fixture
def isolated_env(tmp_path, monkeypatch):
    """Isolated config and data directories."""
    config_dir = tmp_path / "config"
    data_dir = tmp_path / "data"
    config_dir.mkdir()
    data_dir.mkdir()

    monkeypatch.setenv("FREELANCE_TAX_CONFIG_PATH", str(config_dir))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
    (config_dir / "settings.json").write_text(json.dumps({"data_dir": str(data_dir)}))

    return {"config_dir": config_dir, "data_dir": data_dir, "tmp_path": tmp_path}


@pytest.fixture
def calculator():
    ledger = InMemoryLedger()
    ledger.add_income(TAXPAYER, IncomeEvent(id="a", amount=20000, transaction_date=date(2024, 3, 5)))
    ledger.add_income(TAXPAYER, IncomeEvent(id="b", amount=1000, currency="USD", transaction_date=date(2023, 6, 5)))
    return TaxCalculator(
        ledger=ledger,
        settings_provider=InMemorySettingsProvider(),
        converter=StaticRateProvider({"EUR": 4.30}),
    )


def invoke(args, calculator=None):
    runner = CliRunner()
    obj = {"calculator": calculator} if calculator else None
    return runner.invoke(cli, args, obj=obj)


class TestTaxCommands:

    def test_month_json(self, isolated_env, calculator):
        result = invoke(["tax", "month", "2024", "3", "-t", TAXPAYER, "--json"], calculator)
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["gross_income_pln"] == 20000.0
        assert data["pit"] == 3800.0
        assert data["zus"] == 1600.32

    def test_month_table(self, isolated_env, calculator):
        result = invoke(["tax", "month", "2024", "3", "-t", TAXPAYER], calculator)
        assert result.exit_code == 0, result.output
        assert "Total due" in result.output
        assert "3,800.00" in result.output

    def test_month_out_of_range(self, isolated_env, calculator):
        result = invoke(["tax", "month", "2024", "13", "-t", TAXPAYER], calculator)
        assert result.exit_code == 2

    def test_month_conversion_failure(self, isolated_env, calculator):
        result = invoke(["tax", "month", "2023", "6", "-t", TAXPAYER], calculator)
        assert result.exit_code == 1
        assert "USD" in result.output

    def test_year_json(self, isolated_env, calculator):
        result = invoke(["tax", "year", "2024", "-t", TAXPAYER, "--json"], calculator)
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["totals"]["gross_income_pln"] == 20000.0
        assert data["months"][0]["month"] == 1

    def test_year_lists_failed_months(self, isolated_env, calculator):
        result = invoke(["tax", "year", "2023", "-t", TAXPAYER], calculator)
        assert result.exit_code == 1
        assert "could not be calculated" in result.output
        assert "2023-06" in result.output

    def test_dashboard_json(self, isolated_env, calculator):
        result = invoke(["tax", "dashboard", "-t", TAXPAYER, "--json"], calculator)
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["current_month"]["month"] == date.today().month
        assert data["settings"]["regime"] == "FLAT"

    def test_rules(self, isolated_env):
        result = invoke(["tax", "rules", "2024"])
        assert result.exit_code == 0, result.output
        assert "1,600.32" in result.output
        assert "120,000" in result.output

    def test_rules_json(self, isolated_env):
        result = invoke(["tax", "rules", "2024", "--json"])
        data = json.loads(result.output)
        assert data["zus"]["reduced_plus"] == 402.65


class TestProfileCommands:

    def test_set_and_show(self, isolated_env):
        result = invoke(["profile", "set", "-t", "anna", "--regime", "lumpsum", "--lumpsum-rate", "8.5"])
        assert result.exit_code == 0, result.output

        profile = yaml.safe_load((isolated_env["config_dir"] / "profile.yaml").read_text())
        assert profile["taxpayers"]["anna"]["regime"] == "LUMPSUM"
        assert profile["taxpayers"]["anna"]["custom_lumpsum_rate_percent"] == 8.5

        result = invoke(["profile", "show"])
        assert result.exit_code == 0, result.output
        assert "anna" in result.output
        assert "LUMPSUM" in result.output

    def test_set_uses_default_taxpayer(self, isolated_env):
        invoke(["settings", "default-taxpayer", "piotr"])
        result = invoke(["profile", "set", "--plan", "PREFERENTIAL"])
        assert result.exit_code == 0, result.output
        assert ProfileSettingsProvider().get_settings("piotr").contribution_plan.value == "PREFERENTIAL"

    def test_set_invalid_rate(self, isolated_env):
        result = invoke(["profile", "set", "--lumpsum-rate", "0"])
        assert result.exit_code == 1
        assert "Invalid tax settings" in result.output

    def test_set_requires_a_change(self, isolated_env):
        result = invoke(["profile", "set"])
        assert result.exit_code == 2

    def test_clear_override(self, isolated_env):
        invoke(["profile", "set", "--plan", "CUSTOM", "--zus-override", "900"])
        result = invoke(["profile", "set", "--clear-zus-override"])
        assert result.exit_code == 0, result.output
        assert ProfileSettingsProvider().get_settings("default").custom_zus_override is None

    def test_get(self, isolated_env):
        invoke(["profile", "set", "--regime", "PROGRESSIVE"])
        result = invoke(["profile", "get", "taxpayers.default.regime"])
        assert result.exit_code == 0
        assert result.output.strip() == "PROGRESSIVE"

        result = invoke(["profile", "get", "taxpayers.nobody"])
        assert result.exit_code == 1

    def test_show_empty(self, isolated_env):
        result = invoke(["profile", "show"])
        assert result.exit_code == 0
        assert "No taxpayers configured" in result.output


class TestSettingsCommands:

    def test_show(self, isolated_env):
        result = invoke(["settings", "show"])
        assert result.exit_code == 0
        assert str(isolated_env["data_dir"]) in result.output
        assert "default_taxpayer: default" in result.output

    def test_data_dir(self, isolated_env):
        new_dir = isolated_env["tmp_path"] / "elsewhere"
        result = invoke(["settings", "data-dir", str(new_dir)])
        assert result.exit_code == 0, result.output
        assert new_dir.is_dir()
        settings = json.loads((isolated_env["config_dir"] / "settings.json").read_text())
        assert settings["data_dir"] == str(new_dir.resolve())

    def test_data_dir_clear(self, isolated_env):
        result = invoke(["settings", "data-dir", "--clear"])
        assert result.exit_code == 0
        assert "Cleared data_dir" in result.output


class TestRecordsCommands:

    def write_import_file(self, isolated_env):
        path = isolated_env["tmp_path"] / "march.json"
        path.write_text(json.dumps({
            "invoices": [
                {"amount": 10000, "currency": "PLN", "issue_date": "2024-03-05", "status": "PAID",
                 "client": "ACME"},
            ],
            "expenses": [
                {"name": "Laptop", "amount_pln": 1230, "expense_date": "2024-03-10"},
                {"name": "Broken", "expense_date": "2024-03-10"},
            ],
        }))
        return path

    def test_import_and_list(self, isolated_env):
        result = invoke(["records", "import", str(self.write_import_file(isolated_env))])
        assert result.exit_code == 0, result.output
        assert "Imported 2 record(s) for default" in result.output
        assert "Skipped 1 invalid entry" in result.output

        result = invoke(["records", "list", "2024", "--month", "3"])
        assert result.exit_code == 0
        assert "Total: 2 record(s)" in result.output
        assert "ACME" in result.output

    def test_list_json(self, isolated_env):
        invoke(["records", "import", str(self.write_import_file(isolated_env))])
        result = invoke(["records", "list", "--type", "expense", "--format", "json"])
        data = json.loads(result.output)
        assert len(data) == 1
        assert data[0]["data"]["net_amount"] == 1000.0

    def test_show_and_remove(self, isolated_env):
        record = records.add_record(
            "invoice", "default",
            {"amount": 500, "currency": "EUR", "issue_date": "2024-02-01", "status": "SENT"},
        )
        result = invoke(["records", "show", record["id"]])
        assert result.exit_code == 0
        assert "Period: 2024-02" in result.output

        result = invoke(["records", "remove", record["id"], "--force"])
        assert result.exit_code == 0
        assert records.get_record(record["id"]) is None

    def test_show_missing(self, isolated_env):
        result = invoke(["records", "show", "deadbeef"])
        assert result.exit_code == 1
        assert "Record not found" in result.output

    def test_list_empty(self, isolated_env):
        result = invoke(["records", "list"])
        assert result.exit_code == 0
        assert "No records found" in result.output

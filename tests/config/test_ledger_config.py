"""
Tests for ledger configuration loading.

Verifies:
- The packaged default set loads and traces itself
- Required keys are enforced
- Amounts never pass through float
- Checksums identify configuration content
"""

from datetime import date
from textwrap import dedent

import pytest
import yaml

from ledger_config import get_active_config
from ledger_config.loader import compute_checksum, load_yaml_file, parse_ledger_config
from ledger_config.schema import LedgerConfig
from ledger_kernel.domain.units import UnitKind
from ledger_kernel.domain.values import Money

VALID = dedent(
    """\
    config_id: test-set
    version: 4
    ledger:
      currency: pkr
      seed_opening_balance: "100000.00"
      seed_date: 2024-03-01
      conflict_max_attempts: 5
      default_unit_kind: bag
    database:
      url: "sqlite:///:memory:"
      pool_size: 5
    """
)


def _write(tmp_path, text, name="ledger.yaml"):
    path = tmp_path / name
    path.write_text(text)
    return path


class TestDefaultConfig:
    def test_loads(self):
        config = get_active_config()
        assert isinstance(config, LedgerConfig)
        assert config.config_id == "steel-ledger-default"
        assert config.currency == "PKR"
        assert config.seed_opening_balance == Money.zero("PKR")
        assert config.seed_date == date(2024, 1, 1)
        assert config.conflict_max_attempts == 3
        assert config.default_unit_kind is UnitKind.KG_GRAMS
        assert config.database.url.startswith("sqlite")

    def test_emits_trace(self, captured_logs):
        config = get_active_config()
        traces = [r for r in captured_logs() if r["message"] == "LEDGER_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["config_id"] == config.config_id
        assert traces[0]["checksum"] == config.checksum
        assert traces[0]["seed_date"] == "2024-01-01"
        assert traces[0]["seed_opening_balance"] == "0.00"


class TestYamlLoading:
    def test_full_file(self, tmp_path):
        config = get_active_config(_write(tmp_path, VALID))
        assert config.version == 4
        assert config.currency == "PKR"
        assert config.seed_opening_balance == Money.of("100000.00")
        assert config.seed_date == date(2024, 3, 1)
        assert config.conflict_max_attempts == 5
        assert config.default_unit_kind is UnitKind.BAG
        assert config.database.pool_size == 5
        assert config.database.max_overflow == 10

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")

    def test_empty_file_missing_keys(self, tmp_path):
        with pytest.raises(KeyError):
            get_active_config(_write(tmp_path, ""))

    def test_missing_seed(self, tmp_path):
        text = VALID.replace('  seed_opening_balance: "100000.00"\n', "")
        with pytest.raises(KeyError):
            get_active_config(_write(tmp_path, text))

    def test_non_mapping(self, tmp_path):
        with pytest.raises(ValueError):
            load_yaml_file(_write(tmp_path, "- just\n- a list\n"))

    def test_malformed_yaml(self, tmp_path):
        with pytest.raises(yaml.YAMLError):
            load_yaml_file(_write(tmp_path, "ledger: [unclosed\n"))

    def test_float_amount_rejected(self, tmp_path):
        text = VALID.replace('"100000.00"', "100000.10")
        with pytest.raises(ValueError):
            get_active_config(_write(tmp_path, text))

    def test_integer_amount_accepted(self, tmp_path):
        text = VALID.replace('"100000.00"', "250")
        assert get_active_config(_write(tmp_path, text)).seed_opening_balance == Money.of("250")

    def test_unknown_unit_kind(self, tmp_path):
        text = VALID.replace("default_unit_kind: bag", "default_unit_kind: tonne")
        with pytest.raises(ValueError):
            get_active_config(_write(tmp_path, text))

    def test_invalid_attempts(self, tmp_path):
        text = VALID.replace("conflict_max_attempts: 5", "conflict_max_attempts: 0")
        with pytest.raises(ValueError):
            get_active_config(_write(tmp_path, text))

    def test_no_database_section(self, tmp_path):
        text = VALID.split("database:")[0]
        assert get_active_config(_write(tmp_path, text)).database is None


class TestSchema:
    def test_currency_mismatch(self):
        with pytest.raises(ValueError):
            LedgerConfig(
                config_id="x",
                version=1,
                currency="PKR",
                seed_opening_balance=Money.zero("USD"),
                seed_date=date(2024, 1, 1),
                conflict_max_attempts=3,
                default_unit_kind=UnitKind.KG,
            )

    def test_frozen(self):
        config = get_active_config()
        with pytest.raises(AttributeError):
            config.currency = "USD"


class TestChecksum:
    def test_deterministic(self, tmp_path):
        a = get_active_config(_write(tmp_path, VALID, "a.yaml"))
        b = get_active_config(_write(tmp_path, VALID, "b.yaml"))
        assert a.checksum == b.checksum
        assert len(a.checksum) == 64

    def test_key_order_irrelevant(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})

    def test_content_changes_checksum(self, tmp_path):
        data = yaml.safe_load(VALID)
        changed = yaml.safe_load(VALID.replace("version: 4", "version: 5"))
        assert parse_ledger_config(data).checksum != parse_ledger_config(changed).checksum

"""Tests for the deployment ledger backends."""

import json

import pytest
from chainstage.config.settings import Settings
from chainstage.core.errors import (
    ConfigurationError,
    InvalidLedgerKeyError,
    LedgerConflictError,
)
from chainstage.ledger import (
    JsonFileLedger,
    LedgerEntry,
    MemoryLedger,
    SqlLedger,
    create_ledger,
    fingerprint_args,
)


def make_entry(address="0x" + "1" * 40, template="Token", args=("TKN",), tx="0x" + "a" * 64):
    return LedgerEntry(
        address=address,
        template=template,
        args_fingerprint=fingerprint_args(args),
        publish_ref=tx,
        block_number=7,
    )


@pytest.fixture(params=["memory", "json", "sql"])
def any_ledger(request, tmp_path):
    if request.param == "memory":
        yield MemoryLedger()
    elif request.param == "json":
        yield JsonFileLedger(tmp_path / "deployments")
    else:
        ledger = SqlLedger(f"sqlite:///{tmp_path / 'ledger.db'}")
        yield ledger
        ledger.dispose()


class TestLedgerContract:
    def test_empty_network(self, any_ledger):
        assert any_ledger.lookup("N1", "token") is None
        assert not any_ledger.exists("N1", "token")
        assert any_ledger.entries("N1") == {}

    def test_record_then_lookup(self, any_ledger):
        entry = make_entry()
        any_ledger.record("N1", "token", entry)

        found = any_ledger.lookup("N1", "token")
        assert found.address == entry.address
        assert found.template == "Token"
        assert any_ledger.exists("N1", "token")

    def test_networks_are_isolated(self, any_ledger):
        any_ledger.record("N1", "token", make_entry())
        assert not any_ledger.exists("N2", "token")

    def test_second_record_conflicts(self, any_ledger):
        any_ledger.record("N1", "token", make_entry())

        with pytest.raises(LedgerConflictError) as exc:
            any_ledger.record("N1", "token", make_entry(address="0x" + "2" * 40))

        assert exc.value.unit_id == "token"
        assert any_ledger.lookup("N1", "token").address == "0x" + "1" * 40

    def test_force_overwrites(self, any_ledger):
        any_ledger.record("N1", "token", make_entry())
        any_ledger.record("N1", "token", make_entry(address="0x" + "2" * 40), force=True)

        assert any_ledger.lookup("N1", "token").address == "0x" + "2" * 40

    def test_entries_sorted_by_unit_id(self, any_ledger):
        for unit_id in ["c", "a", "b"]:
            any_ledger.record("N1", unit_id, make_entry())
        assert list(any_ledger.entries("N1")) == ["a", "b", "c"]

    def test_load_returns_copy(self, any_ledger):
        any_ledger.record("N1", "token", make_entry())
        view = any_ledger.load("N1")
        view.clear()
        assert any_ledger.exists("N1", "token")


class TestJsonFileLedger:
    def test_layout(self, tmp_path):
        ledger = JsonFileLedger(tmp_path)
        ledger.record("N1", "token", make_entry())

        path = tmp_path / "N1" / "token.json"
        assert ledger.path_for("N1", "token") == path
        data = json.loads(path.read_text())
        assert data["address"] == "0x" + "1" * 40
        assert data["publish_ref"] == "0x" + "a" * 64
        assert data["block_number"] == 7

    def test_no_temporary_files_left(self, tmp_path):
        ledger = JsonFileLedger(tmp_path)
        ledger.record("N1", "token", make_entry())
        assert [p.name for p in (tmp_path / "N1").iterdir()] == ["token.json"]

    def test_survives_new_instance(self, tmp_path):
        JsonFileLedger(tmp_path).record("N1", "token", make_entry())

        reopened = JsonFileLedger(tmp_path)
        assert reopened.lookup("N1", "token").template == "Token"

    def test_corrupt_entry_raises(self, tmp_path):
        (tmp_path / "N1").mkdir()
        (tmp_path / "N1" / "token.json").write_text('{"address": 1}')

        with pytest.raises(ValueError, match="Corrupt ledger entry"):
            JsonFileLedger(tmp_path).load("N1")

    @pytest.mark.parametrize("bad", ["", "../escape", ".hidden", "a/b"])
    def test_unsafe_names_rejected(self, tmp_path, bad):
        with pytest.raises(ValueError):
            JsonFileLedger(tmp_path).path_for("N1", bad)

    def test_check_key_rejects_before_any_write(self, tmp_path):
        ledger = JsonFileLedger(tmp_path)

        with pytest.raises(InvalidLedgerKeyError, match="oracles/PriceProvider"):
            ledger.check_key("N1", "oracles/PriceProvider")

        ledger.check_key("N1", "PriceProvider")
        assert list(tmp_path.iterdir()) == []

    def test_memory_ledger_accepts_any_key(self):
        MemoryLedger().check_key("N1", "oracles/PriceProvider")


class TestSqlLedger:
    def test_survives_new_instance(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'ledger.db'}"
        first = SqlLedger(url)
        first.record("N1", "token", make_entry())
        first.dispose()

        reopened = SqlLedger(url)
        found = reopened.lookup("N1", "token")
        reopened.dispose()

        assert found.address == "0x" + "1" * 40
        assert found.block_number == 7
        assert found.matches("Token", fingerprint_args(["TKN"]))


class TestFingerprint:
    def test_stable_across_sequence_types(self):
        assert fingerprint_args(("a", 1)) == fingerprint_args(["a", 1])

    def test_sensitive_to_values(self):
        assert fingerprint_args(["a"]) != fingerprint_args(["b"])
        assert fingerprint_args([1]) != fingerprint_args(["1"])

    def test_bytes_and_nested(self):
        assert fingerprint_args([b"\x01", {"b": 1, "a": [2]}]) == fingerprint_args(
            ["\x01".encode(), {"a": [2], "b": 1}]
        )

    def test_matches(self):
        entry = make_entry()
        assert entry.matches("Token", fingerprint_args(["TKN"]))
        assert not entry.matches("Token", fingerprint_args(["OTHER"]))
        assert not entry.matches("Oracle", fingerprint_args(["TKN"]))


class TestCreateLedger:
    def test_json_backend(self, tmp_path):
        ledger = create_ledger(Settings(ledger_backend="json", ledger_dir=str(tmp_path)))
        assert isinstance(ledger, JsonFileLedger)
        assert ledger.root == tmp_path

    def test_sql_backend(self, tmp_path):
        ledger = create_ledger(
            Settings(ledger_backend="sql", ledger_url=f"sqlite:///{tmp_path / 'l.db'}")
        )
        assert isinstance(ledger, SqlLedger)
        ledger.dispose()

    def test_memory_backend(self):
        assert isinstance(create_ledger(Settings(ledger_backend="memory")), MemoryLedger)

    def test_unknown_backend(self):
        with pytest.raises(ConfigurationError):
            create_ledger(Settings(ledger_backend="etcd"))

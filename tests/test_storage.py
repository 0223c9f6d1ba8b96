"""
Tests for storage backends and transaction support
"""

import pytest

from token_ledger.config import TokenLedgerConfig
from token_ledger.storage import (
    InMemoryStorage, SQLiteStorage, StorageInterface, create_storage
)


# Test data
test_data = {
    "account": "0x" + "ab" * 20,
    "balance": str(2 ** 256 - 1)
}


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path):
    """Each backend under the same contract"""
    if request.param == "memory":
        backend = InMemoryStorage()
    else:
        backend = SQLiteStorage(tmp_path / "test.db")
    yield backend
    backend.close()


class TestStorageInterface:
    """Test basic storage operations on every backend"""

    def test_basic_operations(self, storage):
        """Test save, load, exists, find, count, delete and clear"""
        storage.save("balances", "record_1", test_data)
        loaded = storage.load("balances", "record_1")
        assert loaded == test_data

        assert storage.exists("balances", "record_1")
        assert not storage.exists("balances", "non_existent")

        storage.save("balances", "record_2", {"account": "other", "balance": "5"})
        assert len(storage.load_all("balances")) == 2

        results = storage.find("balances", {"account": "other"})
        assert len(results) == 1
        assert results[0]["balance"] == "5"

        assert storage.count("balances") == 2

        assert storage.delete("balances", "record_1")
        assert not storage.delete("balances", "record_1")
        assert storage.count("balances") == 1

        storage.clear_table("balances")
        assert storage.count("balances") == 0

    def test_missing_record(self, storage):
        """Test loading from an empty table"""
        assert storage.load("balances", "nobody") is None
        assert storage.load_all("balances") == []

    def test_large_values_survive(self, storage):
        """Test 256-bit decimal strings round-trip unchanged"""
        storage.save("balances", "max", test_data)

        assert int(storage.load("balances", "max")["balance"]) == 2 ** 256 - 1

    def test_upsert_overwrites(self, storage):
        """Test saving an existing id replaces the data"""
        storage.save("balances", "record_1", {"balance": "1"})
        storage.save("balances", "record_1", {"balance": "2"})

        assert storage.load("balances", "record_1") == {"balance": "2"}
        assert storage.count("balances") == 1

    def test_load_all_insertion_order(self, storage):
        """Test load_all returns records in the order first saved"""
        for index in range(5):
            storage.save("events", f"{index:012d}", {"sequence": index})

        assert [r["sequence"] for r in storage.load_all("events")] == [0, 1, 2, 3, 4]

    def test_loaded_records_are_copies(self, storage):
        """Test mutating a loaded record does not change storage"""
        storage.save("balances", "record_1", {"balance": "1"})

        loaded = storage.load("balances", "record_1")
        loaded["balance"] = "999"

        assert storage.load("balances", "record_1") == {"balance": "1"}


class TestTransactions:
    """Test atomic blocks"""

    def test_commit(self, storage):
        """Test writes inside a successful block persist"""
        with storage.atomic():
            storage.save("balances", "a", {"balance": "1"})
            storage.save("balances", "b", {"balance": "2"})

        assert storage.count("balances") == 2

    def test_rollback_on_exception(self, storage):
        """Test an exception discards every write in the block"""
        storage.save("balances", "a", {"balance": "1"})

        with pytest.raises(RuntimeError):
            with storage.atomic():
                storage.save("balances", "a", {"balance": "100"})
                storage.save("balances", "b", {"balance": "2"})
                raise RuntimeError("abort")

        assert storage.load("balances", "a") == {"balance": "1"}
        assert storage.load("balances", "b") is None

    def test_rollback_of_new_table(self, storage):
        """Test a table first written inside a failed block stays empty"""
        with pytest.raises(RuntimeError):
            with storage.atomic():
                storage.save("allowances", "x", {"amount": "1"})
                raise RuntimeError("abort")

        assert storage.count("allowances") == 0

        storage.save("allowances", "y", {"amount": "2"})
        assert storage.count("allowances") == 1

    def test_nested_blocks_join_outer(self, storage):
        """Test an inner block's writes roll back with the outer block"""
        with pytest.raises(RuntimeError):
            with storage.atomic():
                storage.save("balances", "outer", {"balance": "1"})
                with storage.atomic():
                    storage.save("balances", "inner", {"balance": "2"})
                raise RuntimeError("abort")

        assert storage.count("balances") == 0

    def test_reads_see_uncommitted_writes(self, storage):
        """Test a block reads its own writes before commit"""
        with storage.atomic():
            storage.save("balances", "a", {"balance": "7"})
            assert storage.load("balances", "a") == {"balance": "7"}
            assert storage.count("balances") == 1


class TestInMemoryStorage:
    """Test in-memory specifics"""

    def test_in_transaction_flag(self):
        """Test the flag tracks the outermost block"""
        storage = InMemoryStorage()
        assert not storage.in_transaction

        with storage.atomic():
            assert storage.in_transaction
            with storage.atomic():
                assert storage.in_transaction
            assert storage.in_transaction

        assert not storage.in_transaction

    def test_get_all_data(self):
        """Test the inspection dump covers every table"""
        storage = InMemoryStorage()
        storage.save("balances", "a", {"balance": "1"})
        storage.save("allowances", "a:b", {"amount": "2"})

        dump = storage.get_all_data()

        assert dump["balances"]["a"] == {"balance": "1"}
        assert dump["allowances"]["a:b"] == {"amount": "2"}


class TestSQLiteStorage:
    """Test SQLite specifics"""

    def test_persistence(self, tmp_path):
        """Test committed data is visible to a new connection"""
        db_path = tmp_path / "persist.db"
        storage = SQLiteStorage(db_path)
        with storage.atomic():
            storage.save("balances", "a", {"balance": "42"})
        storage.close()

        reopened = SQLiteStorage(db_path)
        assert reopened.load("balances", "a") == {"balance": "42"}
        reopened.close()

    def test_rolled_back_data_not_persisted(self, tmp_path):
        """Test rolled back writes never reach disk"""
        db_path = tmp_path / "persist.db"
        storage = SQLiteStorage(db_path)
        storage.save("balances", "a", {"balance": "1"})
        with pytest.raises(RuntimeError):
            with storage.atomic():
                storage.save("balances", "a", {"balance": "2"})
                raise RuntimeError("abort")
        storage.close()

        reopened = SQLiteStorage(db_path)
        assert reopened.load("balances", "a") == {"balance": "1"}
        reopened.close()

    def test_in_memory_database(self):
        """Test the default path is a private in-memory database"""
        storage = SQLiteStorage()
        storage.save("balances", "a", {"balance": "1"})

        assert storage.db_path == ":memory:"
        assert storage.count("balances") == 1
        storage.close()


class TestCreateStorage:
    """Test backend selection from configuration"""

    def test_memory_backend(self):
        """Test the default backend is in-memory"""
        storage = create_storage(TokenLedgerConfig(storage_backend="memory"))
        assert isinstance(storage, InMemoryStorage)
        assert isinstance(storage, StorageInterface)

    def test_sqlite_backend(self, tmp_path):
        """Test the sqlite backend uses the configured path"""
        db_path = tmp_path / "configured.db"
        storage = create_storage(TokenLedgerConfig(storage_backend="sqlite", database_path=str(db_path)))

        assert isinstance(storage, SQLiteStorage)
        assert storage.db_path == str(db_path)
        storage.close()

    def test_unknown_backend(self):
        """Test unsupported backends are rejected"""
        with pytest.raises(ValueError, match="Unknown storage backend"):
            create_storage(TokenLedgerConfig(storage_backend="postgres"))

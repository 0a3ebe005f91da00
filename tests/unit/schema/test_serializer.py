"""Unit tests for schema serialization."""

import json

from duckquery.models.schema import (
    ColumnDescriptor,
    ColumnStatistic,
    DatabaseSnapshot,
    TableSnapshot,
)
from duckquery.schema.serializer import format_columns, serialize, serialize_columns


class TestSerialize:
    """Test serialize()."""

    def test_empty_snapshot_is_empty_string(self):
        assert serialize(DatabaseSnapshot()) == ""
        assert serialize(DatabaseSnapshot(), include_details=False) == ""
        assert serialize({}) == ""

    def test_every_table_and_column_named(self, two_table_snapshot):
        text = serialize(two_table_snapshot)

        for name, table in two_table_snapshot.items():
            assert name in text
            for column in table.columns:
                assert column.name in text

    def test_detail_lines(self, logs_snapshot):
        text = serialize(logs_snapshot)

        assert text.startswith('Table "raw_log_entries__2_": ts (TIMESTAMP), lvl (VARCHAR), msg (VARCHAR)\n')
        assert "\nSamples: " in text
        assert "\nStats: " in text

    def test_without_details_omits_samples_and_stats(self, two_table_snapshot):
        text = serialize(two_table_snapshot, include_details=False)

        assert "Samples:" not in text
        assert "Stats:" not in text
        assert text == (
            "raw_log_entries__2_: ts (TIMESTAMP), lvl (VARCHAR), msg (VARCHAR)\n\n"
            "sales: id (INTEGER), product (VARCHAR), price (DECIMAL(10,2))"
        )

    def test_tables_keep_snapshot_order(self, logs_table, sales_table):
        snapshot = DatabaseSnapshot({"zeta": sales_table, "alpha": logs_table})

        text = serialize(snapshot)

        assert text.index('Table "zeta"') < text.index('Table "alpha"')
        assert text.count("\n\n") == 1

    def test_samples_and_stats_are_compact_json(self, sales_table):
        text = serialize(DatabaseSnapshot({"sales": sales_table}))
        lines = text.split("\n")

        samples = lines[1].removeprefix("Samples: ")
        stats = lines[2].removeprefix("Stats: ")

        assert samples == '[{"id":1,"product":"Laptop","price":999.99}]'
        assert json.loads(stats)[0] == {
            "column": "id",
            "type": "INTEGER",
            "min": "1",
            "max": "1",
            "approx_unique": 1,
            "count": 1,
        }

    def test_non_ascii_kept(self):
        table = TableSnapshot(
            columns=[ColumnDescriptor(name="city", type="VARCHAR")],
            samples=[{"city": "Zürich"}],
            stats=[],
        )

        assert '"Zürich"' in serialize(DatabaseSnapshot({"cities": table}))

    def test_oversized_integers_serialized_as_strings(self):
        big = 2**53 + 1
        table = TableSnapshot(
            columns=[ColumnDescriptor(name="id", type="HUGEINT")],
            samples=[{"id": big}],
            stats=[
                ColumnStatistic(column="id", type="HUGEINT", min=big, max=big, approx_unique=1, count=1)
            ],
        )

        text = serialize(DatabaseSnapshot({"big": table}))

        assert f'"id":"{big}"' in text
        assert f'"min":"{big}"' in text
        assert f":{big}" not in text


class TestSerializeColumns:
    """Test the column-only rendering used for repairs."""

    def test_one_line_per_table(self, two_table_snapshot):
        assert serialize_columns(two_table_snapshot) == (
            'Table "raw_log_entries__2_": ts (TIMESTAMP), lvl (VARCHAR), msg (VARCHAR)\n'
            'Table "sales": id (INTEGER), product (VARCHAR), price (DECIMAL(10,2))'
        )

    def test_empty(self):
        assert serialize_columns(DatabaseSnapshot()) == ""

    def test_format_columns(self, sales_table):
        assert format_columns(sales_table) == "id (INTEGER), product (VARCHAR), price (DECIMAL(10,2))"

import pytest

from core.severity import BUCKET_TABLES, BucketTable, SeverityBucket, get_bucket_table


@pytest.mark.parametrize("version", sorted(BUCKET_TABLES))
def test_tables_are_contiguous_and_cover_unit_interval(version):
    table = BUCKET_TABLES[version]
    assert table.buckets[0].lower == 0
    assert table.buckets[-1].upper == 1
    for prev, nxt in zip(table.buckets, table.buckets[1:]):
        assert prev.upper == nxt.lower


@pytest.mark.parametrize("ratio,expected", [
    (0.0, "zero"),
    (0.0099, "zero"),
    (0.01, "low"),
    (0.0999, "low"),
    (0.1, "high"),
    (1.0, "high"),
    (None, "zero"),
])
def test_v3_half_open_buckets(ratio, expected):
    assert get_bucket_table("v3").bucket_for(ratio).name == expected


@pytest.mark.parametrize("ratio,expected", [
    (0.0, "minimal"),
    (0.05, "low"),
    (0.15, "moderate"),
    (0.29, "moderate"),
    (0.3, "high"),
])
def test_v4_buckets(ratio, expected):
    assert get_bucket_table("v4").bucket_for(ratio).name == expected


def test_unknown_scheme_and_level():
    with pytest.raises(ValueError):
        get_bucket_table("v9")
    with pytest.raises(ValueError):
        get_bucket_table("v3").get("moderate")


def test_table_with_gap_is_rejected():
    with pytest.raises(ValueError):
        BucketTable("bad", [
            SeverityBucket("a", 0.0, 0.4, "#000", "A"),
            SeverityBucket("b", 0.5, 1.0, "#fff", "B"),
        ])

import pytest

from spmatch.data_sources.base import InputError, parse_seq
from spmatch.data_sources.csv_log import multi_follow_source
from spmatch.datasets.multi_follows import aggregate, merge_partials

HEADER = "did,seq,rkey,created_at,subject"


def test_aggregate_groups_and_dedups(write_gz):
    path = write_gz(
        "multi.csv.gz",
        HEADER,
        [
            "did:x,7,r1,2024-11-02T10:00:00Z,did:a",
            "did:y,3,r2,2024-11-02T10:00:00Z,did:b",
            "did:x,7,r3,2024-11-02T10:00:01Z,did:c",
            "did:x,7,r4,2024-11-02T10:00:02Z,did:a",
            "did:y,3,r5,2024-11-02T10:00:03Z,did:d",
        ],
    )
    # tiny chunks so batches are split across partial maps
    batches = aggregate(multi_follow_source(path, chunksize=2))
    assert [(b.seq, b.targets) for b in batches] == [
        (3, frozenset({"did:b", "did:d"})),
        (7, frozenset({"did:a", "did:c"})),
    ]


def test_merge_partials_unions_per_key():
    merged = merge_partials([{1: {"a"}, 2: {"b"}}, {1: {"c"}}, {2: {"b"}, 3: {"d"}}])
    assert merged == {1: {"a", "c"}, 2: {"b"}, 3: {"d"}}


def test_malformed_seq_is_fatal(write_gz):
    path = write_gz("multi.csv.gz", HEADER, ["did:x,7,r1,t,did:a", "did:x,seven,r2,t,did:b"])
    with pytest.raises(InputError) as info:
        aggregate(multi_follow_source(path))
    assert "multi.csv.gz: record 2" in str(info.value)


def test_short_row_among_full_rows_is_fatal(write_gz):
    path = write_gz("multi.csv.gz", HEADER, ["did:x,7,r1,t,did:a", "did:x,8,r2", "did:x,9,r3,t,did:c"])
    with pytest.raises(InputError) as info:
        aggregate(multi_follow_source(path))
    assert str(info.value) == "multi.csv.gz: record 2: missing subject field"


def test_empty_subject_cell_is_kept(write_gz):
    # a present but empty field is not a missing one
    path = write_gz("multi.csv.gz", HEADER, ["did:x,7,r1,t,"])
    assert aggregate(multi_follow_source(path))[0].targets == frozenset({""})


def test_header_only_file_has_no_batches(write_gz):
    path = write_gz("multi.csv.gz", HEADER, [])
    assert aggregate(multi_follow_source(path)) == []


@pytest.mark.parametrize("raw,expected", [("42", 42), ("-3", -3), ("+5", 5), ("9223372036854775807", 2**63 - 1)])
def test_parse_seq(raw, expected):
    assert parse_seq(raw) == expected


@pytest.mark.parametrize("raw", ["", " 4", "4.0", "1_000", "9223372036854775808"])
def test_parse_seq_rejects(raw):
    with pytest.raises(ValueError):
        parse_seq(raw)

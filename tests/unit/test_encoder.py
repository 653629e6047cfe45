"""Tests for record encoding."""

import pytest

from guestmap.dictionary import DictionaryConfig, build_dictionary
from guestmap.encoding import (
    MISSING_VALUE,
    EncodingConfig,
    decode_row,
    encode_records,
    parse_date,
    parse_number,
)
from guestmap.errors import IssueKind

# ========== Parsing helpers ==========


@pytest.mark.unit
def test_parse_number_in_range() -> None:
    """Test integral and fractional values within range pass through."""
    assert parse_number("7", (1, 10)) == 7
    assert isinstance(parse_number("7", (1, 10)), int)
    assert parse_number(" 7.5 ", (1, 10)) == 7.5
    assert parse_number(3, (1, 10)) == 3


@pytest.mark.unit
@pytest.mark.parametrize("raw", ["11", "0", "abc", "", None, "nan", "inf", True])
def test_parse_number_rejects(raw) -> None:
    """Test out-of-range, non-numeric and non-finite values are missing."""
    assert parse_number(raw, (1, 10)) is None


@pytest.mark.unit
def test_zip_keeps_text(make_record) -> None:
    """Test postal codes are range-checked but keep their leading zeros."""
    records = [make_record(uid="a", zip=" 02139 "), make_record(uid="b", zip="999999"), make_record(uid="c", zip="MA")]
    result = encode_records(records, build_dictionary(records))

    assert [r.numerics["zip"] for r in result.rows] == ["02139", None, None]
    assert result.rows[0].to_dict()["zip"] == "02139"
    assert {i.subject for i in result.issues if i.field == "zip"} == {"b", "c"}


@pytest.mark.unit
def test_parse_date_kinds() -> None:
    """Test date and datetime normalization to ISO-8601."""
    assert parse_date("2024-05-01 19:30:00") == "2024-05-01T19:30:00"
    assert parse_date("1990-03-15", kind="date") == "1990-03-15"
    assert parse_date("03/15/1990", kind="date") == "1990-03-15"


@pytest.mark.unit
@pytest.mark.parametrize("raw", ["not a date", "", "   ", None, "March 5", "03/15", "19:30"])
def test_parse_date_rejects(raw) -> None:
    """Test unparseable and yearless dates are missing."""
    assert parse_date(raw) is None


# ========== Encoding ==========


@pytest.mark.unit
def test_categorical_codes_resolve(make_record) -> None:
    """Test categorical answers encode to their dictionary codes."""
    records = [
        make_record(uid="a", zodiac="Leo", interest_1="Film", interest_2="Jazz"),
        make_record(uid="b", zodiac=" leo", interest_3="film"),
    ]
    dictionary = build_dictionary(records)
    result = encode_records(records, dictionary)

    row_a, row_b = result.rows
    assert row_a.codes["zodiac"] == 1
    assert row_b.codes["zodiac"] == 1
    assert row_a.interest_codes() == frozenset({1, 2})
    assert row_b.codes["interest_3"] == 1
    assert row_b.codes["interest_1"] is None


@pytest.mark.unit
def test_invalid_labels_encode_as_missing(make_record) -> None:
    """Test invalid labels are visible in the dictionary but encode as missing."""
    records = [make_record(uid="a", role="x" * 80), make_record(uid="b", role="Chef")]
    dictionary = build_dictionary(records, DictionaryConfig(max_label_length=60))
    result = encode_records(records, dictionary)

    assert dictionary.lookup("role", "x" * 80) is not None
    assert result.rows[0].codes["role"] is None
    assert result.rows[1].codes["role"] == 2


@pytest.mark.unit
def test_unresolved_labels_encode_as_missing(make_record) -> None:
    """Test labels absent from the dictionary encode as missing."""
    dictionary = build_dictionary([make_record(uid="a", zodiac="Leo")])
    result = encode_records([make_record(uid="b", zodiac="Aries")], dictionary)
    assert result.rows[0].codes["zodiac"] is None


@pytest.mark.unit
def test_all_missing_row_is_emitted(make_record) -> None:
    """Test a record with nothing answered still yields a row."""
    records = [make_record(uid="empty"), make_record(uid="a", zodiac="Leo")]
    result = encode_records(records, build_dictionary(records))

    assert [r.uid for r in result.rows] == ["empty", "a"]
    assert all(v is None for v in result.rows[0].codes.values())


@pytest.mark.unit
def test_counts_split_valid_na_missing(make_record) -> None:
    """Test per-field counts distinguish valid, N/A and missing."""
    records = [
        make_record(uid="a", zodiac="Leo"),
        make_record(uid="b", zodiac="n/a"),
        make_record(uid="c", zodiac=""),
        make_record(uid="d"),
    ]
    result = encode_records(records, build_dictionary(records))
    assert result.counts["zodiac"] == {"valid": 1, "na": 2, "missing": 1}


@pytest.mark.unit
def test_numeric_and_date_fields(make_record) -> None:
    """Test numeric and date fields pass through or go missing with an issue."""
    records = [
        make_record(uid="a", know_score="8", social_stance="12", zip="94110",
                    birthday="1990-03-15", timestamp="garbage"),
    ]
    result = encode_records(records, build_dictionary(records))
    row = result.rows[0]

    assert row.numerics == {"zip": "94110", "know_score": 8, "social_stance": None}
    assert row.dates["birthday"] == "1990-03-15"
    assert row.dates["timestamp"] is None
    assert row.dates["checkin_time"] is None

    flagged = {(i.kind, i.field) for i in result.issues}
    assert flagged == {
        (IssueKind.UNPARSEABLE_VALUE, "social_stance"),
        (IssueKind.UNPARSEABLE_VALUE, "timestamp"),
    }


@pytest.mark.unit
def test_custom_numeric_range(make_record) -> None:
    """Test numeric ranges come from the encoding section."""
    config = EncodingConfig.from_config({"encoding": {"numeric_ranges": {"know_score": [0, 100]}}})
    records = [make_record(uid="a", know_score="55")]
    result = encode_records(records, build_dictionary(records), config)
    assert result.rows[0].numerics["know_score"] == 55


@pytest.mark.unit
def test_feature_row_dict_uses_missing_marker(make_record) -> None:
    """Test missing cells render as the N/A marker in the feature table."""
    records = [make_record(uid="a", zodiac="Leo")]
    row = encode_records(records, build_dictionary(records)).table.to_rows()[0]

    assert row["uid"] == "a"
    assert row["zodiac"] == 1
    assert row["gender"] == MISSING_VALUE
    assert row["know_score"] == MISSING_VALUE
    assert list(row)[:3] == ["uid", "zodiac", "age_range"]


@pytest.mark.unit
def test_table_is_tied_to_dictionary(make_record) -> None:
    """Test the feature table records the dictionary fingerprint."""
    records = [make_record(uid="a", zodiac="Leo")]
    dictionary = build_dictionary(records)
    table = encode_records(records, dictionary).table
    assert table.dictionary_fingerprint == dictionary.fingerprint


@pytest.mark.unit
def test_decode_row_round_trip(make_record) -> None:
    """Test encoded codes decode to the normalized labels."""
    records = [make_record(uid="a", zodiac=" Leo ", music_pref="Hip   Hop", role="n/a")]
    dictionary = build_dictionary(records)
    row = encode_records(records, dictionary).rows[0]

    labels = decode_row(row, dictionary)
    assert labels["zodiac"] == "Leo"
    assert labels["music_pref"] == "Hip Hop"
    assert labels["role"] == "N/A"
    assert labels["gender"] is None


@pytest.mark.unit
def test_codes_frame_is_nullable(make_record) -> None:
    """Test the code frame keeps missing values as NA with integer dtype."""
    records = [make_record(uid="a", zodiac="Leo"), make_record(uid="b")]
    frame = encode_records(records, build_dictionary(records)).table.codes_frame()

    assert str(frame["zodiac"].dtype) == "Int64"
    assert frame.loc["a", "zodiac"] == 1
    assert frame["zodiac"].isna().tolist() == [False, True]


@pytest.mark.unit
def test_na_answers_are_flagged(make_record) -> None:
    """Test N/A answers keep their code but are excluded from answered codes."""
    records = [make_record(uid="a", interest_1="Hiking", interest_2="n/a", music_pref="none", gender="Woman")]
    dictionary = build_dictionary(records)
    row = encode_records(records, dictionary).rows[0]

    assert row.na_fields == frozenset({"interest_2", "music_pref"})
    assert row.code("music_pref") == dictionary.na_code("music_pref")
    assert row.answered_code("music_pref") is None
    assert row.answered_code("gender") == row.code("gender")
    assert row.interest_codes() == frozenset({row.code("interest_1")})


@pytest.mark.unit
def test_text_numeric_fields_from_config(make_record) -> None:
    """Test postal-code text handling can be switched off in the encoding section."""
    config = EncodingConfig.from_config({"encoding": {"text_numeric_fields": []}})
    records = [make_record(uid="a", zip="02139")]
    result = encode_records(records, build_dictionary(records), config)
    assert result.rows[0].numerics["zip"] == 2139

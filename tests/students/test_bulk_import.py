from datetime import date

from src.music_school.music_school.students.bulk_import import parse_bulk_csv, template_csv


def test_template_parses_cleanly():
    result = parse_bulk_csv(template_csv(), today=date(2026, 1, 1))

    assert result.is_valid
    assert [r["name"] for r in result.rows] == ["John Smith", "Emily Johnson", "Michael Brown"]
    assert result.rows[0]["age"] == 15
    assert result.rows[2]["nickname"] is None


def test_row_errors_use_spreadsheet_row_numbers():
    csv = (
        "FullName,Nickname,Birthdate,Gender,Instrument\n"
        "Ana,,2010-01-01,Female,Piano\n"
        "Ben,,01/02/2010,Male,guitars\n"
        "ana,,,Female,Voice\n"
    )

    result = parse_bulk_csv(csv)

    assert len(result.rows) == 1
    assert result.errors[0].startswith("Row 3 (Ben)")
    assert 'Did you mean "Guitar"?' in result.errors[0]
    assert "Invalid birthdate format" in result.errors[0]
    assert 'Duplicate name "ana"' in result.errors[1]


def test_blank_rows_do_not_shift_row_numbers():
    csv = (
        "FullName,Nickname,Birthdate,Gender,Instrument\n"
        "Ana,,2010-01-01,Female,Piano\n"
        "\n"
        ",,,,\n"
        "Ben,,,Male,Kazoo\n"
    )

    result = parse_bulk_csv(csv)

    assert [r["name"] for r in result.rows] == ["Ana"]
    assert len(result.errors) == 1 and result.errors[0].startswith("Row 5 (Ben)")


def test_missing_columns_and_empty_files():
    assert parse_bulk_csv("a,b\n1,2\n").errors == [
        "CSV must have the columns: FullName, Nickname, Birthdate, Gender, Instrument"
    ]
    assert parse_bulk_csv("FullName,Instrument\n").errors == ["No student data found in CSV file"]


def test_batch_limit():
    rows = "".join(f"Student {i},,,Male,Piano\n" for i in range(3))
    result = parse_bulk_csv("FullName,Nickname,Birthdate,Gender,Instrument\n" + rows, max_rows=2)

    assert result.errors == ["Batch size exceeds limit. Maximum 2 students allowed, found 3."]

import pytest

from results.constants import BUSINESS, HUMANITIES, SCIENCE, STUDENT_NAME_TEMPLATE_BN
from results.dedupe import dedupe_students, identity_key
from results.errors import NotEnoughDataError, NoValidStudentsError
from results.normalize import classify_group, coerce_record, normalize_grid, parse_grid, parse_score

HEADERS = ["Roll", "Name", "Group", "Written", "MCQ", "Practical", "Total"]


def test_grid_to_canonical_records():
    grid = [
        HEADERS,
        [101, "Rahim", "Science", 40, 20, 22, None],
        ["102", "Karim", "Humanities", "35", "18", "20", "73"],
    ]
    students = normalize_grid(grid)
    assert students == [
        {"id": 101, "name": "Rahim", "group": SCIENCE, "class": "", "session": "",
         "written": 40, "mcq": 20, "practical": 22, "total": 82},
        {"id": 102, "name": "Karim", "group": HUMANITIES, "class": "", "session": "",
         "written": 35, "mcq": 18, "practical": 20, "total": 73},
    ]


def test_explicit_total_overrides_sum():
    grid = [HEADERS, [1, "A", "Science", 40, 20, 20, 70]]
    assert normalize_grid(grid)[0]["total"] == 70


def test_zero_total_cell_falls_back_to_sum():
    grid = [HEADERS, [1, "A", "Science", 40, 20, 20, 0]]
    assert normalize_grid(grid)[0]["total"] == 80


def test_absent_tokens_parse_to_zero():
    grid = [HEADERS, [7, "A", "", "absent", "অনুপস্থিত", None, None]]
    r = normalize_grid(grid)[0]
    assert (r["written"], r["mcq"], r["practical"], r["total"]) == (0, 0, 0, 0)


def test_missing_name_is_synthesized():
    grid = [HEADERS, [15, "", "Science", 30, 10, 10, None]]
    assert normalize_grid(grid)[0]["name"] == "Student 15"
    assert normalize_grid(grid, name_template=STUDENT_NAME_TEMPLATE_BN)[0]["name"] == "শিক্ষার্থী 15"


def test_unparsable_id_falls_back_to_row_ordinal():
    grid = [HEADERS, [1, "A", "", 30, 10, 10, None], ["x", "B", "", 30, 10, 10, None]]
    assert [r["id"] for r in normalize_grid(grid)] == [1, 2]


def test_empty_rows_are_skipped():
    grid = [HEADERS, [], [None, "Only name", None, None, None, None, None], [5, "E", "", 20, 10, 5, None]]
    report = parse_grid(grid)
    assert [r["id"] for r in report["students"]] == [5]
    assert report["skipped_rows"] == [2, 3]


@pytest.mark.parametrize("value,expected", [
    ("Business Studies", BUSINESS),
    ("ব্যবসায় শিক্ষা", BUSINESS),
    ("Commerce", BUSINESS),
    ("B.Com", BUSINESS),
    ("Arts", HUMANITIES),
    ("মানবিক", HUMANITIES),
    ("Science", SCIENCE),
    ("বিজ্ঞান", SCIENCE),
    ("Unknown", SCIENCE),
    (None, SCIENCE),
])
def test_group_classification(value, expected):
    assert classify_group(value) == expected


def test_missing_group_column_defaults_to_science():
    report = parse_grid([["Roll", "Name", "Written"], [1, "A", 30], [2, "B", 40]])
    assert report["column_map"]["group"] == -1
    assert [s["group"] for s in report["students"]] == [SCIENCE, SCIENCE]


def test_business_cue_checked_before_science():
    # "social studies" contains the business cue "studies"
    assert classify_group("Social Science Studies") == BUSINESS


def test_parse_score():
    assert parse_score(None) == 0
    assert parse_score("") == 0
    assert parse_score("Absent") == 0
    assert parse_score("17.5") == 17.5
    assert parse_score("40 marks") == 40
    assert parse_score("abc") == 0
    assert parse_score(float("nan")) == 0


def test_not_enough_rows():
    with pytest.raises(NotEnoughDataError):
        parse_grid([HEADERS])
    with pytest.raises(NotEnoughDataError):
        parse_grid([])


def test_no_valid_students():
    with pytest.raises(NoValidStudentsError) as exc:
        parse_grid([HEADERS, [None, "", None, None, None, None, None]])
    assert exc.value.code == "no_valid_students"


def test_duplicates_last_row_wins_first_position_kept():
    grid = [
        HEADERS,
        [1, "A", "Science", 30, 10, 10, None],
        [2, "B", "Science", 30, 10, 10, None],
        [1, "A", "Science", 40, 20, 20, None],
    ]
    report = parse_grid(grid)
    assert [r["id"] for r in report["students"]] == [1, 2]
    assert report["students"][0]["total"] == 80
    assert len(report["duplicates"]) == 1
    dup = report["duplicates"][0]
    assert dup["kept_row"] == 4
    assert dup["dropped_row"] == 2
    assert dup["dropped_total"] == 50


def test_same_roll_in_different_groups_is_not_a_duplicate():
    grid = [
        HEADERS,
        [1, "A", "Science", 30, 10, 10, None],
        [1, "A", "Arts", 30, 10, 10, None],
    ]
    assert len(normalize_grid(grid)) == 2


def test_subject_hint_is_most_frequent_subject():
    grid = [
        ["Roll", "Name", "Subject", "Written"],
        [1, "A", "ICT", 30],
        [2, "B", "ICT", 30],
        [3, "C", "Physics", 30],
    ]
    assert parse_grid(grid)["subject"] == "ICT"


def test_identity_key():
    assert identity_key({"id": 5, "name": "A", "group": "science", "class": "11", "session": "2024"}) == "5_A_science_11_2024"
    assert identity_key({"id": 0, "name": "A"}) is None


def test_dedupe_drops_rows_without_id():
    unique, dups = dedupe_students([{"id": None, "name": "X"}, {"id": 3, "name": "Y"}])
    assert unique == [{"id": 3, "name": "Y"}]
    assert dups == []


def test_coerce_record_fills_defaults_and_keeps_extras():
    r = coerce_record({"id": "12", "written": 30, "mcq": 10, "group": "Business", "remark": "ok"}, position=4)
    assert r["id"] == 12
    assert r["name"] == "Student 12"
    assert r["group"] == BUSINESS
    assert r["total"] == 40
    assert r["practical"] == 0
    assert r["remark"] == "ok"

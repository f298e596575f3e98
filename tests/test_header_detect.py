from results.header_detect import NOT_FOUND, describe_columns, detect_columns, match_field, normalize_headers


def test_english_headers():
    headers = normalize_headers(["Roll", "Name", "Group", "Written (50)", "MCQ(25)", "Practical (25)", "Total (100)"])
    cm = detect_columns(headers)
    assert cm["id"] == 0
    assert cm["name"] == 1
    assert cm["group"] == 2
    assert cm["written"] == 3
    assert cm["mcq"] == 4
    assert cm["practical"] == 5
    assert cm["total"] == 6
    assert cm["subject"] == NOT_FOUND
    assert cm["class"] == NOT_FOUND
    assert cm["session"] == NOT_FOUND


def test_bengali_headers():
    headers = normalize_headers(["রোল", "নাম", "বিভাগ", "লিখিত", "বহুনির্বাচনী", "ব্যবহারিক", "মোট", "বিষয়", "শ্রেণি", "সেশন"])
    cm = detect_columns(headers)
    assert [cm[f] for f in ("id", "name", "group", "written", "mcq", "practical", "total", "subject", "class", "session")] == list(range(10))


def test_header_matching_two_fields_goes_to_first_checked():
    # "student id name" contains both a name cue and an id cue; name is checked first
    assert match_field("student id name") == "name"
    # "roll total" -> id, which is checked before total
    assert match_field("roll total") == "id"


def test_first_column_wins_per_field():
    cm = detect_columns(normalize_headers(["Name", "Father Name", "Roll"]))
    assert cm["name"] == 0
    assert cm["id"] == 2


def test_headers_normalized():
    assert normalize_headers(["  ROLL ", None, 5]) == ["roll", "", "5"]


def test_unmatched_header():
    assert match_field("gpa") == ""
    assert match_field("") == ""


def test_describe_columns():
    headers = normalize_headers(["Roll", "Name"])
    rows = describe_columns(headers, detect_columns(headers))
    by_field = {r["field"]: r for r in rows}
    assert by_field["id"] == {"field": "id", "column": 1, "header": "roll"}
    assert by_field["total"]["column"] is None

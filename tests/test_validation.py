from roikit.validation import count_invalid, has_errors, is_valid, validate_entry


def test_valid_entry(make_entry):
    entry = make_entry(week_start_date="2025-03-03", week_end_date="2025-03-09", spend=10)
    assert validate_entry(entry) == {}
    assert is_valid(entry)


def test_field_errors(make_entry):
    errors = validate_entry(make_entry(year=1999, month=13, week_of_month=6, channel="TV", spend=-1, leads=-3))
    assert set(errors) == {"year", "month", "week_of_month", "channel", "spend", "leads"}
    assert has_errors(errors)


def test_non_integral_week(make_entry):
    assert "week_of_month" in validate_entry(make_entry(week_of_month=2.5))


def test_dates(make_entry):
    assert "week_start_date" in validate_entry(make_entry(week_start_date="03/03/2025"))
    errors = validate_entry(make_entry(week_start_date="2025-03-09", week_end_date="2025-03-03"))
    assert list(errors) == ["week_end_date"]


def test_validation_does_not_mutate(make_entry):
    entry = make_entry(spend=-5)
    before = entry.to_dict()
    validate_entry(entry)
    assert entry.to_dict() == before


def test_count_invalid(make_entry):
    assert count_invalid([make_entry(), make_entry(month=0), make_entry(revenue=-1)]) == 2

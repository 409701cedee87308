import pytest

from sarima_forecaster_src.parsing_utils import parse_intervals_arg, validate_log_level, validate_transform


def test_parse_intervals_arg():
    assert parse_intervals_arg("80,95") == [80, 95]
    assert parse_intervals_arg(" 95 , 80 ,80") == [80, 95]
    assert parse_intervals_arg("0.9") == [90]
    assert parse_intervals_arg(None) == [80, 95]
    assert parse_intervals_arg("", default="90") == [90]


@pytest.mark.parametrize("bad", ["abc", "80,150", "0", "80,,x"])
def test_parse_intervals_arg_rejects_bad_input(bad):
    with pytest.raises(ValueError):
        parse_intervals_arg(bad)


def test_validate_transform_and_log_level():
    assert validate_transform("log") == "log"
    assert validate_transform("none") == "none"
    with pytest.raises(ValueError):
        validate_transform("sqrt")
    assert validate_log_level("debug") == "DEBUG"
    with pytest.raises(ValueError):
        validate_log_level("verbose")

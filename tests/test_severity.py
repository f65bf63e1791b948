"""日志级别映射测试。"""
import pytest

from logquery.core.exceptions import InvalidLogLevelError, UnknownSeverityError
from logquery.services.severity import SEVERITY_NAMES, severity_code, severity_name


@pytest.mark.parametrize("code", [10, 20, 30, 40, 50, 60])
def test_code_name_code_round_trip(code):
    assert severity_code(severity_name(code)) == code


def test_mapping_is_bijective():
    assert sorted(SEVERITY_NAMES) == [10, 20, 30, 40, 50, 60]
    assert sorted(SEVERITY_NAMES.values()) == sorted(["trace", "debug", "info", "warn", "error", "fatal"])


@pytest.mark.parametrize("code", [0, 35, 70, -10, "30", None, True])
def test_undefined_code_raises(code):
    with pytest.raises(UnknownSeverityError) as exc:
        severity_name(code)
    assert exc.value.status_code == 500


def test_integral_float_code_accepted():
    assert severity_name(50.0) == "error"


@pytest.mark.parametrize("name", ["", None, "INFO", "warning", "critical"])
def test_invalid_name_raises(name):
    with pytest.raises(InvalidLogLevelError) as exc:
        severity_code(name)
    assert exc.value.status_code == 400
    assert "fatal, error, warn, info, debug, trace" in exc.value.message

import pytest

from exprcalc.config import CalculatorSettings
from exprcalc.session import Session


@pytest.fixture
def settings():
    return CalculatorSettings(history_file=None, rc_file=None)


@pytest.fixture
def session(settings):
    return Session(settings)


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    report = outcome.get_result()
    if report.when == "call":
        print(f"TEST: {item.name} - {'PASSED' if report.passed else 'FAILED'}")

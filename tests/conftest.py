import pytest

from mips_analyzer.signals import SignalTable


@pytest.fixture
def table():
    return SignalTable.load()

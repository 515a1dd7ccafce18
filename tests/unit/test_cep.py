import pytest

from utils.cep import format_cep, get_state_from_cep, is_valid_cep, normalize_cep


def test_normalize_and_format():
    assert normalize_cep("01310-100") == "01310100"
    assert format_cep("01310100") == "01310-100"


@pytest.mark.parametrize("cep", ["1234567", "123456789", "", None, "abcde-fgh"])
def test_invalid_ceps(cep):
    assert not is_valid_cep(cep)


@pytest.mark.parametrize("cep, state", [
    ("01310-100", "SP"),
    ("20040-020", "RJ"),
    ("30130-000", "MG"),
    ("69301-000", "RR"),
    ("69900-000", "AC"),
    ("70040-010", "DF"),
    ("72850-000", "GO"),
    ("90010-000", "RS"),
])
def test_state_from_cep(cep, state):
    assert get_state_from_cep(cep) == state


def test_state_from_cep_outside_known_ranges():
    assert get_state_from_cep("00000-000") is None

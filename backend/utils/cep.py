# backend/utils/cep.py
import re

# Brazilian postal code ranges per state (first-match wins)
CEP_STATE_RANGES = [
    (1000000, 19999999, "SP"),
    (20000000, 28999999, "RJ"),
    (29000000, 29999999, "ES"),
    (30000000, 39999999, "MG"),
    (40000000, 48999999, "BA"),
    (49000000, 49999999, "SE"),
    (50000000, 56999999, "PE"),
    (57000000, 57999999, "AL"),
    (58000000, 58999999, "PB"),
    (59000000, 59999999, "RN"),
    (60000000, 63999999, "CE"),
    (64000000, 64999999, "PI"),
    (65000000, 65999999, "MA"),
    (66000000, 68899999, "PA"),
    (68900000, 68999999, "AP"),
    (69000000, 69299999, "AM"),
    (69300000, 69399999, "RR"),
    (69400000, 69899999, "AM"),
    (69900000, 69999999, "AC"),
    (70000000, 72799999, "DF"),
    (72800000, 72999999, "GO"),
    (73000000, 73699999, "DF"),
    (73700000, 76799999, "GO"),
    (76800000, 76999999, "RO"),
    (77000000, 77999999, "TO"),
    (78000000, 78899999, "MT"),
    (79000000, 79999999, "MS"),
    (80000000, 87999999, "PR"),
    (88000000, 89999999, "SC"),
    (90000000, 99999999, "RS"),
]

def normalize_cep(cep) -> str:
    return re.sub(r"\D", "", cep or "")

def is_valid_cep(cep) -> bool:
    return re.fullmatch(r"\d{8}", normalize_cep(cep)) is not None

def format_cep(cep) -> str:
    digits = normalize_cep(cep)
    return f"{digits[:5]}-{digits[5:]}"

def get_state_from_cep(cep):
    if not is_valid_cep(cep):
        return None
    value = int(normalize_cep(cep))
    for low, high, state in CEP_STATE_RANGES:
        if low <= value <= high:
            return state
    return None

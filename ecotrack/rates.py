# ecotrack/rates.py
# Points awarded per gram of recycled waste.
from .errors import InvalidWasteType, InvalidAmount

RATES = {
    "Plastic": 1,
    "Paper": 1,
    "Glass": 2,
    "Metal": 3,
}

# Largest single submission in grams (1000 tonnes).
MAX_AMOUNT = 10**9


def parse_amount(waste_amount):
    """Coerce a submitted amount to a positive int, or raise InvalidAmount.

    Accepts ints, integral floats (50.0) and digit strings ("50") up to MAX_AMOUNT.
    """
    if waste_amount is None or isinstance(waste_amount, bool):
        raise InvalidAmount()
    if isinstance(waste_amount, int):
        amount = waste_amount
    elif isinstance(waste_amount, float):
        if not waste_amount.is_integer():
            raise InvalidAmount()
        amount = int(waste_amount)
    elif isinstance(waste_amount, str):
        text = waste_amount.strip()
        if not text.isdecimal() or len(text.lstrip("0")) > len(str(MAX_AMOUNT)):
            raise InvalidAmount()
        amount = int(text)
    else:
        raise InvalidAmount()
    if amount <= 0 or amount > MAX_AMOUNT:
        raise InvalidAmount()
    return amount


def compute_points(waste_type, waste_amount):
    if not isinstance(waste_type, str) or waste_type not in RATES:
        raise InvalidWasteType(waste_type)
    return RATES[waste_type] * parse_amount(waste_amount)

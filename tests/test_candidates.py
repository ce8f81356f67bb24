import pytest

from vehiclefinder.orchestrator.candidates import (
    PLATE_RE, extract_best, extract_candidates,
)


def test_plate_ranked_before_noise():
    out = extract_candidates("AB12 CDE some noise XJ4821")
    assert out[:2] == ["AB12CDE", "XJ4821"]
    # generic tier: longest first, ties in text order
    assert out[2:] == ["NOISE", "AB12", "SOME", "CDE"]


@pytest.mark.parametrize("text", ["", "   ", "\n\t", None, 42, b"AB12CDE"])
def test_blank_or_non_text_gives_nothing(text):
    assert extract_candidates(text) == []
    assert extract_best(text) is None


def test_lowercase_input_is_normalized():
    assert extract_candidates("  ab12 cde ")[0] == "AB12CDE"


def test_spaced_plate_also_yields_its_parts():
    out = extract_candidates("AB12CDE")
    assert out[0] == "AB12CDE"
    assert "CDE" not in out  # "AB12CDE" is one generic run, no fragment there
    out = extract_candidates("AB12 CDE")
    assert "CDE" in out and "AB12" in out


def test_short_plate_shapes_fall_to_generic_tier():
    # A1 matches the loose plate shape but is too short for a plate (and a stock ID)
    assert extract_candidates("A1") == []
    # 3-char runs only qualify as stock IDs
    assert extract_candidates("A12") == ["A12"]


def test_long_stock_ids_are_split_at_15():
    out = extract_candidates("ABCDEFGHIJKLMNOPQR")
    assert out == ["ABCDEFGHIJKLMNO", "PQR"]


SAMPLES = [
    "AB12 CDE some noise XJ4821",
    "STOCK 10234 LOT B",
    "KP19RTU KP19RTU kp19 rtu",
    "|| 7731-A ## YD70 HNB",
    "0O0O0 IIIII 88888 AB12CDEAB12CDE",
    "",
]


@pytest.mark.parametrize("text", SAMPLES)
def test_extraction_is_deterministic(text):
    assert extract_candidates(text) == extract_candidates(text)


@pytest.mark.parametrize("text", SAMPLES)
def test_no_duplicates(text):
    out = extract_candidates(text)
    assert len(out) == len(set(out))


@pytest.mark.parametrize("text", SAMPLES)
def test_candidates_are_normalized_and_bounded(text):
    for c in extract_candidates(text):
        assert c == c.upper()
        assert " " not in c
        assert 3 <= len(c) <= 15


@pytest.mark.parametrize("text", SAMPLES)
def test_plate_tier_precedes_generic_tier(text):
    out = extract_candidates(text)
    t = text.upper()
    plates = {m.replace(" ", "") for m in PLATE_RE.findall(t)}
    plates = {p for p in plates if 5 <= len(p) <= 12}
    plate_positions = [i for i, c in enumerate(out) if c in plates]
    other_positions = [i for i, c in enumerate(out) if c not in plates]
    if plate_positions and other_positions:
        assert max(plate_positions) < min(other_positions)


def test_best_is_first_candidate():
    assert extract_best("noise XJ4821") == "XJ4821"


@pytest.mark.parametrize("text", ["XJ482\u212a", "AB12 \u212aDE", "STK\u0130234"])
def test_candidates_stay_ascii_for_lookalike_letters(text):
    # U+212A KELVIN SIGN and U+0130 are not folded into A-Z
    out = extract_candidates(text)
    assert out
    assert all(c.isascii() and c.isalnum() for c in out)


def test_kelvin_sign_does_not_extend_a_plate():
    assert extract_candidates("XJ482\u212a")[0] == "XJ482"

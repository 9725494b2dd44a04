"""Finish reason codec: advantage holder packed alongside the base reason."""
import pytest

from ladder.services.reason_codec import (
    BaseReason,
    EncodedReason,
    decode_reason,
    encode_reason,
    reason_label,
)


@pytest.mark.parametrize("base", list(BaseReason))
def test_plain_reason_round_trip(base):
    """No advantage → bare legacy token, decodes back unchanged."""
    reason = EncodedReason(base=base)
    assert encode_reason(reason) == base.value
    assert decode_reason(encode_reason(reason)) == reason


@pytest.mark.parametrize("holder", ["p-1", "8c1b2f0e-6a7d-4c4e-9a53-0e0f6f7d2a11", "MixedCase"])
def test_advantage_holder_round_trip(holder):
    reason = EncodedReason(base=BaseReason.NORMAL, advantage_holder=holder)
    assert decode_reason(encode_reason(reason)).advantage_holder == holder


def test_encoded_format():
    assert encode_reason(EncodedReason(BaseReason.TIME_LIMIT, "p-9")) == "adv_def:p-9|time_limit"


def test_legacy_time_limit_token():
    decoded = decode_reason("time_limit")
    assert decoded.base is BaseReason.TIME_LIMIT
    assert decoded.advantage_holder is None


@pytest.mark.parametrize("raw", [None, "", "   ", "garbage", "TIMEOUT", "adv_def:x|bogus"])
def test_unknown_base_falls_back_to_normal(raw):
    assert decode_reason(raw).base is BaseReason.NORMAL


def test_prefix_without_separator_keeps_holder():
    decoded = decode_reason("adv_def:p-2")
    assert decoded == EncodedReason(base=BaseReason.NORMAL, advantage_holder="p-2")


def test_prefix_with_empty_id_has_no_holder():
    assert decode_reason("adv_def:|forfeit") == EncodedReason(base=BaseReason.FORFEIT)


def test_prefix_and_base_case_insensitive():
    decoded = decode_reason("  ADV_DEF:Player7|FORFEIT ")
    assert decoded.base is BaseReason.FORFEIT
    assert decoded.advantage_holder == "Player7"


def test_empty_holder_encodes_plain_token():
    assert encode_reason(EncodedReason(base=BaseReason.FORFEIT, advantage_holder="  ")) == "forfeit"


def test_holder_with_separator_rejected():
    with pytest.raises(ValueError):
        EncodedReason(base=BaseReason.NORMAL, advantage_holder="a|b")


def test_invalid_base_string_normalizes():
    assert EncodedReason(base="nope").base is BaseReason.NORMAL


def test_reason_labels():
    assert reason_label("normal") == "Normal"
    assert reason_label("forfeit") == "Forfeit"
    assert reason_label("adv_def:p1|time_limit") == "Advantage / Time limit"

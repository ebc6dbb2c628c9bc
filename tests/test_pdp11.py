import pytest

from vpanel.pdp11 import (
    PANEL_STATE_SIZE,
    PHYS_MASK,
    PDPPanelState,
    decode_phys_addr,
    pdp_long_from_bytes,
    pdp_long_to_bytes,
)

KERNEL_DATA = bytes(
    [0x00, 0x00, 0x58, 0xA3, 0x00, 0x00, 0xBD, 0x00,
     0x00, 0x00, 0xBF, 0x00, 0x00, 0x00, 0xC1, 0x00]
)


def test_long_layout_is_middle_endian():
    assert pdp_long_to_bytes(0x12345678) == b"\x34\x12\x78\x56"


@pytest.mark.parametrize("value", [0, 1, 0xFFFF, 0x10000, 0x12345678, 0xFFFFFFFF])
def test_long_round_trip(value):
    assert pdp_long_from_bytes(pdp_long_to_bytes(value)) == value


@pytest.mark.parametrize("value", [-1, 1 << 32])
def test_long_out_of_range(value):
    with pytest.raises(ValueError):
        pdp_long_to_bytes(value)


def test_long_wrong_length():
    with pytest.raises(ValueError):
        pdp_long_from_bytes(b"\x00\x01\x02")


def test_kernel_sample_address():
    state = PDPPanelState.from_bytes(KERNEL_DATA)
    assert state.ps_address == 0xA358
    assert state.ps_data == 0


def test_panel_round_trip_bytes():
    assert PDPPanelState.from_bytes(KERNEL_DATA).to_bytes() == KERNEL_DATA


def test_panel_round_trip_state():
    state = PDPPanelState(0x3FFFFF, 0x1234, 0xC000, 0x00F0, 0x0060, 0x0001, 0x0010)
    out = state.to_bytes()
    assert len(out) == PANEL_STATE_SIZE
    assert PDPPanelState.from_bytes(out) == state


def test_panel_wrong_length():
    with pytest.raises(ValueError):
        PDPPanelState.from_bytes(KERNEL_DATA[:-1])


def test_panel_field_out_of_range():
    with pytest.raises(ValueError):
        PDPPanelState(ps_data=0x10000).to_bytes()


def test_segment_zero_with_zero_base_keeps_offset():
    assert decode_phys_addr(0o1234, 0, [0] * 16) == 0o1234


def test_unknown_mode_gives_zero():
    assert decode_phys_addr(0o177777, 0o100000, [0o77777] * 16) == 0


def test_user_mode_uses_upper_registers():
    base = [0] * 16
    changed = list(base)
    changed[8] = 0o100
    user_ps = 0o140000
    assert decode_phys_addr(0o10, 0, base) == decode_phys_addr(0o10, 0, changed)
    assert decode_phys_addr(0o10, user_ps, base) != decode_phys_addr(0o10, user_ps, changed)


def test_supervisor_matches_user():
    aprs = list(range(1, 17))
    for pc in (0, 0o20000, 0o157777, 0o177777):
        assert decode_phys_addr(pc, 0o040000, aprs) == decode_phys_addr(pc, 0o140000, aprs)


def test_result_within_22_bits():
    aprs = [0xFFFF] * 16
    for ps in (0, 0o040000, 0o140000):
        for pc in (0, 0o17777, 0o177777):
            assert 0 <= decode_phys_addr(pc, ps, aprs) <= PHYS_MASK


def test_missing_registers():
    with pytest.raises(ValueError):
        decode_phys_addr(0, 0o140000, [0] * 8)
import pytest

from vpanel.linuxregs import (
    PT_REGS_SIZE,
    PtRegs,
    RegsUnavailable,
    parse_panel_regs,
    read_panel_regs,
)

LINE = (
    "RIP=0xffffffff81000010 RSP=0xffffc90000003e00 RBP=0x20 RAX=0x1 RBX=0x2 "
    "RCX=0x3 RDX=0x4 RSI=0x5 RDI=0x6 R8=0x8 R9=0x9 R10=0xa R11=0xb R12=0xc "
    "R13=0xd R14=0xe R15=0xf EFLAGS=0x246 CS=0x10 SS=0x18 ORIG_RAX=0xffffffffffffffff\n"
)


def test_parse_all_fields():
    regs = parse_panel_regs(LINE)
    assert regs.rip == 0xFFFFFFFF81000010
    assert regs.rsp == 0xFFFFC90000003E00
    assert regs.rax == 0x1
    assert regs.r8 == 0x8
    assert regs.r15 == 0xF
    assert regs.eflags == 0x246
    assert regs.cs == 0x10
    assert regs.ss == 0x18
    assert regs.orig_rax == 0xFFFFFFFFFFFFFFFF


def test_no_data_yet():
    with pytest.raises(RegsUnavailable):
        parse_panel_regs("No register data captured yet\n")


def test_truncated_line():
    with pytest.raises(RegsUnavailable):
        parse_panel_regs(LINE.split(" R8=")[0])


def test_too_wide_value():
    with pytest.raises(RegsUnavailable):
        parse_panel_regs(LINE.replace("RAX=0x1 ", "RAX=0x10000000000000000 "))


def test_pack_round_trip():
    regs = parse_panel_regs(LINE)
    data = regs.pack()
    assert len(data) == PT_REGS_SIZE
    assert PtRegs.unpack(data) == regs


def test_pack_puts_r15_first():
    data = PtRegs(r15=0x0102030405060708).pack()
    assert data[:8] == bytes([8, 7, 6, 5, 4, 3, 2, 1])


def test_unpack_wrong_length():
    with pytest.raises(ValueError):
        PtRegs.unpack(b"\x00" * (PT_REGS_SIZE - 1))


def test_pack_out_of_range():
    with pytest.raises(ValueError):
        PtRegs(rax=-1).pack()


def test_read_from_file(tmp_path):
    path = tmp_path / "panel_regs"
    path.write_text(LINE)
    assert read_panel_regs(path) == parse_panel_regs(LINE)


def test_read_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_panel_regs(tmp_path / "absent")


def test_read_empty_file(tmp_path):
    path = tmp_path / "panel_regs"
    path.write_text("")
    with pytest.raises(OSError):
        read_panel_regs(path)


def test_read_file_without_data(tmp_path):
    path = tmp_path / "panel_regs"
    path.write_text("No register data captured yet\n")
    with pytest.raises(RegsUnavailable):
        read_panel_regs(path)
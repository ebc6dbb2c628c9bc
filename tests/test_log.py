from datetime import datetime

from vpanel.log import ERROR, INFO, Loggable, format_log_line, log_message


class Widget(Loggable):
    module_name = "WidgetModule"


class Plain(Loggable):
    pass


def test_format_log_line_layout():
    when = datetime(2024, 1, 2, 3, 4, 5)
    line = format_log_line("Mod", INFO, "hello", when)
    assert line == "[2024-01-02 03:04:05] [INF] [Mod] hello"


def test_level_constants_appear_in_lines():
    when = datetime(2024, 1, 2, 3, 4, 5)
    assert format_log_line("Mod", INFO, "a", when) == "[2024-01-02 03:04:05] [INF] [Mod] a"
    assert format_log_line("Mod", ERROR, "b", when) == "[2024-01-02 03:04:05] [ERR] [Mod] b"


def test_info_goes_to_stdout(capsys):
    log_message("Mod", INFO, "started")
    captured = capsys.readouterr()
    assert captured.out.endswith(f"[{INFO}] [Mod] started\n")
    assert captured.err == ""


def test_error_goes_to_stderr(capsys):
    log_message("Mod", ERROR, "failed")
    captured = capsys.readouterr()
    assert captured.err.endswith(f"[{ERROR}] [Mod] failed\n")
    assert captured.out == ""


def test_loggable_uses_module_name(capsys):
    widget = Widget()
    Loggable.log_info(widget, "ready")
    Loggable.log_error(widget, "broken")
    captured = capsys.readouterr()
    assert "[WidgetModule] ready" in captured.out
    assert "[WidgetModule] broken" in captured.err


def test_loggable_defaults_to_class_name(capsys):
    Loggable.log_info(Plain(), "x")
    assert "[Plain] x" in capsys.readouterr().out


def test_line_starts_with_bracketed_timestamp(capsys):
    log_message("Mod", INFO, "tick")
    out = capsys.readouterr().out
    stamp = out[1:out.index("]")]
    assert datetime.strptime(stamp, "%Y-%m-%d %H:%M:%S").year >= 2000
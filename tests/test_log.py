import io

import pytest

from rfoperator.log import DUMMY, DummyLogger, Level, Logger, base


@pytest.fixture
def captured():
    logger = Logger()
    buf = io.StringIO()
    logger.stream = buf
    return logger, buf


def test_debug_is_filtered_until_level_lowered(captured):
    logger, buf = captured
    logger.debug("hidden")
    assert buf.getvalue() == ""
    logger.set_level("debug")
    logger.debug("debug mode activated")
    assert "level=debug" in buf.getvalue()
    assert logger.level is Level.DEBUG


def test_with_field_adds_field_and_shares_level(captured):
    logger, buf = captured
    child = logger.with_field("crd", "redisfailover")
    child.info("child")
    logger.info("parent")
    lines = buf.getvalue().splitlines()
    assert "crd=redisfailover" in lines[0]
    assert "crd=redisfailover" not in lines[1]
    child.set_level("error")
    logger.info("dropped")
    assert len(buf.getvalue().splitlines()) == 2


def test_initial_fields_are_written():
    logger = Logger({"operator": "redis-operator"})
    buf = io.StringIO()
    logger.stream = buf
    logger.warning("careful")
    out = buf.getvalue()
    assert "operator=redis-operator" in out
    assert "level=warning" in out


def test_field_value_with_space_is_quoted(captured):
    logger, buf = captured
    logger.with_field("k", "a b").info("x")
    assert 'k="a b"' in buf.getvalue()


def test_set_level_rejects_unknown_name(captured):
    logger, _ = captured
    with pytest.raises(ValueError):
        logger.set_level("loud")
    assert logger.level is Level.INFO


def test_level_parse_accepts_warn_alias_and_case():
    assert Level.parse("warn") is Level.WARNING
    assert Level.parse("DEBUG") is Level.DEBUG
    assert Level.PANIC.severity < Level.DEBUG.severity


def test_fatal_logs_then_exits(captured):
    logger, buf = captured
    with pytest.raises(SystemExit) as info:
        logger.fatal("bye")
    assert info.value.code == 1
    assert "level=fatal" in buf.getvalue()


def test_panic_logged_even_at_panic_level(captured):
    logger, buf = captured
    logger.set_level("panic")
    logger.error("not shown")
    with pytest.raises(RuntimeError, match="boom 7"):
        logger.panic("boom %d", 7)
    out = buf.getvalue()
    assert "level=panic" in out
    assert "not shown" not in out


def test_base_is_a_single_shared_logger():
    assert base() is base()
    assert base().with_field("x", 1).fields == {"x": 1}
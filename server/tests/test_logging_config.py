"""Tests for log formatting and side-game context propagation."""

import json
import logging

from logging_config import (
    DevelopmentFormatter,
    JSONFormatter,
    game_id_var,
    get_logger,
    request_id_var,
)


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="services.side_game_service",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Committed skins_hole_recorded",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:

    def test_context_vars_and_fields(self):
        request_token = request_id_var.set("req-12345678")
        game_token = game_id_var.set("game-abcdef12")
        try:
            output = JSONFormatter().format(make_record(revision=4, game_type="skins"))
        finally:
            game_id_var.reset(game_token)
            request_id_var.reset(request_token)

        entry = json.loads(output)
        assert entry["message"] == "Committed skins_hole_recorded"
        assert entry["request_id"] == "req-12345678"
        assert entry["game_id"] == "game-abcdef12"
        assert entry["revision"] == 4
        assert entry["game_type"] == "skins"
        assert "source" not in entry

    def test_errors_include_source(self):
        record = make_record()
        record.levelno = logging.ERROR
        record.levelname = "ERROR"

        entry = json.loads(JSONFormatter().format(record))

        assert entry["source"].startswith(__file__)


class TestDevelopmentFormatter:

    def test_short_context(self):
        token = game_id_var.set("9f8e7d6c-0000-0000-0000-000000000000")
        try:
            output = DevelopmentFormatter().format(make_record(hole_number=7))
        finally:
            game_id_var.reset(token)

        assert "game=9f8e7d6c" in output
        assert "hole=7" in output
        assert output.endswith("Committed skins_hole_recorded")


def test_context_logger_accumulates_fields():
    log = get_logger("tests").with_context(game_type="wolf").with_context(revision=2)

    _, kwargs = log.process("msg", {"extra": {"hole_number": 3}})

    assert kwargs["extra"] == {"game_type": "wolf", "revision": 2, "hole_number": 3}

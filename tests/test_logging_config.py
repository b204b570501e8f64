"""Tests for logging setup and identifier masking."""

import logging
from unittest.mock import MagicMock

import structlog

from cocbot.dictionary import load_dictionary
from cocbot.exceptions import AliasStoreError, CocBotError, ErrorCategory
from cocbot.logging_config import SUBSYSTEMS, mask, mask_identifiers, setup_logging

ACCOUNT_UUID = "0f1e2d3c-4b5a-6978-8796-a5b4c3d2e1f0"


def test_phone_numbers_masked():
    event = mask_identifiers(None, "info", {"event": "x", "sender": "+15550001234"})
    assert event["sender"] == "...1234"


def test_group_recipients_and_uuids_masked():
    event = mask_identifiers(None, "info", {
        "event": "send_error",
        "channel": "group.Z3JvdXBpZA==",
        "source": ACCOUNT_UUID,
    })
    assert event["channel"] == "...ZA=="
    assert event["source"] == "...e1f0"


def test_ids_inside_urls_and_nested_values_masked():
    event = mask_identifiers(None, "info", {
        "event": "websocket_connecting",
        "url": "ws://127.0.0.1:8080/v1/receive/+15559990000",
        "recipients": ["+15550001111", "group.YWJj"],
        "extra": {"number": "+15550002222"},
    })
    assert event["url"] == "ws://127.0.0.1:8080/v1/receive/...0000"
    assert event["recipients"] == ["...1111", "...YWJj"]
    assert event["extra"] == {"number": "...2222"}


def test_already_masked_and_plain_values_untouched():
    event = mask_identifiers(None, "info", {
        "event": "alias_added", "sender": "...1234", "alias": "mythos", "count": 3,
    })
    assert event == {"event": "alias_added", "sender": "...1234", "alias": "mythos", "count": 3}


def test_mask_keeps_last_four():
    assert mask("group.Z3JvdXBpZA==") == "...ZA=="


def _close_handlers():
    structlog.reset_defaults()
    for name in ("", "cocbot") + tuple(f"cocbot.{s}" for s in SUBSYSTEMS):
        for handler in logging.getLogger(name).handlers:
            handler.close()
        logging.getLogger(name).handlers.clear()


def _config(tmp_path, **overrides):
    config = MagicMock()
    config.log_dir = tmp_path / "logs"
    config.logging_level = "debug"
    config.logging_subsystem_levels = {}
    config.logging_max_file_size_mb = 1
    config.logging_backup_count = 1
    for key, value in overrides.items():
        setattr(config, key, value)
    return config


def test_setup_logging_creates_subsystem_files(tmp_path):
    setup_logging(_config(tmp_path, logging_subsystem_levels={"store": "WARNING"}))
    try:
        assert (tmp_path / "logs" / "cocbot.log").exists()
        for subsystem in SUBSYSTEMS:
            assert (tmp_path / "logs" / f"{subsystem}.log").exists()
        assert logging.getLogger("cocbot.store").level == logging.WARNING
        assert logging.getLogger("cocbot.bot").level == logging.DEBUG
    finally:
        _close_handlers()


def test_events_reach_subsystem_and_combined_files_masked(tmp_path):
    setup_logging(_config(tmp_path))
    try:
        structlog.get_logger("cocbot.store").warning("alias_added", sender="+15550001234")
        store_log = (tmp_path / "logs" / "store.log").read_text(encoding="utf-8")
        combined = (tmp_path / "logs" / "cocbot.log").read_text(encoding="utf-8")
        bot_log = (tmp_path / "logs" / "bot.log").read_text(encoding="utf-8")
    finally:
        _close_handlers()

    assert "alias_added" in store_log
    assert "...1234" in store_log
    assert "+15550001234" not in store_log
    assert "alias_added" in combined
    assert "alias_added" not in bot_log


def test_dictionary_events_go_to_store_log(tmp_path):
    terms = tmp_path / "terms.json"
    terms.write_text('{"Luck": "Roll under POW x5."}', encoding="utf-8")
    setup_logging(_config(tmp_path))
    try:
        load_dictionary(terms)
        store_log = (tmp_path / "logs" / "store.log").read_text(encoding="utf-8")
        bot_log = (tmp_path / "logs" / "bot.log").read_text(encoding="utf-8")
    finally:
        _close_handlers()

    assert "dictionary_loaded" in store_log
    assert "dictionary_loaded" not in bot_log

def test_setup_is_repeatable(tmp_path):
    setup_logging(_config(tmp_path))
    try:
        setup_logging(_config(tmp_path))
        assert len(logging.getLogger().handlers) == 1
        assert len(logging.getLogger("cocbot").handlers) == 1
        assert len(logging.getLogger("cocbot.store").handlers) == 1
    finally:
        _close_handlers()


def test_error_str_includes_module_and_context():
    err = AliasStoreError("cannot commit", error="database is locked")
    assert str(err) == "cannot commit [module=alias_store] (error=database is locked)"
    assert err.is_retryable is True
    assert isinstance(err, CocBotError)
    assert err.category == ErrorCategory.TRANSIENT

"""Shared fixtures for cocbot tests."""

import pytest

from cocbot.alias_store import AliasStore
from cocbot.commands import BotContext, CoreCommandHandler, HandlerRegistry
from cocbot.dictionary import build_dictionary

TERMS = {
    "cthulhu": "A Great Old One, dead but dreaming in R'lyeh.",
    "sanity": "SAN. Lost when confronting the Mythos.",
    "luck": "POW x5. Roll under it when fate decides.",
}


@pytest.fixture
def dictionary():
    return build_dictionary(TERMS)


@pytest.fixture
def alias_store(tmp_path):
    store = AliasStore(tmp_path / "data" / "alias.db")
    store.open()
    yield store
    store.close()


@pytest.fixture
def registry(dictionary, alias_store):
    ctx = BotContext(dictionary=dictionary, alias_store=alias_store)
    reg = HandlerRegistry()
    reg.register(CoreCommandHandler(ctx).get_commands())
    return reg

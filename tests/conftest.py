import logging
from dataclasses import replace

import discord
import pytest

from common.config import DiscordOptions
from common.logging_setup import APP_LOGGERS
from fakes import FakeGuild, FakeSession, forum_tag

VALID_TOKEN = "x" * 72


@pytest.fixture
def options():
    def _make(**overrides) -> DiscordOptions:
        base = DiscordOptions(
            token=VALID_TOKEN,
            server_id=123456789012345678,
            source_category_name="Template",
            interactive=False,
        )
        return replace(base, **overrides)

    return _make


@pytest.fixture
def guild():
    return FakeGuild(features=["NEWS", "COMMUNITY"])


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def template(guild):
    """text(10), voice(5), forum(20 with two tags) under 'Template'."""
    cat = guild.add_category("Template", position=0)
    guild.add_channel(
        cat, "general", discord.ChannelType.text, position=10,
        topic="chat", slowmode_delay=5, nsfw=False,
    )
    guild.add_channel(
        cat, "Lounge", discord.ChannelType.voice, position=5,
        bitrate=96000, user_limit=10,
    )
    guild.add_channel(
        cat, "help", discord.ChannelType.forum, position=20, topic="ask here",
        default_sort_order=None,
        available_tags=[
            forum_tag("bug", emoji_name="🐛"),
            forum_tag("staff", moderated=True, emoji_id=111222333, emoji_name="staff"),
        ],
    )
    return cat


@pytest.fixture(autouse=True)
def _restore_app_loggers():
    yield
    for name in APP_LOGGERS:
        lg = logging.getLogger(name)
        for h in list(lg.handlers):
            lg.removeHandler(h)
            h.close()
        lg.propagate = True
        lg.setLevel(logging.NOTSET)

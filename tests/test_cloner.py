import logging

import aiohttp
import discord
import pytest
from discord.enums import SortOrder

from architect.channels import ChannelKind
from architect.cloner import CategoryCloner, find_category
from architect.forum_tags import ForumTagClient
from fakes import FakeResponse, FakeSession, http_error


def _cloner(session):
    return CategoryCloner(ForumTagClient("tok", session=session))


def _created_channels(guild):
    return [c for c in guild.calls if c[0].startswith("create_") and c[0].endswith("_channel")]


def test_every_kind_has_a_creator(session):
    assert set(_cloner(session).creators) == set(ChannelKind)


def test_find_category_is_case_sensitive(guild):
    guild.add_category("Template")
    assert find_category(guild, "template") is None
    assert find_category(guild, "Template").name == "Template"


async def test_clone_recreates_channels_in_source_order(guild, template, session, options):
    res = await _cloner(session).clone(guild, "Template", "Event-1", options())

    assert [(c[0], c[1]) for c in _created_channels(guild)] == [
        ("create_voice_channel", "Lounge"),
        ("create_text_channel", "general"),
        ("create_forum_channel", "help"),
    ]
    assert len(res.channel_ids) == 3
    assert [guild.get_channel(i).name for i in res.channel_ids] == ["Lounge", "general", "help"]
    assert res.category_id == guild.get_channel(res.channel_ids[0]).category.id


async def test_clone_patches_forum_tags_once(guild, template, session, options):
    res = await _cloner(session).clone(guild, "Template", "Event-1", options())

    assert len(session.requests) == 1
    req = session.requests[0]
    assert req["url"].endswith(f"/channels/{res.channel_ids[2]}")
    tags = req["json"]["available_tags"]
    assert [t["name"] for t in tags] == ["bug", "staff"]
    assert tags[1]["emoji"] == {"id": "111222333", "name": "staff"}
    assert tags[1]["moderated"] is True


async def test_clone_carries_channel_attributes(guild, template, session, options):
    await _cloner(session).clone(guild, "Template", "Event-1", options())

    kwargs = {c[1]: c[2] for c in _created_channels(guild)}
    assert kwargs["general"] == {"topic": "chat", "slowmode_delay": 5, "nsfw": False}
    assert kwargs["Lounge"] == {"bitrate": 96000, "user_limit": 10}
    assert kwargs["help"] == {"topic": "ask here"}


async def test_clone_sets_category_overwrites_and_role(guild, template, session, options):
    res = await _cloner(session).clone(guild, "Template", "Event-1", options())

    category = guild.get_channel(res.category_id)
    role = guild.get_role(res.role_id)
    assert role.name == "Event-1"
    assert category.overwrites_for(guild.me).manage_channels is True
    assert category.overwrites_for(guild.default_role).view_channel is False
    assert category.overwrites_for(role).view_channel is True

    _, _, extra = next(c for c in guild.calls if c[0] == "create_role")
    assert extra["hoist"] is False
    assert extra["mentionable"] is True
    assert extra["permissions"].read_message_history is True
    assert extra["permissions"].manage_channels is False


async def test_clone_syncs_each_channel_when_enabled(guild, template, session, options):
    res = await _cloner(session).clone(guild, "Template", "Event-1", options())

    for cid in res.channel_ids:
        assert {"sync_permissions": True} in guild.get_channel(cid).edits


async def test_clone_without_sync_or_role(guild, template, session, options):
    opts = options(sync_channels_to_category=False, create_role_per_category=False)

    res = await _cloner(session).clone(guild, "Template", "Event-1", opts)

    assert res.role_id is None
    assert not any(c[0] == "edit" for c in guild.calls)
    assert len(session.requests) == 1


async def test_everyone_access_leaves_category_visible(guild, template, session, options):
    res = await _cloner(session).clone(
        guild, "Template", "Event-1", options(everyone_access_to_new_category=True)
    )

    category = guild.get_channel(res.category_id)
    assert category.overwrites_for(guild.default_role).view_channel is None


async def test_missing_source_category_has_no_side_effects(guild, template, session, options, caplog):
    guild.add_category("Archive", position=3)
    caplog.set_level(logging.INFO)

    res = await _cloner(session).clone(guild, "Nope", "Event-1", options())

    assert res is None
    assert guild.calls == []
    assert "Source category 'Nope' not found" in caplog.text
    assert " - Archive" in caplog.text


async def test_role_skipped_without_manage_roles(guild, template, session, options, caplog):
    guild.me.guild_permissions = discord.Permissions(manage_channels=True)

    res = await _cloner(session).clone(guild, "Template", "Event-1", options())

    assert res.role_id is None
    assert "create_role" not in guild.ops()
    assert "Manage Roles" in caplog.text
    assert len(res.channel_ids) == 3


async def test_role_http_failure_is_recovered(guild, template, session, options, caplog):
    guild.fail_on["create_role"] = http_error(403, 50013, "Missing Permissions")

    res = await _cloner(session).clone(guild, "Template", "Event-1", options())

    assert res.role_id is None
    assert len(res.channel_ids) == 3
    assert "50013" in caplog.text
    assert "Fix:" in caplog.text


async def test_announcement_converted_when_guild_has_news(guild, session, options):
    cat = guild.add_category("Template")
    guild.add_channel(cat, "updates", discord.ChannelType.news, position=0, topic="t")

    res = await _cloner(session).clone(guild, "Template", "Event-1", options())

    created = guild.get_channel(res.channel_ids[0])
    assert created.type == discord.ChannelType.news
    assert {"type": discord.ChannelType.news} in created.edits


async def test_announcement_left_as_text_without_news_feature(session, options, caplog):
    from fakes import FakeGuild

    g = FakeGuild(features=[])
    cat = g.add_category("Template")
    g.add_channel(cat, "updates", discord.ChannelType.news, position=0)

    res = await _cloner(session).clone(g, "Template", "Event-1", options())

    assert g.get_channel(res.channel_ids[0]).type == discord.ChannelType.text
    assert "left as text" in caplog.text


async def test_forum_without_tags_skips_patch(guild, session, options):
    cat = guild.add_category("Template")
    guild.add_channel(cat, "help", discord.ChannelType.forum, position=0, available_tags=[])

    await _cloner(session).clone(guild, "Template", "Event-1", options())

    assert session.requests == []


async def test_forum_default_sort_order_only_when_present(guild, session, options):
    cat = guild.add_category("Template")
    guild.add_channel(
        cat, "help", discord.ChannelType.forum, position=0,
        default_sort_order=SortOrder.creation_date,
    )

    await _cloner(session).clone(guild, "Template", "Event-1", options())

    _, _, kwargs = _created_channels(guild)[0]
    assert kwargs["default_sort_order"] == SortOrder.creation_date


async def test_forum_without_default_sort_order_omits_it(guild, session, options):
    cat = guild.add_category("Template")
    guild.add_channel(
        cat, "help", discord.ChannelType.forum, position=0, default_sort_order=None
    )

    await _cloner(session).clone(guild, "Template", "Event-1", options())

    _, name, kwargs = _created_channels(guild)[0]
    assert name == "help"
    assert "default_sort_order" not in kwargs


async def test_tag_patch_failure_does_not_stop_clone(guild, template, options, caplog):
    session = FakeSession(FakeResponse(403, body="nope"))

    res = await _cloner(session).clone(guild, "Template", "Event-1", options())

    assert len(res.channel_ids) == 3
    assert "Failed to apply tags" in caplog.text


async def test_tag_patch_network_error_does_not_stop_clone(guild, template, options):
    session = FakeSession(error=aiohttp.ClientConnectionError("down"))

    res = await _cloner(session).clone(guild, "Template", "Event-1", options())

    assert len(res.channel_ids) == 3


async def test_failure_midway_rolls_back_and_reraises(guild, template, session, options):
    guild.fail_on["create_forum_channel"] = http_error(500, 0, "Internal")

    with pytest.raises(discord.HTTPException):
        await _cloner(session).clone(guild, "Template", "Event-1", options())

    # voice + text + category + role were created and then deleted
    assert [c[0] for c in guild.calls if c[0].startswith("delete_")] == [
        "delete_channel",
        "delete_channel",
        "delete_channel",
        "delete_role",
    ]
    assert [c.name for c in guild.categories] == ["Template"]
    assert [r.name for r in guild.roles if r.name == "Event-1"] == []


async def test_rollback_continues_past_a_network_error_on_delete(
    guild, template, session, options, monkeypatch, caplog
):
    guild.fail_on["create_forum_channel"] = http_error(500, 0, "Internal")
    create_voice = guild.create_voice_channel

    async def _voice_that_wont_delete(name, **kwargs):
        ch = await create_voice(name, **kwargs)
        ch.delete_error = aiohttp.ClientOSError()
        return ch

    monkeypatch.setattr(guild, "create_voice_channel", _voice_that_wont_delete)

    with pytest.raises(discord.HTTPException):
        await _cloner(session).clone(guild, "Template", "Event-1", options())

    assert [c[0] for c in guild.calls if c[0].startswith("delete_")] == [
        "delete_channel",
        "delete_channel",
        "delete_channel",
        "delete_role",
    ]
    assert [c.name for c in guild.categories] == ["Template"]
    assert [r.name for r in guild.roles if r.name == "Event-1"] == []
    assert [c.name for c in guild.channels.values()].count("Lounge") == 2
    assert "Rollback left behind" in caplog.text


async def test_failure_without_rollback_leaves_resources(guild, template, session, options):
    guild.fail_on["create_forum_channel"] = http_error(500, 0, "Internal")

    with pytest.raises(discord.HTTPException):
        await _cloner(session).clone(
            guild, "Template", "Event-1", options(rollback_on_failure=False)
        )

    assert not any(c[0].startswith("delete_") for c in guild.calls)
    assert {c.name for c in guild.categories} == {"Template", "Event-1"}

import discord

from architect.channels import (
    KIND_ORDER,
    SNAPSHOTS,
    AnnouncementChannelSpec,
    ChannelKind,
    ForumChannelSpec,
    ForumTagSpec,
    TextChannelSpec,
    VoiceChannelSpec,
    collect_channel_specs,
    order_channels,
)
from fakes import FakeGuild, forum_tag


def test_order_is_ascending_by_position():
    specs = [
        TextChannelSpec(source_id=1, name="c", position=3),
        TextChannelSpec(source_id=2, name="a", position=1),
        TextChannelSpec(source_id=3, name="b", position=2),
    ]
    assert [s.name for s in order_channels(specs)] == ["a", "b", "c"]


def test_order_keeps_incoming_order_for_equal_positions():
    specs = [
        TextChannelSpec(source_id=1, name="first", position=0),
        VoiceChannelSpec(source_id=2, name="second", position=0),
        TextChannelSpec(source_id=3, name="early", position=-1),
        ForumChannelSpec(source_id=4, name="third", position=0),
    ]
    assert [s.name for s in order_channels(specs)] == ["early", "first", "second", "third"]


def test_every_kind_has_a_snapshot_builder():
    assert set(SNAPSHOTS) == set(ChannelKind)
    assert set(KIND_ORDER) == set(ChannelKind)


def test_collect_groups_by_kind_before_sorting():
    g = FakeGuild()
    cat = g.add_category("Template")
    g.add_channel(cat, "forum", discord.ChannelType.forum, position=0)
    g.add_channel(cat, "voice", discord.ChannelType.voice, position=0)
    g.add_channel(cat, "news", discord.ChannelType.news, position=0)
    g.add_channel(cat, "text", discord.ChannelType.text, position=0)

    specs, skipped = collect_channel_specs(cat)

    assert [s.name for s in specs] == ["text", "news", "voice", "forum"]
    assert isinstance(specs[1], AnnouncementChannelSpec)
    assert skipped == []


def test_collect_skips_unsupported_types():
    g = FakeGuild()
    cat = g.add_category("Template")
    g.add_channel(cat, "general", discord.ChannelType.text, position=1)
    stage = g.add_channel(cat, "town-hall", discord.ChannelType.stage_voice, position=0)

    specs, skipped = collect_channel_specs(cat)

    assert [s.name for s in specs] == ["general"]
    assert skipped == [stage]


def test_snapshot_carries_type_specific_attributes():
    g = FakeGuild()
    cat = g.add_category("Template")
    g.add_channel(
        cat, "general", discord.ChannelType.text, position=1,
        topic="hi", slowmode_delay=30, nsfw=True,
    )
    g.add_channel(
        cat, "Lounge", discord.ChannelType.voice, position=2, bitrate=96000, user_limit=4
    )
    g.add_channel(
        cat, "help", discord.ChannelType.forum, position=3, topic="ask",
        available_tags=[forum_tag("bug", emoji_name="🐛")],
    )

    text, voice, forum = collect_channel_specs(cat)[0]

    assert (text.topic, text.slowmode_delay, text.nsfw) == ("hi", 30, True)
    assert (voice.bitrate, voice.user_limit) == (96000, 4)
    assert forum.topic == "ask"
    assert forum.default_sort_order is None
    assert forum.tags == (ForumTagSpec(name="bug", emoji_name="🐛"),)


def test_forum_tag_spec_from_custom_emoji():
    tag = ForumTagSpec.from_tag(
        forum_tag("staff", moderated=True, emoji_id=42, emoji_name="staff")
    )
    assert tag == ForumTagSpec(name="staff", moderated=True, emoji_id=42, emoji_name="staff")

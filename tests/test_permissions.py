from architect.permissions import (
    PermissionPlanner,
    actor_overwrite,
    hidden_overwrite,
    role_overwrite,
)
from fakes import FakeGuild


def _writes(guild):
    return [c for c in guild.calls if c[0] == "set_permissions"]


async def test_everyone_toggle_enabled_writes_nothing():
    g = FakeGuild()
    cat = g.add_category("New")

    await PermissionPlanner().apply_everyone_toggle(cat, g, True)

    assert _writes(g) == []


async def test_everyone_toggle_disabled_denies_view_once():
    g = FakeGuild()
    cat = g.add_category("New")

    await PermissionPlanner().apply_everyone_toggle(cat, g, False)

    writes = _writes(g)
    assert len(writes) == 1
    _, _, target, overwrite = writes[0]
    assert target is g.default_role
    assert overwrite.view_channel is False
    assert overwrite.send_messages is None


async def test_ensure_actor_access_replaces_existing_overwrite():
    g = FakeGuild()
    cat = g.add_category("New")
    cat.overwrites[g.me] = hidden_overwrite()

    await PermissionPlanner().ensure_actor_access(cat, g.me)

    assert len(_writes(g)) == 1
    ow = cat.overwrites_for(g.me)
    assert (ow.view_channel, ow.manage_channels, ow.send_messages) == (True, True, True)


async def test_grant_access_allows_view_and_send():
    g = FakeGuild()
    cat = g.add_category("New")
    role = await g.create_role(name="New")

    await PermissionPlanner().grant_access(cat, role)

    ow = cat.overwrites_for(role)
    assert ow.view_channel is True
    assert ow.send_messages is True
    assert ow.manage_channels is None


def test_builders_only_touch_their_flags():
    allow, deny = actor_overwrite().pair()
    assert allow.view_channel and allow.manage_channels and allow.send_messages
    assert deny.value == 0

    allow, deny = role_overwrite().pair()
    assert allow.view_channel and allow.send_messages and not allow.manage_channels

    allow, deny = hidden_overwrite().pair()
    assert allow.value == 0
    assert deny.view_channel

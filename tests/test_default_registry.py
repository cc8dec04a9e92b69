from messenger.core import default
from messenger.core.registry import Registry


def test_module_level_operations_share_one_registry():
    got = []
    assert default.register("tick", got.append) is default.get_default()
    assert default.dispatch("tick", 1) is True
    default.deregister("tick")
    assert default.dispatch("tick", 2) is False
    assert got == [1]


def test_default_is_lazily_created_once():
    assert default.get_default() is default.get_default()
    assert default.get_default().name == default.DEFAULT_NAME


def test_explicit_registry_does_not_see_default():
    got = []
    default.register("t", got.append)
    assert Registry().dispatch("t", "x") is False
    assert got == []


def test_reset_default_forgets_subscriptions():
    default.register("t", print)
    old = default.get_default()
    fresh = default.reset_default()
    assert fresh is not old
    assert len(fresh) == 0


def test_default_decorator():
    got = []

    @default.handler("evt")
    def on_evt(p):
        got.append(p)

    default.dispatch("evt", "hi")
    assert got == ["hi"]

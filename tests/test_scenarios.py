from messenger.core.registry import Registry


def test_login_scenario():
    reg = Registry()
    log_ = []

    def f(payload):
        log_.append("A")

    def g(payload):
        log_.append("B")

    reg.register("login", f)
    reg.register("login", g)
    reg.dispatch("login", None)
    assert log_ == ["A", "B"]

    reg.deregister("login", f)
    reg.dispatch("login", None)
    assert log_ == ["A", "B", "B"]


def test_save_scenario():
    reg = Registry()
    hits = []

    def h(payload):
        hits.append(payload)

    reg.register("save", h)
    reg.deregister("save")
    assert reg.dispatch("save", {}) is False
    assert hits == []


def test_register_and_deregister_chain():
    reg = Registry()
    out = []
    f = out.append

    same = reg.register("a", f).register("b", f).deregister("a").register("c", f)
    assert same is reg
    assert reg.topics() == ["b", "c"]


def test_decorator_registers_and_returns_function():
    reg = Registry()
    got = []

    @reg.handler("evt")
    def on_evt(payload):
        got.append(payload)

    assert callable(on_evt)
    reg.dispatch("evt", 5)
    reg.deregister("evt", on_evt)
    reg.dispatch("evt", 6)
    assert got == [5]


def test_subscriptions_snapshot_is_a_copy():
    reg = Registry()
    reg.register("t", print)
    subs = reg.subscriptions()
    subs.clear()
    assert len(reg) == 1
    assert reg.subscriptions("t")[0].topic == "t"
    assert reg.subscriptions("missing") == []

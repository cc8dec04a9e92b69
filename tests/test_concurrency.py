import threading

from messenger.core.registry import Registry


def test_concurrent_register_loses_nothing():
    reg = Registry(metrics=False)
    n_threads, per_thread = 8, 200
    start = threading.Barrier(n_threads)

    def worker(k):
        start.wait()
        for i in range(per_thread):
            reg.register(f"t{k % 2}", lambda p: None)

    ths = [threading.Thread(target=worker, args=(k,)) for k in range(n_threads)]
    for t in ths:
        t.start()
    for t in ths:
        t.join(timeout=10)

    assert len(reg) == n_threads * per_thread
    assert len(reg.subscriptions("t0")) == len(reg.subscriptions("t1"))


def test_dispatch_while_others_mutate():
    reg = Registry(metrics=False)
    counter = {"n": 0}
    lock = threading.Lock()

    def h(p):
        with lock:
            counter["n"] += 1

    for _ in range(10):
        reg.register("t", h)

    stop = threading.Event()

    def churn():
        extra = lambda p: None
        while not stop.is_set():
            reg.register("t", extra)
            reg.deregister("t", extra)

    th = threading.Thread(target=churn)
    th.start()
    try:
        for _ in range(200):
            assert reg.dispatch("t", None) is True
    finally:
        stop.set()
        th.join(timeout=5)

    # h fires exactly 10 times per pass no matter what churn did
    assert counter["n"] == 200 * 10
    assert len(reg) == 10

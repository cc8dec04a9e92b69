import argparse
import os

from messenger.core import log
from messenger.core.metrics import force_emit
from messenger.core.registry import Registry
from messenger.wire_config import build_from_yaml


def main():
    ap = argparse.ArgumentParser(description="register two handlers, dispatch, deregister one, dispatch again")
    ap.add_argument("--config", default=None, help="optional messenger YAML to start from")
    ap.add_argument("--json", action="store_true", help="JSON log lines")
    args = ap.parse_args()

    if args.config:
        reg = build_from_yaml(args.config)
    else:
        log.setup(json_mode=args.json or (os.getenv("LOG_JSON", "0") == "1"))
        reg = Registry("demo.messenger")
    l = log.get("demo")

    seen = []
    def on_login_a(payload): seen.append("A")
    def on_login_b(payload): seen.append("B")

    reg.register("login", on_login_a).register("login", on_login_b)
    l.info("dispatch #1 fired=%s seen=%s", reg.dispatch("login", None), seen)

    reg.deregister("login", on_login_a)
    l.info("dispatch #2 fired=%s seen=%s", reg.dispatch("login", None), seen)

    reg.deregister("login")
    l.info("dispatch #3 fired=%s seen=%s", reg.dispatch("login", None), seen)

    force_emit(json_mode=args.json)

if __name__ == "__main__":
    main()

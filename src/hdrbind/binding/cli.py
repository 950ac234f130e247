from __future__ import annotations

import argparse
import importlib
import json
import sys

from pydantic_core import to_jsonable_python

from .. import config
from .errors import HeaderError
from .headers import parse_header_lines
from .signature import HeaderBinder


def load_handler(target: str):
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise ValueError(f"expected 'module:function', got {target!r}")
    obj = importlib.import_module(module_name)
    for part in attr.split("."):
        obj = getattr(obj, part)
    return obj


def cmd_check(args: argparse.Namespace) -> int:
    binder = HeaderBinder(load_handler(args.handler))
    try:
        headers = parse_header_lines(args.header or [])
    except ValueError as e:
        print(json.dumps({"error": "INVALID_HEADERS", "message": str(e)}, indent=2))
        return 1
    try:
        bound = binder.bind(headers, treat_nilable_as_optional=args.treat_nilable_as_optional)
    except HeaderError as e:
        print(json.dumps(e.to_dict(), indent=2))
        return 1
    print(json.dumps({"ok": True, "bound": to_jsonable_python(bound)}, indent=2))
    return 0


def cmd_describe(args: argparse.Namespace) -> int:
    binder = HeaderBinder(load_handler(args.handler))
    out = []
    for p in binder.binding_set:
        entry = {
            "name": p.name,
            "header": p.header_name,
            "feed_index": p.feed_index,
            "kind": p.kind.value,
            "nilable": p.nilable,
        }
        if p.record is not None:
            entry["fields"] = [
                {
                    "header": f.header_key,
                    "type": f.effective_type_tag.value,
                    "array": f.is_array,
                    "nilable": f.nilable,
                }
                for f in p.record.fields
            ]
        else:
            entry["type"] = p.effective_type_tag.value
        out.append(entry)
    print(json.dumps(out, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser("hdrbind")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_check = sub.add_parser("check", help="bind headers against a handler signature")
    p_check.add_argument("handler", help="module:function")
    p_check.add_argument("-H", "--header", action="append", help="'Name: value' (repeatable)")
    policy = p_check.add_mutually_exclusive_group()
    policy.add_argument(
        "--nilable-optional", dest="treat_nilable_as_optional", action="store_true", default=None
    )
    policy.add_argument("--strict-nilable", dest="treat_nilable_as_optional", action="store_false")
    p_check.set_defaults(func=cmd_check)

    p_desc = sub.add_parser("describe", help="print the header descriptors of a handler")
    p_desc.add_argument("handler", help="module:function")
    p_desc.set_defaults(func=cmd_describe)

    args = p.parse_args(argv)
    if getattr(args, "treat_nilable_as_optional", False) is None:
        args.treat_nilable_as_optional = config.treat_nilable_as_optional()
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))

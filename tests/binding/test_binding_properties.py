from typing import Annotated, List, Optional

from hypothesis import given, strategies as st
from starlette.datastructures import Headers

from hdrbind.binding.errors import HeaderBindingError
from hdrbind.binding.params import new_feed
from hdrbind.binding.signature import Header, build_header_params


def handler(
    tags: Annotated[List[str], Header("x-tag")],
    counts: Annotated[Optional[List[int]], Header("x-count")] = None,
    tenant: Annotated[Optional[str], Header("x-tenant")] = None,
):
    return tags, counts, tenant


BINDING_SET = build_header_params(handler)

# Visible ASCII, no surrounding whitespace; header values never carry CR/LF
header_text = st.text(
    alphabet=st.characters(min_codepoint=33, max_codepoint=126), min_size=1, max_size=12
)


def raw_headers(pairs):
    return Headers(raw=[(k.encode("latin-1"), v.encode("latin-1")) for k, v in pairs])


@given(st.lists(header_text, min_size=1, max_size=6))
def test_string_array_preserves_order(values):
    feed = new_feed(BINDING_SET.feed_size)
    BINDING_SET.populate(raw_headers([("x-tag", v) for v in values]), feed, True)
    assert feed[0] == values
    assert feed[1] is True


@given(st.lists(st.integers(min_value=-10**12, max_value=10**12), min_size=1, max_size=6))
def test_int_array_roundtrips_header_text(ints):
    pairs = [("x-tag", "t")] + [("x-count", str(i)) for i in ints]
    feed = new_feed(BINDING_SET.feed_size)
    BINDING_SET.populate(raw_headers(pairs), feed, True)
    assert feed[2] == ints


@given(
    tags=st.lists(header_text, max_size=3),
    counts=st.lists(st.one_of(header_text, st.integers().map(str)), max_size=3),
    tenant=st.one_of(st.none(), st.just(""), header_text),
    policy=st.booleans(),
)
def test_populate_is_idempotent(tags, counts, tenant, policy):
    pairs = [("x-tag", t) for t in tags] + [("x-count", c) for c in counts]
    if tenant is not None:
        pairs.append(("x-tenant", tenant))

    def run():
        feed = new_feed(BINDING_SET.feed_size)
        try:
            BINDING_SET.populate(raw_headers(pairs), feed, policy)
        except HeaderBindingError as e:
            return ("error", e.message)
        return ("ok", feed)

    assert run() == run()
